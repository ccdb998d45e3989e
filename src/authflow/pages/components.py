"""Reusable sub-widgets shared across screens."""

from __future__ import annotations

from authflow.config import Settings
from authflow.elements import ElementProxy
from authflow.locators import css
from authflow.pages.base import Screen
from authflow.session import Session


class NavbarComponent:
    """Logged-in masterbar."""

    ROOT = css(".masterbar")
    PROFILE_LINK = css("a.masterbar__item-me")

    def __init__(self, session: Session, settings: Settings) -> None:
        self._elements = ElementProxy(session, settings)
        self._screen = Screen(self._elements, self.ROOT, "navbar")

    async def displayed(self, timeout_ms: int | None = None) -> bool:
        return await self._screen.displayed(timeout_ms)

    async def click_profile_link(self) -> None:
        await self._elements.click_when_clickable(self._screen.child(self.PROFILE_LINK))


class LoggedOutMasterbarComponent:
    """Masterbar shown to visitors who are not logged in."""

    ROOT = css(".x-nav")

    def __init__(self, session: Session, settings: Settings) -> None:
        self._screen = Screen(ElementProxy(session, settings), self.ROOT, "logged_out_masterbar")

    async def displayed(self, timeout_ms: int | None = None) -> bool:
        return await self._screen.displayed(timeout_ms)
