"""Me > My Profile page."""

from __future__ import annotations

from authflow.config import Settings
from authflow.elements import ElementProxy
from authflow.locators import css
from authflow.pages.base import Screen
from authflow.session import Session


class ProfilePage:
    ROOT = css(".me-profile-settings")
    # The sign-out button lives in the Me sidebar, outside the profile root
    SIGN_OUT = css(".me-sidebar__signout-button")

    def __init__(self, session: Session, settings: Settings) -> None:
        self._elements = ElementProxy(session, settings)
        self._screen = Screen(self._elements, self.ROOT, "profile")

    async def displayed(self, timeout_ms: int | None = None) -> bool:
        return await self._screen.displayed(timeout_ms)

    async def click_sign_out(self) -> None:
        await self._elements.click_when_clickable(self.SIGN_OUT)
