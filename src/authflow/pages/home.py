"""Public WordPress.com home page."""

from __future__ import annotations

from authflow.config import Settings
from authflow.elements import ElementProxy
from authflow.locators import css
from authflow.pages.base import Screen
from authflow.session import Session


class WPHomePage:
    ROOT = css("body.home")

    def __init__(self, session: Session, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._screen = Screen(ElementProxy(session, settings), self.ROOT, "wp_home")

    async def visit(self) -> None:
        await self._screen.visit(f"{self._settings.base_url}/")

    async def displayed(self, timeout_ms: int | None = None) -> bool:
        return await self._screen.displayed(timeout_ms)

    async def user_agent(self) -> str:
        return str(await self._session.execute_script("navigator.userAgent"))
