"""Reader, the page a successful login lands on."""

from __future__ import annotations

from authflow.config import Settings
from authflow.elements import ElementProxy
from authflow.locators import css
from authflow.pages.base import Screen
from authflow.session import Session


class ReaderPage:
    ROOT = css(".following.main")

    def __init__(self, session: Session, settings: Settings) -> None:
        self._settings = settings
        self._screen = Screen(ElementProxy(session, settings), self.ROOT, "reader")

    @property
    def url(self) -> str:
        return f"{self._settings.base_url}/read"

    async def visit(self) -> None:
        await self._screen.visit(self.url)

    async def displayed(self, timeout_ms: int | None = None) -> bool:
        return await self._screen.displayed(timeout_ms)
