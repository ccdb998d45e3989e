"""Log-in entry page and the magic link landing page."""

from __future__ import annotations

from authflow.config import Settings
from authflow.elements import ElementProxy
from authflow.locators import css
from authflow.pages.base import Screen
from authflow.session import Session


class LoginPage:
    """The credential form at /log-in."""

    ROOT = css(".wp-login__container")
    USERNAME = css("#usernameOrEmail")
    PASSWORD = css("#password")
    SUBMIT = css(".login__form-action button.is-primary")
    # Shown once a passwordless account has been emailed a link
    MAGIC_LINK_SENT = css(".magic-login__check-email")

    def __init__(self, session: Session, settings: Settings) -> None:
        self._settings = settings
        self._elements = ElementProxy(session, settings)
        self._screen = Screen(self._elements, self.ROOT, "login")

    @property
    def url(self) -> str:
        return f"{self._settings.base_url}/log-in"

    async def visit(self) -> None:
        await self._screen.visit(self.url)

    async def displayed(self, timeout_ms: int | None = None) -> bool:
        return await self._screen.displayed(timeout_ms)

    async def login(self, username: str, password: str) -> None:
        await self._elements.set_when_settable(self._screen.child(self.USERNAME), username)
        await self._elements.click_when_clickable(self._screen.child(self.SUBMIT))
        await self._elements.set_when_settable(self._screen.child(self.PASSWORD), password)
        await self._elements.click_when_clickable(self._screen.child(self.SUBMIT))

    async def request_magic_link(self, email: str) -> None:
        await self._elements.set_when_settable(self._screen.child(self.USERNAME), email)
        await self._elements.click_when_clickable(self._screen.child(self.SUBMIT))

    async def magic_link_sent(self, timeout_ms: int | None = None) -> bool:
        """True once the 'check your email' confirmation is showing."""
        return await Screen(self._elements, self.MAGIC_LINK_SENT, "magic_link_sent").displayed(timeout_ms)


class MagicLoginPage:
    """Page a magic link opens; one more click completes the login."""

    ROOT = css(".magic-login__handle-link")
    CONTINUE = css(".button.is-primary")

    def __init__(self, session: Session, settings: Settings) -> None:
        self._elements = ElementProxy(session, settings)
        self._screen = Screen(self._elements, self.ROOT, "magic_login")

    async def displayed(self, timeout_ms: int | None = None) -> bool:
        return await self._screen.displayed(timeout_ms)

    async def finish_login(self) -> None:
        await self._elements.click_when_clickable(self._screen.child(self.CONTINUE))
