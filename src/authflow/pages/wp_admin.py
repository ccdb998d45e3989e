"""Screens on a Jetpack-connected site's wp-admin."""

from __future__ import annotations

import structlog

from authflow.config import Settings
from authflow.elements import ElementProxy
from authflow.errors import ConfigurationError
from authflow.locators import css, link_text
from authflow.pages.base import Screen
from authflow.session import Session

logger = structlog.get_logger(__name__)


class JetpackLoginPage:
    """The site's wp-login.php with the 'Log in with WordPress.com' button."""

    ROOT = css("#loginform")
    SSO_BUTTON = css(".jetpack-sso.button")

    def __init__(self, session: Session, settings: Settings) -> None:
        self._settings = settings
        self._elements = ElementProxy(session, settings)
        self._screen = Screen(self._elements, self.ROOT, "jetpack_login")

    @property
    def url(self) -> str:
        if not self._settings.jetpack_site_url:
            raise ConfigurationError("jetpack_site_url is required for Jetpack SSO")
        return f"{self._settings.jetpack_site_url}/wp-login.php"

    async def visit(self) -> None:
        await self._screen.visit(self.url)

    async def displayed(self, timeout_ms: int | None = None) -> bool:
        return await self._screen.displayed(timeout_ms)

    async def click_sso(self) -> None:
        # The SSO button sits outside #loginform on most themes
        await self._elements.click_when_clickable(self.SSO_BUTTON)


class WPAdminDashboardPage:
    ROOT = css("#dashboard-widgets-wrap")

    def __init__(self, session: Session, settings: Settings) -> None:
        self._screen = Screen(ElementProxy(session, settings), self.ROOT, "wp_admin_dashboard")

    async def displayed(self, timeout_ms: int | None = None) -> bool:
        return await self._screen.displayed(timeout_ms)


class WPAdminUpdatesPage:
    """Post-upgrade screen; may offer to activate the upgraded plugin."""

    ROOT = css(".update-php")
    ACTIVATE_PLUGIN = link_text("Activate Plugin")

    def __init__(self, session: Session, settings: Settings) -> None:
        self._elements = ElementProxy(session, settings)
        self._screen = Screen(self._elements, self.ROOT, "wp_admin_updates")

    async def displayed(self, timeout_ms: int | None = None) -> bool:
        return await self._screen.displayed(timeout_ms)

    async def activate_plugin(self) -> bool:
        """
        Click 'Activate Plugin' when the prompt is offered.

        Returns:
            True if the link was present and clicked, False if absent
        """
        if not await self._elements.is_present(self.ACTIVATE_PLUGIN):
            logger.debug("No activate plugin prompt")
            return False
        await self._elements.click_when_clickable(self.ACTIVATE_PLUGIN)
        return True
