"""
Interactable element proxy.

Wraps the session's raw element lookups with presence, visibility and
clickability waits. Every wait goes through wait_until(); an empty lookup is
signalled as ElementNotPresentError so the poller retries it while any other
lookup failure surfaces immediately.
"""

from __future__ import annotations

import asyncio

import structlog

from authflow.config import Settings
from authflow.errors import (
    ClickFailedError,
    ElementNotClickableError,
    ElementNotFoundError,
    ElementNotPresentError,
    ElementObscuredError,
    PollTimeoutError,
    StaleElementError,
)
from authflow.locators import Locator
from authflow.poller import wait_until
from authflow.session import ElementHandle, Session

logger = structlog.get_logger(__name__)


class ElementProxy:
    """
    Presence, visibility and click helpers over one Session.

    Holds no state between calls besides the borrowed session and settings.
    """

    CLICK_RETRY_ERRORS: tuple[type[Exception], ...] = (StaleElementError, ElementObscuredError)

    def __init__(self, session: Session, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._log = logger.bind(component="element_proxy", session_id=session.session_id)

    @property
    def session(self) -> Session:
        return self._session

    def _timeout(self, timeout_ms: int | None) -> int:
        return self._settings.explicit_wait_ms if timeout_ms is None else timeout_ms

    async def _lookup(self, locator: Locator) -> list[ElementHandle]:
        handles = await self._session.find_elements(locator)
        if not handles:
            raise ElementNotPresentError(f"No element matches {locator}")
        return handles

    async def is_present(self, locator: Locator) -> bool:
        """Probe once for the locator. Never raises."""
        try:
            return bool(await self._session.find_elements(locator))
        except Exception as e:
            self._log.debug("Presence probe failed", locator=str(locator), error=str(e))
            return False

    async def wait_for_present(
        self, locator: Locator, timeout_ms: int | None = None
    ) -> ElementHandle:
        async def first_present() -> ElementHandle:
            handles = await self._lookup(locator)
            return handles[0]

        try:
            return await wait_until(
                first_present,
                self._timeout(timeout_ms),
                self._settings.poll_interval_ms,
                description=f"{locator} to be present",
            )
        except PollTimeoutError as e:
            raise ElementNotFoundError(
                f"Element {locator} not present after {e.elapsed_ms}ms"
            ) from e

    async def wait_for_displayed(
        self, locator: Locator, timeout_ms: int | None = None
    ) -> ElementHandle:
        """Wait until a matching element is present and visible."""

        async def first_visible() -> ElementHandle | None:
            handles = await self._lookup(locator)
            return next((h for h in handles if h.visible), None)

        try:
            return await wait_until(
                first_visible,
                self._timeout(timeout_ms),
                self._settings.poll_interval_ms,
                description=f"{locator} to be displayed",
            )
        except PollTimeoutError as e:
            raise ElementNotFoundError(
                f"Element {locator} not displayed after {e.elapsed_ms}ms"
            ) from e

    async def wait_for_clickable(
        self, locator: Locator, timeout_ms: int | None = None
    ) -> ElementHandle:
        async def first_clickable() -> ElementHandle | None:
            handles = await self._lookup(locator)
            return next((h for h in handles if h.clickable), None)

        try:
            return await wait_until(
                first_clickable,
                self._timeout(timeout_ms),
                self._settings.poll_interval_ms,
                description=f"{locator} to be clickable",
            )
        except PollTimeoutError as e:
            raise ElementNotClickableError(
                f"Element {locator} not clickable after {e.elapsed_ms}ms"
            ) from e

    async def wait_for_absent(self, locator: Locator, timeout_ms: int | None = None) -> None:
        """Wait until nothing matches the locator any more."""

        async def gone() -> bool:
            return not await self._session.find_elements(locator)

        await wait_until(
            gone,
            self._timeout(timeout_ms),
            self._settings.poll_interval_ms,
            description=f"{locator} to disappear",
        )

    async def click_when_clickable(
        self, locator: Locator, timeout_ms: int | None = None
    ) -> ElementHandle:
        """
        Wait for the element to be clickable, then click it.

        The element can re-render between the wait and the click, so a stale
        or obscured click restarts the wait-and-click unit, up to
        settings.click_attempts times.

        Returns:
            The handle that was clicked

        Raises:
            ElementNotClickableError: If the element never became clickable
            ClickFailedError: If every attempt hit a stale or obscured element
        """
        attempts = self._settings.click_attempts
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            handle = await self.wait_for_clickable(locator, timeout_ms)
            try:
                await self._session.click(handle)
            except self.CLICK_RETRY_ERRORS as e:
                last_error = e
                self._log.info(
                    "Click raced with re-render, retrying",
                    locator=str(locator),
                    attempt=attempt,
                    max_attempts=attempts,
                    error=str(e),
                )
                if attempt < attempts and self._settings.click_retry_delay_ms:
                    await asyncio.sleep(self._settings.click_retry_delay_ms / 1000.0)
                continue

            self._log.debug("Clicked", locator=str(locator), attempt=attempt)
            return handle

        raise ClickFailedError(
            f"Could not click {locator} after {attempts} attempts: {last_error}",
            attempts=attempts,
        ) from last_error

    async def set_when_settable(
        self, locator: Locator, value: str, timeout_ms: int | None = None
    ) -> None:
        """Wait for an input to be usable, then replace its value."""
        attempts = self._settings.click_attempts
        for attempt in range(1, attempts + 1):
            handle = await self.wait_for_clickable(locator, timeout_ms)
            try:
                await self._session.type_text(handle, value)
                return
            except StaleElementError as e:
                if attempt == attempts:
                    raise
                self._log.info("Input went stale, retrying", locator=str(locator), attempt=attempt, error=str(e))
