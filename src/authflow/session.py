"""
Browser session interface and the Owl Browser adapter.

The flow engine only talks to the Session protocol. OwlSession implements it
over one isolated owl-browser context (SDK v2: every call is async and takes
a context_id).

Element handles are backed by a per-lookup ref attribute written into the
DOM. When the page re-renders the attribute disappears with the element,
which is how a stale handle is detected at click time.
"""

from __future__ import annotations

import contextlib
import json
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import structlog

from authflow.errors import ElementObscuredError, StaleElementError
from authflow.locators import Locator

if TYPE_CHECKING:
    from owl_browser import OwlBrowser

    from authflow.config import Settings

logger = structlog.get_logger(__name__)

REF_ATTRIBUTE = "data-authflow-ref"


@dataclass(frozen=True)
class ElementHandle:
    """A possibly-stale reference to one located element."""

    locator: Locator
    ref: str
    visible: bool = True
    enabled: bool = True

    @property
    def clickable(self) -> bool:
        return self.visible and self.enabled


@runtime_checkable
class Session(Protocol):
    """Capabilities of one live browser session."""

    session_id: str

    async def navigate(self, url: str) -> None: ...

    async def execute_script(self, code: str) -> Any: ...

    async def find_elements(self, locator: Locator) -> list[ElementHandle]: ...

    async def click(self, handle: ElementHandle) -> None: ...

    async def type_text(self, handle: ElementHandle, text: str) -> None: ...

    async def clear_cookies_and_storage(self) -> None: ...


def _unwrap(result: Any) -> Any:
    """owl-browser evaluate returns either the raw value or {"result": value}."""
    if isinstance(result, dict) and "result" in result:
        return result["result"]
    return result


class OwlSession:
    """
    Session backed by an owl-browser context.

    The session borrows the browser; it owns nothing but its context_id.
    Use open_owl_session() to get one with a managed lifecycle.
    """

    def __init__(
        self,
        browser: OwlBrowser,
        context_id: str,
        navigation_timeout_ms: int = 30000,
    ) -> None:
        self._browser = browser
        self.session_id = context_id
        self._navigation_timeout = navigation_timeout_ms
        self._log = logger.bind(component="owl_session", context_id=context_id)

    async def navigate(self, url: str) -> None:
        self._log.debug("Navigating", url=url)
        await self._browser.navigate(
            context_id=self.session_id,
            url=url,
            wait_until="domcontentloaded",
            timeout=self._navigation_timeout,
        )

    async def execute_script(self, code: str) -> Any:
        result = await self._browser.evaluate(
            context_id=self.session_id, expression=code
        )
        return _unwrap(result)

    async def find_elements(self, locator: Locator) -> list[ElementHandle]:
        token = uuid.uuid4().hex[:12]
        script = f"""
        (() => {{
            const els = {locator.to_js()};
            return els.map((el, i) => {{
                const ref = {json.dumps(token)} + '-' + i;
                el.setAttribute({json.dumps(REF_ATTRIBUTE)}, ref);
                const style = window.getComputedStyle(el);
                const rect = el.getBoundingClientRect();
                const visible = style.display !== 'none'
                    && style.visibility !== 'hidden'
                    && parseFloat(style.opacity || '1') > 0
                    && rect.width > 0 && rect.height > 0;
                return {{ref: ref, visible: visible, enabled: !el.disabled}};
            }});
        }})()
        """
        found = await self.execute_script(script) or []
        return [
            ElementHandle(
                locator=locator,
                ref=item["ref"],
                visible=bool(item.get("visible", False)),
                enabled=bool(item.get("enabled", False)),
            )
            for item in found
        ]

    async def click(self, handle: ElementHandle) -> None:
        try:
            await self._browser.click(
                context_id=self.session_id, selector=self._selector(handle)
            )
        except Exception as e:
            if not await self._still_attached(handle):
                raise StaleElementError(f"Element went stale: {handle.locator}") from e
            raise ElementObscuredError(f"Click did not land on {handle.locator}: {e}") from e

    async def type_text(self, handle: ElementHandle, text: str) -> None:
        selector = self._selector(handle)
        if not await self._still_attached(handle):
            raise StaleElementError(f"Element went stale: {handle.locator}")
        await self._browser.clear_input(context_id=self.session_id, selector=selector)
        await self._browser.type(context_id=self.session_id, selector=selector, text=text)

    async def clear_cookies_and_storage(self) -> None:
        script = """
        (() => {
            document.cookie.split(';').forEach(c => {
                const name = c.split('=')[0].trim();
                if (name) {
                    document.cookie = name + '=;expires=Thu, 01 Jan 1970 00:00:00 GMT;path=/';
                }
            });
            try { window.localStorage.clear(); } catch (e) {}
            try { window.sessionStorage.clear(); } catch (e) {}
            return true;
        })()
        """
        await self.execute_script(script)
        self._log.debug("Cleared cookies and storage")

    @staticmethod
    def _selector(handle: ElementHandle) -> str:
        return f'[{REF_ATTRIBUTE}="{handle.ref}"]'

    async def _still_attached(self, handle: ElementHandle) -> bool:
        selector = json.dumps(self._selector(handle))
        return bool(await self.execute_script(f"document.querySelector({selector}) !== null"))


@contextlib.asynccontextmanager
async def open_owl_session(settings: Settings) -> AsyncIterator[OwlSession]:
    """
    Connect to the remote owl-browser and yield a session on a fresh context.

    The context is closed and the browser disconnected on exit, whether or
    not the body raised.
    """
    from owl_browser import OwlBrowser, RemoteConfig

    browser = OwlBrowser(RemoteConfig(url=settings.owl_url, token=settings.owl_token))
    await browser.connect()
    context_id = ""
    try:
        ctx = await browser.create_context()
        context_id = ctx["context_id"]
        logger.info("Browser session opened", context_id=context_id)
        yield OwlSession(browser, context_id, navigation_timeout_ms=settings.explicit_wait_ms)
    finally:
        if context_id:
            try:
                await browser.close_context(context_id=context_id)
            except Exception as e:
                logger.warning("Failed to close browser context", context_id=context_id, error=str(e))
        await browser.close()
        logger.info("Browser session closed", context_id=context_id)
