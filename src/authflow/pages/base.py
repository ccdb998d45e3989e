"""
Page and component capability.

Screens don't share a base class. Each one composes an ElementProxy and a
Screen anchor (its root locator) and satisfies the Displayable protocol.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import structlog

from authflow.elements import ElementProxy
from authflow.errors import ElementNotFoundError
from authflow.locators import Locator

logger = structlog.get_logger(__name__)


@runtime_checkable
class Displayable(Protocol):
    """Anything that can tell whether it is currently showing."""

    async def displayed(self, timeout_ms: int | None = None) -> bool: ...


class Screen:
    """
    Root locator of a page or component, bound to an element proxy.

    displayed() always queries the live session; nothing is cached.
    """

    def __init__(self, elements: ElementProxy, root: Locator, name: str) -> None:
        self.elements = elements
        self.root = root
        self.name = name

    def child(self, locator: Locator) -> Locator:
        """Scope a locator beneath this screen's root."""
        return locator.within(self.root)

    async def displayed(self, timeout_ms: int | None = None) -> bool:
        try:
            await self.elements.wait_for_displayed(self.root, timeout_ms)
        except ElementNotFoundError:
            logger.debug("Screen not displayed", screen=self.name, root=str(self.root))
            return False
        return True

    async def visit(self, url: str) -> None:
        logger.debug("Visiting screen", screen=self.name, url=url)
        await self.elements.session.navigate(url)
