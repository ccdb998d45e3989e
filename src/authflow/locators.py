"""
Declarative element locators.

A Locator is pure data: a strategy, a value and an optional parent that
scopes the lookup beneath another locator (a page root).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import StrEnum


class Strategy(StrEnum):
    """How a locator value is interpreted."""

    CSS = "css"
    LINK_TEXT = "link_text"
    XPATH = "xpath"


@dataclass(frozen=True)
class Locator:
    """Immutable descriptor of how to find zero or more elements."""

    strategy: Strategy
    value: str
    parent: Locator | None = None

    def within(self, root: Locator) -> Locator:
        """Return this locator scoped beneath root."""
        if self.parent is not None:
            return Locator(self.strategy, self.value, self.parent.within(root))
        return Locator(self.strategy, self.value, root)

    def describe(self) -> str:
        own = f"{self.strategy}={self.value}"
        if self.parent is None:
            return own
        return f"{self.parent.describe()} >> {own}"

    def __str__(self) -> str:
        return self.describe()

    def to_js(self) -> str:
        """
        Build a JS expression that evaluates to an array of matching elements.

        Parents are resolved first; children are searched beneath every
        matching parent. Nested parents can reach the same child, so the
        result is deduplicated in document order.
        """
        value = json.dumps(self.value)
        if self.parent is None:
            scopes = "[document]"
        else:
            scopes = self.parent.to_js()

        match self.strategy:
            case Strategy.CSS:
                body = f"Array.from(s.querySelectorAll({value}))"
            case Strategy.LINK_TEXT:
                body = (
                    "Array.from(s.querySelectorAll('a'))"
                    f".filter(a => (a.textContent || '').trim() === {value})"
                )
            case Strategy.XPATH:
                body = (
                    "(() => { const out = []; "
                    f"const r = document.evaluate({value}, s, null, "
                    "XPathResult.ORDERED_NODE_SNAPSHOT_TYPE, null); "
                    "for (let i = 0; i < r.snapshotLength; i++) out.push(r.snapshotItem(i)); "
                    "return out; })()"
                )
        return f"[...new Set(({scopes}).flatMap(s => {body}))]"


def css(value: str) -> Locator:
    return Locator(Strategy.CSS, value)


def link_text(value: str) -> Locator:
    return Locator(Strategy.LINK_TEXT, value)


def xpath(value: str) -> Locator:
    return Locator(Strategy.XPATH, value)
