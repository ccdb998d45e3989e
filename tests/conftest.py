"""Pytest fixtures for authflow tests."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pytest

from authflow.config import Account, Settings
from authflow.inbox import InboxMessage
from authflow.locators import Locator
from authflow.session import ElementHandle

Key = tuple[str, str]


def key_of(locator: Locator | str) -> Key:
    """Fake DOM lookups match on the leaf locator only."""
    if isinstance(locator, str):
        return ("css", locator)
    return (str(locator.strategy), locator.value)


@dataclass
class FakeElement:
    visible: bool = True
    enabled: bool = True
    appear_at: float = 0.0


class FakeSession:
    """
    In-memory Session.

    The DOM is a dict of leaf locator -> element state. Clicks and
    navigations can trigger callbacks that change the DOM, which is how
    tests script page transitions.
    """

    def __init__(self) -> None:
        self.session_id = "fake-ctx-001"
        self.elements: dict[Key, FakeElement] = {}
        self.clicks: list[Locator] = []
        self.typed: list[tuple[Locator, str]] = []
        self.navigations: list[str] = []
        self.scripts: list[str] = []
        self.script_result: Any = None
        self.cleared = 0
        self.find_calls = 0
        self.click_errors: dict[Key, list[Exception]] = {}
        self.lookup_errors: dict[Key, Exception] = {}
        self.on_click: dict[Key, Callable[[], None]] = {}
        self.on_navigate: dict[str, Callable[[], None]] = {}
        self._refs = 0

    def show(
        self,
        locator: Locator | str,
        *,
        visible: bool = True,
        enabled: bool = True,
        delay: float = 0.0,
    ) -> None:
        self.elements[key_of(locator)] = FakeElement(
            visible=visible, enabled=enabled, appear_at=time.monotonic() + delay
        )

    def hide(self, locator: Locator | str) -> None:
        self.elements.pop(key_of(locator), None)

    def clicked(self, locator: Locator | str) -> int:
        return sum(1 for loc in self.clicks if key_of(loc) == key_of(locator))

    async def navigate(self, url: str) -> None:
        self.navigations.append(url)
        callback = self.on_navigate.get(url)
        if callback:
            callback()

    async def execute_script(self, code: str) -> Any:
        self.scripts.append(code)
        return self.script_result

    async def find_elements(self, locator: Locator) -> list[ElementHandle]:
        self.find_calls += 1
        key = key_of(locator)
        if key in self.lookup_errors:
            raise self.lookup_errors[key]
        element = self.elements.get(key)
        if element is None or time.monotonic() < element.appear_at:
            return []
        self._refs += 1
        return [
            ElementHandle(
                locator=locator,
                ref=f"ref-{self._refs}",
                visible=element.visible,
                enabled=element.enabled,
            )
        ]

    async def click(self, handle: ElementHandle) -> None:
        key = key_of(handle.locator)
        pending = self.click_errors.get(key)
        if pending:
            raise pending.pop(0)
        self.clicks.append(handle.locator)
        callback = self.on_click.get(key)
        if callback:
            callback()

    async def type_text(self, handle: ElementHandle, text: str) -> None:
        self.typed.append((handle.locator, text))

    async def clear_cookies_and_storage(self) -> None:
        self.cleared += 1


class FakeInbox:
    """In-memory InboxService with delayed delivery."""

    def __init__(self) -> None:
        self._messages: list[tuple[float, InboxMessage]] = []
        self.deleted: list[str] = []
        self.list_calls = 0
        self.delete_error: Exception | None = None

    def deliver(self, message: InboxMessage, delay: float = 0.0) -> None:
        self._messages.append((time.monotonic() + delay, message))

    async def list_messages(self, recipient: str) -> list[InboxMessage]:
        self.list_calls += 1
        now = time.monotonic()
        return [
            m
            for at, m in self._messages
            if m.recipient == recipient and at <= now and m.id not in self.deleted
        ]

    async def delete_message(self, message_id: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(message_id)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def fake_inbox() -> FakeInbox:
    return FakeInbox()


@pytest.fixture
def default_account() -> Account:
    return Account(username="e2eflowtesting", email="e2eflowtesting@example.com", password="hunter2")


@pytest.fixture
def passwordless_account() -> Account:
    return Account(
        username="e2epasswordless",
        email="passwordless.abc123@mailosaur.io",
        features=["passwordless"],
        inbox_id="abc123",
    )


@pytest.fixture
def settings(default_account: Account, passwordless_account: Account) -> Settings:
    """Settings with short waits so failing paths finish quickly."""
    return Settings(
        base_url="https://wordpress.com",
        jetpack_host="CI",
        jetpack_site_url="https://jetpack.example.com",
        explicit_wait_ms=300,
        poll_interval_ms=10,
        click_attempts=3,
        click_retry_delay_ms=0,
        inbox_poll_interval_ms=20,
        inbox_timeout_ms=300,
        accounts=[passwordless_account, default_account],
    )


@pytest.fixture
def visual_settings(settings: Settings) -> Settings:
    """Settings with visual diffing on, so flows emit checkpoints."""
    return settings.model_copy(update={"visual_diff": True})
