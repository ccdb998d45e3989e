"""Tests for the element proxy."""

from __future__ import annotations

import pytest

from authflow.config import Settings
from authflow.elements import ElementProxy
from authflow.errors import (
    ClickFailedError,
    ElementNotClickableError,
    ElementNotFoundError,
    ElementObscuredError,
    PollTimeoutError,
    StaleElementError,
)
from authflow.locators import css, link_text

from conftest import FakeSession

BUTTON = css("button.is-primary")


@pytest.fixture
def proxy(fake_session: FakeSession, settings: Settings) -> ElementProxy:
    return ElementProxy(fake_session, settings)


class TestIsPresent:
    """Test the non-waiting presence probe."""

    @pytest.mark.asyncio
    async def test_present(self, proxy: ElementProxy, fake_session: FakeSession) -> None:
        fake_session.show(BUTTON)
        assert await proxy.is_present(BUTTON) is True

    @pytest.mark.asyncio
    async def test_absent_returns_false(self, proxy: ElementProxy) -> None:
        assert await proxy.is_present(link_text("Activate Plugin")) is False

    @pytest.mark.asyncio
    async def test_lookup_error_returns_false(
        self, proxy: ElementProxy, fake_session: FakeSession
    ) -> None:
        fake_session.lookup_errors[("css", "button.is-primary")] = RuntimeError("bad selector")
        assert await proxy.is_present(BUTTON) is False

    @pytest.mark.asyncio
    async def test_does_not_wait(self, proxy: ElementProxy, fake_session: FakeSession) -> None:
        fake_session.show(BUTTON, delay=0.05)
        assert await proxy.is_present(BUTTON) is False
        assert fake_session.find_calls == 1


class TestWaits:
    """Test presence and clickability waits."""

    @pytest.mark.asyncio
    async def test_wait_for_present_returns_late_element(
        self, proxy: ElementProxy, fake_session: FakeSession
    ) -> None:
        fake_session.show(BUTTON, delay=0.05)
        handle = await proxy.wait_for_present(BUTTON)
        assert handle.locator == BUTTON

    @pytest.mark.asyncio
    async def test_wait_for_present_times_out(self, proxy: ElementProxy) -> None:
        with pytest.raises(ElementNotFoundError) as exc_info:
            await proxy.wait_for_present(BUTTON, timeout_ms=50)
        assert isinstance(exc_info.value.__cause__, PollTimeoutError)

    @pytest.mark.asyncio
    async def test_lookup_error_is_not_masked(
        self, proxy: ElementProxy, fake_session: FakeSession
    ) -> None:
        fake_session.lookup_errors[("css", "button.is-primary")] = ValueError("bad selector")
        with pytest.raises(ValueError):
            await proxy.wait_for_present(BUTTON)
        assert fake_session.find_calls == 1

    @pytest.mark.asyncio
    async def test_hidden_element_is_not_clickable(
        self, proxy: ElementProxy, fake_session: FakeSession
    ) -> None:
        fake_session.show(BUTTON, visible=False)
        with pytest.raises(ElementNotClickableError):
            await proxy.wait_for_clickable(BUTTON, timeout_ms=50)

    @pytest.mark.asyncio
    async def test_disabled_element_is_not_clickable(
        self, proxy: ElementProxy, fake_session: FakeSession
    ) -> None:
        fake_session.show(BUTTON, enabled=False)
        with pytest.raises(ElementNotClickableError):
            await proxy.wait_for_clickable(BUTTON, timeout_ms=50)

    @pytest.mark.asyncio
    async def test_wait_for_absent(self, proxy: ElementProxy, fake_session: FakeSession) -> None:
        fake_session.show(BUTTON)
        with pytest.raises(PollTimeoutError):
            await proxy.wait_for_absent(BUTTON, timeout_ms=30)
        fake_session.hide(BUTTON)
        await proxy.wait_for_absent(BUTTON, timeout_ms=30)


class TestClickWhenClickable:
    """Test the wait-then-click unit and its bounded retry."""

    @pytest.mark.asyncio
    async def test_clicks_exactly_once(self, proxy: ElementProxy, fake_session: FakeSession) -> None:
        fake_session.show(BUTTON)
        await proxy.click_when_clickable(BUTTON)
        assert fake_session.clicked(BUTTON) == 1

    @pytest.mark.asyncio
    async def test_retries_stale_and_obscured_clicks(
        self, proxy: ElementProxy, fake_session: FakeSession
    ) -> None:
        fake_session.show(BUTTON)
        fake_session.click_errors[("css", "button.is-primary")] = [
            StaleElementError("re-rendered"),
            ElementObscuredError("covered by a notice"),
        ]

        await proxy.click_when_clickable(BUTTON)

        assert fake_session.clicked(BUTTON) == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_click_failed(
        self, proxy: ElementProxy, fake_session: FakeSession
    ) -> None:
        fake_session.show(BUTTON)
        fake_session.click_errors[("css", "button.is-primary")] = [
            StaleElementError("1"),
            StaleElementError("2"),
            StaleElementError("3"),
        ]

        with pytest.raises(ClickFailedError) as exc_info:
            await proxy.click_when_clickable(BUTTON)

        assert exc_info.value.attempts == 3
        assert fake_session.clicked(BUTTON) == 0

    @pytest.mark.asyncio
    async def test_other_click_errors_are_not_retried(
        self, proxy: ElementProxy, fake_session: FakeSession
    ) -> None:
        fake_session.show(BUTTON)
        fake_session.click_errors[("css", "button.is-primary")] = [RuntimeError("browser crashed")]

        with pytest.raises(RuntimeError):
            await proxy.click_when_clickable(BUTTON)

    @pytest.mark.asyncio
    async def test_never_clickable(self, proxy: ElementProxy) -> None:
        with pytest.raises(ElementNotClickableError):
            await proxy.click_when_clickable(BUTTON, timeout_ms=30)


class TestSetWhenSettable:
    """Test typing into inputs."""

    @pytest.mark.asyncio
    async def test_types_value(self, proxy: ElementProxy, fake_session: FakeSession) -> None:
        field = css("#usernameOrEmail")
        fake_session.show(field)
        await proxy.set_when_settable(field, "e2eflowtesting")
        assert fake_session.typed == [(field, "e2eflowtesting")]
