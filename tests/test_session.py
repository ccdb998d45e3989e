"""Tests for the owl-browser session adapter."""

from __future__ import annotations

import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from structlog.testing import capture_logs

from authflow.config import Settings
from authflow.errors import ElementObscuredError, StaleElementError
from authflow.locators import css
from authflow.session import REF_ATTRIBUTE, ElementHandle, OwlSession, Session, open_owl_session


@pytest.fixture
def mock_browser() -> MagicMock:
    """Create a mock OwlBrowser instance (SDK v2)."""
    browser = MagicMock()
    browser.navigate = AsyncMock(return_value=None)
    browser.evaluate = AsyncMock(return_value={"result": None})
    browser.click = AsyncMock(return_value=None)
    browser.type = AsyncMock(return_value=None)
    browser.clear_input = AsyncMock(return_value=None)
    browser.connect = AsyncMock(return_value=None)
    browser.create_context = AsyncMock(return_value={"context_id": "test-ctx-001"})
    browser.close_context = AsyncMock(return_value=None)
    browser.close = AsyncMock(return_value=None)
    return browser


@pytest.fixture
def owl_session(mock_browser: MagicMock) -> OwlSession:
    return OwlSession(mock_browser, "test-ctx-001")


class TestOwlSession:
    """Test OwlSession against a mocked browser."""

    def test_satisfies_session_protocol(self, owl_session: OwlSession) -> None:
        assert isinstance(owl_session, Session)

    @pytest.mark.asyncio
    async def test_navigate_passes_context(self, owl_session: OwlSession, mock_browser: MagicMock) -> None:
        await owl_session.navigate("https://wordpress.com/log-in")

        kwargs = mock_browser.navigate.await_args.kwargs
        assert kwargs["context_id"] == "test-ctx-001"
        assert kwargs["url"] == "https://wordpress.com/log-in"

    @pytest.mark.asyncio
    async def test_execute_script_unwraps_result(self, owl_session: OwlSession, mock_browser: MagicMock) -> None:
        mock_browser.evaluate.return_value = {"result": "Mozilla/5.0 wp-e2e-tests"}
        assert await owl_session.execute_script("navigator.userAgent") == "Mozilla/5.0 wp-e2e-tests"

        mock_browser.evaluate.return_value = 7
        assert await owl_session.execute_script("1 + 6") == 7

    @pytest.mark.asyncio
    async def test_find_elements_builds_handles(self, owl_session: OwlSession, mock_browser: MagicMock) -> None:
        mock_browser.evaluate.return_value = {
            "result": [
                {"ref": "abc-0", "visible": True, "enabled": True},
                {"ref": "abc-1", "visible": False, "enabled": True},
            ]
        }
        locator = css(".masterbar")

        handles = await owl_session.find_elements(locator)

        assert handles == [
            ElementHandle(locator=locator, ref="abc-0", visible=True, enabled=True),
            ElementHandle(locator=locator, ref="abc-1", visible=False, enabled=True),
        ]
        script = mock_browser.evaluate.await_args.kwargs["expression"]
        assert REF_ATTRIBUTE in script
        assert '".masterbar"' in script

    @pytest.mark.asyncio
    async def test_find_elements_empty(self, owl_session: OwlSession, mock_browser: MagicMock) -> None:
        mock_browser.evaluate.return_value = {"result": []}
        assert await owl_session.find_elements(css("#missing")) == []

    @pytest.mark.asyncio
    async def test_click_uses_ref_selector(self, owl_session: OwlSession, mock_browser: MagicMock) -> None:
        await owl_session.click(ElementHandle(locator=css("button"), ref="abc-0"))

        assert mock_browser.click.await_args.kwargs["selector"] == f'[{REF_ATTRIBUTE}="abc-0"]'

    @pytest.mark.asyncio
    async def test_click_on_detached_element_is_stale(
        self, owl_session: OwlSession, mock_browser: MagicMock
    ) -> None:
        mock_browser.click.side_effect = RuntimeError("element not found")
        mock_browser.evaluate.return_value = {"result": False}

        with pytest.raises(StaleElementError):
            await owl_session.click(ElementHandle(locator=css("button"), ref="abc-0"))

    @pytest.mark.asyncio
    async def test_click_on_attached_element_is_obscured(
        self, owl_session: OwlSession, mock_browser: MagicMock
    ) -> None:
        mock_browser.click.side_effect = RuntimeError("other element would receive the click")
        mock_browser.evaluate.return_value = {"result": True}

        with pytest.raises(ElementObscuredError):
            await owl_session.click(ElementHandle(locator=css("button"), ref="abc-0"))

    @pytest.mark.asyncio
    async def test_type_text_clears_then_types(self, owl_session: OwlSession, mock_browser: MagicMock) -> None:
        mock_browser.evaluate.return_value = {"result": True}

        await owl_session.type_text(ElementHandle(locator=css("#password"), ref="abc-0"), "hunter2")

        mock_browser.clear_input.assert_awaited_once()
        assert mock_browser.type.await_args.kwargs["text"] == "hunter2"

    @pytest.mark.asyncio
    async def test_clear_cookies_and_storage(self, owl_session: OwlSession, mock_browser: MagicMock) -> None:
        await owl_session.clear_cookies_and_storage()

        script = mock_browser.evaluate.await_args.kwargs["expression"]
        assert "localStorage.clear()" in script
        assert "document.cookie" in script


@pytest.fixture
def owl_module(mock_browser: MagicMock):
    """Stand-in owl_browser module whose OwlBrowser returns mock_browser."""
    module = MagicMock()
    module.OwlBrowser = MagicMock(return_value=mock_browser)
    module.RemoteConfig = MagicMock(side_effect=lambda **kwargs: kwargs)
    with patch.dict(sys.modules, {"owl_browser": module}):
        yield module


class TestOpenOwlSession:
    """Test the connect / context / close lifecycle."""

    @pytest.mark.asyncio
    async def test_yields_session_on_new_context(
        self, owl_module: MagicMock, mock_browser: MagicMock, settings: Settings
    ) -> None:
        async with open_owl_session(settings) as session:
            assert isinstance(session, OwlSession)
            assert session.session_id == "test-ctx-001"
            mock_browser.close.assert_not_awaited()

        owl_module.RemoteConfig.assert_called_once_with(url=settings.owl_url, token=settings.owl_token)
        mock_browser.connect.assert_awaited_once()
        mock_browser.close_context.assert_awaited_once_with(context_id="test-ctx-001")
        mock_browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_closes_when_body_raises(
        self, owl_module: MagicMock, mock_browser: MagicMock, settings: Settings
    ) -> None:
        with pytest.raises(RuntimeError, match="flow blew up"):
            async with open_owl_session(settings):
                raise RuntimeError("flow blew up")

        mock_browser.close_context.assert_awaited_once_with(context_id="test-ctx-001")
        mock_browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_context_failure_is_logged(
        self, owl_module: MagicMock, mock_browser: MagicMock, settings: Settings
    ) -> None:
        mock_browser.close_context.side_effect = RuntimeError("context already gone")

        with capture_logs() as logs:
            async with open_owl_session(settings):
                pass

        mock_browser.close.assert_awaited_once()
        warning = next(e for e in logs if e["event"] == "Failed to close browser context")
        assert warning["log_level"] == "warning"
        assert warning["context_id"] == "test-ctx-001"

    @pytest.mark.asyncio
    async def test_failed_context_creation_still_disconnects(
        self, owl_module: MagicMock, mock_browser: MagicMock, settings: Settings
    ) -> None:
        mock_browser.create_context.side_effect = RuntimeError("no capacity")

        with pytest.raises(RuntimeError, match="no capacity"):
            async with open_owl_session(settings):
                pass

        mock_browser.close_context.assert_not_awaited()
        mock_browser.close.assert_awaited_once()
