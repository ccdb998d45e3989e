"""
Login flow.

One LoginFlow models one authentication journey over a Session. The branch
is chosen at run time from the feature-variant tags given at construction:

- passwordless: request a magic link, wait for the email, follow the link
- jetpack-sso:  log in through a Jetpack site's "Log in with WordPress.com"
- (default):    submit username and password on the log-in form

Every branch ends by asserting the Reader is displayed. Whatever the
outcome, cleanup runs once and deletes a magic link email the flow obtained.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import structlog

from authflow.checkpoints import CheckpointSink, NullCheckpointSink
from authflow.config import Account, Settings
from authflow.elements import ElementProxy
from authflow.errors import (
    ConfigurationError,
    LoginRejectedError,
    MagicLinkInvalidError,
    MagicLinkNotReceivedError,
    MessageNotFoundError,
    PollTimeoutError,
)
from authflow.flows.steps import FlowResult, FlowRun, FlowState
from authflow.inbox import InboxClient, InboxMessage, MailosaurInbox, subject_contains
from authflow.pages import (
    JetpackLoginPage,
    LoginPage,
    MagicLoginPage,
    ReaderPage,
    WPAdminDashboardPage,
)
from authflow.pages.base import Displayable
from authflow.poller import wait_until
from authflow.session import Session

logger = structlog.get_logger(__name__)

PASSWORDLESS = "passwordless"
JETPACK_SSO = "jetpack-sso"

# Tags that also select which configured account to use
ACCOUNT_FEATURES = frozenset({PASSWORDLESS})


class FlowBranch(StrEnum):
    STANDARD = "standard"
    SSO = "sso"
    PASSWORDLESS = "passwordless"


def select_branch(features: Iterable[str]) -> FlowBranch:
    """
    Pick the login branch for a set of feature-variant tags.

    Unrecognized tags are ignored. passwordless takes precedence over
    jetpack-sso when both are given.
    """
    tags = {f.strip().lower() for f in features}
    if PASSWORDLESS in tags:
        return FlowBranch.PASSWORDLESS
    if JETPACK_SSO in tags:
        return FlowBranch.SSO
    return FlowBranch.STANDARD


@dataclass
class FlowContext:
    """Mutable state threaded through one login run."""

    account: Account
    features: frozenset[str]
    branch: FlowBranch
    magic_link_message: InboxMessage | None = None
    artifacts: dict[str, Any] = field(default_factory=dict)


class LoginFlow:
    """
    Authentication journey bound to one Session.

    Args:
        session: Live browser session (borrowed, not owned)
        settings: Timeouts, hosts and accounts
        features: Feature-variant tags selecting the branch
        inbox: Inbox client for the passwordless branch. Built from the
            account's Mailosaur server when omitted.
        checkpoints: Visual checkpoint sink
        account: Explicit account; chosen from settings by feature tags
            when omitted
    """

    def __init__(
        self,
        session: Session,
        settings: Settings,
        features: Iterable[str] = (),
        *,
        inbox: InboxClient | None = None,
        checkpoints: CheckpointSink | None = None,
        account: Account | None = None,
    ) -> None:
        self._session = session
        self._settings = settings
        self._inbox = inbox
        self._owned_inbox_service: MailosaurInbox | None = None
        self._checkpoints = checkpoints or NullCheckpointSink()

        tags = frozenset(f.strip().lower() for f in features)
        branch = select_branch(tags)
        if account is None:
            account = settings.account_for(tags & ACCOUNT_FEATURES)

        self.context = FlowContext(account=account, features=tags, branch=branch)
        self._run = FlowRun("login", session_id=session.session_id, branch=str(branch))
        self._cleaned_up = False
        self._log = logger.bind(component="login_flow", session_id=session.session_id, branch=str(branch))

    @property
    def account(self) -> Account:
        return self.context.account

    @property
    def branch(self) -> FlowBranch:
        return self.context.branch

    @property
    def state(self) -> FlowState:
        return self._run.state

    @property
    def result(self) -> FlowResult | None:
        return self._run.result

    async def run(self, screenshot: bool = False) -> FlowResult:
        """
        Execute the selected branch.

        Args:
            screenshot: Emit a "Login Page" checkpoint before submitting.
                Ignored unless settings.visual_diff is on.

        Returns:
            The completed FlowResult

        Raises:
            The first step failure, unchanged, after cleanup has run
        """
        self._run.start(branch=str(self.branch))
        error: BaseException | None = None
        try:
            match self.branch:
                case FlowBranch.PASSWORDLESS:
                    await self._passwordless(screenshot)
                case FlowBranch.SSO:
                    await self._jetpack_sso()
                case _:
                    await self._standard(screenshot)
        except BaseException as e:
            error = e
            raise
        finally:
            result = self._run.finish(error)
            await self._cleanup()
            result.artifacts.update(self.context.artifacts)
        return result

    async def end(self) -> None:
        """Log the session out by clearing cookies and local storage."""
        await self._session.clear_cookies_and_storage()
        self._log.info("Session cleared")

    # ── Branches ──────────────────────────────────────────────────────────

    async def _standard(self, screenshot: bool) -> None:
        login_page = LoginPage(self._session, self._settings)

        async with self._run.step("open login page"):
            await login_page.visit()
            if not await login_page.displayed():
                raise LoginRejectedError("Log in form is not displayed")
        if screenshot and self._settings.visual_diff:
            async with self._run.step("checkpoint login page"):
                await self._checkpoints.checkpoint("Login Page")
        async with self._run.step("submit credentials"):
            await login_page.login(self.account.username, self._password())
        async with self._run.step("assert reader displayed"):
            await self._assert_landed(ReaderPage(self._session, self._settings), "Reader")

    async def _jetpack_sso(self) -> None:
        jetpack_login = JetpackLoginPage(self._session, self._settings)
        dashboard = WPAdminDashboardPage(self._session, self._settings)
        wpcom_login = LoginPage(self._session, self._settings)
        elements = ElementProxy(self._session, self._settings)

        async with self._run.step("open site login page"):
            await jetpack_login.visit()
            if not await jetpack_login.displayed():
                raise LoginRejectedError("Site log in form is not displayed")
        async with self._run.step("click log in with WordPress.com"):
            await jetpack_login.click_sso()

        async def landing() -> str | None:
            if await elements.is_present(WPAdminDashboardPage.ROOT):
                return "dashboard"
            if await elements.is_present(LoginPage.ROOT):
                return "login"
            return None

        async with self._run.step("await sso landing"):
            try:
                landed = await wait_until(
                    landing,
                    self._settings.explicit_wait_ms,
                    self._settings.poll_interval_ms,
                    description="SSO to land on wp-admin or the WordPress.com log in form",
                )
            except PollTimeoutError as e:
                raise LoginRejectedError(f"SSO did not land anywhere after {e.elapsed_ms}ms") from e
            self.context.artifacts["sso_landing"] = landed

        if landed == "login":
            # No WordPress.com session yet; SSO bounced to the log in form
            async with self._run.step("submit credentials"):
                await wpcom_login.login(self.account.username, self._password())

        async with self._run.step("assert wp-admin displayed"):
            await self._assert_landed(dashboard, "wp-admin dashboard")
        async with self._run.step("return to reader"):
            reader = ReaderPage(self._session, self._settings)
            await reader.visit()
            await self._assert_landed(reader, "Reader")

    async def _passwordless(self, screenshot: bool) -> None:
        login_page = LoginPage(self._session, self._settings)
        email = self.account.email

        async with self._run.step("open login page"):
            await login_page.visit()
            if not await login_page.displayed():
                raise LoginRejectedError("Log in form is not displayed")
        if screenshot and self._settings.visual_diff:
            async with self._run.step("checkpoint login page"):
                await self._checkpoints.checkpoint("Login Page")
        async with self._run.step("request magic link"):
            if not email:
                raise ConfigurationError(f"Account {self.account.username} has no email for a magic link")
            await login_page.request_magic_link(email)
        async with self._run.step("await magic link email"):
            message = await self._await_magic_link(login_page, email)
        async with self._run.step("extract magic link"):
            link = message.first_link
            if not link:
                raise MagicLinkInvalidError(f"Magic link email {message.id} contains no link")
            self.context.artifacts["magic_link"] = link
        async with self._run.step("open magic link"):
            await self._session.navigate(link)
        async with self._run.step("finish magic login"):
            await MagicLoginPage(self._session, self._settings).finish_login()
        async with self._run.step("assert reader displayed"):
            await self._assert_landed(ReaderPage(self._session, self._settings), "Reader")

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _assert_landed(self, page: Displayable, name: str) -> None:
        if not await page.displayed():
            raise LoginRejectedError(f"The {name} page is not displayed after log in")

    def _password(self) -> str:
        if not self.account.password:
            raise ConfigurationError(f"Account {self.account.username} has no password for a credential login")
        return self.account.password

    def _inbox_client(self) -> InboxClient:
        if self._inbox is not None:
            return self._inbox
        inbox_id = self.account.inbox_id
        if not inbox_id or not self._settings.mailosaur_api_key:
            raise ConfigurationError(
                f"Account {self.account.username} needs an inbox_id and MAILOSAUR_API_KEY for magic links"
            )
        self._owned_inbox_service = MailosaurInbox(inbox_id, self._settings.mailosaur_api_key)
        self._inbox = InboxClient(self._owned_inbox_service, self._settings.inbox_poll_interval_ms)
        return self._inbox

    async def _poll_inbox(self, inbox: InboxClient, email: str) -> InboxMessage:
        try:
            message = await inbox.poll_for_message(
                email,
                subject_contains(self._settings.product_name),
                self._settings.inbox_timeout_ms,
            )
        except MessageNotFoundError as e:
            raise MagicLinkNotReceivedError(
                f"No {self._settings.product_name} email reached {email} "
                f"within {self._settings.inbox_timeout_ms}ms"
            ) from e
        # Stored right away so cleanup can reach it even if a later step fails
        self.context.magic_link_message = message
        return message

    async def _await_magic_link(self, login_page: LoginPage, email: str) -> InboxMessage:
        """
        Poll the inbox while the browser shows the 'check your email' screen.

        The browser side is informational only; the flow waits for the
        inbox either way and never navigates before a message is in hand.
        """
        inbox = self._inbox_client()
        poll = asyncio.create_task(self._poll_inbox(inbox, email))
        try:
            if not await login_page.magic_link_sent():
                self._log.warning("Magic link confirmation not shown, still waiting for email", email=email)
            return await poll
        except BaseException:
            poll.cancel()
            await asyncio.gather(poll, return_exceptions=True)
            raise

    async def _cleanup(self) -> None:
        """Delete the consumed magic link email. Runs once, never raises."""
        if self._cleaned_up:
            return
        self._cleaned_up = True

        message = self.context.magic_link_message
        if message is not None and self._inbox is not None:
            try:
                await self._inbox.delete_message(message.id)
            except Exception as e:
                self._log.error("Failed to delete magic link email", message_id=message.id, error=str(e))

        if self._owned_inbox_service is not None:
            try:
                await self._owned_inbox_service.aclose()
            except Exception as e:
                self._log.warning("Failed to close inbox client", error=str(e))
