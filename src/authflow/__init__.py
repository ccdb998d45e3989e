"""
authflow - end-to-end authentication tests over a remote browser.

Polling, element interaction, page objects and multi-branch login flows
(password, Jetpack SSO, passwordless magic link) driven through owl-browser.
"""

__version__ = "0.1.0"

from authflow.checkpoints import CheckpointSink, NullCheckpointSink
from authflow.config import Account, Settings
from authflow.elements import ElementProxy
from authflow.errors import (
    AuthFlowError,
    ClickFailedError,
    ConfigurationError,
    ElementNotClickableError,
    ElementNotFoundError,
    ElementNotPresentError,
    ElementObscuredError,
    LoginRejectedError,
    LogoutFailedError,
    MagicLinkInvalidError,
    MagicLinkNotReceivedError,
    MessageNotFoundError,
    PollTimeoutError,
    StaleElementError,
)
from authflow.flows import FlowBranch, FlowResult, FlowState, LoginFlow, LogoutFlow, select_branch
from authflow.inbox import InboxClient, InboxMessage, InboxService, MailosaurInbox
from authflow.locators import Locator, Strategy
from authflow.logsetup import configure_logging
from authflow.poller import wait_until
from authflow.session import ElementHandle, OwlSession, Session, open_owl_session

__all__ = [
    "Account",
    "AuthFlowError",
    "CheckpointSink",
    "ClickFailedError",
    "ConfigurationError",
    "ElementHandle",
    "ElementNotClickableError",
    "ElementNotFoundError",
    "ElementNotPresentError",
    "ElementObscuredError",
    "ElementProxy",
    "FlowBranch",
    "FlowResult",
    "FlowState",
    "InboxClient",
    "InboxMessage",
    "InboxService",
    "Locator",
    "LoginFlow",
    "LoginRejectedError",
    "LogoutFailedError",
    "LogoutFlow",
    "MagicLinkInvalidError",
    "MagicLinkNotReceivedError",
    "MailosaurInbox",
    "MessageNotFoundError",
    "NullCheckpointSink",
    "OwlSession",
    "PollTimeoutError",
    "Session",
    "Settings",
    "StaleElementError",
    "Strategy",
    "configure_logging",
    "open_owl_session",
    "select_branch",
    "wait_until",
]
