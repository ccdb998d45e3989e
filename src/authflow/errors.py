"""
Error taxonomy for authflow.

Errors fall into three layers:
- Polling and element interaction (raised by the poller and element proxy)
- Flow semantics (raised by login/logout flows)
- Inbox oracle (raised by the inbox client)

Only ElementNotPresentError is treated as a retryable signal by the poller.
Everything else surfaces to the caller unchanged.
"""

from __future__ import annotations

from typing import Any


class AuthFlowError(Exception):
    """Base exception for all authflow errors."""


class ConfigurationError(AuthFlowError):
    """Raised when settings or account data are missing or invalid."""


# ── Polling ───────────────────────────────────────────────────────────────────


class PollTimeoutError(AuthFlowError):
    """Raised when a polled condition does not hold within its timeout."""

    def __init__(
        self,
        elapsed_ms: int,
        last_result: Any = None,
        description: str | None = None,
        last_error: BaseException | None = None,
    ) -> None:
        self.elapsed_ms = elapsed_ms
        self.last_result = last_result
        self.description = description
        self.last_error = last_error
        what = description or "condition"
        super().__init__(
            f"Timed out after {elapsed_ms}ms waiting for {what} "
            f"(last result: {last_result!r})"
        )


# ── Element interaction ───────────────────────────────────────────────────────


class ElementNotPresentError(AuthFlowError):
    """Raised by a lookup when the element is not in the DOM yet."""


class StaleElementError(AuthFlowError):
    """Raised when an element handle no longer refers to a live element."""


class ElementObscuredError(AuthFlowError):
    """Raised when a click lands on another element covering the target."""


class ElementNotFoundError(AuthFlowError):
    """Raised when an element never became present."""


class ElementNotClickableError(AuthFlowError):
    """Raised when an element never became visible and enabled."""


class ClickFailedError(AuthFlowError):
    """Raised when every click attempt hit a stale or obscured element."""

    def __init__(self, message: str, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(message)


# ── Flows ─────────────────────────────────────────────────────────────────────


class LoginRejectedError(AuthFlowError):
    """Raised when the post-login page never appears."""


class LogoutFailedError(AuthFlowError):
    """Raised when the logged-out masterbar never appears after sign out."""


class MagicLinkNotReceivedError(AuthFlowError):
    """Raised when no magic link email arrives within the inbox timeout."""


class MagicLinkInvalidError(AuthFlowError):
    """Raised when the magic link email carries no usable link."""


# ── Inbox ─────────────────────────────────────────────────────────────────────


class MessageNotFoundError(AuthFlowError):
    """Raised when no matching inbox message arrives in time."""

    def __init__(self, recipient: str, elapsed_ms: int) -> None:
        self.recipient = recipient
        self.elapsed_ms = elapsed_ms
        super().__init__(
            f"No matching message for {recipient} after {elapsed_ms}ms"
        )
