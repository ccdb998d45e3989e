"""
Condition polling.

wait_until() is the single waiting primitive everything else builds on.
It never busy-waits, always honours its timeout, and only swallows the
predicate failures its caller classifies as "not ready yet".
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

from authflow.errors import ElementNotPresentError, PollTimeoutError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

RetryClassifier = Callable[[BaseException], bool]
Retryable = type[BaseException] | tuple[type[BaseException], ...] | RetryClassifier


def is_not_present(error: BaseException) -> bool:
    """Default classifier: only a missing element is a retryable failure."""
    return isinstance(error, ElementNotPresentError)


def _as_classifier(retry_if: Retryable | None) -> RetryClassifier:
    if retry_if is None:
        return is_not_present
    if isinstance(retry_if, type) or isinstance(retry_if, tuple):
        exc_types = retry_if
        return lambda error: isinstance(error, exc_types)
    return retry_if


async def wait_until(
    predicate: Callable[[], T | Awaitable[T]],
    timeout_ms: int,
    interval_ms: int,
    *,
    retry_if: Retryable | None = None,
    description: str | None = None,
) -> T:
    """
    Evaluate predicate until it returns a truthy value or the timeout elapses.

    Args:
        predicate: Sync or async callable; its first truthy result is returned
        timeout_ms: Total time budget in milliseconds
        interval_ms: Pause between attempts in milliseconds
        retry_if: Exception type(s) or classifier selecting which predicate
            failures mean "not ready yet". Defaults to ElementNotPresentError.
        description: What is being waited for (used in errors and logs)

    Returns:
        The first truthy predicate result

    Each evaluation runs under the remaining budget, so a predicate that
    stalls (a hung evaluate, a slow HTTP call) is cancelled at the deadline
    and counts as the final not-ready attempt.

    Raises:
        PollTimeoutError: If the predicate never held within timeout_ms
        Exception: Any predicate failure the classifier does not retry
    """
    if timeout_ms < 0:
        raise ValueError(f"timeout_ms must be >= 0, got {timeout_ms}")
    if interval_ms <= 0:
        raise ValueError(f"interval_ms must be > 0, got {interval_ms}")

    classify = _as_classifier(retry_if)
    start = time.monotonic()
    deadline = start + timeout_ms / 1000.0
    attempts = 0
    last_result: Any = None
    last_error: BaseException | None = None

    overran = False
    while True:
        attempts += 1
        # A stalled attempt is cut off at the deadline
        budget = asyncio.timeout(max(deadline - time.monotonic(), 0))
        try:
            async with budget:
                result = predicate()
                if inspect.isawaitable(result):
                    result = await result
        except Exception as e:
            if isinstance(e, TimeoutError) and budget.expired():
                overran = True
                break
            if not classify(e):
                raise
            last_result = None
            last_error = e
        else:
            if result:
                return result
            last_result = result
            last_error = None

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        await asyncio.sleep(min(interval_ms / 1000.0, remaining))

    elapsed_ms = int((time.monotonic() - start) * 1000)
    logger.debug(
        "Wait timed out",
        description=description,
        attempts=attempts,
        elapsed_ms=elapsed_ms,
        overran=overran,
        last_error=str(last_error) if last_error else None,
    )
    raise PollTimeoutError(
        elapsed_ms,
        last_result=last_result,
        description=description,
        last_error=last_error,
    )
