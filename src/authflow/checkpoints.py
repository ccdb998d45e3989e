"""
Visual checkpoint sink interface.

Flows call checkpoint() at fixed points; how the visual diff is computed is
up to the sink. NullCheckpointSink is used when visual diffing is off.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import structlog

logger = structlog.get_logger(__name__)


@runtime_checkable
class CheckpointSink(Protocol):
    async def open(self, session_id: str, environment_name: str, test_name: str) -> None: ...

    async def checkpoint(self, name: str) -> None: ...

    async def close(self) -> None: ...


class NullCheckpointSink:
    """Records nothing; logs checkpoint names at debug level."""

    async def open(self, session_id: str, environment_name: str, test_name: str) -> None:
        logger.debug("Visual diff disabled", session_id=session_id, test=test_name)

    async def checkpoint(self, name: str) -> None:
        logger.debug("Checkpoint skipped", checkpoint=name)

    async def close(self) -> None:
        return None
