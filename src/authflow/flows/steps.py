"""
State and step bookkeeping shared by flows.

A FlowRun moves initialized -> running -> completed|failed exactly once and
records every named step. When a step fails, its name is attached to the
exception (as a note) and to the result, and the exception propagates
unchanged.
"""

from __future__ import annotations

import contextlib
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class FlowState(StrEnum):
    """Lifecycle of one flow run."""

    INITIALIZED = "initialized"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (FlowState.COMPLETED, FlowState.FAILED)


class StepStatus(StrEnum):
    PASSED = "passed"
    FAILED = "failed"


@dataclass
class FlowStepResult:
    """Result of a single named step."""

    name: str
    status: StepStatus
    duration_ms: int = 0
    error: str | None = None
    error_type: str | None = None


@dataclass
class FlowResult:
    """Result of a complete flow run."""

    flow_name: str
    state: FlowState
    started_at: datetime
    branch: str | None = None
    finished_at: datetime | None = None
    duration_ms: int = 0
    steps: list[FlowStepResult] = field(default_factory=list)
    failed_step: str | None = None
    error: str | None = None
    error_type: str | None = None
    artifacts: dict[str, Any] = field(default_factory=dict)

    @property
    def passed_steps(self) -> int:
        return sum(1 for s in self.steps if s.status == StepStatus.PASSED)


class FlowRun:
    """Tracks the state machine and step results of one flow run."""

    def __init__(self, flow_name: str, **log_context: Any) -> None:
        self.flow_name = flow_name
        self.state = FlowState.INITIALIZED
        self.result: FlowResult | None = None
        self._log = logger.bind(component="flow", flow=flow_name, **log_context)

    def start(self, branch: str | None = None) -> FlowResult:
        if self.state is not FlowState.INITIALIZED:
            raise RuntimeError(f"{self.flow_name} flow already {self.state}; create a new flow to run again")
        self.state = FlowState.RUNNING
        self.result = FlowResult(
            flow_name=self.flow_name,
            state=self.state,
            started_at=datetime.now(UTC),
            branch=branch,
        )
        self._log.info("Flow started", branch=branch)
        return self.result

    @contextlib.asynccontextmanager
    async def step(self, name: str) -> AsyncIterator[None]:
        """Run the body as a named step, recording its outcome."""
        assert self.result is not None, "step() called before start()"
        self._log.debug("Step started", step=name)
        start = time.monotonic()
        try:
            yield
        except Exception as e:
            duration = int((time.monotonic() - start) * 1000)
            self.result.steps.append(
                FlowStepResult(
                    name=name,
                    status=StepStatus.FAILED,
                    duration_ms=duration,
                    error=str(e),
                    error_type=type(e).__name__,
                )
            )
            self.result.failed_step = name
            e.add_note(f"{self.flow_name} flow failed at step: {name}")
            self._log.error("Step failed", step=name, error_type=type(e).__name__, error=str(e), duration_ms=duration)
            raise
        duration = int((time.monotonic() - start) * 1000)
        self.result.steps.append(FlowStepResult(name=name, status=StepStatus.PASSED, duration_ms=duration))
        self._log.debug("Step passed", step=name, duration_ms=duration)

    def finish(self, error: BaseException | None = None) -> FlowResult:
        assert self.result is not None, "finish() called before start()"
        self.state = FlowState.FAILED if error is not None else FlowState.COMPLETED
        result = self.result
        result.state = self.state
        result.finished_at = datetime.now(UTC)
        result.duration_ms = int((result.finished_at - result.started_at).total_seconds() * 1000)
        if error is not None:
            result.error = str(error)
            result.error_type = type(error).__name__

        self._log.info(
            "Flow finished",
            state=self.state,
            failed_step=result.failed_step,
            error_type=result.error_type,
            steps=len(result.steps),
            duration_ms=result.duration_ms,
        )
        return result
