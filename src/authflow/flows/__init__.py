"""
End-to-end user journeys.

Flows compose page objects into named, recorded steps with a terminal
completed/failed state.
"""

from authflow.flows.login import (
    JETPACK_SSO,
    PASSWORDLESS,
    FlowBranch,
    FlowContext,
    LoginFlow,
    select_branch,
)
from authflow.flows.logout import LogoutFlow
from authflow.flows.steps import (
    FlowResult,
    FlowRun,
    FlowState,
    FlowStepResult,
    StepStatus,
)

__all__ = [
    "JETPACK_SSO",
    "PASSWORDLESS",
    "FlowBranch",
    "FlowContext",
    "FlowResult",
    "FlowRun",
    "FlowState",
    "FlowStepResult",
    "LoginFlow",
    "LogoutFlow",
    "StepStatus",
    "select_branch",
]
