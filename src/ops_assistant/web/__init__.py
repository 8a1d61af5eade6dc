"""Web API for the assistant."""

from __future__ import annotations

from ops_assistant.web.controllers import (
    SlackEventsController,
    WorkflowChainController,
    WorkflowRunController,
    health_check,
)
from ops_assistant.web.dto import ChainDTO, RunStateDTO, StepExecutionDTO

__all__ = [
    "ChainDTO",
    "RunStateDTO",
    "SlackEventsController",
    "StepExecutionDTO",
    "WorkflowChainController",
    "WorkflowRunController",
    "health_check",
]
