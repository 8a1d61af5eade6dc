"""Core domain module for ops-assistant workflows.

This module exports the fundamental building blocks for chain definitions:
types, outcomes, step context, definitions and run models.
"""

from __future__ import annotations

from ops_assistant.core.context import StepContext, StepExecution
from ops_assistant.core.definition import TRIGGER, Binding, ChainDefinition
from ops_assistant.core.models import RunResult, RunState
from ops_assistant.core.outcome import Completed, Outcome, Suspended
from ops_assistant.core.types import Context, RunStatus, StepStatus

__all__ = [
    "TRIGGER",
    "Binding",
    "ChainDefinition",
    "Completed",
    "Context",
    "Outcome",
    "RunResult",
    "RunState",
    "RunStatus",
    "StepContext",
    "StepExecution",
    "StepStatus",
    "Suspended",
]
