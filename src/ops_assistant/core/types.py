"""Core type definitions for ops-assistant workflows.

This module defines the enums and type aliases shared by the workflow engine,
the run stores and the web layer.
"""

from __future__ import annotations

from enum import StrEnum, auto
from typing import Any, TypeAlias

__all__ = [
    "Context",
    "RunStatus",
    "StepStatus",
]


class RunStatus(StrEnum):
    """Overall status of a workflow run.

    Attributes:
        RUNNING: The run is advancing through its steps.
        SUSPENDED: A step asked for external input; the run waits for a resume.
        COMPLETED: Every step completed. Terminal.
        FAILED: A step raised or broke its contract. Terminal.
    """

    RUNNING = auto()
    SUSPENDED = auto()
    COMPLETED = auto()
    FAILED = auto()

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is allowed from this status."""
        return self in (RunStatus.COMPLETED, RunStatus.FAILED)


class StepStatus(StrEnum):
    """Result of a single step execution, as recorded in the run history.

    Attributes:
        SUCCEEDED: The step returned ``Completed``.
        SUSPENDED: The step returned ``Suspended``.
        FAILED: The step raised or returned data outside its contract.
    """

    SUCCEEDED = auto()
    SUSPENDED = auto()
    FAILED = auto()


# Type aliases for workflow data
Context: TypeAlias = dict[str, Any]
"""Type alias for run context data: step name to recorded output."""
