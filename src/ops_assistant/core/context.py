"""Step execution context.

This module provides the StepContext dataclass handed to every step, and the
StepExecution record the engine keeps for each step it ran.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel

__all__ = ["StepContext", "StepExecution"]

InputT = TypeVar("InputT", bound=BaseModel)


@dataclass
class StepExecution:
    """Record of a single step execution within a run.

    Attributes:
        step_name: Name of the executed step.
        status: Final status of the step execution.
        started_at: Timestamp when step execution began.
        completed_at: Timestamp when step execution finished.
        input_data: Validated input passed to the step.
        output_data: Output recorded for the step, if it completed.
        error: Error message if execution failed.
    """

    step_name: str
    status: str
    started_at: datetime
    completed_at: datetime | None = None
    input_data: dict[str, Any] | None = None
    output_data: dict[str, Any] | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize the record to JSON-compatible primitives."""
        return {
            "step_name": self.step_name,
            "status": str(self.status),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "input_data": self.input_data,
            "output_data": self.output_data,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StepExecution:
        """Rebuild a record produced by :meth:`to_dict`."""
        completed_at = data.get("completed_at")
        return cls(
            step_name=data["step_name"],
            status=data["status"],
            started_at=datetime.fromisoformat(data["started_at"]),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
            input_data=data.get("input_data"),
            output_data=data.get("output_data"),
            error=data.get("error"),
        )


@dataclass
class StepContext(Generic[InputT]):
    """Everything a step can see while it executes.

    The context is built fresh by the engine for each execution. Steps read from
    it and report back through the outcome they return; they never write to it.

    Attributes:
        run_id: Identifier of the run being executed.
        chain_name: Name of the chain the run belongs to.
        step_name: Name of the step being executed.
        trigger_data: The data supplied when the run was created.
        input_data: The step's validated input: values projected through the
            chain's bindings, merged with any data supplied on resume.
        step_outputs: Outputs recorded so far, keyed by step name.

    Example:
        >>> async def execute(self, context: StepContext[ReviewVmInput]) -> Outcome:
        ...     if context.input_data.approved_vm_id is None:
        ...         return Suspended({"message": "Please confirm"})
        ...     return Completed({"final_vm_id": context.input_data.approved_vm_id})
    """

    run_id: UUID
    chain_name: str
    step_name: str
    trigger_data: dict[str, Any]
    input_data: InputT
    step_outputs: dict[str, dict[str, Any]] = field(default_factory=dict)
