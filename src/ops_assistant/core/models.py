"""Concrete data models for workflow runs.

This module provides the dataclasses the engine owns for the lifetime of a run,
and the result it hands back to callers after each start or resume.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from ops_assistant.core.context import StepExecution
from ops_assistant.core.definition import TRIGGER
from ops_assistant.core.types import RunStatus

__all__ = ["RunResult", "RunState"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RunState:
    """State of one execution of a chain.

    Attributes:
        id: Unique identifier for this run.
        chain_name: Name of the chain definition.
        chain_version: Version of the chain definition.
        trigger_data: Validated data supplied when the run was created.
        current_step_index: Position of the step to execute next (or the
            suspended step).
        context: Trigger data under ``"trigger"`` and each completed step's output
            under its step name.
        status: Current execution status.
        suspended_step: Name of the step the run is suspended at.
        suspend_payload: Payload of the outstanding suspension.
        resume_data: Data supplied on resume, keyed by the step it was given to.
        output: Output of the last step, once completed.
        error: Error message if the run failed.
        step_history: Chronological record of step executions.
        started_at: Timestamp when the run was created.
        updated_at: Timestamp of the last transition.
        completed_at: Timestamp when the run reached a terminal status.
    """

    id: UUID
    chain_name: str
    chain_version: str
    trigger_data: dict[str, Any]
    status: RunStatus = RunStatus.RUNNING
    current_step_index: int = 0
    context: dict[str, Any] = field(default_factory=dict)
    suspended_step: str | None = None
    suspend_payload: dict[str, Any] | None = None
    resume_data: dict[str, dict[str, Any]] = field(default_factory=dict)
    output: dict[str, Any] | None = None
    error: str | None = None
    step_history: list[StepExecution] = field(default_factory=list)
    started_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        self.context.setdefault(TRIGGER, self.trigger_data)

    @property
    def is_terminal(self) -> bool:
        """Whether the run has completed or failed."""
        return self.status.is_terminal

    @property
    def step_outputs(self) -> dict[str, dict[str, Any]]:
        """Recorded outputs keyed by step name, without the trigger data."""
        return {name: value for name, value in self.context.items() if name != TRIGGER}

    def touch(self) -> None:
        """Record that the run changed now."""
        self.updated_at = _utcnow()


@dataclass
class RunResult:
    """What a start or resume call produced.

    Attributes:
        run_id: Identifier of the run.
        chain_name: Name of the chain.
        status: Status the run ended the call in.
        suspended_step: Step the run is suspended at, if any.
        suspend_payload: Payload of that suspension.
        output: Output of the final step, once completed.
        steps: Outputs recorded so far, keyed by step name.
    """

    run_id: UUID
    chain_name: str
    status: RunStatus
    suspended_step: str | None = None
    suspend_payload: dict[str, Any] | None = None
    output: dict[str, Any] | None = None
    steps: dict[str, dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_run(cls, run: RunState) -> RunResult:
        """Snapshot a run state."""
        return cls(
            run_id=run.id,
            chain_name=run.chain_name,
            status=run.status,
            suspended_step=run.suspended_step,
            suspend_payload=dict(run.suspend_payload) if run.suspend_payload else None,
            output=dict(run.output) if run.output is not None else None,
            steps={name: dict(value) for name, value in run.step_outputs.items()},
        )

    @property
    def is_suspended(self) -> bool:
        """Whether the run is waiting for a resume."""
        return self.status == RunStatus.SUSPENDED

    def to_dict(self) -> dict[str, Any]:
        """Serialize the result to JSON-compatible primitives."""
        return {
            "run_id": str(self.run_id),
            "workflow": self.chain_name,
            "status": str(self.status),
            "suspended_step": self.suspended_step,
            "suspend_payload": self.suspend_payload,
            "output": self.output,
            "steps": self.steps,
        }
