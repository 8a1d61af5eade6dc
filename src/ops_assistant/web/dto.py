"""Data Transfer Objects for the assistant's web API.

This module defines DTOs for serializing chains and runs in REST API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from ops_assistant.core.definition import ChainDefinition
    from ops_assistant.core.models import RunState

__all__ = ["ChainDTO", "RunStateDTO", "StepExecutionDTO"]


@dataclass
class ChainDTO:
    """DTO for chain definition metadata.

    Attributes:
        name: Chain name.
        version: Chain version.
        description: Human-readable description.
        steps: Step names in execution order.
    """

    name: str
    version: str
    description: str
    steps: list[str]

    @classmethod
    def from_definition(cls, definition: ChainDefinition) -> ChainDTO:
        return cls(
            name=definition.name,
            version=definition.version,
            description=definition.description,
            steps=definition.step_names,
        )


@dataclass
class StepExecutionDTO:
    """DTO for step execution record.

    Attributes:
        step_name: Name of the executed step.
        status: Execution status (succeeded, suspended, failed).
        started_at: When execution started.
        completed_at: When execution completed.
        error: Error message if execution failed.
    """

    step_name: str
    status: str
    started_at: datetime
    completed_at: datetime | None = None
    error: str | None = None


@dataclass
class RunStateDTO:
    """DTO for a workflow run.

    Attributes:
        id: Run ID.
        chain_name: Name of the chain.
        chain_version: Version of the chain.
        status: Current execution status.
        suspended_step: Step the run waits at, if suspended.
        suspend_payload: What the suspended step asks to confirm.
        output: Final output, once completed.
        error: Error message, once failed.
        steps: Outputs recorded so far, keyed by step name.
        history: Step execution records.
        started_at: When the run was created.
        updated_at: When the run last changed.
        completed_at: When the run finished.
    """

    id: UUID
    chain_name: str
    chain_version: str
    status: str
    suspended_step: str | None
    suspend_payload: dict[str, Any] | None
    output: dict[str, Any] | None
    error: str | None
    steps: dict[str, Any]
    history: list[StepExecutionDTO]
    started_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_run(cls, run: RunState) -> RunStateDTO:
        return cls(
            id=run.id,
            chain_name=run.chain_name,
            chain_version=run.chain_version,
            status=str(run.status),
            suspended_step=run.suspended_step,
            suspend_payload=run.suspend_payload,
            output=run.output,
            error=run.error,
            steps=run.step_outputs,
            history=[
                StepExecutionDTO(
                    step_name=execution.step_name,
                    status=str(execution.status),
                    started_at=execution.started_at,
                    completed_at=execution.completed_at,
                    error=execution.error,
                )
                for execution in run.step_history
            ],
            started_at=run.started_at,
            updated_at=run.updated_at,
            completed_at=run.completed_at,
        )
