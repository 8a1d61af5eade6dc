"""SQLAlchemy models for workflow run persistence.

This module defines the single table the durable run store needs:
- WorkflowRunModel: one row per run, holding its full state
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from advanced_alchemy.base import UUIDAuditBase
from advanced_alchemy.types import DateTimeUTC
from sqlalchemy import JSON, Enum, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from ops_assistant.core.types import RunStatus

__all__ = ["WorkflowRunModel"]


# Cross-database JSON type: uses JSONB for PostgreSQL, JSON for others (SQLite, MySQL, etc.)
JSONType = JSON().with_variant(JSONB, "postgresql")


class WorkflowRunModel(UUIDAuditBase):
    """Persisted workflow run.

    Stores everything needed to resume a suspended run from a different request
    than the one that started it, including after a process restart.

    Attributes:
        chain_name: Name of the chain definition.
        chain_version: Version of the chain definition.
        status: Current execution status.
        current_step_index: Position of the next (or suspended) step.
        trigger_data: Data the run was created with.
        context_data: Trigger data and recorded step outputs.
        suspended_step: Step the run is suspended at.
        suspend_payload: Payload of the outstanding suspension.
        resume_data: Resume data keyed by step name.
        output: Output of the last step, once completed.
        error: Error message if the run failed.
        step_history: Serialized step execution records.
        started_at: Timestamp when the run was created.
        completed_at: Timestamp when the run reached a terminal status.
        touched_at: Timestamp of the last transition; drives retention.
    """

    __tablename__ = "workflow_runs"
    __table_args__ = (
        Index("ix_workflow_runs_status", "status"),
        Index("ix_workflow_runs_chain_name", "chain_name"),
        Index("ix_workflow_runs_touched_at", "touched_at"),
    )

    chain_name: Mapped[str] = mapped_column(String(255))
    chain_version: Mapped[str] = mapped_column(String(50))
    status: Mapped[RunStatus] = mapped_column(
        Enum(RunStatus, native_enum=False, length=50),
        default=RunStatus.RUNNING,
    )
    current_step_index: Mapped[int] = mapped_column(Integer, default=0)
    trigger_data: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    context_data: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    suspended_step: Mapped[str | None] = mapped_column(String(255), nullable=True)
    suspend_payload: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    resume_data: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    output: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    step_history: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    started_at: Mapped[datetime] = mapped_column(DateTimeUTC(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    touched_at: Mapped[datetime] = mapped_column(DateTimeUTC(timezone=True))
