"""Repository implementations for run persistence.

This module provides the async repository for the ``workflow_runs`` table using
advanced-alchemy's repository pattern.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from sqlalchemy import delete, update

from ops_assistant.core.types import RunStatus
from ops_assistant.db.models import WorkflowRunModel

if TYPE_CHECKING:
    from uuid import UUID

__all__ = ["WorkflowRunRepository"]


class WorkflowRunRepository(SQLAlchemyAsyncRepository[WorkflowRunModel]):
    """Repository for workflow run CRUD operations.

    Besides the generic CRUD methods it provides the compare-and-swap used to
    resume a suspended run.
    """

    model_type = WorkflowRunModel

    async def claim_suspended(self, run_id: UUID, step_name: str) -> bool:
        """Atomically move a run suspended at ``step_name`` to RUNNING.

        The status check and the write happen in one UPDATE statement, so of
        two concurrent claims at most one matches a row.

        Args:
            run_id: The run ID.
            step_name: The step the run must be suspended at.

        Returns:
            True if this call won the claim.
        """
        stmt = (
            update(WorkflowRunModel)
            .where(
                WorkflowRunModel.id == run_id,
                WorkflowRunModel.status == RunStatus.SUSPENDED,
                WorkflowRunModel.suspended_step == step_name,
            )
            .values(status=RunStatus.RUNNING, touched_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def delete_untouched_since(self, cutoff: datetime) -> int:
        """Delete runs whose last transition is older than ``cutoff``.

        Args:
            cutoff: Oldest ``touched_at`` to keep.

        Returns:
            Number of deleted runs.
        """
        stmt = delete(WorkflowRunModel).where(WorkflowRunModel.touched_at < cutoff)
        result = await self.session.execute(stmt)
        return result.rowcount or 0
