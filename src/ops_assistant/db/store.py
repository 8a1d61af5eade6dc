"""Durable run store backed by SQLAlchemy.

Suspended runs survive a process restart, so approval buttons posted before a
deploy still work afterwards.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from ops_assistant.core.context import StepExecution
from ops_assistant.core.models import RunState
from ops_assistant.core.types import RunStatus
from ops_assistant.db.models import WorkflowRunModel
from ops_assistant.db.repositories import WorkflowRunRepository
from ops_assistant.engine.store import DEFAULT_RETENTION
from ops_assistant.exceptions import InvalidResumeTargetError, RunNotFoundError

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

__all__ = ["SQLAlchemyRunStore"]

logger = logging.getLogger(__name__)


class SQLAlchemyRunStore:
    """Run store persisting runs to the ``workflow_runs`` table.

    Every call opens its own session, so the store can be shared by all the
    tasks serving Slack events. Claims use a conditional UPDATE and stay atomic
    across processes sharing the database.

    Attributes:
        retention: How long a run is kept after its last transition.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        retention: timedelta = DEFAULT_RETENTION,
    ) -> None:
        """Initialize the store.

        Args:
            session_maker: Factory for async sessions bound to the database.
            retention: How long a run is kept after its last transition.
        """
        self._session_maker = session_maker
        self.retention = retention

    async def save(self, run: RunState) -> None:
        async with self._session_maker() as session:
            repo = WorkflowRunRepository(session=session)
            model = await repo.get_one_or_none(id=run.id)
            if model is None:
                await repo.add(self._to_model(run, WorkflowRunModel(id=run.id)), auto_commit=True)
            else:
                await repo.update(self._to_model(run, model), auto_commit=True)

    async def get(self, run_id: UUID) -> RunState:
        async with self._session_maker() as session:
            repo = WorkflowRunRepository(session=session)
            model = await self._lookup(repo, run_id)
            return self._to_run(model)

    async def claim(self, run_id: UUID, step_name: str) -> RunState:
        async with self._session_maker() as session:
            repo = WorkflowRunRepository(session=session)
            model = await self._lookup(repo, run_id)
            run = self._to_run(model)

            claimed = await repo.claim_suspended(run_id, step_name)
            await session.commit()

        if not claimed:
            if run.status == RunStatus.SUSPENDED and run.suspended_step != step_name:
                reason = f"run is suspended at '{run.suspended_step}'"
            elif run.status == RunStatus.SUSPENDED:
                reason = "run was claimed by another resume"
            else:
                reason = "run is not suspended"
            raise InvalidResumeTargetError(run_id, step_name, run.status, reason)

        run.status = RunStatus.RUNNING
        run.touch()
        return run

    async def delete(self, run_id: UUID) -> None:
        async with self._session_maker() as session:
            repo = WorkflowRunRepository(session=session)
            model = await repo.get_one_or_none(id=run_id)
            if model is not None:
                await repo.delete(model.id, auto_commit=True)

    async def purge_expired(self) -> int:
        cutoff = datetime.now(timezone.utc) - self.retention
        async with self._session_maker() as session:
            repo = WorkflowRunRepository(session=session)
            count = await repo.delete_untouched_since(cutoff)
            await session.commit()
        if count:
            logger.info("Purged %d expired runs", count)
        return count

    async def _lookup(self, repo: WorkflowRunRepository, run_id: UUID) -> WorkflowRunModel:
        model = await repo.get_one_or_none(id=run_id)
        if model is None:
            raise RunNotFoundError(run_id)
        if model.touched_at + self.retention < datetime.now(timezone.utc):
            await repo.delete(model.id, auto_commit=True)
            logger.info("Evicted expired run %s", run_id)
            raise RunNotFoundError(run_id)
        return model

    @staticmethod
    def _to_model(run: RunState, model: WorkflowRunModel) -> WorkflowRunModel:
        model.chain_name = run.chain_name
        model.chain_version = run.chain_version
        model.status = run.status
        model.current_step_index = run.current_step_index
        model.trigger_data = dict(run.trigger_data)
        model.context_data = dict(run.context)
        model.suspended_step = run.suspended_step
        model.suspend_payload = dict(run.suspend_payload) if run.suspend_payload is not None else None
        model.resume_data = {name: dict(data) for name, data in run.resume_data.items()}
        model.output = dict(run.output) if run.output is not None else None
        model.error = run.error
        model.step_history = [execution.to_dict() for execution in run.step_history]
        model.started_at = run.started_at
        model.completed_at = run.completed_at
        model.touched_at = run.updated_at
        return model

    @staticmethod
    def _to_run(model: WorkflowRunModel) -> RunState:
        return RunState(
            id=model.id,
            chain_name=model.chain_name,
            chain_version=model.chain_version,
            trigger_data=dict(model.trigger_data or {}),
            status=RunStatus(model.status),
            current_step_index=model.current_step_index,
            context=dict(model.context_data or {}),
            suspended_step=model.suspended_step,
            suspend_payload=dict(model.suspend_payload) if model.suspend_payload is not None else None,
            resume_data={name: dict(data) for name, data in (model.resume_data or {}).items()},
            output=dict(model.output) if model.output is not None else None,
            error=model.error,
            step_history=[StepExecution.from_dict(item) for item in model.step_history or []],
            started_at=model.started_at,
            updated_at=model.touched_at,
            completed_at=model.completed_at,
        )
