"""Run state stores.

The store is the only state shared between the independent tasks that start and
resume runs. It owns the retention policy: a run not touched for longer than the
retention period is evicted, and looking it up reports it as not found.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ops_assistant.core.types import RunStatus
from ops_assistant.exceptions import InvalidResumeTargetError, RunNotFoundError

if TYPE_CHECKING:
    from uuid import UUID

    from ops_assistant.core.models import RunState

__all__ = ["DEFAULT_RETENTION", "InMemoryRunStore", "RunStore"]

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(hours=24)
"""How long a run is kept after its last transition."""


@runtime_checkable
class RunStore(Protocol):
    """Protocol for keyed run storage.

    Implementations must make :meth:`claim` atomic: of two concurrent claims on
    the same suspended run exactly one succeeds.
    """

    async def save(self, run: RunState) -> None:
        """Insert or update a run."""
        ...

    async def get(self, run_id: UUID) -> RunState:
        """Return a run.

        Raises:
            RunNotFoundError: If the run is unknown or has expired.
        """
        ...

    async def claim(self, run_id: UUID, step_name: str) -> RunState:
        """Move a run suspended at ``step_name`` back to running.

        Raises:
            RunNotFoundError: If the run is unknown or has expired.
            InvalidResumeTargetError: If the run is not suspended at that step.
        """
        ...

    async def delete(self, run_id: UUID) -> None:
        """Forget a run. Unknown ids are ignored."""
        ...

    async def purge_expired(self) -> int:
        """Evict every expired run and return how many were removed."""
        ...


class InMemoryRunStore:
    """Process-local run store.

    Runs live in a dict for the lifetime of the process, so a restart forgets
    every suspended run and the matching approval buttons stop working.

    Attributes:
        retention: How long a run is kept after its last transition.
    """

    def __init__(self, retention: timedelta = DEFAULT_RETENTION) -> None:
        """Initialize the store.

        Args:
            retention: How long a run is kept after its last transition.
        """
        self.retention = retention
        self._runs: dict[UUID, RunState] = {}
        self._lock = asyncio.Lock()

    def _is_expired(self, run: RunState, now: datetime) -> bool:
        return run.updated_at + self.retention < now

    def _lookup(self, run_id: UUID) -> RunState:
        run = self._runs.get(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        if self._is_expired(run, datetime.now(timezone.utc)):
            del self._runs[run_id]
            logger.info("Evicted expired run %s", run_id)
            raise RunNotFoundError(run_id)
        return run

    async def save(self, run: RunState) -> None:
        async with self._lock:
            self._runs[run.id] = run

    async def get(self, run_id: UUID) -> RunState:
        async with self._lock:
            return self._lookup(run_id)

    async def claim(self, run_id: UUID, step_name: str) -> RunState:
        async with self._lock:
            run = self._lookup(run_id)
            if run.status != RunStatus.SUSPENDED:
                raise InvalidResumeTargetError(run_id, step_name, run.status, "run is not suspended")
            if run.suspended_step != step_name:
                raise InvalidResumeTargetError(
                    run_id, step_name, run.status, f"run is suspended at '{run.suspended_step}'"
                )
            run.status = RunStatus.RUNNING
            run.touch()
            return run

    async def delete(self, run_id: UUID) -> None:
        async with self._lock:
            self._runs.pop(run_id, None)

    async def purge_expired(self) -> int:
        now = datetime.now(timezone.utc)
        async with self._lock:
            expired = [run_id for run_id, run in self._runs.items() if self._is_expired(run, now)]
            for run_id in expired:
                del self._runs[run_id]
        if expired:
            logger.info("Purged %d expired runs", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._runs)
