"""Integration tests for the durable run store.

Tests the SQLAlchemy model, repository and SQLAlchemyRunStore using an async
SQLite in-memory database.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ops_assistant.core.models import RunState
from ops_assistant.core.types import RunStatus, StepStatus
from ops_assistant.db.models import WorkflowRunModel
from ops_assistant.db.repositories import WorkflowRunRepository
from ops_assistant.db.store import SQLAlchemyRunStore
from ops_assistant.engine.local import WorkflowEngine
from ops_assistant.engine.store import RunStore
from ops_assistant.exceptions import InvalidResumeTargetError, RunNotFoundError
from ops_assistant.workflows.restart_vm import RESTART_VM_CHAIN

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine

    from ops_assistant.engine.registry import ChainRegistry
    from tests.helpers import FakeDirectory


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Create an async SQLite in-memory engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(WorkflowRunModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def sql_store(session_maker: async_sessionmaker[AsyncSession]) -> SQLAlchemyRunStore:
    return SQLAlchemyRunStore(session_maker, retention=timedelta(hours=1))


def _suspended_run() -> RunState:
    return RunState(
        id=uuid4(),
        chain_name="approval",
        chain_version="1.0.0",
        trigger_data={"item": "a"},
        status=RunStatus.SUSPENDED,
        current_step_index=1,
        context={"trigger": {"item": "a"}, "fetch": {"value": "A"}},
        suspended_step="confirm",
        suspend_payload={"message": "Apply A?"},
        resume_data={"confirm": {"approved": "false"}},
    )


# =============================================================================
# Store Tests
# =============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestSQLAlchemyRunStore:
    """Tests for SQLAlchemyRunStore."""

    async def test_implements_protocol(self, sql_store: SQLAlchemyRunStore) -> None:
        assert isinstance(sql_store, RunStore)

    async def test_save_and_get(self, sql_store: SQLAlchemyRunStore) -> None:
        """Test a run survives the round trip through the table."""
        run = _suspended_run()

        await sql_store.save(run)
        loaded = await sql_store.get(run.id)

        assert loaded is not run
        assert loaded.id == run.id
        assert loaded.status == RunStatus.SUSPENDED
        assert loaded.context == run.context
        assert loaded.suspended_step == "confirm"
        assert loaded.suspend_payload == {"message": "Apply A?"}
        assert loaded.resume_data == {"confirm": {"approved": "false"}}
        assert loaded.updated_at.tzinfo is not None

    async def test_save_updates_existing_row(self, sql_store: SQLAlchemyRunStore) -> None:
        """Test saving a run twice updates it in place."""
        run = _suspended_run()
        await sql_store.save(run)

        run.status = RunStatus.COMPLETED
        run.suspended_step = None
        run.output = {"applied": "A"}
        await sql_store.save(run)

        loaded = await sql_store.get(run.id)
        assert loaded.status == RunStatus.COMPLETED
        assert loaded.output == {"applied": "A"}

    async def test_get_unknown_run(self, sql_store: SQLAlchemyRunStore) -> None:
        with pytest.raises(RunNotFoundError):
            await sql_store.get(uuid4())

    async def test_expired_run_is_evicted(self, sql_store: SQLAlchemyRunStore) -> None:
        """Test a run past retention is deleted on lookup."""
        run = _suspended_run()
        run.updated_at = datetime.now(timezone.utc) - timedelta(hours=2)
        await sql_store.save(run)

        with pytest.raises(RunNotFoundError):
            await sql_store.get(run.id)
        with pytest.raises(RunNotFoundError):
            await sql_store.claim(run.id, "confirm")

    async def test_claim(self, sql_store: SQLAlchemyRunStore) -> None:
        """Test a claim moves the stored run to RUNNING."""
        run = _suspended_run()
        await sql_store.save(run)

        claimed = await sql_store.claim(run.id, "confirm")

        assert claimed.status == RunStatus.RUNNING
        assert (await sql_store.get(run.id)).status == RunStatus.RUNNING

    async def test_claim_only_once(self, sql_store: SQLAlchemyRunStore) -> None:
        """Test the second of two claims is rejected."""
        run = _suspended_run()
        await sql_store.save(run)
        await sql_store.claim(run.id, "confirm")

        with pytest.raises(InvalidResumeTargetError, match="not suspended"):
            await sql_store.claim(run.id, "confirm")

    async def test_claim_wrong_step(self, sql_store: SQLAlchemyRunStore) -> None:
        run = _suspended_run()
        await sql_store.save(run)

        with pytest.raises(InvalidResumeTargetError, match="suspended at 'confirm'"):
            await sql_store.claim(run.id, "apply")

    async def test_delete(self, sql_store: SQLAlchemyRunStore) -> None:
        run = _suspended_run()
        await sql_store.save(run)

        await sql_store.delete(run.id)
        await sql_store.delete(run.id)

        with pytest.raises(RunNotFoundError):
            await sql_store.get(run.id)

    async def test_purge_expired(self, sql_store: SQLAlchemyRunStore) -> None:
        fresh = _suspended_run()
        stale = _suspended_run()
        stale.updated_at = datetime.now(timezone.utc) - timedelta(days=2)
        await sql_store.save(fresh)
        await sql_store.save(stale)

        assert await sql_store.purge_expired() == 1
        assert (await sql_store.get(fresh.id)).id == fresh.id


# =============================================================================
# Repository Tests
# =============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestWorkflowRunRepository:
    """Tests for WorkflowRunRepository."""

    async def test_claim_suspended_once(
        self, sql_store: SQLAlchemyRunStore, session_maker: async_sessionmaker[AsyncSession]
    ) -> None:
        """Test the conditional update matches a suspended run exactly once."""
        run = _suspended_run()
        await sql_store.save(run)

        async with session_maker() as session:
            repo = WorkflowRunRepository(session=session)
            wrong_step = await repo.claim_suspended(run.id, "fetch")
            first = await repo.claim_suspended(run.id, "confirm")
            second = await repo.claim_suspended(run.id, "confirm")
            await session.commit()

        assert (wrong_step, first, second) == (False, True, False)
        assert (await sql_store.get(run.id)).status == RunStatus.RUNNING

    async def test_delete_untouched_since(
        self, sql_store: SQLAlchemyRunStore, session_maker: async_sessionmaker[AsyncSession]
    ) -> None:
        """Test only runs older than the cutoff are deleted."""
        run = _suspended_run()
        await sql_store.save(run)

        async with session_maker() as session:
            repo = WorkflowRunRepository(session=session)
            kept = await repo.delete_untouched_since(datetime.now(timezone.utc) - timedelta(hours=1))
            deleted = await repo.delete_untouched_since(datetime.now(timezone.utc) + timedelta(hours=1))
            await session.commit()

        assert (kept, deleted) == (0, 1)


# =============================================================================
# Engine Integration Tests
# =============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestEngineWithSQLStore:
    """Tests for the engine running on the durable store."""

    async def test_restart_survives_new_engine(
        self,
        chain_registry: ChainRegistry,
        sql_store: SQLAlchemyRunStore,
        fake_directory: FakeDirectory,
    ) -> None:
        """Test a run suspended by one engine is resumed by another."""
        first = WorkflowEngine(chain_registry, sql_store)
        run = await first.create_run(RESTART_VM_CHAIN, {"vm_id": "abc", "vm_label": "web-1"})
        await first.start(run)

        second = WorkflowEngine(chain_registry, sql_store)
        result = await second.resume(run.id, "review-vm", {"approved_vm_id": "abc"})

        assert result.status == RunStatus.COMPLETED
        assert result.output == {"restarted": True}
        assert fake_directory.reboots == ["abc"]

        stored = await sql_store.get(run.id)
        assert [entry.status for entry in stored.step_history] == [
            StepStatus.SUSPENDED,
            StepStatus.SUCCEEDED,
            StepStatus.SUCCEEDED,
        ]

    async def test_replayed_resume_is_rejected(
        self, chain_registry: ChainRegistry, sql_store: SQLAlchemyRunStore
    ) -> None:
        engine = WorkflowEngine(chain_registry, sql_store)
        run = await engine.create_run("approval", {"item": "a"})
        await engine.start(run)
        await engine.resume(run.id, "confirm", {"approved": True})

        with pytest.raises(InvalidResumeTargetError):
            await engine.resume(run.id, "confirm", {"approved": True})
