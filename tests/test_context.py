"""Tests for run state, step context and execution records."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from ops_assistant.core.context import StepContext, StepExecution
from ops_assistant.core.models import RunResult, RunState
from ops_assistant.core.types import RunStatus, StepStatus
from ops_assistant.steps.base import NoData


@pytest.mark.unit
class TestStepExecution:
    """Tests for StepExecution."""

    def test_from_dict_restores_record(self) -> None:
        started = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        record = StepExecution(
            step_name="review-vm",
            status=StepStatus.SUSPENDED,
            started_at=started,
            input_data={"approved_vm_id": None},
        )

        data = record.to_dict()
        restored = StepExecution.from_dict(data)

        assert data["status"] == "suspended"
        assert data["started_at"] == "2024-01-01T12:00:00+00:00"
        assert data["completed_at"] is None
        assert restored == record


@pytest.mark.unit
class TestStepContext:
    """Tests for StepContext."""

    def test_defaults(self) -> None:
        context = StepContext(
            run_id=uuid4(),
            chain_name="restart-vm-workflow",
            step_name="review-vm",
            trigger_data={"vm_id": "abc"},
            input_data=NoData(),
        )

        assert context.step_outputs == {}
        assert context.input_data == NoData()


@pytest.mark.unit
class TestRunState:
    """Tests for RunState."""

    def test_trigger_data_seeds_context(self) -> None:
        run = RunState(id=uuid4(), chain_name="c", chain_version="1.0.0", trigger_data={"vm_id": "abc"})

        assert run.context == {"trigger": {"vm_id": "abc"}}
        assert run.step_outputs == {}
        assert not run.is_terminal

    def test_step_outputs_exclude_trigger(self) -> None:
        run = RunState(id=uuid4(), chain_name="c", chain_version="1.0.0", trigger_data={})
        run.context["review-vm"] = {"final_vm_id": "abc"}

        assert run.step_outputs == {"review-vm": {"final_vm_id": "abc"}}

    def test_touch(self) -> None:
        run = RunState(id=uuid4(), chain_name="c", chain_version="1.0.0", trigger_data={})
        before = run.updated_at

        run.touch()

        assert run.updated_at >= before


@pytest.mark.unit
class TestRunResult:
    """Tests for RunResult."""

    def test_to_dict(self) -> None:
        run = RunState(
            id=uuid4(),
            chain_name="restart-vm-workflow",
            chain_version="1.0.0",
            trigger_data={"vm_id": "abc"},
            status=RunStatus.COMPLETED,
            output={"restarted": True},
        )
        run.context["restart-vm"] = {"restarted": True}

        data = RunResult.from_run(run).to_dict()

        assert data == {
            "run_id": str(run.id),
            "workflow": "restart-vm-workflow",
            "status": "completed",
            "suspended_step": None,
            "suspend_payload": None,
            "output": {"restarted": True},
            "steps": {"restart-vm": {"restarted": True}},
        }

    def test_snapshot_is_independent(self) -> None:
        run = RunState(id=uuid4(), chain_name="c", chain_version="1.0.0", trigger_data={}, output={"a": 1})

        result = RunResult.from_run(run)
        run.output["a"] = 2  # type: ignore[index]

        assert result.output == {"a": 1}
