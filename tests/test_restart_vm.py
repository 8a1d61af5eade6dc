"""Tests for the restart chain's steps and helpers."""

from __future__ import annotations

from uuid import uuid4

import pytest

from ops_assistant.core.context import StepContext
from ops_assistant.core.outcome import Completed, Suspended
from ops_assistant.workflows.restart_vm import (
    RESTART_VM_CHAIN,
    RestartVmInput,
    RestartVmStep,
    ReviewVmInput,
    ReviewVmStep,
    create_restart_vm_chain,
    describe_restart_result,
)
from tests.helpers import FakeDirectory

TRIGGER_DATA = {"vm_id": "abc", "vm_label": "web-1"}


def _context(step_name: str, input_data) -> StepContext:
    return StepContext(
        run_id=uuid4(),
        chain_name=RESTART_VM_CHAIN,
        step_name=step_name,
        trigger_data=TRIGGER_DATA,
        input_data=input_data,
    )


@pytest.mark.unit
@pytest.mark.asyncio
class TestReviewVmStep:
    """Tests for ReviewVmStep."""

    async def test_suspends_without_approval(self) -> None:
        outcome = await ReviewVmStep().execute(_context("review-vm", ReviewVmInput()))

        assert isinstance(outcome, Suspended)
        assert outcome.payload["vm_id"] == "abc"
        assert "web-1 (ID: abc)" in outcome.payload["message"]

    async def test_suspends_on_empty_approval(self) -> None:
        outcome = await ReviewVmStep().execute(_context("review-vm", ReviewVmInput(approved_vm_id="")))

        assert isinstance(outcome, Suspended)

    async def test_completes_with_approval(self) -> None:
        outcome = await ReviewVmStep().execute(_context("review-vm", ReviewVmInput(approved_vm_id="abc")))

        assert isinstance(outcome, Completed)
        assert outcome.output.model_dump() == {"final_vm_id": "abc"}  # type: ignore[union-attr]


@pytest.mark.unit
@pytest.mark.asyncio
class TestRestartVmStep:
    """Tests for RestartVmStep."""

    async def test_reboots(self) -> None:
        directory = FakeDirectory()

        outcome = await RestartVmStep(directory).execute(_context("restart-vm", RestartVmInput(vm_id="abc")))

        assert isinstance(outcome, Completed)
        assert outcome.output.model_dump() == {"restarted": True}  # type: ignore[union-attr]
        assert directory.reboots == ["abc"]

    async def test_reboot_failure_is_reported(self) -> None:
        directory = FakeDirectory()
        directory.failing_reboots.add("abc")

        outcome = await RestartVmStep(directory).execute(_context("restart-vm", RestartVmInput(vm_id="abc")))

        assert isinstance(outcome, Completed)
        assert outcome.output.model_dump() == {"restarted": False}  # type: ignore[union-attr]

    async def test_empty_vm_id(self) -> None:
        directory = FakeDirectory()

        with pytest.raises(ValueError, match="No VM ID"):
            await RestartVmStep(directory).execute(_context("restart-vm", RestartVmInput(vm_id="")))

        assert directory.reboots == []


@pytest.mark.unit
class TestRestartVmChain:
    """Tests for the chain definition."""

    def test_chain_shape(self) -> None:
        chain = create_restart_vm_chain(FakeDirectory())

        assert chain.name == RESTART_VM_CHAIN
        assert chain.step_names == ["review-vm", "restart-vm"]
        assert chain.validate() == []

    @pytest.mark.parametrize(
        ("vm_id", "result", "expected"),
        [
            ("abc", {"restarted": True}, {"message": "VM with ID abc restarted successfully.", "restarted": True}),
            ("abc", {"restarted": False}, {"message": "Failed to restart VM with ID abc.", "restarted": False}),
            ("abc", None, {"message": "Failed to restart VM with ID abc.", "restarted": False}),
            ("", {"restarted": True}, {"message": "VM with ID (blank) restarted successfully.", "restarted": True}),
        ],
    )
    def test_describe_restart_result(self, vm_id: str, result: dict | None, expected: dict) -> None:
        assert describe_restart_result(vm_id, result) == expected
