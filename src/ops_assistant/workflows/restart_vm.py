"""Approval-gated VM restart chain.

``review-vm`` suspends until an operator approves the restart; ``restart-vm``
then reboots the approved instance.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

from pydantic import BaseModel, Field

from ops_assistant.core.definition import Binding, ChainDefinition
from ops_assistant.core.outcome import Completed, Outcome, Suspended
from ops_assistant.exceptions import RebootFailedError
from ops_assistant.steps.base import BaseStep

if TYPE_CHECKING:
    from ops_assistant.core.context import StepContext

__all__ = [
    "RESTART_VM_CHAIN",
    "RebootTarget",
    "RestartVmInput",
    "RestartVmOutput",
    "RestartVmStep",
    "RestartVmTrigger",
    "ReviewVmInput",
    "ReviewVmOutput",
    "ReviewVmStep",
    "create_restart_vm_chain",
    "describe_restart_result",
]

logger = logging.getLogger(__name__)

RESTART_VM_CHAIN = "restart-vm-workflow"


class RebootTarget(Protocol):
    """Anything that can reboot an instance by ID."""

    async def reboot(self, instance_id: str) -> None: ...


class RestartVmTrigger(BaseModel):
    vm_id: str = Field(..., description="Virtual machine ID")
    vm_label: str = Field(..., description="Virtual machine label")


class ReviewVmInput(BaseModel):
    approved_vm_id: str | None = Field(None, description="VM ID confirmed by the approver")


class ReviewVmOutput(BaseModel):
    final_vm_id: str


class RestartVmInput(BaseModel):
    vm_id: str


class RestartVmOutput(BaseModel):
    restarted: bool


class ReviewVmStep(BaseStep):
    """Ask an operator to confirm the restart before anything happens."""

    name = "review-vm"
    description = "Wait for an operator to approve the restart"
    input_model: ClassVar[type[BaseModel]] = ReviewVmInput
    output_model: ClassVar[type[BaseModel]] = ReviewVmOutput

    async def execute(self, context: StepContext[ReviewVmInput]) -> Outcome:
        approved_vm_id = context.input_data.approved_vm_id
        if not approved_vm_id:
            vm_id = context.trigger_data["vm_id"]
            vm_label = context.trigger_data["vm_label"]
            return Suspended(
                {
                    "vm_id": vm_id,
                    "message": (
                        f"Please confirm if you want to restart the VM with the label: {vm_label} (ID: {vm_id})."
                    ),
                }
            )

        return Completed(ReviewVmOutput(final_vm_id=approved_vm_id))


class RestartVmStep(BaseStep):
    """Reboot the approved instance.

    A rejected reboot is reported as ``restarted=False`` and does not fail the
    run.
    """

    name = "restart-vm"
    description = "Reboot the approved VM"
    input_model: ClassVar[type[BaseModel]] = RestartVmInput
    output_model: ClassVar[type[BaseModel]] = RestartVmOutput

    def __init__(self, directory: RebootTarget) -> None:
        super().__init__()
        self.directory = directory

    async def execute(self, context: StepContext[RestartVmInput]) -> Outcome:
        vm_id = context.input_data.vm_id
        if not vm_id:
            msg = "No VM ID to restart"
            raise ValueError(msg)

        try:
            await self.directory.reboot(vm_id)
        except RebootFailedError:
            logger.exception("Restart of VM %s failed", vm_id)
            return Completed(RestartVmOutput(restarted=False))

        return Completed(RestartVmOutput(restarted=True))


def create_restart_vm_chain(directory: RebootTarget) -> ChainDefinition:
    """Build the restart chain around a reboot-capable client.

    Args:
        directory: Client used by ``restart-vm`` to reboot the instance.

    Returns:
        The ``restart-vm-workflow`` chain definition.
    """
    return ChainDefinition(
        name=RESTART_VM_CHAIN,
        version="1.0.0",
        description="Restart a virtual machine after an operator approves it",
        steps=[ReviewVmStep(), RestartVmStep(directory)],
        bindings={"restart-vm": {"vm_id": Binding(step="review-vm", path="final_vm_id")}},
        trigger_model=RestartVmTrigger,
    )


def describe_restart_result(vm_id: str | None, result: dict[str, Any] | None) -> dict[str, Any]:
    """Summarize a finished restart run for the chat.

    Args:
        vm_id: The VM the run was about.
        result: The run's final output.

    Returns:
        ``{"message": ..., "restarted": ...}``.
    """
    restarted = bool((result or {}).get("restarted", False))
    shown_id = vm_id or "(blank)"
    if restarted:
        message = f"VM with ID {shown_id} restarted successfully."
    else:
        message = f"Failed to restart VM with ID {shown_id}."
    return {"message": message, "restarted": restarted}
