"""Tools the ops agent can call."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic_ai import RunContext

from ops_assistant.exceptions import ChainNotFoundError
from ops_assistant.workflows.restart_vm import RESTART_VM_CHAIN, ReviewVmStep, describe_restart_result

if TYPE_CHECKING:
    from ops_assistant.approval.bridge import ApprovalBridge
    from ops_assistant.engine.local import WorkflowEngine
    from ops_assistant.vultr.client import InstanceDirectoryClient

__all__ = ["AgentDeps", "ToolResult", "list_vms", "restart_vm"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResult:
    """The value a tool returned during an agent run."""

    tool_name: str
    result: Any


@dataclass
class AgentDeps:
    """Dependencies handed to every tool call of one agent run.

    Attributes:
        directory: Cloud instance client.
        engine: Workflow engine running the restart chain.
        bridge: Builds approval prompts for suspended runs.
        thread_id: Conversation the run answers in.
        resource_id: User the run answers.
        tool_results: Tool results of this run, in call order.
    """

    directory: InstanceDirectoryClient
    engine: WorkflowEngine
    bridge: ApprovalBridge
    thread_id: str = ""
    resource_id: str = ""
    tool_results: list[ToolResult] = field(default_factory=list)

    def record(self, tool_name: str, result: Any) -> Any:
        self.tool_results.append(ToolResult(tool_name, result))
        return result


async def list_vms(ctx: RunContext[AgentDeps]) -> list[dict[str, Any]]:
    """List all virtual machines (VMs) in the account.

    Each VM has an id, a label, a power status (running, stopped), a server
    status (ok, none, locked, installing, booting), a status (active, pending,
    suspended) and tags.
    """
    instances = await ctx.deps.directory.list_instances()
    logger.info("Listed %d VMs for %s", len(instances), ctx.deps.resource_id or "unknown user")
    return ctx.deps.record("list_vms", [instance.model_dump() for instance in instances])


async def restart_vm(ctx: RunContext[AgentDeps], vm_id: str, vm_label: str) -> dict[str, Any]:
    """Restart a virtual machine (VM) by ID.

    The restart waits for an operator to approve it in Slack.

    Args:
        vm_id: Virtual machine ID.
        vm_label: Virtual machine label.
    """
    deps = ctx.deps
    try:
        run = await deps.engine.create_run(RESTART_VM_CHAIN, {"vm_id": vm_id, "vm_label": vm_label})
    except ChainNotFoundError:
        logger.error("Chain %s is not registered", RESTART_VM_CHAIN)
        return deps.record("restart_vm", {"message": "Workflow to restart a VM was not found", "restarted": False})

    logger.info("Restart VM workflow started with run ID %s", run.id)
    result = await deps.engine.start(run)

    if result.is_suspended and result.suspended_step == ReviewVmStep.name:
        prompt = deps.bridge.to_prompt(
            run,
            thread_id=deps.thread_id,
            resource_id=deps.resource_id,
            context={"approved_vm_id": vm_id},
        )
        return deps.record("restart_vm", {"message": prompt.to_message(), "restarted": False})

    return deps.record("restart_vm", describe_restart_result(vm_id, result.output))
