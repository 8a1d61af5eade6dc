"""Workflow chains shipped with the assistant."""

from __future__ import annotations

from ops_assistant.workflows.restart_vm import (
    RESTART_VM_CHAIN,
    RestartVmStep,
    ReviewVmStep,
    create_restart_vm_chain,
    describe_restart_result,
)

__all__ = [
    "RESTART_VM_CHAIN",
    "RestartVmStep",
    "ReviewVmStep",
    "create_restart_vm_chain",
    "describe_restart_result",
]
