"""Slack ops assistant.

Operators ask a Slack assistant thread to list or restart Vultr VMs. Restarts run
as a two-step workflow chain that suspends until someone clicks **Approve**; the
button carries a resumption token that resumes exactly that run.

Example:
    >>> from ops_assistant import AssistantConfig, create_app
    >>>
    >>> app = create_app(AssistantConfig.from_env())
"""

from __future__ import annotations

from ops_assistant.__metadata__ import __project__, __version__
from ops_assistant.app import create_app
from ops_assistant.approval import ActionablePrompt, ApprovalBridge, ResumeRequest, ResumptionToken
from ops_assistant.config import AssistantConfig
from ops_assistant.core import (
    TRIGGER,
    Binding,
    ChainDefinition,
    Completed,
    RunResult,
    RunState,
    RunStatus,
    StepContext,
    Suspended,
)
from ops_assistant.engine import ChainRegistry, InMemoryRunStore, RunStore, WorkflowEngine
from ops_assistant.exceptions import (
    ChainNotFoundError,
    ChainValidationError,
    ConfigurationError,
    ContractValidationError,
    InvalidResumeTargetError,
    MalformedTokenError,
    OpsAssistantError,
    RebootFailedError,
    RunNotFoundError,
    StepExecutionError,
    UpstreamError,
    UpstreamMalformedError,
    UpstreamUnavailableError,
)
from ops_assistant.plugin import OpsAssistantPlugin, OpsAssistantPluginConfig
from ops_assistant.services import AssistantServices, build_services
from ops_assistant.steps import BaseStep

__all__ = (
    "TRIGGER",
    "ActionablePrompt",
    "ApprovalBridge",
    "AssistantConfig",
    "AssistantServices",
    "BaseStep",
    "Binding",
    "ChainDefinition",
    "ChainNotFoundError",
    "ChainRegistry",
    "ChainValidationError",
    "Completed",
    "ConfigurationError",
    "ContractValidationError",
    "InMemoryRunStore",
    "InvalidResumeTargetError",
    "MalformedTokenError",
    "OpsAssistantError",
    "OpsAssistantPlugin",
    "OpsAssistantPluginConfig",
    "RebootFailedError",
    "ResumeRequest",
    "ResumptionToken",
    "RunNotFoundError",
    "RunResult",
    "RunState",
    "RunStatus",
    "RunStore",
    "StepContext",
    "StepExecutionError",
    "Suspended",
    "UpstreamError",
    "UpstreamMalformedError",
    "UpstreamUnavailableError",
    "WorkflowEngine",
    "__project__",
    "__version__",
    "build_services",
    "create_app",
)
