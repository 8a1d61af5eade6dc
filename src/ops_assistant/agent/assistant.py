"""The conversational ops agent.

Wraps a pydantic-ai :class:`~pydantic_ai.Agent` holding the VM tools. The model
decides which tool to call; :func:`~ops_assistant.agent.formatting.format_slack_response`
decides what the user sees.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic_ai import Agent
from pydantic_ai.exceptions import UsageLimitExceeded
from pydantic_ai.usage import UsageLimits

from ops_assistant.agent.tools import AgentDeps, ToolResult, list_vms, restart_vm

if TYPE_CHECKING:
    from pydantic_ai.models import Model

    from ops_assistant.approval.bridge import ApprovalBridge
    from ops_assistant.engine.local import WorkflowEngine
    from ops_assistant.vultr.client import InstanceDirectoryClient

__all__ = ["DEFAULT_MODEL", "INSTRUCTIONS", "AgentReply", "OpsAgent", "create_ops_agent"]

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "openai:gpt-4o-mini"

INSTRUCTIONS = """\
You're an assistant in a Slack workspace.
Users in the workspace will ask you to help them perform DevOps tasks.
For managing virtual machines, they each have an ID and associated label. You may use the list_vms tool to \
find the ID if the user only provides a label, or you must prompt them to name the VM if they don't already.
Once you have a VM ID, you can then restart it using the restart_vm tool, which asks an operator for approval.
When you include markdown text, convert them to Slack compatible ones.
When a prompt has Slack's special syntax like <@USER_ID> or <#CHANNEL_ID>, you must keep them as-is in your response.\
"""


def create_ops_agent(model: Model | str = DEFAULT_MODEL) -> Agent[AgentDeps, str]:
    """Build the pydantic-ai agent with the VM tools.

    The model is resolved on first use, so building the agent needs no
    provider credentials.

    Args:
        model: Model instance or ``provider:model`` name.
    """
    return Agent(
        model,
        deps_type=AgentDeps,
        system_prompt=INSTRUCTIONS,
        tools=[list_vms, restart_vm],
        defer_model_check=True,
    )


@dataclass
class AgentReply:
    """What the agent produced for one prompt.

    Attributes:
        text: The model's final text; empty if the run was cut short.
        tool_results: Every tool result of the run, in call order.
    """

    text: str = ""
    tool_results: list[ToolResult] = field(default_factory=list)


class OpsAgent:
    """Runs prompts through the agent with the services its tools need."""

    def __init__(
        self,
        agent: Agent[AgentDeps, str],
        *,
        directory: InstanceDirectoryClient,
        engine: WorkflowEngine,
        bridge: ApprovalBridge,
    ) -> None:
        self.agent = agent
        self.directory = directory
        self.engine = engine
        self.bridge = bridge

    async def generate(
        self,
        prompt: str,
        *,
        thread_id: str = "",
        resource_id: str = "",
        max_steps: int = 3,
    ) -> AgentReply:
        """Answer a prompt.

        Args:
            prompt: The user's text.
            thread_id: Conversation the answer belongs to; carried into approval tokens.
            resource_id: User the answer belongs to; carried into approval tokens.
            max_steps: Maximum number of model requests. When the model wants
                more, the run stops and the tool results gathered so far are
                returned without text.

        Returns:
            The reply.
        """
        deps = AgentDeps(
            directory=self.directory,
            engine=self.engine,
            bridge=self.bridge,
            thread_id=thread_id,
            resource_id=resource_id,
        )

        try:
            result = await self.agent.run(prompt, deps=deps, usage_limits=UsageLimits(request_limit=max_steps))
        except UsageLimitExceeded:
            logger.warning("Agent run for thread %s stopped after %d steps", thread_id, max_steps)
            return AgentReply(tool_results=list(deps.tool_results))

        return AgentReply(text=result.output or "", tool_results=list(deps.tool_results))
