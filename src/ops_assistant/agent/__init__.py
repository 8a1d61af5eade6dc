"""Conversational agent answering operators in Slack."""

from __future__ import annotations

from ops_assistant.agent.assistant import AgentReply, OpsAgent, create_ops_agent
from ops_assistant.agent.formatting import format_slack_response
from ops_assistant.agent.tools import AgentDeps, ToolResult

__all__ = [
    "AgentDeps",
    "AgentReply",
    "OpsAgent",
    "ToolResult",
    "create_ops_agent",
    "format_slack_response",
]
