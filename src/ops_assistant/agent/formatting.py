"""Turn an agent reply into a Slack message."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ops_assistant.agent.assistant import AgentReply

__all__ = ["FALLBACK_TEXT", "format_slack_response"]

FALLBACK_TEXT = "Sorry, I couldn't find an answer to that."


def format_slack_response(reply: AgentReply) -> dict[str, Any]:
    """Pick the message to post for a reply.

    The last tool result carrying a ``message`` wins: a string becomes
    ``[tool] message`` text, a mapping (e.g. an approval prompt) is posted as is.
    Without one, the agent's own text is used.
    """
    response: dict[str, Any] | None = None

    for tool_result in reply.tool_results:
        result = tool_result.result
        if not isinstance(result, Mapping):
            continue
        message = result.get("message")
        if isinstance(message, str):
            response = {"text": f"[{tool_result.tool_name}] {message}"}
        elif isinstance(message, Mapping):
            response = dict(message)

    if response is None:
        response = {"text": reply.text or FALLBACK_TEXT}

    return response
