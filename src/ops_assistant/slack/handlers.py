"""Handlers for the Slack events the assistant reacts to.

The functions here receive Bolt's utilities (``say``, ``respond``, ...) as plain
async callables, so they run the same under Socket Mode, HTTP and tests.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from ops_assistant.agent.formatting import format_slack_response
from ops_assistant.approval.tokens import ResumptionToken
from ops_assistant.exceptions import (
    ChainNotFoundError,
    InvalidResumeTargetError,
    MalformedTokenError,
    RunNotFoundError,
)

if TYPE_CHECKING:
    from ops_assistant.agent.assistant import OpsAgent
    from ops_assistant.approval.bridge import ApprovalBridge

__all__ = [
    "GREETING",
    "SUGGESTED_PROMPTS_TITLE",
    "handle_resume_action",
    "handle_thread_started",
    "handle_user_message",
    "suggested_prompts",
]

logger = logging.getLogger(__name__)

SlackCall = Callable[..., Awaitable[Any]]

GREETING = "Hi, how can I help?"
SUGGESTED_PROMPTS_TITLE = "Here are some suggested options:"
TYPING_STATUS = "is typing..."
APOLOGY = "Sorry, something went wrong!"
SKIP_WORKFLOW = "Looks like I can skip the workflow."
APPROVAL_UNAVAILABLE = "Sorry, that approval is no longer available."
ALREADY_HANDLED = "This request has already been handled."
INTERPRET_PROMPT = "Interpret the results of this workflow step and provide a response to the user: "


def suggested_prompts(thread_context: Mapping[str, Any] | None) -> list[dict[str, str]]:
    """Prompts offered when a thread opens.

    Args:
        thread_context: The ``assistant_thread.context`` of the event.
    """
    prompts = [
        {"title": "Restart DB", "message": "Reboot the database server."},
        {"title": "Look up user", "message": "Look up the user `username` in the database"},
    ]
    if thread_context and thread_context.get("channel_id"):
        prompts.append(
            {
                "title": "Summarize channel",
                "message": "Assistant, please summarize the activity in this channel!",
            }
        )
    return prompts


async def handle_thread_started(
    thread_context: Mapping[str, Any] | None,
    *,
    say: SlackCall,
    save_thread_context: SlackCall,
    set_suggested_prompts: SlackCall,
) -> None:
    """Greet the user and offer suggested prompts."""
    try:
        await say(GREETING)
        if thread_context:
            await save_thread_context(dict(thread_context))
        await set_suggested_prompts(prompts=suggested_prompts(thread_context), title=SUGGESTED_PROMPTS_TITLE)
    except Exception:
        logger.exception("Failed to start assistant thread")


async def handle_user_message(
    agent: OpsAgent,
    message: Mapping[str, Any],
    *,
    say: SlackCall,
    set_title: SlackCall,
    set_status: SlackCall,
    max_steps: int = 3,
) -> None:
    """Answer a message posted in an assistant thread.

    Messages outside a thread or without text are ignored.
    """
    text = message.get("text")
    if not message.get("thread_ts") or not text:
        return

    try:
        await set_title(text)
        await set_status(TYPING_STATUS)

        reply = await agent.generate(
            text,
            thread_id=message.get("channel", ""),
            resource_id=message.get("user") or "default",
            max_steps=max_steps,
        )
        await say(format_slack_response(reply))
    except Exception:
        logger.exception("Failed to answer message in thread %s", message.get("thread_ts"))
        await say({"text": APOLOGY})


async def handle_resume_action(
    agent: OpsAgent,
    bridge: ApprovalBridge,
    value: str | None,
    *,
    respond: SlackCall,
) -> None:
    """Resume the run behind a clicked approve button and report the result.

    Args:
        agent: Agent interpreting the result for the user.
        bridge: Decodes the button value and resumes the run.
        value: The button value, an encoded resumption token.
        respond: Bolt's ``respond`` utility.
    """
    if not value:
        await respond(SKIP_WORKFLOW)
        return

    try:
        token = ResumptionToken.decode(value)
        request = await bridge.from_token(value)
    except MalformedTokenError:
        logger.warning("Rejected malformed resumption token")
        await respond(APPROVAL_UNAVAILABLE)
        return
    except ChainNotFoundError as e:
        logger.warning("Resumption token names unknown chain %s", e.name)
        await respond(f"Looks like the workflow [{e.name}] doesn't exist.")
        return
    except RunNotFoundError:
        logger.warning("Resumption token names unknown run %s", token.run_id)
        await respond(f"Looks like the workflow [{token.chain_name}] run [{token.run_id}] doesn't exist.")
        return

    logger.info(
        "Resuming workflow [%s] run [%s] at step [%s] with context %s",
        request.chain_name,
        request.run_id,
        request.step_name,
        request.context_overrides,
    )

    try:
        result = await bridge.resume(request)
    except RunNotFoundError:
        logger.warning("Run %s expired before it could be resumed", request.run_id)
        await respond(f"Looks like the workflow [{request.chain_name}] run [{request.run_id}] doesn't exist.")
        return
    except InvalidResumeTargetError as e:
        logger.info("Ignoring resume of run %s: %s", request.run_id, e)
        await respond(ALREADY_HANDLED)
        return
    except Exception:
        logger.exception("Resuming run %s failed", request.run_id)
        await respond(APOLOGY)
        return

    logger.info("Workflow [%s] resumed with status %s", request.chain_name, result.status)

    try:
        reply = await agent.generate(
            INTERPRET_PROMPT + json.dumps(result.to_dict()),
            thread_id=request.thread_id,
            resource_id=request.resource_id,
            max_steps=1,
        )
        await respond(format_slack_response(reply))
    except Exception:
        logger.exception("Failed to report result of run %s", request.run_id)
        await respond(APOLOGY)
