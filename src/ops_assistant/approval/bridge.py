"""Approval bridge between suspended runs and chat buttons.

The bridge turns a suspended run into a message with an **Approve** button whose
value is a :class:`~ops_assistant.approval.tokens.ResumptionToken`, and turns
the value of a clicked button back into the arguments of
:meth:`~ops_assistant.engine.local.WorkflowEngine.resume`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ops_assistant.approval.tokens import ResumptionToken
from ops_assistant.core.types import RunStatus
from ops_assistant.exceptions import InvalidResumeTargetError, RunNotFoundError

if TYPE_CHECKING:
    from uuid import UUID

    from ops_assistant.core.models import RunResult, RunState
    from ops_assistant.engine.local import WorkflowEngine

__all__ = [
    "APPROVE_ACTION_ID",
    "SUSPENDED_BLOCK_ID",
    "ActionablePrompt",
    "ApprovalBridge",
    "ResumeRequest",
]

logger = logging.getLogger(__name__)

SUSPENDED_BLOCK_ID = "workflow-suspended"
APPROVE_ACTION_ID = "resume-workflow"

DEFAULT_PROMPT_TEXT = "This workflow is waiting for your confirmation."


@dataclass(frozen=True)
class ActionablePrompt:
    """A confirmation request ready to post to chat.

    Attributes:
        run_id: The suspended run.
        step_name: The step waiting for confirmation.
        text: Human-readable description of what is being confirmed.
        token: Encoded resumption token carried by the approve button.
    """

    run_id: UUID
    step_name: str
    text: str
    token: str

    def to_message(self) -> dict[str, Any]:
        """Build the chat message payload with an approve button."""
        return {
            "blocks": [
                {
                    "block_id": SUSPENDED_BLOCK_ID,
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": self.text},
                    "accessory": {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "Approve", "emoji": True},
                        "value": self.token,
                        "action_id": APPROVE_ACTION_ID,
                    },
                }
            ]
        }


@dataclass(frozen=True)
class ResumeRequest:
    """A decoded approval, ready to hand to the engine.

    Attributes:
        run_id: The run to resume.
        chain_name: Name of the run's chain.
        step_name: The step to resume.
        thread_id: Conversation the approval belongs to.
        resource_id: User the approval belongs to.
        context_overrides: Data merged into the step's input.
    """

    run_id: UUID
    chain_name: str
    step_name: str
    thread_id: str = ""
    resource_id: str = ""
    context_overrides: dict[str, str] = field(default_factory=dict)


class ApprovalBridge:
    """Builds approval prompts for suspended runs and decodes them on approval.

    Attributes:
        engine: The engine owning the runs.
    """

    def __init__(self, engine: WorkflowEngine) -> None:
        self.engine = engine

    def to_prompt(
        self,
        run: RunState,
        *,
        thread_id: str = "",
        resource_id: str = "",
        context: Mapping[str, Any] | None = None,
    ) -> ActionablePrompt:
        """Build the approval prompt for a suspended run.

        Args:
            run: The suspended run.
            thread_id: Conversation to report back to after approval.
            resource_id: User to report back to after approval.
            context: Values the approval carries forward into the suspended
                step's input, e.g. the approved target identifier.

        Returns:
            The prompt, holding the message text and the encoded token.

        Raises:
            InvalidResumeTargetError: If the run is not suspended.
        """
        if run.status != RunStatus.SUSPENDED or run.suspended_step is None:
            raise InvalidResumeTargetError(run.id, run.suspended_step or "", run.status, "run is not suspended")

        payload = run.suspend_payload or {}
        text = payload.get("message")
        token = ResumptionToken(
            run_id=run.id,
            chain_name=run.chain_name,
            step_name=run.suspended_step,
            thread_id=thread_id,
            resource_id=resource_id,
            context={name: str(value) for name, value in (context or {}).items()},
        )
        return ActionablePrompt(
            run_id=run.id,
            step_name=run.suspended_step,
            text=text if isinstance(text, str) and text else DEFAULT_PROMPT_TEXT,
            token=token.encode(),
        )

    async def from_token(self, raw: str) -> ResumeRequest:
        """Decode a button value into a resume request.

        Args:
            raw: The encoded token.

        Returns:
            The resume request.

        Raises:
            MalformedTokenError: If the token does not decode.
            ChainNotFoundError: If the token names an unregistered chain.
            RunNotFoundError: If the run is unknown, expired or belongs to
                another chain.
        """
        token = ResumptionToken.decode(raw)
        self.engine.registry.get_definition(token.chain_name)

        run = await self.engine.get_run(token.run_id)
        if run.chain_name != token.chain_name:
            logger.warning("Token for run %s names chain %s, run belongs to %s", run.id, token.chain_name, run.chain_name)
            raise RunNotFoundError(token.run_id)

        return ResumeRequest(
            run_id=token.run_id,
            chain_name=token.chain_name,
            step_name=token.step_name,
            thread_id=token.thread_id,
            resource_id=token.resource_id,
            context_overrides=dict(token.context),
        )

    async def resume(self, request: ResumeRequest) -> RunResult:
        """Resume the run a request points at.

        Raises:
            RunNotFoundError: If the run expired since the token was decoded.
            InvalidResumeTargetError: If the run is no longer suspended at the step.
            StepExecutionError: If a step raises.
        """
        return await self.engine.resume(request.run_id, request.step_name, request.context_overrides)
