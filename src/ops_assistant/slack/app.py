"""Slack Bolt application for the assistant."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
from slack_bolt.async_app import AsyncApp
from slack_bolt.middleware.assistant.async_assistant import AsyncAssistant
from slack_bolt.request.async_request import AsyncBoltRequest

from ops_assistant.approval.bridge import APPROVE_ACTION_ID, SUSPENDED_BLOCK_ID
from ops_assistant.slack.handlers import handle_resume_action, handle_thread_started, handle_user_message

if TYPE_CHECKING:
    from slack_bolt.response import BoltResponse

    from ops_assistant.config import AssistantConfig
    from ops_assistant.services import AssistantServices

__all__ = ["SlackAssistant"]

logger = logging.getLogger(__name__)


class SlackAssistant:
    """Slack interface of the ops assistant.

    Listens for assistant threads and approve-button clicks, either over Socket
    Mode (when an app token is configured) or through :meth:`dispatch` for HTTP
    events.
    """

    def __init__(self, config: AssistantConfig, services: AssistantServices) -> None:
        self.config = config
        self.services = services

        self._app = AsyncApp(token=config.slack_bot_token, signing_secret=config.slack_signing_secret)
        self._assistant = AsyncAssistant()
        self._handler: AsyncSocketModeHandler | None = None

        self._register_assistant()
        self._register_actions()
        self._app.use(self._assistant)

    @property
    def app(self) -> AsyncApp:
        return self._app

    def _register_assistant(self) -> None:
        """Register assistant thread handlers."""

        @self._assistant.thread_started
        async def start_thread(
            payload: dict,
            say: Any,
            save_thread_context: Any,
            set_suggested_prompts: Any,
        ) -> None:
            thread_context = payload.get("assistant_thread", {}).get("context")
            await handle_thread_started(
                thread_context,
                say=say,
                save_thread_context=save_thread_context,
                set_suggested_prompts=set_suggested_prompts,
            )

        @self._assistant.user_message
        async def answer(payload: dict, say: Any, set_title: Any, set_status: Any) -> None:
            await handle_user_message(
                self.services.agent,
                payload,
                say=say,
                set_title=set_title,
                set_status=set_status,
                max_steps=self.config.agent_max_steps,
            )

    def _register_actions(self) -> None:
        """Register interactive component handlers."""

        @self._app.action({"action_id": APPROVE_ACTION_ID, "block_id": SUSPENDED_BLOCK_ID})
        async def resume_workflow(ack: Any, action: dict, respond: Any) -> None:
            await ack()
            value = action.get("value") if action.get("type") == "button" else None
            await handle_resume_action(self.services.agent, self.services.bridge, value, respond=respond)

    async def dispatch(self, body: str, query: str, headers: dict[str, str]) -> BoltResponse:
        """Handle one HTTP event request.

        Args:
            body: Raw request body.
            query: Raw query string.
            headers: Request headers.

        Returns:
            Bolt's response, after signature verification and listener dispatch.
        """
        request = AsyncBoltRequest(body=body, query=query, headers=headers)
        return await self._app.async_dispatch(request)

    async def start(self) -> None:
        """Connect over Socket Mode, if configured."""
        if not self.config.socket_mode:
            logger.info("Slack events expected over HTTP")
            return

        self._handler = AsyncSocketModeHandler(self._app, self.config.slack_app_token)
        await self._handler.connect_async()
        logger.info("Slack assistant connected via Socket Mode")

    async def stop(self) -> None:
        """Close the Socket Mode connection."""
        if self._handler:
            await self._handler.close_async()
            self._handler = None
            logger.info("Slack assistant disconnected")
