"""REST API controllers for the assistant.

This module provides:
- SlackEventsController: Receives Slack events over HTTP
- WorkflowChainController: Lists registered chains
- WorkflowRunController: Inspects runs
- health_check: Liveness probe
"""

from __future__ import annotations

from typing import ClassVar
from uuid import UUID

from litestar import Controller, Request, Response, get, post
from litestar.exceptions import NotFoundException

from ops_assistant.engine.local import WorkflowEngine  # noqa: TC001 - needed for DI
from ops_assistant.engine.registry import ChainRegistry  # noqa: TC001 - needed for DI
from ops_assistant.exceptions import RunNotFoundError
from ops_assistant.slack.app import SlackAssistant  # noqa: TC001 - needed for DI
from ops_assistant.web.dto import ChainDTO, RunStateDTO

__all__ = [
    "SlackEventsController",
    "WorkflowChainController",
    "WorkflowRunController",
    "health_check",
]


class SlackEventsController(Controller):
    """Entry point for Slack events delivered over HTTP.

    Requests are handed to Bolt unchanged; Bolt verifies the signature, acks
    and runs the listeners.
    """

    path = "/slack"
    include_in_schema = False

    @post("/events", status_code=200)
    async def handle_events(self, request: Request, slack_assistant: SlackAssistant) -> Response[bytes]:
        """Dispatch a Slack event, interaction or command request."""
        body = (await request.body()).decode("utf-8")
        bolt_response = await slack_assistant.dispatch(body, request.url.query, dict(request.headers))

        headers = bolt_response.first_headers_without_set_cookie()
        media_type = headers.pop("content-type", "text/plain; charset=utf-8")
        return Response(
            content=bolt_response.body.encode("utf-8"),
            status_code=bolt_response.status,
            headers=headers,
            media_type=media_type,
        )


class WorkflowChainController(Controller):
    """API controller for chain definitions.

    Tags: Workflow Chains
    """

    path = "/chains"
    tags: ClassVar[list[str]] = ["Workflow Chains"]

    @get("/")
    async def list_chains(self, workflow_registry: ChainRegistry) -> list[ChainDTO]:
        """List the latest version of every registered chain."""
        return [ChainDTO.from_definition(definition) for definition in workflow_registry.list_definitions()]


class WorkflowRunController(Controller):
    """API controller for workflow runs.

    Tags: Workflow Runs
    """

    path = "/runs"
    tags: ClassVar[list[str]] = ["Workflow Runs"]

    @get("/{run_id:uuid}")
    async def get_run(self, run_id: UUID, workflow_engine: WorkflowEngine) -> RunStateDTO:
        """Get a run by ID.

        Args:
            run_id: The run ID.
            workflow_engine: Injected workflow engine.

        Returns:
            The run.

        Raises:
            NotFoundException: If the run is unknown or expired.
        """
        try:
            run = await workflow_engine.get_run(run_id)
        except RunNotFoundError as e:
            raise NotFoundException(detail=f"Workflow run {run_id} not found") from e

        return RunStateDTO.from_run(run)


@get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}
