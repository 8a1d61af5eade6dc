"""The assistant's service graph.

Everything the handlers need is built once by :func:`build_services` and passed
down explicitly.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from ops_assistant.agent.assistant import OpsAgent, create_ops_agent
from ops_assistant.approval.bridge import ApprovalBridge
from ops_assistant.db.models import WorkflowRunModel
from ops_assistant.db.store import SQLAlchemyRunStore
from ops_assistant.engine.local import WorkflowEngine
from ops_assistant.engine.registry import ChainRegistry
from ops_assistant.engine.store import InMemoryRunStore
from ops_assistant.vultr.client import InstanceDirectoryClient
from ops_assistant.workflows.restart_vm import create_restart_vm_chain

if TYPE_CHECKING:
    import httpx
    from pydantic_ai.models import Model
    from sqlalchemy.ext.asyncio import AsyncEngine

    from ops_assistant.config import AssistantConfig
    from ops_assistant.engine.store import RunStore

__all__ = ["AssistantServices", "build_services"]

logger = logging.getLogger(__name__)


@dataclass
class AssistantServices:
    """Long-lived collaborators shared by every request.

    Attributes:
        registry: Registered chains.
        store: Where runs live between start and resume.
        engine: Runs chains.
        bridge: Turns suspended runs into approval prompts and back.
        directory: Cloud instance client.
        agent: The conversational agent.
        db_engine: SQLAlchemy engine behind a durable store, if any.
        purge_interval: Seconds between purges of expired runs. No purge task
            runs when None.
    """

    registry: ChainRegistry
    store: RunStore
    engine: WorkflowEngine
    bridge: ApprovalBridge
    directory: InstanceDirectoryClient
    agent: OpsAgent
    db_engine: AsyncEngine | None = None
    purge_interval: float | None = None
    _purge_task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)

    async def startup(self) -> None:
        """Create the run table when a database is configured and start purging expired runs."""
        if self.db_engine is not None:
            async with self.db_engine.begin() as conn:
                await conn.run_sync(WorkflowRunModel.metadata.create_all)
            logger.info("Run store tables ready")

        if self.purge_interval is not None and self._purge_task is None:
            self._purge_task = asyncio.create_task(self._purge_loop(self.purge_interval))

    async def shutdown(self) -> None:
        """Stop the purge task and release HTTP and database connections."""
        if self._purge_task is not None:
            self._purge_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._purge_task
            self._purge_task = None

        await self.directory.close()
        if self.db_engine is not None:
            await self.db_engine.dispose()

    async def _purge_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.store.purge_expired()
            except Exception:
                logger.exception("Purging expired runs failed")


def build_services(
    config: AssistantConfig,
    *,
    model: Model | str | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AssistantServices:
    """Wire the assistant together.

    Args:
        config: Process configuration.
        model: Overrides ``config.agent_model``, mainly for tests.
        http_client: HTTP client for the cloud API, mainly for tests.

    Returns:
        The services, with the restart chain registered.
    """
    db_engine = None
    store: RunStore
    if config.database_url:
        db_engine = create_async_engine(config.database_url)
        store = SQLAlchemyRunStore(async_sessionmaker(db_engine, expire_on_commit=False), config.run_retention)
        logger.info("Using durable run store")
    else:
        store = InMemoryRunStore(config.run_retention)
        logger.info("Using in-memory run store; suspended runs are lost on restart")

    directory = InstanceDirectoryClient(config.vultr_api_key, base_url=config.vultr_api_url, client=http_client)

    registry = ChainRegistry()
    registry.register(create_restart_vm_chain(directory))

    engine = WorkflowEngine(registry, store)
    bridge = ApprovalBridge(engine)
    agent = OpsAgent(
        create_ops_agent(model or config.agent_model),
        directory=directory,
        engine=engine,
        bridge=bridge,
    )

    return AssistantServices(
        registry=registry,
        store=store,
        engine=engine,
        bridge=bridge,
        directory=directory,
        agent=agent,
        db_engine=db_engine,
        purge_interval=config.purge_interval_seconds,
    )
