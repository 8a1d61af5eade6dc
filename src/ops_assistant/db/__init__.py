"""Database persistence layer for workflow runs.

This module provides SQLAlchemy models, the repository and the durable
:class:`~ops_assistant.engine.store.RunStore` implementation.

Note:
    Requires ``advanced-alchemy`` and an async driver such as ``aiosqlite`` or
    ``asyncpg``.

Example:
    Creating a durable engine::

        from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

        from ops_assistant.db import SQLAlchemyRunStore

        engine = create_async_engine("sqlite+aiosqlite:///runs.db")
        store = SQLAlchemyRunStore(async_sessionmaker(engine, expire_on_commit=False))
"""

from __future__ import annotations

from ops_assistant.db.models import WorkflowRunModel
from ops_assistant.db.repositories import WorkflowRunRepository
from ops_assistant.db.store import SQLAlchemyRunStore

__all__ = [
    "SQLAlchemyRunStore",
    "WorkflowRunModel",
    "WorkflowRunRepository",
]
