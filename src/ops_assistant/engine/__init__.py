"""Workflow engine implementation.

This module provides the engine that drives runs through their chain, the
chain registry and the run stores.
"""

from __future__ import annotations

from ops_assistant.engine.local import WorkflowEngine
from ops_assistant.engine.registry import ChainRegistry
from ops_assistant.engine.store import DEFAULT_RETENTION, InMemoryRunStore, RunStore

__all__ = [
    "DEFAULT_RETENTION",
    "ChainRegistry",
    "InMemoryRunStore",
    "RunStore",
    "WorkflowEngine",
]
