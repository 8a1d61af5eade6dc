"""Shared test fixtures for the ops-assistant test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from tests.helpers import FakeDirectory, MockEventBus, make_approval_chain, make_linear_chain, scripted_ops_model

if TYPE_CHECKING:
    from ops_assistant.agent.assistant import OpsAgent
    from ops_assistant.approval.bridge import ApprovalBridge
    from ops_assistant.core.definition import ChainDefinition
    from ops_assistant.engine.local import WorkflowEngine
    from ops_assistant.engine.registry import ChainRegistry
    from ops_assistant.engine.store import InMemoryRunStore


@pytest.fixture
def linear_chain() -> ChainDefinition:
    """Two-step chain that never suspends."""
    return make_linear_chain()


@pytest.fixture
def approval_chain() -> ChainDefinition:
    """Three-step chain suspending at ``confirm``."""
    return make_approval_chain()


@pytest.fixture
def fake_directory() -> FakeDirectory:
    """Cloud client double with no instances."""
    return FakeDirectory()


@pytest.fixture
def mock_event_bus() -> MockEventBus:
    """Create mock event bus.

    Returns:
        MockEventBus instance
    """
    return MockEventBus()


@pytest.fixture
def chain_registry(
    linear_chain: ChainDefinition,
    approval_chain: ChainDefinition,
    fake_directory: FakeDirectory,
) -> ChainRegistry:
    """Registry holding the sample chains and the restart chain.

    Args:
        linear_chain: Linear chain fixture
        approval_chain: Approval chain fixture
        fake_directory: Cloud client double used by the restart chain
    """
    from ops_assistant.engine.registry import ChainRegistry
    from ops_assistant.workflows.restart_vm import create_restart_vm_chain

    registry = ChainRegistry()
    registry.register(linear_chain)
    registry.register(approval_chain)
    registry.register(create_restart_vm_chain(fake_directory))
    return registry


@pytest.fixture
def run_store() -> InMemoryRunStore:
    from ops_assistant.engine.store import InMemoryRunStore

    return InMemoryRunStore()


@pytest.fixture
def engine(chain_registry: ChainRegistry, run_store: InMemoryRunStore, mock_event_bus: MockEventBus) -> WorkflowEngine:
    """Create an engine with an in-memory store and event bus.

    Args:
        chain_registry: Registry fixture
        run_store: Store fixture
        mock_event_bus: Event bus fixture

    Returns:
        WorkflowEngine instance
    """
    from ops_assistant.engine.local import WorkflowEngine

    return WorkflowEngine(chain_registry, run_store, event_bus=mock_event_bus)


@pytest.fixture
def bridge(engine: WorkflowEngine) -> ApprovalBridge:
    from ops_assistant.approval.bridge import ApprovalBridge

    return ApprovalBridge(engine)


@pytest.fixture
def ops_agent(engine: WorkflowEngine, bridge: ApprovalBridge, fake_directory: FakeDirectory) -> OpsAgent:
    """Ops agent driven by a scripted model instead of a provider.

    Args:
        engine: Engine fixture
        bridge: Bridge fixture
        fake_directory: Cloud client double
    """
    from ops_assistant.agent.assistant import OpsAgent, create_ops_agent

    return OpsAgent(
        create_ops_agent(scripted_ops_model()),
        directory=fake_directory,  # type: ignore[arg-type]
        engine=engine,
        bridge=bridge,
    )


# Pytest configuration
def pytest_configure(config: Any) -> None:
    """Configure pytest with custom markers.

    Args:
        config: Pytest config object
    """
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
