"""Test doubles and sample chains shared by the test suite."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel
from pydantic_ai.messages import ModelMessage, ModelResponse, TextPart, ToolCallPart, ToolReturnPart, UserPromptPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from ops_assistant.core.context import StepContext
from ops_assistant.core.definition import Binding, ChainDefinition
from ops_assistant.core.outcome import Completed, Outcome, Suspended
from ops_assistant.exceptions import RebootFailedError, UpstreamUnavailableError
from ops_assistant.steps.base import BaseStep
from ops_assistant.vultr.client import InstanceRecord


# =============================================================================
# Sample chains
# =============================================================================


class ItemTrigger(BaseModel):
    item: str


class ValueInput(BaseModel):
    value: str


class ValueOutput(BaseModel):
    value: str


class ConfirmInput(BaseModel):
    value: str
    approved: bool = False


class AppliedOutput(BaseModel):
    applied: str


class CountingStep(BaseStep):
    """Step that remembers how often it ran."""

    def __init__(self, name: str | None = None) -> None:
        super().__init__(name=name)
        self.calls = 0


class FetchStep(CountingStep):
    name = "fetch"
    output_model: ClassVar[type[BaseModel]] = ValueOutput

    async def execute(self, context: StepContext[Any]) -> Outcome:
        self.calls += 1
        return Completed({"value": context.trigger_data["item"].upper()})


class ConfirmStep(CountingStep):
    name = "confirm"
    input_model: ClassVar[type[BaseModel]] = ConfirmInput
    output_model: ClassVar[type[BaseModel]] = ValueOutput

    async def execute(self, context: StepContext[ConfirmInput]) -> Outcome:
        self.calls += 1
        if not context.input_data.approved:
            return Suspended({"message": f"Apply {context.input_data.value}?", "value": context.input_data.value})
        return Completed(ValueOutput(value=context.input_data.value))


class ApplyStep(CountingStep):
    name = "apply"
    input_model: ClassVar[type[BaseModel]] = ValueInput
    output_model: ClassVar[type[BaseModel]] = AppliedOutput

    async def execute(self, context: StepContext[ValueInput]) -> Outcome:
        self.calls += 1
        return Completed({"applied": context.input_data.value})


class ExplodingStep(CountingStep):
    name = "explode"
    input_model: ClassVar[type[BaseModel]] = ValueInput

    async def execute(self, context: StepContext[ValueInput]) -> Outcome:
        self.calls += 1
        msg = "boom"
        raise RuntimeError(msg)


def make_linear_chain(name: str = "linear") -> ChainDefinition:
    """Chain of two steps that never suspends."""
    return ChainDefinition(
        name=name,
        version="1.0.0",
        description="Fetch then apply",
        steps=[FetchStep(), ApplyStep()],
        bindings={"apply": {"value": Binding("fetch", "value")}},
        trigger_model=ItemTrigger,
    )


def make_approval_chain(name: str = "approval") -> ChainDefinition:
    """Chain of three steps whose middle step waits for approval."""
    return ChainDefinition(
        name=name,
        version="1.0.0",
        description="Fetch, confirm, apply",
        steps=[FetchStep(), ConfirmStep(), ApplyStep()],
        bindings={
            "confirm": {"value": Binding("fetch", "value")},
            "apply": {"value": Binding("confirm", "value")},
        },
        trigger_model=ItemTrigger,
    )


# =============================================================================
# Collaborators
# =============================================================================


class MockEventBus:
    """Mock event bus for testing."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def emit(self, event_type: str, **kwargs: Any) -> None:
        self.events.append((event_type, kwargs))

    @property
    def event_types(self) -> list[str]:
        return [event_type for event_type, _ in self.events]


class FakeDirectory:
    """In-memory stand-in for the Vultr instance client."""

    def __init__(self, instances: list[InstanceRecord] | None = None) -> None:
        self.instances = instances if instances is not None else []
        self.reboots: list[str] = []
        self.failing_reboots: set[str] = set()
        self.unavailable = False
        self.closed = False

    async def list_instances(self) -> list[InstanceRecord]:
        if self.unavailable:
            raise UpstreamUnavailableError("list_instances", 503)
        return list(self.instances)

    async def reboot(self, instance_id: str) -> None:
        if instance_id in self.failing_reboots:
            raise RebootFailedError(instance_id, "HTTP 500")
        self.reboots.append(instance_id)

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# Scripted model
# =============================================================================


def _last_prompt(messages: list[ModelMessage]) -> str:
    for part in messages[-1].parts:
        if isinstance(part, UserPromptPart) and isinstance(part.content, str):
            return part.content
    return ""


def scripted_ops_model(
    vm_id: str = "abc",
    vm_label: str = "web-1",
    final_text: str = "Done.",
) -> FunctionModel:
    """Model that calls the tool a prompt asks for, then answers with text.

    - prompts starting with ``Interpret`` are answered with ``final_text``
    - prompts mentioning ``restart`` call ``restart_vm``
    - prompts mentioning ``list`` call ``list_vms``
    - anything else is echoed back
    """

    def respond(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        if any(isinstance(part, ToolReturnPart) for part in messages[-1].parts):
            return ModelResponse(parts=[TextPart(final_text)])

        prompt = _last_prompt(messages)
        if prompt.startswith("Interpret"):
            return ModelResponse(parts=[TextPart(final_text)])
        if "restart" in prompt.lower():
            return ModelResponse(parts=[ToolCallPart("restart_vm", {"vm_id": vm_id, "vm_label": vm_label})])
        if "list" in prompt.lower():
            return ModelResponse(parts=[ToolCallPart("list_vms", {})])
        return ModelResponse(parts=[TextPart(f"You said: {prompt}")])

    return FunctionModel(respond)
