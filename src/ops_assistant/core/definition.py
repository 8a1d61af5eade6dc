"""Chain definition and variable bindings.

This module provides the data structures for defining a workflow chain: an
ordered list of steps and the bindings that project upstream outputs into
downstream inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ops_assistant.steps.base import NoData

if TYPE_CHECKING:
    from pydantic import BaseModel

    from ops_assistant.steps.base import BaseStep

__all__ = ["TRIGGER", "Binding", "ChainDefinition"]

TRIGGER = "trigger"
"""Binding source naming the run's trigger data instead of a step."""

_MISSING = object()


@dataclass(frozen=True)
class Binding:
    """Projects a field of an upstream output into a downstream input.

    Attributes:
        step: Name of the upstream step, or :data:`TRIGGER` for the trigger data.
        path: Field to read. Dotted paths walk into nested mappings; the first
            segment must be a field of the source contract.

    Example:
        >>> Binding(step="review-vm", path="final_vm_id")
        >>> Binding(step=TRIGGER, path="vm_label")
    """

    step: str
    path: str

    @property
    def field_name(self) -> str:
        """The top-level field of the source contract this binding reads."""
        return self.path.split(".", 1)[0]

    def resolve(self, source: dict[str, Any]) -> Any:
        """Read the bound value out of the source mapping.

        Args:
            source: The upstream output or the trigger data.

        Returns:
            The value, or a module-private sentinel when the path is absent.
        """
        value: Any = source
        for segment in self.path.split("."):
            if not isinstance(value, dict) or segment not in value:
                return _MISSING
            value = value[segment]
        return value


@dataclass
class ChainDefinition:
    """Declarative structure of a linear workflow chain.

    Steps run strictly in list order. Every step after the first may declare
    bindings that fill its input fields from the trigger data or from the
    output of a step earlier in the list.

    Attributes:
        name: Unique identifier for the chain.
        version: Version string for chain versioning.
        description: Human-readable description of the chain's purpose.
        steps: Ordered list of steps.
        bindings: Map of step name to ``{input field: Binding}``.
        trigger_model: Contract the trigger data must satisfy.

    Example:
        >>> chain = ChainDefinition(
        ...     name="restart-vm-workflow",
        ...     version="1.0.0",
        ...     description="Review then restart a VM",
        ...     steps=[ReviewVmStep(), RestartVmStep(directory)],
        ...     bindings={"restart-vm": {"vm_id": Binding("review-vm", "final_vm_id")}},
        ...     trigger_model=RestartVmTrigger,
        ... )
    """

    name: str
    version: str
    description: str
    steps: list[BaseStep]
    bindings: dict[str, dict[str, Binding]] = field(default_factory=dict)
    trigger_model: type[BaseModel] = NoData

    @property
    def step_names(self) -> list[str]:
        """Names of the steps, in execution order."""
        return [step.name for step in self.steps]

    def index_of(self, step_name: str) -> int:
        """Position of a step in the chain.

        Raises:
            KeyError: If no step has that name.
        """
        for index, step in enumerate(self.steps):
            if step.name == step_name:
                return index
        msg = f"Step '{step_name}' not found in chain '{self.name}'"
        raise KeyError(msg)

    def get_step(self, step_name: str) -> BaseStep:
        """Return the step with the given name.

        Raises:
            KeyError: If no step has that name.
        """
        return self.steps[self.index_of(step_name)]

    def validate(self) -> list[str]:
        """Validate the chain definition for common issues.

        Returns:
            List of validation error messages. Empty list if valid.

        Example:
            >>> errors = chain.validate()
            >>> if errors:
            ...     print("Validation errors:", errors)
        """
        errors: list[str] = []

        if not self.steps:
            errors.append("Chain has no steps")
            return errors

        seen: set[str] = set()
        for step in self.steps:
            if step.name in seen:
                errors.append(f"Duplicate step name '{step.name}'")
            if step.name == TRIGGER:
                errors.append(f"Step name '{TRIGGER}' is reserved")
            seen.add(step.name)

        positions = {step.name: index for index, step in enumerate(self.steps)}

        for target_name, fields in self.bindings.items():
            if target_name not in positions:
                errors.append(f"Bindings declared for unknown step '{target_name}'")
                continue

            target_index = positions[target_name]
            if target_index == 0 and fields:
                errors.append(f"Initial step '{target_name}' cannot declare bindings")
                continue

            target = self.steps[target_index]
            for input_field, binding in fields.items():
                if input_field not in target.input_model.model_fields:
                    errors.append(f"Step '{target_name}': input field '{input_field}' not in its input contract")

                if binding.step == TRIGGER:
                    source_fields = self.trigger_model.model_fields
                    source_label = "trigger"
                else:
                    if binding.step not in positions:
                        errors.append(f"Step '{target_name}': binding source '{binding.step}' not found")
                        continue
                    if positions[binding.step] >= target_index:
                        errors.append(
                            f"Step '{target_name}': binding source '{binding.step}' must run before it"
                        )
                        continue
                    source_fields = self.steps[positions[binding.step]].output_model.model_fields
                    source_label = f"step '{binding.step}' output"

                if binding.field_name not in source_fields:
                    errors.append(
                        f"Step '{target_name}': field '{binding.field_name}' not in {source_label} contract"
                    )

        return errors

    def project_input(self, step_name: str, context: dict[str, Any]) -> dict[str, Any]:
        """Build the raw input of a step from the run context.

        Args:
            step_name: The step whose input is wanted.
            context: The run context: trigger data under :data:`TRIGGER` and
                recorded outputs under their step names.

        Returns:
            The projected fields. Bindings whose source has no value are left out,
            so the input contract decides whether that is acceptable.
        """
        projected: dict[str, Any] = {}
        for input_field, binding in self.bindings.get(step_name, {}).items():
            source = context.get(binding.step)
            if not isinstance(source, dict):
                continue
            value = binding.resolve(source)
            if value is not _MISSING:
                projected[input_field] = value
        return projected
