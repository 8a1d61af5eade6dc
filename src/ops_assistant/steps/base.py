"""Base step implementation for ops-assistant workflows."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel

if TYPE_CHECKING:
    from ops_assistant.core.context import StepContext
    from ops_assistant.core.outcome import Outcome

__all__ = ["BaseStep", "NoData"]


class NoData(BaseModel):
    """Contract for steps that take no input or produce no output."""


class BaseStep:
    """Base implementation with common functionality for all steps.

    Subclass this to create a step: set ``name``, the two contracts and
    implement :meth:`execute`. The engine validates the projected input against
    ``input_model`` before calling :meth:`execute` and the ``Completed`` output
    against ``output_model`` afterwards.
    """

    name: str
    """Unique identifier for the step within its chain."""

    description: str = ""
    """Human-readable description of what the step does."""

    input_model: ClassVar[type[BaseModel]] = NoData
    """Input contract."""

    output_model: ClassVar[type[BaseModel]] = NoData
    """Output contract."""

    def __init__(self, name: str | None = None, description: str | None = None) -> None:
        """Initialize the base step.

        Args:
            name: Unique identifier for the step. Defaults to the class attribute.
            description: Human-readable description.
        """
        if name is not None:
            self.name = name
        if description is not None:
            self.description = description
        if not getattr(self, "name", None):
            msg = f"{type(self).__name__} needs a name"
            raise ValueError(msg)

    async def execute(self, context: StepContext[Any]) -> Outcome:
        """Execute the step with the given context.

        Override this method to implement step logic.

        Args:
            context: The step execution context.

        Returns:
            ``Completed`` with the step output, or ``Suspended`` with a payload
            describing the confirmation needed.

        Raises:
            NotImplementedError: Must be implemented by subclasses.
        """
        msg = f"Step {self.name} must implement execute()"
        raise NotImplementedError(msg)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
