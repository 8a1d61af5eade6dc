"""Step outcomes.

A step tells the engine what happened by returning one of these two values.
The engine never inspects the shape of a result to guess.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypeAlias

from pydantic import BaseModel

__all__ = ["Completed", "Outcome", "Suspended"]


@dataclass(frozen=True)
class Completed:
    """The step finished and produced its output.

    Attributes:
        output: Data matching the step's output contract, as a mapping or as an
            instance of the step's ``output_model``.
    """

    output: dict[str, Any] | BaseModel = field(default_factory=dict)


@dataclass(frozen=True)
class Suspended:
    """The step needs external confirmation before it can finish.

    Attributes:
        payload: Description of the confirmation needed. The approval bridge reads
            ``payload["message"]`` when it builds the prompt for the approver.
    """

    payload: dict[str, Any] = field(default_factory=dict)


Outcome: TypeAlias = Completed | Suspended
"""What ``BaseStep.execute`` returns."""
