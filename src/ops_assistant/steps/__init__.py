"""Step base classes for ops-assistant workflows."""

from __future__ import annotations

from ops_assistant.steps.base import BaseStep, NoData

__all__ = [
    "BaseStep",
    "NoData",
]
