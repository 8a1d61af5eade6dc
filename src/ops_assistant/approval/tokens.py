"""Resumption token codec.

A resumption token travels as the value of a chat button, so it is encoded as a
URL query string: ``runId``, ``workflow``, ``stepId``, ``threadId`` and
``resourceId`` followed by one ``context.<name>`` pair per context override.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlencode
from uuid import UUID

from ops_assistant.exceptions import MalformedTokenError

__all__ = ["CONTEXT_PREFIX", "ResumptionToken"]

CONTEXT_PREFIX = "context."
"""Prefix marking a context override key."""

_CONTEXT_NAME = re.compile(r"^[A-Za-z0-9_-]+$")
_REQUIRED_KEYS = ("runId", "workflow", "stepId", "threadId", "resourceId")
_NON_EMPTY_KEYS = ("runId", "workflow", "stepId")


@dataclass(frozen=True)
class ResumptionToken:
    """Everything needed to locate and resume one suspended run.

    Attributes:
        run_id: The suspended run.
        chain_name: Name of the run's chain.
        step_name: Step the run is suspended at.
        thread_id: Conversation the approval belongs to.
        resource_id: User the approval belongs to.
        context: Values merged into the step's input on resume.
    """

    run_id: UUID
    chain_name: str
    step_name: str
    thread_id: str = ""
    resource_id: str = ""
    context: dict[str, str] = field(default_factory=dict)

    def encode(self) -> str:
        """Serialize the token to a query string.

        Raises:
            ValueError: If a context name contains characters outside ``[A-Za-z0-9_-]``.
        """
        pairs = [
            ("runId", str(self.run_id)),
            ("workflow", self.chain_name),
            ("stepId", self.step_name),
            ("threadId", self.thread_id),
            ("resourceId", self.resource_id),
        ]
        for name, value in self.context.items():
            if not _CONTEXT_NAME.match(name):
                msg = f"Invalid context name {name!r}"
                raise ValueError(msg)
            pairs.append((f"{CONTEXT_PREFIX}{name}", str(value)))
        return urlencode(pairs)

    @classmethod
    def decode(cls, raw: str) -> ResumptionToken:
        """Parse a token produced by :meth:`encode`.

        Args:
            raw: The query string.

        Returns:
            The decoded token.

        Raises:
            MalformedTokenError: If the string does not parse, a key is missing,
                duplicated or unknown, or the run id is not a UUID.
        """
        if not raw:
            raise MalformedTokenError("empty token")

        try:
            pairs = parse_qsl(raw, keep_blank_values=True, strict_parsing=True)
        except ValueError as e:
            raise MalformedTokenError(str(e)) from e

        values: dict[str, str] = {}
        context: dict[str, str] = {}
        for key, value in pairs:
            if key.startswith(CONTEXT_PREFIX):
                name = key[len(CONTEXT_PREFIX) :]
                if not _CONTEXT_NAME.match(name):
                    raise MalformedTokenError(f"invalid context key {key!r}")
                if name in context:
                    raise MalformedTokenError(f"duplicate key {key!r}")
                context[name] = value
            elif key in _REQUIRED_KEYS:
                if key in values:
                    raise MalformedTokenError(f"duplicate key {key!r}")
                values[key] = value
            else:
                raise MalformedTokenError(f"unexpected key {key!r}")

        missing = [key for key in _REQUIRED_KEYS if key not in values]
        missing += [key for key in _NON_EMPTY_KEYS if key in values and not values[key]]
        if missing:
            raise MalformedTokenError(f"missing {', '.join(missing)}")

        try:
            run_id = UUID(values["runId"])
        except ValueError as e:
            raise MalformedTokenError(f"runId {values['runId']!r} is not a UUID") from e

        return cls(
            run_id=run_id,
            chain_name=values["workflow"],
            step_name=values["stepId"],
            thread_id=values["threadId"],
            resource_id=values["resourceId"],
            context=context,
        )
