"""Exception hierarchy for ops-assistant."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from uuid import UUID

__all__ = (
    "ChainNotFoundError",
    "ChainValidationError",
    "ConfigurationError",
    "ContractValidationError",
    "InvalidResumeTargetError",
    "MalformedTokenError",
    "OpsAssistantError",
    "RebootFailedError",
    "RunNotFoundError",
    "StepExecutionError",
    "UpstreamError",
    "UpstreamMalformedError",
    "UpstreamUnavailableError",
)


class OpsAssistantError(Exception):
    """Base exception for all ops-assistant errors.

    Everything the engine, the approval bridge and the cloud client raise on
    purpose inherits from this class, so handlers at the chat boundary can catch
    them with a single except clause.
    """


class ConfigurationError(OpsAssistantError):
    """Raised when required settings are missing or unusable.

    Attributes:
        missing: Names of the environment variables that were not set.
        invalid: Names of the environment variables whose value could not be parsed.
    """

    def __init__(self, missing: list[str], invalid: list[str] | None = None) -> None:
        self.missing = missing
        self.invalid = invalid or []
        problems = []
        if missing:
            problems.append(f"missing {', '.join(missing)}")
        if self.invalid:
            problems.append(f"invalid {', '.join(self.invalid)}")
        super().__init__(f"Bad configuration: {'; '.join(problems)}")


class ChainNotFoundError(OpsAssistantError):
    """Raised when a chain definition is not registered.

    Attributes:
        name: The name of the chain that was not found.
        version: The specific version requested, if any.
    """

    def __init__(self, name: str, version: str | None = None) -> None:
        """Initialize the exception with chain details.

        Args:
            name: The name of the chain that was not found.
            version: The specific version requested, if any.
        """
        self.name = name
        self.version = version
        msg = f"Chain '{name}'"
        if version:
            msg += f" version '{version}'"
        msg += " not found"
        super().__init__(msg)


class ChainValidationError(OpsAssistantError):
    """Raised when a chain definition fails validation.

    This occurs during registration when bindings reference later steps,
    unknown steps or fields missing from a step's output contract.

    Attributes:
        errors: List of validation error messages.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__(f"Chain validation failed: {'; '.join(errors)}")


class ContractValidationError(OpsAssistantError):
    """Raised when data does not satisfy a declared input or output contract.

    Attributes:
        subject: What was being validated, e.g. ``"trigger"`` or ``"review-vm input"``.
        errors: The individual validation problems, as reported by pydantic.
    """

    def __init__(self, subject: str, errors: list[dict[str, Any]] | None = None) -> None:
        """Initialize the exception with the failing subject.

        Args:
            subject: What was being validated.
            errors: Optional detailed validation errors.
        """
        self.subject = subject
        self.errors = errors or []
        msg = f"Invalid {subject}"
        if self.errors:
            fields = ", ".join(".".join(str(p) for p in e.get("loc", ())) or "<root>" for e in self.errors)
            msg += f" ({fields})"
        super().__init__(msg)


class RunNotFoundError(OpsAssistantError):
    """Raised when a workflow run cannot be located.

    This covers both runs that never existed and runs evicted by the store's
    retention policy.

    Attributes:
        run_id: The ID of the run that was not found.
    """

    def __init__(self, run_id: str | UUID) -> None:
        self.run_id = run_id
        super().__init__(f"Workflow run '{run_id}' not found")


class InvalidResumeTargetError(OpsAssistantError):
    """Raised when a run is not suspended at the step a resume names.

    Attributes:
        run_id: The ID of the run.
        step_name: The step the caller tried to resume.
        status: The run's status at the time of the attempt.
    """

    def __init__(self, run_id: str | UUID, step_name: str, status: str, reason: str | None = None) -> None:
        """Initialize the exception with the run's state.

        Args:
            run_id: The ID of the run.
            step_name: The step the caller tried to resume.
            status: The run's current status.
            reason: Additional context about why the resume is rejected.
        """
        self.run_id = run_id
        self.step_name = step_name
        self.status = status
        msg = f"Run '{run_id}' cannot be resumed at step '{step_name}' (status: {status})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class StepExecutionError(OpsAssistantError):
    """Raised when a step fails to execute.

    This wraps the underlying exception that caused the step to fail. The run
    it belongs to has already been marked as failed when this is raised.

    Attributes:
        step_name: The name of the step that failed.
        cause: The underlying exception that caused the failure, if any.
        run_id: The run the step belonged to, if known.
    """

    def __init__(self, step_name: str, cause: Exception | None = None, run_id: UUID | None = None) -> None:
        """Initialize the exception with step execution details.

        Args:
            step_name: The name of the step that failed.
            cause: The underlying exception that caused the failure, if any.
            run_id: The run the step belonged to.
        """
        self.step_name = step_name
        self.cause = cause
        self.run_id = run_id
        msg = f"Step '{step_name}' failed"
        if cause:
            msg += f": {cause}"
        super().__init__(msg)


class MalformedTokenError(OpsAssistantError):
    """Raised when a resumption token cannot be decoded.

    Attributes:
        reason: What was wrong with the token.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Malformed resumption token: {reason}")


class UpstreamError(OpsAssistantError):
    """Base exception for failures of the cloud control plane."""


class UpstreamUnavailableError(UpstreamError):
    """Raised when the control plane cannot be reached or answers with an error.

    Attributes:
        operation: The operation that was attempted.
        status_code: HTTP status code, when a response was received.
    """

    def __init__(self, operation: str, status_code: int | None = None, cause: Exception | None = None) -> None:
        self.operation = operation
        self.status_code = status_code
        self.cause = cause
        msg = f"Control plane unavailable during {operation}"
        if status_code is not None:
            msg += f" (HTTP {status_code})"
        super().__init__(msg)


class UpstreamMalformedError(UpstreamError):
    """Raised when a control-plane response lacks the expected structure.

    Attributes:
        operation: The operation that was attempted.
        detail: What was missing or invalid.
    """

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"Malformed control plane response during {operation}: {detail}")


class RebootFailedError(UpstreamError):
    """Raised when a reboot command is not acknowledged.

    Attributes:
        instance_id: The instance that could not be rebooted.
        cause: The underlying failure.
    """

    def __init__(self, instance_id: str, cause: Exception | str | None = None) -> None:
        self.instance_id = instance_id
        self.cause = cause
        msg = f"Failed to reboot instance '{instance_id}'"
        if cause:
            msg += f": {cause}"
        super().__init__(msg)
