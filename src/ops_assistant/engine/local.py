"""Local async workflow engine.

This module provides the engine that creates runs, advances them through their
chain, suspends them when a step asks for confirmation and resumes them when the
confirmation arrives.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ValidationError

from ops_assistant.core.context import StepContext, StepExecution
from ops_assistant.core.definition import ChainDefinition
from ops_assistant.core.models import RunResult, RunState
from ops_assistant.core.outcome import Completed, Suspended
from ops_assistant.core.types import RunStatus, StepStatus
from ops_assistant.engine.store import InMemoryRunStore
from ops_assistant.exceptions import ContractValidationError, InvalidResumeTargetError, StepExecutionError

if TYPE_CHECKING:
    from ops_assistant.engine.registry import ChainRegistry
    from ops_assistant.engine.store import RunStore
    from ops_assistant.steps.base import BaseStep

__all__ = ["WorkflowEngine"]

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Async execution engine for linear chains.

    ``start`` and ``resume`` share one execution loop, so a resumed run can
    suspend again at a later step exactly like a fresh one. Steps never run
    concurrently within a run; runs are independent of each other.

    Attributes:
        registry: The chain registry for looking up definitions.
        store: Where runs live between start and resume.
        event_bus: Optional event bus implementing ``emit(event_type, **kwargs)``.
    """

    def __init__(
        self,
        registry: ChainRegistry,
        store: RunStore | None = None,
        event_bus: Any | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            registry: The chain registry.
            store: Run store. Defaults to a fresh :class:`InMemoryRunStore`.
            event_bus: Optional event bus implementing emit method.
        """
        self.registry = registry
        self.store: RunStore = store if store is not None else InMemoryRunStore()
        self.event_bus = event_bus

    async def create_run(
        self,
        chain: ChainDefinition | str,
        trigger_data: Mapping[str, Any] | None = None,
    ) -> RunState:
        """Create a new run of a chain without executing anything.

        Args:
            chain: The chain definition, or the name of a registered chain.
            trigger_data: Data the run starts with; must satisfy the chain's
                trigger contract.

        Returns:
            The created RunState, status RUNNING, positioned at the first step.

        Raises:
            ChainNotFoundError: If a chain name is given and not registered.
            ContractValidationError: If the trigger data is invalid. Nothing is stored.

        Example:
            >>> run = await engine.create_run("restart-vm-workflow", {"vm_id": "abc", "vm_label": "web-1"})
            >>> result = await engine.start(run)
        """
        definition = chain if isinstance(chain, ChainDefinition) else self.registry.get_definition(chain)

        try:
            trigger = definition.trigger_model.model_validate(dict(trigger_data or {}))
        except ValidationError as e:
            raise ContractValidationError("trigger", e.errors(include_url=False)) from e

        run = RunState(
            id=uuid4(),
            chain_name=definition.name,
            chain_version=definition.version,
            trigger_data=trigger.model_dump(mode="json"),
        )
        await self.store.save(run)

        logger.info("Created run %s of chain %s", run.id, definition.name)
        await self._emit("run.started", run_id=run.id, chain_name=definition.name)
        return run

    async def start(self, run: RunState) -> RunResult:
        """Execute a freshly created run until it suspends or finishes.

        Args:
            run: A run returned by :meth:`create_run`.

        Returns:
            The RunResult: suspended (with the step and payload) or completed.

        Raises:
            InvalidResumeTargetError: If the run is not in RUNNING state.
            ContractValidationError: If a step's input or output breaks its contract.
            StepExecutionError: If a step raises. The run is marked FAILED first.
        """
        if run.status != RunStatus.RUNNING:
            step_name = run.suspended_step or ""
            raise InvalidResumeTargetError(run.id, step_name, run.status, "run is not running")

        definition = self.registry.get_definition(run.chain_name, run.chain_version)
        return await self._run(run, definition)

    async def resume(
        self,
        run: RunState | UUID,
        step_name: str,
        resume_data: Mapping[str, Any] | None = None,
    ) -> RunResult:
        """Resume a run suspended at ``step_name``.

        The claim on the run is atomic: when two resumes race, one proceeds and
        the other gets ``InvalidResumeTargetError``. The resume data is merged
        into the suspended step's input and that step executes again; later steps
        follow as with :meth:`start`. Resume data that breaks the step's input
        contract is rejected before the claim, so the run stays suspended and
        can be resumed again.

        Args:
            run: The suspended run or its ID.
            step_name: The step the run is expected to be suspended at.
            resume_data: Data supplied by the approver.

        Returns:
            The RunResult after the run suspends again or finishes.

        Raises:
            RunNotFoundError: If the run is unknown or expired.
            ChainNotFoundError: If the run's chain is no longer registered.
            InvalidResumeTargetError: If the run is not suspended at ``step_name``.
            ContractValidationError: If the resume data or a later step's input or
                output breaks its contract.
            StepExecutionError: If a step raises.
        """
        run_id = run.id if isinstance(run, RunState) else run

        current = await self.store.get(run_id)
        definition = self.registry.get_definition(current.chain_name, current.chain_version)
        if current.status == RunStatus.SUSPENDED and current.suspended_step == step_name:
            self._check_resume_input(definition, current, step_name, resume_data)

        claimed = await self.store.claim(run_id, step_name)
        claimed.resume_data[step_name] = dict(resume_data or {})
        claimed.current_step_index = definition.index_of(step_name)
        claimed.suspended_step = None
        claimed.suspend_payload = None

        logger.info("Resuming run %s at step %s", run_id, step_name)
        await self._emit("run.resumed", run_id=run_id, step_name=step_name)
        return await self._run(claimed, definition)

    async def get_run(self, run_id: UUID) -> RunState:
        """Retrieve a run by ID.

        Raises:
            RunNotFoundError: If the run is unknown or expired.
        """
        return await self.store.get(run_id)

    async def _run(self, run: RunState, definition: ChainDefinition) -> RunResult:
        """Main execution loop shared by start and resume.

        Args:
            run: The run to advance; its status is RUNNING.
            definition: The run's chain.
        """
        while run.current_step_index < len(definition.steps):
            step = definition.steps[run.current_step_index]
            started_at = datetime.now(timezone.utc)

            raw_input = definition.project_input(step.name, run.context)
            raw_input.update(run.resume_data.get(step.name, {}))

            try:
                input_data = step.input_model.model_validate(raw_input)
            except ValidationError as e:
                error = ContractValidationError(f"{step.name} input", e.errors(include_url=False))
                await self._fail(run, step.name, error, started_at, raw_input)
                raise error from e

            context = StepContext(
                run_id=run.id,
                chain_name=run.chain_name,
                step_name=step.name,
                trigger_data=dict(run.trigger_data),
                input_data=input_data,
                step_outputs={name: dict(value) for name, value in run.step_outputs.items()},
            )
            recorded_input = input_data.model_dump(mode="json")

            try:
                outcome = await step.execute(context)
            except Exception as e:
                logger.exception("Step %s of run %s failed", step.name, run.id)
                await self._fail(run, step.name, e, started_at, recorded_input)
                raise StepExecutionError(step.name, e, run_id=run.id) from e

            if isinstance(outcome, Suspended):
                await self._suspend(run, step.name, outcome, started_at, recorded_input)
                return RunResult.from_run(run)

            if not isinstance(outcome, Completed):
                cause = TypeError(f"execute() returned {type(outcome).__name__}, expected Completed or Suspended")
                await self._fail(run, step.name, cause, started_at, recorded_input)
                raise StepExecutionError(step.name, cause, run_id=run.id)

            try:
                output = self._validate_output(step, outcome.output)
            except ContractValidationError as e:
                await self._fail(run, step.name, e, started_at, recorded_input)
                raise

            run.context[step.name] = output
            run.resume_data.pop(step.name, None)
            run.step_history.append(
                StepExecution(
                    step_name=step.name,
                    status=StepStatus.SUCCEEDED,
                    started_at=started_at,
                    completed_at=datetime.now(timezone.utc),
                    input_data=recorded_input,
                    output_data=output,
                )
            )
            run.current_step_index += 1
            run.touch()
            await self.store.save(run)
            logger.debug("Run %s completed step %s", run.id, step.name)

        run.status = RunStatus.COMPLETED
        run.output = run.context.get(definition.steps[-1].name)
        run.completed_at = datetime.now(timezone.utc)
        run.touch()
        await self.store.save(run)

        logger.info("Run %s of chain %s completed", run.id, run.chain_name)
        await self._emit("run.completed", run_id=run.id, status=run.status)
        return RunResult.from_run(run)

    @staticmethod
    def _check_resume_input(
        definition: ChainDefinition,
        run: RunState,
        step_name: str,
        resume_data: Mapping[str, Any] | None,
    ) -> None:
        step = definition.get_step(step_name)
        raw_input = definition.project_input(step_name, run.context)
        raw_input.update(resume_data or {})
        try:
            step.input_model.model_validate(raw_input)
        except ValidationError as e:
            raise ContractValidationError(f"{step_name} input", e.errors(include_url=False)) from e

    @staticmethod
    def _validate_output(step: BaseStep, output: dict[str, Any] | BaseModel) -> dict[str, Any]:
        data = output.model_dump() if isinstance(output, BaseModel) else dict(output)
        try:
            return step.output_model.model_validate(data).model_dump(mode="json")
        except ValidationError as e:
            raise ContractValidationError(f"{step.name} output", e.errors(include_url=False)) from e

    async def _suspend(
        self,
        run: RunState,
        step_name: str,
        outcome: Suspended,
        started_at: datetime,
        recorded_input: dict[str, Any],
    ) -> None:
        run.status = RunStatus.SUSPENDED
        run.suspended_step = step_name
        run.suspend_payload = dict(outcome.payload)
        run.step_history.append(
            StepExecution(
                step_name=step_name,
                status=StepStatus.SUSPENDED,
                started_at=started_at,
                completed_at=datetime.now(timezone.utc),
                input_data=recorded_input,
            )
        )
        run.touch()
        await self.store.save(run)

        logger.info("Run %s suspended at step %s", run.id, step_name)
        await self._emit("run.suspended", run_id=run.id, step_name=step_name)

    async def _fail(
        self,
        run: RunState,
        step_name: str,
        error: Exception,
        started_at: datetime,
        recorded_input: dict[str, Any] | None,
    ) -> None:
        now = datetime.now(timezone.utc)
        run.status = RunStatus.FAILED
        run.error = str(error)
        run.completed_at = now
        run.step_history.append(
            StepExecution(
                step_name=step_name,
                status=StepStatus.FAILED,
                started_at=started_at,
                completed_at=now,
                input_data=recorded_input,
                error=str(error),
            )
        )
        run.touch()
        await self.store.save(run)

        logger.error("Run %s failed at step %s: %s", run.id, step_name, error)
        await self._emit("run.failed", run_id=run.id, step_name=step_name, error=str(error))

    async def _emit(self, event_type: str, **kwargs: Any) -> None:
        if self.event_bus:
            await self.event_bus.emit(event_type, **kwargs)
