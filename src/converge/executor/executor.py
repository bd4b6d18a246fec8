"""Execute a plan against a provider, branch by branch."""

import threading
import time
import uuid
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from ..planner import ActionType, Plan, PlanStep, PlannedAction, StepPhase
from ..provider import Provider
from ..registry import ReferenceValue, ResourceAddress, resolve_value
from ..state import StateRecord, StateStore
from ..utils.errors import (
    ConfigurationError,
    NotFound,
    ProviderError,
    RunCancelled,
    StatePersistenceError,
)
from ..utils.logging import get_logger
from .models import ResourceRun, ResourceStatus, RunReport
from .retry import call_with_retry

logger = get_logger("executor")

_DONE, _FAILED, _SKIPPED = "done", "failed", "skipped"


class Executor:
    """
    Applies plan steps with bounded parallelism.

    A step starts only once every step it requires has completed and written
    its state. When a step fails, everything that transitively requires it is
    skipped while independent branches keep going.
    """

    def __init__(
        self,
        provider: Provider,
        store: StateStore,
        max_parallelism: int = 4,
        cancel_event: Optional[threading.Event] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_parallelism < 1:
            raise ValueError("max_parallelism must be at least 1")
        self.provider = provider
        self.store = store
        self.max_parallelism = max_parallelism
        self.cancel_event = cancel_event or threading.Event()
        self._sleep = sleep

    def cancel(self) -> None:
        """Stop scheduling new steps; in-flight provider calls are allowed to finish."""
        self.cancel_event.set()

    def apply(self, plan: Plan) -> RunReport:
        """
        Execute every step of the plan.

        Returns:
            RunReport with every resource's terminal state

        Raises:
            RunCancelled: If cancelled; carries the partial report
            StatePersistenceError: If state could not be durably saved
        """
        report = RunReport(started_at=datetime.now(timezone.utc))
        actions: Dict[ResourceAddress, PlannedAction] = {a.address: a for a in plan.actions}
        runs: Dict[ResourceAddress, ResourceRun] = {}
        for action in plan.actions:
            run = ResourceRun(action.address, action.action)
            run.transition(ResourceStatus.PLANNED)
            runs[action.address] = run

        remaining: Dict[ResourceAddress, int] = {address: 0 for address in actions}
        for step in plan.steps:
            remaining[step.address] += 1

        tokens: Dict[ResourceAddress, str] = {}
        step_status: Dict[str, str] = {}
        pending: List[PlanStep] = list(plan.steps)
        in_flight: Dict[Future, PlanStep] = {}
        fatal: Optional[BaseException] = None

        logger.info(f"Applying {len(plan.changes())} changes with parallelism {self.max_parallelism}")

        def finish_step(step: PlanStep, status: str, error: Optional[str] = None) -> None:
            step_status[step.key] = status
            run = runs[step.address]
            if status == _DONE:
                remaining[step.address] -= 1
                if remaining[step.address] == 0:
                    run.transition(ResourceStatus.APPLIED)
                    logger.info(f"{step.address}: {run.action.value} applied")
            elif status == _FAILED:
                run.transition(ResourceStatus.FAILED, error)
                logger.error(f"{step.address}: {run.action.value} failed: {error}")
            elif not run.is_terminal:
                run.transition(ResourceStatus.SKIPPED, error)
                logger.warning(f"{step.address}: skipped ({error})")

        with ThreadPoolExecutor(max_workers=self.max_parallelism, thread_name_prefix="converge") as pool:
            while pending or in_flight:
                if fatal is None and not self.cancel_event.is_set():
                    for step in list(pending):
                        blocked = [key for key in step.requires if step_status.get(key) in (_FAILED, _SKIPPED)]
                        if blocked:
                            pending.remove(step)
                            finish_step(step, _SKIPPED, f"dependency {blocked[0].rsplit(':', 1)[0]} did not apply")
                            continue
                        if not all(step_status.get(key) == _DONE for key in step.requires):
                            continue
                        action = actions[step.address]
                        if action.action == ActionType.NO_OP and not action.dependencies_changed:
                            pending.remove(step)
                            runs[step.address].transition(ResourceStatus.APPLYING)
                            finish_step(step, _DONE)
                            continue
                        if len(in_flight) >= self.max_parallelism:
                            continue
                        pending.remove(step)
                        run = runs[step.address]
                        if run.status == ResourceStatus.PLANNED:
                            run.transition(ResourceStatus.APPLYING)
                        token = tokens.setdefault(step.address, str(uuid.uuid4()))
                        in_flight[pool.submit(self._run_step, action, step, token)] = step

                if not in_flight:
                    break

                done, _ = wait(list(in_flight), return_when=FIRST_COMPLETED)
                for future in done:
                    step = in_flight.pop(future)
                    try:
                        future.result()
                    except (ProviderError, NotFound, ConfigurationError) as e:
                        finish_step(step, _FAILED, str(e))
                    except StatePersistenceError as e:
                        finish_step(step, _FAILED, str(e))
                        fatal = fatal or e
                    except Exception as e:
                        logger.error(f"{step.address}: unexpected error: {e}", exc_info=True)
                        finish_step(step, _FAILED, f"unexpected error: {e}")
                        fatal = fatal or e
                    else:
                        finish_step(step, _DONE)

        reason = "cancelled" if fatal is None else "run aborted"
        for step in pending:
            finish_step(step, _SKIPPED, reason)

        report.outcomes = [runs[action.address].outcome() for action in plan.actions]
        report.finished_at = datetime.now(timezone.utc)

        if fatal is not None:
            raise fatal
        if self.cancel_event.is_set() and pending:
            report.cancelled = True
            self.store.flush()
            logger.warning(f"Run cancelled with {len(pending)} steps not started")
            raise RunCancelled(report)

        counts = report.counts()
        logger.info("Apply finished: " + ", ".join(f"{count} {status}" for status, count in counts.items()))
        return report

    def _run_step(self, action: PlannedAction, step: PlanStep, token: str) -> None:
        """Provider call plus state write for one step. Runs on a worker thread."""
        address = action.address
        capability = self.provider.capability(address.kind)
        mutating_retry = capability.supports_request_token
        request_token = token if capability.supports_request_token else None

        if step.phase == StepPhase.DESTROY:
            record = self.store.get(address)
            if record is None:
                return
            try:
                call_with_retry(
                    lambda: self.provider.destroy(address.kind, record.provider_id),
                    capability.retry,
                    f"destroy {address}",
                    retryable=capability.idempotent_destroy,
                    sleep=self._sleep,
                )
            except NotFound:
                logger.info(f"{address}: {record.provider_id} already gone")
            self.store.remove(address)
            return

        depends_on = [str(dependency) for dependency in action.depends_on]

        if action.action == ActionType.NO_OP:
            # only the recorded dependencies are stale; no provider call
            record = self.store.get(address)
            if record is not None:
                record.depends_on = depends_on
                self.store.put(record)
                logger.info(f"{address}: recorded dependencies updated")
            return

        attributes = {
            name: resolve_value(value, self._resolve_reference)
            for name, value in action.resource.attributes.items()
        }

        if action.action == ActionType.UPDATE:
            record = self.store.get(address)
            provider_id = record.provider_id if record else action.provider_id
            try:
                outputs = call_with_retry(
                    lambda: self.provider.update(address.kind, provider_id, attributes, request_token=request_token),
                    capability.retry,
                    f"update {address}",
                    retryable=mutating_retry,
                    sleep=self._sleep,
                )
            except NotFound:
                raise ProviderError(f"{address} ({provider_id}) no longer exists; refresh state and plan again")
        else:
            provider_id, outputs = call_with_retry(
                lambda: self.provider.create(address.kind, attributes, request_token=request_token),
                capability.retry,
                f"create {address}",
                retryable=mutating_retry,
                sleep=self._sleep,
            )

        self.store.put(StateRecord(
            kind=address.kind,
            name=address.name,
            provider_id=provider_id,
            attributes=attributes,
            outputs=outputs,
            depends_on=depends_on,
        ))

    def _resolve_reference(self, reference: ReferenceValue) -> Any:
        record = self.store.get(reference.address)
        if record is None:
            raise ConfigurationError(f"{reference.address} has not been applied")
        if reference.attribute in record.outputs:
            return record.outputs[reference.attribute]
        if reference.attribute in record.attributes:
            return record.attributes[reference.attribute]
        raise ConfigurationError(f"{reference.address} has no attribute '{reference.attribute}'")
