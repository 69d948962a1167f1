# src/voxelmind/engine/cycle.py
"""
Decision Cycle Orchestrator.

Once per interval:

    1. skip entirely if an action is in flight (when synchronizing)
    2. build a sensor snapshot
    3. update behavioral memory, check for a stuck pattern
    4. stuck: take the override; otherwise ask the policy source and
       validate its reply (a bad reply ends the cycle)
    5. record the chosen action
    6. execute it
    7. attach the outcome to behavioral memory (history is written by
       the executor)

Nothing here raises out of ``run_once``; every failure degrades to
"no action this cycle".
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..behavior.memory import BehavioralMemory
from ..config.engine_config import DecisionConfig
from ..exceptions import ActionValidationError, ExecutorBusyError, PolicySourceError
from ..execution.actions import Action, extract_action
from ..execution.executor import ActionExecutor
from ..execution.history import Outcome
from ..goals.scheduler import GoalScheduler
from ..logging_config import log_display
from ..policy.source import PolicyContext, PolicySource
from ..world.interfaces import Sensor

logger = logging.getLogger(__name__)


class CycleStatus(str, Enum):
    EXECUTED = "executed"
    SKIPPED_BUSY = "skipped_busy"
    NO_DECISION = "no_decision"
    INVALID_ACTION = "invalid_action"
    ERROR = "error"


@dataclass
class CycleResult:
    """What one decision cycle did."""
    status: CycleStatus
    action: Optional[Action] = None
    outcome: Optional[Outcome] = None
    source: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "action": self.action.to_dict() if self.action else None,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "source": self.source,
            "error": self.error,
        }


class DecisionCycle:
    """Top-level decide-and-act loop."""

    def __init__(
        self,
        sensor: Sensor,
        executor: ActionExecutor,
        memory: BehavioralMemory,
        policy_source: PolicySource,
        scheduler: Optional[GoalScheduler] = None,
        config: Optional[DecisionConfig] = None,
        recommendation: Optional[Callable[[], Optional[str]]] = None,
        history_window: int = 5,
    ):
        self.sensor = sensor
        self.executor = executor
        self.memory = memory
        self.policy_source = policy_source
        self.scheduler = scheduler
        self.config = config or DecisionConfig()
        self._recommendation = recommendation
        self.history_window = history_window

        self.last_decision: Optional[Action] = None
        self.last_decision_source: Optional[str] = None
        self.last_result: Optional[CycleResult] = None
        self.cycles_run = 0
        self.actions_executed = 0

        self._running = False
        self._loop_task: Optional[asyncio.Task] = None

    # ── one cycle ────────────────────────────────────────────────

    def build_context(self, snapshot) -> PolicyContext:
        """Policy context for a decision about ``snapshot``."""
        return PolicyContext(
            purpose="decision",
            snapshot=snapshot.to_dict(),
            goals=self.scheduler.goal_statuses(snapshot) if self.scheduler else [],
            behavior=self.memory.status(),
            history=[e.to_dict() for e in self.executor.history.recent(self.history_window)],
            recommendation=self._recommendation() if self._recommendation else None,
            last_decision=self.last_decision.to_dict() if self.last_decision else None,
        )

    async def run_once(self) -> CycleResult:
        """Run a single decision cycle."""
        result = await self._run_once()
        self.cycles_run += 1
        self.last_result = result
        return result

    async def _run_once(self) -> CycleResult:
        state = self.executor.state
        if self.config.synchronize and not state.is_empty:
            logger.debug("Action still in flight, skipping decision cycle")
            return CycleResult(CycleStatus.SKIPPED_BUSY)

        try:
            snapshot = self.sensor.snapshot()
        except Exception as e:
            logger.error(f"Sensor snapshot failed: {e}", exc_info=True)
            return CycleResult(CycleStatus.ERROR, error=f"snapshot failed: {e}")

        self.memory.update_position(snapshot.position)

        if self.memory.is_stuck():
            if not state.is_empty:
                logger.info(f"Stuck, but the Actuator is held by {state.owner}; override waits for the next cycle")
                return CycleResult(CycleStatus.SKIPPED_BUSY, source="override")
            action = self.memory.suggest_override(snapshot)
            source = "override"
        else:
            action = None
            source = "policy"
        if action is None:
            try:
                text = await self.policy_source.propose(self.build_context(snapshot))
            except PolicySourceError as e:
                logger.warning(f"No decision this cycle: {e}")
                return CycleResult(CycleStatus.NO_DECISION, source=source, error=str(e))
            try:
                action = extract_action(text)
            except ActionValidationError as e:
                excerpt = (e.raw or "")[:200].replace("\n", " ")
                logger.warning(f"Discarding policy reply: {e} | raw: {excerpt!r}")
                return CycleResult(CycleStatus.INVALID_ACTION, source=source, error=str(e))

        if not state.is_empty:
            logger.info(f"Actuator taken while deciding, dropping {action.describe()}")
            return CycleResult(CycleStatus.SKIPPED_BUSY, action=action, source=source)

        self.memory.record(action)
        self.last_decision = action
        self.last_decision_source = source

        try:
            outcome = await self.executor.execute(action)
        except ExecutorBusyError as e:
            logger.warning(f"Executor busy: {e}")
            return CycleResult(CycleStatus.SKIPPED_BUSY, action=action, source=source, error=str(e))

        self.memory.record_outcome(outcome)
        self.actions_executed += 1
        return CycleResult(CycleStatus.EXECUTED, action=action, outcome=outcome, source=source)

    # ── automatic mode ───────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the automatic loop. Idempotent."""
        if self._running:
            return
        self._running = True
        self._loop_task = asyncio.create_task(self._decision_loop())
        log_display(logger, logging.INFO, f"Decision loop started (every {self.config.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the automatic loop and wait for it to finish."""
        self._running = False
        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        log_display(logger, logging.INFO, "Decision loop stopped")

    async def _decision_loop(self) -> None:
        while self._running:
            if self.actions_executed >= self.config.max_actions:
                log_display(
                    logger, logging.WARNING,
                    f"Reached max_actions ({self.config.max_actions}), stopping decision loop",
                )
                self._running = False
                break
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Decision cycle crashed: {e}", exc_info=True)
            await asyncio.sleep(self.config.interval_seconds)

    def status(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "interval_seconds": self.config.interval_seconds,
            "cycles_run": self.cycles_run,
            "actions_executed": self.actions_executed,
            "max_actions": self.config.max_actions,
            "last_decision": self.last_decision.to_dict() if self.last_decision else None,
            "last_decision_source": self.last_decision_source,
            "last_result": self.last_result.to_dict() if self.last_result else None,
        }
