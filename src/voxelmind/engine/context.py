# src/voxelmind/engine/context.py
"""
Engine context.

``EngineContext`` owns every engine component for one embodied agent:
execution state, history, executor, behavioral memory, goal scheduler,
goal advisor and decision cycle. It is built once at startup and torn
down on shutdown; nothing in the engine is a module-level singleton.

Example:
    engine = EngineContext.from_config(sensor, actuator, load_engine_config(config_path=path))
    await engine.start()
    ...
    await engine.stop()
"""

import asyncio
import logging
import random
import time
from typing import Any, Callable, Dict, Iterable, Optional

from ..behavior.memory import BehavioralMemory
from ..config.engine_config import EngineConfig
from ..exceptions import ExecutorBusyError
from ..execution.actions import Action
from ..execution.executor import ActionExecutor
from ..execution.history import ActionHistory, Outcome
from ..execution.state import ActionExecutionState
from ..goals.advisor import GoalAdvisor
from ..goals.base import Goal
from ..goals.builtin import default_goals
from ..goals.scheduler import GoalScheduler
from ..policy.source import OllamaPolicySource, PolicySource
from ..world.interfaces import Actuator, Sensor
from ..world.snapshot import SensorSnapshot
from .cycle import DecisionCycle

logger = logging.getLogger(__name__)


class EngineContext:
    """Explicit owner of the decision and execution engine."""

    def __init__(
        self,
        sensor: Sensor,
        actuator: Actuator,
        policy_source: PolicySource,
        config: Optional[EngineConfig] = None,
        goals: Optional[Iterable[Goal]] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Build every component.

        Args:
            sensor: World view.
            actuator: World effects.
            policy_source: External advisor for decisions and priorities.
            config: Engine configuration; defaults if omitted.
            goals: Goals to register; the built-in set if omitted.
            rng: Random source for relocations and exploration targets.
            clock: Monotonic clock in seconds.
        """
        self.config = config or EngineConfig()
        self.sensor = sensor
        self.actuator = actuator
        self.policy_source = policy_source
        self._clock = clock

        self.execution_state = ActionExecutionState(clock)
        self.history = ActionHistory(self.config.history.max_entries)
        self.executor = ActionExecutor(
            sensor, actuator, self.config.executor, self.history, self.execution_state, clock=clock
        )
        self.memory = BehavioralMemory(self.config.behavior, rng=rng, clock=clock)
        self.scheduler = GoalScheduler(
            sensor, actuator, self.config.scheduler, self.execution_state, clock=clock
        )
        for goal in (goals if goals is not None else default_goals(rng)):
            self.scheduler.register(goal)
        self.advisor = GoalAdvisor(
            self.scheduler,
            policy_source,
            self.config.advisor,
            memory=self.memory,
            override_quiet_seconds=self.config.decision.interval_seconds,
            clock=clock,
        )
        self.cycle = DecisionCycle(
            sensor,
            self.executor,
            self.memory,
            policy_source,
            scheduler=self.scheduler,
            config=self.config.decision,
            recommendation=lambda: self.advisor.latest_recommendation,
        )

        self._running = False
        self._tasks: list[asyncio.Task] = []

    @classmethod
    def from_config(
        cls,
        sensor: Sensor,
        actuator: Actuator,
        config: Optional[EngineConfig] = None,
        **kwargs: Any,
    ) -> "EngineContext":
        """Build an engine with the policy source named in ``config.policy``."""
        config = config or EngineConfig()
        return cls(sensor, actuator, OllamaPolicySource(config.policy), config, **kwargs)

    # ── lifecycle ────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self, decisions: bool = True) -> None:
        """
        Start the scheduler and advisor loops, and optionally the decision loop.

        Idempotent.
        """
        if not self._running:
            self._running = True
            self._tasks = [
                asyncio.create_task(self._scheduler_loop(), name="voxelmind-scheduler"),
                asyncio.create_task(self._advisor_loop(), name="voxelmind-advisor"),
            ]
            logger.info("Engine started")
        if decisions:
            await self.cycle.start()

    async def stop(self) -> None:
        """Stop all loops, stop active goals and release the policy source."""
        await self.cycle.stop()
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        self.scheduler.stop_all("engine shutdown")
        await self.policy_source.close()
        logger.info("Engine stopped")

    async def _scheduler_loop(self) -> None:
        interval = self.config.scheduler.tick_interval_ms / 1000
        while self._running:
            await self.scheduler.tick()
            await asyncio.sleep(interval)

    async def _advisor_loop(self) -> None:
        while self._running:
            try:
                await self.advisor.evaluate()
            except Exception as e:
                logger.error(f"Goal advisor crashed: {e}", exc_info=True)
            await asyncio.sleep(self.config.advisor.interval_seconds)

    # ── single-shot operations ───────────────────────────────────

    def snapshot(self) -> SensorSnapshot:
        return self.sensor.snapshot()

    async def execute(self, action: Action) -> Outcome:
        """
        Execute one ad-hoc action immediately.

        Raises:
            ExecutorBusyError: If another action is in flight.
        """
        if not self.execution_state.is_empty:
            raise ExecutorBusyError()
        return await self.executor.execute(action)

    def is_stuck(self) -> bool:
        return self.memory.is_stuck()

    def status(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "execution": self.execution_state.to_dict(),
            "decision": self.cycle.status(),
            "scheduler": self.scheduler.status(),
            "behavior": self.memory.status(),
            "advisor": self.advisor.status(),
            "history_size": len(self.history),
        }
