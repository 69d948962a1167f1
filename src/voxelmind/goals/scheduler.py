# src/voxelmind/goals/scheduler.py
"""
Goal Scheduler.

Owns the goal registry and a bounded active set. Each tick:

    1. refresh the sensor snapshot
    2. stop active goals that timed out or fail their continuation check
    3. activate the highest-priority eligible goals into free slots
       (no preemption of goals already running)
    4. tick the active goals in priority order; a goal ticks only while
       the Actuator is free or already its own

A goal that issues a request keeps the shared ``ActionExecutionState``
under its owner token until the request settles or the goal stops, so
at most one goal request or executor Action controls the Actuator.

A failing goal is stopped; the scheduler itself never raises out of
``tick``.

Example:
    scheduler = GoalScheduler(sensor, actuator, config.scheduler, state)
    for goal in default_goals():
        scheduler.register(goal)
    await scheduler.tick()
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Set

from ..config.engine_config import SchedulerConfig
from ..execution.state import ActionExecutionState, goal_owner
from ..world.interfaces import Actuator, ActuatorRequest, Sensor
from ..world.snapshot import SensorSnapshot
from .base import Goal, GoalContext

logger = logging.getLogger(__name__)


class GoalScheduler:
    """Priority-based goal activation and ticking."""

    def __init__(
        self,
        sensor: Sensor,
        actuator: Actuator,
        config: Optional[SchedulerConfig] = None,
        execution_state: Optional[ActionExecutionState] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.sensor = sensor
        self.actuator = actuator
        self.config = config or SchedulerConfig()
        self.execution_state = execution_state or ActionExecutionState(clock)
        self._clock = clock

        self._registry: List[Goal] = []
        self._order: Dict[str, int] = {}
        self._active: List[Goal] = []
        self._watched: Dict[str, ActuatorRequest] = {}

        self.snapshot: Optional[SensorSnapshot] = None
        self.last_tick_at: Optional[float] = None
        self.tick_count = 0
        self.goal_errors = 0
        self.deferred_ticks = 0

    # ── registry ─────────────────────────────────────────────────

    def register(self, goal: Goal) -> bool:
        """Add ``goal``. Returns False if a goal with that name is already registered."""
        if goal.name in self._order:
            logger.debug(f"Goal already registered: {goal.name}")
            return False
        self._order[goal.name] = len(self._order)
        self._registry.append(goal)
        logger.info(f"Registered goal: {goal.name} (base priority {goal.base_priority})")
        return True

    def get(self, name: str) -> Optional[Goal]:
        for goal in self._registry:
            if goal.name == name:
                return goal
        return None

    @property
    def goals(self) -> List[Goal]:
        return list(self._registry)

    @property
    def active_goals(self) -> List[Goal]:
        return list(self._active)

    # ── ticking ──────────────────────────────────────────────────

    async def tick(self, now: Optional[float] = None) -> bool:
        """
        Run one scheduling pass.

        Args:
            now: Monotonic time in seconds; the scheduler clock if omitted.

        Returns:
            False when skipped because the tick interval has not elapsed.
        """
        now = self._clock() if now is None else now
        if self.last_tick_at is not None and (now - self.last_tick_at) * 1000 < self.config.tick_interval_ms:
            return False
        self.last_tick_at = now
        self.tick_count += 1

        try:
            snapshot = self.sensor.snapshot()
        except Exception as e:
            logger.error(f"Sensor snapshot failed, skipping scheduler tick: {e}", exc_info=True)
            return True
        self.snapshot = snapshot

        stopped = self._expire(now, snapshot)
        self._activate(now, snapshot, exclude=stopped)
        await self._tick_active(now, snapshot)
        return True

    def _expire(self, now: float, snapshot: SensorSnapshot) -> Set[str]:
        """Stop expired or ineligible goals; returns the names stopped."""
        stopped: Set[str] = set()
        for goal in list(self._active):
            if not goal.is_active:
                self._active.remove(goal)
                self._release(goal)
                continue
            if goal.elapsed(now) > self.config.persistence_timeout_seconds:
                self._stop(goal, "persistence timeout")
                self._active.remove(goal)
                stopped.add(goal.name)
                continue
            try:
                keep = goal.can_continue(snapshot)
            except Exception as e:
                logger.error(f"Continuation check of {goal.name} raised: {e}", exc_info=True)
                keep = False
            if not keep:
                self._stop(goal, "continuation check failed")
                self._active.remove(goal)
                stopped.add(goal.name)
        return stopped

    def _priority(self, goal: Goal, snapshot: SensorSnapshot) -> int:
        try:
            return goal.dynamic_priority(snapshot)
        except Exception as e:
            logger.error(f"Dynamic priority of {goal.name} raised: {e}", exc_info=True)
            return goal.base_priority

    def _activate(self, now: float, snapshot: SensorSnapshot, exclude: Set[str] = frozenset()) -> None:
        priorities = {goal.name: self._priority(goal, snapshot) for goal in self._registry}
        self._registry.sort(key=lambda g: (-priorities[g.name], self._order[g.name]))

        free = self.config.max_active_goals - len(self._active)
        if free <= 0:
            return
        for goal in self._registry:
            if free == 0:
                break
            if goal.is_active or goal.name in exclude:
                continue
            try:
                eligible = goal.can_use(snapshot)
            except Exception as e:
                logger.error(f"Activation check of {goal.name} raised: {e}", exc_info=True)
                eligible = False
            if eligible:
                goal.start(now)
                self._active.append(goal)
                free -= 1

    def _by_priority(self, snapshot: SensorSnapshot) -> List[Goal]:
        return sorted(self._active, key=lambda g: (-self._priority(g, snapshot), self._order[g.name]))

    async def _tick_active(self, now: float, snapshot: SensorSnapshot) -> None:
        deferred = False
        for goal in self._by_priority(snapshot):
            if not goal.is_active:
                self._active.remove(goal)
                continue
            token = goal_owner(goal.name)
            holder = self.execution_state.owner
            if holder is not None and holder != token:
                deferred = True
                continue
            self.execution_state.claim(token)
            ctx = GoalContext(
                snapshot=snapshot,
                sensor=self.sensor,
                actuator=self.actuator,
                now=now,
                config=self.config,
            )
            try:
                await goal.tick(ctx)
            except Exception as e:
                self.goal_errors += 1
                logger.error(f"Goal {goal.name} tick failed: {e}", exc_info=True)
                goal.stop(f"tick error: {e}")
            finally:
                self._hold_while_pending(goal)
            if not goal.is_active and goal in self._active:
                self._active.remove(goal)
        if deferred:
            self.deferred_ticks += 1
            logger.debug(f"Actuator held by {self.execution_state.owner}, deferring other goals")

    # ── actuator ownership ───────────────────────────────────────

    def _hold_while_pending(self, goal: Goal) -> None:
        """Keep the goal's owner token while its request is outstanding, else release it."""
        request = goal.pending_request
        if goal.is_active and request is not None and not request.done():
            if self._watched.get(goal.name) is not request:
                self._watched[goal.name] = request
                request.add_done_callback(lambda _r: self._release_if_idle(goal))
            return
        self._release(goal)

    def _release_if_idle(self, goal: Goal) -> None:
        request = goal.pending_request
        if goal.is_active and request is not None and not request.done():
            return
        self._release(goal)

    def _release(self, goal: Goal) -> None:
        self._watched.pop(goal.name, None)
        if self.execution_state.release(goal_owner(goal.name)):
            logger.debug(f"Goal {goal.name} released the Actuator")

    def _stop(self, goal: Goal, reason: str) -> None:
        goal.stop(reason)
        self._release(goal)

    def stop_all(self, reason: str = "scheduler stopped") -> None:
        for goal in list(self._active):
            self._stop(goal, reason)
        self._active.clear()

    # ── reporting ────────────────────────────────────────────────

    def goal_statuses(self, snapshot: Optional[SensorSnapshot] = None) -> List[Dict[str, Any]]:
        snapshot = snapshot or self.snapshot
        now = self._clock()
        statuses = []
        for goal in self._registry:
            try:
                statuses.append(goal.to_dict(snapshot, now))
            except Exception as e:
                logger.warning(f"Could not report status of {goal.name}: {e}")
                statuses.append({"name": goal.name, "state": goal.state.value, "error": str(e)})
        return statuses

    def status(self) -> Dict[str, Any]:
        return {
            "tick_count": self.tick_count,
            "max_active_goals": self.config.max_active_goals,
            "active": [g.name for g in self._active],
            "goal_errors": self.goal_errors,
            "deferred_ticks": self.deferred_ticks,
            "goals": self.goal_statuses(),
        }
