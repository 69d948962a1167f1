# src/voxelmind/goals/base.py
"""
Goal base class.

A Goal is a long-lived behavioral objective. It is registered once with
the GoalScheduler and then activated and stopped many times. Subclasses
implement:

    can_use(snapshot)          -> may this goal be activated now?
    can_continue(snapshot)     -> should an active goal keep running?
    dynamic_priority(snapshot) -> pure urgency score (no side effects)
    on_tick(ctx)               -> issue at most one Actuator request

Requests are never awaited inside a tick. The goal stores the pending
``ActuatorRequest`` and later ticks poll it, so the scheduler tick stays
short and never blocks on the world.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..config.engine_config import SchedulerConfig
from ..world.interfaces import Actuator, ActuatorRequest, Sensor
from ..world.snapshot import SensorSnapshot

logger = logging.getLogger(__name__)


class GoalState(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"


@dataclass
class GoalContext:
    """Per-tick inputs handed to a goal."""
    snapshot: SensorSnapshot
    sensor: Sensor
    actuator: Actuator
    now: float
    config: SchedulerConfig


class Goal:
    """
    Base class for behavioral objectives.

    Attributes:
        name: Unique identity within the scheduler.
        base_priority: Fixed priority; the advisor may adjust it.
        state: INACTIVE or ACTIVE.
        started_at: Monotonic activation time; set iff ACTIVE.
        last_tick_at: Time of the most recent tick.
        metadata: Goal-local working data, cleared on every start.
    """

    def __init__(self, name: str, priority: int):
        self.name = name
        self.base_priority = priority
        self.state = GoalState.INACTIVE
        self.started_at: Optional[float] = None
        self.last_tick_at: Optional[float] = None
        self.metadata: Dict[str, Any] = {}
        self.activation_count = 0
        self.last_stop_reason: Optional[str] = None
        self._pending: Optional[ActuatorRequest] = None
        self._pending_cancel: Optional[Callable[[], None]] = None

    # ── eligibility ──────────────────────────────────────────────

    def can_use(self, snapshot: SensorSnapshot) -> bool:
        raise NotImplementedError

    def can_continue(self, snapshot: SensorSnapshot) -> bool:
        return True

    def dynamic_priority(self, snapshot: SensorSnapshot) -> int:
        return self.base_priority

    # ── lifecycle ────────────────────────────────────────────────

    @property
    def is_active(self) -> bool:
        return self.state is GoalState.ACTIVE

    def start(self, now: float) -> None:
        if self.is_active:
            return
        self.state = GoalState.ACTIVE
        self.started_at = now
        self.last_tick_at = None
        self.metadata = {}
        self.activation_count += 1
        self.last_stop_reason = None
        logger.info(f"Goal started: {self.name}")
        self.on_start(now)

    def stop(self, reason: str = "stopped") -> None:
        if not self.is_active:
            return
        self._cancel_pending(reason)
        self.state = GoalState.INACTIVE
        self.started_at = None
        self.last_stop_reason = reason
        logger.info(f"Goal stopped: {self.name} ({reason})")
        self.on_stop(reason)

    def elapsed(self, now: float) -> float:
        return 0.0 if self.started_at is None else now - self.started_at

    async def tick(self, ctx: GoalContext) -> None:
        """
        Advance the goal by one step.

        While a previously issued request is pending nothing happens. When
        it settles, ``on_request_finished`` sees it before ``on_tick``.
        """
        self.last_tick_at = ctx.now
        if self._pending is not None:
            if not self._pending.done():
                return
            finished, self._pending, self._pending_cancel = self._pending, None, None
            self.on_request_finished(finished, ctx)
            if not self.is_active:
                return
        await self.on_tick(ctx)

    # ── subclass hooks ───────────────────────────────────────────

    def on_start(self, now: float) -> None:
        pass

    def on_stop(self, reason: str) -> None:
        pass

    async def on_tick(self, ctx: GoalContext) -> None:
        raise NotImplementedError

    def on_request_finished(self, request: ActuatorRequest, ctx: GoalContext) -> None:
        if not request.succeeded:
            logger.debug(f"{self.name}: {request.operation} failed ({request.failure_reason})")

    # ── request tracking ─────────────────────────────────────────

    def issue(self, request: ActuatorRequest, cancel: Optional[Callable[[], None]] = None) -> ActuatorRequest:
        """
        Remember ``request`` as this goal's single outstanding side effect.

        The scheduler keeps the Actuator for this goal until the request
        settles or the goal stops.
        """
        self._pending = request
        self._pending_cancel = cancel
        return request

    @property
    def pending_request(self) -> Optional[ActuatorRequest]:
        return self._pending

    def _cancel_pending(self, reason: str) -> None:
        request, cancel = self._pending, self._pending_cancel
        self._pending = None
        self._pending_cancel = None
        if request is None or request.done():
            return
        if cancel is not None:
            try:
                cancel()
            except Exception as e:
                logger.warning(f"{self.name}: cancelling {request.operation} raised {e!r}")
        request.cancel(f"goal stopped: {reason}")

    def to_dict(self, snapshot: Optional[SensorSnapshot] = None, now: Optional[float] = None) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "state": self.state.value,
            "base_priority": self.base_priority,
            "activation_count": self.activation_count,
            "last_stop_reason": self.last_stop_reason,
            "pending": self._pending.operation if self._pending and not self._pending.done() else None,
        }
        if snapshot is not None:
            data["dynamic_priority"] = self.dynamic_priority(snapshot)
        if now is not None and self.is_active:
            data["elapsed_seconds"] = round(self.elapsed(now), 2)
        return data
