# src/voxelmind/execution/executor.py
"""
Action Executor.

Runs exactly one Action at a time against the Actuator, bounded by the
action's horizon. Whatever happens inside the handler (success, actuation
failure, horizon expiry, an unexpected bug, or the caller being
cancelled) the executor clears ``ActionExecutionState`` and appends one
``HistoryEntry`` before control returns.

Example:
    executor = ActionExecutor(sensor, actuator, config.executor, history)
    if executor.state.is_empty:
        outcome = await executor.execute(action)
"""

import asyncio
import logging
import time
from typing import Callable, Dict, Optional

from ..config.engine_config import ExecutorConfig
from ..exceptions import ActuationError, ConfigError
from ..world.interfaces import Actuator, Sensor
from .actions import Action, ActionKind, EXTRACTION_KINDS, NAVIGATION_KINDS
from .handlers import HANDLERS, Handler, HandlerContext
from .history import ActionHistory, Outcome
from .state import ActionExecutionState

logger = logging.getLogger(__name__)


class ActionExecutor:
    """Single-flight executor with per-kind handlers and horizon timeouts."""

    def __init__(
        self,
        sensor: Sensor,
        actuator: Actuator,
        config: ExecutorConfig,
        history: ActionHistory,
        state: Optional[ActionExecutionState] = None,
        handlers: Optional[Dict[ActionKind, Handler]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the executor.

        Args:
            sensor: World view used by handlers for positions and blocks.
            actuator: Effects in the world.
            config: Horizons, reach and navigation tuning.
            history: Where every executed action is recorded.
            state: Shared single-owner flag; a fresh one if omitted.
            handlers: Handler table override (defaults to ``HANDLERS``).
            clock: Monotonic clock in seconds.

        Raises:
            ConfigError: If any ActionKind has no handler.
        """
        self.config = config
        self.history = history
        self.state = state or ActionExecutionState(clock)
        self._clock = clock
        self._handlers = dict(handlers if handlers is not None else HANDLERS)
        missing = [kind.value for kind in ActionKind if kind not in self._handlers]
        if missing:
            raise ConfigError(f"No handler registered for action kinds: {', '.join(missing)}")
        self._ctx = HandlerContext(sensor=sensor, actuator=actuator, config=config, clock=clock)

    def default_horizon_ms(self, kind: ActionKind) -> int:
        if kind is ActionKind.MOVE:
            return self.config.move_horizon_ms
        if kind in NAVIGATION_KINDS:
            return self.config.movement_horizon_ms
        if kind in EXTRACTION_KINDS:
            return self.config.extraction_horizon_ms
        return self.config.default_horizon_ms

    def navigation_horizon_ms(self, action: Action) -> int:
        """
        Horizon sized from the travel estimate to the target.

        Swimming speed is assumed when the agent is in water. Never below
        ``movement_horizon_ms``.
        """
        try:
            snapshot = self._ctx.sensor.snapshot()
        except Exception as e:
            logger.warning(f"Cannot estimate travel time, using default horizon: {e}")
            return self.config.movement_horizon_ms
        estimate = self.config.travel_time_ms(
            snapshot.position.distance_to(action.target), snapshot.environment.in_water
        )
        return max(self.config.movement_horizon_ms, int(estimate * self.config.travel_timeout_factor))

    def horizon_for(self, action: Action) -> int:
        """Effective horizon in ms, clamped to the configured range."""
        if action.horizon_ms is not None:
            requested = action.horizon_ms
        elif action.action in NAVIGATION_KINDS:
            requested = self.navigation_horizon_ms(action)
        else:
            requested = self.default_horizon_ms(action.action)
        return self.config.clamp_horizon(requested)

    async def execute(self, action: Action) -> Outcome:
        """
        Run ``action`` to a terminal outcome.

        Args:
            action: A validated Action.

        Returns:
            The Outcome, also recorded in history.

        Raises:
            ExecutorBusyError: If another action is in flight. Callers are
                expected to check ``state.is_empty`` first.
        """
        horizon_ms = self.horizon_for(action)
        self.state.begin(action)
        started_at = self._clock()
        logger.info(f"Executing {action.describe()} (horizon {horizon_ms}ms)")

        handler = self._handlers[action.action]
        outcome: Optional[Outcome] = None
        try:
            outcome = await asyncio.wait_for(handler(action, self._ctx), timeout=horizon_ms / 1000)
        except asyncio.TimeoutError:
            outcome = Outcome.timed_out(horizon_ms)
        except ActuationError as e:
            outcome = Outcome.failed(e.reason)
        except asyncio.CancelledError:
            outcome = Outcome.failed("cancelled")
            raise
        except Exception as e:
            logger.error(f"Handler for {action.action.value} raised unexpectedly: {e}", exc_info=True)
            outcome = Outcome.failed(f"{type(e).__name__}: {e}")
        finally:
            self.state.clear()
            duration_ms = int((self._clock() - started_at) * 1000)
            entry = self.history.append(action, outcome or Outcome.failed("aborted"), duration_ms)
            self._log_outcome(entry.seq, action, entry.outcome, duration_ms)

        return outcome

    @staticmethod
    def _log_outcome(seq: int, action: Action, outcome: Outcome, duration_ms: int) -> None:
        if outcome.ok:
            note = f" ({outcome.detail})" if outcome.detail else ""
            logger.info(f"#{seq} {action.action.value} completed in {duration_ms}ms{note}")
        else:
            logger.warning(f"#{seq} {action.action.value} {outcome.kind.value} after {duration_ms}ms: {outcome.reason}")
