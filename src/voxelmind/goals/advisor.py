# src/voxelmind/goals/advisor.py
"""
Strategic goal advisor.

Periodically asks the policy source which goals matter most right now and
nudges their base priorities. The advisor is the only component that
changes priorities; behavioral overrides never do. While an override
issued within the last decision interval is still fresh the advisor defers,
so an override always has the cycle it fired in to itself.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from ..behavior.memory import BehavioralMemory
from ..config.engine_config import AdvisorConfig
from ..exceptions import ActionValidationError, PolicySourceError
from ..execution.actions import extract_json_object
from ..policy.source import PolicyContext, PolicySource
from .scheduler import GoalScheduler

logger = logging.getLogger(__name__)


class GoalAdvisor:
    """Applies policy-suggested priority adjustments to registered goals."""

    def __init__(
        self,
        scheduler: GoalScheduler,
        policy_source: PolicySource,
        config: Optional[AdvisorConfig] = None,
        memory: Optional[BehavioralMemory] = None,
        override_quiet_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.scheduler = scheduler
        self.policy_source = policy_source
        self.config = config or AdvisorConfig()
        self.memory = memory
        self.override_quiet_seconds = override_quiet_seconds
        self._clock = clock

        self.latest_recommendation: Optional[str] = None
        self.last_evaluated_at: Optional[float] = None
        self.last_adjustments: Dict[str, int] = {}
        self.evaluations = 0

    def _override_is_fresh(self, now: float) -> bool:
        if self.memory is None or self.memory.last_override_at is None:
            return False
        return now - self.memory.last_override_at < self.override_quiet_seconds

    async def evaluate(self, now: Optional[float] = None) -> Optional[Dict[str, int]]:
        """
        Consult the policy source if the advisor interval has elapsed.

        Returns:
            Mapping of goal name to new base priority, an empty dict when
            deferred, or None when skipped or the advice was unusable.
        """
        if not self.config.enabled:
            return None
        now = self._clock() if now is None else now
        if self.last_evaluated_at is not None and now - self.last_evaluated_at < self.config.interval_seconds:
            return None
        snapshot = self.scheduler.snapshot
        if snapshot is None:
            return None
        self.last_evaluated_at = now

        if self._override_is_fresh(now):
            logger.info("Behavioral override is fresh, deferring priority advice")
            return {}

        context = PolicyContext(
            purpose="strategy",
            snapshot=snapshot.to_dict(),
            goals=self.scheduler.goal_statuses(snapshot),
            behavior=self.memory.status() if self.memory else {},
        )
        try:
            text = await self.policy_source.propose(context)
            payload = extract_json_object(text)
        except PolicySourceError as e:
            logger.warning(f"Goal advisor skipped: {e}")
            return None
        except ActionValidationError as e:
            logger.warning(f"Goal advisor reply unusable: {e}")
            return None

        self.evaluations += 1
        return self.apply(payload)

    def apply(self, payload: Dict[str, Any]) -> Dict[str, int]:
        """Apply ``{"goals": [{"name", "priority_adjustment"}], "recommendation"}``."""
        changes: Dict[str, int] = {}
        for item in payload.get("goals") or []:
            if not isinstance(item, dict):
                continue
            goal = self.scheduler.get(str(item.get("name", "")))
            try:
                adjustment = int(item.get("priority_adjustment", 0))
            except (TypeError, ValueError):
                continue
            if goal is None or adjustment == 0:
                continue
            new_priority = max(
                self.config.min_priority,
                min(self.config.max_priority, goal.base_priority + adjustment),
            )
            if new_priority != goal.base_priority:
                logger.info(f"Advisor: {goal.name} priority {goal.base_priority} -> {new_priority}")
                goal.base_priority = new_priority
                changes[goal.name] = new_priority

        recommendation = payload.get("recommendation")
        if isinstance(recommendation, str) and recommendation.strip():
            self.latest_recommendation = recommendation.strip()
        self.last_adjustments = changes
        return changes

    def status(self) -> Dict[str, Any]:
        return {
            "enabled": self.config.enabled,
            "evaluations": self.evaluations,
            "last_adjustments": dict(self.last_adjustments),
            "latest_recommendation": self.latest_recommendation,
        }
