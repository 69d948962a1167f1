# src/voxelmind/behavior/memory.py
"""
Behavioral Memory and stuck override.

Tracks the signatures of recently chosen actions to notice when the
decision loop keeps choosing the same thing, and proposes a local
override action that breaks the pattern without consulting the policy
source.

Override branches, checked in order once stuck:
    1. failure_loop: repeated failed extractions nearby -> leave the area
    2. proximity: a tree or ore within reach radius -> extract it
    3. relocate: nothing useful nearby -> walk somewhere random
"""

import logging
import math
import random
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional

from ..config.engine_config import BehaviorConfig
from ..execution.actions import Action, ActionKind, EXTRACTION_KINDS
from ..execution.history import Outcome
from ..world.geometry import Vec3, point_at_distance
from ..world.snapshot import ResourceCategory, SensorSnapshot

logger = logging.getLogger(__name__)


@dataclass
class MemoryEntry:
    """One recorded decision. ``outcome`` is filled in after execution."""
    signature: str
    action: Action
    timestamp: float
    outcome: Optional[Outcome] = None

    @property
    def failed(self) -> bool:
        return self.outcome is not None and not self.outcome.ok


class BehavioralMemory:
    """
    Ring buffer of recent action signatures with consecutive-repeat counts.

    Only the signature of the latest run ever has a non-zero count:
    recording a signature increments its own count and drops every other.
    """

    def __init__(
        self,
        config: Optional[BehaviorConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or BehaviorConfig()
        self._rng = rng or random.Random()
        self._clock = clock
        self._entries: Deque[MemoryEntry] = deque(maxlen=self.config.memory_depth)
        self._counts: Dict[str, int] = {}
        self._stuck = False
        self._positions: Deque[Vec3] = deque(maxlen=self.config.position_history)
        self.last_override_at: Optional[float] = None
        self.last_override_branch: Optional[str] = None
        self.override_count = 0

    # ── recording ────────────────────────────────────────────────

    def record(self, action: Action) -> str:
        """Record a chosen action and return its signature."""
        signature = action.signature()
        self._entries.append(MemoryEntry(signature, action, self._clock()))
        self._counts = {signature: self._counts.get(signature, 0) + 1}
        if self._counts[signature] >= self.config.stuck_threshold and not self._stuck:
            logger.warning(
                f"Stuck: '{signature}' chosen {self._counts[signature]} times in a row"
            )
        self._stuck = self._counts[signature] >= self.config.stuck_threshold
        return signature

    def record_outcome(self, outcome: Outcome) -> None:
        """Attach the execution outcome to the most recent entry."""
        if self._entries and self._entries[-1].outcome is None:
            self._entries[-1].outcome = outcome

    def update_position(self, position: Vec3) -> None:
        self._positions.append(position)

    def consecutive_count(self, signature: str) -> int:
        return self._counts.get(signature, 0)

    def recent_signatures(self, count: Optional[int] = None) -> List[str]:
        signatures = [e.signature for e in self._entries]
        return signatures if count is None else signatures[-count:]

    # ── stuck detection ──────────────────────────────────────────

    def is_stuck(self) -> bool:
        return self._stuck

    def reset(self) -> None:
        """Clear repeat counts and the stuck flag."""
        self._counts = {}
        self._stuck = False

    def is_stationary(self, tolerance: float = 1.0) -> bool:
        """True when every tracked position lies within ``tolerance`` of the first."""
        if len(self._positions) < self._positions.maxlen:
            return False
        first = self._positions[0]
        return all(p.distance_to(first) <= tolerance for p in self._positions)

    def failed_extractions(self, now: Optional[float] = None) -> int:
        """Failed extraction attempts among recent entries inside the override window."""
        now = self._clock() if now is None else now
        window_start = now - self.config.override_window_seconds
        recent = list(self._entries)[-self.config.failure_lookback:]
        return sum(
            1 for entry in recent
            if entry.action.action in EXTRACTION_KINDS
            and entry.timestamp >= window_start
            and entry.failed
        )

    # ── override ─────────────────────────────────────────────────

    def suggest_override(self, snapshot: SensorSnapshot) -> Optional[Action]:
        """
        Propose an action that breaks the current repetition.

        Returns None unless stuck. Any returned action comes with the repeat
        counts reset and the stuck flag cleared.
        """
        if not self._stuck:
            return None

        now = self._clock()
        stuck_signature = next(iter(self._counts), None)

        if self.failed_extractions(now) >= self.config.failure_threshold:
            branch = "failure_loop"
            action = self._relocation(snapshot.position, self.config.failure_relocation_distance, stuck_signature)
        else:
            nearby = snapshot.resources_of(
                [ResourceCategory.TREE, ResourceCategory.ORE], radius=self.config.proximity_radius
            )
            if nearby:
                branch = "proximity"
                target = nearby[0]
                kind = ActionKind.MINE_TREE if target.category is ResourceCategory.TREE else ActionKind.MINE_AT
                action = Action(action=kind, args=target.position.to_dict())
            else:
                branch = "relocate"
                action = self._relocation(snapshot.position, self.config.relocation_distance, stuck_signature)

        self.reset()
        self.last_override_at = now
        self.last_override_branch = branch
        self.override_count += 1
        logger.warning(f"Override ({branch}) replacing '{stuck_signature}' with {action.describe()}")
        return action

    def _relocation(self, origin: Vec3, distance: float, avoid: Optional[str]) -> Action:
        for _ in range(4):
            angle = self._rng.uniform(0.0, 2 * math.pi)
            target = point_at_distance(origin, angle, distance)
            action = Action(action=ActionKind.EXPLORE, args={**target.to_dict(), "radius": 3.0})
            if action.signature() != avoid:
                break
        return action

    def status(self) -> Dict[str, Any]:
        return {
            "stuck": self._stuck,
            "threshold": self.config.stuck_threshold,
            "consecutive": dict(self._counts),
            "recent_signatures": self.recent_signatures(10),
            "failed_extractions": self.failed_extractions(),
            "override_count": self.override_count,
            "last_override_branch": self.last_override_branch,
            "last_override_at": self.last_override_at,
            "positions": [p.to_dict() for p in self._positions],
            "stationary": self.is_stationary(),
        }
