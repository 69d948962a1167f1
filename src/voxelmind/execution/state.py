# src/voxelmind/execution/state.py
"""
Single-owner flag for the Actuator.

Exactly one logical action may be in control of the Actuator at a time,
whether it is an executor Action or a goal's outstanding request. The
executor occupies the state with ``begin``; the goal scheduler occupies it
with ``claim`` under a per-goal owner token and releases it once the goal
has nothing outstanding. Everyone else sees ``is_empty`` as False.
"""

import time
from typing import Any, Callable, Dict, Optional

from ..exceptions import ExecutorBusyError
from .actions import Action

EXECUTOR_OWNER = "executor"


def goal_owner(name: str) -> str:
    """Owner token for goal ``name``."""
    return f"goal:{name}"


class ActionExecutionState:
    """At most one owner of the Actuator plus its start timestamp, or empty."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._owner: Optional[str] = None
        self._action: Optional[Action] = None
        self._started_at: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return self._owner is None

    @property
    def owner(self) -> Optional[str]:
        return self._owner

    @property
    def current(self) -> Optional[Action]:
        """The executor Action in flight; None when empty or held by a goal."""
        return self._action

    @property
    def started_at(self) -> Optional[float]:
        return self._started_at

    def is_held_by(self, owner: str) -> bool:
        return self._owner == owner

    def begin(self, action: Action) -> float:
        """
        Occupy the state with ``action``.

        Returns:
            The start timestamp.

        Raises:
            ExecutorBusyError: If the Actuator already has an owner.
        """
        if self._owner is not None:
            raise ExecutorBusyError(
                f"Cannot start {action.action.value}: {self._describe_owner()} is still in flight."
            )
        self._owner = EXECUTOR_OWNER
        self._action = action
        self._started_at = self._clock()
        return self._started_at

    def claim(self, owner: str) -> float:
        """
        Take the Actuator for ``owner``; re-claiming an owned state is a no-op.

        Raises:
            ExecutorBusyError: If someone else holds it.
        """
        if self._owner == owner:
            return self._started_at
        if self._owner is not None:
            raise ExecutorBusyError(f"Cannot hand the Actuator to {owner}: held by {self._describe_owner()}.")
        self._owner = owner
        self._started_at = self._clock()
        return self._started_at

    def release(self, owner: str) -> bool:
        """Clear the state if ``owner`` holds it. Returns whether it did."""
        if self._owner != owner:
            return False
        self.clear()
        return True

    def clear(self) -> None:
        self._owner = None
        self._action = None
        self._started_at = None

    def elapsed(self) -> float:
        """Seconds the current owner has held the Actuator (0 when empty)."""
        if self._started_at is None:
            return 0.0
        return self._clock() - self._started_at

    def _describe_owner(self) -> str:
        if self._action is not None:
            return self._action.action.value
        return self._owner or "nothing"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "busy": not self.is_empty,
            "owner": self._owner,
            "action": self._action.to_dict() if self._action else None,
            "elapsed_seconds": round(self.elapsed(), 2),
        }
