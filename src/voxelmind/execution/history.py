# src/voxelmind/execution/history.py
"""
Action outcomes and the bounded action history.
"""

import itertools
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from .actions import Action


class OutcomeKind(str, Enum):
    """Terminal result of one executed action."""
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class Outcome:
    """
    What happened when an action ran.

    Attributes:
        kind: Terminal result.
        reason: Failure description for FAILED and TIMED_OUT.
        detail: Free-form note for COMPLETED (e.g. "mined 4/5 logs").
        noop: True when the action completed without touching the world
            (nothing to eat, no target in range, already at the target).
    """

    kind: OutcomeKind
    reason: Optional[str] = None
    detail: Optional[str] = None
    noop: bool = False

    @classmethod
    def completed(cls, detail: Optional[str] = None, noop: bool = False) -> "Outcome":
        return cls(OutcomeKind.COMPLETED, detail=detail, noop=noop)

    @classmethod
    def failed(cls, reason: str) -> "Outcome":
        return cls(OutcomeKind.FAILED, reason=reason)

    @classmethod
    def timed_out(cls, horizon_ms: int) -> "Outcome":
        return cls(OutcomeKind.TIMED_OUT, reason=f"exceeded horizon of {horizon_ms}ms")

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "reason": self.reason,
            "detail": self.detail,
            "noop": self.noop,
        }


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable record of one executed action."""

    seq: int
    action: Action
    outcome: Outcome
    duration_ms: int
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seq": self.seq,
            "action": self.action.to_dict(),
            "outcome": self.outcome.to_dict(),
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp.isoformat(),
        }


class ActionHistory:
    """Ordered, bounded sequence of HistoryEntry; oldest evicted first."""

    def __init__(self, max_entries: int = 15):
        self.max_entries = max_entries
        self._entries: deque[HistoryEntry] = deque(maxlen=max_entries)
        self._seq = itertools.count(1)

    def append(self, action: Action, outcome: Outcome, duration_ms: int) -> HistoryEntry:
        entry = HistoryEntry(
            seq=next(self._seq),
            action=action,
            outcome=outcome,
            duration_ms=max(0, int(duration_ms)),
            timestamp=datetime.now(timezone.utc),
        )
        self._entries.append(entry)
        return entry

    def recent(self, count: Optional[int] = None) -> List[HistoryEntry]:
        entries = list(self._entries)
        if count is None:
            return entries
        return entries[-count:] if count > 0 else []

    @property
    def last(self) -> Optional[HistoryEntry]:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(list(self._entries))

    def to_list(self) -> List[Dict[str, Any]]:
        return [entry.to_dict() for entry in self._entries]
