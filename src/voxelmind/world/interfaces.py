# src/voxelmind/world/interfaces.py
"""
Contracts for the world-facing collaborators.

The engine never talks to the simulated world directly. It reads a
``Sensor`` and drives an ``Actuator``. Every Actuator operation that takes
time returns an ``ActuatorRequest``: a handle around one future, keyed by a
unique request id and settled exactly once (resolved, failed or
cancelled). Bridges translate world events into ``RequestRegistry``
calls by request id, never by matching on target positions, so a late
event for an old target cannot settle the wrong waiter.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import Any, Optional, Protocol, runtime_checkable

from ..exceptions import ActuationError
from .geometry import Vec3
from .snapshot import SensorSnapshot

logger = logging.getLogger(__name__)


# =============================================================================
# ActuatorRequest
# =============================================================================


class ActuatorRequest:
    """
    Completion signal for one Actuator call.

    Example:
        request = registry.open("navigate_to", target)
        ...  # bridge later calls registry.resolve(request.request_id)
        await request.wait()
    """

    def __init__(
        self,
        request_id: str,
        operation: str,
        target: Optional[Vec3] = None,
    ):
        self.request_id = request_id
        self.operation = operation
        self.target = target
        self.created_at = time.monotonic()
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()

    def done(self) -> bool:
        return self._future.done()

    def add_done_callback(self, callback) -> None:
        self._future.add_done_callback(lambda _f: callback(self))

    def resolve(self, result: Any = None) -> bool:
        """Mark success. Returns False if the request was already settled."""
        if self._future.done():
            return False
        self._future.set_result(result)
        return True

    def fail(self, reason: str) -> bool:
        """Mark failure. Returns False if the request was already settled."""
        if self._future.done():
            return False
        self._future.set_exception(ActuationError(reason))
        return True

    def cancel(self, reason: str = "cancelled") -> bool:
        """Settle as failed with ``reason``; waiters see an ActuationError."""
        return self.fail(reason)

    @property
    def failure_reason(self) -> Optional[str]:
        if not self._future.done():
            return None
        if self._future.cancelled():
            return "cancelled"
        error = self._future.exception()
        return error.reason if isinstance(error, ActuationError) else (str(error) if error else None)

    @property
    def succeeded(self) -> bool:
        return self._future.done() and self.failure_reason is None

    def result(self) -> Any:
        """Result of a settled request; raises ActuationError if it failed."""
        if self._future.cancelled():
            raise ActuationError("cancelled")
        return self._future.result()

    async def wait(self) -> Any:
        """Suspend until settled. Raises ActuationError on failure."""
        if self._future.cancelled():
            raise ActuationError("cancelled")
        return await self._future

    def __repr__(self) -> str:
        state = "pending" if not self.done() else ("ok" if self.succeeded else f"failed:{self.failure_reason}")
        return f"ActuatorRequest({self.request_id}, {self.operation}, {state})"


# =============================================================================
# RequestRegistry
# =============================================================================


class RequestRegistry:
    """
    Pending requests of one Actuator bridge, addressable by request id.

    Settled requests drop out of the registry automatically.
    """

    def __init__(self, prefix: str = "req"):
        self._prefix = prefix
        self._counter = itertools.count(1)
        self._pending: dict[str, ActuatorRequest] = {}

    def open(self, operation: str, target: Optional[Vec3] = None) -> ActuatorRequest:
        request = ActuatorRequest(f"{self._prefix}-{next(self._counter)}", operation, target)
        self._pending[request.request_id] = request
        request.add_done_callback(self._forget)
        return request

    def _forget(self, request: ActuatorRequest) -> None:
        self._pending.pop(request.request_id, None)

    def get(self, request_id: str) -> Optional[ActuatorRequest]:
        return self._pending.get(request_id)

    def resolve(self, request_id: str, result: Any = None) -> bool:
        request = self._pending.get(request_id)
        if request is None:
            logger.debug(f"Ignoring completion for unknown or settled request {request_id}")
            return False
        return request.resolve(result)

    def fail(self, request_id: str, reason: str) -> bool:
        request = self._pending.get(request_id)
        if request is None:
            logger.debug(f"Ignoring failure for unknown or settled request {request_id}: {reason}")
            return False
        return request.fail(reason)

    def cancel_all(self, operation: Optional[str] = None, reason: str = "cancelled") -> int:
        """Cancel every pending request, or only those of ``operation``."""
        cancelled = 0
        for request in list(self._pending.values()):
            if operation is None or request.operation == operation:
                if request.cancel(reason):
                    cancelled += 1
        return cancelled

    def pending(self, operation: Optional[str] = None) -> list[ActuatorRequest]:
        return [
            r for r in self._pending.values()
            if not r.done() and (operation is None or r.operation == operation)
        ]

    def __len__(self) -> int:
        return len(self.pending())


# =============================================================================
# Collaborator protocols
# =============================================================================


@runtime_checkable
class Sensor(Protocol):
    """Synchronous, side-effect-free view of the world."""

    def snapshot(self) -> SensorSnapshot:
        ...

    def block_at(self, position: Vec3) -> Optional[str]:
        """Block name at ``position`` (``"air"`` or None when empty or unloaded)."""
        ...


@runtime_checkable
class Actuator(Protocol):
    """
    Effects in the world.

    Control inputs and hotbar selection take effect immediately. Every other
    operation returns an ActuatorRequest. ``stop_navigation`` and
    ``stop_extraction`` clear the current target; the matching pending
    request is then settled as failed.
    """

    def set_control(self, control: str, active: bool) -> None:
        ...

    def clear_controls(self) -> None:
        ...

    def look_at(self, position: Vec3) -> ActuatorRequest:
        ...

    def navigate_to(self, position: Vec3, radius: float) -> ActuatorRequest:
        ...

    def stop_navigation(self) -> None:
        ...

    def extract_at(self, position: Vec3) -> ActuatorRequest:
        ...

    def stop_extraction(self) -> None:
        ...

    def place_at(self, reference: Vec3, face: str, item: Optional[str] = None) -> ActuatorRequest:
        ...

    def attack(self, entity_id: int | str) -> ActuatorRequest:
        ...

    def select_slot(self, slot: int) -> None:
        ...

    def consume(self, item: str) -> ActuatorRequest:
        ...

    def craft(self, item_name: str, count: int, use_table: bool) -> ActuatorRequest:
        ...
