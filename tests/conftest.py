# tests/conftest.py
"""
Shared fixtures for voxelmind tests.

Provides an in-memory world: ``FakeSensor`` (position, vitals, inventory,
entities, resources and a block map) and ``FakeActuator`` (records every
call and settles requests immediately, or holds/fails them on demand).
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock

import pytest

# Add source to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from voxelmind.config.engine_config import EngineConfig, ExecutorConfig  # noqa: E402
from voxelmind.world.geometry import Vec3  # noqa: E402
from voxelmind.world.interfaces import ActuatorRequest, RequestRegistry  # noqa: E402
from voxelmind.world.snapshot import (  # noqa: E402
    EntityInfo,
    Environment,
    InventorySummary,
    ResourceCategory,
    ResourceInfo,
    SensorSnapshot,
    Vitals,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSensor:
    """Mutable world state exposed through the Sensor protocol."""

    def __init__(self, position: Vec3 = Vec3(0, 64, 0), clock=None):
        self.position = position
        self.vitals = Vitals()
        self.items: Dict[str, int] = {}
        self.entities: List[EntityInfo] = []
        self.resources: List[ResourceInfo] = []
        self.environment = Environment()
        self.blocks: Dict[Tuple[int, int, int], str] = {}
        self.clock = clock
        self.snapshot_calls = 0
        self.fail_snapshot = False

    def snapshot(self) -> SensorSnapshot:
        self.snapshot_calls += 1
        if self.fail_snapshot:
            raise RuntimeError("sensor offline")
        resources = tuple(
            ResourceInfo(r.category, r.block, r.position, r.position.distance_to(self.position))
            for r in self.resources
        )
        return SensorSnapshot(
            position=self.position,
            vitals=self.vitals,
            inventory=InventorySummary.from_counts(self.items),
            entities=tuple(self.entities),
            resources=resources,
            environment=self.environment,
            taken_at=self.clock() if self.clock else 0.0,
        )

    def block_at(self, position: Vec3) -> Optional[str]:
        return self.blocks.get(position.block_key(), "air")

    # ── helpers for tests ────────────────────────────────────────

    def set_block(self, position: Vec3, name: str) -> None:
        self.blocks[position.block_key()] = name

    def add_tree(self, base: Vec3, height: int = 4, block: str = "oak_log") -> List[Vec3]:
        logs = [base.offset(0, dy, 0) for dy in range(height)]
        for log in logs:
            self.set_block(log, block)
        self.resources.append(ResourceInfo(ResourceCategory.TREE, block, base, 0.0))
        return logs

    def add_hostile(self, name: str, position: Vec3, entity_id: int = 1) -> None:
        self.entities.append(
            EntityInfo(entity_id, name, "mob", position, position.distance_to(self.position), hostile=True)
        )


class FakeActuator:
    """
    Records calls and settles requests.

    ``hold`` lists operations whose requests stay pending; ``failures`` maps
    operations to a failure reason.
    """

    def __init__(self, sensor: FakeSensor):
        self.sensor = sensor
        self.registry = RequestRegistry("fake")
        self.calls: List[Tuple[str, object]] = []
        self.controls: List[Tuple[str, bool]] = []
        self.hold: set = set()
        self.failures: Dict[str, str] = {}
        self.selected_slot: Optional[int] = None

    def _request(self, operation: str, target=None, effect=None, result=None) -> ActuatorRequest:
        self.calls.append((operation, target))
        request = self.registry.open(operation, target if isinstance(target, Vec3) else None)
        if operation in self.failures:
            request.fail(self.failures[operation])
        elif operation not in self.hold:
            if effect is not None:
                effect()
            request.resolve(result)
        return request

    def operations(self) -> List[str]:
        return [op for op, _ in self.calls]

    def set_control(self, control: str, active: bool) -> None:
        self.controls.append((control, active))

    def clear_controls(self) -> None:
        self.controls.append(("clear", False))

    def look_at(self, position: Vec3) -> ActuatorRequest:
        return self._request("look_at", position)

    def navigate_to(self, position: Vec3, radius: float) -> ActuatorRequest:
        return self._request("navigate_to", position, effect=lambda: setattr(self.sensor, "position", position))

    def stop_navigation(self) -> None:
        self.calls.append(("stop_navigation", None))
        self.registry.cancel_all("navigate_to", reason="navigation cleared")

    def extract_at(self, position: Vec3) -> ActuatorRequest:
        def dig():
            self.sensor.blocks.pop(position.block_key(), None)
        return self._request("extract_at", position, effect=dig)

    def stop_extraction(self) -> None:
        self.calls.append(("stop_extraction", None))
        self.registry.cancel_all("extract_at", reason="digging stopped")

    def place_at(self, reference: Vec3, face: str, item: Optional[str] = None) -> ActuatorRequest:
        return self._request("place_at", reference)

    def attack(self, entity_id) -> ActuatorRequest:
        return self._request("attack", entity_id)

    def select_slot(self, slot: int) -> None:
        self.calls.append(("select_slot", slot))
        self.selected_slot = slot

    def consume(self, item: str) -> ActuatorRequest:
        return self._request("consume", item)

    def craft(self, item_name: str, count: int, use_table: bool) -> ActuatorRequest:
        return self._request("craft", item_name, result={"crafted": count})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sensor(clock):
    return FakeSensor(clock=clock)


@pytest.fixture
def actuator(sensor):
    return FakeActuator(sensor)


@pytest.fixture
def fast_executor_config():
    """Executor settings with short navigation windows for quick tests."""
    return ExecutorConfig(
        poll_interval_ms=10,
        stall_window_ms=100,
        nudge_ms=10,
        approach_timeout_ms=200,
    )


@pytest.fixture
def engine_config(fast_executor_config):
    return EngineConfig(executor=fast_executor_config)


@pytest.fixture
def policy_source():
    """Policy source mock; set ``propose.return_value`` per test."""
    source = AsyncMock()
    source.name = "mock"
    source.propose.return_value = '{"action": "EAT", "args": {}}'
    source.close.return_value = None
    return source
