# tests/behavior/test_memory.py
"""
Tests for BehavioralMemory: repeat counting, stuck detection and the
three override branches.
"""

import random

import pytest

from voxelmind.behavior.memory import BehavioralMemory
from voxelmind.config.engine_config import BehaviorConfig
from voxelmind.execution.actions import Action, ActionKind
from voxelmind.execution.history import Outcome
from voxelmind.world.geometry import Vec3
from voxelmind.world.snapshot import ResourceCategory, ResourceInfo


GOTO_NORTH = Action(action="GOTO", args={"x": 10.2, "y": 64, "z": 5})


@pytest.fixture
def memory(clock):
    return BehavioralMemory(BehaviorConfig(stuck_threshold=3), rng=random.Random(7), clock=clock)


class TestRepeatCounting:

    def test_stuck_after_threshold_identical_decisions(self, memory):
        for _ in range(2):
            memory.record(GOTO_NORTH)
        assert not memory.is_stuck()
        memory.record(GOTO_NORTH)
        assert memory.is_stuck()

    def test_rounding_makes_near_identical_actions_repeat(self, memory):
        memory.record(Action(action="GOTO", args={"x": 10.2, "y": 64, "z": 5}))
        memory.record(Action(action="GOTO", args={"x": 10.4, "y": 64.1, "z": 5}))
        assert memory.consecutive_count(GOTO_NORTH.signature()) == 2

    def test_different_signature_resets_to_one(self, memory):
        """Only the latest signature carries a count; others drop to zero."""
        memory.record(GOTO_NORTH)
        memory.record(GOTO_NORTH)
        eat = Action(action="EAT")
        memory.record(eat)
        assert memory.consecutive_count(eat.signature()) == 1
        assert memory.consecutive_count(GOTO_NORTH.signature()) == 0
        assert not memory.is_stuck()

    def test_reset_clears_stuck_flag(self, memory):
        for _ in range(3):
            memory.record(GOTO_NORTH)
        memory.reset()
        assert not memory.is_stuck()
        assert memory.consecutive_count(GOTO_NORTH.signature()) == 0
        memory.record(GOTO_NORTH)
        assert memory.consecutive_count(GOTO_NORTH.signature()) == 1

    def test_ring_buffer_depth(self, clock):
        memory = BehavioralMemory(BehaviorConfig(memory_depth=4), clock=clock)
        for slot in range(6):
            memory.record(Action(action="SELECT_HOTBAR", args={"slot": slot}))
        assert len(memory.recent_signatures()) == 4
        assert memory.recent_signatures(1) == ['SELECT_HOTBAR:{"slot":5}']

    def test_record_outcome_attaches_to_latest(self, memory):
        memory.record(GOTO_NORTH)
        memory.record_outcome(Outcome.failed("no path"))
        memory.record_outcome(Outcome.completed())
        assert memory.status()["recent_signatures"] == [GOTO_NORTH.signature()]
        assert memory._entries[-1].outcome.reason == "no path"

    def test_stationary_needs_full_position_window(self, clock):
        memory = BehavioralMemory(BehaviorConfig(position_history=3), clock=clock)
        memory.update_position(Vec3(0, 64, 0))
        memory.update_position(Vec3(0.2, 64, 0))
        assert not memory.is_stationary()
        memory.update_position(Vec3(0.1, 64, 0.3))
        assert memory.is_stationary()
        memory.update_position(Vec3(5, 64, 0))
        assert not memory.is_stationary()


class TestOverride:

    def _make_stuck(self, memory, action=GOTO_NORTH):
        for _ in range(memory.config.stuck_threshold):
            memory.record(action)

    def test_no_override_when_not_stuck(self, memory, sensor):
        memory.record(GOTO_NORTH)
        assert memory.suggest_override(sensor.snapshot()) is None
        assert memory.override_count == 0

    def test_proximity_mines_nearby_tree(self, memory, sensor):
        sensor.resources.append(ResourceInfo(ResourceCategory.TREE, "oak_log", Vec3(2, 64, 0), 0.0))
        self._make_stuck(memory)
        action = memory.suggest_override(sensor.snapshot())
        assert action.kind is ActionKind.MINE_TREE
        assert action.target == Vec3(2, 64, 0)
        assert memory.last_override_branch == "proximity"
        assert not memory.is_stuck()

    def test_proximity_mines_nearby_ore(self, memory, sensor):
        sensor.resources.append(ResourceInfo(ResourceCategory.ORE, "iron_ore", Vec3(0, 63, 1), 0.0))
        self._make_stuck(memory)
        action = memory.suggest_override(sensor.snapshot())
        assert action.kind is ActionKind.MINE_AT

    def test_relocation_when_nothing_nearby(self, memory, sensor, clock):
        """Relocation is an EXPLORE at the configured distance, never the stuck GOTO."""
        sensor.resources.append(ResourceInfo(ResourceCategory.TREE, "oak_log", Vec3(12, 64, 0), 0.0))
        self._make_stuck(memory)
        action = memory.suggest_override(sensor.snapshot())
        assert action.kind is ActionKind.EXPLORE
        assert action.kind is not ActionKind.GOTO
        assert action.target.horizontal_distance_to(sensor.position) == pytest.approx(30.0, abs=0.15)
        assert memory.last_override_branch == "relocate"
        assert memory.last_override_at == clock()
        assert memory.override_count == 1
        assert memory.consecutive_count(GOTO_NORTH.signature()) == 0

    def test_failure_loop_leaves_area(self, memory, sensor):
        sensor.resources.append(ResourceInfo(ResourceCategory.ORE, "iron_ore", Vec3(1, 64, 0), 0.0))
        mine = Action(action="MINE_AT", args={"x": 1, "y": 64, "z": 0})
        for _ in range(3):
            memory.record(mine)
            memory.record_outcome(Outcome.failed("out of range"))
        assert memory.is_stuck()
        assert memory.failed_extractions() == 3

        action = memory.suggest_override(sensor.snapshot())
        assert action.kind is ActionKind.EXPLORE
        assert action.target.horizontal_distance_to(sensor.position) == pytest.approx(40.0, abs=0.15)
        assert memory.last_override_branch == "failure_loop"

    def test_old_failures_fall_outside_window(self, memory, sensor, clock):
        mine = Action(action="MINE_AT", args={"x": 1, "y": 64, "z": 0})
        for _ in range(3):
            memory.record(mine)
            memory.record_outcome(Outcome.failed("out of range"))
        clock.advance(61)
        assert memory.failed_extractions() == 0
        action = memory.suggest_override(sensor.snapshot())
        assert memory.last_override_branch == "relocate"
        assert action.kind is ActionKind.EXPLORE

    def test_every_override_resets_counts(self, memory, sensor):
        for _ in range(2):
            self._make_stuck(memory)
            assert memory.suggest_override(sensor.snapshot()) is not None
            assert not memory.is_stuck()
        assert memory.override_count == 2

    def test_status_shape(self, memory):
        self._make_stuck(memory)
        status = memory.status()
        assert status["stuck"] is True
        assert status["consecutive"] == {GOTO_NORTH.signature(): 3}
        assert status["threshold"] == 3
