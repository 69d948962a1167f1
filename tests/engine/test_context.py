# tests/engine/test_context.py
"""Tests for EngineContext wiring and lifecycle."""

import asyncio
import random

import pytest

from voxelmind.config.engine_config import EngineConfig, PolicyConfig
from voxelmind.engine.context import EngineContext
from voxelmind.engine.cycle import CycleStatus
from voxelmind.exceptions import ExecutorBusyError
from voxelmind.execution.actions import Action
from voxelmind.goals.builtin import ExploreGoal
from voxelmind.policy.source import OllamaPolicySource


@pytest.fixture
def engine(sensor, actuator, policy_source, engine_config):
    return EngineContext(sensor, actuator, policy_source, engine_config, rng=random.Random(5))


class TestEngineContext:

    def test_components_share_state(self, engine):
        assert engine.executor.state is engine.execution_state
        assert engine.scheduler.execution_state is engine.execution_state
        assert engine.executor.history is engine.history
        assert engine.cycle.memory is engine.memory
        assert [g.name for g in engine.scheduler.goals] == ["survival", "gather_wood", "build_shelter", "explore"]

    def test_custom_goal_set(self, sensor, actuator, policy_source):
        engine = EngineContext(sensor, actuator, policy_source, goals=[])
        assert engine.scheduler.goals == []

    def test_from_config_uses_ollama(self, sensor, actuator):
        engine = EngineContext.from_config(sensor, actuator, EngineConfig(policy=PolicyConfig(model="phi3")))
        assert isinstance(engine.policy_source, OllamaPolicySource)
        assert engine.policy_source.config.model == "phi3"

    @pytest.mark.asyncio
    async def test_execute_single_action(self, engine, sensor):
        outcome = await engine.execute(Action(action="SELECT_HOTBAR", args={"slot": 4}))
        assert outcome.ok
        assert len(engine.history) == 1

    @pytest.mark.asyncio
    async def test_execute_rejected_while_busy(self, engine):
        engine.execution_state.begin(Action(action="EAT"))
        with pytest.raises(ExecutorBusyError):
            await engine.execute(Action(action="EAT"))
        assert len(engine.history) == 0

    @pytest.mark.asyncio
    async def test_goal_request_blocks_decisions_and_ad_hoc_actions(
        self, sensor, actuator, policy_source, engine_config
    ):
        """A goal walking somewhere owns the Actuator until it is stopped."""
        actuator.hold.add("navigate_to")
        engine = EngineContext(
            sensor, actuator, policy_source, engine_config, goals=[ExploreGoal(rng=random.Random(4))]
        )
        await engine.scheduler.tick()
        with pytest.raises(ExecutorBusyError):
            await engine.execute(Action(action="EAT"))
        result = await engine.cycle.run_once()
        assert result.status is CycleStatus.SKIPPED_BUSY
        policy_source.propose.assert_not_awaited()

        engine.scheduler.stop_all()
        assert engine.execution_state.is_empty

    @pytest.mark.asyncio
    async def test_start_and_stop(self, engine, policy_source):
        await engine.start(decisions=False)
        assert engine.is_running
        assert not engine.cycle.is_running
        await asyncio.sleep(0.05)
        assert engine.scheduler.tick_count >= 1

        await engine.stop()
        assert not engine.is_running
        assert engine.scheduler.active_goals == []
        policy_source.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_with_decisions(self, engine):
        await engine.start()
        assert engine.cycle.is_running
        await engine.stop()
        assert not engine.cycle.is_running

    def test_status(self, engine):
        status = engine.status()
        assert status["running"] is False
        assert status["execution"]["busy"] is False
        assert status["behavior"]["stuck"] is False
        assert {"decision", "scheduler", "advisor", "history_size"} <= set(status)
