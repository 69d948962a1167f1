# tests/goals/test_advisor.py
"""Tests for the GoalAdvisor priority adjustments."""

import json

import pytest

from voxelmind.behavior.memory import BehavioralMemory
from voxelmind.config.engine_config import AdvisorConfig
from voxelmind.exceptions import PolicySourceError
from voxelmind.goals.advisor import GoalAdvisor
from voxelmind.goals.builtin import default_goals
from voxelmind.goals.scheduler import GoalScheduler


@pytest.fixture
def scheduler(sensor, actuator, clock):
    scheduler = GoalScheduler(sensor, actuator, clock=clock)
    for goal in default_goals():
        scheduler.register(goal)
    scheduler.snapshot = sensor.snapshot()
    return scheduler


@pytest.fixture
def memory(clock):
    return BehavioralMemory(clock=clock)


@pytest.fixture
def advisor(scheduler, policy_source, memory, clock):
    return GoalAdvisor(scheduler, policy_source, AdvisorConfig(), memory=memory,
                       override_quiet_seconds=5.0, clock=clock)


def advice(*goals, recommendation="gather wood before nightfall"):
    return json.dumps({
        "goals": [{"name": n, "priority_adjustment": a} for n, a in goals],
        "recommendation": recommendation,
    })


class TestGoalAdvisor:

    @pytest.mark.asyncio
    async def test_adjusts_and_clamps_priorities(self, advisor, scheduler, policy_source):
        policy_source.propose.return_value = advice(("gather_wood", 2), ("survival", 5), ("unknown", 3))
        changes = await advisor.evaluate()
        assert changes == {"gather_wood": 5}
        assert scheduler.get("gather_wood").base_priority == 5
        assert scheduler.get("survival").base_priority == 10
        assert advisor.latest_recommendation == "gather wood before nightfall"

        context = policy_source.propose.call_args.args[0]
        assert context.purpose == "strategy"
        assert {g["name"] for g in context.goals} == {"survival", "gather_wood", "build_shelter", "explore"}

    @pytest.mark.asyncio
    async def test_lower_clamp(self, advisor, scheduler, policy_source):
        policy_source.propose.return_value = advice(("explore", -4))
        changes = await advisor.evaluate()
        assert changes == {}
        assert scheduler.get("explore").base_priority == 1

    @pytest.mark.asyncio
    async def test_respects_interval(self, advisor, policy_source, clock):
        policy_source.propose.return_value = advice()
        assert await advisor.evaluate() == {}
        clock.advance(1)
        assert await advisor.evaluate() is None
        clock.advance(5)
        assert await advisor.evaluate() == {}
        assert policy_source.propose.await_count == 2

    @pytest.mark.asyncio
    async def test_defers_after_fresh_override(self, advisor, memory, scheduler, policy_source, clock):
        """Priorities are left alone in the cycle an override fired."""
        memory.last_override_at = clock()
        policy_source.propose.return_value = advice(("explore", 4))
        assert await advisor.evaluate() == {}
        policy_source.propose.assert_not_awaited()
        assert scheduler.get("explore").base_priority == 1

        clock.advance(6)
        assert await advisor.evaluate() == {"explore": 5}

    @pytest.mark.asyncio
    async def test_unusable_reply(self, advisor, policy_source):
        policy_source.propose.return_value = "no idea, sorry"
        assert await advisor.evaluate() is None
        assert advisor.evaluations == 0

    @pytest.mark.asyncio
    async def test_policy_failure(self, advisor, policy_source):
        policy_source.propose.side_effect = PolicySourceError("mock", "connection refused")
        assert await advisor.evaluate() is None

    @pytest.mark.asyncio
    async def test_needs_a_snapshot(self, advisor, scheduler, policy_source):
        scheduler.snapshot = None
        assert await advisor.evaluate() is None
        policy_source.propose.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled(self, scheduler, policy_source, clock):
        advisor = GoalAdvisor(scheduler, policy_source, AdvisorConfig(enabled=False), clock=clock)
        assert await advisor.evaluate() is None

    def test_apply_ignores_malformed_items(self, advisor, scheduler):
        changes = advisor.apply({"goals": ["junk", {"name": "explore", "priority_adjustment": "x"}]})
        assert changes == {}
        assert advisor.status()["latest_recommendation"] is None
