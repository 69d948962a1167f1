# src/voxelmind/goals/__init__.py
"""Goals, the goal scheduler and the strategic advisor."""

from .advisor import GoalAdvisor
from .base import Goal, GoalContext, GoalState
from .builtin import (
    BuildShelterGoal,
    ExploreGoal,
    GatherWoodGoal,
    ShelterPhase,
    SurvivalGoal,
    default_goals,
)
from .scheduler import GoalScheduler

__all__ = [
    "BuildShelterGoal",
    "ExploreGoal",
    "GatherWoodGoal",
    "Goal",
    "GoalAdvisor",
    "GoalContext",
    "GoalScheduler",
    "GoalState",
    "ShelterPhase",
    "SurvivalGoal",
    "default_goals",
]
