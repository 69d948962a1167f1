# src/voxelmind/goals/builtin.py
"""
Built-in goals for a survival-style voxel world.

=============  ====  ==================================================
Goal           Base  Activates when
=============  ====  ==================================================
survival         10  health or hunger low, or a hostile is close
gather_wood       3  trees visible and fewer than 10 wood held
build_shelter     2  night or hostiles, with enough wood and stone
explore           1  nothing to harvest nearby and inventory is light
=============  ====  ==================================================
"""

from __future__ import annotations

import logging
import math
import random
from enum import Enum
from typing import List, Optional, Tuple

from ..exceptions import GoalError
from ..world.blocks import connected_blocks, is_air, is_log
from ..world.geometry import Vec3, point_at_distance
from ..world.interfaces import ActuatorRequest
from ..world.snapshot import SensorSnapshot
from .base import Goal, GoalContext

logger = logging.getLogger(__name__)


# =============================================================================
# SurvivalGoal
# =============================================================================


class SurvivalGoal(Goal):
    """Fight adjacent hostiles, flee nearby ones, eat when hungry."""

    def __init__(
        self,
        priority: int = 10,
        low_health: float = 10.0,
        low_food: float = 6.0,
        threat_radius: float = 8.0,
        melee_radius: float = 3.0,
        flee_distance: float = 10.0,
    ):
        super().__init__("survival", priority)
        self.low_health = low_health
        self.low_food = low_food
        self.threat_radius = threat_radius
        self.melee_radius = melee_radius
        self.flee_distance = flee_distance

    def can_use(self, snapshot: SensorSnapshot) -> bool:
        return (
            snapshot.vitals.health < self.low_health
            or snapshot.vitals.food < self.low_food
            or bool(snapshot.hostiles(self.threat_radius))
        )

    def can_continue(self, snapshot: SensorSnapshot) -> bool:
        return self.can_use(snapshot)

    async def on_tick(self, ctx: GoalContext) -> None:
        snapshot = ctx.snapshot
        threats = snapshot.hostiles(self.threat_radius)

        if threats and threats[0].distance <= self.melee_radius:
            self.issue(ctx.actuator.attack(threats[0].entity_id))
            return

        if threats:
            away = snapshot.position - threats[0].position
            length = math.hypot(away.x, away.z) or 1.0
            target = snapshot.position.offset(
                away.x / length * self.flee_distance, 0, away.z / length * self.flee_distance
            )
            self.issue(ctx.actuator.navigate_to(target, 1.0), cancel=ctx.actuator.stop_navigation)
            return

        if snapshot.vitals.food < self.low_food:
            food = snapshot.inventory.first_food()
            if food:
                self.issue(ctx.actuator.consume(food))


# =============================================================================
# GatherWoodGoal
# =============================================================================


class GatherWoodGoal(Goal):
    """
    Walk to the nearest tree and fell it log by log, bottom-up.

    Three failed requests within ``failure_window`` seconds put the goal on
    cooldown so the scheduler lets something else run.
    """

    def __init__(
        self,
        priority: int = 3,
        wood_target: int = 10,
        reach: float = 4.0,
        max_logs: int = 200,
        failure_limit: int = 3,
        failure_window: float = 30.0,
        cooldown: float = 30.0,
    ):
        super().__init__("gather_wood", priority)
        self.wood_target = wood_target
        self.reach = reach
        self.max_logs = max_logs
        self.failure_limit = failure_limit
        self.failure_window = failure_window
        self.cooldown = cooldown
        self.failures: List[float] = []
        self.cooldown_until: Optional[float] = None

    def in_cooldown(self, now: float) -> bool:
        return self.cooldown_until is not None and now < self.cooldown_until

    def can_use(self, snapshot: SensorSnapshot) -> bool:
        return (
            bool(snapshot.trees())
            and snapshot.inventory.wood < self.wood_target
            and not self.in_cooldown(snapshot.taken_at)
        )

    def can_continue(self, snapshot: SensorSnapshot) -> bool:
        return snapshot.inventory.wood < self.wood_target

    def dynamic_priority(self, snapshot: SensorSnapshot) -> int:
        wood = snapshot.inventory.wood
        if wood == 0 and snapshot.trees():
            return max(self.base_priority, 5)
        if wood < 5:
            return max(self.base_priority, 4)
        return self.base_priority

    def on_start(self, now: float) -> None:
        self.metadata["logs"] = []

    async def on_tick(self, ctx: GoalContext) -> None:
        logs: List[Vec3] = [p for p in self.metadata.get("logs", []) if is_log(ctx.sensor.block_at(p))]
        if not logs:
            if self.metadata.get("tree") is not None:
                self.stop("tree felled")
                return
            trees = ctx.snapshot.trees(ctx.config.sense_radius)
            if not trees:
                self.stop("no trees in range")
                return
            self.metadata["tree"] = trees[0].position
            logs = connected_blocks(trees[0].position, ctx.sensor.block_at, is_log, self.max_logs)
            logger.debug(f"gather_wood: targeting tree at {trees[0].position} ({len(logs)} logs)")
        self.metadata["logs"] = logs
        if not logs:
            self.stop("tree vanished")
            return

        next_log = logs[0]
        if ctx.snapshot.position.distance_to(next_log) >= self.reach:
            self.issue(ctx.actuator.navigate_to(next_log, 2.0), cancel=ctx.actuator.stop_navigation)
        else:
            self.issue(ctx.actuator.extract_at(next_log), cancel=ctx.actuator.stop_extraction)

    def on_request_finished(self, request: ActuatorRequest, ctx: GoalContext) -> None:
        if request.succeeded:
            return
        now = ctx.now
        self.failures = [t for t in self.failures if now - t < self.failure_window] + [now]
        logger.debug(f"gather_wood: {request.operation} failed ({request.failure_reason}), "
                     f"{len(self.failures)} recent failures")
        if len(self.failures) >= self.failure_limit:
            self.cooldown_until = now + self.cooldown
            self.failures = []
            self.stop("too many failures, cooling down")


# =============================================================================
# BuildShelterGoal
# =============================================================================


class ShelterPhase(str, Enum):
    PLANNING = "planning"
    FOUNDATION = "foundation"
    WALLS = "walls"
    ROOF = "roof"
    COMPLETE = "complete"


_RING = [(dx, dz) for dx in (-1, 0, 1) for dz in (-1, 0, 1) if (dx, dz) != (0, 0)]

Placement = Tuple[Vec3, Vec3, str]  # cell to fill, reference block, face


class BuildShelterGoal(Goal):
    """
    Enclose the agent in a 3x3 hut: foundation ring, two-high walls, roof.

    Each tick places one block. Cells that are already solid are skipped.
    """

    PHASE_ORDER = (ShelterPhase.FOUNDATION, ShelterPhase.WALLS, ShelterPhase.ROOF)

    def __init__(self, priority: int = 2, min_wood: int = 10, min_stone: int = 5):
        super().__init__("build_shelter", priority)
        self.min_wood = min_wood
        self.min_stone = min_stone

    def can_use(self, snapshot: SensorSnapshot) -> bool:
        threatened = snapshot.is_night or bool(snapshot.hostiles())
        return (
            threatened
            and snapshot.inventory.wood >= self.min_wood
            and snapshot.inventory.stone >= self.min_stone
        )

    def can_continue(self, snapshot: SensorSnapshot) -> bool:
        return self.metadata.get("phase") is not ShelterPhase.COMPLETE

    def dynamic_priority(self, snapshot: SensorSnapshot) -> int:
        night = snapshot.is_night
        hostiles = bool(snapshot.hostiles())
        if night and hostiles:
            return max(self.base_priority, 8)
        if night or hostiles:
            return max(self.base_priority, 5)
        return self.base_priority

    def on_start(self, now: float) -> None:
        self.metadata["phase"] = ShelterPhase.PLANNING

    @staticmethod
    def plan(origin: Vec3) -> dict[ShelterPhase, List[Placement]]:
        """Placements per phase around ``origin`` (the agent's feet block)."""
        def cell(dx: int, dy: int, dz: int) -> Vec3:
            return origin.offset(dx, dy, dz)

        foundation = [(cell(dx, -1, dz), cell(dx, -2, dz), "top") for dx, dz in _RING]
        walls = [(cell(dx, dy, dz), cell(dx, dy - 1, dz), "top") for dy in (0, 1) for dx, dz in _RING]
        roof = [(cell(dx, 2, dz), cell(dx, 1, dz), "top") for dx, dz in _RING]
        roof.append((cell(0, 2, 0), cell(1, 2, 0), "west"))
        return {ShelterPhase.FOUNDATION: foundation, ShelterPhase.WALLS: walls, ShelterPhase.ROOF: roof}

    def _material(self, snapshot: SensorSnapshot) -> Optional[str]:
        for name, count in snapshot.inventory.items:
            if count > 0 and name in ("cobblestone", "cobbled_deepslate", "stone"):
                return name
        for name, count in snapshot.inventory.items:
            if count > 0 and name.endswith("_planks"):
                return name
        return None

    async def on_tick(self, ctx: GoalContext) -> None:
        phase = self.metadata["phase"]
        if phase is ShelterPhase.PLANNING:
            self.metadata["plan"] = self.plan(ctx.snapshot.position.floored())
            self.metadata["phase"] = ShelterPhase.FOUNDATION
            logger.info("build_shelter: plan ready, laying foundation")
            return

        plan = self.metadata.get("plan")
        if plan is None:
            raise GoalError(self.name, f"no plan for phase {phase.value}")
        queue: List[Placement] = plan[phase]
        while queue and not is_air(ctx.sensor.block_at(queue[0][0])):
            queue.pop(0)
        if not queue:
            index = self.PHASE_ORDER.index(phase)
            if index + 1 < len(self.PHASE_ORDER):
                self.metadata["phase"] = self.PHASE_ORDER[index + 1]
                logger.info(f"build_shelter: {phase.value} done, starting {self.metadata['phase'].value}")
            else:
                self.metadata["phase"] = ShelterPhase.COMPLETE
                self.stop("shelter complete")
            return

        material = self._material(ctx.snapshot)
        if material is None:
            self.stop("out of building material")
            return
        _, reference, face = queue.pop(0)
        self.issue(ctx.actuator.place_at(reference, face, material))


# =============================================================================
# ExploreGoal
# =============================================================================


class ExploreGoal(Goal):
    """Wander to a random point 20-50 blocks away when there is nothing to do."""

    def __init__(
        self,
        priority: int = 1,
        min_distance: float = 20.0,
        max_distance: float = 50.0,
        arrival_radius: float = 3.0,
        inventory_limit: int = 20,
        rng: Optional[random.Random] = None,
    ):
        super().__init__("explore", priority)
        self.min_distance = min_distance
        self.max_distance = max_distance
        self.arrival_radius = arrival_radius
        self.inventory_limit = inventory_limit
        self._rng = rng or random.Random()

    def can_use(self, snapshot: SensorSnapshot) -> bool:
        return (
            not snapshot.trees()
            and not snapshot.ores()
            and snapshot.inventory.total < self.inventory_limit
        )

    async def on_tick(self, ctx: GoalContext) -> None:
        target: Optional[Vec3] = self.metadata.get("target")
        if target is not None and ctx.snapshot.position.distance_to(target) <= self.arrival_radius:
            self.stop("reached exploration target")
            return
        target = point_at_distance(
            ctx.snapshot.position,
            self._rng.uniform(0.0, 2 * math.pi),
            self._rng.uniform(self.min_distance, self.max_distance),
        )
        self.metadata["target"] = target
        logger.debug(f"explore: heading to {target}")
        self.issue(ctx.actuator.navigate_to(target, self.arrival_radius), cancel=ctx.actuator.stop_navigation)


def default_goals(rng: Optional[random.Random] = None) -> List[Goal]:
    """The standard goal set, in registration order."""
    return [SurvivalGoal(), GatherWoodGoal(), BuildShelterGoal(), ExploreGoal(rng=rng)]
