# src/voxelmind/execution/handlers.py
"""
One handler per ActionKind.

Every handler has the same shape, ``async (action, ctx) -> Outcome``, and
is registered in ``HANDLERS`` with the ``@handles`` decorator. Handlers
suspend only while awaiting an ActuatorRequest or an elapsed-time sleep.
They cancel whatever Actuator operation they started in a ``finally``
block, so a horizon timeout (delivered as task cancellation by the
executor) always leaves the Actuator idle.

Handlers may let ``ActuationError`` propagate; the executor turns it into
a FAILED outcome.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict

from ..config.engine_config import ExecutorConfig
from ..exceptions import ActuationError
from ..world.blocks import connected_blocks, find_nearest_land, is_air, is_log, open_target
from ..world.geometry import Vec3
from ..world.interfaces import Actuator, ActuatorRequest, Sensor
from .actions import Action, ActionKind
from .history import Outcome

logger = logging.getLogger(__name__)

MOVE_CONTROLS = ("forward", "back", "left", "right", "jump", "sprint", "sneak")


@dataclass
class HandlerContext:
    """Everything a handler may touch."""

    sensor: Sensor
    actuator: Actuator
    config: ExecutorConfig
    clock: Callable[[], float] = field(default=time.monotonic)


Handler = Callable[[Action, HandlerContext], Awaitable[Outcome]]

HANDLERS: Dict[ActionKind, Handler] = {}


def handles(kind: ActionKind) -> Callable[[Handler], Handler]:
    """Register the decorated coroutine as the handler for ``kind``."""
    def decorator(func: Handler) -> Handler:
        HANDLERS[kind] = func
        return func
    return decorator


# =============================================================================
# Shared helpers
# =============================================================================


def _position(ctx: HandlerContext) -> Vec3:
    return ctx.sensor.snapshot().position


async def _pulse(ctx: HandlerContext, controls: list[str], duration_ms: int) -> None:
    """Hold ``controls`` for ``duration_ms`` then release all inputs."""
    try:
        for control in controls:
            ctx.actuator.set_control(control, True)
        await asyncio.sleep(duration_ms / 1000)
    finally:
        ctx.actuator.clear_controls()


async def _extract(ctx: HandlerContext, position: Vec3) -> None:
    """Look at and dig one block; stops digging if interrupted."""
    await ctx.actuator.look_at(position).wait()
    request = ctx.actuator.extract_at(position)
    try:
        await request.wait()
    finally:
        if not request.done():
            ctx.actuator.stop_extraction()
            request.cancel("extraction interrupted")


async def navigate(ctx: HandlerContext, target: Vec3, radius: float) -> Outcome:
    """
    Walk to ``target`` using the Actuator's path-goal API.

    Position is polled every ``poll_interval_ms``. If the distance to the
    target improves by less than ``stall_epsilon`` for ``stall_window_ms``
    the walk is considered stalled: a jump-and-forward nudge is issued and
    progress is re-evaluated over another window. A second consecutive
    stall fails the navigation.

    An agent that starts in water first swims to the nearest land.
    """
    cfg = ctx.config
    tolerance = radius + cfg.arrival_tolerance
    snapshot = ctx.sensor.snapshot()
    if snapshot.position.distance_to(target) <= tolerance:
        return Outcome.completed(detail="already at target", noop=True)

    if snapshot.environment.in_water:
        land = find_nearest_land(snapshot.position, ctx.sensor.block_at, cfg.land_search_radius)
        if land is not None:
            failure = await _swim_to_land(ctx, land)
            if failure is not None:
                return failure
    distance = _position(ctx).distance_to(target)
    if distance <= tolerance:
        return Outcome.completed(detail=f"arrived at {target}")

    poll = cfg.poll_interval_ms / 1000
    stall_window = cfg.stall_window_ms / 1000

    ctx.actuator.stop_navigation()
    request = ctx.actuator.navigate_to(target, radius)
    best_distance = distance
    last_progress_at = ctx.clock()
    nudged = False
    try:
        while True:
            if request.done():
                request.result()
                distance = _position(ctx).distance_to(target)
                if distance <= tolerance:
                    return Outcome.completed(detail=f"arrived at {target}")
                return Outcome.failed(f"navigation ended {distance:.1f} blocks from target")

            await asyncio.sleep(poll)
            distance = _position(ctx).distance_to(target)
            if distance <= tolerance:
                return Outcome.completed(detail=f"arrived at {target}")

            now = ctx.clock()
            if best_distance - distance >= cfg.stall_epsilon:
                best_distance = distance
                last_progress_at = now
                nudged = False
                continue

            if now - last_progress_at < stall_window:
                continue

            if nudged:
                logger.warning(f"Navigation to {target} stalled {distance:.1f} blocks away after nudge")
                return Outcome.failed(f"stalled {distance:.1f} blocks from target")

            logger.info(f"No progress toward {target} for {cfg.stall_window_ms}ms, nudging")
            await _pulse(ctx, ["jump", "forward"], cfg.nudge_ms)
            nudged = True
            last_progress_at = ctx.clock()
    finally:
        if not request.done():
            ctx.actuator.stop_navigation()
            request.cancel("navigation interrupted")


async def _swim_to_land(ctx: HandlerContext, land: Vec3) -> Outcome | None:
    """Swim to ``land`` within the swimming travel estimate; a failed Outcome if it takes longer."""
    cfg = ctx.config
    budget_ms = cfg.travel_time_ms(_position(ctx).distance_to(land), in_water=True)
    deadline = ctx.clock() + budget_ms / 1000
    logger.info(f"In water, swimming to land at {land} first")

    ctx.actuator.stop_navigation()
    request = ctx.actuator.navigate_to(land, 1.0)
    try:
        while True:
            snapshot = ctx.sensor.snapshot()
            if (
                snapshot.position.distance_to(land) <= cfg.land_arrival_distance
                or not snapshot.environment.in_water
            ):
                return None
            if request.done():
                request.result()
                return None
            if ctx.clock() >= deadline:
                logger.warning(f"Swim to land at {land} took longer than {budget_ms}ms")
                return Outcome.failed(f"swimming to land timed out after {budget_ms}ms")
            await asyncio.sleep(cfg.poll_interval_ms / 1000)
    finally:
        if not request.done():
            ctx.actuator.stop_navigation()
            request.cancel("swim interrupted")


def _reach_check(ctx: HandlerContext, target: Vec3) -> Outcome | None:
    distance = _position(ctx).distance_to(target)
    if distance >= ctx.config.max_reach:
        logger.debug(f"Target {target} is {distance:.1f} away (max reach {ctx.config.max_reach})")
        return Outcome.failed("out of range")
    return None


# =============================================================================
# Handlers
# =============================================================================


@handles(ActionKind.MOVE)
async def handle_move(action: Action, ctx: HandlerContext) -> Outcome:
    controls = [c for c in MOVE_CONTROLS if action.args.get(c)]
    duration = max(100, min(ctx.config.move_max_ms, action.args.get("ms", 400)))
    if not controls:
        return Outcome.completed(detail="no controls requested", noop=True)
    await _pulse(ctx, controls, duration)
    return Outcome.completed(detail=f"{'+'.join(controls)} for {duration}ms")


@handles(ActionKind.LOOK_AT)
async def handle_look_at(action: Action, ctx: HandlerContext) -> Outcome:
    await ctx.actuator.look_at(action.target).wait()
    return Outcome.completed()


async def _travel(action: Action, ctx: HandlerContext) -> Outcome:
    target = open_target(action.target, ctx.sensor.block_at)
    if target != action.target:
        logger.info(f"Target {action.target} is inside a solid block, heading to {target}")
    return await navigate(ctx, target, action.args.get("radius", 1.0))


@handles(ActionKind.GOTO)
async def handle_goto(action: Action, ctx: HandlerContext) -> Outcome:
    return await _travel(action, ctx)


@handles(ActionKind.EXPLORE)
async def handle_explore(action: Action, ctx: HandlerContext) -> Outcome:
    return await _travel(action, ctx)


@handles(ActionKind.MINE_AT)
async def handle_mine_at(action: Action, ctx: HandlerContext) -> Outcome:
    target = action.target
    out_of_range = _reach_check(ctx, target)
    if out_of_range:
        return out_of_range
    block = ctx.sensor.block_at(target)
    if is_air(block):
        return Outcome.failed("no block at target")
    await _extract(ctx, target)
    return Outcome.completed(detail=f"mined {block}")


@handles(ActionKind.MINE_TREE)
async def handle_mine_tree(action: Action, ctx: HandlerContext) -> Outcome:
    start = action.target
    out_of_range = _reach_check(ctx, start)
    if out_of_range:
        return out_of_range
    if not is_log(ctx.sensor.block_at(start)):
        return Outcome.failed("no tree at target")

    logs = connected_blocks(start, ctx.sensor.block_at, is_log, ctx.config.tree_max_blocks)
    logger.info(f"Felling tree at {start}: {len(logs)} connected logs")

    mined = 0
    for log_position in logs:
        if not is_log(ctx.sensor.block_at(log_position)):
            continue
        if _position(ctx).distance_to(log_position) >= ctx.config.max_reach:
            approach = await _approach(ctx, log_position)
            if not approach:
                continue
        try:
            await _extract(ctx, log_position)
            mined += 1
        except ActuationError as e:
            logger.debug(f"Could not mine log at {log_position}: {e.reason}")

    if mined == 0:
        return Outcome.failed(f"mined 0/{len(logs)} logs")
    return Outcome.completed(detail=f"mined {mined}/{len(logs)} logs")


async def _approach(ctx: HandlerContext, position: Vec3) -> bool:
    """Bounded walk toward an out-of-reach block. True if now within reach."""
    try:
        outcome = await asyncio.wait_for(
            navigate(ctx, position, radius=2.0),
            timeout=ctx.config.approach_timeout_ms / 1000,
        )
    except (asyncio.TimeoutError, ActuationError) as e:
        logger.debug(f"Approach to {position} abandoned: {e!r}")
        return False
    if not outcome.ok:
        return False
    return _position(ctx).distance_to(position) < ctx.config.max_reach


@handles(ActionKind.PLACE_AT)
async def handle_place_at(action: Action, ctx: HandlerContext) -> Outcome:
    item = action.args.get("item")
    if item and not ctx.sensor.snapshot().inventory.has(item):
        return Outcome.failed(f"no {item} in inventory")
    out_of_range = _reach_check(ctx, action.target)
    if out_of_range:
        return out_of_range
    await ctx.actuator.place_at(action.target, action.args.get("face", "top"), item).wait()
    return Outcome.completed(detail=f"placed against {action.target}")


@handles(ActionKind.ATTACK_NEAREST)
async def handle_attack_nearest(action: Action, ctx: HandlerContext) -> Outcome:
    attack_range = action.args.get("range") or ctx.config.attack_range
    types = {t.lower() for t in action.args.get("types") or []}
    snapshot = ctx.sensor.snapshot()
    candidates = [
        e for e in snapshot.entities
        if e.distance <= attack_range
        and (e.name.lower() in types if types else e.kind == "mob")
    ]
    if not candidates:
        return Outcome.completed(detail="no target in range", noop=True)
    target = min(candidates, key=lambda e: e.distance)
    await ctx.actuator.attack(target.entity_id).wait()
    return Outcome.completed(detail=f"attacked {target.name}")


@handles(ActionKind.SELECT_HOTBAR)
async def handle_select_hotbar(action: Action, ctx: HandlerContext) -> Outcome:
    ctx.actuator.select_slot(action.args["slot"])
    return Outcome.completed(detail=f"slot {action.args['slot']}")


@handles(ActionKind.EAT)
async def handle_eat(action: Action, ctx: HandlerContext) -> Outcome:
    food = ctx.sensor.snapshot().inventory.first_food()
    if food is None:
        return Outcome.completed(detail="no food in inventory", noop=True)
    await ctx.actuator.consume(food).wait()
    return Outcome.completed(detail=f"ate {food}")


@handles(ActionKind.CRAFT)
async def handle_craft(action: Action, ctx: HandlerContext) -> Outcome:
    request: ActuatorRequest = ctx.actuator.craft(
        action.args["item_name"], action.args.get("count", 1), action.args.get("use_table", False)
    )
    await request.wait()
    return Outcome.completed(detail=f"crafted {action.args.get('count', 1)} {action.args['item_name']}")
