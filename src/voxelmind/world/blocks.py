# src/voxelmind/world/blocks.py
"""
Block and entity classification, connected-block discovery, and the
block queries navigation relies on (open targets, nearest land).

The names follow the Minecraft registry naming used by the sensor bridge
(``oak_log``, ``iron_ore``, ``zombie``...).
"""

from __future__ import annotations

import logging
import math
from collections import deque
from typing import Callable, Optional

from .geometry import Vec3

logger = logging.getLogger(__name__)

AIR_BLOCKS = frozenset({"air", "cave_air", "void_air"})

HOSTILE_MOBS = frozenset({
    "zombie", "skeleton", "creeper", "spider", "cave_spider", "enderman",
    "witch", "slime", "drowned", "husk", "stray", "phantom", "pillager",
    "zombie_villager", "silverfish", "blaze", "ghast",
})

FOOD_ITEMS = (
    "cooked_beef", "cooked_porkchop", "cooked_chicken", "cooked_mutton",
    "bread", "baked_potato", "cooked_cod", "cooked_salmon", "apple",
    "carrot", "beef", "porkchop", "chicken", "mutton", "potato",
    "sweet_berries", "melon_slice",
)

HAZARD_BLOCKS = frozenset({"lava", "fire", "magma_block", "cactus", "sweet_berry_bush"})

STONE_ITEMS = frozenset({"cobblestone", "stone", "cobbled_deepslate"})

PASSABLE_BLOCKS = frozenset({
    "short_grass", "grass", "tall_grass", "fern", "large_fern", "dead_bush",
    "dandelion", "poppy", "snow", "torch", "vine", "seagrass", "kelp",
})

BlockLookup = Callable[[Vec3], Optional[str]]


def is_air(name: Optional[str]) -> bool:
    return name is None or name in AIR_BLOCKS


def is_water(name: Optional[str]) -> bool:
    return bool(name) and "water" in name


def is_solid(name: Optional[str]) -> bool:
    """True for blocks the agent cannot stand inside."""
    return not is_air(name) and not is_water(name) and name not in PASSABLE_BLOCKS


def is_log(name: Optional[str]) -> bool:
    """True for tree trunk blocks (``*_log``, ``*_wood`` and stems)."""
    if not name:
        return False
    return name.endswith("_log") or name.endswith("_wood") or name.endswith("_stem")


def is_ore(name: Optional[str]) -> bool:
    return bool(name) and (name.endswith("_ore") or name == "ancient_debris")


def is_hazard(name: Optional[str]) -> bool:
    return bool(name) and name in HAZARD_BLOCKS


def is_hostile(entity_name: Optional[str]) -> bool:
    return bool(entity_name) and entity_name in HOSTILE_MOBS


def is_wood_item(item_name: str) -> bool:
    return is_log(item_name) or item_name.endswith("_planks")


_NEIGHBOUR_OFFSETS = tuple(
    Vec3(dx, dy, dz)
    for dx in (-1, 0, 1)
    for dy in (-1, 0, 1)
    for dz in (-1, 0, 1)
    if (dx, dy, dz) != (0, 0, 0)
)


def connected_blocks(
    start: Vec3,
    block_at: BlockLookup,
    predicate: Callable[[Optional[str]], bool] = is_log,
    max_nodes: int = 200,
) -> list[Vec3]:
    """
    Discover blocks connected to ``start`` that satisfy ``predicate``.

    Breadth-first over the 26-neighbourhood with an explicit frontier and a
    visited set, stopping once ``max_nodes`` matches are collected. The
    result is ordered bottom-up (ascending y), then by distance from
    ``start``, which is the order a trunk should be cut in.

    Args:
        start: Any block of the structure.
        block_at: Side-effect-free block lookup returning a block name.
        predicate: Which block names belong to the structure.
        max_nodes: Upper bound on matched blocks.

    Returns:
        Matching block positions; empty if ``start`` itself does not match.
    """
    origin = start.floored()
    if not predicate(block_at(origin)):
        return []

    visited = {origin.block_key()}
    frontier = deque([origin])
    found: list[Vec3] = []

    while frontier and len(found) < max_nodes:
        current = frontier.popleft()
        found.append(current)
        for offset in _NEIGHBOUR_OFFSETS:
            neighbour = current + offset
            key = neighbour.block_key()
            if key in visited:
                continue
            visited.add(key)
            if predicate(block_at(neighbour)):
                frontier.append(neighbour)

    if frontier:
        logger.debug(f"Connected-block search from {origin} capped at {max_nodes} nodes")

    found.sort(key=lambda p: (p.y, p.distance_to(origin)))
    return found


_SIDE_OFFSETS = ((1, 0), (-1, 0), (0, 1), (0, -1), (1, 1), (-1, -1), (1, -1), (-1, 1))


def open_target(target: Vec3, block_at: BlockLookup, max_rise: int = 3) -> Vec3:
    """
    Move a navigation target out of a solid block.

    The first air cell above the target (up to ``max_rise`` blocks) wins,
    then the first air cell beside it. Targets that are already open, or
    fully enclosed, are returned unchanged.
    """
    cell = target.floored()
    if not is_solid(block_at(cell)):
        return target
    for dy in range(1, max_rise + 1):
        above = cell.offset(0, dy, 0)
        if is_air(block_at(above)):
            return above
    for dx, dz in _SIDE_OFFSETS:
        side = cell.offset(dx, 0, dz)
        if is_air(block_at(side)):
            return side
    return target


def find_nearest_land(
    origin: Vec3,
    block_at: BlockLookup,
    radius: int = 15,
    angle_step: int = 15,
) -> Optional[Vec3]:
    """
    Closest dry spot to stand on around a swimming agent.

    Rings of growing radius are sampled every ``angle_step`` degrees. In
    each sampled column the ground must be a solid block within two blocks
    of the agent's feet with air above it. The first ring with a hit wins.

    Returns:
        The standing cell (one above the ground block), or None.
    """
    feet = math.floor(origin.y)
    for r in range(1, radius + 1):
        for angle in range(0, 360, angle_step):
            x = round(origin.x + r * math.cos(math.radians(angle)))
            z = round(origin.z + r * math.sin(math.radians(angle)))
            for y in range(feet - 2, feet + 3):
                if is_solid(block_at(Vec3(x, y, z))) and is_air(block_at(Vec3(x, y + 1, z))):
                    return Vec3(x, y + 1, z)
    return None
