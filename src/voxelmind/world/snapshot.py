# src/voxelmind/world/snapshot.py
"""
Sensor snapshot model.

A ``SensorSnapshot`` is the point-in-time view of the agent's
surroundings that every engine component reads: the goal scheduler for
activation checks and dynamic priorities, behavioral memory for override
targets, the executor for reach checks and the policy prompt for context.
Snapshots are immutable; the sensor builds a new one on every call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

from .blocks import FOOD_ITEMS, STONE_ITEMS, is_wood_item
from .geometry import Vec3

# =============================================================================
# Components
# =============================================================================


class ResourceCategory(str, Enum):
    """What kind of thing a nearby block is, from the agent's point of view."""

    TREE = "tree"
    ORE = "ore"
    RESOURCE = "resource"
    HAZARD = "hazard"


@dataclass(frozen=True)
class Vitals:
    health: float = 20.0
    food: float = 20.0
    oxygen: float = 20.0


@dataclass(frozen=True)
class EntityInfo:
    """A nearby entity. ``kind`` is the sensor's coarse type (mob, player, object)."""

    entity_id: int | str
    name: str
    kind: str
    position: Vec3
    distance: float
    hostile: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.entity_id,
            "name": self.name,
            "kind": self.kind,
            "position": self.position.to_dict(),
            "distance": round(self.distance, 1),
            "hostile": self.hostile,
        }


@dataclass(frozen=True)
class ResourceInfo:
    category: ResourceCategory
    block: str
    position: Vec3
    distance: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "block": self.block,
            "position": self.position.to_dict(),
            "distance": round(self.distance, 1),
        }


@dataclass(frozen=True)
class InventorySummary:
    """Item name -> count, plus the derived totals goals care about."""

    items: tuple[tuple[str, int], ...] = ()

    @classmethod
    def from_counts(cls, counts: dict[str, int]) -> "InventorySummary":
        return cls(tuple(sorted((name, int(n)) for name, n in counts.items() if n > 0)))

    def count(self, name: str) -> int:
        return sum(n for item, n in self.items if item == name)

    def has(self, name: str) -> bool:
        return self.count(name) > 0

    @property
    def total(self) -> int:
        return sum(n for _, n in self.items)

    @property
    def wood(self) -> int:
        return sum(n for item, n in self.items if is_wood_item(item))

    @property
    def stone(self) -> int:
        return sum(n for item, n in self.items if item in STONE_ITEMS)

    def first_food(self) -> Optional[str]:
        """Best food item held, in FOOD_ITEMS preference order."""
        held = {item for item, n in self.items if n > 0}
        for food in FOOD_ITEMS:
            if food in held:
                return food
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": {name: n for name, n in self.items},
            "total": self.total,
            "wood": self.wood,
            "stone": self.stone,
        }


@dataclass(frozen=True)
class Environment:
    time_of_day: int = 6000
    is_raining: bool = False
    biome: Optional[str] = None
    dimension: str = "overworld"
    in_water: bool = False

    @property
    def is_night(self) -> bool:
        return 13000 <= self.time_of_day % 24000 <= 23000


# =============================================================================
# SensorSnapshot
# =============================================================================


@dataclass(frozen=True)
class SensorSnapshot:
    """
    Immutable view of the agent's surroundings.

    Attributes:
        position: Agent feet position.
        vitals: Health, hunger and oxygen.
        inventory: Held items.
        entities: Nearby entities, nearest first.
        resources: Nearby interesting blocks, nearest first.
        environment: Time of day, weather and similar hints.
        taken_at: Monotonic timestamp of when the snapshot was built.
    """

    position: Vec3
    vitals: Vitals = field(default_factory=Vitals)
    inventory: InventorySummary = field(default_factory=InventorySummary)
    entities: tuple[EntityInfo, ...] = ()
    resources: tuple[ResourceInfo, ...] = ()
    environment: Environment = field(default_factory=Environment)
    taken_at: float = 0.0

    def resources_of(
        self, categories: Iterable[ResourceCategory], radius: Optional[float] = None
    ) -> list[ResourceInfo]:
        wanted = set(categories)
        found = [
            r for r in self.resources
            if r.category in wanted and (radius is None or r.distance <= radius)
        ]
        return sorted(found, key=lambda r: r.distance)

    def trees(self, radius: Optional[float] = None) -> list[ResourceInfo]:
        return self.resources_of([ResourceCategory.TREE], radius)

    def ores(self, radius: Optional[float] = None) -> list[ResourceInfo]:
        return self.resources_of([ResourceCategory.ORE], radius)

    def hostiles(self, radius: Optional[float] = None) -> list[EntityInfo]:
        found = [
            e for e in self.entities
            if e.hostile and (radius is None or e.distance <= radius)
        ]
        return sorted(found, key=lambda e: e.distance)

    @property
    def is_night(self) -> bool:
        return self.environment.is_night

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the policy prompt and the inspection surface."""
        return {
            "position": self.position.to_dict(),
            "vitals": {
                "health": self.vitals.health,
                "food": self.vitals.food,
                "oxygen": self.vitals.oxygen,
            },
            "inventory": self.inventory.to_dict(),
            "entities": [e.to_dict() for e in self.entities],
            "resources": [r.to_dict() for r in self.resources],
            "environment": {
                "time_of_day": self.environment.time_of_day,
                "is_night": self.environment.is_night,
                "is_raining": self.environment.is_raining,
                "biome": self.environment.biome,
                "dimension": self.environment.dimension,
                "in_water": self.environment.in_water,
            },
        }
