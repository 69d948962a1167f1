# src/voxelmind/world/__init__.py
"""World-facing types: geometry, sensor snapshots and collaborator contracts."""

from .blocks import connected_blocks, is_air, is_hostile, is_log, is_ore
from .geometry import FACE_OFFSETS, Vec3, point_at_distance
from .interfaces import Actuator, ActuatorRequest, RequestRegistry, Sensor
from .snapshot import (
    EntityInfo,
    Environment,
    InventorySummary,
    ResourceCategory,
    ResourceInfo,
    SensorSnapshot,
    Vitals,
)

__all__ = [
    "Actuator",
    "ActuatorRequest",
    "EntityInfo",
    "Environment",
    "FACE_OFFSETS",
    "InventorySummary",
    "RequestRegistry",
    "ResourceCategory",
    "ResourceInfo",
    "Sensor",
    "SensorSnapshot",
    "Vec3",
    "Vitals",
    "connected_blocks",
    "is_air",
    "is_hostile",
    "is_log",
    "is_ore",
    "point_at_distance",
]
