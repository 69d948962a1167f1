# src/voxelmind/world/geometry.py
"""Minimal 3D vector type used for positions and block coordinates."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class Vec3:
    """An immutable point or offset in world space."""

    x: float
    y: float
    z: float

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Vec3":
        """Build from any mapping with ``x``, ``y`` and ``z`` keys."""
        return cls(float(data["x"]), float(data["y"]), float(data["z"]))

    def __add__(self, other: "Vec3") -> "Vec3":
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vec3") -> "Vec3":
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def scaled(self, factor: float) -> "Vec3":
        return Vec3(self.x * factor, self.y * factor, self.z * factor)

    def offset(self, dx: float = 0.0, dy: float = 0.0, dz: float = 0.0) -> "Vec3":
        return Vec3(self.x + dx, self.y + dy, self.z + dz)

    def floored(self) -> "Vec3":
        """Block coordinates containing this point."""
        return Vec3(math.floor(self.x), math.floor(self.y), math.floor(self.z))

    def block_key(self) -> tuple[int, int, int]:
        return (math.floor(self.x), math.floor(self.y), math.floor(self.z))

    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def distance_to(self, other: "Vec3") -> float:
        return (self - other).length()

    def horizontal_distance_to(self, other: "Vec3") -> float:
        return math.hypot(self.x - other.x, self.z - other.z)

    def to_dict(self) -> dict[str, float]:
        return {"x": round(self.x, 2), "y": round(self.y, 2), "z": round(self.z, 2)}

    def __str__(self) -> str:
        return f"({self.x:.1f}, {self.y:.1f}, {self.z:.1f})"


# Face name -> unit offset from the reference block.
FACE_OFFSETS: dict[str, Vec3] = {
    "top": Vec3(0, 1, 0),
    "bottom": Vec3(0, -1, 0),
    "north": Vec3(0, 0, -1),
    "south": Vec3(0, 0, 1),
    "east": Vec3(1, 0, 0),
    "west": Vec3(-1, 0, 0),
}


def point_at_distance(origin: Vec3, angle: float, distance: float) -> Vec3:
    """Horizontal point ``distance`` blocks from ``origin`` along ``angle`` radians."""
    return Vec3(
        round(origin.x + math.cos(angle) * distance, 1),
        origin.y,
        round(origin.z + math.sin(angle) * distance, 1),
    )
