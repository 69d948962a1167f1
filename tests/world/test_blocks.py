# tests/world/test_blocks.py
"""Tests for block predicates, geometry helpers and connected-block search."""

import math

import pytest

from voxelmind.world.blocks import (
    connected_blocks,
    find_nearest_land,
    is_air,
    is_hazard,
    is_log,
    is_ore,
    is_solid,
    is_water,
    is_wood_item,
    open_target,
)
from voxelmind.world.geometry import Vec3, point_at_distance
from voxelmind.world.snapshot import Environment, InventorySummary


class TestPredicates:

    @pytest.mark.parametrize("name", ["oak_log", "stripped_birch_wood", "crimson_stem"])
    def test_logs(self, name):
        assert is_log(name)

    @pytest.mark.parametrize("name", [None, "", "oak_planks", "oak_leaves", "stone"])
    def test_not_logs(self, name):
        assert not is_log(name)

    def test_air_and_ore(self):
        assert is_air(None)
        assert is_air("cave_air")
        assert not is_air("dirt")
        assert is_ore("deepslate_iron_ore")
        assert is_ore("ancient_debris")
        assert not is_ore("stone")
        assert is_hazard("lava")
        assert is_wood_item("spruce_planks")


class TestGeometry:

    def test_block_key_floors_negative_coordinates(self):
        assert Vec3(-0.5, 64.9, 2.1).block_key() == (-1, 64, 2)

    def test_point_at_distance_is_horizontal(self):
        origin = Vec3(10, 70, -3)
        point = point_at_distance(origin, math.pi / 2, 30)
        assert point.y == 70
        assert point.horizontal_distance_to(origin) == pytest.approx(30, abs=0.1)

    def test_from_mapping(self):
        assert Vec3.from_mapping({"x": 1, "y": "2", "z": 3.5}) == Vec3(1.0, 2.0, 3.5)


class TestConnectedBlocks:

    def _world(self, blocks):
        table = {p.block_key(): name for p, name in blocks.items()}
        return lambda p: table.get(p.block_key(), "air")

    def test_start_not_matching_returns_empty(self):
        assert connected_blocks(Vec3(0, 0, 0), self._world({})) == []

    def test_trunk_and_diagonal_branch_bottom_up(self):
        blocks = {Vec3(0, y, 0): "oak_log" for y in range(64, 68)}
        blocks[Vec3(1, 68, 1)] = "oak_log"  # diagonal-only neighbour
        blocks[Vec3(5, 64, 0)] = "oak_log"  # separate tree
        found = connected_blocks(Vec3(0, 65, 0), self._world(blocks))
        assert len(found) == 5
        assert [p.y for p in found] == [64, 65, 66, 67, 68]
        assert Vec3(5, 64, 0) not in found

    def test_cap_on_discovered_blocks(self):
        blocks = {Vec3(0, y, 0): "oak_log" for y in range(0, 50)}
        found = connected_blocks(Vec3(0, 0, 0), self._world(blocks), max_nodes=10)
        assert len(found) == 10

    def test_custom_predicate(self):
        blocks = {Vec3(0, 10, 0): "iron_ore", Vec3(1, 10, 0): "iron_ore", Vec3(2, 10, 0): "stone"}
        found = connected_blocks(Vec3(0, 10, 0), self._world(blocks), predicate=is_ore)
        assert len(found) == 2


class TestSnapshotParts:

    def test_inventory_totals(self):
        inventory = InventorySummary.from_counts({"oak_log": 3, "oak_planks": 4, "cobblestone": 6, "dirt": 0})
        assert inventory.wood == 7
        assert inventory.stone == 6
        assert inventory.total == 13
        assert not inventory.has("dirt")

    @pytest.mark.parametrize("time_of_day, night", [(6000, False), (13000, True), (18000, True), (23500, False)])
    def test_night(self, time_of_day, night):
        assert Environment(time_of_day=time_of_day).is_night is night


def lookup(blocks):
    """Block lookup over a {(x, y, z): name} map; everything else is air."""
    return lambda position: blocks.get(position.block_key(), "air")


class TestNavigationQueries:

    def test_solidity(self):
        assert is_solid("stone")
        assert not is_solid("air")
        assert not is_solid("water")
        assert not is_solid("short_grass")
        assert is_water("water")

    def test_open_target_unchanged(self):
        target = Vec3(5.5, 64, 2)
        assert open_target(target, lookup({})) is target

    def test_open_target_rises_out_of_solid_block(self):
        blocks = {(5, 64, 2): "stone", (5, 65, 2): "dirt"}
        assert open_target(Vec3(5, 64, 2), lookup(blocks)) == Vec3(5, 66, 2)

    def test_open_target_steps_sideways_when_buried(self):
        blocks = {(5, y, 2): "stone" for y in range(64, 68)}
        assert open_target(Vec3(5, 64, 2), lookup(blocks)) == Vec3(6, 64, 2)

    def test_nearest_land_prefers_closest_ring(self):
        blocks = {(4, 63, 0): "sand", (-2, 63, 0): "dirt"}
        assert find_nearest_land(Vec3(0.3, 64, 0.2), lookup(blocks)) == Vec3(-2, 64, 0)

    def test_land_needs_air_above(self):
        blocks = {(2, y, 0): "water" for y in range(61, 67)}
        blocks[(2, 63, 0)] = "sand"
        assert find_nearest_land(Vec3(0, 64, 0), lookup(blocks), radius=3) is None

    def test_no_land_in_radius(self):
        assert find_nearest_land(Vec3(0, 64, 0), lookup({(20, 63, 0): "sand"}), radius=5) is None
