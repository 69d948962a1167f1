# tests/execution/test_actions.py
"""
Tests for the Action model, signatures and policy-text extraction.
"""

import pytest

from voxelmind.exceptions import ActionValidationError
from voxelmind.execution.actions import (
    Action,
    ActionKind,
    extract_action,
    extract_json_object,
    parse_action,
)
from voxelmind.world.geometry import Vec3

# =============================================================================
# Action model
# =============================================================================


class TestAction:
    """Schema validation and normalisation."""

    def test_goto_args_are_typed(self):
        """Integer coordinates become floats and radius gets its default."""
        action = Action(action="GOTO", args={"x": 10, "y": 64, "z": -3})
        assert action.kind is ActionKind.GOTO
        assert action.args == {"x": 10.0, "y": 64.0, "z": -3.0, "radius": 1.0}
        assert action.target == Vec3(10, 64, -3)

    def test_lowercase_kind_accepted(self):
        """Kinds are matched case-insensitively."""
        assert Action(action="eat").kind is ActionKind.EAT

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            Action(action="FLY")

    def test_missing_required_arg_rejected(self):
        """MINE_AT without z fails validation."""
        with pytest.raises(ValueError):
            Action(action="MINE_AT", args={"x": 1, "y": 2})

    def test_unknown_top_level_field_rejected(self):
        with pytest.raises(ValueError):
            Action(action="EAT", args={}, reason="hungry")

    def test_hotbar_slot_bounds(self):
        Action(action="SELECT_HOTBAR", args={"slot": 8})
        with pytest.raises(ValueError):
            Action(action="SELECT_HOTBAR", args={"slot": 9})

    def test_craft_accepts_camel_case(self):
        """CRAFT args accept itemName/useTable and normalise to snake case."""
        action = Action(action="CRAFT", args={"itemName": "stick", "count": 4, "useTable": False})
        assert action.args == {"item_name": "stick", "count": 4, "use_table": False}

    def test_non_positive_horizon_rejected(self):
        with pytest.raises(ValueError):
            Action(action="EAT", horizon_ms=0)

    def test_action_is_immutable(self):
        action = Action(action="EAT")
        with pytest.raises(Exception):
            action.horizon_ms = 500

    # ── signature() ──────────────────────────────────────────────

    def test_signature_ignores_small_coordinate_differences(self):
        """Coordinates are rounded so nearby targets share a signature."""
        a = Action(action="GOTO", args={"x": 10.2, "y": 64, "z": 5})
        b = Action(action="GOTO", args={"x": 9.8, "y": 64.1, "z": 5.3})
        assert a.signature() == b.signature()

    def test_signature_differs_by_kind(self):
        args = {"x": 1, "y": 2, "z": 3}
        assert Action(action="GOTO", args=args).signature() != Action(action="EXPLORE", args=args).signature()

    def test_signature_ignores_horizon(self):
        a = Action(action="EAT", horizon_ms=100)
        b = Action(action="EAT", horizon_ms=900)
        assert a.signature() == b.signature()

    def test_to_dict_round_trips_through_parse(self):
        action = Action(action="MINE_TREE", args={"x": 1, "y": 64, "z": 2}, horizon_ms=2000)
        assert parse_action(action.to_dict()) == action


# =============================================================================
# Extraction from policy text
# =============================================================================


class TestExtraction:
    """Defensive extraction of one Action from free-form text."""

    def test_plain_json(self):
        action = extract_action('{"action": "EAT", "args": {}}')
        assert action.kind is ActionKind.EAT

    def test_fenced_json_with_chatter(self):
        text = (
            "I think we should mine.\n"
            "```json\n"
            '{"action": "MINE_AT", "args": {"x": 1, "y": 63, "z": 0}, "horizon_ms": 1500}\n'
            "```\nGood luck!"
        )
        action = extract_action(text)
        assert action.kind is ActionKind.MINE_AT
        assert action.horizon_ms == 1500

    def test_json_embedded_in_prose(self):
        action = extract_action('Next: {"action": "SELECT_HOTBAR", "args": {"slot": 2}} done')
        assert action.args["slot"] == 2

    @pytest.mark.parametrize("text", ["", "   ", None, "no json here at all"])
    def test_no_object_raises(self, text):
        with pytest.raises(ActionValidationError):
            extract_action(text)

    def test_malformed_json_raises(self):
        with pytest.raises(ActionValidationError) as exc_info:
            extract_action('{"action": "EAT", "args": {}')
        assert exc_info.value.raw == '{"action": "EAT", "args": {}'

    def test_schema_invalid_raises_with_details(self):
        with pytest.raises(ActionValidationError) as exc_info:
            extract_action('{"action": "GOTO", "args": {"x": "north"}}')
        assert "schema" in str(exc_info.value)

    def test_extract_json_object_rejects_arrays(self):
        with pytest.raises(ActionValidationError):
            extract_json_object("[1, 2, 3]")
