# src/voxelmind/policy/prompts.py
"""
Rendering of a PolicyContext into chat messages.

Only the response contract is fixed here (a single JSON object of the
documented shape); the wording is free to change.
"""

import json
from typing import Dict, List

from ..execution.actions import ActionKind
from .source import PolicyContext

ACTION_GUIDE = {
    ActionKind.MOVE: '{"forward"|"back"|"left"|"right"|"jump"|"sprint"|"sneak": bool, "ms": int}',
    ActionKind.LOOK_AT: '{"x", "y", "z"}',
    ActionKind.GOTO: '{"x", "y", "z", "radius"?}',
    ActionKind.EXPLORE: '{"x", "y", "z", "radius"?}',
    ActionKind.MINE_AT: '{"x", "y", "z"} (must be within reach)',
    ActionKind.MINE_TREE: '{"x", "y", "z"} of any log of the tree (must be within reach)',
    ActionKind.PLACE_AT: '{"x", "y", "z", "face"?, "item"?}',
    ActionKind.ATTACK_NEAREST: '{"range"?, "types"?: [str]}',
    ActionKind.SELECT_HOTBAR: '{"slot": 0-8}',
    ActionKind.EAT: "{}",
    ActionKind.CRAFT: '{"itemName": str, "count"?: int, "useTable"?: bool}',
}

DECISION_SYSTEM_PROMPT = (
    "You control an agent in a voxel survival world. Choose exactly one next action.\n"
    "Reply with one JSON object and nothing else:\n"
    '{"action": KIND, "args": {...}, "horizon_ms": int (optional)}\n'
    "Available kinds and their args:\n"
    + "\n".join(f"- {kind.value}: {args}" for kind, args in ACTION_GUIDE.items())
    + "\nDo not repeat an action that just failed. Prefer nearby resources."
)

STRATEGY_SYSTEM_PROMPT = (
    "You advise an agent's goal scheduler in a voxel survival world.\n"
    "Given the situation and the goal list, suggest priority adjustments.\n"
    "Reply with one JSON object and nothing else:\n"
    '{"goals": [{"name": str, "priority_adjustment": int between -3 and 3}], '
    '"recommendation": str}'
)


def render_messages(context: PolicyContext) -> List[Dict[str, str]]:
    """Chat messages for ``context`` (system prompt chosen by purpose)."""
    system = STRATEGY_SYSTEM_PROMPT if context.purpose == "strategy" else DECISION_SYSTEM_PROMPT
    sections = {
        "situation": context.snapshot,
        "goals": context.goals,
        "behavior": context.behavior,
        "recent_actions": context.history,
    }
    if context.recommendation:
        sections["strategic_recommendation"] = context.recommendation
    if context.last_decision:
        sections["last_decision"] = context.last_decision
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": json.dumps(sections, indent=2, default=str)},
    ]
