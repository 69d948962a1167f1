# src/voxelmind/execution/actions.py
"""
Action model, per-kind argument schemas and policy-text extraction.

An ``Action`` is an immutable intent: one kind from ``ActionKind``, a
parameter bag validated against that kind's argument model, and an
optional time horizon in milliseconds. Actions come from two places:
the external policy source (free text, parsed and validated here) and the
behavioral override layer (constructed directly).
"""

import json
import re
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..exceptions import ActionValidationError
from ..world.geometry import Vec3


class ActionKind(str, Enum):
    """The fixed enumeration of primitive actions."""
    MOVE = "MOVE"
    LOOK_AT = "LOOK_AT"
    GOTO = "GOTO"
    EXPLORE = "EXPLORE"
    MINE_AT = "MINE_AT"
    MINE_TREE = "MINE_TREE"
    PLACE_AT = "PLACE_AT"
    ATTACK_NEAREST = "ATTACK_NEAREST"
    SELECT_HOTBAR = "SELECT_HOTBAR"
    EAT = "EAT"
    CRAFT = "CRAFT"

    @classmethod
    def _missing_(cls, value: object):  # type: ignore[misc]
        """Accept lower-case kinds such as ``"goto"`` from chatty models."""
        if isinstance(value, str):
            upper_value = value.strip().upper()
            for member in cls:
                if member.value == upper_value:
                    return member
        return None


NAVIGATION_KINDS = frozenset({ActionKind.GOTO, ActionKind.EXPLORE})
EXTRACTION_KINDS = frozenset({ActionKind.MINE_AT, ActionKind.MINE_TREE})


# =============================================================================
# Argument models
# =============================================================================


class _Args(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class NoArgs(_Args):
    pass


class MoveArgs(_Args):
    forward: bool = False
    back: bool = False
    left: bool = False
    right: bool = False
    jump: bool = False
    sprint: bool = False
    sneak: bool = False
    ms: int = Field(default=400, gt=0)


class PointArgs(_Args):
    x: float
    y: float
    z: float


class GotoArgs(PointArgs):
    radius: float = Field(default=1.0, ge=0.0)


class PlaceArgs(PointArgs):
    face: Literal["top", "bottom", "north", "south", "east", "west"] = "top"
    item: Optional[str] = None


class AttackArgs(_Args):
    range: Optional[float] = Field(default=None, gt=0.0)
    types: Optional[List[str]] = None


class SelectHotbarArgs(_Args):
    slot: int = Field(ge=0, le=8)


class CraftArgs(_Args):
    item_name: str = Field(alias="itemName", min_length=1)
    count: int = Field(default=1, ge=1, le=64)
    use_table: bool = Field(default=False, alias="useTable")


ARGUMENT_MODELS: Dict[ActionKind, type[_Args]] = {
    ActionKind.MOVE: MoveArgs,
    ActionKind.LOOK_AT: PointArgs,
    ActionKind.GOTO: GotoArgs,
    ActionKind.EXPLORE: GotoArgs,
    ActionKind.MINE_AT: PointArgs,
    ActionKind.MINE_TREE: PointArgs,
    ActionKind.PLACE_AT: PlaceArgs,
    ActionKind.ATTACK_NEAREST: AttackArgs,
    ActionKind.SELECT_HOTBAR: SelectHotbarArgs,
    ActionKind.EAT: NoArgs,
    ActionKind.CRAFT: CraftArgs,
}


# =============================================================================
# Action
# =============================================================================


class Action(BaseModel):
    """
    An immutable, schema-validated intent.

    ``args`` is normalised through the kind's argument model on
    construction, so handlers can rely on every required field being
    present and typed (``args["x"]`` is a float, ``args["ms"]`` an int).
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    action: ActionKind
    args: Dict[str, Any] = Field(default_factory=dict)
    horizon_ms: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="before")
    @classmethod
    def normalise_args(cls, data: Any) -> Any:
        """Validate ``args`` against the argument model of ``action``."""
        if not isinstance(data, dict):
            return data
        try:
            kind = ActionKind(data.get("action"))
        except ValueError:
            return data  # field validation reports the bad kind
        args = data.get("args")
        if args is None:
            args = {}
        if not isinstance(args, dict):
            return data
        try:
            parsed = ARGUMENT_MODELS[kind].model_validate(args)
        except ValidationError as e:
            raise ValueError(f"invalid args for {kind.value}: {e.errors(include_url=False)}") from e
        return {**data, "action": kind, "args": parsed.model_dump(exclude_none=True)}

    @property
    def kind(self) -> ActionKind:
        return self.action

    @property
    def target(self) -> Optional[Vec3]:
        """Target point for kinds that carry x/y/z."""
        if all(k in self.args for k in ("x", "y", "z")):
            return Vec3(self.args["x"], self.args["y"], self.args["z"])
        return None

    def signature(self) -> str:
        """
        Canonical repetition key: kind plus normalised arguments.

        Coordinates and other numbers are rounded to whole units so that
        ``GOTO 10.2,64,5`` and ``GOTO 10.4,64,5`` count as the same intent.
        """
        normalised = {key: _normalise(value) for key, value in self.args.items()}
        return f"{self.action.value}:{json.dumps(normalised, sort_keys=True, separators=(',', ':'))}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"action": self.action.value, "args": dict(self.args)}
        if self.horizon_ms is not None:
            data["horizon_ms"] = self.horizon_ms
        return data

    def describe(self) -> str:
        target = self.target
        return f"{self.action.value} {target}" if target is not None else self.action.value


def _normalise(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return int(round(value))
    if isinstance(value, str):
        return value.strip().lower()
    if isinstance(value, (list, tuple)):
        return sorted(_normalise(v) for v in value)
    return value


# =============================================================================
# Parsing untrusted policy output
# =============================================================================

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def extract_json_object(text: Optional[str]) -> Dict[str, Any]:
    """
    Pull the first JSON object out of free-form model output.

    Markdown code fences are stripped first; then the outermost ``{...}``
    span is decoded.

    Raises:
        ActionValidationError: If no JSON object can be decoded.
    """
    if not text or not text.strip():
        raise ActionValidationError("Empty response from policy source.", raw=text)

    candidate = text
    fenced = _FENCE_RE.search(text)
    if fenced:
        candidate = fenced.group(1)

    match = _OBJECT_RE.search(candidate)
    if not match:
        raise ActionValidationError("No JSON object found in response.", raw=text)

    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ActionValidationError(f"Malformed JSON in response: {e.msg}", raw=text) from e

    if not isinstance(payload, dict):
        raise ActionValidationError("Response JSON is not an object.", raw=text)
    return payload


def parse_action(payload: Any, raw: Optional[str] = None) -> Action:
    """
    Validate an already-decoded payload as an Action.

    Raises:
        ActionValidationError: If the payload does not match the schema.
    """
    if not isinstance(payload, dict):
        raise ActionValidationError("Action must be a JSON object.", raw=raw)
    try:
        return Action.model_validate(payload)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'action'}: {err['msg']}"
            for err in e.errors(include_url=False)
        )
        raise ActionValidationError(f"Action failed schema validation: {problems}", raw=raw) from e


def extract_action(text: Optional[str]) -> Action:
    """Extract and validate one Action from policy-source text."""
    return parse_action(extract_json_object(text), raw=text)
