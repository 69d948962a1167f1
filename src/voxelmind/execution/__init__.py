# src/voxelmind/execution/__init__.py
"""
Action execution: the action model, single-owner state, handlers,
executor and history.
"""

from .actions import (
    EXTRACTION_KINDS,
    NAVIGATION_KINDS,
    Action,
    ActionKind,
    extract_action,
    extract_json_object,
    parse_action,
)
from .executor import ActionExecutor
from .handlers import HANDLERS, HandlerContext, handles
from .history import ActionHistory, HistoryEntry, Outcome, OutcomeKind
from .state import EXECUTOR_OWNER, ActionExecutionState, goal_owner

__all__ = [
    "Action",
    "ActionExecutionState",
    "ActionExecutor",
    "ActionHistory",
    "ActionKind",
    "EXECUTOR_OWNER",
    "EXTRACTION_KINDS",
    "HANDLERS",
    "HandlerContext",
    "HistoryEntry",
    "NAVIGATION_KINDS",
    "Outcome",
    "OutcomeKind",
    "extract_action",
    "extract_json_object",
    "goal_owner",
    "handles",
    "parse_action",
]
