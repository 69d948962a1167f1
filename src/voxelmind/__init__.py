# src/voxelmind/__init__.py
"""
voxelmind: autonomous decision and execution engine for embodied agents.

Main entry points:
    - EngineContext: owns scheduler, executor, behavioral memory and the
      decision cycle for one agent
    - load_engine_config: typed configuration from TOML or a dict
    - Action / ActionKind: the primitive action model
"""

from importlib.metadata import PackageNotFoundError, version

from .config import EngineConfig, load_engine_config
from .engine import CycleResult, CycleStatus, DecisionCycle, EngineContext
from .exceptions import (
    ActionValidationError,
    ActuationError,
    ConfigError,
    ExecutorBusyError,
    GoalError,
    PolicySourceError,
    VoxelMindError,
)
from .execution import Action, ActionKind, Outcome, OutcomeKind

try:
    __version__ = version("voxelmind")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

__all__ = [
    "Action",
    "ActionKind",
    "ActionValidationError",
    "ActuationError",
    "ConfigError",
    "CycleResult",
    "CycleStatus",
    "DecisionCycle",
    "EngineConfig",
    "EngineContext",
    "ExecutorBusyError",
    "GoalError",
    "Outcome",
    "OutcomeKind",
    "PolicySourceError",
    "VoxelMindError",
    "__version__",
    "load_engine_config",
]
