# src/voxelmind/engine/__init__.py
"""Engine context and the decision cycle orchestrator."""

from .context import EngineContext
from .cycle import CycleResult, CycleStatus, DecisionCycle

__all__ = ["CycleResult", "CycleStatus", "DecisionCycle", "EngineContext"]
