# src/voxelmind/config/__init__.py
"""Configuration models and loaders for voxelmind."""

from .engine_config import (
    AdvisorConfig,
    BehaviorConfig,
    DecisionConfig,
    EngineConfig,
    ExecutorConfig,
    HistoryConfig,
    PolicyConfig,
    SchedulerConfig,
    load_engine_config,
)

__all__ = [
    "AdvisorConfig",
    "BehaviorConfig",
    "DecisionConfig",
    "EngineConfig",
    "ExecutorConfig",
    "HistoryConfig",
    "PolicyConfig",
    "SchedulerConfig",
    "load_engine_config",
]
