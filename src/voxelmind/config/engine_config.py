# src/voxelmind/config/engine_config.py
"""
Engine configuration models.

Every tunable of the decision and execution engine lives here as a
Pydantic model with validated defaults. The hierarchy:

    EngineConfig (root)
    ├── DecisionConfig   - decision-cycle interval and safety limits
    ├── HistoryConfig    - action history cap
    ├── ExecutorConfig   - horizons, reach, navigation stall detection
    ├── BehaviorConfig   - stuck detection and override distances
    ├── SchedulerConfig  - goal scheduler tick and active-set limits
    ├── AdvisorConfig    - strategic goal advisor
    ├── PolicyConfig     - external policy source (Ollama)
    └── logging          - plain dict handed to configure_logging()

Usage:
    >>> from voxelmind.config.engine_config import EngineConfig
    >>> config = EngineConfig()
    >>> config.scheduler.max_active_goals
    3

    >>> config = load_engine_config(config_dict={
    ...     "voxelmind": {"behavior": {"stuck_threshold": 4}}
    ... })
    >>> config.behavior.stuck_threshold
    4
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..exceptions import ConfigError

# =============================================================================
# DECISION CYCLE
# =============================================================================


class DecisionConfig(BaseModel):
    """
    Settings for the top-level decision loop.

    Examples:
        >>> DecisionConfig().interval_seconds
        5.0
    """

    interval_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Time between decision cycles",
    )
    max_actions: int = Field(
        default=1000,
        ge=1,
        description="Automatic mode stops after this many executed actions",
    )
    synchronize: bool = Field(
        default=True,
        description="Skip a cycle entirely while an action is still in flight",
    )


class HistoryConfig(BaseModel):
    """Settings for the bounded action history."""

    max_entries: int = Field(
        default=15,
        ge=1,
        le=1000,
        description="Maximum number of history entries kept (oldest evicted first)",
    )


# =============================================================================
# EXECUTOR
# =============================================================================


class ExecutorConfig(BaseModel):
    """
    Settings for the action executor and its per-kind handlers.

    Horizons are in milliseconds. When an action carries no explicit
    ``horizon_ms`` the handler's kind-specific default is used; for GOTO
    and EXPLORE that default grows with the travel estimate to the target.
    Either way the value is clamped to ``[horizon_min_ms, horizon_max_ms]``.
    """

    horizon_min_ms: int = Field(default=100, ge=1, description="Lower clamp for action horizons")
    horizon_max_ms: int = Field(default=60000, ge=1, description="Upper clamp for action horizons")
    default_horizon_ms: int = Field(default=15000, ge=1, description="Horizon for kinds without a specific default")
    move_horizon_ms: int = Field(default=400, ge=1, description="Default horizon for MOVE")
    movement_horizon_ms: int = Field(default=10000, ge=1, description="Floor for the distance-based GOTO and EXPLORE horizon")
    extraction_horizon_ms: int = Field(default=30000, ge=1, description="Default horizon for MINE_AT and MINE_TREE")

    max_reach: float = Field(default=4.5, gt=0.0, description="Extraction targets must be strictly closer than this")
    move_max_ms: int = Field(default=3000, ge=100, description="Upper bound for MOVE control pulses")
    attack_range: float = Field(default=3.5, gt=0.0, description="Default ATTACK_NEAREST range")
    tree_max_blocks: int = Field(default=200, ge=1, description="Cap on connected logs discovered for MINE_TREE")
    approach_timeout_ms: int = Field(default=5000, ge=100, description="Budget to walk within reach of an out-of-reach log")

    # --- Navigation stall detection ---
    poll_interval_ms: int = Field(default=100, ge=10, description="Position polling period during navigation")
    stall_epsilon: float = Field(default=0.1, ge=0.0, description="Distance change below this counts as no progress")
    stall_window_ms: int = Field(default=3000, ge=100, description="Sustained no-progress time that counts as a stall")
    nudge_ms: int = Field(default=200, ge=10, description="Duration of the jump-and-forward corrective pulse")
    arrival_tolerance: float = Field(default=0.5, ge=0.0, description="Extra slack added to a navigation radius")

    # --- Travel time estimates (20 game ticks per second) ---
    ticks_per_block: float = Field(default=20.0, gt=0.0, description="Game ticks to walk one block")
    swim_ticks_per_block: float = Field(default=25.0, gt=0.0, description="Game ticks to swim one block")
    travel_safety_margin: float = Field(default=1.2, ge=1.0, description="Multiplier on the raw travel estimate")
    travel_timeout_factor: float = Field(
        default=1.5,
        ge=1.0,
        description="Buffer on the travel estimate when sizing a GOTO/EXPLORE horizon",
    )
    land_search_radius: int = Field(default=15, ge=1, description="How far to look for land when navigating from water")
    land_arrival_distance: float = Field(default=2.0, gt=0.0, description="Distance at which the swim to land counts as done")

    @model_validator(mode="after")
    def check_horizon_range(self) -> "ExecutorConfig":
        """Reject an inverted horizon clamp range."""
        if self.horizon_min_ms > self.horizon_max_ms:
            raise ValueError("horizon_min_ms must not exceed horizon_max_ms")
        return self

    def clamp_horizon(self, horizon_ms: int) -> int:
        """Clamp a horizon into the configured range."""
        return max(self.horizon_min_ms, min(self.horizon_max_ms, int(horizon_ms)))

    def travel_time_ms(self, distance: float, in_water: bool = False) -> int:
        """Expected time to cover ``distance`` blocks walking, or swimming when ``in_water``."""
        ticks = self.swim_ticks_per_block if in_water else self.ticks_per_block
        return math.ceil(distance * ticks * self.travel_safety_margin * 50)


# =============================================================================
# BEHAVIOR
# =============================================================================


class BehaviorConfig(BaseModel):
    """
    Settings for behavioral memory and the stuck-override layer.

    Examples:
        >>> BehaviorConfig().stuck_threshold
        3
    """

    stuck_threshold: int = Field(
        default=3,
        ge=2,
        le=20,
        description="Identical consecutive signatures that count as stuck",
    )
    memory_depth: int = Field(default=50, ge=1, description="Ring buffer size for recorded signatures")
    proximity_radius: float = Field(default=3.0, gt=0.0, description="Resources within this radius are extracted directly")
    relocation_distance: float = Field(default=30.0, gt=0.0, description="Random relocation distance when nothing is nearby")
    failure_relocation_distance: float = Field(default=40.0, gt=0.0, description="Relocation distance used to leave a failure loop")
    override_window_seconds: float = Field(default=60.0, gt=0.0, description="Window for counting failed extractions")
    failure_threshold: int = Field(default=3, ge=1, description="Failed extractions in the window that trigger leaving the area")
    failure_lookback: int = Field(default=5, ge=1, description="How many recent entries are scanned for failed extractions")
    position_history: int = Field(default=10, ge=1, description="Number of recent agent positions tracked")


# =============================================================================
# GOAL SCHEDULER
# =============================================================================


class SchedulerConfig(BaseModel):
    """Settings for the goal scheduler."""

    max_active_goals: int = Field(default=3, ge=1, le=20, description="Maximum simultaneously active goals")
    tick_interval_ms: int = Field(default=100, ge=1, description="Minimum time between scheduler ticks")
    persistence_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Hard cutoff for how long any goal may stay active",
    )
    sense_radius: float = Field(default=16.0, gt=0.0, description="Radius goals use when scanning the snapshot")


class AdvisorConfig(BaseModel):
    """Settings for the strategic goal advisor."""

    enabled: bool = Field(default=True, description="Consult the policy source for goal priority adjustments")
    interval_seconds: float = Field(default=5.0, gt=0.0, description="Minimum time between advisor evaluations")
    min_priority: int = Field(default=1, description="Lower clamp for adjusted base priorities")
    max_priority: int = Field(default=10, description="Upper clamp for adjusted base priorities")


# =============================================================================
# POLICY SOURCE
# =============================================================================


class PolicyConfig(BaseModel):
    """Settings for the external policy source."""

    provider: str = Field(default="ollama", description="Policy source implementation")
    host: str | None = Field(default=None, description="Ollama host URL; library default when unset")
    model: str = Field(default="llama3.1", description="Model used for decisions")
    timeout_seconds: float = Field(default=60.0, gt=0.0, description="Network timeout per request")
    temperature: float = Field(default=0.2, ge=0.0, le=2.0, description="Sampling temperature")
    options: dict[str, Any] = Field(default_factory=dict, description="Extra provider options")

    @field_validator("provider")
    @classmethod
    def check_provider(cls, v: str) -> str:
        """Only the Ollama provider is bundled."""
        if v.lower() != "ollama":
            raise ValueError(f"Unsupported policy provider: {v}")
        return v.lower()


# =============================================================================
# ROOT
# =============================================================================


class EngineConfig(BaseModel):
    """Root configuration for the engine."""

    decision: DecisionConfig = Field(default_factory=DecisionConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    behavior: BehaviorConfig = Field(default_factory=BehaviorConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    advisor: AdvisorConfig = Field(default_factory=AdvisorConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    logging: dict[str, Any] = Field(default_factory=dict)


def load_engine_config(
    config_dict: dict[str, Any] | None = None,
    config_path: Path | str | None = None,
) -> EngineConfig:
    """
    Load engine configuration from a dictionary or TOML file.

    Args:
        config_dict: Pre-parsed configuration. If it has a ``"voxelmind"``
            key, that table is used. Takes precedence over ``config_path``.
        config_path: Path to a TOML file whose ``[voxelmind]`` table (or
            top level, if absent) holds the settings.

    Returns:
        Validated EngineConfig with defaults for unspecified settings.

    Raises:
        FileNotFoundError: If config_path does not exist.
        ConfigError: If any value fails validation.
    """
    data: dict[str, Any] = {}

    if config_path is not None:
        import tomllib

        path = Path(config_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        data = raw.get("voxelmind", raw)

    if config_dict is not None:
        data = config_dict.get("voxelmind", config_dict)

    try:
        return EngineConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid engine configuration: {e}") from e
