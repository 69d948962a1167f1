# src/voxelmind/exceptions.py
"""
Custom exceptions for the voxelmind engine.

This module defines a hierarchy of exception classes so callers can tell
validation problems, actuation problems, goal failures and policy-source
failures apart. None of these is allowed to escape the engine's loops;
they are caught at the component boundary that owns them.
"""

class VoxelMindError(Exception):
    """Base class for all voxelmind specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in voxelmind."):
        super().__init__(message)

class ConfigError(VoxelMindError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)

class ActionValidationError(VoxelMindError):
    """Raised when a proposed action is malformed or does not match the action schema."""
    def __init__(self, message: str = "Invalid action.", raw: str | None = None):
        self.raw = raw
        super().__init__(message)

class ActuationError(VoxelMindError):
    """Raised when an Actuator operation reports failure."""
    def __init__(self, reason: str = "actuation failed"):
        self.reason = reason
        super().__init__(f"Actuation failed: {reason}")

class ExecutorBusyError(VoxelMindError):
    """
    Raised when execute() is called while another action is in flight.
    Callers are expected to check ActionExecutionState before executing.
    """
    def __init__(self, message: str = "An action is already in flight."):
        super().__init__(message)

class PolicySourceError(VoxelMindError):
    """Raised for errors originating from the policy source (network, provider, empty reply)."""
    def __init__(self, source_name: str = "Unknown", message: str = "Policy source error."):
        self.source_name = source_name
        super().__init__(f"Error with policy source '{source_name}': {message}")

class GoalError(VoxelMindError):
    """Raised by a goal when its tick cannot proceed."""
    def __init__(self, goal_name: str = "Unknown", message: str = "Goal error."):
        self.goal_name = goal_name
        super().__init__(f"Goal '{goal_name}': {message}")
