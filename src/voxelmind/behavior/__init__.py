# src/voxelmind/behavior/__init__.py
"""Behavioral memory: repetition tracking and stuck overrides."""

from .memory import BehavioralMemory, MemoryEntry

__all__ = ["BehavioralMemory", "MemoryEntry"]
