# src/voxelmind/api_server/routes/__init__.py
"""Routers for the inspection/control surface."""

from .control import router as control_router
from .state import router as state_router

__all__ = ["control_router", "state_router"]
