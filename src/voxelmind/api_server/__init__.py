# src/voxelmind/api_server/__init__.py
"""HTTP inspection and control surface for a running engine."""

from .main import create_app

__all__ = ["create_app"]
