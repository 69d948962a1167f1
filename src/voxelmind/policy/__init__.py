# src/voxelmind/policy/__init__.py
"""External policy sources and prompt rendering."""

from .prompts import render_messages
from .source import OllamaPolicySource, PolicyContext, PolicySource

__all__ = ["OllamaPolicySource", "PolicyContext", "PolicySource", "render_messages"]
