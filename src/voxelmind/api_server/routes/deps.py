# src/voxelmind/api_server/routes/deps.py
"""Shared request helpers."""

import logging

from fastapi import HTTPException, Request

from ...engine.context import EngineContext

logger = logging.getLogger(__name__)


def get_engine(request: Request) -> EngineContext:
    """The engine attached to app state, or a 503."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        logger.warning("Engine not available for request")
        raise HTTPException(status_code=503, detail="Engine is not initialized")
    return engine
