# src/voxelmind/api_server/routes/state.py
"""
Read-only routes: snapshot, goals, behavior, history and the decision prompt.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request

from ... import __version__
from ...engine.context import EngineContext
from ...policy.prompts import render_messages
from .deps import get_engine

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health(request: Request) -> Dict[str, Any]:
    """Liveness check; reports degraded when no engine is attached."""
    engine = getattr(request.app.state, "engine", None)
    return {
        "status": "healthy" if engine is not None else "degraded",
        "version": __version__,
    }


@router.get("/state")
async def get_state(engine: EngineContext = Depends(get_engine)) -> Dict[str, Any]:
    """Current sensor snapshot plus execution state."""
    try:
        snapshot = engine.snapshot()
    except Exception as e:
        logger.error(f"Snapshot failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Snapshot failed: {e}")
    return {
        "snapshot": snapshot.to_dict(),
        "execution": engine.execution_state.to_dict(),
    }


@router.get("/goals")
async def get_goals(engine: EngineContext = Depends(get_engine)) -> Dict[str, Any]:
    return {
        "scheduler": engine.scheduler.status(),
        "advisor": engine.advisor.status(),
    }


@router.get("/behavior")
async def get_behavior(engine: EngineContext = Depends(get_engine)) -> Dict[str, Any]:
    return engine.memory.status()


@router.get("/debug/history")
async def get_history(engine: EngineContext = Depends(get_engine)) -> Dict[str, Any]:
    return {
        "max_entries": engine.history.max_entries,
        "entries": engine.history.to_list(),
        "last_decision": engine.cycle.status()["last_decision"],
    }


@router.get("/debug/prompt")
async def get_prompt(engine: EngineContext = Depends(get_engine)) -> Dict[str, Any]:
    """The decision prompt the policy source would receive right now."""
    try:
        context = engine.cycle.build_context(engine.snapshot())
    except Exception as e:
        logger.error(f"Prompt rendering failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Prompt rendering failed: {e}")
    return {
        "purpose": context.purpose,
        "messages": render_messages(context),
    }
