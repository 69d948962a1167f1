# src/voxelmind/api_server/routes/control.py
"""
Control routes: ad-hoc actions, single decision cycles and automatic mode.

Ad-hoc actions go through the same schema validation as policy replies.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException

from ...engine.context import EngineContext
from ...exceptions import ActionValidationError, ExecutorBusyError
from ...execution.actions import parse_action
from .deps import get_engine

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/act")
async def act(
    payload: Dict[str, Any] = Body(...),
    engine: EngineContext = Depends(get_engine),
) -> Dict[str, Any]:
    """
    Validate and execute one action immediately.

    Raises:
        HTTPException: 400 for an invalid action, 409 while another action
            is in flight.
    """
    try:
        action = parse_action(payload)
    except ActionValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        outcome = await engine.execute(action)
    except ExecutorBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    entry = engine.history.last
    return {
        "action": action.to_dict(),
        "outcome": outcome.to_dict(),
        "seq": entry.seq if entry else None,
    }


@router.post("/decide")
async def decide(engine: EngineContext = Depends(get_engine)) -> Dict[str, Any]:
    """Run a single decision cycle now."""
    result = await engine.cycle.run_once()
    return result.to_dict()


@router.post("/auto/start")
async def auto_start(engine: EngineContext = Depends(get_engine)) -> Dict[str, Any]:
    """Start the automatic decision loop."""
    await engine.cycle.start()
    return engine.cycle.status()


@router.post("/auto/stop")
async def auto_stop(engine: EngineContext = Depends(get_engine)) -> Dict[str, Any]:
    await engine.cycle.stop()
    return engine.cycle.status()


@router.get("/auto/status")
async def auto_status(engine: EngineContext = Depends(get_engine)) -> Dict[str, Any]:
    return {
        **engine.cycle.status(),
        "stuck": engine.is_stuck(),
        "execution": engine.execution_state.to_dict(),
    }
