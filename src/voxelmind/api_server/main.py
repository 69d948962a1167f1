# src/voxelmind/api_server/main.py
"""
FastAPI application for inspecting and steering a running engine.

The app never builds an engine itself; the hosting process constructs an
``EngineContext`` (with its real Sensor and Actuator bridges) and hands it
to ``create_app``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..engine.context import EngineContext
from .routes import control_router, state_router

logger = logging.getLogger(__name__)


def create_app(engine: Optional[EngineContext], manage_lifecycle: bool = False) -> FastAPI:
    """
    Build the inspection/control app around ``engine``.

    Args:
        engine: The engine to expose. ``None`` yields a degraded app whose
            engine endpoints answer 503.
        manage_lifecycle: Start the scheduler loops on startup (decision
            loop stays off until ``/auto/start``) and stop everything on
            shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Inspection server starting up...")
        if manage_lifecycle and engine is not None:
            await engine.start(decisions=False)
        yield
        logger.info("Inspection server shutting down...")
        if manage_lifecycle and engine is not None:
            try:
                await engine.stop()
            except Exception as e:
                logger.error(f"Error during engine shutdown: {e}", exc_info=True)

    app = FastAPI(
        title="voxelmind",
        description="Inspection and control surface for the voxelmind decision engine",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"], allow_credentials=True,
        allow_methods=["*"], allow_headers=["*"],
    )
    app.include_router(state_router, tags=["state"])
    app.include_router(control_router, tags=["control"])
    return app
