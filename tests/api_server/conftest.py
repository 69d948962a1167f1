# tests/api_server/conftest.py
"""
Pytest configuration and fixtures for API server tests.

The app is built around a real EngineContext wired to the in-memory
FakeSensor/FakeActuator and a mocked policy source.
"""

import random

import pytest
from fastapi.testclient import TestClient

from voxelmind.api_server.main import create_app
from voxelmind.engine.context import EngineContext


@pytest.fixture
def engine(sensor, actuator, policy_source, engine_config):
    return EngineContext(sensor, actuator, policy_source, engine_config, rng=random.Random(11))


@pytest.fixture
def api_client(engine):
    """
    Test client sharing one event loop across requests.

    The context manager keeps background tasks started by ``/auto/start``
    alive between requests.
    """
    with TestClient(create_app(engine)) as client:
        yield client


@pytest.fixture
def api_client_without_engine():
    with TestClient(create_app(None)) as client:
        yield client
