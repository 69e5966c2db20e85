"""Pytest bootstrap configuration.

Fixtures wire registry, broadcaster and relay service the same way the
application lifespan does.
"""
import os

# Console renderer keeps test output readable
os.environ.setdefault("DEBUG", "true")

import pytest

from application.services.relay_service import ProctorRelayService
from infrastructure.adapters.identity_verifier import AcceptAllIdentityVerifier
from infrastructure.realtime.fanout import Broadcaster
from infrastructure.realtime.registry import ConnectionRegistry


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def relay(registry: ConnectionRegistry) -> ProctorRelayService:
    return ProctorRelayService(
        registry=registry,
        broadcaster=Broadcaster(registry),
        identity=AcceptAllIdentityVerifier(),
        default_terminate_reason="Terminated by proctor",
    )
