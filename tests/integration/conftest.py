"""Fixtures for integration tests."""

from __future__ import annotations

import socket
from collections.abc import AsyncGenerator

import pytest

from sinclair_ac.client import SinclairClient
from sinclair_ac.config import ClientConfig
from tests.helpers.simulated_device import SimulatedUnitServer


@pytest.fixture
async def unit_server() -> AsyncGenerator[SimulatedUnitServer]:
    """Simulated unit on a loopback port chosen by the OS."""
    server = SimulatedUnitServer()
    await server.start()
    yield server
    await server.stop()


@pytest.fixture
def client_config(unit_server: SimulatedUnitServer) -> ClientConfig:
    return ClientConfig(
        host=unit_server.host,
        command_port=unit_server.port,
        local_port=0,
        request_timeout=0.2,
        retry_interval=0.05,
        update_interval=0.1,
        max_discovery_attempts=2,
        max_missed_polls=2,
    )


@pytest.fixture
async def client(client_config: ClientConfig) -> AsyncGenerator[SinclairClient]:
    client = SinclairClient(client_config)
    yield client
    await client.close()


@pytest.fixture
def unique_metrics_port() -> int:
    """Free TCP port for the metrics endpoint."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
