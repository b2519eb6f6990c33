from __future__ import annotations

from collections.abc import Generator

import pytest

from taskboard.config import GatewayConfig
from taskboard.observability import reset_metrics
from taskboard.store import InMemoryTaskStore
from tests.helpers.clock import FakeClock


@pytest.fixture(autouse=True)
def _fresh_metrics() -> Generator[None, None, None]:
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(clock: FakeClock) -> InMemoryTaskStore:
    return InMemoryTaskStore(clock=clock)


@pytest.fixture()
def gateway_config() -> GatewayConfig:
    """Gateway config with rate limiting off so tests can fire freely."""
    return GatewayConfig(rate_limit_max=0)
