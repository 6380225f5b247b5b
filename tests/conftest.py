"""
Pytest configuration for polling_core tests.

This file contains shared fixtures and configuration
for all tests in the project.
"""

import asyncio
from typing import List, Tuple

import pytest

from polling_core.capabilities import Capabilities, RequestProvider
from polling_core.context import StaticContext
from polling_core.native.mock import MockRequestFactory
from polling_core.options import Origin
from polling_core.registry import RequestRegistry


class RecordingConsumer:
    """PollingConsumer that records what it is given."""

    def __init__(self) -> None:
        self.data: List[object] = []
        self.errors: List[Tuple[str, Exception]] = []

    def on_data(self, data) -> None:
        self.data.append(data)

    def on_error(self, reason, context) -> None:
        self.errors.append((reason, context))


async def _run_pending(iterations: int = 3) -> None:
    for _ in range(iterations):
        await asyncio.sleep(0)


@pytest.fixture
def run_pending():
    """Coroutine function letting callbacks scheduled with call_soon run."""
    return _run_pending


@pytest.fixture
def factory():
    """Mock native request factory."""
    return MockRequestFactory()


@pytest.fixture
def capabilities():
    """Capabilities of a fully featured host."""
    return Capabilities(has_native=True, supports_binary=True, supports_cors=True)


@pytest.fixture
def provider(factory, capabilities):
    """Provider handing out mock native requests."""
    return RequestProvider(factory, capabilities=capabilities)


@pytest.fixture
def origin():
    """Origin of the execution context."""
    return Origin(scheme="http", hostname="localhost", port=3000)


@pytest.fixture
def context(origin):
    """Execution context supporting both termination events."""
    return StaticContext(origin=origin)


@pytest.fixture
def registry(context):
    """Registry bound to the test context."""
    return RequestRegistry(context)


@pytest.fixture
def consumer():
    """Recording polling consumer."""
    return RecordingConsumer()


@pytest.fixture
def sample_set_cookies():
    """Sample Set-Cookie values."""
    return [
        "io=abc123; Path=/; HttpOnly",
        "lang=en; Max-Age=3600",
    ]
