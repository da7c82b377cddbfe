import asyncio
import socket

import pytest


@pytest.fixture
def wait_until():
    """Poll a predicate on the running loop until it holds."""

    async def _wait_until(predicate, timeout=2.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError('condition not met in time')
            await asyncio.sleep(0.01)

    return _wait_until


@pytest.fixture
def unused_port():
    """A loopback port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]
