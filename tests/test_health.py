"""
Unit tests for the health endpoint.
"""

import socket

import aiohttp
from aiohttp import test_utils

from feed_relay.health import HealthServer, create_app


def _free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestHealthApp:
    """Tests for the aiohttp application."""

    async def test_root_returns_message(self) -> None:
        """Test the root route returns the liveness string."""
        async with test_utils.TestClient(test_utils.TestServer(create_app("alive"))) as client:
            response = await client.get("/")

            assert response.status == 200
            assert await response.text() == "alive"

    async def test_unknown_route(self) -> None:
        """Test other routes are not served."""
        async with test_utils.TestClient(test_utils.TestServer(create_app("alive"))) as client:
            response = await client.get("/status")

            assert response.status == 404


class TestHealthServer:
    """Tests for the HealthServer lifecycle."""

    async def test_start_and_stop(self) -> None:
        """Test the server answers while running."""
        port = _free_port()
        server = HealthServer("127.0.0.1", port, "Feed relay is running")

        await server.start()
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(f"http://127.0.0.1:{port}/") as response:
                    assert response.status == 200
                    assert await response.text() == "Feed relay is running"
        finally:
            await server.stop()

        assert server._runner is None

    async def test_stop_without_start(self) -> None:
        """Test stopping a server that never started."""
        server = HealthServer()

        await server.stop()
