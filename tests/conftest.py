"""Shared test fixtures for the rpcramp test suite."""

from __future__ import annotations

import asyncio
import json
import logging
import socket
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pytest
from aiohttp import web

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator
    from pathlib import Path


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# =============================================================================
# JSON-RPC test server handlers
# =============================================================================

RECEIVED_KEY = web.AppKey("received", list)

# Comfortably above the default 1000-byte success threshold
LARGE_RESULT = "0x" + "ab" * 1024


@dataclass
class RpcServer:
    """A running test server.

    Attributes:
        url: Base URL, e.g. ``http://127.0.0.1:54321``.
        received: Method names of every request received, in arrival order.
    """

    url: str
    received: list[str] = field(default_factory=list)


async def _record(request: web.Request) -> dict[str, Any]:
    payload = json.loads(await request.read())
    received: list[str] = request.app[RECEIVED_KEY]
    received.append(payload.get("method", ""))
    return payload


async def _result_handler(request: web.Request) -> web.Response:
    """Return a successful JSON-RPC result with a large body."""
    payload = await _record(request)
    return web.json_response({"jsonrpc": "2.0", "id": payload["id"], "result": LARGE_RESULT})


async def _rpc_error_handler(request: web.Request) -> web.Response:
    """Return a compact JSON-RPC error object with status 200."""
    payload = await _record(request)
    return web.json_response(
        {
            "jsonrpc": "2.0",
            "id": payload["id"],
            "error": {"code": -32601, "message": "Method not found"},
        }
    )


async def _status_handler(request: web.Request) -> web.Response:
    """Return a configurable HTTP status (path: /status/503)."""
    await _record(request)
    return web.json_response({"error": True}, status=int(request.match_info["code"]))


async def _slow_handler(request: web.Request) -> web.Response:
    """Respond after a configurable delay (query param: ?delay=0.5)."""
    payload = await _record(request)
    await asyncio.sleep(float(request.query.get("delay", "0.5")))
    return web.json_response({"jsonrpc": "2.0", "id": payload["id"], "result": LARGE_RESULT})


def _create_rpc_app(received: list[str]) -> web.Application:
    """Build the JSON-RPC test app with all test routes."""
    app = web.Application()
    app[RECEIVED_KEY] = received
    app.router.add_post("/rpc", _result_handler)
    app.router.add_post("/rpc-error", _rpc_error_handler)
    app.router.add_post("/status/{code}", _status_handler)
    app.router.add_post("/slow", _slow_handler)
    return app


# =============================================================================
# Fixtures
# =============================================================================


async def _serve(server: RpcServer) -> web.AppRunner:
    """Start the test app on a free local port and fill in ``server.url``."""
    runner = web.AppRunner(_create_rpc_app(server.received))
    await runner.setup()
    port = _get_free_port()
    await web.TCPSite(runner, "127.0.0.1", port).start()
    server.url = f"http://127.0.0.1:{port}"
    return runner


@pytest.fixture
async def rpc_server() -> AsyncIterator[RpcServer]:
    """JSON-RPC server running on the test's event loop."""
    server = RpcServer(url="")
    runner = await _serve(server)
    yield server
    await runner.cleanup()


@pytest.fixture
def sync_rpc_server() -> Iterator[RpcServer]:
    """JSON-RPC server on its own loop in a daemon thread.

    For CLI tests, where ``asyncio.run`` blocks the main thread.
    """
    server = RpcServer(url="")
    loop = asyncio.new_event_loop()
    ready = threading.Event()

    def _run() -> None:
        asyncio.set_event_loop(loop)
        runner = loop.run_until_complete(_serve(server))
        ready.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_run, name="rpc-test-server", daemon=True)
    thread.start()
    assert ready.wait(timeout=5.0), "test server did not start"

    yield server

    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=5.0)


@pytest.fixture
def request_file(tmp_path: Path) -> Path:
    """A static request template for the ``ping`` method."""
    path = tmp_path / "request.json"
    path.write_text(json.dumps({"id": 1, "jsonrpc": "2.0", "method": "ping", "params": []}))
    return path


@pytest.fixture(autouse=True)
def _isolate_rpcramp_logger() -> Iterator[None]:
    """Restore the ``rpcramp`` logger after each test.

    CLI runs call ``setup_logging``, which adds a handler bound to the
    runner's stream and turns propagation off.
    """
    logger = logging.getLogger("rpcramp")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


@pytest.fixture
def rpcramp_caplog(caplog: pytest.LogCaptureFixture) -> Iterator[pytest.LogCaptureFixture]:
    """``caplog`` attached to the ``rpcramp`` logger directly.

    ``setup_logging`` stops propagation to the root logger, where ``caplog``
    normally listens. Propagation is off while attached so each record is
    captured once.
    """
    logger = logging.getLogger("rpcramp")
    previous = (logger.level, logger.propagate)
    logger.addHandler(caplog.handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    yield caplog
    logger.removeHandler(caplog.handler)
    logger.setLevel(previous[0])
    logger.propagate = previous[1]


@pytest.fixture
def refused_url() -> str:
    """URL of a local port nothing listens on."""
    return f"http://127.0.0.1:{_get_free_port()}/rpc"
