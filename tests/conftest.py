"""Pytest configuration and fixtures for DRIP tests."""

import logging
import os

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Clear DRIP-related environment variables before each test."""
    env_prefixes = ("DRIP_", "SLACK_")
    for key in list(os.environ.keys()):
        if key.startswith(env_prefixes):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handlers and levels installed by configure_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


class StubNode:
    """In-process JSON-RPC node served by aiohttp's TestServer.

    ``results`` maps a method name to its ``result`` value, or to a callable
    taking ``params`` and returning one. A value of ``RpcFailure`` answers
    with an error object instead.
    """

    def __init__(self):
        self.results: dict = {}
        self.calls: list[tuple[str, list]] = []

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    async def handle(self, request: web.Request) -> web.Response:
        body = await request.json()
        method = body["method"]
        params = body.get("params", [])
        self.calls.append((method, params))

        if method not in self.results:
            return web.json_response(
                {
                    "jsonrpc": "2.0",
                    "id": body["id"],
                    "error": {"code": -32601, "message": "method not found"},
                }
            )

        result = self.results[method]
        if callable(result):
            result = result(params)
        if isinstance(result, RpcFailure):
            return web.json_response(
                {
                    "jsonrpc": "2.0",
                    "id": body["id"],
                    "error": {"code": result.code, "message": result.message},
                }
            )
        return web.json_response({"jsonrpc": "2.0", "id": body["id"], "result": result})


class RpcFailure:
    """Error object a StubNode method should answer with."""

    def __init__(self, message: str, code: int = -32000):
        self.message = message
        self.code = code


@pytest.fixture
async def stub_node():
    """Running stub node; yields ``(node, url)``."""
    node = StubNode()
    app = web.Application()
    app.router.add_post("/", node.handle)
    server = TestServer(app)
    await server.start_server()
    yield node, str(server.make_url("/"))
    await server.close()
