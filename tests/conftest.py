import asyncio
import json
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import List, Optional

import pytest
import pytest_asyncio
import websockets

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Keep test runs from writing into the working tree's logs/ directory
os.environ.setdefault("AGENT_CLIENT_LOG_DIR", tempfile.mkdtemp(prefix="agent-client-logs-"))


class DummyWebSocket:
    def __init__(self) -> None:
        self.sent_messages: list[str] = []
        self.closed = False
        self.close_code: int | None = None

    async def send(self, data: str) -> None:
        if self.closed:
            raise websockets.exceptions.ConnectionClosedOK(None, None)
        self.sent_messages.append(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True
        self.close_code = code


class FakeAgentServer:
    """Local stand-in for the agent server: greets, records prompts, optionally hangs up."""

    def __init__(self) -> None:
        self.url = ""
        self.greeting: List[str] = []
        self.close_after: Optional[int] = None
        self.received: List[dict] = []
        self.received_at: List[float] = []
        self.opened_at: Optional[float] = None
        self.close_code: Optional[int] = None
        self.disconnected = asyncio.Event()

    async def handler(self, ws) -> None:
        loop = asyncio.get_running_loop()
        self.opened_at = loop.time()
        try:
            for frame in self.greeting:
                await ws.send(frame)
            async for raw in ws:
                self.received.append(json.loads(raw))
                self.received_at.append(loop.time())
                if self.close_after is not None and len(self.received) >= self.close_after:
                    await ws.close(code=1000)
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            self.close_code = ws.close_code
            self.disconnected.set()


@pytest_asyncio.fixture
async def agent_server():
    fake = FakeAgentServer()
    async with websockets.serve(fake.handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        fake.url = f"ws://127.0.0.1:{port}/ws"
        yield fake


@pytest.fixture
def client_logs():
    """Collect records emitted by the client module (its logger does not propagate)."""
    records: List[logging.LogRecord] = []

    class _Collector(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            records.append(record)

    from client import ws_client

    handler = _Collector(level=logging.DEBUG)
    ws_client.logger.addHandler(handler)
    previous = ws_client.logger.level
    ws_client.logger.setLevel(logging.DEBUG)
    yield records
    ws_client.logger.removeHandler(handler)
    ws_client.logger.setLevel(previous)


@pytest.fixture
def dummy_ws():
    return DummyWebSocket()
