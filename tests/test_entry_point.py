import asyncio
import os
import signal
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="SIGINT delivery to a child needs POSIX signals")


async def wait_for(predicate, timeout=10.0):
    loop = asyncio.get_running_loop()
    end = loop.time() + timeout
    while loop.time() < end:
        if predicate():
            return True
        await asyncio.sleep(0.05)
    return False


async def start_cli(*args):
    env = dict(os.environ, PYTHONPATH=str(ROOT), PYTHONUNBUFFERED="1")
    return await asyncio.create_subprocess_exec(
        sys.executable, "-m", "client.demo_cli", *args,
        cwd=str(ROOT),
        env=env,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )


@pytest.mark.asyncio
async def test_sigint_closes_socket_then_exits_zero(agent_server):
    proc = await start_cli("run", "--url", agent_server.url, "--follow-up-delay", "5", "--close-delay", "10")
    try:
        assert await wait_for(lambda: len(agent_server.received) == 1 or proc.returncode is not None)
        assert proc.returncode is None, "client exited before sending its first prompt"

        proc.send_signal(signal.SIGINT)
        output, _ = await asyncio.wait_for(proc.communicate(), timeout=10.0)
    finally:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()

    text = output.decode("utf-8", errors="replace")
    assert proc.returncode == 0, text
    assert "Interrupted, closing connection..." in text
    assert "Disconnected from server" in text
    assert len(agent_server.received) == 1
    assert await wait_for(agent_server.disconnected.is_set, timeout=2.0)
    assert agent_server.close_code == 1000


@pytest.mark.asyncio
async def test_unreachable_server_exits_zero_in_fresh_interpreter():
    proc = await start_cli("run", "--url", "ws://127.0.0.1:1/ws", "--close-delay", "10")
    output, _ = await asyncio.wait_for(proc.communicate(), timeout=20.0)

    text = output.decode("utf-8", errors="replace")
    assert proc.returncode == 0, text
    assert "WebSocket error" in text
    assert "Disconnected from server" in text
    assert "Traceback" not in text
