from __future__ import annotations
import asyncio
import functools
import json
import signal
from typing import Any, Awaitable, Callable, Dict, Optional, Set

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException

from client.config import ClientConfig
from shared.envelope import Envelope, MalformedFrameError, create_user_message
from shared.log import get_logger, log_envelope
from shared.MessageTypes import MessageType
from shared.utils import new_session_id

logger = get_logger(__name__)


MessageHandler = Callable[[Envelope], Awaitable[None]]

EXIT_OK = 0

# Failures websockets.connect reports for an unreachable peer or rejected handshake
_CONNECT_ERRORS = (OSError, asyncio.TimeoutError, WebSocketException)


class DemoClient:
    """
    Scripted agent server session over a single WebSocket connection.

    On open the first prompt is sent immediately, the follow-up prompt after
    `follow_up_delay` and the connection is closed after `close_delay`.
    Pending timers are cancelled as soon as the connection goes away, so
    nothing is ever sent on a dead socket.
    """

    def __init__(self, config: Optional[ClientConfig] = None, session_id: Optional[str] = None) -> None:
        self.config = config or ClientConfig()
        # One session id per client run, shared by every prompt
        self.session_id = session_id or new_session_id()
        self.websocket: Optional[websockets.ClientConnection] = None
        self.handlers: Dict[str, MessageHandler] = {
            MessageType.CONNECTED.value: self._on_connected,
            MessageType.SDK_MESSAGE.value: self._on_sdk_message,
            MessageType.ERROR.value: self._on_server_error,
        }
        self._timers: Set[asyncio.Task] = set()
        self._closing: Optional[asyncio.Task] = None
        self._close_requested = False

    def on(self, msg_type: str, handler: MessageHandler) -> None:
        self.handlers[msg_type] = handler

    def _context(self, msg_type: Optional[str] = None) -> Dict[str, Any]:
        return {"session_id": self.session_id, "msg_type": msg_type}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self, handle_signals: bool = True) -> int:
        """Connect, play the script, and return the process exit code once closed"""
        loop = asyncio.get_running_loop()
        sigint_installed = handle_signals and self._install_interrupt_handler(loop)
        try:
            if await self.connect():
                if self._close_requested:
                    self.request_close()
                else:
                    await self._on_open()
                await self.recv_loop()
        finally:
            if sigint_installed:
                loop.remove_signal_handler(signal.SIGINT)
            await self._on_close()
        return EXIT_OK

    async def connect(self) -> bool:
        """Open the WebSocket. Failures go to the transport error callback, not the caller."""
        try:
            self.websocket = await websockets.connect(
                self.config.url,
                open_timeout=self.config.open_timeout,
            )
        except _CONNECT_ERRORS as e:
            self._on_transport_error(e)
            return False
        logger.info("Connected to agent server at %s", self.config.url)
        logger.info("Session ID: %s", self.session_id)
        return True

    async def _on_open(self) -> None:
        await self.send_prompt(self.config.first_prompt)
        self._schedule(
            self.config.follow_up_delay,
            functools.partial(self.send_prompt, self.config.follow_up_prompt),
        )
        self._schedule(self.config.close_delay, self._scheduled_close)

    async def _scheduled_close(self) -> None:
        logger.info("Closing connection...")
        self.request_close()

    def interrupt(self) -> None:
        """SIGINT callback: ask for a graceful close; exit waits for the close to complete"""
        logger.warning("Interrupted, closing connection...")
        self.request_close()

    def request_close(self) -> None:
        self._close_requested = True
        if self.websocket is not None and self._closing is None:
            self._closing = asyncio.create_task(self.close())

    async def close(self) -> None:
        if self.websocket is not None:
            await self.websocket.close(code=1000)

    async def _on_close(self) -> None:
        await self._cancel_timers()
        if self._closing is not None:
            await self._closing
        # Release the socket on every exit path (no-op when already closed)
        await self.close()
        logger.info("Disconnected from server")

    def _install_interrupt_handler(self, loop: asyncio.AbstractEventLoop) -> bool:
        try:
            loop.add_signal_handler(signal.SIGINT, self.interrupt)
        except (NotImplementedError, RuntimeError) as e:
            # Windows event loops and non-main threads have no signal handlers
            logger.debug("SIGINT handler not installed: %s", e)
            return False
        return True

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _schedule(self, delay: float, action: Callable[[], Awaitable[Any]]) -> None:
        task = asyncio.create_task(self._run_later(delay, action))
        self._timers.add(task)
        task.add_done_callback(self._timers.discard)

    async def _run_later(self, delay: float, action: Callable[[], Awaitable[Any]]) -> None:
        await asyncio.sleep(delay)
        await action()

    async def _cancel_timers(self) -> None:
        pending = [t for t in self._timers if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.debug("Cancelled %d pending timer(s)", len(pending))

    # ------------------------------------------------------------------
    # Send / receive
    # ------------------------------------------------------------------

    async def send_prompt(self, content: str) -> bool:
        """Send one user_message envelope. Returns False if the socket is gone."""
        if self.websocket is None:
            return False
        message = create_user_message(self.session_id, content)
        log_envelope(logger, "info", f"Sending: {content}", envelope=message.to_dict())
        try:
            await self.websocket.send(message.to_json())
        except ConnectionClosed:
            logger.warning("Connection closed while sending %s", MessageType.USER_MESSAGE.value)
            return False
        return True

    async def recv_loop(self) -> None:
        assert self.websocket is not None
        try:
            async for raw in self.websocket:
                await self.handle_frame(raw)
        except ConnectionClosedError as e:
            self._on_transport_error(e)

    async def handle_frame(self, raw: str | bytes) -> None:
        try:
            env = Envelope.from_json(raw)
        except MalformedFrameError as e:
            logger.error("Failed to parse message: %s", e, extra=self._context())
            return

        handler = self.handlers.get(env.type, self._on_unknown) if env.type else self._on_unknown
        try:
            await handler(env)
        except Exception:
            logger.exception("Handler for %r failed", env.type, extra=self._context(env.type))

    # ------------------------------------------------------------------
    # Built-in handlers
    # ------------------------------------------------------------------

    async def _on_connected(self, env: Envelope) -> None:
        logger.info("Connection confirmed", extra=self._context(env.type))

    async def _on_sdk_message(self, env: Envelope) -> None:
        logger.info("SDK Response:\n%s", json.dumps(env.data, indent=2, ensure_ascii=False), extra=self._context(env.type))

    async def _on_server_error(self, env: Envelope) -> None:
        logger.error("Error: %s", env.error, extra=self._context(env.type))

    async def _on_unknown(self, env: Envelope) -> None:
        logger.warning("Unknown message type: %s", env.raw.get("type"), extra=self._context(env.type))

    def _on_transport_error(self, error: BaseException) -> None:
        # Teardown happens in _on_close
        logger.error("WebSocket error: %s", error, extra=self._context())
