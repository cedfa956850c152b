"""Starlette WebSocket adapters for the connection-request and channel contracts."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from fastapi import WebSocket, status
from fastapi.responses import PlainTextResponse
from starlette.websockets import WebSocketState

from .errors import ChannelClosed

logger = logging.getLogger(__name__)

# ASGI extension that lets a server answer an upgrade with a plain HTTP response.
DENIAL_EXTENSION = "websocket.http.response"

# Frames a stalled client may have pending before sends to it start failing.
OUTBOX_SIZE = 256


def _connected(ws: WebSocket) -> bool:
    return (
        ws.application_state == WebSocketState.CONNECTED
        and ws.client_state == WebSocketState.CONNECTED
    )


class WebSocketChannel:
    """
    One peer's socket.
      - send() is synchronous: frames go to a bounded outbox drained by a writer
        task; a write that fails later is reported through on_failure
      - serve() pumps inbound frames to "message" handlers until disconnect,
        then fires "close" handlers once
    """

    def __init__(self, ws: WebSocket, outbox_size: int = OUTBOX_SIZE):
        self.ws = ws
        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=outbox_size)
        self._handlers: Dict[str, List[Callable]] = {"message": [], "close": []}
        self._closed = False

    @property
    def open(self) -> bool:
        return not self._closed and _connected(self.ws)

    def on(self, event: str, handler: Callable) -> None:
        self._handlers[event].append(handler)

    def send(self, text: str, on_failure: Optional[Callable[[Exception], None]] = None) -> None:
        if not self.open:
            raise ChannelClosed("websocket is not open")
        try:
            self._outbox.put_nowait((text, on_failure))
        except asyncio.QueueFull:
            raise ChannelClosed("outbox full, peer is not reading") from None

    async def serve(self) -> None:
        writer = asyncio.create_task(self._drain())
        try:
            while True:
                message = await self.ws.receive()
                if message["type"] == "websocket.disconnect":
                    break
                text = message.get("text")
                if text is None and message.get("bytes") is not None:
                    text = message["bytes"].decode("utf-8", errors="replace")
                if text is not None:
                    self._emit("message", text)
        finally:
            self._closed = True
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass
            self._fail_pending(ChannelClosed("websocket closed before the frame was written"))
            self._emit("close")

    async def close(self, code: int = status.WS_1000_NORMAL_CLOSURE) -> None:
        self._closed = True
        if not _connected(self.ws):
            return
        try:
            await self.ws.close(code=code)
        except (RuntimeError, OSError) as exc:
            logger.debug("Socket already closed: %s", exc)

    async def _drain(self) -> None:
        while True:
            text, on_failure = await self._outbox.get()
            try:
                await self.ws.send_text(text)
            except Exception as exc:
                logger.info("Dropping outgoing frame, websocket send failed: %s", exc)
                self._closed = True
                self._fail(on_failure, exc)
                self._fail_pending(exc)
                return

    def _fail_pending(self, exc: Exception) -> None:
        while not self._outbox.empty():
            _, on_failure = self._outbox.get_nowait()
            self._fail(on_failure, exc)

    def _fail(self, on_failure: Optional[Callable[[Exception], None]], exc: Exception) -> None:
        if on_failure is None:
            return
        try:
            on_failure(exc)
        except Exception:
            logger.exception("Failure callback raised")

    def _emit(self, event: str, *args) -> None:
        for handler in list(self._handlers[event]):
            handler(*args)


class WebSocketRequest:
    def __init__(self, ws: WebSocket):
        self.ws = ws
        self.channel: Optional[WebSocketChannel] = None

    @property
    def path(self) -> str:
        # Undecoded, so /ws/a%20b registers as "a%20b"; the query string is not part of it.
        raw = self.ws.scope.get("raw_path")
        if raw:
            return raw.decode("latin-1").split("?", 1)[0]
        return self.ws.scope.get("path", "")

    async def accept(self) -> WebSocketChannel:
        await self.ws.accept()
        self.channel = WebSocketChannel(self.ws)
        return self.channel

    async def reject(self, code: int, reason: str) -> None:
        if DENIAL_EXTENSION in self.ws.scope.get("extensions", {}):
            await self.ws.send_denial_response(PlainTextResponse(reason, status_code=code))
        else:
            await self.ws.close(code=status.WS_1008_POLICY_VIOLATION, reason=reason)


__all__ = ["WebSocketChannel", "WebSocketRequest"]
