"""FastAPI application: static bootstrap files, status, and the signaling socket."""

from __future__ import annotations

import logging
import random
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, HTMLResponse
from pydantic import BaseModel

from .config import VERSION, Settings
from .rtt import RttSink
from .signaling.service import SignalingService
from .signaling.transport import WebSocketRequest

logger = logging.getLogger(__name__)

FALLBACK_HTML = (
    '<p>This is a BOPlish Bootstrap Server - '
    '<a href="//github.com/boplish">github.com/boplish</a>'
)

# Every plain HTTP request gets a static file or the fallback page.
STATIC_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class StatusResponse(BaseModel):
    peers: int
    peer_ids: List[str]


def _static_file(root: Path, path: str) -> Optional[Path]:
    target = (root / (path or "index.html")).resolve()
    try:
        target.relative_to(root)
    except ValueError:
        return None
    return target if target.is_file() else None


def create_app(settings: Optional[Settings] = None, rng: Optional[random.Random] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    rtt_sink = RttSink(settings.rtt_file)
    service = SignalingService(rtt_sink=rtt_sink, strict_sender=settings.strict_sender, rng=rng)
    static_root = Path(settings.static_dir).resolve()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Bootstrap server listening on %s:%s, serving from %s",
            settings.host,
            settings.port,
            static_root,
        )
        yield
        await service.shutdown()
        rtt_sink.close()

    app = FastAPI(title="rendezvous signaling relay", version=VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service

    @app.get("/status", response_model=StatusResponse)
    async def relay_status() -> StatusResponse:
        return StatusResponse(peers=service.peer_count, peer_ids=sorted(service.peer_ids()))

    @app.api_route("/{path:path}", methods=STATIC_METHODS)
    async def serve_static(path: str, request: Request):
        logger.info("Received HTTP %s request for /%s", request.method, path)
        try:
            target = _static_file(static_root, path)
        except (OSError, ValueError) as exc:
            logger.info("Could not read /%s: %s", path, exc)
            target = None
        if target is None:
            return HTMLResponse(FALLBACK_HTML)
        return FileResponse(target)

    @app.websocket("/{path:path}")
    async def signaling_socket(ws: WebSocket, path: str):
        try:
            channel = await service.connect(WebSocketRequest(ws))
        except WebSocketDisconnect:
            return
        if channel is None:
            return
        try:
            await channel.serve()
        except Exception:
            logger.exception("Connection handler for %s failed", ws.scope.get("path"))
        finally:
            await channel.close()

    return app


app = create_app()

__all__ = ["app", "create_app", "StatusResponse", "FALLBACK_HTML"]
