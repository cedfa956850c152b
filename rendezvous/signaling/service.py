"""Facade tying the signaling components together for the transport layer."""

from __future__ import annotations

import logging
import random
from typing import List, Optional

from . import codec
from .admission import AdmissionPolicy
from .errors import DecodeError
from .lifecycle import ConnectionLifecycleManager
from .registry import PeerRegistry
from .router import MessageRouter

logger = logging.getLogger(__name__)


class SignalingService:
    """Owns the peer registry; the web app only talks to this class."""

    def __init__(
        self,
        rtt_sink=None,
        strict_sender: bool = False,
        rng: Optional[random.Random] = None,
    ):
        self._registry = PeerRegistry()
        self._admission = AdmissionPolicy(self._registry, rng)
        self._router = MessageRouter(self._registry, self._admission, strict_sender=strict_sender)
        self._lifecycle = ConnectionLifecycleManager(self._registry, self.handle_frame, rtt_sink)

    async def connect(self, request):
        return await self._lifecycle.handle(request)

    def handle_frame(self, channel, raw) -> None:
        try:
            msg = codec.decode(raw)
        except DecodeError as exc:
            logger.info("Could not parse incoming message: %r %s", raw, exc)
            return
        try:
            self._router.route(msg, channel)
        except Exception:
            logger.exception("Unhandled error while routing %s", msg)

    @property
    def peer_count(self) -> int:
        return self._registry.size()

    def peer_ids(self) -> List[str]:
        return self._registry.peer_ids()

    async def shutdown(self) -> None:
        for channel in self._registry.clear():
            try:
                await channel.close()
            except Exception as exc:
                logger.debug("Error while closing channel on shutdown: %s", exc)


__all__ = ["SignalingService"]
