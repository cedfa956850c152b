"""Admission of WebSocket connection requests and registry cleanup."""

from __future__ import annotations

import logging
from functools import partial
from typing import Callable, Optional, Tuple

from .registry import PeerRegistry

logger = logging.getLogger(__name__)

SIGNALING_PREFIX = "/ws/"
RTT_PREFIX = "/rttcollector"

PEER = "peer"
COLLECTOR = "collector"
MALFORMED = "malformed"

REJECT_CODE = 404
REJECT_REASON = "malformed request"


def classify(path: str) -> Tuple[str, Optional[str]]:
    """Map a request path to ``(kind, peer_id)``.

    ``/rttcollector...`` goes to the telemetry sink, ``/ws/<peerId>`` is a
    signaling peer (everything after the prefix is the id), the rest is
    malformed.
    """
    if path[: len(RTT_PREFIX)] == RTT_PREFIX:
        return COLLECTOR, None
    peer_id = path[len(SIGNALING_PREFIX):]
    if not peer_id or path[: len(SIGNALING_PREFIX)] != SIGNALING_PREFIX:
        return MALFORMED, None
    return PEER, peer_id


class ConnectionLifecycleManager:
    def __init__(
        self,
        registry: PeerRegistry,
        on_frame: Callable[[object, str], None],
        rtt_sink=None,
    ):
        self._registry = registry
        self._on_frame = on_frame
        self._rtt_sink = rtt_sink

    async def handle(self, request):
        """Accept or reject *request*; returns the accepted channel or ``None``."""

        kind, peer_id = classify(request.path)
        if kind == COLLECTOR and self._rtt_sink is not None:
            return await self._accept_collector(request)
        if kind != PEER:
            logger.info("Discarding Request because of malformed uri %s", request.path)
            await request.reject(REJECT_CODE, REJECT_REASON)
            return None

        logger.info("Received WS request from PeerId %s", peer_id)
        channel = await request.accept()
        channel.on("message", partial(self._on_frame, channel))
        channel.on("close", partial(self.release, peer_id, channel))
        previous = self._registry.register(peer_id, channel)
        if previous is not None and previous is not channel:
            logger.info("PeerId %s reconnected, superseding its previous connection", peer_id)
        return channel

    async def _accept_collector(self, request):
        logger.info("Received WS RTT collector request")
        channel = await request.accept()
        channel.on("message", self._rtt_sink.append)
        return channel

    def release(self, peer_id: str, channel) -> None:
        if self._registry.remove(peer_id, channel):
            logger.info("Removing user: %s", peer_id)
        else:
            logger.debug("Close of superseded connection for %s, keeping registration", peer_id)


__all__ = ["ConnectionLifecycleManager", "classify", "SIGNALING_PREFIX", "RTT_PREFIX"]
