"""Routing decisions for decoded signaling envelopes."""

from __future__ import annotations

import logging
from functools import partial
from typing import Callable, Dict, Optional

from . import codec
from .admission import DENY, FORWARD, AdmissionPolicy
from .codec import SERVER_ID, SIGNALING_PROTOCOL, WILDCARD, Envelope
from .errors import DeliveryError
from .registry import PeerRegistry

logger = logging.getLogger(__name__)

# Whether a failed delivery is bounced back to the sender as an ERROR envelope.
# Answers only get logged.
REPORT_FAILURE: Dict[str, bool] = {
    "forward": True,
    "offer": True,
    "answer": False,
}


class MessageRouter:
    def __init__(
        self,
        registry: PeerRegistry,
        admission: Optional[AdmissionPolicy] = None,
        strict_sender: bool = False,
    ):
        self._registry = registry
        self._admission = admission or AdmissionPolicy(registry)
        self._strict_sender = strict_sender
        self._handlers: Dict[str, Callable[[Envelope], None]] = {
            "offer": self._handle_offer,
            "answer": self._handle_answer,
        }

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def route(self, msg: Envelope, from_channel=None) -> None:
        if self._strict_sender and from_channel is not None:
            msg = self._bind_sender(msg, from_channel)
            if msg is None:
                return

        to = msg.get("to")
        if to == SERVER_ID:
            logger.debug("message for me, ignoring: %s", msg)
            return
        if not isinstance(to, str):
            logger.info("Discarding message without a receiver: %s", msg)
            return
        if to == msg.get("from"):
            logger.debug("Discarding self-addressed message: %s", msg)
            return
        if to != WILDCARD:
            logger.debug("forwarding %s", msg)
            self._deliver_or_report("forward", msg)
            return

        payload = msg.get("payload")
        if payload is None:
            logger.debug("Discarding message: %s because it does not carry any payload", msg)
            return
        if not isinstance(payload, dict) or payload.get("type") != SIGNALING_PROTOCOL:
            logger.debug("Discarding message: %s because the payload type is unknown", msg)
            return
        inner = payload.get("payload")
        kind = inner.get("type") if isinstance(inner, dict) else None
        handler = self._handlers.get(kind)
        if handler is None:
            logger.debug("Discarding message: %s because the type is unknown", msg)
            return
        handler(msg)

    # ------------------------------------------------------------------
    # Sub-protocols
    # ------------------------------------------------------------------
    def _handle_offer(self, msg: Envelope) -> None:
        decision = self._admission.admit(msg)
        if decision.action == DENY:
            logger.debug("denying %s", msg)
            self._deny(msg)
        elif decision.action == FORWARD:
            forwarded = dict(msg, to=decision.target)
            self._deliver_or_report("offer", forwarded)
        else:
            logger.info("Could not handle offer from %s: %s", msg.get("from"), decision.reason)

    def _handle_answer(self, msg: Envelope) -> None:
        logger.debug("Sending answer from: %s to: %s", msg.get("from"), msg.get("to"))
        self._deliver_or_report("answer", msg)

    def _deny(self, msg: Envelope) -> None:
        sender = msg.get("from")
        try:
            self._deliver(sender, codec.ack(msg))
        except DeliveryError as exc:
            logger.info("Could not ACK: %s", exc)
        try:
            self._deliver(sender, codec.denied(msg, self._admission.server_seqnr()))
        except DeliveryError as exc:
            logger.info("Could not deny offer: %s", exc)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------
    def _deliver(self, peer_id, msg: Envelope, on_failure=None) -> None:
        channel = self._registry.lookup(peer_id) if isinstance(peer_id, str) else None
        if channel is None:
            raise DeliveryError(peer_id, "unknown peer")
        frame = codec.encode(msg)
        try:
            if on_failure is None:
                channel.send(frame)
            else:
                channel.send(frame, on_failure)
        except Exception as exc:
            raise DeliveryError(peer_id, str(exc) or type(exc).__name__) from exc

    def _deliver_or_report(self, kind: str, msg: Envelope) -> bool:
        # Channels that write asynchronously call back here when the write fails later.
        try:
            self._deliver(msg.get("to"), msg, on_failure=partial(self._delivery_failed, kind, msg))
        except DeliveryError as exc:
            self._delivery_failed(kind, msg, exc)
            return False
        return True

    def _delivery_failed(self, kind: str, msg: Envelope, exc: Exception) -> None:
        if not REPORT_FAILURE[kind]:
            logger.warning("Could not send %s from %s: %s", kind, msg.get("from"), exc)
            return
        logger.info("Could not forward %s to %s: %s", kind, msg.get("to"), exc)
        self._report_failure(msg)

    def _report_failure(self, msg: Envelope) -> None:
        try:
            self._deliver(msg.get("from"), codec.error(msg))
        except DeliveryError as exc:
            logger.info("Could not report forward failure: %s", exc)

    def _bind_sender(self, msg: Envelope, channel) -> Optional[Envelope]:
        actual = self._registry.identify(channel)
        if actual is None:
            logger.info("Dropping message from unregistered channel: %s", msg)
            return None
        claimed = msg.get("from")
        if claimed != actual:
            logger.warning("Sender %r claimed to be %r, rewriting", actual, claimed)
            return dict(msg, **{"from": actual})
        return msg


__all__ = ["MessageRouter", "REPORT_FAILURE"]
