"""Wire codec for signaling envelopes.

One UTF-8 JSON object per WebSocket text frame. Decoding is purely
structural; the router checks field presence. The helpers at the bottom
build the control envelopes the relay itself originates.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

import orjson

from .errors import DecodeError

SERVER_ID = "signaling-server"
WILDCARD = "*"
SIGNALING_PROTOCOL = "signaling-protocol"

Envelope = Dict[str, Any]


def decode(raw: Union[str, bytes]) -> Envelope:
    try:
        msg = orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        raise DecodeError(f"malformed frame: {exc}") from exc
    if not isinstance(msg, dict):
        raise DecodeError(f"expected a JSON object, got {type(msg).__name__}")
    return msg


def encode(msg: Envelope) -> str:
    return orjson.dumps(msg).decode("utf-8")


def ack(msg: Envelope) -> Envelope:
    return {
        "type": "ACK",
        "seqnr": msg.get("seqnr"),
        "to": msg.get("from"),
        "from": SERVER_ID,
    }


def error(msg: Envelope, reason: str = "Could not forward message") -> Envelope:
    return {
        "type": "ERROR",
        "seqnr": msg.get("seqnr"),
        "to": msg.get("from"),
        "from": SERVER_ID,
        "error": reason,
    }


def _signaling_seqnr(msg: Envelope) -> Optional[Any]:
    payload = msg.get("payload") or {}
    seqnr = payload.get("seqnr")
    if seqnr is None and isinstance(payload.get("payload"), dict):
        seqnr = payload["payload"].get("seqnr")
    return seqnr


def denied(msg: Envelope, seqnr: int) -> Envelope:
    """ROUTE envelope telling the offering peer nobody is around to pair with."""

    peer = msg.get("from")
    return {
        "type": "ROUTE",
        "to": peer,
        "from": SERVER_ID,
        "seqnr": seqnr,
        "payload": {
            "type": SIGNALING_PROTOCOL,
            "to": peer,
            "from": SERVER_ID,
            "seqnr": _signaling_seqnr(msg),
            "payload": {"type": "denied"},
        },
    }


__all__ = [
    "Envelope",
    "SERVER_ID",
    "WILDCARD",
    "SIGNALING_PROTOCOL",
    "decode",
    "encode",
    "ack",
    "error",
    "denied",
]
