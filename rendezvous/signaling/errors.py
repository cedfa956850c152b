"""Exception types raised inside the signaling core."""

from __future__ import annotations


class SignalingError(Exception):
    """Base class for signaling failures."""


class DecodeError(SignalingError, ValueError):
    """Raised when an inbound frame is not a JSON object."""


class ChannelClosed(SignalingError, ConnectionError):
    """Raised by a channel's ``send`` when it is no longer open."""


class DeliveryError(SignalingError):
    """Raised when an envelope cannot be handed to its target channel."""

    def __init__(self, peer_id, reason: str):
        super().__init__(f"could not deliver to {peer_id!r}: {reason}")
        self.peer_id = peer_id
        self.reason = reason


__all__ = ["SignalingError", "DecodeError", "ChannelClosed", "DeliveryError"]
