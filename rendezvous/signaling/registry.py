"""Authoritative mapping of connected peer ids to their channels."""

from __future__ import annotations

import random
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional, Tuple


def choose_excluding(
    peers: Mapping[str, Any], exclude: Optional[str], rng: random.Random
) -> Optional[Tuple[str, Any]]:
    """Pick one ``(peer_id, channel)`` uniformly among *peers* other than *exclude*."""

    candidates = [pid for pid in peers if pid != exclude]
    if not candidates:
        return None
    peer_id = rng.choice(candidates)
    return peer_id, peers[peer_id]


class PeerRegistry:
    # Channels are not owned here: the transport closes them, we only drop references.
    def __init__(self):
        self._lock = Lock()
        self._peers: Dict[str, Any] = {}

    def register(self, peer_id: str, channel) -> Optional[Any]:
        """Insert or replace *peer_id*; returns the superseded channel, if any.

        The superseded channel is not closed.
        """
        with self._lock:
            previous = self._peers.get(peer_id)
            self._peers[peer_id] = channel
            return previous

    def lookup(self, peer_id) -> Optional[Any]:
        with self._lock:
            return self._peers.get(peer_id)

    def remove(self, peer_id: str, channel=None) -> bool:
        """Delete *peer_id*; a no-op when absent.

        With *channel* given, the entry is only removed while it still points
        at that exact channel, so a late close of a superseded connection
        cannot evict a newer registration under the same id.
        """
        with self._lock:
            current = self._peers.get(peer_id)
            if current is None:
                return False
            if channel is not None and current is not channel:
                return False
            del self._peers[peer_id]
            return True

    def identify(self, channel) -> Optional[str]:
        """Return the id *channel* is currently registered under."""
        with self._lock:
            for peer_id, registered in self._peers.items():
                if registered is channel:
                    return peer_id
        return None

    def size(self) -> int:
        with self._lock:
            return len(self._peers)

    __len__ = size

    def peer_ids(self) -> List[str]:
        with self._lock:
            return list(self._peers.keys())

    def snapshot(self) -> Dict[str, Any]:
        """Consistent copy of the mapping, for read-then-act decisions."""
        with self._lock:
            return dict(self._peers)

    def select_random_excluding(
        self, peer_id: Optional[str], rng: Optional[random.Random] = None
    ) -> Optional[Any]:
        """Channel of a uniformly random peer other than *peer_id*, or ``None``.

        Callers that also need the chosen id use ``choose_excluding`` on a
        ``snapshot()``.
        """
        picked = choose_excluding(self.snapshot(), peer_id, rng or random)
        return picked[1] if picked else None

    def clear(self) -> List[Any]:
        with self._lock:
            channels = list(self._peers.values())
            self._peers.clear()
            return channels


__all__ = ["PeerRegistry", "choose_excluding"]
