import logging
import random
from dataclasses import dataclass
from typing import Optional

from .codec import WILDCARD, Envelope
from .registry import PeerRegistry, choose_excluding

logger = logging.getLogger(__name__)

DENY = "deny"
FORWARD = "forward"
DROP = "drop"


@dataclass(frozen=True)
class OfferDecision:
    action: str
    target: Optional[str] = None
    reason: str = ""


class AdmissionPolicy:
    """
    Decides what happens to a broadcast offer:
      - the first connecting peer (nobody else registered) is denied
      - an offer naming a registered peer goes to that peer
      - a wildcard offer goes to a uniformly random other peer
    Size check and selection are taken from one registry snapshot.
    """

    def __init__(self, registry: PeerRegistry, rng: Optional[random.Random] = None):
        self._registry = registry
        self._rng = rng or random.Random()

    def admit(self, msg: Envelope) -> OfferDecision:
        peers = self._registry.snapshot()
        sender = msg.get("from")
        to = msg.get("to")
        if len(peers) <= 1:
            return OfferDecision(DENY, reason="no other peer registered")
        if to != WILDCARD:
            if to in peers:
                return OfferDecision(FORWARD, target=to)
            return OfferDecision(DROP, reason=f"unknown receiver {to!r}")
        picked = choose_excluding(peers, sender, self._rng)
        if picked is None:
            return OfferDecision(DROP, reason="no eligible receiver")
        receiver, _ = picked
        logger.debug("Sending offer from: %s to: %s", sender, receiver)
        return OfferDecision(FORWARD, target=receiver)

    def server_seqnr(self) -> int:
        # Server-originated envelopes get a random outer sequence number.
        return self._rng.randrange(1_000_000)
