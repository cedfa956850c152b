"""Append-only sink for round-trip-time samples sent to /rttcollector."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, TextIO

logger = logging.getLogger(__name__)


class RttSink:
    def __init__(self, path="rtt.dat"):
        self.path = Path(path)
        self._stream: Optional[TextIO] = None

    def append(self, sample: str) -> None:
        if self._stream is None:
            logger.info("Opening RTT sink %s", self.path)
            self._stream = self.path.open("a", encoding="utf-8")
        self._stream.write(sample + "\n")
        self._stream.flush()

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
