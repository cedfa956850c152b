"""Runtime settings, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

VERSION = "0.1.0"


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    host: str = "127.0.0.1"
    port: int = 5000
    static_dir: str = "./static/"
    rtt_file: str = "rtt.dat"
    log_level: str = "info"
    strict_sender: bool = False
    uvloop: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            host=os.getenv("RENDEZVOUS_HOST", cls.host),
            port=int(os.getenv("RENDEZVOUS_PORT", str(cls.port))),
            static_dir=os.getenv("RENDEZVOUS_STATIC_DIR", cls.static_dir),
            rtt_file=os.getenv("RENDEZVOUS_RTT_FILE", cls.rtt_file),
            log_level=os.getenv("RENDEZVOUS_LOG_LEVEL", cls.log_level).lower(),
            strict_sender=_flag("RENDEZVOUS_STRICT_SENDER"),
            uvloop=_flag("UVLOOP"),
        )
