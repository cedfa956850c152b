"""Command line entry point for the bootstrap/signaling server."""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from typing import Optional, Sequence

from .config import VERSION, Settings

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


def build_parser(defaults: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bootstrap and signaling server for browser peers.")
    parser.add_argument("-b", "--bind", default=defaults.host, help="Bind address")
    parser.add_argument("-p", "--port", type=int, default=defaults.port, help="Listen port")
    parser.add_argument(
        "-d", "--directory", default=defaults.static_dir, help="Directory to serve content from"
    )
    parser.add_argument("--rtt-file", default=defaults.rtt_file, help="File RTT samples are appended to")
    parser.add_argument("--log-level", default=defaults.log_level, choices=LOG_LEVELS)
    parser.add_argument(
        "--strict-sender",
        action="store_true",
        default=defaults.strict_sender,
        help="Bind the 'from' field of every message to the sending connection's peer id",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def parse_settings(argv: Optional[Sequence[str]] = None) -> Settings:
    defaults = Settings.from_env()
    args = build_parser(defaults).parse_args(argv)
    return replace(
        defaults,
        host=args.bind,
        port=args.port,
        static_dir=args.directory,
        rtt_file=args.rtt_file,
        log_level=args.log_level,
        strict_sender=args.strict_sender,
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def main(argv: Optional[Sequence[str]] = None) -> None:
    import uvicorn

    from .app import create_app

    settings = parse_settings(argv)
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        loop="uvloop" if settings.uvloop else "auto",
    )


if __name__ == "__main__":  # pragma: no cover
    main()
