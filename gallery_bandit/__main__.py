"""Serve the recommendation API with uvicorn."""

from __future__ import annotations

import argparse
import logging
from typing import Sequence

import uvicorn

from .config import load_config


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    config = load_config()
    parser = argparse.ArgumentParser(description="Run the gallery bandit API server.")
    parser.add_argument("--host", default=config.host, help="Interface to bind (env HOST)")
    parser.add_argument("--port", type=int, default=config.port, help="Port to bind (env PORT)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    parser.add_argument("--log-level", default="info", help="uvicorn log level")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper())
    uvicorn.run(
        "gallery_bandit.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
