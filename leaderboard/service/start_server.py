"""
`leaderboard-server` entry point.

Command-line flags are written into the LB_* environment before the config is
built, so the launcher and the app's lifespan read the same settings.
"""

import argparse
import logging
import os
import sys

import uvicorn

from .config import LeaderboardConfig

logger = logging.getLogger(__name__)

APP_IMPORT_PATH = "leaderboard.service.app:app"

# flag -> environment variable
FLAG_ENV = {
    "host": "LB_HTTP_HOST",
    "port": "LB_HTTP_PORT",
    "log_level": "LB_LOG_LEVEL",
    "interval": "LB_UPDATE_INTERVAL_SECONDS",
    "heartbeats": "LB_HEARTBEATS_PATH",
    "registry": "LB_REGISTRY_PATH",
    "cache": "LB_CACHE_PATH",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="leaderboard-server",
        description="Serve the node reputation leaderboard over HTTP",
    )
    parser.add_argument("--host", help="Bind address (LB_HTTP_HOST)")
    parser.add_argument("--port", type=int, help="Bind port (LB_HTTP_PORT)")
    parser.add_argument("--log-level", dest="log_level", help="Log level (LB_LOG_LEVEL)")
    parser.add_argument("--interval", type=float, help="Recompute interval in seconds")
    parser.add_argument("--heartbeats", help="Heartbeat JSON-lines file")
    parser.add_argument("--registry", help="Node registry JSON file")
    parser.add_argument("--cache", help="Leaderboard cache file")
    return parser


def apply_overrides(args: argparse.Namespace):
    """Export every flag that was given into its LB_* variable."""
    for flag, env_name in FLAG_ENV.items():
        value = getattr(args, flag)
        if value is not None:
            os.environ[env_name] = str(value)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    apply_overrides(args)

    try:
        config = LeaderboardConfig.from_env()
    except ValueError as e:
        print(f"Invalid LB_* setting: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))
    logger.info(
        f"Starting leaderboard server on {config.host}:{config.port} "
        f"(refresh every {config.update_interval:g}s, cache {config.cache_path})"
    )

    uvicorn.run(
        APP_IMPORT_PATH,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
