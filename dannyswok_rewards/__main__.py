"""Command-line entry point (``python -m dannyswok_rewards`` / ``dannyswok-rewards``).

The config file is optional: ``--config`` wins, then the standard search
locations, then the built-in defaults. ``--db``, ``--host`` and ``--port``
are applied on top of whichever config was loaded.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from .config import RewardsConfig, load_config
from .main import RewardsApp

CONFIG_SEARCH_PATHS = (
    "/etc/dannyswok/rewards/config.yaml",
    "./config.yaml",
)

logger = logging.getLogger("rewards")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dannyswok-rewards",
        description="Danny's Wok fortune-cookie rewards service",
    )
    parser.add_argument("--config", help="Path to config.yaml (default: search standard locations)")
    parser.add_argument("--db", help="SQLite file, overrides database.path")
    parser.add_argument("--host", help="Listen address, overrides server.host")
    parser.add_argument("--port", type=int, help="Listen port, overrides server.port")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument(
        "--validate-config",
        action="store_true",
        help="Resolve the config, log what would be served and exit",
    )
    return parser


def find_config(explicit: str | None) -> str | None:
    if explicit:
        return explicit
    for candidate in CONFIG_SEARCH_PATHS:
        if Path(candidate).exists():
            return candidate
    return None


def resolve_config(args: argparse.Namespace) -> RewardsConfig:
    """Load the config (or defaults) and apply command-line overrides."""
    path = find_config(args.config)
    if path is None:
        logger.warning("No config file found, using built-in defaults")
        config = RewardsConfig()
    else:
        config = load_config(path)
        logger.info("Loaded config from %s", path)

    if args.db:
        config.database.path = args.db
    if args.host:
        config.server.host = args.host
    if args.port is not None:
        config.server.port = args.port
    return config


async def serve(config: RewardsConfig) -> None:
    """Run the HTTP service until SIGTERM/SIGINT."""
    app = RewardsApp(config=config)
    loop = asyncio.get_running_loop()
    signals = (signal.SIGTERM, signal.SIGINT) if sys.platform != "win32" else ()
    for sig in signals:
        loop.add_signal_handler(sig, lambda: asyncio.ensure_future(app.stop()))
    try:
        await app.start()
    finally:
        for sig in signals:
            loop.remove_signal_handler(sig)
        await app.stop()


async def main_async(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        config = resolve_config(args)
    except (OSError, ValueError) as e:
        logger.error("Config validation failed: %s", e)
        return 1

    if args.validate_config:
        logger.info(
            "Config is valid: db=%s, listen=%s:%d, %d fortune sets (%d pieces)",
            config.database.path,
            config.server.host,
            config.server.port,
            len(config.fortune_sets),
            sum(len(s.pieces) for s in config.fortune_sets),
        )
        return 0

    await serve(config)
    return 0


def main() -> None:
    """Sync entry point for pyproject.toml [project.scripts]."""
    sys.exit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
