"""Service orchestrator — RewardsApp.

config → DB init → stores → HTTP router → run until stopped.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from aiohttp import web

from . import __version__
from .config import RewardsConfig, load_config
from .database import DocumentStore
from .ledgers import EventsLedger, WinnersLedger
from .profile_store import ProfileStore
from .settings_store import SettingsStore
from .summary import SummaryAggregator
from .web import create_web_app


class RewardsApp:
    """Top-level application orchestrator."""

    def __init__(self, config_path: str | None = None, config: RewardsConfig | None = None) -> None:
        self.config_path = Path(config_path) if config_path else None
        self.logger = logging.getLogger("rewards")
        self.config: RewardsConfig | None = config

        # Components (initialized in setup())
        self.db: DocumentStore | None = None
        self.profiles: ProfileStore | None = None
        self.settings: SettingsStore | None = None
        self.winners: WinnersLedger | None = None
        self.events: EventsLedger | None = None
        self.summary: SummaryAggregator | None = None
        self.web_app: web.Application | None = None

        self._runner: web.AppRunner | None = None
        self._stop_event = asyncio.Event()
        self._start_time: float | None = None

    @property
    def uptime_seconds(self) -> float:
        if self._start_time is None:
            return 0.0
        return time.time() - self._start_time

    async def setup(self, config: RewardsConfig | None = None) -> None:
        """Load config, initialize the store and wire every component."""
        if config is None:
            config = self.config
        if config is None:
            if self.config_path is None:
                raise ValueError("No config supplied and no config path set.")
            config = load_config(str(self.config_path))
        self.config = config

        self.db = DocumentStore(config.database.path, logging.getLogger("rewards.db"))
        await self.db.initialize()

        self.profiles = ProfileStore(config, self.db, logging.getLogger("rewards.profiles"))
        self.settings = SettingsStore(config, self.db, logging.getLogger("rewards.settings"))
        self.winners = WinnersLedger(config, self.db, logging.getLogger("rewards.winners"))
        self.events = EventsLedger(self.db, logging.getLogger("rewards.events"))
        self.summary = SummaryAggregator(
            config, self.profiles, self.settings, self.winners,
            logging.getLogger("rewards.summary"),
        )
        self.web_app = create_web_app(self, logging.getLogger("rewards.web"))

    async def start(self) -> None:
        """Serve the HTTP router until stop() is called."""
        await self.setup(self.config)
        self._runner = web.AppRunner(self.web_app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.config.server.host, self.config.server.port)
        await site.start()
        self._start_time = time.time()
        self.logger.info(
            "dannyswok-rewards %s listening on %s:%d (db=%s, %d fortune sets)",
            __version__,
            self.config.server.host,
            self.config.server.port,
            self.config.database.path,
            len(self.config.fortune_sets),
        )
        await self._stop_event.wait()

    async def stop(self) -> None:
        self._stop_event.set()
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            self.logger.info("Stopped after %.0fs", self.uptime_seconds)
