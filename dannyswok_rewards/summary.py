"""Summary aggregator — cross-profile rollup of the rewards program.

Full scan on every call: all profiles are re-read and their set progress
re-derived. Fine for a single restaurant's player base.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .set_progress import summarize_sets
from .utils import now_iso

if TYPE_CHECKING:
    from .config import RewardsConfig
    from .ledgers import WinnersLedger
    from .profile_store import ProfileStore
    from .settings_store import SettingsStore


class SummaryAggregator:
    def __init__(
        self,
        config: RewardsConfig,
        profiles: ProfileStore,
        settings: SettingsStore,
        winners: WinnersLedger,
        logger: logging.Logger,
    ) -> None:
        self._config = config
        self._profiles = profiles
        self._settings = settings
        self._winners = winners
        self._logger = logger

    async def get_reward_summary(self) -> dict[str, Any]:
        profiles = await self._profiles.list_reward_profiles()
        totals = {
            "players": 0,
            "totalPoints": 0,
            "activeStreaks": 0,
            "instantWins": 0,
            "completedSets": 0,
            "activeCollections": 0,
            "collectionPieces": 0,
        }
        for profile in profiles:
            set_totals = summarize_sets(profile["sets"])
            totals["players"] += 1
            totals["totalPoints"] += profile["points"]
            totals["activeStreaks"] += 1 if profile["streakDays"] > 0 else 0
            totals["instantWins"] += profile["instantWins"]
            totals["completedSets"] += set_totals["completedSets"]
            totals["activeCollections"] += set_totals["activeSets"]
            totals["collectionPieces"] += set_totals["collectedPieces"]

        settings = await self._settings.get_reward_settings()
        winners = await self._winners.get_recent_winners()
        self._logger.debug("Summary computed over %d profiles", totals["players"])

        return {
            **totals,
            "prizeBudget": {
                "percent": settings["budgetPercent"],
                "baseline": settings["revenueBaseline"],
                "pool": settings["budgetPool"],
            },
            "latestWinners": winners[: self._config.winners.summary_count],
            "updatedAt": now_iso(),
        }
