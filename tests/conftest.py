"""Shared test fixtures for dannyswok-rewards."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

from dannyswok_rewards.config import RewardsConfig
from dannyswok_rewards.database import DocumentStore
from dannyswok_rewards.ledgers import EventsLedger, WinnersLedger
from dannyswok_rewards.main import RewardsApp
from dannyswok_rewards.profile_store import ProfileStore
from dannyswok_rewards.settings_store import SettingsStore
from dannyswok_rewards.summary import SummaryAggregator


# ── Minimal config dict matching RewardsConfig schema ────────

def make_config_dict(**overrides) -> dict:
    """Build a valid config dict with a small, predictable catalog."""
    base = {
        "database": {"path": "rewards.db"},
        "inventory": {"keep_latest": 60},
        "winners": {"limit": 25, "summary_count": 5},
        "settings_defaults": {
            "budget_percent": 5,
            "revenue_baseline": 20000,
            "odds": {"instant": "1 in 12", "collection": "1 in 3"},
        },
        "automation_defaults": {
            "autoAnnounceWinners": True,
            "streakReminders": True,
            "smsWinnerNotifications": False,
        },
        "profile_template": {
            "points": 0,
            "next_tier": 250,
            "streak_days": 0,
            "streak_bonus": "Three visits in a row",
            "instant_wins": 0,
            "last_instant_reward": "None yet",
        },
        "fortune_sets": [
            {
                "id": "s1",
                "name": "Twin Cranes",
                "rarity": "rare",
                "prize": "Free entrée",
                "theme": "cranes",
                "accent_color": "#2980b9",
                "pieces": [
                    {"id": "p1", "label": "Left Crane"},
                    {"id": "p2", "label": "Right Crane"},
                ],
            },
            {
                "id": "s4",
                "name": "Four Seasons",
                "rarity": "legendary",
                "prize": "Dinner for four",
                "theme": "seasons",
                "pieces": [
                    {"id": "spring", "label": "Spring"},
                    {"id": "summer", "label": "Summer"},
                    {"id": "autumn", "label": "Autumn"},
                    {"id": "winter", "label": "Winter"},
                ],
            },
            {"id": "empty", "name": "Coming Soon", "pieces": []},
        ],
    }
    base.update(overrides)
    return base


def make_entry(set_id: str | None, piece_id: str | None, at: str, entry_id: str = "", type_: str = "collection") -> dict:
    """An inventory entry document as stored on a profile."""
    return {
        "id": entry_id or f"{set_id}-{piece_id}-{at}",
        "label": piece_id or "reveal",
        "type": type_,
        "rarity": "common",
        "icon": "🥠",
        "setId": set_id,
        "pieceId": piece_id,
        "rewardOutcome": None,
        "fortune": None,
        "callToAction": None,
        "progressNote": None,
        "collectedAt": at,
        "expiresAt": None,
    }


@pytest.fixture
def sample_config_dict(tmp_path: Path) -> dict:
    """Return a config dict suitable for tests."""
    return make_config_dict(database={"path": str(tmp_path / "test_rewards.db")})


@pytest.fixture
def sample_config(sample_config_dict: dict) -> RewardsConfig:
    """Return a parsed RewardsConfig."""
    return RewardsConfig(**sample_config_dict)


@pytest_asyncio.fixture
async def store(sample_config: RewardsConfig) -> DocumentStore:
    """Provide an initialized document store backed by a temp file."""
    db = DocumentStore(sample_config.database.path, logging.getLogger("test"))
    await db.initialize()
    return db


@pytest.fixture
def profile_store(sample_config: RewardsConfig, store: DocumentStore) -> ProfileStore:
    return ProfileStore(sample_config, store, logging.getLogger("test"))


@pytest.fixture
def settings_store(sample_config: RewardsConfig, store: DocumentStore) -> SettingsStore:
    return SettingsStore(sample_config, store, logging.getLogger("test"))


@pytest.fixture
def winners_ledger(sample_config: RewardsConfig, store: DocumentStore) -> WinnersLedger:
    return WinnersLedger(sample_config, store, logging.getLogger("test"))


@pytest.fixture
def events_ledger(store: DocumentStore) -> EventsLedger:
    return EventsLedger(store, logging.getLogger("test"))


@pytest.fixture
def summary_aggregator(
    sample_config: RewardsConfig,
    profile_store: ProfileStore,
    settings_store: SettingsStore,
    winners_ledger: WinnersLedger,
) -> SummaryAggregator:
    return SummaryAggregator(
        sample_config, profile_store, settings_store, winners_ledger, logging.getLogger("test"),
    )


@pytest_asyncio.fixture
async def rewards_app(sample_config: RewardsConfig) -> RewardsApp:
    """RewardsApp wired against the test config (HTTP server not started)."""
    app = RewardsApp()
    await app.setup(sample_config)
    return app


@pytest_asyncio.fixture
async def http_client(rewards_app: RewardsApp) -> AsyncGenerator[TestClient, None]:
    """aiohttp test client bound to the rewards router."""
    client = TestClient(TestServer(rewards_app.web_app))
    await client.start_server()
    yield client
    await client.close()
