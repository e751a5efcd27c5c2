"""Configuration system for dannyswok-rewards.

All Pydantic models are defined here with sensible defaults, so an empty
YAML mapping is a valid config. The fortune-set catalog, reward defaults and
profile template live here rather than in the database.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


# ═══════════════════════════════════════════════════════════════
#  Service
# ═══════════════════════════════════════════════════════════════

class DatabaseConfig(BaseModel):
    path: str = "rewards.db"


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080


# ═══════════════════════════════════════════════════════════════
#  Retention
# ═══════════════════════════════════════════════════════════════

class InventoryConfig(BaseModel):
    keep_latest: int = Field(default=60, ge=1, description="Reveals retained per profile")


class WinnersConfig(BaseModel):
    limit: int = Field(default=25, ge=1, description="Winners kept in the ledger")
    summary_count: int = Field(default=5, ge=0, description="Winners shown in the summary")


# ═══════════════════════════════════════════════════════════════
#  Reward defaults
# ═══════════════════════════════════════════════════════════════

class RewardSettingsDefaults(BaseModel):
    budget_percent: float = Field(default=5.0, ge=0, le=100)
    revenue_baseline: float = Field(default=20000.0, ge=0)
    odds: dict[str, str] = Field(
        default={
            "instant": "1 in 12",
            "collection": "1 in 3",
            "points": "1 in 2",
            "grandPrize": "1 in 500",
        },
        description="Odds descriptor name → display string",
    )


def _default_automation() -> dict[str, bool]:
    return {
        "autoAnnounceWinners": True,
        "streakReminders": True,
        "expiringPieceAlerts": True,
        "flashEventBroadcasts": False,
        "smsWinnerNotifications": False,
    }


class ProfileTemplateConfig(BaseModel):
    points: int = 0
    next_tier: int = 250
    streak_days: int = 0
    streak_bonus: str = "Visit three days in a row for a bonus cookie"
    instant_wins: int = 0
    last_instant_reward: str = "No instant wins yet"


# ═══════════════════════════════════════════════════════════════
#  Fortune-set catalog
# ═══════════════════════════════════════════════════════════════

class FortunePieceConfig(BaseModel):
    id: str
    label: str
    icon: str | None = None
    description: str | None = None


class FortuneSetConfig(BaseModel):
    id: str
    name: str
    rarity: str = "common"
    prize: str = ""
    theme: str = ""
    accent_color: str = "#c0392b"
    pieces: list[FortunePieceConfig] = Field(default_factory=list)


def _default_fortune_sets() -> list[FortuneSetConfig]:
    return [
        FortuneSetConfig(
            id="dragon-feast",
            name="Dragon Feast",
            rarity="legendary",
            prize="Family feast for four",
            theme="dragon",
            accent_color="#c0392b",
            pieces=[
                FortunePieceConfig(id="dragon-head", label="Dragon Head", icon="🐉"),
                FortunePieceConfig(id="dragon-claw", label="Dragon Claw", icon="🐾"),
                FortunePieceConfig(id="dragon-pearl", label="Dragon Pearl", icon="🔮"),
                FortunePieceConfig(id="dragon-tail", label="Dragon Tail", icon="🔥"),
            ],
        ),
        FortuneSetConfig(
            id="lucky-lantern",
            name="Lucky Lantern",
            rarity="rare",
            prize="Free entrée",
            theme="lantern",
            accent_color="#e67e22",
            pieces=[
                FortunePieceConfig(id="lantern-red", label="Red Lantern", icon="🏮"),
                FortunePieceConfig(id="lantern-gold", label="Gold Tassel", icon="🎐"),
                FortunePieceConfig(id="lantern-flame", label="Lantern Flame", icon="🕯️"),
            ],
        ),
        FortuneSetConfig(
            id="golden-dumpling",
            name="Golden Dumpling",
            rarity="common",
            prize="Free appetizer",
            theme="dumpling",
            accent_color="#f1c40f",
            pieces=[
                FortunePieceConfig(id="dumpling-wrapper", label="Wrapper", icon="🥟"),
                FortunePieceConfig(id="dumpling-filling", label="Filling", icon="🥬"),
                FortunePieceConfig(id="dumpling-sauce", label="Dipping Sauce", icon="🥢"),
            ],
        ),
    ]


# ═══════════════════════════════════════════════════════════════
#  Top-Level Config
# ═══════════════════════════════════════════════════════════════

class RewardsConfig(BaseModel):
    """Full rewards service config."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    inventory: InventoryConfig = Field(default_factory=InventoryConfig)
    winners: WinnersConfig = Field(default_factory=WinnersConfig)
    settings_defaults: RewardSettingsDefaults = Field(default_factory=RewardSettingsDefaults)
    automation_defaults: dict[str, bool] = Field(default_factory=_default_automation)
    profile_template: ProfileTemplateConfig = Field(default_factory=ProfileTemplateConfig)
    fortune_sets: list[FortuneSetConfig] = Field(default_factory=_default_fortune_sets)


# ═══════════════════════════════════════════════════════════════
#  Config Loading
# ═══════════════════════════════════════════════════════════════

def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand ${VAR} and ${VAR:-default} in string values."""
    if isinstance(obj, str):
        return re.sub(
            r"\$\{([^}:]+)(?::-(.*?))?\}",
            lambda m: os.environ.get(m.group(1), m.group(2) or ""),
            obj,
        )
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


def load_config(config_path: str) -> RewardsConfig:
    """Load and validate YAML config file into RewardsConfig."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError("Config file must contain a YAML mapping at the top level.")

    raw = _expand_env_vars(raw)
    return RewardsConfig(**raw)
