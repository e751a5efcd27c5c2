"""Reward settings and automation toggles — two singleton documents."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .models import SettingsPatch
from .utils import clamp_percent, now_iso, to_number

if TYPE_CHECKING:
    from .config import RewardsConfig
    from .database import DocumentCollection, DocumentStore

SETTINGS_COLLECTION = "dannyswok_reward_settings"
SETTINGS_ID = "settings"
AUTOMATION_COLLECTION = "dannyswok_reward_automation"
AUTOMATION_ID = "automation"


def calculate_budget_pool(budget_percent: float, revenue_baseline: float) -> float:
    return max(0, (budget_percent / 100) * revenue_baseline)


def normalize_odds(defaults: dict[str, str], odds: dict[str, Any] | None) -> dict[str, str]:
    """Layer non-empty string odds over *defaults*; other values are dropped."""
    normalized = dict(defaults)
    for key, value in (odds or {}).items():
        if isinstance(value, str) and value.strip():
            normalized[key] = value.strip()
    return normalized


class SettingsStore:
    """Accessors for the prize-budget settings and automation toggles."""

    def __init__(
        self,
        config: RewardsConfig,
        store: DocumentStore,
        logger: logging.Logger,
    ) -> None:
        self._config = config
        self._store = store
        self._logger = logger

    # ══════════════════════════════════════════════════════════
    #  Settings
    # ══════════════════════════════════════════════════════════

    def _settings_defaults(self) -> dict[str, Any]:
        defaults = self._config.settings_defaults
        return {
            "budgetPercent": defaults.budget_percent,
            "revenueBaseline": defaults.revenue_baseline,
            "odds": dict(defaults.odds),
        }

    async def _load_settings(self) -> tuple[DocumentCollection, dict]:
        return await self._store.ensure_document(
            SETTINGS_COLLECTION, SETTINGS_ID, self._settings_defaults,
        )

    async def get_reward_settings(self) -> dict[str, Any]:
        """Stored settings with ``budgetPool`` recomputed on every read."""
        _, doc = await self._load_settings()
        return self._serialize_settings(doc)

    async def update_reward_settings(self, patch: SettingsPatch | dict | None = None) -> dict[str, Any]:
        """Merge the provided fields; percent is clamped to [0, 100], baseline to >= 0."""
        if not isinstance(patch, SettingsPatch):
            patch = SettingsPatch.from_payload(patch)

        async with self._store.lock(SETTINGS_COLLECTION, SETTINGS_ID):
            collection, doc = await self._load_settings()
            changes: dict[str, Any] = {"updatedAt": now_iso()}
            if patch.budget_percent is not None:
                current = to_number(doc.get("budgetPercent"), 0)
                changes["budgetPercent"] = clamp_percent(to_number(patch.budget_percent, current))
            if patch.revenue_baseline is not None:
                current = to_number(doc.get("revenueBaseline"), 0)
                changes["revenueBaseline"] = max(0, to_number(patch.revenue_baseline, current))
            if patch.odds:
                changes["odds"] = normalize_odds(
                    self._config.settings_defaults.odds,
                    {**(doc.get("odds") or {}), **patch.odds},
                )
            if patch.updated_by:
                changes["updatedBy"] = patch.updated_by
            await collection.update_one({"_id": SETTINGS_ID}, {"$set": changes})

        self._logger.info("Reward settings updated: %s", patch.to_dict())
        return self._serialize_settings({**doc, **changes})

    def _serialize_settings(self, doc: dict) -> dict[str, Any]:
        defaults = self._config.settings_defaults
        budget_percent = to_number(doc.get("budgetPercent"), defaults.budget_percent)
        revenue_baseline = to_number(doc.get("revenueBaseline"), defaults.revenue_baseline)
        return {
            "budgetPercent": budget_percent,
            "revenueBaseline": revenue_baseline,
            "odds": normalize_odds(defaults.odds, doc.get("odds")),
            "budgetPool": calculate_budget_pool(budget_percent, revenue_baseline),
            "updatedAt": doc.get("updatedAt"),
            "updatedBy": doc.get("updatedBy"),
        }

    # ══════════════════════════════════════════════════════════
    #  Automation
    # ══════════════════════════════════════════════════════════

    async def _load_automation(self) -> tuple[DocumentCollection, dict]:
        return await self._store.ensure_document(
            AUTOMATION_COLLECTION,
            AUTOMATION_ID,
            lambda: dict(self._config.automation_defaults),
        )

    async def get_reward_automation(self) -> dict[str, Any]:
        """Default toggles overlaid with the stored values."""
        _, doc = await self._load_automation()
        return self._serialize_automation(doc)

    async def update_reward_automation(self, patch: dict[str, Any] | None = None) -> dict[str, Any]:
        """Apply boolean values for known toggles; anything else is ignored."""
        patch = patch or {}
        async with self._store.lock(AUTOMATION_COLLECTION, AUTOMATION_ID):
            collection, doc = await self._load_automation()
            changes: dict[str, Any] = {"updatedAt": now_iso()}
            for key in self._config.automation_defaults:
                if key not in patch:
                    continue
                value = patch[key]
                if isinstance(value, bool):
                    changes[key] = value
                else:
                    self._logger.warning("Ignoring non-boolean automation value for %s: %r", key, value)
            updated_by = patch.get("updatedBy")
            if updated_by:
                changes["updatedBy"] = str(updated_by)
            await collection.update_one({"_id": AUTOMATION_ID}, {"$set": changes})

        self._logger.info("Reward automation updated: %s", changes)
        return self._serialize_automation({**doc, **changes})

    def _serialize_automation(self, doc: dict) -> dict[str, Any]:
        merged: dict[str, Any] = dict(self._config.automation_defaults)
        merged.update({k: v for k, v in doc.items() if k != "_id"})
        return merged
