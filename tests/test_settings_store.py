"""Tests for SettingsStore — prize budget settings and automation toggles."""

from __future__ import annotations

import asyncio

import pytest

from dannyswok_rewards.models import SettingsPatch
from dannyswok_rewards.settings_store import (
    SETTINGS_COLLECTION,
    SettingsStore,
    calculate_budget_pool,
    normalize_odds,
)
from dannyswok_rewards.database import DocumentStore


class TestHelpers:
    def test_budget_pool(self):
        assert calculate_budget_pool(5, 20000) == pytest.approx(1000)
        assert calculate_budget_pool(0, 20000) == 0

    def test_normalize_odds(self):
        odds = normalize_odds({"instant": "1 in 12"}, {"instant": "  1 in 5 ", "blank": " ", "num": 3})
        assert odds == {"instant": "1 in 5"}


class TestRewardSettings:
    async def test_defaults(self, settings_store: SettingsStore):
        settings = await settings_store.get_reward_settings()
        assert settings["budgetPercent"] == 5
        assert settings["revenueBaseline"] == 20000
        assert settings["budgetPool"] == pytest.approx(1000)
        assert settings["odds"] == {"instant": "1 in 12", "collection": "1 in 3"}
        assert settings["updatedAt"] is None
        assert settings["updatedBy"] is None

    @pytest.mark.parametrize(("given", "stored"), [(150, 100), (-5, 0), (12.5, 12.5), ("40", 40)])
    async def test_budget_percent_clamped(self, settings_store: SettingsStore, given, stored):
        settings = await settings_store.update_reward_settings({"budgetPercent": given})
        assert settings["budgetPercent"] == stored
        assert (await settings_store.get_reward_settings())["budgetPercent"] == stored

    async def test_malformed_percent_keeps_stored(self, settings_store: SettingsStore):
        await settings_store.update_reward_settings({"budgetPercent": 20})
        settings = await settings_store.update_reward_settings({"budgetPercent": "lots"})
        assert settings["budgetPercent"] == 20

    async def test_revenue_baseline_non_negative(self, settings_store: SettingsStore):
        settings = await settings_store.update_reward_settings({"revenueBaseline": -10})
        assert settings["revenueBaseline"] == 0
        assert settings["budgetPool"] == 0

    async def test_budget_pool_recomputed(self, settings_store: SettingsStore):
        await settings_store.update_reward_settings({"budgetPercent": 10, "revenueBaseline": 5000})
        settings = await settings_store.get_reward_settings()
        assert settings["budgetPool"] == pytest.approx(500)
        await settings_store.update_reward_settings({"revenueBaseline": 8000})
        settings = await settings_store.get_reward_settings()
        assert settings["budgetPool"] == settings["budgetPercent"] / 100 * settings["revenueBaseline"]
        assert settings["budgetPool"] == pytest.approx(800)

    async def test_partial_patch_keeps_other_fields(self, settings_store: SettingsStore):
        await settings_store.update_reward_settings({"budgetPercent": 8})
        settings = await settings_store.update_reward_settings({"revenueBaseline": 1000})
        assert settings["budgetPercent"] == 8

    async def test_odds_shallow_merge(self, settings_store: SettingsStore):
        await settings_store.update_reward_settings({"odds": {"grandPrize": "1 in 500"}})
        settings = await settings_store.update_reward_settings({"odds": {"instant": "1 in 6", "collection": ""}})
        assert settings["odds"] == {
            "instant": "1 in 6",
            "collection": "1 in 3",
            "grandPrize": "1 in 500",
        }

    async def test_updated_by_and_at(self, settings_store: SettingsStore):
        settings = await settings_store.update_reward_settings(SettingsPatch(budget_percent=7, updated_by="danny"))
        assert settings["updatedBy"] == "danny"
        assert settings["updatedAt"] is not None

    async def test_concurrent_first_read_keeps_update(self, settings_store: SettingsStore):
        await asyncio.gather(
            settings_store.update_reward_settings({"budgetPercent": 50}),
            settings_store.get_reward_settings(),
            settings_store.get_reward_settings(),
        )
        assert (await settings_store.get_reward_settings())["budgetPercent"] == 50

    async def test_stored_document(self, settings_store: SettingsStore, store: DocumentStore):
        await settings_store.update_reward_settings({"budgetPercent": 150})
        doc = await store.get_collection(SETTINGS_COLLECTION).find_one({"_id": "settings"})
        assert doc["budgetPercent"] == 100
        assert "budgetPool" not in doc


class TestRewardAutomation:
    async def test_defaults(self, settings_store: SettingsStore):
        automation = await settings_store.get_reward_automation()
        assert automation == {
            "autoAnnounceWinners": True,
            "streakReminders": True,
            "smsWinnerNotifications": False,
        }

    async def test_boolean_patch(self, settings_store: SettingsStore):
        automation = await settings_store.update_reward_automation(
            {"streakReminders": False, "smsWinnerNotifications": True, "updatedBy": "ops"},
        )
        assert automation["streakReminders"] is False
        assert automation["smsWinnerNotifications"] is True
        assert automation["updatedBy"] == "ops"
        assert (await settings_store.get_reward_automation())["streakReminders"] is False

    async def test_concurrent_first_read_keeps_update(self, settings_store: SettingsStore):
        await asyncio.gather(
            settings_store.update_reward_automation({"streakReminders": False}),
            settings_store.get_reward_automation(),
        )
        assert (await settings_store.get_reward_automation())["streakReminders"] is False

    async def test_non_boolean_ignored(self, settings_store: SettingsStore):
        automation = await settings_store.update_reward_automation(
            {"streakReminders": "no", "autoAnnounceWinners": 0},
        )
        assert automation["streakReminders"] is True
        assert automation["autoAnnounceWinners"] is True

    async def test_unknown_key_ignored(self, settings_store: SettingsStore):
        automation = await settings_store.update_reward_automation({"launchFireworks": True})
        assert "launchFireworks" not in automation
