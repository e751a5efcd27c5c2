"""Tests for payload parsing into typed records."""

from __future__ import annotations

from dannyswok_rewards.models import (
    EntryType,
    FortuneResult,
    SettingsPatch,
    StreakUpdate,
)

NOW = "2026-05-01T12:00:00+00:00"


class TestEntryType:
    def test_known(self):
        assert EntryType.parse("points") is EntryType.POINTS

    def test_unknown_defaults_to_collection(self):
        assert EntryType.parse("mystery") is EntryType.COLLECTION
        assert EntryType.parse(None) is EntryType.COLLECTION


class TestFortuneResult:
    def test_empty_payload(self):
        result = FortuneResult.from_payload(None)
        assert result.keep_latest is None
        assert result.points_awarded is None
        assert result.next_tier is None
        assert result.is_instant is False
        assert result.streak.apply(4) is None

    def test_coercion(self):
        result = FortuneResult.from_payload({
            "pointsAwarded": "15",
            "nextTier": "-2",
            "keepLatest": "0",
            "streakIncrement": "3",
        })
        assert result.points_awarded == 15
        assert result.next_tier == 0
        assert result.keep_latest is None
        assert result.streak.increment == 3

    def test_to_entry_defaults(self):
        entry = FortuneResult.from_payload({"type": "instant"}).to_entry(NOW)
        assert entry.type is EntryType.INSTANT
        assert entry.rarity == "instant"
        assert entry.collected_at == NOW
        assert entry.label == "Fortune cookie reveal"

    def test_to_entry_keeps_payload(self):
        entry = FortuneResult.from_payload({
            "id": "e1",
            "setId": "s1",
            "pieceId": "p1",
            "collectedAt": "2026-01-01T00:00:00+00:00",
            "fortune": "A fresh start will put you on your way.",
        }).to_entry(NOW)
        doc = entry.to_document()
        assert doc["id"] == "e1"
        assert doc["setId"] == "s1"
        assert doc["pieceId"] == "p1"
        assert doc["collectedAt"] == "2026-01-01T00:00:00+00:00"
        assert doc["fortune"] == "A fresh start will put you on your way."
        assert doc["type"] == "collection"


class TestStreakUpdate:
    def test_priority(self):
        assert StreakUpdate(reset=True, increment=2, value=9).apply(5) == 0
        assert StreakUpdate(increment=2, value=9).apply(5) == 7
        assert StreakUpdate(value=9).apply(5) == 9

    def test_clamped(self):
        assert StreakUpdate(value=-1).apply(5) == 0
        assert StreakUpdate(increment=-10).apply(5) == 0

    def test_from_payload(self):
        update = StreakUpdate.from_payload({"increment": "2", "streakBonus": "Nice"})
        assert update.increment == 2
        assert update.streak_bonus == "Nice"
        assert update.value is None


class TestSettingsPatch:
    def test_from_payload(self):
        patch = SettingsPatch.from_payload({"budgetPercent": 7, "odds": "not a dict", "updatedBy": "ops"})
        assert patch.budget_percent == 7
        assert patch.odds is None
        assert patch.to_dict() == {"budget_percent": 7, "updated_by": "ops"}
