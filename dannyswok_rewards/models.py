"""Typed records and patch structs for the rewards stores.

Request payloads arrive as loosely-typed JSON mappings with camelCase keys.
Each patch class parses one into explicit optional fields, coercing numbers
fail-soft, so the stores never merge raw dicts.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from .utils import new_id, to_int

DEFAULT_ENTRY_LABEL = "Fortune cookie reveal"
DEFAULT_ENTRY_ICON = "🥠"


class EntryType(str, Enum):
    COLLECTION = "collection"
    INSTANT = "instant"
    POINTS = "points"

    @classmethod
    def parse(cls, value: Any) -> EntryType:
        """Unknown or missing types are recorded as collection reveals."""
        try:
            return cls(value)
        except ValueError:
            return cls.COLLECTION


def _str_or_none(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class InventoryEntry:
    """One fortune-cookie reveal. Never mutated after insertion."""

    id: str
    label: str
    type: EntryType
    rarity: str
    icon: str
    collected_at: str
    set_id: str | None = None
    piece_id: str | None = None
    reward_outcome: str | None = None
    fortune: str | None = None
    call_to_action: str | None = None
    progress_note: str | None = None
    expires_at: str | None = None

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "type": self.type.value,
            "rarity": self.rarity,
            "icon": self.icon,
            "setId": self.set_id,
            "pieceId": self.piece_id,
            "rewardOutcome": self.reward_outcome,
            "fortune": self.fortune,
            "callToAction": self.call_to_action,
            "progressNote": self.progress_note,
            "collectedAt": self.collected_at,
            "expiresAt": self.expires_at,
        }


@dataclass
class StreakUpdate:
    """Streak change. Priority: reset > increment > explicit value."""

    reset: bool = False
    increment: int = 0
    value: int | None = None
    streak_bonus: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> StreakUpdate:
        value = payload.get("value")
        return cls(
            reset=bool(payload.get("reset")),
            increment=to_int(payload.get("increment"), 0),
            value=None if value is None else to_int(value, 0),
            streak_bonus=payload.get("streakBonus"),
        )

    def apply(self, current: int) -> int | None:
        """Return the new streak length, or None when nothing changes."""
        if self.reset:
            return 0
        if self.increment:
            return max(0, current + self.increment)
        if self.value is not None:
            return max(0, self.value)
        return None


@dataclass
class FortuneResult:
    """Parsed body of a fortune-cookie reveal."""

    id: str | None = None
    label: str | None = None
    type: EntryType = EntryType.COLLECTION
    rarity: str | None = None
    icon: str | None = None
    set_id: str | None = None
    piece_id: str | None = None
    reward_outcome: str | None = None
    fortune: str | None = None
    call_to_action: str | None = None
    progress_note: str | None = None
    collected_at: str | None = None
    expires_at: str | None = None
    keep_latest: int | None = None
    points_awarded: int | None = None
    next_tier: int | None = None
    instant_win: bool = False
    instant_reward_label: str | None = None
    streak: StreakUpdate = field(default_factory=StreakUpdate)

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> FortuneResult:
        payload = payload or {}
        keep_latest = to_int(payload.get("keepLatest"), 0)
        points = payload.get("pointsAwarded")
        next_tier = payload.get("nextTier")
        streak_days = payload.get("streakDays")
        return cls(
            id=_str_or_none(payload.get("id")),
            label=_str_or_none(payload.get("label")) or _str_or_none(payload.get("pieceLabel")),
            type=EntryType.parse(payload.get("type")),
            rarity=_str_or_none(payload.get("rarity")),
            icon=_str_or_none(payload.get("icon")),
            set_id=_str_or_none(payload.get("setId")),
            piece_id=_str_or_none(payload.get("pieceId")),
            reward_outcome=_str_or_none(payload.get("rewardOutcome")),
            fortune=_str_or_none(payload.get("fortune")),
            call_to_action=_str_or_none(payload.get("callToAction")),
            progress_note=_str_or_none(payload.get("progressNote")),
            collected_at=_str_or_none(payload.get("collectedAt")),
            expires_at=_str_or_none(payload.get("expiresAt")),
            keep_latest=keep_latest if keep_latest > 0 else None,
            points_awarded=None if points is None else to_int(points, 0),
            next_tier=None if next_tier is None else max(0, to_int(next_tier, 0)),
            instant_win=payload.get("instantWin") is True,
            instant_reward_label=_str_or_none(payload.get("instantRewardLabel")),
            streak=StreakUpdate(
                reset=bool(payload.get("streakReset")),
                increment=to_int(payload.get("streakIncrement"), 0),
                value=None if streak_days is None else to_int(streak_days, 0),
                streak_bonus=_str_or_none(payload.get("streakBonus")),
            ),
        )

    @property
    def is_instant(self) -> bool:
        return self.instant_win or self.type is EntryType.INSTANT

    def to_entry(self, now: str) -> InventoryEntry:
        default_rarity = "instant" if self.type is EntryType.INSTANT else "common"
        return InventoryEntry(
            id=self.id or new_id(),
            label=self.label or DEFAULT_ENTRY_LABEL,
            type=self.type,
            rarity=self.rarity or default_rarity,
            icon=self.icon or DEFAULT_ENTRY_ICON,
            set_id=self.set_id,
            piece_id=self.piece_id,
            reward_outcome=self.reward_outcome,
            fortune=self.fortune,
            call_to_action=self.call_to_action,
            progress_note=self.progress_note,
            collected_at=self.collected_at or now,
            expires_at=self.expires_at,
        )


@dataclass
class SettingsPatch:
    """Partial settings update. Numbers are coerced against stored values."""

    budget_percent: Any = None
    revenue_baseline: Any = None
    odds: dict[str, Any] | None = None
    updated_by: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> SettingsPatch:
        payload = payload or {}
        odds = payload.get("odds")
        return cls(
            budget_percent=payload.get("budgetPercent"),
            revenue_baseline=payload.get("revenueBaseline"),
            odds=odds if isinstance(odds, dict) else None,
            updated_by=_str_or_none(payload.get("updatedBy")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}
