"""Reward profile store — per-user points, streaks and the reveal inventory.

Profiles are created lazily from the configured template on first access and
never deleted. Every read-modify-write cycle holds the per-user lock from the
document store, so concurrent writes for one user are applied in order.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .models import FortuneResult, StreakUpdate
from .set_progress import build_set_progress, summarize_inventory
from .utils import now_iso, to_int

if TYPE_CHECKING:
    from .config import RewardsConfig
    from .database import DocumentCollection, DocumentStore

PROFILES_COLLECTION = "dannyswok_reward_profiles"


class ProfileStore:
    """Persistence and serialization of reward profiles."""

    def __init__(
        self,
        config: RewardsConfig,
        store: DocumentStore,
        logger: logging.Logger,
    ) -> None:
        self._config = config
        self._store = store
        self._logger = logger

    @property
    def _collection(self) -> DocumentCollection:
        return self._store.get_collection(PROFILES_COLLECTION)

    # ══════════════════════════════════════════════════════════
    #  Public API
    # ══════════════════════════════════════════════════════════

    async def ensure_profile(self, user_id: str) -> dict:
        """Return the stored profile document, creating it if missing."""
        self._require_user_id(user_id)
        async with self._store.lock(PROFILES_COLLECTION, user_id):
            return await self._ensure_profile(user_id)

    async def get_reward_profile(self, user_id: str) -> dict[str, Any]:
        """Profile with derived sets, stats and telemetry."""
        doc = await self.ensure_profile(user_id)
        return self.serialize_profile(doc)

    async def list_reward_profiles(self) -> list[dict[str, Any]]:
        docs = await self._collection.find({})
        return [self.serialize_profile(doc) for doc in docs]

    async def record_fortune_result(
        self,
        user_id: str,
        payload: FortuneResult | dict | None = None,
    ) -> dict[str, Any]:
        """Record one reveal and apply its points, tier, instant-win and streak changes.

        Returns the serialized profile.
        """
        self._require_user_id(user_id)
        result = payload if isinstance(payload, FortuneResult) else FortuneResult.from_payload(payload)
        template = self._config.profile_template

        async with self._store.lock(PROFILES_COLLECTION, user_id):
            doc = await self._ensure_profile(user_id)
            now = now_iso()
            entry = result.to_entry(now)

            inventory = list(doc.get("inventory") or [])
            inventory.insert(0, entry.to_document())
            keep_latest = result.keep_latest or self._config.inventory.keep_latest
            del inventory[keep_latest:]

            changes: dict[str, Any] = {"inventory": inventory, "updatedAt": now}

            if result.points_awarded is not None:
                points = to_int(doc.get("points"), template.points)
                changes["points"] = max(0, points + result.points_awarded)

            if result.next_tier is not None:
                changes["nextTier"] = result.next_tier

            if result.is_instant:
                changes["instantWins"] = to_int(doc.get("instantWins"), template.instant_wins) + 1
                label = result.instant_reward_label or entry.reward_outcome
                if label:
                    changes["lastInstantReward"] = label

            streak_days = result.streak.apply(to_int(doc.get("streakDays"), template.streak_days))
            if streak_days is not None:
                changes["streakDays"] = streak_days
            if result.streak.streak_bonus:
                changes["streakBonus"] = result.streak.streak_bonus

            await self._collection.update_one({"_id": user_id}, {"$set": changes})

        self._logger.info(
            "Fortune recorded for %s: %s %s (inventory %d)",
            user_id, entry.type.value, entry.label, len(inventory),
        )
        return self.serialize_profile({**doc, **changes})

    async def update_reward_streak(
        self,
        user_id: str,
        options: StreakUpdate | dict | None = None,
    ) -> dict[str, Any]:
        """Touch only the streak fields. Priority: reset > increment > value."""
        self._require_user_id(user_id)
        update = options if isinstance(options, StreakUpdate) else StreakUpdate.from_payload(options or {})

        async with self._store.lock(PROFILES_COLLECTION, user_id):
            doc = await self._ensure_profile(user_id)
            current = to_int(doc.get("streakDays"), self._config.profile_template.streak_days)
            changes: dict[str, Any] = {"updatedAt": now_iso()}
            streak_days = update.apply(current)
            if streak_days is not None:
                changes["streakDays"] = streak_days
            if update.streak_bonus is not None:
                changes["streakBonus"] = update.streak_bonus
            await self._collection.update_one({"_id": user_id}, {"$set": changes})

        self._logger.info("Streak for %s: %d → %s", user_id, current, changes.get("streakDays", current))
        return self.serialize_profile({**doc, **changes})

    def serialize_profile(self, doc: dict | None) -> dict[str, Any]:
        """Merge a stored profile with its derived sets, stats and telemetry."""
        base = doc or {}
        template = self._config.profile_template
        raw_inventory = base.get("inventory") or []
        info = summarize_inventory(raw_inventory)
        sets = build_set_progress(raw_inventory, self._config.fortune_sets)

        return {
            "userId": base.get("userId"),
            "points": to_int(base.get("points"), template.points),
            "nextTier": to_int(base.get("nextTier"), template.next_tier),
            "streakDays": to_int(base.get("streakDays"), template.streak_days),
            "streakBonus": base.get("streakBonus") or template.streak_bonus,
            "instantWins": to_int(base.get("instantWins"), template.instant_wins),
            "lastInstantReward": base.get("lastInstantReward") or template.last_instant_reward,
            "inventory": info["inventory"],
            "sets": sets,
            "stats": {
                "totalReveals": info["counts"]["total"],
                "collectionPieces": info["counts"]["collection"],
                "instantRewards": info["counts"]["instant"],
                "xpAwards": info["counts"]["points"],
                "duplicatePieces": info["counts"]["duplicates"],
                "completedSets": sum(1 for s in sets if s["isComplete"]),
            },
            "telemetry": {
                "lastRevealAt": info["lastRevealAt"],
                "updatedAt": base.get("updatedAt") or base.get("createdAt"),
                "createdAt": base.get("createdAt"),
            },
        }

    # ══════════════════════════════════════════════════════════
    #  Internals
    # ══════════════════════════════════════════════════════════

    @staticmethod
    def _require_user_id(user_id: str) -> None:
        if not user_id:
            raise ValueError("User ID is required.")

    async def _ensure_profile(self, user_id: str) -> dict:
        """Caller must hold the user's lock."""
        doc = await self._collection.find_one({"_id": user_id})
        if doc is not None:
            return doc

        template = self._config.profile_template
        now = now_iso()
        doc = {
            "_id": user_id,
            "userId": user_id,
            "points": template.points,
            "nextTier": template.next_tier,
            "streakDays": template.streak_days,
            "streakBonus": template.streak_bonus,
            "instantWins": template.instant_wins,
            "lastInstantReward": template.last_instant_reward,
            "inventory": [],
            "createdAt": now,
            "updatedAt": now,
        }
        doc, created = await self._collection.insert_if_absent(doc)
        if created:
            self._logger.info("Created reward profile for %s", user_id)
        return doc
