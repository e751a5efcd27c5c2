"""Winners and events ledgers — bounded and replace-only singleton documents."""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any

from .utils import new_id, now_iso

if TYPE_CHECKING:
    from .config import RewardsConfig
    from .database import DocumentStore

WINNERS_COLLECTION = "dannyswok_reward_winners"
WINNERS_ID = "winners"
EVENTS_COLLECTION = "dannyswok_reward_events"
EVENTS_ID = "events"

EVENT_LISTS = ("flashEvents", "expiringPieces", "streakBoosts", "marketingMoments")


class WinnersLedger:
    """Most-recent-first list of announced winners, capped at ``winners.limit``."""

    def __init__(self, config: RewardsConfig, store: DocumentStore, logger: logging.Logger) -> None:
        self._config = config
        self._store = store
        self._logger = logger

    async def get_recent_winners(self) -> list[dict]:
        _, doc = await self._store.ensure_document(WINNERS_COLLECTION, WINNERS_ID, lambda: {"entries": []})
        entries = doc.get("entries")
        return list(entries) if isinstance(entries, list) else []

    async def add_winner(self, entry: dict[str, Any] | None = None) -> list[dict]:
        """Prepend a winner and drop the oldest beyond the limit. Returns the ledger."""
        entry = entry or {}
        winner = {
            "id": entry.get("id") or new_id(),
            "userId": entry.get("userId") or None,
            "prize": entry.get("prize") or "Mystery reward",
            "variant": entry.get("variant") or "instant",
            "announcedAt": entry.get("announcedAt") or now_iso(),
            "location": entry.get("location") or None,
            "shareCard": entry.get("shareCard") or None,
        }

        async with self._store.lock(WINNERS_COLLECTION, WINNERS_ID):
            collection, doc = await self._store.ensure_document(
                WINNERS_COLLECTION, WINNERS_ID, lambda: {"entries": []},
            )
            existing = doc.get("entries")
            entries = [winner, *(existing if isinstance(existing, list) else [])]
            del entries[self._config.winners.limit:]
            await collection.update_one({"_id": WINNERS_ID}, {"$set": {"entries": entries}})

        self._logger.info("Winner added: %s won %s (%s)", winner["userId"], winner["prize"], winner["variant"])
        return entries


class EventsLedger:
    """Four independently replaceable event lists."""

    def __init__(self, store: DocumentStore, logger: logging.Logger) -> None:
        self._store = store
        self._logger = logger

    async def _load(self):
        return await self._store.ensure_document(
            EVENTS_COLLECTION, EVENTS_ID, lambda: {name: [] for name in EVENT_LISTS},
        )

    async def list_reward_events(self) -> dict[str, list]:
        _, doc = await self._load()
        return self._serialize(doc)

    async def update_reward_events(self, patch: dict[str, Any] | None = None) -> dict[str, list]:
        """Replace each list the patch supplies; the others are left untouched."""
        patch = patch or {}
        changes = {
            name: copy.deepcopy(patch[name])
            for name in EVENT_LISTS
            if isinstance(patch.get(name), list)
        }

        async with self._store.lock(EVENTS_COLLECTION, EVENTS_ID):
            collection, doc = await self._load()
            if changes:
                await collection.update_one({"_id": EVENTS_ID}, {"$set": changes})

        if changes:
            self._logger.info("Reward events replaced: %s", ", ".join(changes))
        return self._serialize({**doc, **changes})

    @staticmethod
    def _serialize(doc: dict) -> dict[str, list]:
        return {name: list(doc.get(name) or []) for name in EVENT_LISTS}
