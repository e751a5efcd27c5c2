"""Set-progress calculator — derives collectible-set completion from an inventory.

Everything here is pure: progress is recomputed from the inventory on every
read and never stored.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .models import EntryType
from .utils import timestamp_key

if TYPE_CHECKING:
    from .config import FortuneSetConfig

# Metadata copied from the latest matching reveal onto a collected piece
_PIECE_FIELDS = {
    "inventoryId": "id",
    "collectedAt": "collectedAt",
    "expiresAt": "expiresAt",
    "rewardOutcome": "rewardOutcome",
    "callToAction": "callToAction",
    "progressNote": "progressNote",
}


def _group_by_piece(inventory: list[dict]) -> dict[str, dict[str, list[dict]]]:
    """Group entries carrying both setId and pieceId: {set_id: {piece_id: [entries]}}."""
    grouped: dict[str, dict[str, list[dict]]] = {}
    for item in inventory:
        if not isinstance(item, dict):
            continue
        set_id, piece_id = item.get("setId"), item.get("pieceId")
        if not set_id or not piece_id:
            continue
        grouped.setdefault(set_id, {}).setdefault(piece_id, []).append(item)
    return grouped


def _latest(matches: list[dict]) -> dict:
    """Most recent by collectedAt; on a tie the earlier list position wins."""
    return max(matches, key=lambda m: timestamp_key(m.get("collectedAt")))


def build_set_progress(
    inventory: list[dict] | None,
    catalog: list[FortuneSetConfig],
) -> list[dict[str, Any]]:
    """Annotate every catalog set with the user's progress, in catalog order."""
    grouped = _group_by_piece(inventory or [])
    progress: list[dict[str, Any]] = []

    for fortune_set in catalog:
        piece_map = grouped.get(fortune_set.id, {})
        pieces: list[dict[str, Any]] = []
        for piece in fortune_set.pieces:
            matches = piece_map.get(piece.id, [])
            latest = _latest(matches) if matches else {}
            annotated = piece.model_dump()
            annotated["status"] = "collected" if matches else "missing"
            for out_key, entry_key in _PIECE_FIELDS.items():
                annotated[out_key] = latest.get(entry_key) or None
            annotated["duplicates"] = max(0, len(matches) - 1)
            pieces.append(annotated)

        total = len(pieces)
        collected = sum(1 for p in pieces if p["status"] == "collected")
        collected_times = [p["collectedAt"] for p in pieces if p["collectedAt"]]
        progress.append({
            "id": fortune_set.id,
            "name": fortune_set.name,
            "rarity": fortune_set.rarity,
            "prize": fortune_set.prize,
            "theme": fortune_set.theme,
            "accentColor": fortune_set.accent_color,
            "pieces": pieces,
            "collectedCount": collected,
            "totalPieces": total,
            "completionRate": collected / total if total else 0,
            "isComplete": total > 0 and collected == total,
            "isActive": 0 < collected < total,
            "lastCollectedAt": max(collected_times, key=timestamp_key) if collected_times else None,
        })

    return progress


def summarize_inventory(inventory: list[dict] | None) -> dict[str, Any]:
    """Sort reveals most-recent-first and count them by type and duplicates."""
    entries = [item for item in (inventory or []) if isinstance(item, dict)]
    ordered = sorted(entries, key=lambda i: timestamp_key(i.get("collectedAt")), reverse=True)

    piece_counts: dict[tuple[str, str], int] = {}
    for item in ordered:
        if item.get("setId") and item.get("pieceId"):
            key = (item["setId"], item["pieceId"])
            piece_counts[key] = piece_counts.get(key, 0) + 1

    by_type = {t: 0 for t in EntryType}
    for item in ordered:
        try:
            by_type[EntryType(item.get("type"))] += 1
        except ValueError:
            pass

    return {
        "inventory": ordered,
        "counts": {
            "total": len(ordered),
            "collection": by_type[EntryType.COLLECTION],
            "instant": by_type[EntryType.INSTANT],
            "points": by_type[EntryType.POINTS],
            "duplicates": sum(max(0, c - 1) for c in piece_counts.values()),
        },
        "lastRevealAt": ordered[0].get("collectedAt") if ordered else None,
    }


def summarize_sets(sets: list[dict]) -> dict[str, int]:
    """Fold one profile's set progress into piece and set totals."""
    totals = {"totalPieces": 0, "collectedPieces": 0, "completedSets": 0, "activeSets": 0}
    for s in sets:
        totals["totalPieces"] += s["totalPieces"]
        totals["collectedPieces"] += s["collectedCount"]
        if s["isComplete"]:
            totals["completedSets"] += 1
        if s["isActive"]:
            totals["activeSets"] += 1
    return totals
