"""Incentive ledger helpers: totals and idempotent point awards."""
from __future__ import annotations

from typing import Iterable, Mapping

from flask import current_app

from models import INCENTIVE_EVENTS
from utils.datastore import DataStore, StoreResult

AWARD_CONFLICT_KEYS: tuple[str, ...] = ("user_id", "event_type", "reference_id")


def total_points(rows: Iterable[Mapping]) -> int:
    return sum(int(row.get("points") or 0) for row in rows)


def fetch_ledger(store: DataStore) -> StoreResult:
    """Incentive rows for the store's identity, newest first."""
    return store.fetch("incentives", "*", order_by="created_at", descending=True)


def award_points(store: DataStore, event_type: str, reference_id: str, points: int, reason: str) -> StoreResult:
    """Append an award for one event; repeating the same award is a no-op."""
    if event_type not in INCENTIVE_EVENTS:
        raise ValueError(f"Unknown incentive event: {event_type}")
    if points < 0:
        raise ValueError("Incentive points cannot be negative")
    row = {
        "user_id": store.identity,
        "points": int(points),
        "reason": reason,
        "event_type": event_type,
        "reference_id": str(reference_id),
    }
    result = store.upsert("incentives", row, on_conflict=AWARD_CONFLICT_KEYS, ignore_duplicates=True)
    if result.ok:
        current_app.logger.info(
            "incentive_awarded",
            extra={"identity": store.identity, "event": event_type, "reference_id": str(reference_id), "points": points},
        )
    return result
