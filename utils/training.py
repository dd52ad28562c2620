"""Training progression: not_started -> in_progress -> completed, then the award."""
from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping, Optional

from flask import current_app

from models import TRAINING_STATUSES
from utils.datastore import DataStore, StoreError
from utils.incentives import award_points

PROGRESS_CONFLICT_KEYS: tuple[str, ...] = ("user_id", "module_id")
COMPLETION_REASON = "Training module completed"


class TrainingError(Exception):
    """Raised when a training action is not allowed for the current state."""


@dataclass
class CompletionOutcome:
    module_id: str
    score: int
    points: int
    awarded: bool
    already_completed: bool = False
    award_error: Optional[StoreError] = None


def can_transition(current: str, target: str) -> bool:
    """Only single forward steps are allowed."""
    if current not in TRAINING_STATUSES or target not in TRAINING_STATUSES:
        return False
    return TRAINING_STATUSES.index(target) == TRAINING_STATUSES.index(current) + 1


def progress_by_module(rows: Iterable[Mapping]) -> dict[str, Mapping]:
    return {str(row["module_id"]): row for row in rows if row.get("module_id")}


def status_of(progress: Optional[Mapping]) -> str:
    if not progress or not progress.get("status"):
        return "not_started"
    return progress["status"]


def summarize_progress(progress_rows: Iterable[Mapping], total_modules: int) -> dict:
    completed = sum(1 for row in progress_rows if row.get("status") == "completed")
    percentage = (completed / total_modules * 100) if total_modules > 0 else 0
    return {"completed": completed, "total": total_modules, "percentage": percentage}


def draw_score(rng=None, low: Optional[int] = None, high: Optional[int] = None) -> int:
    low = current_app.config.get("TRAINING_SCORE_MIN", 70) if low is None else low
    high = current_app.config.get("TRAINING_SCORE_MAX", 100) if high is None else high
    return (rng or random).randint(low, high)


def _require_identity(store: DataStore) -> None:
    if store.identity is None:
        raise TrainingError("Sign in to track your training progress")


def _require_module(store: DataStore, module_id: str) -> None:
    result = store.fetch("training_modules", "id", filters={"id": module_id})
    if result.error:
        raise result.error
    if not result.data:
        raise TrainingError("Training module not found")


def _current_progress(store: DataStore, module_id: str) -> Optional[dict]:
    result = store.fetch("training_progress", "*", filters={"module_id": module_id})
    if result.error:
        raise result.error
    return result.data[0] if result.data else None


def start_module(store: DataStore, module_id: str, now: Optional[datetime] = None) -> str:
    """Move a module to ``in_progress``; started or completed modules are left alone."""
    _require_identity(store)
    _require_module(store, module_id)
    current = status_of(_current_progress(store, module_id))
    if not can_transition(current, "in_progress"):
        current_app.logger.info(
            "training_start_ignored", extra={"identity": store.identity, "module_id": module_id, "status": current}
        )
        return current

    result = store.upsert(
        "training_progress",
        {
            "user_id": store.identity,
            "module_id": module_id,
            "status": "in_progress",
            "started_at": now or datetime.utcnow(),
        },
        on_conflict=PROGRESS_CONFLICT_KEYS,
    )
    if result.error:
        raise result.error
    current_app.logger.info("training_started", extra={"identity": store.identity, "module_id": module_id})
    return "in_progress"


def complete_module(store: DataStore, module_id: str, rng=None, now: Optional[datetime] = None) -> CompletionOutcome:
    """Complete an in-progress module, score it and award the completion points.

    The progress write and the award are separate store calls. A failed award
    does not undo the completion; completing the module again retries only the
    award, which the ledger deduplicates per module.
    """
    _require_identity(store)
    _require_module(store, module_id)
    points = int(current_app.config.get("TRAINING_COMPLETION_POINTS", 50))
    progress = _current_progress(store, module_id)
    current = status_of(progress)

    if current == "completed":
        award = award_points(store, "training_completed", module_id, points, COMPLETION_REASON)
        return CompletionOutcome(
            module_id=module_id,
            score=int(progress.get("score") or 0),
            points=points,
            awarded=award.ok,
            already_completed=True,
            award_error=award.error,
        )
    if not can_transition(current, "completed"):
        raise TrainingError("Start this training module before completing it")

    score = draw_score(rng)
    result = store.upsert(
        "training_progress",
        {
            "user_id": store.identity,
            "module_id": module_id,
            "status": "completed",
            "completed_at": now or datetime.utcnow(),
            "score": score,
        },
        on_conflict=PROGRESS_CONFLICT_KEYS,
    )
    if result.error:
        raise result.error

    award = award_points(store, "training_completed", module_id, points, COMPLETION_REASON)
    if award.error:
        current_app.logger.error(
            "training_award_failed",
            extra={"identity": store.identity, "module_id": module_id, "error": award.error.message},
        )
    current_app.logger.info(
        "training_completed", extra={"identity": store.identity, "module_id": module_id, "score": score}
    )
    return CompletionOutcome(module_id=module_id, score=score, points=points, awarded=award.ok, award_error=award.error)
