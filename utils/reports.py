"""Waste report intake: validation, optional photo, insert, then the reporting award."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from flask import current_app
from werkzeug.datastructures import FileStorage

from models import DEFAULT_REPORT_STATUS, generate_uuid
from utils.datastore import DataStore, StoreError
from utils.image_utils import DEFAULT_MAX_PHOTO_BYTES, PhotoValidationError, persist_report_photo, validate_image_file
from utils.incentives import award_points
from utils.security import strip_markup

REPORT_REASON = "Waste report submitted"

GEOLOCATION_NOTICES: dict[str, Tuple[str, str]] = {
    "unsupported": ("Location not supported", "Your browser doesn't support geolocation"),
    "denied": ("Location error", "Unable to get your current location"),
    "error": ("Location error", "Unable to get your current location"),
}


class ReportValidationError(ValueError):
    def __init__(self, title: str, description: str) -> None:
        super().__init__(description)
        self.title = title
        self.description = description


@dataclass
class ReportDraft:
    title: str
    location: str
    description: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass
class SubmissionOutcome:
    report_id: str
    points: int
    awarded: bool
    photo_url: Optional[str] = None
    award_error: Optional[StoreError] = None


def parse_coordinates(latitude_raw, longitude_raw) -> Tuple[Optional[float], Optional[float]]:
    """Both values in range, or neither."""
    try:
        latitude = float(latitude_raw)
        longitude = float(longitude_raw)
    except (TypeError, ValueError):
        return None, None
    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        return None, None
    return latitude, longitude


def geolocation_notice(status: str | None) -> Optional[Tuple[str, str]]:
    return GEOLOCATION_NOTICES.get((status or "").strip().lower())


def validate_draft(draft: ReportDraft) -> ReportDraft:
    title = strip_markup(draft.title)
    location = strip_markup(draft.location)
    if not title or not location:
        raise ReportValidationError("Missing information", "Please fill in title and location")
    draft.title = title
    draft.location = location
    draft.description = strip_markup(draft.description)
    return draft


def submit_report(
    store: DataStore,
    draft: ReportDraft,
    photo: Optional[FileStorage] = None,
    upload_dir: Optional[str] = None,
) -> SubmissionOutcome:
    """Validate everything first, then insert the report and award the points.

    Raises :class:`ReportValidationError` before any write, and a
    :class:`StoreError` if the photo or the report itself could not be stored. A failed
    award is reported on the outcome instead.
    """
    if store.identity is None:
        raise ReportValidationError("Sign in required", "Sign in to submit a waste report")
    draft = validate_draft(draft)

    image = None
    if photo is not None and photo.filename:
        max_bytes = int(current_app.config.get("MAX_REPORT_PHOTO_BYTES", DEFAULT_MAX_PHOTO_BYTES))
        try:
            image = validate_image_file(photo, max_bytes=max_bytes)
        except PhotoValidationError as exc:
            raise ReportValidationError(exc.title, str(exc)) from exc

    stored = None
    if image:
        upload_dir = upload_dir or current_app.config["REPORT_UPLOAD_FOLDER"]
        try:
            stored = persist_report_photo(image[0], image[1], upload_dir, store.identity)
        except OSError as exc:
            current_app.logger.error(
                "report_photo_write_failed", extra={"identity": store.identity, "error": str(exc)}
            )
            raise StoreError("Could not store the report photo", code="storage_error", table="waste_reports") from exc

    report_id = generate_uuid()
    result = store.insert(
        "waste_reports",
        {
            "id": report_id,
            "reporter_id": store.identity,
            "title": draft.title,
            "description": draft.description,
            "location": draft.location,
            "latitude": draft.latitude,
            "longitude": draft.longitude,
            "photo_url": stored["photo_url"] if stored else None,
            "status": DEFAULT_REPORT_STATUS,
        },
    )
    if result.error:
        if stored:
            os.remove(stored["path"])
        raise result.error

    points = int(current_app.config.get("WASTE_REPORT_POINTS", 25))
    award = award_points(store, "waste_report", report_id, points, REPORT_REASON)
    if award.error:
        current_app.logger.error(
            "report_award_failed", extra={"identity": store.identity, "report_id": report_id, "error": award.error.message}
        )
    current_app.logger.info(
        "waste_report_submitted",
        extra={"identity": store.identity, "report_id": report_id, "has_photo": bool(stored), "has_coordinates": draft.latitude is not None},
    )
    return SubmissionOutcome(
        report_id=report_id,
        points=points,
        awarded=award.ok,
        photo_url=stored["photo_url"] if stored else None,
        award_error=award.error,
    )
