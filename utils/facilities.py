"""In-memory facility filtering and map link-outs."""
from __future__ import annotations

from typing import Iterable, Mapping
from urllib.parse import quote, urlencode

from models import FACILITY_TYPES

FACILITY_TYPE_LABELS: dict[str, str] = {
    "biomethanization": "Biomethanization Plant",
    "waste_to_energy": "Waste-to-Energy Plant",
    "recycling": "Recycling Center",
    "scrap_collection": "Scrap Collection Hub",
}

ALL_TYPES = "all"


def facility_type_label(facility_type: str) -> str:
    return FACILITY_TYPE_LABELS.get(facility_type, facility_type)


def normalize_type(value: str | None) -> str:
    value = (value or "").strip().lower()
    return value if value in FACILITY_TYPES else ALL_TYPES


def matches_query(facility: Mapping, query: str) -> bool:
    needle = (query or "").strip().lower()
    if not needle:
        return True
    return any(needle in str(facility.get(field) or "").lower() for field in ("name", "city", "address"))


def filter_by_query(facilities: Iterable[Mapping], query: str) -> list:
    return [f for f in facilities if matches_query(f, query)]


def filter_by_type(facilities: Iterable[Mapping], facility_type: str) -> list:
    if not facility_type or facility_type == ALL_TYPES:
        return list(facilities)
    return [f for f in facilities if f.get("type") == facility_type]


def filter_facilities(facilities: Iterable[Mapping], query: str = "", facility_type: str = ALL_TYPES) -> list:
    return filter_by_type(filter_by_query(facilities, query), facility_type)


def directions_url(facility: Mapping, directions_base: str, search_base: str) -> str:
    """Coordinates when the facility has them, otherwise an address search."""
    latitude = facility.get("latitude")
    longitude = facility.get("longitude")
    if latitude is not None and longitude is not None:
        params = {"api": 1, "destination": f"{latitude},{longitude}"}
        return f"{directions_base}?{urlencode(params, quote_via=quote)}"
    params = {"api": 1, "query": f"{facility.get('address') or ''}, {facility.get('city') or ''}"}
    return f"{search_base}?{urlencode(params, quote_via=quote)}"
