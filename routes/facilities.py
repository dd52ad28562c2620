"""Waste facility directory."""
from flask import Blueprint, abort, current_app, redirect, render_template, request

from models import FACILITY_TYPES
from utils.facilities import ALL_TYPES, directions_url, facility_type_label, filter_facilities, normalize_type
from utils.notify import notify_error
from utils.session import get_store

facilities_bp = Blueprint("facilities", __name__, url_prefix="/facilities")


@facilities_bp.route("/", methods=["GET"])
def list_facilities():
    query = (request.args.get("q") or "").strip()
    selected_type = normalize_type(request.args.get("type"))

    result = get_store().fetch("waste_facilities", "*", filters={"is_active": True}, order_by="city")
    if result.error:
        notify_error("Failed to load waste facilities")
    facilities = result.data or []
    visible = filter_facilities(facilities, query, selected_type)

    current_app.logger.info(
        "facilities_listed",
        extra={"count": len(facilities), "visible": len(visible), "filters": {"q": query, "type": selected_type}},
    )
    # The whole active set is rendered; facilities.js re-filters it in the browser
    # and the hidden flags below cover clients without scripts.
    return render_template(
        "facilities/index.html",
        facilities=facilities,
        visible_ids={str(f["id"]) for f in visible},
        visible_count=len(visible),
        total=len(facilities),
        query=query,
        selected_type=selected_type,
        type_options=[ALL_TYPES, *FACILITY_TYPES],
        type_label=facility_type_label,
        page_title="Waste Facilities",
    )


@facilities_bp.route("/<string:facility_id>/directions", methods=["GET"])
def directions(facility_id):
    result = get_store().fetch_single("waste_facilities", "*", filters={"id": facility_id, "is_active": True})
    if result.error:
        abort(404)
    url = directions_url(
        result.data,
        current_app.config.get("MAPS_DIRECTIONS_URL", "https://www.google.com/maps/dir/"),
        current_app.config.get("MAPS_SEARCH_URL", "https://www.google.com/maps/search/"),
    )
    return redirect(url)
