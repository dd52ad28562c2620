"""Incentive ledger view."""
from flask import Blueprint, render_template
from flask_login import login_required

from utils.incentives import fetch_ledger, total_points
from utils.notify import notify_error
from utils.session import get_store

incentives_bp = Blueprint("incentives", __name__, url_prefix="/incentives")


@incentives_bp.route("/", methods=["GET"])
@login_required
def ledger():
    result = fetch_ledger(get_store())
    if result.error:
        notify_error("Failed to load your incentives")
    rows = result.data or []
    return render_template(
        "incentives/index.html",
        incentives=rows,
        total_points=total_points(rows),
        page_title="Incentives",
    )
