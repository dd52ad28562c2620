"""Blueprint registration and the dashboard."""
from flask import Blueprint, current_app, jsonify, render_template
from flask_login import login_required

from utils.datastore import DataStore
from utils.incentives import total_points
from utils.notify import notify_error
from utils.session import current_session, get_store
from utils.training import summarize_progress
from .auth import auth_bp
from .facilities import facilities_bp
from .incentives import incentives_bp
from .profile import profile_bp
from .reports import reports_bp
from .training import training_bp

main_bp = Blueprint("main", __name__)

DAILY_TIP = "Separate your waste into dry, wet, and hazardous categories before disposal."


def _build_personal_context(store: DataStore) -> dict:
    profile_result = store.fetch_single("profiles", "role, full_name, is_verified", filters={"user_id": store.identity})
    profile = profile_result.data if profile_result.ok else None
    role = (profile or {}).get("role") or "citizen"

    progress_result = store.fetch("training_progress", "status")
    modules_result = store.fetch("training_modules", "id", filters={"target_role": role})
    incentives_result = store.fetch("incentives", "points")

    failed = [r for r in (profile_result, progress_result, modules_result, incentives_result) if r.error]
    if failed:
        notify_error("Some dashboard data could not be loaded")

    progress_rows = progress_result.data or []
    module_rows = modules_result.data or []
    training = summarize_progress(progress_rows, len(module_rows))
    points = total_points(incentives_result.data or [])

    current_app.logger.info(
        "dashboard_data_compiled",
        extra={
            "identity": store.identity,
            "completed": training["completed"],
            "total_modules": training["total"],
            "total_points": points,
            "failed_fetches": len(failed),
        },
    )
    return {
        "profile": profile,
        "role": role,
        "training": training,
        "total_points": points,
    }


def _build_public_context(store: DataStore) -> dict:
    modules_result = store.fetch("training_modules", "id")
    facilities_result = store.fetch("waste_facilities", "id", filters={"is_active": True})
    return {
        "module_count": len(modules_result.data or []),
        "facility_count": len(facilities_result.data or []),
    }


@main_bp.route("/")
def dashboard():
    session_ctx = current_session()
    store = get_store()
    if session_ctx.is_authenticated:
        context = _build_personal_context(store)
    else:
        context = _build_public_context(store)
    return render_template("dashboard/index.html", page_title="Dashboard", daily_tip=DAILY_TIP, **context)


@main_bp.route("/api/dashboard", methods=["GET"])
@login_required
def dashboard_summary():
    context = _build_personal_context(get_store())
    training = context["training"]
    return jsonify(
        {
            "full_name": (context["profile"] or {}).get("full_name"),
            "role": context["role"],
            "is_verified": bool((context["profile"] or {}).get("is_verified")),
            "training": {
                "completed": training["completed"],
                "total": training["total"],
                "percentage": round(training["percentage"]),
            },
            "total_points": context["total_points"],
        }
    )


__all__ = ["main_bp", "auth_bp", "training_bp", "reports_bp", "facilities_bp", "incentives_bp", "profile_bp"]
