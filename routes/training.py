"""Training modules: listing, start and completion."""
from flask import Blueprint, current_app, redirect, render_template, url_for
from flask_login import login_required

from utils.datastore import StoreError
from utils.notify import notify, notify_error
from utils.session import current_session, get_store
from utils.training import TrainingError, complete_module, progress_by_module, start_module, status_of, summarize_progress

training_bp = Blueprint("training", __name__, url_prefix="/training")


@training_bp.route("/", methods=["GET"])
def list_modules():
    store = get_store()
    modules_result = store.fetch("training_modules", "*", order_by="created_at")
    if modules_result.error:
        notify_error("Failed to load training modules")
    modules = modules_result.data or []

    role = "citizen"
    progress_rows: list = []
    if current_session().is_authenticated:
        profile_result = store.fetch_single("profiles", "role", filters={"user_id": store.identity})
        if profile_result.ok:
            role = profile_result.data.get("role") or "citizen"
        progress_result = store.fetch("training_progress", "*")
        if progress_result.error:
            notify_error("Failed to load your training progress")
        progress_rows = progress_result.data or []

    progress = progress_by_module(progress_rows)
    cards = []
    for module in modules:
        entry = progress.get(str(module["id"]))
        cards.append({"module": module, "status": status_of(entry), "score": (entry or {}).get("score")})

    return render_template(
        "training/index.html",
        cards=cards,
        role=role,
        summary=summarize_progress(progress_rows, len(modules)),
        page_title="Training Modules",
    )


@training_bp.route("/<string:module_id>/start", methods=["POST"])
@login_required
def start(module_id):
    try:
        status = start_module(get_store(), module_id)
    except TrainingError as exc:
        notify_error(str(exc))
    except StoreError:
        notify_error("Failed to start training module")
    else:
        if status == "in_progress":
            notify("Training Started", "You have started this training module")
    return redirect(url_for("training.list_modules"))


@training_bp.route("/<string:module_id>/complete", methods=["POST"])
@login_required
def complete(module_id):
    try:
        outcome = complete_module(get_store(), module_id)
    except TrainingError as exc:
        notify_error(str(exc))
        return redirect(url_for("training.list_modules"))
    except StoreError:
        notify_error("Failed to complete training module")
        return redirect(url_for("training.list_modules"))

    if not outcome.awarded:
        current_app.logger.warning("training_points_pending", extra={"module_id": module_id})
        notify_error(
            "Your completion was saved but the points could not be awarded. Complete the module again to retry.",
            title="Points pending",
        )
    elif outcome.already_completed:
        notify("Already completed", f"You scored {outcome.score}% on this module. Your points are up to date.")
    else:
        notify(
            "Training Completed!",
            f"Congratulations! You scored {outcome.score}% and earned {outcome.points} points.",
        )
    return redirect(url_for("training.list_modules"))
