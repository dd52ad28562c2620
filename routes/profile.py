"""Profile settings: one fetch to fill the form, one full-row update on save."""
from datetime import datetime

from flask import Blueprint, current_app, redirect, render_template, request, url_for
from flask_login import login_required
from flask_wtf import FlaskForm
from wtforms import StringField, SubmitField
from wtforms.validators import DataRequired, Length

from utils.notify import notify, notify_error
from utils.security import strip_markup
from utils.session import current_session, get_store

profile_bp = Blueprint("profile", __name__, url_prefix="/profile")

PROFILE_FIELDS: tuple[str, ...] = ("full_name", "phone", "address", "city", "state", "pincode")


class ProfileForm(FlaskForm):
    full_name = StringField("Full Name", validators=[DataRequired(), Length(max=150)])
    phone = StringField("Phone", validators=[Length(max=32)])
    address = StringField("Address", validators=[Length(max=255)])
    city = StringField("City", validators=[Length(max=120)])
    state = StringField("State", validators=[Length(max=120)])
    pincode = StringField("Pincode", validators=[Length(max=12)])
    submit = SubmitField("Save Changes")


def _render(form: ProfileForm, profile: dict | None = None):
    return render_template(
        "profile/edit.html",
        form=form,
        email=current_session().email,
        profile=profile,
        page_title="Profile Settings",
    )


def profile_values(form: ProfileForm) -> dict:
    return {field: strip_markup(getattr(form, field).data) for field in PROFILE_FIELDS}


@profile_bp.route("/", methods=["GET", "POST"])
@login_required
def edit():
    store = get_store()
    form = ProfileForm()

    if request.method == "POST":
        if not form.validate_on_submit():
            notify_error("Please check the highlighted fields")
            return _render(form), 400
        values = profile_values(form)
        values["updated_at"] = datetime.utcnow()
        result = store.update("profiles", values, filters={"user_id": store.identity})
        if result.error or not result.data:
            current_app.logger.warning(
                "profile_update_failed",
                extra={"identity": store.identity, "error": result.error.message if result.error else "no profile row"},
            )
            notify_error("Failed to update profile")
            return _render(form), 502
        current_app.logger.info("profile_updated", extra={"identity": store.identity})
        notify("Profile updated", "Your profile has been saved successfully")
        return redirect(url_for("profile.edit"))

    result = store.fetch_single("profiles", "*", filters={"user_id": store.identity})
    if result.error:
        notify_error("Failed to load your profile")
    else:
        for field in PROFILE_FIELDS:
            getattr(form, field).data = result.data.get(field) or ""
    return _render(form, profile=result.data)
