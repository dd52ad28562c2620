"""Waste report intake blueprint."""
from flask import Blueprint, current_app, redirect, render_template, request, url_for
from flask_login import login_required
from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField
from wtforms import HiddenField, StringField, SubmitField, TextAreaField
from wtforms.validators import Length, Optional

from utils.datastore import StoreError
from utils.image_utils import ALLOWED_IMAGE_EXTENSIONS
from utils.notify import notify, notify_error
from utils.reports import ReportDraft, ReportValidationError, geolocation_notice, parse_coordinates, submit_report
from utils.session import get_store

reports_bp = Blueprint("reports", __name__, url_prefix="/report")


class WasteReportForm(FlaskForm):
    # Required fields are checked in submit_report so a blank form never reaches the store.
    title = StringField("Report Title *", validators=[Length(max=255)])
    description = TextAreaField("Description", validators=[Length(max=3000)])
    location = StringField("Location *", validators=[Length(max=500)])
    latitude = HiddenField(validators=[Optional()])
    longitude = HiddenField(validators=[Optional()])
    geo_status = HiddenField(validators=[Optional()])
    photo = FileField(
        "Photo (Optional)",
        validators=[FileAllowed(list(ALLOWED_IMAGE_EXTENSIONS), "Images only")],
    )
    submit = SubmitField("Submit Report")


@reports_bp.route("/", methods=["GET", "POST"])
@login_required
def new_report():
    form = WasteReportForm()
    if request.method == "GET":
        return render_template("reports/new.html", form=form, page_title="Report Waste")

    if not form.validate_on_submit():
        notify_error("Please check the highlighted fields", title="Invalid report")
        return render_template("reports/new.html", form=form, page_title="Report Waste"), 400

    notice = geolocation_notice(form.geo_status.data)
    if notice:
        notify_error(notice[1], title=notice[0])
    latitude, longitude = parse_coordinates(form.latitude.data, form.longitude.data)

    draft = ReportDraft(
        title=form.title.data or "",
        description=form.description.data or "",
        location=form.location.data or "",
        latitude=latitude,
        longitude=longitude,
    )
    try:
        outcome = submit_report(get_store(), draft, photo=form.photo.data)
    except ReportValidationError as exc:
        notify_error(exc.description, title=exc.title)
        return render_template("reports/new.html", form=form, page_title="Report Waste"), 400
    except StoreError:
        notify_error("Failed to submit waste report")
        return render_template("reports/new.html", form=form, page_title="Report Waste"), 502

    if outcome.awarded:
        notify(
            "Report submitted successfully!",
            f"Thank you for helping keep our community clean. You earned {outcome.points} points!",
        )
    else:
        current_app.logger.warning("report_points_pending", extra={"report_id": outcome.report_id})
        notify_error("Your report was submitted but the points could not be awarded.", title="Points pending")
    # Redirect so the form comes back empty.
    return redirect(url_for("reports.new_report"))


@reports_bp.route("/mine", methods=["GET"])
@login_required
def my_reports():
    result = get_store().fetch("waste_reports", "*", order_by="created_at", descending=True)
    if result.error:
        notify_error("Failed to load your reports")
    return render_template("reports/mine.html", reports=result.data or [], page_title="My Reports")
