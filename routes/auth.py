"""Sign-up, sign-in and sign-out blueprint."""
from datetime import datetime

from flask import Blueprint, current_app, redirect, render_template, request, session, url_for
from flask_login import current_user, login_required, login_user
from flask_wtf import FlaskForm
from sqlalchemy.exc import IntegrityError
from wtforms import BooleanField, PasswordField, SelectField, StringField, SubmitField
from wtforms.validators import DataRequired, Email, EqualTo, Length, ValidationError

from extensions import db
from models import Profile, User
from utils.notify import notify, notify_error
from utils.security import is_safe_redirect_url, password_meets_policy
from utils.session import sign_out

auth_bp = Blueprint("auth", __name__)


ROLE_CHOICES: list[tuple[str, str]] = [
    ("citizen", "Citizen"),
    ("waste_worker", "Waste Worker"),
    ("green_champion", "Green Champion"),
]


class RegistrationForm(FlaskForm):
    full_name = StringField("Full Name", validators=[DataRequired(), Length(max=150)])
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)])
    role = SelectField("Role", choices=ROLE_CHOICES, validators=[DataRequired()], default="citizen")
    password = PasswordField("Password", validators=[DataRequired(), Length(min=10)])
    confirm_password = PasswordField(
        "Confirm Password", validators=[DataRequired(), EqualTo("password", message="Passwords must match.")]
    )
    submit = SubmitField("Create Account")

    def validate_email(self, field):
        if User.query.filter_by(email=field.data.lower().strip()).first():
            raise ValidationError("An account with this email already exists.")


class LoginForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField("Password", validators=[DataRequired()])
    remember_me = BooleanField("Remember me")
    submit = SubmitField("Sign In")


@auth_bp.route("/register", methods=["GET", "POST"])
def register():
    if current_user.is_authenticated:
        return redirect(url_for("main.dashboard"))

    form = RegistrationForm()
    if form.validate_on_submit():
        password_ok, reason = password_meets_policy(form.password.data)
        if not password_ok:
            form.password.errors.append(reason)
            return render_template("auth/register.html", form=form, page_title="Register")

        try:
            user = User(email=form.email.data.lower().strip(), is_active=True)
            user.set_password(form.password.data)
            db.session.add(user)
            db.session.flush()
            db.session.add(
                Profile(
                    user_id=user.id,
                    full_name=form.full_name.data.strip(),
                    role=form.role.data,
                    is_verified=False,
                )
            )
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            notify_error("Unable to register with the provided details. Please try again.")
            return render_template("auth/register.html", form=form, page_title="Register")

        current_app.logger.info("user_registered", extra={"identity": user.id, "role": form.role.data})
        login_user(user)
        notify("Welcome to Swach Sewa!", "Your account has been created.")
        return redirect(url_for("main.dashboard"))

    return render_template("auth/register.html", form=form, page_title="Register")


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("main.dashboard"))

    form = LoginForm()
    if form.validate_on_submit():
        user = User.query.filter_by(email=form.email.data.lower().strip()).first()
        if not user or not user.check_password(form.password.data):
            current_app.logger.warning("login_failed", extra={"email": form.email.data.lower().strip()})
            notify_error("Invalid credentials provided.", title="Sign in failed")
            return render_template("auth/login.html", form=form, page_title="Sign In"), 401

        if not user.is_active:
            notify_error("Your account is inactive. Please contact support.", title="Sign in failed")
            return render_template("auth/login.html", form=form, page_title="Sign In"), 403

        login_user(user, remember=bool(form.remember_me.data))
        session.permanent = True
        user.last_login_at = datetime.utcnow()
        db.session.add(user)
        db.session.commit()
        current_app.logger.info("login_succeeded", extra={"identity": user.id})

        next_page = request.args.get("next")
        if next_page and is_safe_redirect_url(next_page):
            return redirect(next_page)
        return redirect(url_for("main.dashboard"))

    return render_template("auth/login.html", form=form, page_title="Sign In")


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    sign_out()
    notify("Signed out", "You have been signed out.")
    return redirect(url_for("auth.login"))
