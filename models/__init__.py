"""Data models for identities, profiles, training, incentives, facilities and waste reports."""
import uuid
from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import db


def generate_uuid() -> str:
	return str(uuid.uuid4())


USER_ROLES: tuple[str, ...] = (
	"citizen",
	"waste_worker",
	"green_champion",
	"admin",
)

TRAINING_STATUSES: tuple[str, ...] = (
	"not_started",
	"in_progress",
	"completed",
)

FACILITY_TYPES: tuple[str, ...] = (
	"biomethanization",
	"waste_to_energy",
	"recycling",
	"scrap_collection",
)

INCENTIVE_EVENTS: tuple[str, ...] = (
	"training_completed",
	"waste_report",
	"manual",
)

DEFAULT_REPORT_STATUS = "open"


class User(UserMixin, db.Model):
	__tablename__ = "users"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	email = db.Column(db.String(255), unique=True, nullable=False, index=True)
	password_hash = db.Column(db.String(255), nullable=False)
	is_active = db.Column(db.Boolean, default=True, nullable=False)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
	last_login_at = db.Column(db.DateTime, nullable=True)

	profile = db.relationship("Profile", back_populates="user", uselist=False)

	def set_password(self, password: str) -> None:
		self.password_hash = generate_password_hash(password, method="pbkdf2:sha256", salt_length=16)

	def check_password(self, password: str) -> bool:
		return check_password_hash(self.password_hash, password)

	@property
	def active(self) -> bool:  # Flask-Login compatibility alias
		return self.is_active


class Profile(db.Model):
	__tablename__ = "profiles"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, unique=True, index=True)
	full_name = db.Column(db.String(150), nullable=False)
	role = db.Column(db.String(20), nullable=False, default="citizen", index=True)
	is_verified = db.Column(db.Boolean, nullable=False, default=False)
	address = db.Column(db.String(255), nullable=True)
	city = db.Column(db.String(120), nullable=True)
	state = db.Column(db.String(120), nullable=True)
	pincode = db.Column(db.String(12), nullable=True)
	phone = db.Column(db.String(32), nullable=True)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
	updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	__table_args__ = (
		db.CheckConstraint(
			"role IN ('citizen','waste_worker','green_champion','admin')",
			name="ck_profile_role_valid",
		),
	)

	user = db.relationship("User", back_populates="profile")


class TrainingModule(db.Model):
	__tablename__ = "training_modules"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	title = db.Column(db.String(255), nullable=False)
	description = db.Column(db.Text, nullable=True)
	content = db.Column(db.Text, nullable=True)
	duration_minutes = db.Column(db.Integer, nullable=True)
	is_mandatory = db.Column(db.Boolean, nullable=False, default=False)
	target_role = db.Column(db.String(20), nullable=False, default="citizen", index=True)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

	__table_args__ = (
		db.CheckConstraint(
			"target_role IN ('citizen','waste_worker','green_champion','admin')",
			name="ck_training_module_role_valid",
		),
	)


class TrainingProgress(db.Model):
	__tablename__ = "training_progress"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	module_id = db.Column(db.String(36), db.ForeignKey("training_modules.id"), nullable=False, index=True)
	status = db.Column(db.String(20), nullable=False, default="not_started", index=True)
	score = db.Column(db.Integer, nullable=True)
	started_at = db.Column(db.DateTime, nullable=True)
	completed_at = db.Column(db.DateTime, nullable=True)

	__table_args__ = (
		db.UniqueConstraint("user_id", "module_id", name="uq_training_progress_user_module"),
		db.CheckConstraint(
			"status IN ('not_started','in_progress','completed')",
			name="ck_training_progress_status_valid",
		),
		db.CheckConstraint("score IS NULL OR (score >= 0 AND score <= 100)", name="ck_training_progress_score"),
	)


class Incentive(db.Model):
	__tablename__ = "incentives"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	points = db.Column(db.Integer, nullable=False, default=0)
	reason = db.Column(db.String(255), nullable=True)
	awarded_by = db.Column(db.String(36), nullable=True)
	event_type = db.Column(db.String(30), nullable=False, default="manual", index=True)
	reference_id = db.Column(db.String(36), nullable=False, default=generate_uuid)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

	__table_args__ = (
		# One award per (user, event, subject); retried awards collapse onto the first row.
		db.UniqueConstraint("user_id", "event_type", "reference_id", name="uq_incentive_award_event"),
		db.CheckConstraint("points >= 0", name="ck_incentive_points_non_negative"),
	)


class WasteFacility(db.Model):
	__tablename__ = "waste_facilities"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	name = db.Column(db.String(255), nullable=False)
	type = db.Column(db.String(30), nullable=False, index=True)
	address = db.Column(db.String(500), nullable=False)
	city = db.Column(db.String(120), nullable=False, index=True)
	latitude = db.Column(db.Float, nullable=True)
	longitude = db.Column(db.Float, nullable=True)
	capacity_tons = db.Column(db.Float, nullable=True)
	contact_person = db.Column(db.String(150), nullable=True)
	phone = db.Column(db.String(32), nullable=True)
	is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

	__table_args__ = (
		db.CheckConstraint(
			"type IN ('biomethanization','waste_to_energy','recycling','scrap_collection')",
			name="ck_waste_facility_type_valid",
		),
	)


class WasteReport(db.Model):
	__tablename__ = "waste_reports"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	reporter_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	title = db.Column(db.String(255), nullable=False)
	description = db.Column(db.Text, nullable=True)
	location = db.Column(db.String(500), nullable=False)
	latitude = db.Column(db.Float, nullable=True)
	longitude = db.Column(db.Float, nullable=True)
	photo_url = db.Column(db.String(500), nullable=True)
	status = db.Column(db.String(30), nullable=False, default=DEFAULT_REPORT_STATUS, index=True)
	assigned_to = db.Column(db.String(36), nullable=True)
	resolved_at = db.Column(db.DateTime, nullable=True)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
