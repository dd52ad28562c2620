import io
import os
import tempfile
from datetime import datetime, timedelta

import pytest

os.environ["FLASK_CONFIG"] = "testing"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="swach-sewa-logs-")
os.environ.setdefault("REPORT_UPLOAD_FOLDER", tempfile.mkdtemp(prefix="swach-sewa-uploads-"))

from app import create_app  # noqa: E402
from extensions import db  # noqa: E402
from models import Incentive, Profile, TrainingModule, TrainingProgress, User, WasteFacility  # noqa: E402

PASSWORD = "GreenStreets2024"


@pytest.fixture
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("REPORT_UPLOAD_FOLDER", str(tmp_path / "uploads"))
    application = create_app("testing")
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, email="asha@example.com", full_name="Asha Verma", role="citizen", password=PASSWORD):
    return client.post(
        "/auth/register",
        data={
            "full_name": full_name,
            "email": email,
            "role": role,
            "password": password,
            "confirm_password": password,
        },
    )


@pytest.fixture
def user_id(app, client):
    response = register(client)
    assert response.status_code == 302
    with app.app_context():
        return User.query.filter_by(email="asha@example.com").one().id


def flashed(client):
    with client.session_transaction() as sess:
        return [(category, message) for category, message in sess.get("_flashes", [])]


def create_user(app, email, full_name="Other Person", role="citizen"):
    with app.app_context():
        user = User(email=email)
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.flush()
        db.session.add(Profile(user_id=user.id, full_name=full_name, role=role))
        db.session.commit()
        return user.id


def create_module(app, title="Segregation 101", target_role="citizen", created_at=None, **extra):
    with app.app_context():
        module = TrainingModule(
            title=title,
            description=extra.pop("description", "Sort your waste"),
            duration_minutes=extra.pop("duration_minutes", 15),
            target_role=target_role,
            created_at=created_at or datetime.utcnow(),
            **extra,
        )
        db.session.add(module)
        db.session.commit()
        return module.id


def create_modules(app, count, target_role="citizen"):
    base = datetime(2024, 1, 1)
    return [
        create_module(app, title=f"Module {i + 1}", target_role=target_role, created_at=base + timedelta(minutes=i))
        for i in range(count)
    ]


def create_progress(app, user_id, module_id, status, score=None):
    with app.app_context():
        db.session.add(TrainingProgress(user_id=user_id, module_id=module_id, status=status, score=score))
        db.session.commit()


def create_incentive(app, user_id, points, reason="Manual award", created_at=None):
    with app.app_context():
        db.session.add(
            Incentive(user_id=user_id, points=points, reason=reason, created_at=created_at or datetime.utcnow())
        )
        db.session.commit()


def create_facility(app, **fields):
    payload = {
        "name": "Green Valley Recycling Center",
        "type": "recycling",
        "address": "12 Ring Road",
        "city": "Indore",
        "is_active": True,
    }
    payload.update(fields)
    with app.app_context():
        facility = WasteFacility(**payload)
        db.session.add(facility)
        db.session.commit()
        return facility.id


def jpeg_bytes(total_size=None):
    """A real JPEG, optionally zero-padded after the end marker to an exact size."""
    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(40, 160, 60)).save(buffer, format="JPEG")
    content = buffer.getvalue()
    if total_size is not None:
        content = content + b"\0" * (total_size - len(content))
    return content
