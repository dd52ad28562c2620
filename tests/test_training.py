import random

import pytest

from conftest import create_module, create_progress, flashed
from models import Incentive, TrainingProgress
from utils.datastore import DataStore, StoreError, StoreResult
from utils.training import (
    TrainingError,
    can_transition,
    complete_module,
    draw_score,
    start_module,
    summarize_progress,
)


def test_transitions_only_move_forward_one_step():
    assert can_transition("not_started", "in_progress")
    assert can_transition("in_progress", "completed")
    assert not can_transition("not_started", "completed")
    assert not can_transition("completed", "in_progress")
    assert not can_transition("in_progress", "not_started")
    assert not can_transition("completed", "completed")


def test_summarize_progress_handles_empty_catalog():
    assert summarize_progress([], 0) == {"completed": 0, "total": 0, "percentage": 0}
    rows = [{"status": "completed"}, {"status": "in_progress"}, {"status": "completed"}]
    assert summarize_progress(rows, 4)["percentage"] == 50


def test_score_is_always_within_bounds(app):
    with app.app_context():
        rng = random.Random(7)
        scores = {draw_score(rng) for _ in range(2000)}
    assert min(scores) >= 70
    assert max(scores) <= 100
    assert {70, 100} <= scores


def test_start_then_complete_records_one_row_and_one_award(app, client, user_id):
    module_id = create_module(app)

    client.post(f"/training/{module_id}/start")
    response = client.post(f"/training/{module_id}/complete")
    assert response.status_code == 302

    with app.app_context():
        rows = TrainingProgress.query.filter_by(user_id=user_id, module_id=module_id).all()
        assert len(rows) == 1
        assert rows[0].status == "completed"
        assert 70 <= rows[0].score <= 100
        assert rows[0].completed_at is not None
        awards = Incentive.query.filter_by(user_id=user_id).all()
        assert len(awards) == 1
        assert awards[0].points == 50
        assert awards[0].reason == "Training module completed"


def test_complete_without_start_is_rejected(app, client, user_id):
    module_id = create_module(app)

    client.post(f"/training/{module_id}/complete")

    messages = flashed(client)
    assert messages[-1][0] == "destructive"
    assert "Start this training module" in messages[-1][1]["description"]
    with app.app_context():
        assert TrainingProgress.query.count() == 0
        assert Incentive.query.count() == 0


def test_starting_a_completed_module_does_not_regress(app, user_id):
    module_id = create_module(app)
    create_progress(app, user_id, module_id, "completed", score=91)
    with app.app_context():
        status = start_module(DataStore(user_id), module_id)
        row = TrainingProgress.query.filter_by(user_id=user_id, module_id=module_id).one()
    assert status == "completed"
    assert row.status == "completed"
    assert row.score == 91


def test_unknown_module_is_rejected(app, user_id):
    with app.app_context():
        with pytest.raises(TrainingError):
            start_module(DataStore(user_id), "no-such-module")


def test_anonymous_cannot_start(app):
    module_id = create_module(app)
    with app.app_context():
        with pytest.raises(TrainingError):
            start_module(DataStore(None), module_id)


def test_failed_award_keeps_completion_and_can_be_retried(app, user_id, monkeypatch):
    module_id = create_module(app)
    create_progress(app, user_id, module_id, "in_progress")

    monkeypatch.setattr(
        "utils.training.award_points",
        lambda *args, **kwargs: StoreResult(error=StoreError("connection reset", table="incentives")),
    )
    with app.app_context():
        outcome = complete_module(DataStore(user_id), module_id, rng=random.Random(1))
        assert not outcome.awarded
        assert TrainingProgress.query.filter_by(module_id=module_id).one().status == "completed"
        assert Incentive.query.count() == 0
    monkeypatch.undo()

    with app.app_context():
        retry = complete_module(DataStore(user_id), module_id)
        again = complete_module(DataStore(user_id), module_id)
        assert retry.awarded and retry.already_completed
        assert retry.score == outcome.score
        assert again.awarded
        assert Incentive.query.filter_by(user_id=user_id).count() == 1


def test_progress_write_failure_surfaces_store_error(app, user_id, monkeypatch):
    module_id = create_module(app)
    monkeypatch.setattr(
        DataStore, "upsert", lambda self, *args, **kwargs: StoreResult(error=StoreError("timeout"))
    )
    with app.app_context():
        with pytest.raises(StoreError):
            start_module(DataStore(user_id), module_id)
        assert TrainingProgress.query.count() == 0


def test_training_page_shows_status_and_role(app, client, user_id):
    first = create_module(app, title="Composting", is_mandatory=True)
    create_module(app, title="Scrap Sorting")
    create_progress(app, user_id, first, "completed", score=84)

    html = client.get("/training/").get_data(as_text=True)

    assert "Completed: 1/2 modules" in html
    assert "84%" in html
    assert "Mandatory" in html
    assert "Start Training" in html
    assert "citizen" in html


def test_training_page_for_anonymous_visitors(app, client):
    create_module(app, title="Composting")
    html = client.get("/training/").get_data(as_text=True)
    assert "Sign up to access" in html
    assert "Composting" in html
