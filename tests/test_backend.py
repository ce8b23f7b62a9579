from datetime import datetime, timedelta

import pytest

from app.community.backend import CONFLICT_MESSAGE, AuthClient, BackendError, DataClient
from app.community.db import session_scope
from app.community.models import AuthSessionRecord


@pytest.fixture()
def data(app):
    with session_scope(app) as s:
        yield DataClient(s)


def _event(title, when, status="upcoming"):
    return {"title": title, "description": "d", "event_date": when, "location": "Nairobi", "status": status}


def test_select_filters_orders_and_limits(data):
    data.insert("events", _event("A", datetime(2025, 1, 1)))
    data.insert("events", _event("B", datetime(2025, 3, 1)))
    data.insert("events", _event("C", datetime(2025, 2, 1), status="completed"))
    data.commit()

    assert [e.title for e in data.select("events", order=("-event_date",))] == ["B", "C", "A"]
    assert [e.title for e in data.select("events", eq={"status": "upcoming"}, order=("event_date",))] == ["A", "B"]
    assert [e.title for e in data.select("events", order=("event_date",), limit=1)] == ["A"]
    assert data.count("events") == 3
    assert data.count("events", eq={"status": "completed"}) == 1


def test_update_bumps_updated_at_and_ignores_id(data):
    row = data.insert("partnerships", {"name": "Acme", "description": "x"})
    data.commit()
    before = row.updated_at

    updated = data.update("partnerships", row.id, {"id": "other", "name": "Acme Labs"})
    assert updated.id == row.id
    assert updated.name == "Acme Labs"
    assert updated.updated_at >= before


def test_unknown_collection_and_column(data):
    with pytest.raises(BackendError) as exc:
        data.select("widgets")
    assert exc.value.status == 404

    with pytest.raises(BackendError):
        data.select("events", eq={"colour": "red"})
    with pytest.raises(BackendError):
        data.insert("events", {"colour": "red"})


def test_missing_row(data):
    assert data.get("events", "missing") is None
    with pytest.raises(BackendError) as exc:
        data.update("events", "missing", {"title": "x"})
    assert exc.value.status == 404
    with pytest.raises(BackendError):
        data.delete("events", "missing")


def test_constraint_violation_becomes_backend_error(data):
    with pytest.raises(BackendError) as exc:
        data.insert("events", {"title": "No date"})
    assert exc.value.status == 409
    # driver text is logged, not shown
    assert "NOT NULL" not in exc.value.message
    assert exc.value.message == CONFLICT_MESSAGE
    # the unit of work is usable again after the failure
    assert data.count("events") == 0


def test_sessions_expire(app):
    with session_scope(app) as s:
        auth = AuthClient(s, secret_key="k", session_ttl=timedelta(hours=1), require_email_confirmation=False)
        auth.sign_up("a@example.com", "password1")
        live = auth.sign_in_with_password("A@Example.com ", "password1")
        assert auth.get_session(live.access_token).user_id == live.user_id
        assert auth.get_session("not-a-token") is None
        assert auth.get_session(None) is None

        rec = s.query(AuthSessionRecord).one()
        rec.expires_at = datetime(2000, 1, 1)
        s.flush()
        assert auth.get_session(live.access_token) is None


def test_sign_in_errors(app):
    with session_scope(app) as s:
        auth = AuthClient(s, secret_key="k", require_email_confirmation=True)
        auth.sign_up("a@example.com", "password1")

        with pytest.raises(BackendError, match="Invalid login credentials"):
            auth.sign_in_with_password("a@example.com", "nope")
        with pytest.raises(BackendError, match="Email not confirmed"):
            auth.sign_in_with_password("a@example.com", "password1")
        with pytest.raises(BackendError, match="invalid format"):
            auth.sign_up("not-an-email", "password1")
