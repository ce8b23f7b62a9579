from app.community.db import session_scope
from app.community.models import Account, Profile
from scripts.init_db import seed_only
from scripts.set_admin import set_admin


def test_seed_is_idempotent_and_admin_can_log_in(app, client, monkeypatch):
    monkeypatch.setenv("ADMIN_EMAIL", "Root@Example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "initial-pw")
    db_url = app.config["DATABASE_URL"]

    seed_only(database_url=db_url)
    monkeypatch.setenv("ADMIN_PASSWORD", "changed-pw")
    seed_only(database_url=db_url)

    with session_scope(app) as s:
        account = s.query(Account).one()
        assert account.email == "root@example.com"
        assert account.email_confirmed_at is not None
        assert s.get(Profile, account.id).is_admin is True

    # the first password is kept
    r = client.post("/auth/login", data={"email": "root@example.com", "password": "initial-pw"})
    assert r.status_code == 302
    assert client.get("/admin").status_code == 200


def test_set_admin(app, add_member):
    member_id = add_member("member@example.com")
    db_url = app.config["DATABASE_URL"]

    assert set_admin("MEMBER@example.com", database_url=db_url) is True
    with session_scope(app) as s:
        assert s.get(Profile, member_id).is_admin is True

    assert set_admin("member@example.com", is_admin=False, database_url=db_url) is True
    with session_scope(app) as s:
        assert s.get(Profile, member_id).is_admin is False

    assert set_admin("nobody@example.com", database_url=db_url) is False
