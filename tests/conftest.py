import pytest

from app.community import auth as auth_views
from app.community import create_app
from app.community.backend import AuthClient
from app.community.db import session_scope
from app.community.models import Base, Profile
from app.community.security import CSRF_SESSION_KEY


@pytest.fixture()
def make_app(tmp_path, monkeypatch):
    def _make(**env):
        monkeypatch.setenv("SECRET_KEY", "test-secret")
        monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
        monkeypatch.setenv("ENV", "test")
        monkeypatch.setenv("REQUIRE_EMAIL_CONFIRMATION", "0")
        monkeypatch.delenv("SMTP_HOST", raising=False)
        for k, v in env.items():
            monkeypatch.setenv(k, v)
        app = create_app()
        Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])
        return app

    return _make


@pytest.fixture()
def app(make_app):
    return make_app()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def _reset_login_rate_limit():
    auth_views._login_attempts.clear()
    yield
    auth_views._login_attempts.clear()


@pytest.fixture()
def add_member(app):
    """Create a confirmed account + profile; returns the account id."""

    def _add(email: str, password: str = "password1", *, full_name: str = "Test Member", is_admin: bool = False) -> str:
        with session_scope(app) as s:
            auth = AuthClient(s, secret_key="test-secret", require_email_confirmation=False)
            account = auth.sign_up(email, password, full_name=full_name)
            if is_admin:
                s.get(Profile, account.id).is_admin = True
            return account.id

    return _add


def _csrf(client) -> str:
    with client.session_transaction() as sess:
        return sess.setdefault(CSRF_SESSION_KEY, "test-csrf-token")


@pytest.fixture()
def post_form():
    """POST with the session's CSRF token attached."""

    def _post(client, url: str, data: dict | None = None, **kwargs):
        payload = dict(data or {})
        payload.setdefault(CSRF_SESSION_KEY, _csrf(client))
        return client.post(url, data=payload, **kwargs)

    return _post


@pytest.fixture()
def login():
    def _login(client, email: str, password: str = "password1"):
        r = client.post("/auth/login", data={"email": email, "password": password}, follow_redirects=False)
        assert r.status_code == 302, r.data
        return r

    return _login


@pytest.fixture()
def admin_client(client, add_member, login):
    add_member("admin@example.com", full_name="Ada Admin", is_admin=True)
    login(client, "admin@example.com")
    return client


@pytest.fixture()
def member_client(client, add_member, login):
    add_member("member@example.com", full_name="Mo Member")
    login(client, "member@example.com")
    return client
