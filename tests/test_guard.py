from datetime import datetime

import pytest

from app.community.backend import AuthSession, BackendError
from app.community.guard import (
    Decision,
    PathClass,
    RequestContext,
    classify_path,
    decide,
    guard_request,
    resolve_is_admin,
    resolve_session,
)


def _session(user_id="u1"):
    return AuthSession(access_token="tok", user_id=user_id, email=f"{user_id}@example.com", expires_at=datetime(2100, 1, 1))


class _Counter:
    def __init__(self, result=None, exc=None):
        self.calls = 0
        self.result = result
        self.exc = exc

    def __call__(self, *_args):
        self.calls += 1
        if self.exc:
            raise self.exc
        return self.result


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/auth/login", PathClass.AUTH),
        ("/auth/register/", PathClass.AUTH),
        ("/dashboard", PathClass.MEMBER),
        ("/dashboard/projects", PathClass.MEMBER),
        ("/admin", PathClass.ADMIN),
        ("/admin/events/abc/delete", PathClass.ADMIN),
        ("/", None),
        ("/privacy", None),
        ("/auth/callback", None),
        ("/auth/logout", None),
        ("/administrator", None),
        ("/dashboards", None),
    ],
)
def test_classify_path(path, expected):
    assert classify_path(path) is expected


def test_decision_table():
    assert decide(None, has_session=False, is_admin=False) is Decision.ALLOW

    assert decide(PathClass.AUTH, has_session=False, is_admin=False) is Decision.ALLOW
    assert decide(PathClass.AUTH, has_session=True, is_admin=False) is Decision.REDIRECT_DASHBOARD
    assert decide(PathClass.AUTH, has_session=True, is_admin=True) is Decision.REDIRECT_DASHBOARD

    assert decide(PathClass.MEMBER, has_session=False, is_admin=False) is Decision.REDIRECT_LOGIN
    assert decide(PathClass.MEMBER, has_session=True, is_admin=False) is Decision.ALLOW
    assert decide(PathClass.MEMBER, has_session=True, is_admin=True) is Decision.ALLOW

    assert decide(PathClass.ADMIN, has_session=False, is_admin=False) is Decision.REDIRECT_LOGIN
    assert decide(PathClass.ADMIN, has_session=True, is_admin=False) is Decision.REDIRECT_DASHBOARD
    assert decide(PathClass.ADMIN, has_session=True, is_admin=True) is Decision.ALLOW


def test_context_without_token_never_calls_loaders():
    load_session, load_is_admin = _Counter(_session()), _Counter(True)
    ctx = RequestContext(None, load_session=load_session, load_is_admin=load_is_admin)

    assert ctx.session is None
    assert ctx.is_admin is False
    assert load_session.calls == 0
    assert load_is_admin.calls == 0


def test_context_loads_each_fact_at_most_once():
    load_session, load_is_admin = _Counter(_session()), _Counter(True)
    ctx = RequestContext("tok", load_session=load_session, load_is_admin=load_is_admin)

    assert load_session.calls == 0
    for _ in range(3):
        assert ctx.user_id == "u1"
        assert ctx.is_admin is True
    assert load_session.calls == 1
    assert load_is_admin.calls == 1


def test_member_paths_skip_admin_lookup():
    load_is_admin = _Counter(True)
    ctx = RequestContext("tok", load_session=_Counter(_session()), load_is_admin=load_is_admin)

    assert guard_request(ctx, "/dashboard") is Decision.ALLOW
    assert guard_request(ctx, "/auth/login") is Decision.REDIRECT_DASHBOARD
    assert load_is_admin.calls == 0

    assert guard_request(ctx, "/admin") is Decision.ALLOW
    assert load_is_admin.calls == 1


def test_unguarded_paths_skip_session_lookup():
    load_session = _Counter(_session())
    ctx = RequestContext("tok", load_session=load_session, load_is_admin=_Counter(True))
    assert guard_request(ctx, "/") is Decision.ALLOW
    assert load_session.calls == 0


class _BrokenAuth:
    def get_session(self, token):
        raise BackendError("connection refused", status=500)


class _BrokenData:
    def select(self, *args, **kwargs):
        raise BackendError("connection refused", status=500)


class _NoProfiles:
    def select(self, *args, **kwargs):
        return []


def test_failed_session_lookup_counts_as_anonymous():
    assert resolve_session(_BrokenAuth(), "tok") is None

    ctx = RequestContext("tok", load_session=lambda t: resolve_session(_BrokenAuth(), t), load_is_admin=_Counter(True))
    assert guard_request(ctx, "/dashboard") is Decision.REDIRECT_LOGIN
    assert guard_request(ctx, "/admin") is Decision.REDIRECT_LOGIN


def test_failed_or_missing_profile_counts_as_non_admin():
    assert resolve_is_admin(_BrokenData(), "u1") is False
    assert resolve_is_admin(_NoProfiles(), "u1") is False

    ctx = RequestContext("tok", load_session=_Counter(_session()), load_is_admin=lambda uid: resolve_is_admin(_BrokenData(), uid))
    assert guard_request(ctx, "/admin/events") is Decision.REDIRECT_DASHBOARD
