"""
Route guard.

Each request path is classified as an auth page, a member page or an admin
page. The guard resolves the session (and, for admin pages only, the
profile's admin flag) and returns allow / redirect-to-login /
redirect-to-dashboard per this table:

    path class      no session   session, member   session, admin
    auth pages      allow        dashboard         dashboard
    member pages    login        allow             allow
    admin pages     login        dashboard         allow

Lookup failures are fail-closed: a broken session lookup counts as "no
session", a broken profile lookup counts as "not admin".
"""
from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import Flask, g, redirect, request, session, url_for

from app.community.backend import AuthClient, AuthSession, DataClient, auth_client, data_client

logger = logging.getLogger(__name__)

SESSION_TOKEN_KEY = "access_token"

AUTH_PAGES = ("/auth/login", "/auth/register")
MEMBER_PREFIX = "/dashboard"
ADMIN_PREFIX = "/admin"


class PathClass(enum.Enum):
    AUTH = "auth"
    MEMBER = "member"
    ADMIN = "admin"


class Decision(enum.Enum):
    ALLOW = "allow"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_DASHBOARD = "redirect_dashboard"


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def classify_path(path: str) -> PathClass | None:
    """None means the path is not guarded at all."""
    path = path.rstrip("/") or "/"
    if path in AUTH_PAGES:
        return PathClass.AUTH
    if _under(path, ADMIN_PREFIX):
        return PathClass.ADMIN
    if _under(path, MEMBER_PREFIX):
        return PathClass.MEMBER
    return None


def decide(path_class: PathClass | None, *, has_session: bool, is_admin: bool) -> Decision:
    if path_class is None:
        return Decision.ALLOW
    if path_class is PathClass.AUTH:
        return Decision.REDIRECT_DASHBOARD if has_session else Decision.ALLOW
    if not has_session:
        return Decision.REDIRECT_LOGIN
    if path_class is PathClass.ADMIN and not is_admin:
        return Decision.REDIRECT_DASHBOARD
    return Decision.ALLOW


def resolve_session(auth: AuthClient, token: str | None) -> AuthSession | None:
    try:
        return auth.get_session(token)
    except Exception:
        logger.warning("Session lookup failed; treating request as anonymous", exc_info=True)
        return None


def resolve_is_admin(data: DataClient, user_id: str) -> bool:
    try:
        rows = data.select("profiles", eq={"id": user_id}, limit=1)
    except Exception:
        logger.warning("Profile lookup failed for %s; treating as non-admin", user_id, exc_info=True)
        return False
    return bool(rows and rows[0].is_admin)


_UNSET: Any = object()


class RequestContext:
    """
    Identity of the current request, handed to views explicitly.

    The session and the admin flag are each looked up at most once, and only
    when something asks for them.
    """

    def __init__(
        self,
        token: str | None,
        *,
        load_session: Callable[[str], AuthSession | None],
        load_is_admin: Callable[[str], bool],
    ) -> None:
        self.token = token
        self._load_session = load_session
        self._load_is_admin = load_is_admin
        self._session: AuthSession | None = _UNSET
        self._is_admin: bool | None = None

    @property
    def session(self) -> AuthSession | None:
        if self._session is _UNSET:
            self._session = self._load_session(self.token) if self.token else None
        return self._session

    @property
    def user_id(self) -> str | None:
        return self.session.user_id if self.session else None

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    @property
    def is_admin(self) -> bool:
        if self.session is None:
            return False
        if self._is_admin is None:
            self._is_admin = self._load_is_admin(self.session.user_id)
        return self._is_admin


def guard_request(ctx: RequestContext, path: str) -> Decision:
    path_class = classify_path(path)
    if path_class is None:
        return Decision.ALLOW
    has_session = ctx.session is not None
    is_admin = ctx.is_admin if (has_session and path_class is PathClass.ADMIN) else False
    return decide(path_class, has_session=has_session, is_admin=is_admin)


def build_request_context() -> RequestContext:
    auth = auth_client()
    data = data_client()
    return RequestContext(
        session.get(SESSION_TOKEN_KEY),
        load_session=lambda token: resolve_session(auth, token),
        load_is_admin=lambda user_id: resolve_is_admin(data, user_id),
    )


def current_context() -> RequestContext:
    ctx = g.get("request_context")
    if ctx is None:
        ctx = g.request_context = build_request_context()
    return ctx


def with_context(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Pass the request's RequestContext to the view as its first argument."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        return fn(current_context(), *args, **kwargs)

    return wrapped


def install_guard(app: Flask) -> None:
    @app.before_request
    def _route_guard():
        if request.path.startswith(("/static/", "/health", "/healthz")):
            return None
        ctx = current_context()
        decision = guard_request(ctx, request.path)
        if decision is Decision.REDIRECT_LOGIN:
            if ctx.token:
                # Stale or revoked token; drop it so the login page is reachable.
                session.pop(SESSION_TOKEN_KEY, None)
            nxt = request.full_path if request.query_string else request.path
            return redirect(url_for("auth.login_get", next=nxt))
        if decision is Decision.REDIRECT_DASHBOARD:
            return redirect(url_for("dashboard.index"))
        return None
