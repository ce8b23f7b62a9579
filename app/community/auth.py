from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, session, url_for

from app.community.audit import record_event
from app.community.backend import AuthSession, BackendError, auth_client
from app.community.guard import SESSION_TOKEN_KEY, RequestContext, with_context
from app.community.mailer import send_confirmation_email
from app.community.models import utcnow

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    cutoff = utcnow() - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(utcnow())


def assign_request_id() -> None:
    """Per-request id for audit/log correlation."""
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex


def _safe_next(nxt: str) -> str | None:
    # Only local paths, to avoid open redirects.
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return None


@bp.get("/login")
def login_get():
    nxt = (request.args.get("next") or "").strip()
    return render_template("auth/login.html", next=nxt, email="")


@bp.post("/login")
def login_post():
    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        flash("Too many login attempts. Please wait 5 minutes.", "danger")
        return redirect(url_for("auth.login_get"))
    _record_attempt(ip)

    auth = auth_client()
    try:
        auth_session = auth.sign_in_with_password(email, password)
    except BackendError as e:
        auth.s.rollback()
        record_event(auth.s, actor=None, action="auth.login_failed", entity_type="Account", entity_id=email, metadata={"reason": e.message})
        auth.s.commit()
        current_app.logger.info("Login failed for %s: %s (request_id=%s)", email, e.message, g.get("request_id"))
        if e.message == "Email not confirmed":
            flash("Please confirm your email address before logging in.", "danger")
        else:
            flash("Invalid email or password.", "danger")
        return render_template("auth/login.html", next=nxt, email=email), 400

    session[SESSION_TOKEN_KEY] = auth_session.access_token
    _login_attempts[ip].clear()
    record_event(auth.s, actor=auth_session, action="auth.login", entity_type="Account", entity_id=auth_session.user_id)
    auth.s.commit()
    return redirect(_safe_next(nxt) or url_for("dashboard.index"))


@bp.get("/register")
def register_get():
    return render_template("auth/register.html", values={})


@bp.post("/register")
def register_post():
    values = {
        "full_name": (request.form.get("full_name") or "").strip(),
        "email": (request.form.get("email") or "").strip().lower(),
        "organization": (request.form.get("organization") or "").strip(),
    }
    password = request.form.get("password") or ""

    errors = []
    if not request.form.get("accept_terms"):
        errors.append("Please accept the Terms of Service and Privacy Policy to continue.")
    if not values["full_name"]:
        errors.append("Full name is required.")
    if not values["email"]:
        errors.append("Email is required.")
    if errors:
        for e in errors:
            flash(e, "danger")
        return render_template("auth/register.html", values=values), 400

    auth = auth_client()
    try:
        account = auth.sign_up(
            values["email"],
            password,
            full_name=values["full_name"],
            organization=values["organization"],
        )
        record_event(
            auth.s,
            actor=None,
            action="auth.register",
            entity_type="Account",
            entity_id=account.id,
            metadata={"email": account.email},
        )
        auth.s.commit()
    except BackendError as e:
        auth.s.rollback()
        flash(f"Registration failed: {e.message}", "danger")
        return render_template("auth/register.html", values=values), 400

    if auth.require_email_confirmation:
        link = url_for("auth.callback", token=auth.confirmation_token(account), _external=True)
        send_confirmation_email(account.email, link)
        flash("Registration successful! Please check your email to confirm your account.", "success")
        return redirect(url_for("auth.verify_email"))

    flash("Registration successful! You can now log in.", "success")
    return redirect(url_for("auth.login_get"))


@bp.get("/verify-email")
def verify_email():
    return render_template("auth/verify_email.html")


@bp.get("/callback")
def callback():
    token = (request.args.get("token") or "").strip()
    auth = auth_client()
    try:
        account = auth.confirm_email(token)
        record_event(auth.s, actor=None, action="auth.confirm_email", entity_type="Account", entity_id=account.id)
        auth.s.commit()
    except BackendError as e:
        auth.s.rollback()
        flash(f"{e.message}. Please register again or contact an admin.", "danger")
        return redirect(url_for("auth.login_get"))
    flash("Email confirmed. You can now log in.", "success")
    return redirect(url_for("auth.login_get"))


@bp.post("/logout")
@with_context
def logout(ctx: RequestContext):
    auth = auth_client()
    current: AuthSession | None = ctx.session
    try:
        auth.sign_out(ctx.token)
        if current:
            record_event(auth.s, actor=current, action="auth.logout", entity_type="Account", entity_id=current.user_id)
        auth.s.commit()
    except BackendError as e:
        auth.s.rollback()
        current_app.logger.warning("Sign-out failed (request_id=%s): %s", g.get("request_id"), e.message)
    session.pop(SESSION_TOKEN_KEY, None)
    return redirect(url_for("routes.index"))
