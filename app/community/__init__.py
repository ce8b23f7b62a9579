import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, g, render_template, request, session

from app.community.admin import bp as admin_bp
from app.community.auth import assign_request_id, bp as auth_bp
from app.community.config import load_config
from app.community.crud import resource_blueprint
from app.community.dashboard import bp as dashboard_bp
from app.community.db import init_db, teardown_db_session
from app.community.guard import current_context, install_guard
from app.community.modules.events.resource import EVENTS
from app.community.modules.partnerships.resource import PARTNERSHIPS
from app.community.modules.posts.resource import POSTS
from app.community.modules.projects.resource import PROJECTS
from app.community.routes import bp as routes_bp
from app.community.security import ensure_csrf_token, validate_csrf

logger = logging.getLogger(__name__)

# Sign-in and sign-up are posted before a session (and its token) exists.
CSRF_EXEMPT_ENDPOINTS = ("auth.login_post", "auth.register_post")


def _register_blueprints(app: Flask) -> None:
    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(dashboard_bp, url_prefix="/dashboard")
    app.register_blueprint(admin_bp, url_prefix="/admin")

    app.register_blueprint(
        resource_blueprint(PROJECTS, name="projects", heading="Community Projects", back_endpoint="dashboard.index", inline_create=True),
        url_prefix="/dashboard/projects",
    )
    app.register_blueprint(
        resource_blueprint(EVENTS, name="admin_events", heading="Manage Events", back_endpoint="admin.index"),
        url_prefix="/admin/events",
    )
    app.register_blueprint(
        resource_blueprint(POSTS, name="admin_posts", heading="Manage Posts", back_endpoint="admin.index"),
        url_prefix="/admin/posts",
    )
    app.register_blueprint(
        resource_blueprint(PARTNERSHIPS, name="admin_partnerships", heading="Manage Partnerships", back_endpoint="admin.index"),
        url_prefix="/admin/partnerships",
    )
    app.register_blueprint(
        resource_blueprint(PROJECTS, name="admin_projects", heading="Manage Projects", back_endpoint="admin.index", allow_create=False),
        url_prefix="/admin/projects",
    )


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=app.config["SESSION_TTL_HOURS"])

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    if hasattr(os, "register_at_fork"):

        def _after_fork_child() -> None:
            engine = app.extensions.get("sqlalchemy_engine")
            if engine:
                engine.dispose()

        os.register_at_fork(after_in_child=_after_fork_child)

    @app.context_processor
    def _inject_globals() -> dict:
        return {
            "csrf_token": ensure_csrf_token(),
            "site_name": app.config.get("SITE_NAME"),
            "current_ctx": current_context,
        }

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "—"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    app.before_request(assign_request_id)
    install_guard(app)

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(("/static/", "/health", "/healthz")):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.endpoint in CSRF_EXEMPT_ENDPOINTS:
                return None
            if not validate_csrf(request):
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400
        return None

    _register_blueprints(app)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", g.get("request_id"))
        return render_template("errors/500.html"), 500

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        app.logger.warning("Forbidden: %s %s (request_id=%s)", request.method, request.path, g.get("request_id"))
        return render_template("errors/403.html"), 403

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return render_template("errors/404.html"), 404

    logger.info("create_app() complete; app ready to serve")
    return app
