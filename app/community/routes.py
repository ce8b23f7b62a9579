from flask import Blueprint, render_template

from app.community.backend import BackendError, data_client
from app.community.guard import RequestContext, with_context

bp = Blueprint("routes", __name__)


@bp.get("/")
@with_context
def index(ctx: RequestContext):
    client = data_client()
    try:
        events = client.select("events", eq={"status": "upcoming"}, order=("event_date",), limit=3)
        posts = client.select("posts", eq={"published": True}, order=("-created_at",), limit=3)
        partnerships = client.select("partnerships", order=("-created_at",), limit=6)
    except BackendError:
        # Landing page renders without highlights rather than failing.
        events, posts, partnerships = [], [], []
    return render_template("public/index.html", ctx=ctx, events=events, posts=posts, partnerships=partnerships)


@bp.get("/privacy")
def privacy():
    return render_template("public/privacy.html")


@bp.get("/terms")
def terms():
    return render_template("public/terms.html")


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast liveness probe. No DB access.
    """
    return "ok", 200
