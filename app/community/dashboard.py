from flask import Blueprint, abort, flash, redirect, render_template, request, url_for

from app.community.audit import record_event
from app.community.backend import BackendError, data_client
from app.community.crud import Field, parse_fields
from app.community.guard import RequestContext, with_context

bp = Blueprint("dashboard", __name__)

PROFILE_FIELDS = (
    Field("full_name", "Full Name", required=True),
    Field("organization", "Organization"),
    Field("role", "Role / Title"),
    Field("bio", "Bio", kind="textarea"),
    Field("avatar_url", "Avatar URL", kind="url"),
)


@bp.get("")
@with_context
def index(ctx: RequestContext):
    client = data_client()
    profile = None
    events, partnerships, projects_count = [], [], 0
    try:
        profile = client.get("profiles", ctx.user_id)
        events = client.select("events", eq={"status": "upcoming"}, order=("event_date",), limit=4)
        partnerships = client.select("partnerships", limit=6)
        projects_count = client.count("project_submissions")
    except BackendError as e:
        flash(f"Some dashboard data could not be loaded: {e.message}", "danger")

    return render_template(
        "dashboard/index.html",
        ctx=ctx,
        profile=profile,
        display_name=(profile.display_name if profile else ctx.session.email),
        events=events,
        partnerships=partnerships,
        projects_count=projects_count,
    )


@bp.get("/profile")
@with_context
def profile_get(ctx: RequestContext):
    profile = data_client().get("profiles", ctx.user_id)
    if profile is None:
        abort(404)
    values = {f.name: f.display(getattr(profile, f.name)) for f in PROFILE_FIELDS}
    return render_template("dashboard/profile.html", profile=profile, fields=PROFILE_FIELDS, values=values)


@bp.post("/profile")
@with_context
def profile_post(ctx: RequestContext):
    client = data_client()
    profile = client.get("profiles", ctx.user_id)
    if profile is None:
        abort(404)

    values, errors = parse_fields(PROFILE_FIELDS, request.form)
    if errors:
        for e in errors:
            flash(e, "danger")
        submitted = {f.name: request.form.get(f.name) or "" for f in PROFILE_FIELDS}
        return render_template("dashboard/profile.html", profile=profile, fields=PROFILE_FIELDS, values=submitted), 400

    try:
        client.update("profiles", ctx.user_id, values)
        record_event(client.s, actor=ctx.session, action="profiles.update", entity_type="Profile", entity_id=ctx.user_id)
        client.commit()
    except BackendError as e:
        client.rollback()
        flash(f"Error updating profile: {e.message}", "danger")
        submitted = {f.name: request.form.get(f.name) or "" for f in PROFILE_FIELDS}
        return render_template("dashboard/profile.html", profile=profile, fields=PROFILE_FIELDS, values=submitted), 400

    flash("Profile updated successfully.", "success")
    return redirect(url_for("dashboard.profile_get"))
