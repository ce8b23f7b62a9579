from flask import Blueprint, abort, flash, redirect, render_template, url_for

from app.community.audit import record_event
from app.community.backend import BackendError, data_client
from app.community.guard import RequestContext, with_context

bp = Blueprint("admin", __name__)

_COUNTED = (
    ("events", "Total Events"),
    ("posts", "Total Posts"),
    ("partnerships", "Partnerships"),
    ("profiles", "Total Users"),
    ("project_submissions", "Projects"),
)


@bp.get("")
@with_context
def index(ctx: RequestContext):
    client = data_client()
    stats = []
    for collection, label in _COUNTED:
        try:
            count = client.count(collection)
        except BackendError:
            count = 0
        stats.append({"collection": collection, "label": label, "count": count})
    return render_template("admin/index.html", ctx=ctx, stats=stats)


@bp.get("/users")
@with_context
def users_list(ctx: RequestContext):
    client = data_client()
    try:
        profiles = client.select("profiles", order=("-created_at",))
    except BackendError as e:
        flash(f"Error fetching users: {e.message}", "danger")
        profiles = []
    return render_template("admin/users.html", ctx=ctx, profiles=profiles)


@bp.post("/users/<profile_id>/admin")
@with_context
def users_toggle_admin(ctx: RequestContext, profile_id: str):
    client = data_client()
    profile = client.get("profiles", profile_id)
    if profile is None:
        abort(404)
    if profile.id == ctx.user_id:
        flash("You cannot change your own admin access.", "danger")
        return redirect(url_for("admin.users_list"))

    new_value = not profile.is_admin
    try:
        client.update("profiles", profile_id, {"is_admin": new_value})
        record_event(
            client.s,
            actor=ctx.session,
            action="profiles.admin_grant" if new_value else "profiles.admin_revoke",
            entity_type="Profile",
            entity_id=profile_id,
            metadata={"email": profile.email},
        )
        client.commit()
    except BackendError as e:
        client.rollback()
        flash(f"Error updating user: {e.message}", "danger")
        return redirect(url_for("admin.users_list"))

    flash(f"{profile.display_name} is {'now' if new_value else 'no longer'} an admin.", "success")
    return redirect(url_for("admin.users_list"))
