"""
Project showcase. Any signed-in member may submit; the submitter or an
admin may edit or delete; only admins feature a project.
"""
from __future__ import annotations

from typing import Any

from app.community.crud import Field, Resource, Toggle, admin_only, signed_in
from app.community.guard import RequestContext
from app.community.modules.projects.models import BUILT_ON_CHOICES


def can_modify_project(ctx: RequestContext, project: Any) -> bool:
    if ctx.session is None:
        return False
    return project.user_id == ctx.user_id or ctx.is_admin


def clean_built_on(values: dict[str, Any]) -> list[str]:
    if values.get("built_on") == "other":
        if not values.get("built_on_other_text"):
            return ["Please specify what it is built on."]
    else:
        values["built_on_other_text"] = None
    return []


PROJECTS = Resource(
    collection="project_submissions",
    singular="Project",
    plural="Projects",
    fields=(
        Field("title", "Title", required=True),
        Field("overview", "Overview", kind="textarea", required=True),
        Field("live_url", "Live URL", kind="url", required=True, placeholder="https://"),
        Field("github_url", "GitHub URL (Optional)", kind="url", placeholder="https://github.com/..."),
        Field("built_on", "Built on", kind="select", choices=BUILT_ON_CHOICES, default="windsurf"),
        Field("built_on_other_text", "If other, what?"),
    ),
    order=("-is_featured", "-created_at"),
    owner_field="user_id",
    can_create=signed_in,
    can_modify=can_modify_project,
    cleaners=(clean_built_on,),
    toggles=(Toggle("is_featured", label_on="Unfeature", label_off="Feature", allowed=admin_only),),
    description="Share what you have built with the community",
    empty_message="No projects yet. Be the first to submit!",
)
