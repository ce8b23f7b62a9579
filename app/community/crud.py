"""
Generic list/form/delete screens for a named collection.

A Resource describes one collection: its form fields, list ordering, who may
create and who may modify a given record, and which column is stamped with
the signed-in user on insert. resource_blueprint() turns that description
into routes:

    GET  (prefix)             list (?new=1 opens an empty form, ?edit=<id> a filled one)
    POST (prefix)             create
    POST /<id>                update
    GET  /<id>/delete         confirmation page
    POST /<id>/delete         delete (requires confirm=yes)
    POST /<id>/toggle/<flag>  flip a boolean column (see Toggle)

Every mutation ends in a redirect back to the list, which re-fetches the
collection.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

from flask import Blueprint, abort, current_app, flash, redirect, render_template, request, url_for

from app.community.audit import record_event
from app.community.backend import BackendError, DataClient, data_client
from app.community.guard import RequestContext, with_context

FORM_DATETIME = "%Y-%m-%dT%H:%M"
_TRUTHY = ("1", "on", "true", "yes")


@dataclass(frozen=True)
class Field:
    name: str
    label: str
    kind: str = "text"  # text, textarea, url, datetime, checkbox, select
    required: bool = False
    choices: tuple[str, ...] = ()
    default: Any = None
    placeholder: str | None = None
    rows: int = 4

    def parse(self, raw: str | None) -> tuple[Any, str | None]:
        """Convert a submitted form string; returns (value, error message)."""
        if self.kind == "checkbox":
            return (raw or "").strip().lower() in _TRUTHY, None

        text = (raw or "").strip()
        if not text:
            if self.required:
                return None, f"{self.label} is required."
            return self.default, None

        if self.kind == "datetime":
            try:
                value = datetime.fromisoformat(text)
            except ValueError:
                return None, f"{self.label} must be a valid date and time."
            # Columns hold naive UTC; an explicit offset is converted, not dropped.
            if value.tzinfo is not None:
                value = value.astimezone(timezone.utc).replace(tzinfo=None)
            return value, None
        if self.kind == "url":
            parsed = urlparse(text)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                return None, f"{self.label} must be a valid http(s) URL."
            return text, None
        if self.kind == "select" and text not in self.choices:
            return None, f"{self.label} must be one of: {', '.join(self.choices)}."
        return text, None

    def display(self, value: Any) -> Any:
        """Value as the form input expects it."""
        if self.kind == "checkbox":
            return bool(value)
        if value is None:
            return ""
        if self.kind == "datetime" and isinstance(value, datetime):
            return value.strftime(FORM_DATETIME)
        return value


@dataclass(frozen=True)
class Toggle:
    """A boolean column flipped by a single button."""

    field: str
    label_on: str
    label_off: str
    allowed: Callable[[RequestContext], bool]


def admin_only(ctx: RequestContext, _row: Any = None) -> bool:
    return ctx.is_admin


def signed_in(ctx: RequestContext, _row: Any = None) -> bool:
    return ctx.is_authenticated


def parse_fields(fields: tuple[Field, ...], form: Mapping[str, str]) -> tuple[dict[str, Any], list[str]]:
    values: dict[str, Any] = {}
    errors: list[str] = []
    for f in fields:
        value, err = f.parse(form.get(f.name))
        if err:
            errors.append(err)
        values[f.name] = value
    return values, errors


@dataclass(frozen=True)
class Resource:
    collection: str
    singular: str
    plural: str
    fields: tuple[Field, ...]
    order: tuple[str, ...] = ("-created_at",)
    owner_field: str | None = None
    can_create: Callable[[RequestContext], bool] = admin_only
    can_modify: Callable[[RequestContext, Any], bool] = admin_only
    # Each cleaner may normalize values in place and returns error messages.
    cleaners: tuple[Callable[[dict[str, Any]], list[str]], ...] = ()
    toggles: tuple[Toggle, ...] = ()
    title_field: str = "title"
    description: str = ""
    empty_message: str = "Nothing here yet."

    def parse_form(self, form: Mapping[str, str]) -> tuple[dict[str, Any], list[str]]:
        values, errors = parse_fields(self.fields, form)
        if not errors:
            for clean in self.cleaners:
                errors.extend(clean(values))
        return values, errors

    def form_values(self, row: Any | None = None) -> dict[str, Any]:
        if row is None:
            return {f.name: f.display(f.default) for f in self.fields}
        return {f.name: f.display(getattr(row, f.name)) for f in self.fields}

    def submitted_values(self, form: Mapping[str, str]) -> dict[str, Any]:
        """Echo of the raw submission, so a rejected form keeps what was typed."""
        out: dict[str, Any] = {}
        for f in self.fields:
            raw = form.get(f.name)
            out[f.name] = (raw or "").strip().lower() in _TRUTHY if f.kind == "checkbox" else (raw or "")
        return out

    def toggle(self, name: str) -> Toggle | None:
        for t in self.toggles:
            if t.field == name:
                return t
        return None

    def label_for(self, row: Any) -> str:
        return str(getattr(row, self.title_field, "") or self.singular)


def resource_blueprint(
    resource: Resource,
    *,
    name: str,
    heading: str,
    back_endpoint: str,
    inline_create: bool = False,
    allow_create: bool = True,
) -> Blueprint:
    """
    Build the list/form/delete routes for `resource` under a blueprint called `name`.

    inline_create keeps the create form open above the list instead of behind
    a "new" button; allow_create=False turns the page into list-and-moderate only.
    """
    bp = Blueprint(name, __name__)
    noun = resource.singular.lower()

    def _can_create(ctx: RequestContext) -> bool:
        return allow_create and resource.can_create(ctx)

    def _get_or_404(client: DataClient, row_id: str) -> Any:
        try:
            row = client.get(resource.collection, row_id)
        except BackendError as e:
            flash(f"Error loading {noun}: {e.message}", "danger")
            abort(redirect(url_for(f"{name}.list_view")))
        if row is None:
            abort(404)
        return row

    def _render_page(ctx: RequestContext, client: DataClient, *, target=None, values=None, form_open=False, status=200):
        try:
            rows = client.select(resource.collection, order=resource.order)
        except BackendError as e:
            flash(f"Error fetching {resource.plural.lower()}: {e.message}", "danger")
            rows = []
        if inline_create and target is None and _can_create(ctx):
            form_open = True
        if form_open and values is None:
            values = resource.form_values(target)
        return (
            render_template(
                "resources/page.html",
                resource=resource,
                heading=heading,
                endpoint=name,
                back_endpoint=back_endpoint,
                rows=rows,
                ctx=ctx,
                form_open=form_open,
                target=target,
                values=values or {},
                inline_create=inline_create,
                can_create=_can_create(ctx),
            ),
            status,
        )

    @bp.get("")
    @with_context
    def list_view(ctx: RequestContext):
        client = data_client()
        edit_id = (request.args.get("edit") or "").strip()
        if edit_id:
            target = _get_or_404(client, edit_id)
            if not resource.can_modify(ctx, target):
                abort(403)
            return _render_page(ctx, client, target=target, form_open=True)
        if request.args.get("new") and _can_create(ctx):
            return _render_page(ctx, client, form_open=True)
        return _render_page(ctx, client)

    @bp.post("")
    @with_context
    def create(ctx: RequestContext):
        if not _can_create(ctx):
            abort(403)
        client = data_client()
        values, errors = resource.parse_form(request.form)
        if errors:
            for e in errors:
                flash(e, "danger")
            return _render_page(ctx, client, values=resource.submitted_values(request.form), form_open=True, status=400)

        if resource.owner_field:
            values[resource.owner_field] = ctx.user_id
        try:
            row = client.insert(resource.collection, values)
            record_event(
                client.s,
                actor=ctx.session,
                action=f"{resource.collection}.create",
                entity_type=resource.singular,
                entity_id=row.id,
                metadata={"title": resource.label_for(row)},
            )
            client.commit()
        except BackendError as e:
            client.rollback()
            flash(f"Error creating {noun}: {e.message}", "danger")
            return _render_page(ctx, client, values=resource.submitted_values(request.form), form_open=True, status=400)

        current_app.logger.info("%s created id=%s by=%s", resource.singular, row.id, ctx.user_id)
        flash(f"{resource.singular} created successfully.", "success")
        return redirect(url_for(f"{name}.list_view"))

    @bp.post("/<row_id>")
    @with_context
    def update(ctx: RequestContext, row_id: str):
        client = data_client()
        target = _get_or_404(client, row_id)
        if not resource.can_modify(ctx, target):
            abort(403)
        values, errors = resource.parse_form(request.form)
        if errors:
            for e in errors:
                flash(e, "danger")
            return _render_page(ctx, client, target=target, values=resource.submitted_values(request.form), form_open=True, status=400)

        try:
            client.update(resource.collection, row_id, values)
            record_event(
                client.s,
                actor=ctx.session,
                action=f"{resource.collection}.update",
                entity_type=resource.singular,
                entity_id=row_id,
                metadata={"fields": sorted(values)},
            )
            client.commit()
        except BackendError as e:
            client.rollback()
            flash(f"Error updating {noun}: {e.message}", "danger")
            return _render_page(ctx, client, target=target, values=resource.submitted_values(request.form), form_open=True, status=400)

        flash(f"{resource.singular} updated successfully.", "success")
        return redirect(url_for(f"{name}.list_view"))

    @bp.get("/<row_id>/delete")
    @with_context
    def delete_confirm(ctx: RequestContext, row_id: str):
        client = data_client()
        target = _get_or_404(client, row_id)
        if not resource.can_modify(ctx, target):
            abort(403)
        return render_template(
            "resources/confirm_delete.html",
            resource=resource,
            heading=heading,
            endpoint=name,
            target=target,
        )

    @bp.post("/<row_id>/delete")
    @with_context
    def delete(ctx: RequestContext, row_id: str):
        client = data_client()
        target = _get_or_404(client, row_id)
        if not resource.can_modify(ctx, target):
            abort(403)
        if (request.form.get("confirm") or "").strip().lower() != "yes":
            flash(f"Please confirm that you want to delete this {noun}.", "danger")
            return redirect(url_for(f"{name}.delete_confirm", row_id=row_id))

        label = resource.label_for(target)
        try:
            client.delete(resource.collection, row_id)
            record_event(
                client.s,
                actor=ctx.session,
                action=f"{resource.collection}.delete",
                entity_type=resource.singular,
                entity_id=row_id,
                metadata={"title": label},
            )
            client.commit()
        except BackendError as e:
            client.rollback()
            flash(f"Error deleting {noun}: {e.message}", "danger")
            return redirect(url_for(f"{name}.list_view"))

        flash(f"{resource.singular} deleted successfully.", "success")
        return redirect(url_for(f"{name}.list_view"))

    @bp.post("/<row_id>/toggle/<flag>")
    @with_context
    def toggle(ctx: RequestContext, row_id: str, flag: str):
        t = resource.toggle(flag)
        if t is None:
            abort(404)
        if not t.allowed(ctx):
            abort(403)
        client = data_client()
        target = _get_or_404(client, row_id)
        new_value = not bool(getattr(target, t.field))
        try:
            client.update(resource.collection, row_id, {t.field: new_value})
            record_event(
                client.s,
                actor=ctx.session,
                action=f"{resource.collection}.toggle",
                entity_type=resource.singular,
                entity_id=row_id,
                metadata={"field": t.field, "value": new_value},
            )
            client.commit()
        except BackendError as e:
            client.rollback()
            flash(f"Error updating {noun}: {e.message}", "danger")
            return redirect(url_for(f"{name}.list_view"))

        flash(f"{resource.singular} {'marked' if new_value else 'unmarked'} as {t.field.removeprefix('is_')}.", "success")
        return redirect(url_for(f"{name}.list_view"))

    return bp
