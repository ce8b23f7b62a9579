"""
Data and auth client over the relational store.

Pages never touch ORM queries directly: they read and write named
collections through DataClient and sign users in and out through AuthClient.
Every failure from either client is raised as BackendError so a page has a
single thing to catch and show.
"""
from __future__ import annotations

import hashlib
import logging
import re
import secrets
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from app.community.models import Account, AuthSessionRecord, Base, Profile, new_id, utcnow
from app.community.modules.events.models import Event
from app.community.modules.partnerships.models import Partnership
from app.community.modules.posts.models import Post
from app.community.modules.projects.models import ProjectSubmission

logger = logging.getLogger(__name__)

COLLECTIONS: dict[str, type[Base]] = {
    "profiles": Profile,
    "events": Event,
    "posts": Post,
    "partnerships": Partnership,
    "project_submissions": ProjectSubmission,
}

_EMAIL_RE = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")
CONFLICT_MESSAGE = "The change conflicts with existing data or is missing a required value."
UNAVAILABLE_MESSAGE = "The database is unavailable. Please try again."


class BackendError(Exception):
    def __init__(self, message: str, *, status: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


def _db_error(e: SQLAlchemyError, what: str) -> BackendError:
    # Driver text stays in the log; users get a generic message.
    detail = str(getattr(e, "orig", None) or e).splitlines()[0]
    logger.warning("Backend %s failed: %s", what, detail)
    if isinstance(e, IntegrityError):
        return BackendError(CONFLICT_MESSAGE, status=409)
    return BackendError(UNAVAILABLE_MESSAGE, status=500)


class DataClient:
    """
    select/insert/update/delete/count against named collections.

    Writes are flushed immediately; the caller commits once per request via
    commit(). A failed write rolls the unit of work back.
    """

    def __init__(self, s: Session) -> None:
        self.s = s

    @staticmethod
    def _model(collection: str) -> type[Base]:
        model = COLLECTIONS.get(collection)
        if model is None:
            raise BackendError(f'relation "{collection}" does not exist', status=404)
        return model

    @staticmethod
    def _column(model: type[Base], name: str):
        if name not in model.__table__.columns:
            raise BackendError(f"column {model.__tablename__}.{name} does not exist")
        return getattr(model, name)

    def _clean(self, model: type[Base], values: Mapping[str, Any]) -> dict[str, Any]:
        for key in values:
            self._column(model, key)
        return {k: v for k, v in values.items() if k != "id"}

    def _where(self, stmt, model: type[Base], eq: Mapping[str, Any] | None):
        for name, value in (eq or {}).items():
            stmt = stmt.where(self._column(model, name) == value)
        return stmt

    def select(
        self,
        collection: str,
        *,
        eq: Mapping[str, Any] | None = None,
        order: Iterable[str] = (),
        limit: int | None = None,
    ) -> list[Any]:
        """Rows matching every `eq` pair; `order` keys prefixed with "-" sort descending."""
        model = self._model(collection)
        stmt = self._where(select(model), model, eq)
        for key in order:
            col = self._column(model, key.lstrip("-"))
            stmt = stmt.order_by(col.desc() if key.startswith("-") else col.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            return list(self.s.scalars(stmt).all())
        except SQLAlchemyError as e:
            raise _db_error(e, f"select {collection}") from e

    def get(self, collection: str, row_id: str) -> Any | None:
        model = self._model(collection)
        try:
            return self.s.get(model, row_id)
        except SQLAlchemyError as e:
            raise _db_error(e, f"get {collection}") from e

    def count(self, collection: str, *, eq: Mapping[str, Any] | None = None) -> int:
        model = self._model(collection)
        stmt = self._where(select(func.count()).select_from(model), model, eq)
        try:
            return int(self.s.scalar(stmt) or 0)
        except SQLAlchemyError as e:
            raise _db_error(e, f"count {collection}") from e

    def insert(self, collection: str, values: Mapping[str, Any]) -> Any:
        model = self._model(collection)
        row = model(**self._clean(model, values))
        self.s.add(row)
        self._flush(f"insert {collection}")
        return row

    def update(self, collection: str, row_id: str, values: Mapping[str, Any]) -> Any:
        model = self._model(collection)
        clean = self._clean(model, values)
        row = self.get(collection, row_id)
        if row is None:
            raise BackendError("Row not found", status=404)
        for key, value in clean.items():
            setattr(row, key, value)
        if "updated_at" in model.__table__.columns and "updated_at" not in clean:
            row.updated_at = utcnow()
        self._flush(f"update {collection}")
        return row

    def delete(self, collection: str, row_id: str) -> None:
        row = self.get(collection, row_id)
        if row is None:
            raise BackendError("Row not found", status=404)
        self.s.delete(row)
        self._flush(f"delete {collection}")

    def commit(self) -> None:
        try:
            self.s.commit()
        except SQLAlchemyError as e:
            self.s.rollback()
            raise _db_error(e, "commit") from e

    def rollback(self) -> None:
        self.s.rollback()

    def _flush(self, what: str) -> None:
        try:
            self.s.flush()
        except SQLAlchemyError as e:
            self.s.rollback()
            raise _db_error(e, what) from e


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    user_id: str
    email: str
    expires_at: datetime


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class AuthClient:
    MIN_PASSWORD_LENGTH = 6
    CONFIRM_MAX_AGE = 3 * 24 * 3600  # seconds

    def __init__(
        self,
        s: Session,
        *,
        secret_key: str,
        session_ttl: timedelta = timedelta(days=7),
        require_email_confirmation: bool = True,
    ) -> None:
        self.s = s
        self.secret_key = secret_key
        self.session_ttl = session_ttl
        self.require_email_confirmation = require_email_confirmation

    def _serializer(self) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(self.secret_key, salt="email-confirm")

    def _flush(self, what: str) -> None:
        try:
            self.s.flush()
        except SQLAlchemyError as e:
            self.s.rollback()
            raise _db_error(e, what) from e

    def _account_by_email(self, email: str) -> Account | None:
        try:
            return self.s.scalar(select(Account).where(Account.email == email))
        except SQLAlchemyError as e:
            raise _db_error(e, "account lookup") from e

    def _session_record(self, token: str) -> AuthSessionRecord | None:
        try:
            return self.s.scalar(select(AuthSessionRecord).where(AuthSessionRecord.token_hash == _hash_token(token)))
        except SQLAlchemyError as e:
            raise _db_error(e, "session lookup") from e

    def sign_up(
        self,
        email: str,
        password: str,
        *,
        full_name: str | None = None,
        organization: str | None = None,
    ) -> Account:
        """Create the identity record and its profile in one unit of work."""
        email = normalize_email(email)
        if not _EMAIL_RE.fullmatch(email):
            raise BackendError("Unable to validate email address: invalid format")
        if len(password or "") < self.MIN_PASSWORD_LENGTH:
            raise BackendError(f"Password should be at least {self.MIN_PASSWORD_LENGTH} characters.")
        if self._account_by_email(email) is not None:
            raise BackendError("User already registered")

        now = utcnow()
        account = Account(
            id=new_id(),
            email=email,
            password_hash=generate_password_hash(password),
            email_confirmed_at=None if self.require_email_confirmation else now,
            created_at=now,
        )
        profile = Profile(
            id=account.id,
            email=email,
            full_name=(full_name or "").strip() or None,
            organization=(organization or "").strip() or None,
            is_admin=False,
            created_at=now,
            updated_at=now,
        )
        self.s.add_all([account, profile])
        try:
            self._flush("sign_up")
        except BackendError as e:
            # A concurrent sign-up for the same email won the unique index.
            if e.status == 409:
                raise BackendError("User already registered") from e
            raise
        return account

    def confirmation_token(self, account: Account) -> str:
        return self._serializer().dumps(account.id)

    def confirm_email(self, token: str) -> Account:
        try:
            account_id = self._serializer().loads(token, max_age=self.CONFIRM_MAX_AGE)
        except SignatureExpired:
            raise BackendError("Email link has expired") from None
        except BadSignature:
            raise BackendError("Email link is invalid") from None
        account = self.s.get(Account, account_id)
        if account is None:
            raise BackendError("User not found", status=404)
        if account.email_confirmed_at is None:
            account.email_confirmed_at = utcnow()
            self._flush("confirm_email")
        return account

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        account = self._account_by_email(normalize_email(email))
        if account is None or not check_password_hash(account.password_hash, password or ""):
            raise BackendError("Invalid login credentials")
        if self.require_email_confirmation and account.email_confirmed_at is None:
            raise BackendError("Email not confirmed")

        token = secrets.token_urlsafe(32)
        now = utcnow()
        rec = AuthSessionRecord(
            token_hash=_hash_token(token),
            account_id=account.id,
            created_at=now,
            expires_at=now + self.session_ttl,
        )
        self.s.add(rec)
        self._flush("sign_in")
        return AuthSession(access_token=token, user_id=account.id, email=account.email, expires_at=rec.expires_at)

    def get_session(self, token: str | None) -> AuthSession | None:
        if not token:
            return None
        rec = self._session_record(token)
        if rec is None or rec.revoked_at is not None or rec.expires_at <= utcnow():
            return None
        return AuthSession(access_token=token, user_id=rec.account_id, email=rec.account.email, expires_at=rec.expires_at)

    def sign_out(self, token: str | None) -> None:
        if not token:
            return
        rec = self._session_record(token)
        if rec is not None and rec.revoked_at is None:
            rec.revoked_at = utcnow()
            self._flush("sign_out")


def data_client() -> DataClient:
    from app.community.db import db_session

    return DataClient(db_session())


def auth_client() -> AuthClient:
    from flask import current_app

    from app.community.db import db_session

    cfg = current_app.config
    return AuthClient(
        db_session(),
        secret_key=cfg["SECRET_KEY"],
        session_ttl=timedelta(hours=int(cfg.get("SESSION_TTL_HOURS", 168))),
        require_email_confirmation=bool(cfg.get("REQUIRE_EMAIL_CONFIRMATION", True)),
    )
