import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.community.backend import normalize_email
from app.community.models import Account, Profile, utcnow
from scripts._db_utils import resolve_db_url, script_session


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the first admin account and profile in an idempotent way.
    Does NOT overwrite an existing account's password.
    """
    admin_email = normalize_email(os.environ.get("ADMIN_EMAIL") or "admin@example.com")
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"
    admin_name = (os.environ.get("ADMIN_NAME") or "Administrator").strip()

    db_url = resolve_db_url(database_url)

    # Direct engine/session so this can run in release without importing app.wsgi.
    with script_session(db_url) as s:
        now = utcnow()
        account = s.query(Account).filter(Account.email == admin_email).one_or_none()
        if not account:
            account = Account(
                email=admin_email,
                password_hash=generate_password_hash(admin_password),
                email_confirmed_at=now,
                created_at=now,
            )
            s.add(account)
            s.flush()
        elif account.email_confirmed_at is None:
            account.email_confirmed_at = now

        profile = s.get(Profile, account.id)
        if not profile:
            profile = Profile(id=account.id, email=admin_email, full_name=admin_name, created_at=now, updated_at=now)
            s.add(profile)
        if not profile.is_admin:
            profile.is_admin = True
            profile.updated_at = now

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
