#!/usr/bin/env python3
"""Grant or revoke the admin flag on a member's profile (idempotent).

Usage:
  python scripts/set_admin.py --email someone@example.com
  python scripts/set_admin.py --email someone@example.com --revoke
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.community.backend import normalize_email
from app.community.models import Profile, utcnow
from scripts._db_utils import resolve_db_url, script_session


def set_admin(email: str, *, is_admin: bool = True, database_url: str | None = None) -> bool:
    """Returns False when no profile has that email."""
    email = normalize_email(email)
    with script_session(resolve_db_url(database_url)) as s:
        profile = s.query(Profile).filter(Profile.email == email).one_or_none()
        if not profile:
            return False
        if profile.is_admin != is_admin:
            profile.is_admin = is_admin
            profile.updated_at = utcnow()
    return True


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="Member email")
    parser.add_argument("--revoke", action="store_true", help="Remove admin access instead of granting it")
    args = parser.parse_args()

    if not set_admin(args.email, is_admin=not args.revoke):
        print(f"Profile not found: {args.email}")
        sys.exit(1)
    print(f"Admin access {'revoked from' if args.revoke else 'granted to'} {args.email}")


if __name__ == "__main__":
    main()
