"""Issue a bearer token for a user id, for local development.

Usage: python -m review_filter.scripts.issue_token <user_id> [--minutes N]

The role claim is copied from the stored profile when one exists.
"""

from __future__ import annotations

import argparse
from datetime import timedelta

from review_filter.core.security import create_access_token
from review_filter.db.session import SessionLocal
from review_filter.services.user_service import get_user


def issue_token(user_id: str, minutes: int | None = None) -> str:
    db = SessionLocal()
    try:
        user = get_user(db, user_id)
        role = user.role if user is not None else None
    finally:
        db.close()
    expires = timedelta(minutes=minutes) if minutes else None
    return create_access_token(user_id, role=role, expires_delta=expires)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("user_id")
    parser.add_argument("--minutes", type=int, default=None)
    args = parser.parse_args()
    print(issue_token(args.user_id, args.minutes))


if __name__ == "__main__":
    main()
