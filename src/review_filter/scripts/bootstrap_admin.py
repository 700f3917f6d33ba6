"""Create or elevate the first administrator.

Only an existing admin can grant ADMIN through the API (the ``set_role``
action), and self-registration always lands on LOGIN_NOT_AUTH, so the
first admin has to come from here. This script writes through a trusted
session instead.

Usage: python -m review_filter.scripts.bootstrap_admin <user_id> [nickname]
"""

from __future__ import annotations

import argparse
import logging

from sqlalchemy.orm import Session

from review_filter.core.logging import configure_logging
from review_filter.db.session import SessionLocal, create_tables
from review_filter.db.time import utcnow
from review_filter.models import ModerationEvent, User
from review_filter.policy.roles import Role
from review_filter.services.user_service import SYSTEM_ACTOR, get_user

logger = logging.getLogger(__name__)


def bootstrap_admin(db: Session, user_id: str, nickname: str | None = None) -> User:
    """Make ``user_id`` an administrator, creating the profile if needed."""
    user = get_user(db, user_id)
    if user is None:
        user = User(id=user_id, nickname=nickname, role=Role.ADMIN)
        db.add(user)
        previous = None
    else:
        previous = user.role.value
        user.role = Role.ADMIN
        user.previous_role = None
    user.managed_by = SYSTEM_ACTOR
    user.managed_at = utcnow()
    user.management_reason = "bootstrap"
    db.add(
        ModerationEvent(
            subject_kind="user",
            subject_id=user_id,
            action="set_role",
            actor_id=SYSTEM_ACTOR,
            previous_value=previous,
            new_value=Role.ADMIN.value,
            reason="bootstrap",
        )
    )
    db.commit()
    db.refresh(user)
    logger.info("User %s is now an administrator", user_id)
    return user


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("user_id")
    parser.add_argument("nickname", nargs="?")
    args = parser.parse_args()

    configure_logging()
    create_tables()
    db = SessionLocal()
    try:
        bootstrap_admin(db, args.user_id, args.nickname)
    finally:
        db.close()


if __name__ == "__main__":
    main()
