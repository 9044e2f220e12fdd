"""
Onboarding & user settings.

A user becomes visible on a leaderboard only once they pick a username;
choosing one creates their ``group_members`` row with their current
standing and marks onboarding as seen.
"""

import logging
import re
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from models import GroupMember, UserSettings
from services.leaderboard import compute_standing, get_member, upsert_member

logger = logging.getLogger(__name__)

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]{3,20}$")


class InvalidUsername(ValueError):
    pass


class UsernameTaken(Exception):
    pass


def validate_username(raw: Optional[str]) -> str:
    """Trim and check a username: 3-20 letters, digits, '_' or '-'."""
    username = (raw or "").strip()
    if not username:
        raise InvalidUsername("Please enter a username")
    if not USERNAME_RE.match(username):
        raise InvalidUsername(
            "Username must be 3-20 characters: letters, numbers, underscores or hyphens"
        )
    return username


def get_username(db: Session, user_id: UUID, group_id: str) -> Optional[str]:
    member = get_member(db, user_id, group_id)
    return member.username if member else None


def is_username_taken(db: Session, username: str, group_id: str, exclude_user_id: UUID) -> bool:
    return (
        db.query(GroupMember.user_id)
        .filter(
            GroupMember.group_id == group_id,
            GroupMember.username == username,
            GroupMember.user_id != exclude_user_id,
        )
        .first()
        is not None
    )


def set_username(db: Session, user_id: UUID, raw_username: str, group_id: str) -> str:
    """
    Claim a username and publish the user's current standing under it.

    Raises:
        InvalidUsername: format check failed
        UsernameTaken: another member of the group already uses it
    """
    username = validate_username(raw_username)
    if is_username_taken(db, username, group_id, exclude_user_id=user_id):
        raise UsernameTaken(f"Username '{username}' is already taken")

    score, badges = compute_standing(db, user_id)
    upsert_member(db, user_id, group_id, username, score, badges)
    mark_onboarding_seen(db, user_id)
    logger.info(f"User {user_id} set username in {group_id}")
    return username


def get_or_create_settings(db: Session, user_id: UUID) -> UserSettings:
    row = db.query(UserSettings).filter(UserSettings.user_id == user_id).first()
    if row is None:
        row = UserSettings(user_id=user_id, onboarding_seen=False)
        db.add(row)
        db.flush()
    return row


def mark_onboarding_seen(db: Session, user_id: UUID) -> UserSettings:
    row = get_or_create_settings(db, user_id)
    if not row.onboarding_seen:
        row.onboarding_seen = True
        db.flush()
    return row
