"""
Shoutbox: the group chat / activity feed.

User messages are validated and throttled per user. System messages
(session logged, level up) are best-effort announcements written from
background tasks; losing one is acceptable.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.cache import cache_key, get_redis_client
from core.config import settings
from core.database import get_db_sync
from models import GroupMember, ShoutboxMessage

logger = logging.getLogger(__name__)

MESSAGE_TYPE_SYSTEM = "system"
MESSAGE_TYPE_USER = "user"

OWN_MESSAGE_FALLBACK_NAME = "You"
UNKNOWN_AUTHOR_NAME = "Anonymous"


class InvalidMessage(ValueError):
    pass


@dataclass
class FeedMessage:
    id: UUID
    user_id: UUID
    type: str
    content: str
    created_at: datetime
    display_name: str


def validate_message_content(content: Optional[str], max_length: Optional[int] = None) -> str:
    max_length = max_length or settings.SHOUTBOX_MAX_LENGTH
    trimmed = (content or "").strip()
    if not trimmed:
        raise InvalidMessage("Message cannot be empty")
    if len(trimmed) > max_length:
        raise InvalidMessage(f"Message must be {max_length} characters or less")
    return trimmed


def claim_post_slot(user_id: UUID, interval_s: Optional[int] = None) -> bool:
    """
    Take the user's posting slot for the next ``interval_s`` seconds.

    Returns False if the slot is already taken. Without Redis every post is
    allowed (fail open).
    """
    interval_s = interval_s or settings.SHOUTBOX_POST_INTERVAL_S
    client = get_redis_client()
    if client is None:
        return True
    try:
        return bool(client.set(cache_key("shoutbox", "post", user_id), 1, nx=True, ex=interval_s))
    except Exception as e:
        logger.warning(f"Shoutbox throttle check failed, allowing post: {e}")
        return True


def post_user_message(db: Session, user_id: UUID, content: str) -> ShoutboxMessage:
    message = ShoutboxMessage(
        user_id=user_id,
        type=MESSAGE_TYPE_USER,
        content=validate_message_content(content),
    )
    db.add(message)
    db.flush()
    return message


def post_system_message(
    user_id: UUID,
    content: str,
    session_factory: Callable[[], Session] = get_db_sync,
) -> bool:
    """Best-effort announcement in its own transaction. Never raises."""
    db = None
    try:
        db = session_factory()
        db.add(ShoutboxMessage(user_id=user_id, type=MESSAGE_TYPE_SYSTEM, content=content))
        db.commit()
        return True
    except Exception as e:
        if db is not None:
            db.rollback()
        logger.error(f"Error inserting system message: {e}")
        return False
    finally:
        if db is not None:
            db.close()


def session_logged_message(display_name: str, session_type: str, class_level: str) -> str:
    return f"{display_name} logged {session_type} ({class_level}) 🥋"


def level_up_message(display_name: str, level: str) -> str:
    return f"{display_name} leveled up to {level} 🎉"


def fetch_feed(
    db: Session,
    viewer_id: UUID,
    viewer_username: Optional[str],
    limit: Optional[int] = None,
) -> List[FeedMessage]:
    """Newest messages first, each with its author's display name."""
    limit = limit or settings.SHOUTBOX_FETCH_LIMIT
    messages = (
        db.query(ShoutboxMessage)
        .order_by(ShoutboxMessage.created_at.desc())
        .limit(limit)
        .all()
    )

    author_ids = {m.user_id for m in messages}
    usernames: Dict[UUID, str] = {}
    if author_ids:
        rows = (
            db.query(GroupMember.user_id, GroupMember.username)
            .filter(GroupMember.user_id.in_(author_ids))
            .all()
        )
        for author_id, username in rows:
            if username:
                usernames[author_id] = username

    feed = []
    for m in messages:
        name = usernames.get(m.user_id)
        if not name:
            if m.user_id == viewer_id:
                name = viewer_username or OWN_MESSAGE_FALLBACK_NAME
            else:
                name = UNKNOWN_AUTHOR_NAME
        feed.append(FeedMessage(
            id=m.id,
            user_id=m.user_id,
            type=m.type,
            content=m.content,
            created_at=m.created_at,
            display_name=name,
        ))
    return feed


def delete_message(db: Session, user_id: UUID, message_id: UUID) -> bool:
    """Owners may delete their own messages; nothing else can be removed."""
    message = (
        db.query(ShoutboxMessage)
        .filter(ShoutboxMessage.id == message_id, ShoutboxMessage.user_id == user_id)
        .first()
    )
    if message is None:
        return False
    db.delete(message)
    db.flush()
    return True
