"""
Product analytics.

Tracking is fire-and-forget: callers hand a context value and an event to
``track`` (normally via FastAPI background tasks) and never learn whether
it was stored. Each write uses its own DB session so a failing insert can't
touch the request's transaction.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.database import get_db_sync
from models import AnalyticsEvent

logger = logging.getLogger(__name__)

DEFAULT_PAGE = "home"


@dataclass(frozen=True)
class AnalyticsContext:
    """Who is acting and on which page."""
    user_id: Optional[UUID]
    page: str = DEFAULT_PAGE


def track(
    context: AnalyticsContext,
    event_name: str,
    properties: Optional[Dict[str, Any]] = None,
    session_factory: Callable[[], Session] = get_db_sync,
) -> bool:
    """Store one event. Returns False (after logging) on any failure."""
    db = None
    try:
        db = session_factory()
        db.add(AnalyticsEvent(
            user_id=context.user_id,
            event_name=event_name,
            event_properties=properties or {},
            page=context.page,
        ))
        db.commit()
        return True
    except Exception as e:
        if db is not None:
            db.rollback()
        logger.warning(f"Analytics tracking failed for {event_name}: {e}")
        return False
    finally:
        if db is not None:
            db.close()


def session_logged(context: AnalyticsContext, session_type: str, class_level: str, points: float) -> bool:
    return track(context, "session_logged", {
        "session_type": session_type,
        "class_level": class_level,
        "points": points,
    })


def session_deleted(context: AnalyticsContext, session_type: str) -> bool:
    return track(context, "session_deleted", {"session_type": session_type})


def avatar_level_up(context: AnalyticsContext, new_level: str, total_points: float) -> bool:
    return track(context, "avatar_level_up", {
        "new_level": new_level,
        "total_points": total_points,
    })


def chat_message_sent(context: AnalyticsContext, message_count: int = 1) -> bool:
    return track(context, "chat_message_sent", {"count": message_count})


def username_set(context: AnalyticsContext, username: str) -> bool:
    # Only the length; the username itself stays out of analytics
    return track(context, "username_set", {"username_length": len(username)})
