"""
Shoutbox API Router

Group chat and activity feed. Clients poll ``GET /v1/shoutbox``.
"""
import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.config import settings
from core.database import get_db
from core.dependencies import get_analytics_context
from core.exceptions import NotFoundError, RateLimitedError, ValidationError
from models import User
from schemas import ShoutboxMessageResponse, ShoutboxPost
from services import analytics
from services.analytics import AnalyticsContext
from services.profile import get_username
from services.shoutbox import (
    InvalidMessage,
    claim_post_slot,
    delete_message,
    fetch_feed,
    post_user_message,
    validate_message_content,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/shoutbox", tags=["shoutbox"])


@router.get("", response_model=List[ShoutboxMessageResponse])
def get_feed(
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    username = get_username(db, current_user.id, settings.DEFAULT_GROUP_ID)
    return fetch_feed(db, current_user.id, username, limit=limit)


@router.post("", response_model=ShoutboxMessageResponse, status_code=status.HTTP_201_CREATED)
def post_message(
    payload: ShoutboxPost,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    context: AnalyticsContext = Depends(get_analytics_context),
    db: Session = Depends(get_db),
):
    # Validate before claiming the slot so a rejected message doesn't cost one
    try:
        content = validate_message_content(payload.content)
    except InvalidMessage as e:
        raise ValidationError(str(e), field="content")

    if not claim_post_slot(current_user.id):
        raise RateLimitedError(
            "Slow down! You can post once every "
            f"{settings.SHOUTBOX_POST_INTERVAL_S} seconds",
            retry_after_s=settings.SHOUTBOX_POST_INTERVAL_S,
        )

    message = post_user_message(db, current_user.id, content)
    background_tasks.add_task(analytics.chat_message_sent, context)

    username = get_username(db, current_user.id, settings.DEFAULT_GROUP_ID)
    return ShoutboxMessageResponse(
        id=message.id,
        user_id=message.user_id,
        type=message.type,
        content=message.content,
        created_at=message.created_at,
        display_name=username or "You",
    )


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_message(
    message_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not delete_message(db, current_user.id, message_id):
        raise NotFoundError("Message", str(message_id))
