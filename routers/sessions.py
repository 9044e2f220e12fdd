"""
Sessions API Router

Log, list and delete training sessions, plus the one-shot import of
sessions kept in browser storage by older clients.

Side effects of a write (analytics, shoutbox announcements) run as
background tasks and can fail without affecting the response. The
leaderboard row is refreshed by the debounced sync.
"""
import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.config import settings
from core.database import get_db
from core.dependencies import get_analytics_context, get_leaderboard_sync
from core.exceptions import ConflictError, NotFoundError, ValidationError
from models import User
from schemas import (
    AvatarResponse,
    LegacyImportRequest,
    MigrationResultResponse,
    SessionCreate,
    SessionCreatedResponse,
    SessionResponse,
)
from services import analytics
from services.analytics import AnalyticsContext
from services.dates import InvalidSessionDate, parse_session_date
from services.leaderboard_sync import DebouncedLeaderboardSync
from services.legacy_migration import import_legacy_sessions
from services.leveling import AVATAR_LEVELS, Avatar, derive_avatar, next_level, progress_caption
from services.profile import get_username
from services.session_store import (
    CLASS_LEVELS,
    SESSION_TYPES,
    DuplicateSessionError,
    NewSession,
    add_session,
    delete_session,
    list_sessions,
)
from services.shoutbox import level_up_message, post_system_message, session_logged_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/sessions", tags=["sessions"])

ANNOUNCEMENT_FALLBACK_NAME = "Anonymous"


def avatar_response(avatar: Avatar) -> AvatarResponse:
    return AvatarResponse(
        level=avatar.level.value,
        progress=avatar.progress,
        cumulative_points=avatar.cumulative_points,
        next_level=next_level(avatar.level),
        progress_caption=progress_caption(avatar.progress),
    )


@router.get("", response_model=List[SessionResponse])
def get_sessions(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The caller's sessions, newest day first."""
    return list_sessions(db, current_user.id)


@router.post("", response_model=SessionCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_session(
    payload: SessionCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    context: AnalyticsContext = Depends(get_analytics_context),
    sync: DebouncedLeaderboardSync = Depends(get_leaderboard_sync),
    db: Session = Depends(get_db),
):
    """
    Log a session.

    Points are computed here from the class level and the week's type
    diversity; the client-supplied payload carries no points.
    """
    try:
        session_date = parse_session_date(payload.date)
    except InvalidSessionDate as e:
        raise ValidationError(str(e), field="date")

    if payload.type not in SESSION_TYPES:
        raise ValidationError(f"Unknown session type: {payload.type}", field="type")
    if payload.level not in CLASS_LEVELS:
        raise ValidationError(f"Unknown class level: {payload.level}", field="level")

    group_id = payload.group_id or settings.DEFAULT_GROUP_ID
    existing = list_sessions(db, current_user.id)
    level_before = derive_avatar(existing).level

    try:
        row, bonus = add_session(
            db,
            current_user.id,
            NewSession(date=session_date, type=payload.type, level=payload.level, group_id=group_id),
            existing=existing,
        )
    except DuplicateSessionError as e:
        raise ConflictError(str(e))

    avatar = derive_avatar(existing + [row])
    leveled_up = AVATAR_LEVELS.index(avatar.level) > AVATAR_LEVELS.index(level_before)

    display_name = get_username(db, current_user.id, settings.DEFAULT_GROUP_ID) or ANNOUNCEMENT_FALLBACK_NAME
    background_tasks.add_task(analytics.session_logged, context, row.type, row.level, row.points)
    background_tasks.add_task(
        post_system_message, current_user.id, session_logged_message(display_name, row.type, row.level)
    )
    if leveled_up:
        logger.info(f"User {current_user.id} leveled up from {level_before.value} to {avatar.level.value}")
        background_tasks.add_task(
            analytics.avatar_level_up, context, avatar.level.value, avatar.cumulative_points
        )
        background_tasks.add_task(
            post_system_message, current_user.id, level_up_message(display_name, avatar.level.value)
        )

    # The timer thread reads through its own connection
    db.commit()
    sync.schedule(current_user.id, settings.DEFAULT_GROUP_ID)

    return SessionCreatedResponse(
        session=SessionResponse.model_validate(row),
        diversity_bonus=bonus,
        avatar=avatar_response(avatar),
        leveled_up=leveled_up,
    )


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_session(
    session_id: UUID,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    context: AnalyticsContext = Depends(get_analytics_context),
    sync: DebouncedLeaderboardSync = Depends(get_leaderboard_sync),
    db: Session = Depends(get_db),
):
    """Permanently delete one of the caller's sessions."""
    deleted = delete_session(db, current_user.id, session_id)
    if deleted is None:
        raise NotFoundError("Session", str(session_id))

    background_tasks.add_task(analytics.session_deleted, context, deleted.type)
    db.commit()
    sync.schedule(current_user.id, settings.DEFAULT_GROUP_ID)


@router.post("/import", response_model=MigrationResultResponse)
def import_sessions(
    payload: LegacyImportRequest,
    current_user: User = Depends(get_current_user),
    sync: DebouncedLeaderboardSync = Depends(get_leaderboard_sync),
    db: Session = Depends(get_db),
):
    """
    Upsert sessions from an older client's local storage.

    The batch is all-or-nothing and keyed on (date, type), so clients may
    retry it freely. Clients set their "migrated" flag only when
    ``success`` is true.
    """
    result = import_legacy_sessions(db, current_user.id, payload.sessions)
    if result.success and result.migrated_count:
        db.commit()
        sync.schedule(current_user.id, settings.DEFAULT_GROUP_ID)
    return MigrationResultResponse(
        success=result.success,
        migrated_count=result.migrated_count,
        errors=result.errors,
    )
