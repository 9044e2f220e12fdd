"""
Me API Router

The caller's own profile: avatar, badges, username and settings.
"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.config import settings
from core.database import get_db
from core.dependencies import get_analytics_context
from core.exceptions import ConflictError, ValidationError
from models import User
from routers.sessions import avatar_response
from schemas import (
    AvatarResponse,
    MeResponse,
    UserSettingsResponse,
    UserSettingsUpdate,
    UsernameUpdate,
)
from services import analytics
from services.analytics import AnalyticsContext
from services.badges import calculate_badges_from_sessions
from services.leveling import derive_avatar
from services.profile import (
    InvalidUsername,
    UsernameTaken,
    get_or_create_settings,
    get_username,
    set_username,
)
from services.session_store import list_sessions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/me", tags=["me"])


@router.get("", response_model=MeResponse)
def get_me(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    sessions = list_sessions(db, current_user.id)
    user_settings = get_or_create_settings(db, current_user.id)
    return MeResponse(
        user_id=current_user.id,
        is_anonymous=bool(current_user.is_anonymous),
        username=get_username(db, current_user.id, settings.DEFAULT_GROUP_ID),
        onboarding_seen=bool(user_settings.onboarding_seen),
        avatar=avatar_response(derive_avatar(sessions)),
        badges=calculate_badges_from_sessions(sessions),
    )


@router.get("/avatar", response_model=AvatarResponse)
def get_avatar(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Level and quantized progress derived from all logged sessions."""
    return avatar_response(derive_avatar(list_sessions(db, current_user.id)))


@router.put("/username")
def update_username(
    payload: UsernameUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    context: AnalyticsContext = Depends(get_analytics_context),
    db: Session = Depends(get_db),
):
    """
    Pick a username, which makes the caller visible on the leaderboard.

    Returns 422 for a malformed name and 409 if someone else has it.
    """
    try:
        username = set_username(db, current_user.id, payload.username, settings.DEFAULT_GROUP_ID)
    except InvalidUsername as e:
        raise ValidationError(str(e), field="username")
    except UsernameTaken as e:
        raise ConflictError(str(e))

    background_tasks.add_task(analytics.username_set, context, username)
    return {"username": username}


@router.get("/settings", response_model=UserSettingsResponse)
def get_settings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_or_create_settings(db, current_user.id)


@router.put("/settings", response_model=UserSettingsResponse)
def update_settings(
    payload: UserSettingsUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user_settings = get_or_create_settings(db, current_user.id)
    user_settings.onboarding_seen = payload.onboarding_seen
    db.flush()
    logger.info(f"User {current_user.id} settings updated: onboarding_seen={payload.onboarding_seen}")
    return user_settings
