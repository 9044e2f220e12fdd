"""
Shared request dependencies that aren't about authentication.
"""
from fastapi import Depends, Request

from core.auth import get_current_user
from models import User
from services.analytics import AnalyticsContext, DEFAULT_PAGE
from services.leaderboard_sync import DebouncedLeaderboardSync

# Clients report which page the user is on so server-side events carry it
PAGE_HEADER = "X-Client-Page"


def get_leaderboard_sync(request: Request) -> DebouncedLeaderboardSync:
    """The app-wide debouncer, created at startup (see main.py)."""
    return request.app.state.leaderboard_sync


def get_analytics_context(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> AnalyticsContext:
    page = request.headers.get(PAGE_HEADER) or DEFAULT_PAGE
    return AnalyticsContext(user_id=current_user.id, page=page)
