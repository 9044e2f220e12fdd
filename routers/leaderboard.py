"""
Leaderboard API Router
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from models import User
from schemas import LeaderboardEntry, LeaderboardResponse
from services.leaderboard import compute_standing, fetch_group_members, overlay_current_user
from services.profile import get_username

router = APIRouter(prefix="/v1/groups", tags=["leaderboard"])


@router.get("/{group_id}/leaderboard", response_model=LeaderboardResponse)
def get_leaderboard(
    group_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Ranked members of a group.

    Cached rows are read as stored; the caller's own row is replaced with
    values derived from their sessions right now.
    """
    score, badges = compute_standing(db, current_user.id)
    standings = overlay_current_user(
        fetch_group_members(db, group_id),
        current_user_id=current_user.id,
        score=score,
        badges=badges,
        username=get_username(db, current_user.id, group_id),
    )
    return LeaderboardResponse(
        group_id=group_id,
        members=[
            LeaderboardEntry(
                user_id=s.user_id,
                name=s.name,
                score=s.score,
                badges=s.badges,
                is_current_user=s.is_current_user,
                rank=s.rank,
                ordinal=s.ordinal,
            )
            for s in standings
        ],
    )
