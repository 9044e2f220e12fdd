"""
Group Leaderboard

``group_members`` is a cache: score and badges are always recomputed from
the member's sessions and upserted whole. Reads overlay the caller's own
row with freshly derived values, so the caller never sees their own
standing lag behind the debounced write.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from core.database import dialect_insert
from core.logging import log_context
from models import GroupMember
from services.badges import calculate_badges_from_sessions
from services.leveling import derive_avatar
from services.session_store import list_sessions

logger = logging.getLogger(__name__)

CURRENT_USER_FALLBACK_NAME = "You"
ANONYMOUS_MEMBER_NAME = "Anonymous Fighter"


@dataclass
class MemberStanding:
    user_id: UUID
    name: str
    score: float
    badges: List[str] = field(default_factory=list)
    is_current_user: bool = False
    rank: int = 0
    ordinal: str = ""


def compute_standing(db: Session, user_id: UUID) -> Tuple[float, List[str]]:
    """(score, badges) derived from scratch from all of the user's sessions."""
    sessions = list_sessions(db, user_id)
    return derive_avatar(sessions).cumulative_points, calculate_badges_from_sessions(sessions)


def get_member(db: Session, user_id: UUID, group_id: str) -> Optional[GroupMember]:
    return (
        db.query(GroupMember)
        .filter(GroupMember.user_id == user_id, GroupMember.group_id == group_id)
        .first()
    )


def upsert_member(
    db: Session,
    user_id: UUID,
    group_id: str,
    username: str,
    score: float,
    badges: Sequence[str],
) -> None:
    """Insert-or-update the (user, group) row. Last write wins."""
    stmt = dialect_insert(db, GroupMember).values(
        user_id=user_id,
        group_id=group_id,
        username=username,
        score=score,
        badges=list(badges),
        updated_at=datetime.now(timezone.utc),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "group_id"],
        set_={
            "username": stmt.excluded.username,
            "score": stmt.excluded.score,
            "badges": stmt.excluded.badges,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    db.execute(stmt)
    db.flush()
    db.expire_all()


def fetch_group_members(db: Session, group_id: str) -> List[GroupMember]:
    """All cached rows for a group, highest score first."""
    return (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group_id)
        .order_by(GroupMember.score.desc())
        .all()
    )


def sync_member_score(db: Session, user_id: UUID, group_id: str) -> bool:
    """
    Recompute and store the user's leaderboard row.

    Skipped (returns False) until the user has picked a username, so no
    anonymous rows are ever created from here.
    """
    member = get_member(db, user_id, group_id)
    username = member.username if member else None
    if not username:
        logger.debug(f"Skipping leaderboard sync for {user_id}: no username yet")
        return False

    score, badges = compute_standing(db, user_id)
    upsert_member(db, user_id, group_id, username, score, badges)
    logger.info(
        f"Leaderboard row synced for {user_id} in {group_id}: score={score} badges={badges}",
        extra=log_context(user_id=user_id, group_id=group_id),
    )
    return True


def ordinal_rank(rank: int) -> str:
    """1 -> '1st', 2 -> '2nd', 11 -> '11th', 23 -> '23rd'."""
    if 11 <= rank % 100 <= 13:
        return f"{rank}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(rank % 10, "th")
    return f"{rank}{suffix}"


def overlay_current_user(
    members: Sequence[GroupMember],
    current_user_id: UUID,
    score: float,
    badges: Sequence[str],
    username: Optional[str],
) -> List[MemberStanding]:
    """
    Merge cached rows with the caller's freshly derived standing.

    The caller's row always uses the live values (and is added if the cache
    has none yet). Other members without a username are hidden. The cached
    rows themselves are never modified.
    """
    current_name = username or CURRENT_USER_FALLBACK_NAME
    standings: List[MemberStanding] = []
    seen_current = False

    for member in members:
        if member.user_id == current_user_id:
            seen_current = True
            standings.append(MemberStanding(
                user_id=member.user_id,
                name=current_name,
                score=score,
                badges=list(badges),
                is_current_user=True,
            ))
        else:
            standings.append(MemberStanding(
                user_id=member.user_id,
                name=member.username or ANONYMOUS_MEMBER_NAME,
                score=member.score or 0,
                badges=list(member.badges or []),
            ))

    if not seen_current:
        standings.append(MemberStanding(
            user_id=current_user_id,
            name=current_name,
            score=score,
            badges=list(badges),
            is_current_user=True,
        ))

    visible = [
        s for s in standings
        if s.is_current_user or (s.name and s.name != ANONYMOUS_MEMBER_NAME)
    ]
    # sorted() is stable: equal scores keep cache order
    ranked = sorted(visible, key=lambda s: s.score, reverse=True)
    return [
        replace(s, rank=index + 1, ordinal=ordinal_rank(index + 1))
        for index, s in enumerate(ranked)
    ]
