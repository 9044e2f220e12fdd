"""
Session Store

CRUD over the ``sessions`` table, always scoped to one user. Scoring
happens here on insert so every write path produces the same points.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from core.database import dialect_insert
from models import TrainingSession
from services.scoring import score_new_session

logger = logging.getLogger(__name__)

SESSION_TYPES = [
    "Boxing",
    "Muay Thai",
    "K1",
    "BJJ",
    "Wrestling",
    "MMA",
    "Takedowns",
    "Judo",
    "Strength & Conditioning",
    "Weight Training",
    "Cardio",
]

CLASS_LEVELS = ["Basic", "Intermediate", "Advanced", "All Level"]

# Conflict key shared by the unique constraint and the batch upsert
SESSION_CONFLICT_KEY = ["user_id", "date", "type"]


class DuplicateSessionError(Exception):
    """A session of the same type already exists on that day."""


@dataclass(frozen=True)
class NewSession:
    date: date
    type: str
    level: str
    group_id: str = "global"


def list_sessions(db: Session, user_id: UUID) -> List[TrainingSession]:
    """All of a user's sessions, newest day first."""
    return (
        db.query(TrainingSession)
        .filter(TrainingSession.user_id == user_id)
        .order_by(TrainingSession.date.desc(), TrainingSession.created_at.desc())
        .all()
    )


def get_session(db: Session, user_id: UUID, session_id: UUID) -> Optional[TrainingSession]:
    return (
        db.query(TrainingSession)
        .filter(TrainingSession.id == session_id, TrainingSession.user_id == user_id)
        .first()
    )


def add_session(
    db: Session,
    user_id: UUID,
    new_session: NewSession,
    existing: Optional[Sequence[TrainingSession]] = None,
) -> Tuple[TrainingSession, float]:
    """
    Score and insert a session.

    Args:
        existing: the user's current sessions, when the caller already has them

    Returns:
        (inserted row, diversity bonus that went into its points)

    Raises:
        DuplicateSessionError: same (date, type) already logged
    """
    if existing is None:
        existing = list_sessions(db, user_id)

    if any(s.date == new_session.date and s.type == new_session.type for s in existing):
        raise DuplicateSessionError(
            f"{new_session.type} is already logged on {new_session.date.isoformat()}"
        )

    bonus, points = score_new_session(existing, new_session)

    row = TrainingSession(
        user_id=user_id,
        group_id=new_session.group_id,
        date=new_session.date,
        type=new_session.type,
        level=new_session.level,
        points=points,
    )
    db.add(row)
    db.flush()

    logger.info(
        f"Session logged for {user_id}: {new_session.type} ({new_session.level}) "
        f"on {new_session.date.isoformat()} bonus={bonus} points={points}"
    )
    return row, bonus


def delete_session(db: Session, user_id: UUID, session_id: UUID) -> Optional[TrainingSession]:
    """Hard-delete one of the user's sessions. Returns the deleted row or None."""
    row = get_session(db, user_id, session_id)
    if row is None:
        return None
    db.delete(row)
    db.flush()
    logger.info(f"Session {session_id} deleted for {user_id}")
    return row


def upsert_sessions(db: Session, user_id: UUID, rows: List[Dict]) -> int:
    """
    Insert-or-update a batch on (user_id, date, type).

    Re-running with the same rows updates in place instead of duplicating.
    Rows sharing a conflict key within the batch collapse to the last one,
    since a single statement may not touch the same row twice.

    Returns:
        Number of distinct rows written
    """
    deduped: Dict[Tuple, Dict] = {}
    for row in rows:
        deduped[(row["date"], row["type"])] = row

    if not deduped:
        return 0

    now = datetime.now(timezone.utc)
    values = [
        {
            "id": uuid4(),
            "user_id": user_id,
            "group_id": row["group_id"],
            "date": row["date"],
            "type": row["type"],
            "level": row["level"],
            "points": row["points"],
            "created_at": now,
            "updated_at": now,
        }
        for row in deduped.values()
    ]

    stmt = dialect_insert(db, TrainingSession).values(values)
    stmt = stmt.on_conflict_do_update(
        index_elements=SESSION_CONFLICT_KEY,
        set_={
            "group_id": stmt.excluded.group_id,
            "level": stmt.excluded.level,
            "points": stmt.excluded.points,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    db.execute(stmt)
    db.flush()
    # Bulk statement bypasses the identity map
    db.expire_all()

    return len(values)
