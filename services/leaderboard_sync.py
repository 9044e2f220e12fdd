"""
Debounced Leaderboard Sync

Logging or deleting sessions in quick succession should produce one
leaderboard write, not one per change. Each (user, group) key owns at most
one pending timer; scheduling again cancels it and starts a fresh quiet
period. Only the last schedule inside the window runs.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple
from uuid import UUID

from core.config import settings
from core.database import get_db_sync
from core.logging import log_context
from models import GroupMember
from services.leaderboard import fetch_group_members, sync_member_score

logger = logging.getLogger(__name__)

SyncKey = Tuple[UUID, str]


def sync_leaderboard_row(user_id: UUID, group_id: str) -> Optional[List[GroupMember]]:
    """
    Timer callback: write the user's row, then reload the group ranking.

    Runs outside any request, so it owns its DB session. Failures are
    logged and dropped; the next sync recomputes everything anyway.

    Returns:
        The group's members ranked by score after the write, or None when
        nothing was written
    """
    db = get_db_sync()
    try:
        if not sync_member_score(db, user_id, group_id):
            db.rollback()
            return None
        db.commit()
        # The upsert went around the identity map
        db.expire_all()
        members = fetch_group_members(db, group_id)
        logger.info(
            f"Leaderboard for {group_id} refreshed: {len(members)} members",
            extra=log_context(user_id=user_id, group_id=group_id),
        )
        return members
    except Exception as e:
        db.rollback()
        logger.error(
            f"Leaderboard sync failed for {user_id} in {group_id}: {e}",
            exc_info=True,
            extra=log_context(user_id=user_id, group_id=group_id),
        )
        return None
    finally:
        db.close()


class DebouncedLeaderboardSync:
    """Cancellable delayed sync per (user, group)."""

    def __init__(
        self,
        run_sync: Callable[[UUID, str], None] = sync_leaderboard_row,
        delay_s: Optional[float] = None,
        timer_factory: Callable = threading.Timer,
    ):
        self.run_sync = run_sync
        self.delay_s = settings.LEADERBOARD_SYNC_DEBOUNCE_S if delay_s is None else delay_s
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._pending: Dict[SyncKey, Tuple[int, object]] = {}
        self._generation = 0

    def schedule(self, user_id: UUID, group_id: str) -> None:
        """(Re)start the quiet period for this key."""
        key = (user_id, group_id)
        with self._lock:
            self._cancel_locked(key)
            self._generation += 1
            generation = self._generation
            timer = self._timer_factory(self.delay_s, self._fire, args=(key, generation))
            timer.daemon = True
            self._pending[key] = (generation, timer)
            timer.start()

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def flush(self) -> int:
        """Run every pending sync now, in the calling thread."""
        with self._lock:
            keys = list(self._pending)
            for key in keys:
                self._cancel_locked(key)
        for user_id, group_id in keys:
            self.run_sync(user_id, group_id)
        return len(keys)

    def cancel_all(self) -> int:
        """Drop every pending sync (shutdown)."""
        with self._lock:
            keys = list(self._pending)
            for key in keys:
                self._cancel_locked(key)
        if keys:
            logger.info(f"Cancelled {len(keys)} pending leaderboard sync(s)")
        return len(keys)

    def _cancel_locked(self, key: SyncKey) -> None:
        entry = self._pending.pop(key, None)
        if entry is not None:
            entry[1].cancel()

    def _fire(self, key: SyncKey, generation: int) -> None:
        with self._lock:
            entry = self._pending.get(key)
            # A newer schedule replaced this timer after it had already started firing
            if entry is None or entry[0] != generation:
                return
            del self._pending[key]
        user_id, group_id = key
        self.run_sync(user_id, group_id)
