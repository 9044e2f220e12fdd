"""
Legacy Session Migration

Before sessions lived in the database, clients kept them in browser
storage under ``fightmate-sessions``. This module moves such a list into
the session store exactly once per device:

    not-needed / needed -> in-progress -> done (success | failure)

The ``fightmate-sessions-migrated`` flag is written only on success, so a
failed run is retried on the next load. Dismissing writes the flag without
migrating ("don't ask again"). Re-running against the same data is a no-op
thanks to the (user, date, type) upsert.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import settings
from services.dates import parse_session_date
from services.session_store import upsert_sessions

logger = logging.getLogger(__name__)

SESSIONS_KEY = "fightmate-sessions"
MIGRATION_FLAG = "fightmate-sessions-migrated"

UNKNOWN_LEVEL = "Unknown"


class MigrationState(str, Enum):
    NOT_NEEDED = "not-needed"
    NEEDED = "needed"
    IN_PROGRESS = "in-progress"
    DONE = "done"


@dataclass
class MigrationResult:
    success: bool
    migrated_count: int = 0
    errors: List[str] = field(default_factory=list)


class LocalStore(Protocol):
    """The slice of browser storage the migration touches."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...


class JsonFileStore:
    """
    Browser storage exported to a JSON object of string values.

    Writes go straight back to the file so the migrated flag survives
    between runs of the CLI.
    """

    def __init__(self, file_path: Path):
        self.file_path = Path(file_path)

    def _load(self) -> Dict[str, Any]:
        if not self.file_path.exists():
            return {}
        try:
            with open(self.file_path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Unreadable storage export {self.file_path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get_item(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        if value is None:
            return None
        # Exports sometimes inline the JSON instead of keeping it as a string
        return value if isinstance(value, str) else json.dumps(value)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        with open(self.file_path, "w") as f:
            json.dump(data, f, indent=2)


def legacy_record_to_row(record: Any, default_group_id: str) -> Dict[str, Any]:
    """
    Map one stored record onto the sessions schema.

    Missing groupId/level/points fall back to the default group, "Unknown"
    and 0. Date and type are required.
    """
    if not isinstance(record, dict):
        raise ValueError(f"not an object: {record!r}")
    if not record.get("type"):
        raise ValueError("missing type")
    if not record.get("date"):
        raise ValueError("missing date")

    points = record.get("points") or 0
    try:
        points = float(points)
    except (TypeError, ValueError):
        raise ValueError(f"invalid points: {record.get('points')!r}")
    # NaN compares false against the ">= 0" check constraint
    if not math.isfinite(points) or points < 0:
        raise ValueError(f"invalid points: {record.get('points')!r}")

    return {
        "group_id": record.get("groupId") or default_group_id,
        "date": parse_session_date(record["date"]),
        "type": str(record["type"]),
        "level": record.get("level") or UNKNOWN_LEVEL,
        "points": points,
    }


def transform_legacy_records(
    records: List[Any],
    default_group_id: Optional[str] = None,
) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Returns (rows, errors); any error means the batch must not be written."""
    default_group_id = default_group_id or settings.DEFAULT_GROUP_ID
    rows, errors = [], []
    for index, record in enumerate(records):
        try:
            rows.append(legacy_record_to_row(record, default_group_id))
        except ValueError as e:
            errors.append(f"record {index}: {e}")
    return rows, errors


def import_legacy_sessions(db: Session, user_id: UUID, records: List[Any]) -> MigrationResult:
    """
    Validate and upsert a whole batch, or nothing.

    Database errors roll the caller's session back and come back as a
    failed result.
    """
    if not isinstance(records, list):
        return MigrationResult(success=False, errors=["stored sessions are not a list"])

    rows, errors = transform_legacy_records(records)
    if errors:
        logger.warning(f"Legacy import for {user_id} rejected: {len(errors)} bad record(s)")
        return MigrationResult(success=False, errors=errors)

    try:
        count = upsert_sessions(db, user_id, rows)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Legacy import for {user_id} failed: {e}")
        return MigrationResult(success=False, errors=[str(e)])

    logger.info(f"Legacy import for {user_id}: {count} session(s) upserted")
    return MigrationResult(success=True, migrated_count=count)


class LegacySessionMigration:
    """
    One-time migration of a local store's sessions.

    Args:
        store: where the legacy list and the migrated flag live
        importer: writes a batch of raw records, e.g.
            ``functools.partial(import_legacy_sessions, db, user_id)``
    """

    def __init__(self, store: LocalStore, importer: Callable[[List[Any]], MigrationResult]):
        self.store = store
        self.importer = importer
        self.result: Optional[MigrationResult] = None
        self.state = MigrationState.NEEDED if self._needs_migration() else MigrationState.NOT_NEEDED

    def _needs_migration(self) -> bool:
        already_migrated = self.store.get_item(MIGRATION_FLAG) == "true"
        return not already_migrated and bool(self.store.get_item(SESSIONS_KEY))

    @property
    def migration_needed(self) -> bool:
        return self.state == MigrationState.NEEDED

    def migrate(self) -> Optional[MigrationResult]:
        """Run the migration. Calls made while one is running are ignored."""
        if self.state == MigrationState.IN_PROGRESS:
            return None

        self.state = MigrationState.IN_PROGRESS
        try:
            raw = self.store.get_item(SESSIONS_KEY)
            if not raw:
                result = MigrationResult(success=True)
            else:
                result = self.importer(json.loads(raw))
        except Exception as e:
            logger.error(f"Legacy migration failed: {e}")
            result = MigrationResult(success=False, errors=[str(e)])

        if result.success:
            self.store.set_item(MIGRATION_FLAG, "true")

        self.result = result
        self.state = MigrationState.DONE
        return result

    def dismiss(self) -> None:
        """Stop asking, even though nothing was migrated."""
        self.store.set_item(MIGRATION_FLAG, "true")
        self.state = MigrationState.NOT_NEEDED
