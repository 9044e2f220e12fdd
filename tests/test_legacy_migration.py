"""
Tests for the one-time migration of browser-stored sessions.
"""
import json
from datetime import date

import pytest

from models import TrainingSession
from services.legacy_migration import (
    MIGRATION_FLAG,
    SESSIONS_KEY,
    UNKNOWN_LEVEL,
    JsonFileStore,
    LegacySessionMigration,
    MigrationResult,
    MigrationState,
    import_legacy_sessions,
    legacy_record_to_row,
    transform_legacy_records,
)


class MemoryStore:
    def __init__(self, items=None):
        self.items = dict(items or {})

    def get_item(self, key):
        return self.items.get(key)

    def set_item(self, key, value):
        self.items[key] = value


LEGACY_SESSIONS = [
    {"date": "2025-01-06", "type": "Boxing", "level": "Advanced", "points": 2.0, "groupId": "global"},
    {"date": "2025-1-7", "type": "BJJ", "level": "Basic", "points": 1.5},
    {"date": "2025-01-08T23:30:00Z", "type": "Wrestling"},
]


def _store(sessions=LEGACY_SESSIONS, migrated=False):
    items = {SESSIONS_KEY: json.dumps(sessions)}
    if migrated:
        items[MIGRATION_FLAG] = "true"
    return MemoryStore(items)


class TestTransform:
    def test_defaults_for_missing_fields(self):
        row = legacy_record_to_row({"date": "2025-01-06", "type": "Judo"}, "global")
        assert row == {
            "group_id": "global",
            "date": date(2025, 1, 6),
            "type": "Judo",
            "level": UNKNOWN_LEVEL,
            "points": 0.0,
        }

    def test_dates_normalized(self):
        rows, errors = transform_legacy_records(LEGACY_SESSIONS)
        assert errors == []
        assert [r["date"] for r in rows] == [date(2025, 1, 6), date(2025, 1, 7), date(2025, 1, 8)]

    @pytest.mark.parametrize("record,fragment", [
        ({"type": "Boxing"}, "missing date"),
        ({"date": "2025-01-06"}, "missing type"),
        ({"date": "someday", "type": "Boxing"}, "Invalid date"),
        ({"date": "2025-01-06", "type": "Boxing", "points": "lots"}, "invalid points"),
        ({"date": "2025-01-06", "type": "Boxing", "points": "Infinity"}, "invalid points"),
        ({"date": "2025-01-06", "type": "Boxing", "points": "NaN"}, "invalid points"),
        ({"date": "2025-01-06", "type": "Boxing", "points": float("inf")}, "invalid points"),
        ({"date": "2025-01-06", "type": "Boxing", "points": -5}, "invalid points"),
        ("Boxing", "not an object"),
    ])
    def test_bad_records_reported_by_index(self, record, fragment):
        _, errors = transform_legacy_records([LEGACY_SESSIONS[0], record])
        assert len(errors) == 1
        assert errors[0].startswith("record 1:")
        assert fragment in errors[0]


class TestImportLegacySessions:
    def test_imports_batch(self, db_session, test_user):
        result = import_legacy_sessions(db_session, test_user.id, LEGACY_SESSIONS)
        db_session.commit()

        assert result.success
        assert result.migrated_count == 3
        assert db_session.query(TrainingSession).count() == 3

    def test_running_twice_creates_no_duplicates(self, db_session, test_user):
        import_legacy_sessions(db_session, test_user.id, LEGACY_SESSIONS)
        db_session.commit()
        second = import_legacy_sessions(db_session, test_user.id, LEGACY_SESSIONS)
        db_session.commit()

        assert second.success
        assert db_session.query(TrainingSession).count() == 3

    def test_one_bad_record_writes_nothing(self, db_session, test_user):
        result = import_legacy_sessions(db_session, test_user.id, LEGACY_SESSIONS + [{"type": "MMA"}])
        db_session.commit()

        assert not result.success
        assert result.migrated_count == 0
        assert db_session.query(TrainingSession).count() == 0

    def test_negative_points_rejected_by_database(self, db_session, test_user):
        records = [{"date": "2025-01-06", "type": "Boxing", "points": -1}]
        result = import_legacy_sessions(db_session, test_user.id, records)

        assert not result.success
        assert result.errors

    def test_non_list_payload(self, db_session, test_user):
        result = import_legacy_sessions(db_session, test_user.id, {"date": "2025-01-06"})
        assert not result.success


class TestLegacySessionMigration:
    def test_needed_when_sessions_and_no_flag(self):
        migration = LegacySessionMigration(_store(), importer=lambda records: MigrationResult(True))
        assert migration.state == MigrationState.NEEDED
        assert migration.migration_needed

    def test_not_needed_when_flagged(self):
        migration = LegacySessionMigration(_store(migrated=True), importer=lambda records: MigrationResult(True))
        assert migration.state == MigrationState.NOT_NEEDED

    def test_not_needed_without_sessions(self):
        migration = LegacySessionMigration(MemoryStore(), importer=lambda records: MigrationResult(True))
        assert not migration.migration_needed

    def test_success_sets_flag(self):
        store = _store()
        received = []

        def importer(records):
            received.append(records)
            return MigrationResult(success=True, migrated_count=len(records))

        result = LegacySessionMigration(store, importer).migrate()

        assert result.success
        assert result.migrated_count == 3
        assert received == [LEGACY_SESSIONS]
        assert store.items[MIGRATION_FLAG] == "true"

    def test_failure_leaves_flag_unset_for_retry(self):
        store = _store()
        migration = LegacySessionMigration(store, lambda records: MigrationResult(False, errors=["boom"]))

        result = migration.migrate()

        assert not result.success
        assert migration.state == MigrationState.DONE
        assert MIGRATION_FLAG not in store.items
        assert LegacySessionMigration(store, lambda records: MigrationResult(True)).migration_needed

    def test_importer_exception_is_a_failure(self):
        store = _store()

        def importer(records):
            raise ConnectionError("offline")

        result = LegacySessionMigration(store, importer).migrate()
        assert not result.success
        assert "offline" in result.errors[0]
        assert MIGRATION_FLAG not in store.items

    def test_corrupt_storage_is_a_failure(self):
        store = MemoryStore({SESSIONS_KEY: "{not json"})
        result = LegacySessionMigration(store, lambda records: MigrationResult(True)).migrate()
        assert not result.success

    def test_concurrent_migrate_is_ignored(self):
        store = _store()
        nested = []

        def importer(records):
            nested.append(migration.migrate())
            return MigrationResult(True, migrated_count=len(records))

        migration = LegacySessionMigration(store, importer)
        migration.migrate()

        assert nested == [None]

    def test_dismiss_sets_flag_without_importing(self):
        store = _store()
        calls = []
        migration = LegacySessionMigration(store, lambda records: calls.append(records))

        migration.dismiss()

        assert calls == []
        assert store.items[MIGRATION_FLAG] == "true"
        assert not migration.migration_needed

    def test_end_to_end_is_idempotent(self, db_session, test_user):
        def importer(records):
            result = import_legacy_sessions(db_session, test_user.id, records)
            db_session.commit()
            return result

        LegacySessionMigration(_store(), importer).migrate()
        LegacySessionMigration(_store(), importer).migrate()

        assert db_session.query(TrainingSession).count() == 3


class TestJsonFileStore:
    def test_reads_string_and_inline_values(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text(json.dumps({SESSIONS_KEY: LEGACY_SESSIONS}))

        store = JsonFileStore(path)
        assert json.loads(store.get_item(SESSIONS_KEY)) == LEGACY_SESSIONS
        assert store.get_item(MIGRATION_FLAG) is None

    def test_set_item_persists(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text(json.dumps({SESSIONS_KEY: json.dumps(LEGACY_SESSIONS)}))

        JsonFileStore(path).set_item(MIGRATION_FLAG, "true")

        assert JsonFileStore(path).get_item(MIGRATION_FLAG) == "true"
        assert json.loads(path.read_text())[MIGRATION_FLAG] == "true"

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonFileStore(tmp_path / "nope.json").get_item(SESSIONS_KEY) is None
