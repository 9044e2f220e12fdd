from __future__ import annotations

import argparse
from pathlib import Path
from uuid import UUID


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Import sessions from an exported browser-storage JSON file (once per export)."
    )
    parser.add_argument("--user-id", required=True, help="Owner of the imported sessions (auth provider sub)")
    parser.add_argument("--storage", required=True, type=Path, help="JSON export of the browser's local storage")
    parser.add_argument("--dismiss", action="store_true", help="Mark the export as migrated without importing")
    args = parser.parse_args()

    try:
        user_id = UUID(args.user_id)
    except ValueError:
        raise SystemExit(f"--user-id is not a UUID: {args.user_id}")

    # NOTE: Run from the project root so `core`, `models` and `services` import.
    from core.database import get_db_sync
    from core.logging import setup_logging
    from models import User
    from services.legacy_migration import JsonFileStore, LegacySessionMigration, import_legacy_sessions

    setup_logging()
    store = JsonFileStore(args.storage)

    db = get_db_sync()

    def import_and_commit(records):
        # Commit before the migrated flag gets written
        result = import_legacy_sessions(db, user_id, records)
        if result.success:
            db.commit()
        return result

    try:
        migration = LegacySessionMigration(store, import_and_commit)

        print("Legacy session migration")
        print(f"- storage: {args.storage}")
        print(f"- user: {user_id}")
        print(f"- state: {migration.state.value}")

        if args.dismiss:
            migration.dismiss()
            print("Dismissed: export marked as migrated, nothing imported.")
            return 0

        if not migration.migration_needed:
            print("Nothing to migrate.")
            return 0

        if db.query(User).filter(User.id == user_id).first() is None:
            db.add(User(id=user_id, is_anonymous=False))
            db.flush()

        result = migration.migrate()
        if result is None or not result.success:
            db.rollback()
            for error in (result.errors if result else []):
                print(f"  ! {error}")
            print("Migration failed; the export was left unflagged so it can be retried.")
            return 1

        print(f"Migrated {result.migrated_count} session(s).")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
