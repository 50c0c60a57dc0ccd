"""UpgradeService: bring an existing store to the current schema.

``apply`` backs the database up with SQLite's online backup API, runs (or,
for stores created before version tracking, stamps) the Alembic revisions,
and then checks that every table exists and ``PRAGMA integrity_check``
passes. Validation problems come back as warnings; the backup path is
always reported so the operator can restore by hand.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text

from subctl.infrastructure.database.engine import DB_DIRNAME
from subctl.infrastructure.database.migrations import build_config, db_url_for
from subctl.infrastructure.database.schema import metadata
from subctl.services._helpers import now_compact
from subctl.services.base import BaseService
from subctl.services.result import ServiceResult

logger = logging.getLogger(__name__)

BACKUP_MAX_COUNT = 10
_OP = "upgrade"


class UpgradeService(BaseService):
    """Schema migrations for the store this service was built with."""

    @property
    def _backup_dir(self) -> Path:
        return self._store.data_dir / DB_DIRNAME / "backups"

    def _alembic_config(self) -> Config:
        return build_config(db_url_for(self._store.data_dir))

    def _current_revision(self) -> str | None:
        with self._store.engine.connect() as conn:
            return MigrationContext.configure(conn).get_current_revision()

    def _table_names(self) -> set[str]:
        return set(inspect(self._store.engine).get_table_names())

    def check_pending(self) -> ServiceResult:
        """Report the current revision, the head, and the revisions in between."""
        try:
            script = ScriptDirectory.from_config(self._alembic_config())
            current = self._current_revision()
            head = script.get_current_head()
            pending = [
                {"revision": rev.revision, "description": rev.doc or ""}
                for rev in script.iterate_revisions(head, current or "base")
            ]
        except Exception as exc:
            return ServiceResult.failure(_OP, "CHECK_FAILED", f"Failed to check migrations: {exc}")

        return ServiceResult(
            ok=True,
            op=_OP,
            data={
                "pending_count": len(pending),
                "pending": pending,
                "current": current,
                "head": head,
                "backup_dir": str(self._backup_dir),
            },
        )

    def backup(self) -> Path:
        """Snapshot the live database into ``.subctl/backups/``; keep the newest copies."""
        self._backup_dir.mkdir(parents=True, exist_ok=True)
        target = self._backup_dir / f"subctl-{now_compact()}.db"

        raw = self._store.engine.raw_connection()
        try:
            with closing(sqlite3.connect(target)) as dest:
                raw.driver_connection.backup(dest)
        finally:
            raw.close()

        snapshots = sorted(self._backup_dir.glob("subctl-*.db"))
        for stale in snapshots[:-BACKUP_MAX_COUNT]:
            stale.unlink(missing_ok=True)
        return target

    def apply(self) -> ServiceResult:
        """Back up, migrate, validate."""
        check = self.check_pending()
        if not check.ok:
            return check
        head = check.data["head"]
        pending_count = check.data["pending_count"]
        if pending_count == 0:
            return ServiceResult(
                ok=True,
                op=_OP,
                data={
                    "applied_count": 0,
                    "current": head,
                    "message": "Database is already up to date",
                },
            )

        try:
            backup_path = self.backup()
        except (OSError, sqlite3.Error) as exc:
            return ServiceResult.failure(_OP, "BACKUP_FAILED", f"Backup failed: {exc}")

        # Stores created by init_database have tables but no alembic_version row.
        adopt = check.data["current"] is None and "users" in self._table_names()
        try:
            if adopt:
                command.stamp(self._alembic_config(), "head")
            else:
                command.upgrade(self._alembic_config(), "head")
        except Exception as exc:
            return ServiceResult.failure(
                _OP,
                "MIGRATION_FAILED",
                f"Migration failed: {exc}. Backup at: {backup_path}",
                backup_path=str(backup_path),
            )

        warnings = self._validate()
        logger.info(
            "store.upgraded",
            extra={"applied": pending_count, "stamped": adopt, "backup": str(backup_path)},
        )
        return ServiceResult(
            ok=True,
            op=_OP,
            data={
                "applied_count": pending_count,
                "current": head,
                "backup_path": str(backup_path),
            },
            warnings=warnings,
        )

    def _validate(self) -> list[str]:
        warnings: list[str] = []
        missing = sorted(set(metadata.tables) - self._table_names())
        if missing:
            warnings.append(f"Tables missing after migration: {', '.join(missing)}")
        with self._store.engine.connect() as conn:
            verdict = conn.execute(text("PRAGMA integrity_check")).scalar()
        if verdict != "ok":
            warnings.append(f"SQLite integrity check: {verdict}")
        return warnings
