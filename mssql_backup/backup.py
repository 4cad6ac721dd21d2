"""Backup of a single SQL Server database followed by compression."""
from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .archive import archive_backup
from .audit import AuditLog
from .config import AppConfig
from .connection import DatabaseError, PyodbcConnector, ServerConnector, build_master_connection_string
from .utils import ensure_directory, timestamp_for_filename

LOGGER = logging.getLogger(__name__)

BACKUP_OPTIONS = ("COPY_ONLY", "INIT", "FORMAT")


@dataclass(frozen=True)
class BackupOutcome:
    """Result of one backup attempt."""

    database: str
    timestamp: str
    success: bool
    backup_path: Path
    archive_path: Optional[Path]
    message: str


def quote_identifier(name: str) -> str:
    return "[" + name.replace("]", "]]") + "]"


def build_backup_statement(database: str, native_compression: bool = False) -> str:
    """Return the ``BACKUP DATABASE`` statement; the target path is the only parameter."""

    options = list(BACKUP_OPTIONS)
    if native_compression:
        options.append("COMPRESSION")
    return f"BACKUP DATABASE {quote_identifier(database)} TO DISK = ? WITH {', '.join(options)}"


class BackupExecutor:
    """Back up one database at a time into the configured output directory.

    Operational failures (server unreachable, command rejected, output or
    archive directory not writable, audit log not writable) are reported
    through :class:`BackupOutcome` and the logger. Only a missing connection
    string (at construction) and a blank database name raise.
    """

    def __init__(
        self,
        config: AppConfig,
        connector: Optional[ServerConnector] = None,
        clock: Callable[[], datetime] = datetime.now,
        logger: logging.Logger = LOGGER,
    ) -> None:
        self.config = config
        self.connection_string = build_master_connection_string(
            config.connection_string, driver=config.odbc_driver
        )
        self.connector = connector or PyodbcConnector()
        self.clock = clock
        self.logger = logger
        # the server resolves relative TO DISK paths against its own backup folder
        self.output_directory = config.output_path.resolve()
        self.archive_directory = config.archive_path.resolve()
        self.audit = AuditLog.in_directory(self.output_directory)

    def backup_database(self, database_name: str) -> BackupOutcome:
        if database_name is None or not database_name.strip():
            raise ValueError("Database name must be provided.")
        database = database_name.strip()

        timestamp = timestamp_for_filename(self.clock())
        backup_path = self.output_directory / f"{database}{timestamp}.bak"
        try:
            ensure_directory(self.output_directory)
        except OSError as exc:
            message = self._record(
                timestamp, f"Failed to back up '{database}': cannot create {self.output_directory}: {exc}"
            )
            return BackupOutcome(database, timestamp, False, backup_path, None, message)
        statement = build_backup_statement(database, self.config.native_compression)

        self.logger.info("[%s] Starting backup for '%s'...", timestamp, database)
        try:
            self.connector.execute(
                self.connection_string,
                statement,
                [str(backup_path)],
                command_timeout=self.config.command_timeout,
                login_timeout=self.config.login_timeout,
            )
        except DatabaseError as exc:
            message = self._record(timestamp, f"Failed to back up '{database}': {exc}")
            return BackupOutcome(database, timestamp, False, backup_path, None, message)

        message = self._record(timestamp, f"Backed up '{database}' to {backup_path}", failed=False)
        if not self.config.archive_enabled:
            return BackupOutcome(database, timestamp, True, backup_path, None, message)

        try:
            archive_path = archive_backup(
                backup_path,
                database,
                timestamp,
                staging_directory=self.output_directory,
                archive_directory=self.archive_directory,
            )
        except (OSError, zipfile.LargeZipFile) as exc:
            message = self._record(
                timestamp, f"Backed up '{database}' but failed to archive {backup_path}: {exc}"
            )
            return BackupOutcome(database, timestamp, False, backup_path, None, message)

        message = self._record(timestamp, f"Archived '{database}' to {archive_path}", failed=False)
        return BackupOutcome(database, timestamp, True, backup_path, archive_path, message)

    def _record(self, timestamp: str, event: str, failed: bool = True) -> str:
        """Append *event* to the audit log; a log that cannot be written is only reported."""

        line = f"[{timestamp}] {event}"
        try:
            self.audit.write(timestamp, event)
        except OSError as exc:
            self.logger.error("Cannot write audit log '%s': %s", self.audit.path, exc)
        if failed:
            self.logger.error("%s", line)
        else:
            self.logger.info("%s", line)
        return line


__all__ = ["BackupExecutor", "BackupOutcome", "build_backup_statement", "quote_identifier"]
