"""Sequential batch over the configured databases."""
from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from .backup import BackupExecutor, BackupOutcome
from .config import AppConfig
from .connection import ServerConnector

LOGGER = logging.getLogger(__name__)


class BackupRunner:
    def __init__(
        self,
        config: AppConfig,
        connector: Optional[ServerConnector] = None,
        clock: Callable[[], datetime] = datetime.now,
        logger: logging.Logger = LOGGER,
    ) -> None:
        self.config = config
        self.logger = logger
        self.executor = BackupExecutor(config, connector=connector, clock=clock)
        self.outcomes: List[BackupOutcome] = []

    def run(self, database_names: Optional[Sequence[str]] = None) -> bool:
        """Back up every database in order and return ``True`` only if all succeeded.

        A failing database never stops the batch. Outcomes of the last run are
        kept in :attr:`outcomes`.
        """

        names = list(database_names) if database_names else list(self.config.databases)
        self.outcomes = []
        all_succeeded = True
        for name in names:
            try:
                outcome = self.executor.backup_database(name)
            except Exception as exc:
                self.logger.exception("Unexpected error while backing up '%s'", name)
                print(f"Failed to back up database '{name}': {exc}", file=sys.stderr)
                all_succeeded = False
                continue
            self.outcomes.append(outcome)
            if outcome.success:
                print(outcome.message)
            else:
                print(f"Failed to back up database '{name}': {outcome.message}", file=sys.stderr)
                all_succeeded = False
        return all_succeeded


__all__ = ["BackupRunner"]
