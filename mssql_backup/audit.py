"""Append-only audit trail of backup attempts."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

LOG_FILENAME = "backup.log"


@dataclass
class AuditLog:
    path: Path

    @classmethod
    def in_directory(cls, directory: Path) -> "AuditLog":
        return cls(Path(directory) / LOG_FILENAME)

    def write(self, timestamp: str, event: str) -> str:
        """Append ``[<timestamp>] <event>`` and return the line written."""

        line = f"[{timestamp}] {event}"
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")
        return line


__all__ = ["AuditLog", "LOG_FILENAME"]
