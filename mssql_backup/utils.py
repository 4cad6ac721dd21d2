"""Helper utilities for the SQL Server backup job."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional


def ensure_directory(path: Path) -> Path:
    """Create *path* if it does not exist and return it."""

    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def timestamp_for_filename(dt: Optional[datetime] = None) -> str:
    dt = dt or datetime.now()
    return dt.strftime("%Y%m%d%H%M%S")


def remove_if_exists(path: Path) -> bool:
    """Delete the file at *path*; return ``True`` when something was removed."""

    path = Path(path)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


__all__ = [
    "ensure_directory",
    "timestamp_for_filename",
    "remove_if_exists",
]
