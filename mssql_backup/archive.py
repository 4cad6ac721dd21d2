"""Compression of finished backup files into ZIP archives."""
from __future__ import annotations

import errno
import logging
import os
import shutil
import zipfile
from pathlib import Path

from .utils import ensure_directory, remove_if_exists

LOGGER = logging.getLogger(__name__)


def archive_backup(
    backup_path: Path,
    database: str,
    timestamp: str,
    staging_directory: Path,
    archive_directory: Path,
) -> Path:
    """Pack *backup_path* into ``<database><timestamp>.zip`` and return its final path.

    The archive is written inside *staging_directory* first and then moved to
    *archive_directory*, so a partially written archive never appears at the
    destination. Files left over from an earlier attempt with the same name
    are removed before writing. Any I/O error propagates to the caller.
    """

    backup_path = Path(backup_path)
    archive_directory = ensure_directory(Path(archive_directory))
    archive_name = f"{database}{timestamp}.zip"
    temp_path = Path(staging_directory) / archive_name
    final_path = archive_directory / archive_name

    for stale in (temp_path, final_path):
        if remove_if_exists(stale):
            LOGGER.info("Removed stale archive '%s'.", stale)

    LOGGER.info("Compressing '%s' into '%s'.", backup_path, temp_path)
    with zipfile.ZipFile(temp_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        archive.write(backup_path, arcname=backup_path.name)

    _move_into_place(temp_path, final_path)
    LOGGER.info("Archive stored at '%s'.", final_path)
    return final_path


def _move_into_place(source: Path, target: Path) -> None:
    if source == target:
        return
    try:
        os.replace(source, target)
        return
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise
    # different file systems: copy next to the target, then rename there
    partial = target.with_name(target.name + ".partial")
    shutil.copy2(source, partial)
    try:
        os.replace(partial, target)
    except OSError:
        remove_if_exists(partial)
        raise
    source.unlink()


__all__ = ["archive_backup"]
