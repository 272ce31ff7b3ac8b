"""Backup-then-replace persistence for conversation streams."""

import os
import shutil
import tempfile
from pathlib import Path

import structlog

from .config import Clock, system_clock
from .errors import BackupError, OverwriteError, StagingError
from .models import Entry
from .parser import encode_stream, serialize_stream

logger = structlog.get_logger("cc_trim.writer")


def backup_path_for(path: Path, millis: int, infix: str = ".backup") -> Path:
    """``<path>.backup.<unix-millis>`` alongside the original."""
    return path.with_name(f"{path.name}{infix}.{millis}")


def create_backup(path: Path, clock: Clock = system_clock, infix: str = ".backup") -> Path:
    """Copy the stream to a fresh timestamped backup. Raises BackupError."""
    millis = clock()
    backup = backup_path_for(path, millis, infix)
    while backup.exists():
        millis += 1
        backup = backup_path_for(path, millis, infix)
    try:
        shutil.copy2(path, backup)
    except OSError as e:
        # A partial copy is not a usable backup
        backup.unlink(missing_ok=True)
        raise BackupError(f"Failed to back up {path}: {e}") from e
    logger.info("backup_created", path=str(path), backup=str(backup))
    return backup


def stage_contents(path: Path, text: str) -> Path:
    """Write ``text`` to a synced temp file beside ``path`` with the same mode."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(encode_stream(text))
            f.flush()
            os.fsync(f.fileno())
        shutil.copymode(path, tmp)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    return tmp


def persist(
    path: Path,
    entries: list[Entry],
    *,
    clock: Clock = system_clock,
    backup_infix: str = ".backup",
) -> Path:
    """Back up the stream at ``path``, then replace it with ``entries``.

    Returns the backup path. BackupError and StagingError leave the primary
    untouched; OverwriteError means the rename over the primary failed and
    the backup and primary must be reconciled by hand.
    """
    backup = create_backup(path, clock, backup_infix)
    text = serialize_stream(entries)
    try:
        tmp = stage_contents(path, text)
    except OSError as e:
        logger.error("staging_failed", path=str(path), backup=str(backup), error=str(e))
        raise StagingError(
            f"Failed to write new contents for {path}; it is unchanged (backup at {backup}): {e}",
            backup,
        ) from e
    try:
        os.replace(tmp, path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        logger.error("overwrite_failed", path=str(path), backup=str(backup), error=str(e))
        raise OverwriteError(
            f"Failed to write {path} after backing it up to {backup}: {e}", backup
        ) from e
    logger.info("stream_persisted", path=str(path), records=len(entries), backup=str(backup))
    return backup
