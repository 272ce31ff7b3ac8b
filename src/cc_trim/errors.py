"""Exceptions raised by the record-integrity engine."""

from __future__ import annotations

from pathlib import Path

from .models import Violation


class TranscriptEditError(Exception):
    """Base class for cc-trim errors."""


class RecordValidationError(TranscriptEditError):
    """Raised before any mutation when an edit would break stream integrity."""

    def __init__(self, violations: list[Violation]) -> None:
        self.violations = violations
        super().__init__("; ".join(v.message for v in violations))

    @property
    def offending_ids(self) -> list[str]:
        seen: dict[str, None] = {}
        for v in self.violations:
            for record_id in v.ids:
                seen.setdefault(record_id)
        return list(seen)


class NotFoundError(TranscriptEditError):
    """Raised when a referenced stream or record does not exist."""


class StreamNotFoundError(NotFoundError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"Conversation file not found: {path}")
        self.path = path


class RecordNotFoundError(NotFoundError):
    def __init__(self, ids: list[str], message: str | None = None) -> None:
        super().__init__(message or f"Record(s) not found: {', '.join(ids)}")
        self.ids = ids


class PersistError(TranscriptEditError, OSError):
    """Raised when reading, backing up or replacing a stream fails."""

    requires_reconciliation = False


class StreamReadError(PersistError):
    """The stream exists but could not be read; nothing was changed."""

    def __init__(self, path: Path, error: OSError) -> None:
        super().__init__(f"Failed to read {path}: {error}")
        self.path = path


class BackupError(PersistError):
    """The backup copy failed; the primary stream was not touched."""


class StagingError(PersistError):
    """The new contents could not be staged; the primary stream was not touched."""

    def __init__(self, message: str, backup_path: Path) -> None:
        super().__init__(message)
        self.backup_path = backup_path


class OverwriteError(PersistError):
    """The primary stream could not be replaced after a successful backup."""

    requires_reconciliation = True

    def __init__(self, message: str, backup_path: Path) -> None:
        super().__init__(message)
        self.backup_path = backup_path
