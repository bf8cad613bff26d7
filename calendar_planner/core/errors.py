from __future__ import annotations

from pathlib import Path


class CalendarStoreError(Exception):
    """Base error for the calendar store."""


class InvalidRecurrenceError(CalendarStoreError, ValueError):
    """Raised when a recurrence rule cannot be built from its parts."""


class PersistenceError(CalendarStoreError):
    """Raised when the store cannot write or read its files."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class FileInUseError(PersistenceError):
    """Raised when a data file is held open by another program."""

    def __init__(self, path: Path) -> None:
        super().__init__(
            f"Unable to save {path.name}. Please close any program using the file and try again.",
            path,
        )
