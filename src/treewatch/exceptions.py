"""Custom exceptions for the tree watcher package."""

from pathlib import Path
from typing import Optional


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class WatchRegistrationError(WatcherError):
    """The observer refused to watch a directory."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class ClosedError(WatcherError):
    """Operation attempted on a watcher that has been closed."""
    pass


class RootNotFoundError(WatcherError):
    """Path passed to add() does not exist."""
    pass


class ObservationError(WatcherError):
    """A listener hook raised, or a filesystem query raced a deletion."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path
