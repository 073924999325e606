"""Data models for the tree watcher package."""

import os
import stat
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class PathKind(Enum):
    """What a path currently denotes on disk."""
    FILE = "file"
    DIRECTORY = "directory"
    ABSENT = "absent"


class NotificationKind(Enum):
    """Kinds of low-level notifications delivered by the observer."""
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


class LoopState(Enum):
    """States of the background event loop."""
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


@dataclass(frozen=True)
class PendingNotification:
    """
    A raw change signal waiting to be reconciled by the event loop.

    Attributes:
        kind: Whether the subject was created, modified or deleted
        src_path: Path of the subject as reported by the observer
        handle: Watch handle of the directory that produced the notification
        is_directory: The observer's hint about the subject's kind
        timestamp: Unix timestamp when the notification was received
    """
    kind: NotificationKind
    src_path: Path
    handle: Any = None
    is_directory: bool = False
    timestamp: float = field(default_factory=time.time)


@dataclass
class WatchEntry:
    """
    A registered directory and the watch handle observing it.

    Attributes:
        path: Resolved path of the directory
        handle: Opaque watch handle returned by the observer
        names: When set, only children with these names are of interest
            (the directory is watched on behalf of individual file roots)
    """
    path: Path
    handle: Any
    names: Optional[set] = None

    @property
    def is_full(self) -> bool:
        """True if the whole directory is watched, not just selected files."""
        return self.names is None

    def accepts(self, subject: Path) -> bool:
        """Check whether a notification about ``subject`` is of interest."""
        if self.names is None:
            return True
        return subject.parent == self.path and subject.name in self.names


def classify_path(path: Path, follow_symlinks: bool = False) -> PathKind:
    """
    Decide whether a path is currently a file, a directory, or gone.

    A path that vanished between a notification and this query, or that
    cannot be stat'ed at all, is reported as ABSENT instead of raising.

    Args:
        path: Path to classify
        follow_symlinks: Classify symbolic links by their target

    Returns:
        The PathKind of the path
    """
    try:
        st = os.stat(path, follow_symlinks=follow_symlinks)
    except (OSError, ValueError):
        return PathKind.ABSENT

    if stat.S_ISDIR(st.st_mode):
        return PathKind.DIRECTORY
    return PathKind.FILE


def is_relative_to(path: Path, parent: Path) -> bool:
    """Return True if ``path`` equals ``parent`` or lies beneath it."""
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False
