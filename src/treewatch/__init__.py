"""
Tree Watcher Package

Watches directory trees and reports every file and directory that is
added, changed or removed anywhere beneath them, exactly once.

Features:
- Recursive watching with one watch per directory
- Newly created subdirectories are watched automatically
- Cascading removal when a whole directory disappears
- Listener objects instead of subclassing
- Ignore patterns and individual file roots
"""

from .models import (
    PathKind,
    NotificationKind,
    LoopState,
    PendingNotification,
    WatchEntry,
    classify_path,
)

from .config import WatcherConfig

from .exceptions import (
    WatcherError,
    WatchRegistrationError,
    ClosedError,
    RootNotFoundError,
    ObservationError,
)

from .listener import FileListener, CallbackListener, LoggingListener, ListenerGuard
from .registry import WatchRegistry, SubtreeRemoval
from .walker import TreeWalker
from .fs_watcher import DirectoryWatchPool, NotificationForwarder
from .event_loop import EventLoop
from .manager import FileManager


__all__ = [
    # Models
    "PathKind",
    "NotificationKind",
    "LoopState",
    "PendingNotification",
    "WatchEntry",
    "classify_path",
    # Config
    "WatcherConfig",
    # Exceptions
    "WatcherError",
    "WatchRegistrationError",
    "ClosedError",
    "RootNotFoundError",
    "ObservationError",
    # Listeners
    "FileListener",
    "CallbackListener",
    "LoggingListener",
    "ListenerGuard",
    # Components
    "WatchRegistry",
    "SubtreeRemoval",
    "TreeWalker",
    "DirectoryWatchPool",
    "NotificationForwarder",
    "EventLoop",
    # Main
    "FileManager",
]

__version__ = "0.1.0"
