"""The FileManager: public surface of the tree watcher."""

import logging
import threading
from pathlib import Path
from typing import Any, FrozenSet, Optional, Union

from .config import WatcherConfig
from .event_loop import EventLoop
from .exceptions import ClosedError, RootNotFoundError
from .fs_watcher import DirectoryWatchPool
from .listener import FileListener, ListenerGuard
from .models import PathKind, PendingNotification, classify_path
from .registry import WatchRegistry
from .walker import TreeWalker

logger = logging.getLogger(__name__)


class FileManager:
    """
    Watches directory trees and reports every change to a listener.

    ``add()`` walks a root synchronously, so by the time it returns the
    listener has seen an add event for everything already under it.
    Later changes are picked up by a background event loop.

    Example:
        with FileManager(LoggingListener()) as manager:
            manager.add(Path("/data"))
            ...
    """

    def __init__(
        self,
        listener: FileListener,
        config: Optional[WatcherConfig] = None,
        observer: Optional[Any] = None,
    ):
        """
        Initialize the manager and start watching.

        Args:
            listener: Receives the add/change/remove events and errors
            config: Watcher configuration
            observer: watchdog observer to use instead of creating one
        """
        self.config = config or WatcherConfig()
        self.listener = listener
        self._guard = ListenerGuard(listener)

        self._closed = False
        self._lock = threading.Lock()
        self._dispatch_lock = threading.RLock()

        self._pool = DirectoryWatchPool(self._on_notification, self.config, observer)
        self._registry = WatchRegistry(self._pool.schedule, self._pool.unschedule)
        self._walker = TreeWalker(
            self._registry,
            self._guard,
            self.config,
            is_stopped=lambda: self._closed,
        )
        self._event_loop = EventLoop(
            self._registry,
            self._walker,
            self._guard,
            self.config,
            self._dispatch_lock,
        )

        self._pool.start()
        self._event_loop.start()

    def _on_notification(self, notification: PendingNotification) -> None:
        """Callback from the watch pool."""
        self._event_loop.submit(notification)

    def add(self, root: Union[str, Path]) -> None:
        """
        Start watching a directory tree or a single file.

        Args:
            root: Directory or file to watch

        Raises:
            ClosedError: If the manager has been closed
            RootNotFoundError: If ``root`` does not exist
            WatchRegistrationError: If ``root`` cannot be watched
        """
        with self._dispatch_lock:
            with self._lock:
                if self._closed:
                    raise ClosedError("FileManager is closed")

            path = Path(root).resolve()
            kind = classify_path(path, follow_symlinks=True)

            if kind is PathKind.ABSENT:
                raise RootNotFoundError(f"Root does not exist: {path}")

            if kind is PathKind.DIRECTORY:
                self._walker.walk(path, is_initial_add=True)
            else:
                self._add_file(path)

            logger.info(f"Watching {path}")

    def _add_file(self, path: Path) -> None:
        """Watch a single file through a filtered watch on its parent."""
        self._registry.register(path.parent, names=[path.name])
        if self._registry.track_file(path):
            self._guard.add_file(path)

    def close(self) -> None:
        """
        Stop watching and release every resource.

        Safe to call more than once and from any thread, including from
        inside a listener hook.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True

        logger.info("Closing file manager")
        timeout = self.config.join_timeout
        self._event_loop.stop(timeout=timeout)

        with self._dispatch_lock:
            failures = self._registry.clear()
        for path, error in failures:
            self._guard.report(path, error)

        try:
            self._pool.stop(timeout=timeout)
        except Exception as e:
            logger.warning(f"Error stopping observer: {e}")

    @property
    def is_closed(self) -> bool:
        """Check if the manager has been closed."""
        return self._closed

    def is_watching(self, path: Union[str, Path]) -> bool:
        """Check if a directory is being watched."""
        return Path(path).resolve() in self._registry

    def watched_directories(self) -> FrozenSet[Path]:
        """Return every directory currently being watched."""
        return self._registry.registered_paths()

    def known_files(self) -> FrozenSet[Path]:
        """Return every file currently being watched."""
        return self._registry.known_files()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
