"""Per-directory watches on top of the watchdog library."""

import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Optional

from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    FileSystemMovedEvent,
)
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from .config import WatcherConfig
from .models import NotificationKind, PendingNotification

logger = logging.getLogger(__name__)


class NotificationForwarder(FileSystemEventHandler):
    """
    Converts watchdog events for one directory into PendingNotifications.

    The forwarder doubles as the watch handle for its directory: every
    notification it emits carries it, and it is unique per registration
    even when the same path is watched again later.
    """

    def __init__(
        self,
        callback: Callable[[PendingNotification], None],
        config: WatcherConfig,
        directory: Path,
    ):
        super().__init__()
        self.callback = callback
        self.config = config
        self.directory = directory
        self.watch: Any = None

    def _should_ignore(self, path: Path) -> bool:
        """Check if the path should be ignored."""
        return self.config.should_ignore(path)

    def _emit(self, kind: NotificationKind, src_path, is_directory: bool) -> None:
        """Emit a PendingNotification to the callback."""
        path = Path(os.fsdecode(src_path))
        if self._should_ignore(path):
            return

        self.callback(PendingNotification(
            kind=kind,
            src_path=path,
            handle=self,
            is_directory=is_directory,
            timestamp=time.time(),
        ))

    def on_created(self, event: FileSystemEvent) -> None:
        self._emit(NotificationKind.CREATED, event.src_path, event.is_directory)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._emit(NotificationKind.DELETED, event.src_path, event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._emit(NotificationKind.MODIFIED, event.src_path, event.is_directory)

    def on_moved(self, event: FileSystemMovedEvent) -> None:
        # A move is reported as removal of the source and creation of the
        # destination.
        self._emit(NotificationKind.DELETED, event.src_path, event.is_directory)
        self._emit(NotificationKind.CREATED, event.dest_path, event.is_directory)

    def __repr__(self) -> str:
        return f"NotificationForwarder({str(self.directory)!r})"


class DirectoryWatchPool:
    """
    Schedules one non-recursive watchdog watch per directory on a single
    observer.

    ``schedule`` hands back the directory's NotificationForwarder as its
    watch handle; ``unschedule`` takes it back.
    """

    def __init__(
        self,
        callback: Callable[[PendingNotification], None],
        config: Optional[WatcherConfig] = None,
        observer: Optional[Any] = None,
    ):
        """
        Initialize the watch pool.

        Args:
            callback: Callback receiving every notification
            config: Watcher configuration
            observer: Observer to use instead of creating one from config
        """
        self.callback = callback
        self.config = config or WatcherConfig()
        self._observer = observer if observer is not None else self._create_observer()

    def _create_observer(self):
        if self.config.use_polling:
            return PollingObserver(timeout=self.config.polling_interval)
        return Observer()

    def start(self) -> None:
        """Start the observer's threads."""
        self._observer.start()
        logger.debug(f"Started {type(self._observer).__name__}")

    def schedule(self, directory: Path) -> NotificationForwarder:
        """
        Start watching a single directory (not its subdirectories).

        Args:
            directory: Resolved path of the directory

        Returns:
            The handle for the new watch

        Raises:
            OSError: If the observer cannot watch the directory
        """
        forwarder = NotificationForwarder(self.callback, self.config, directory)
        forwarder.watch = self._observer.schedule(
            forwarder,
            str(directory),
            recursive=False,
        )
        return forwarder

    def unschedule(self, handle: NotificationForwarder) -> None:
        """
        Stop watching the directory behind a handle.

        Args:
            handle: Handle returned by schedule()
        """
        self._observer.unschedule(handle.watch)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the observer and wait for its threads."""
        if self._observer.is_alive():
            self._observer.stop()
            self._observer.join(timeout=timeout)
            logger.debug("Observer stopped")

