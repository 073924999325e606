"""Background reconciliation of notifications into listener events."""

import logging
import queue
import threading
from pathlib import Path
from typing import Optional

from .config import WatcherConfig
from .listener import ListenerGuard
from .models import LoopState, NotificationKind, PathKind, PendingNotification, classify_path
from .registry import WatchRegistry
from .walker import TreeWalker

logger = logging.getLogger(__name__)

# Wakes the loop so it can notice a stop request.
_WAKE = None


class EventLoop:
    """
    Single worker that consumes PendingNotifications one at a time.

    Each notification is resolved against the registry, its subject is
    classified, and the matching listener hook is invoked. A failing hook
    or filesystem query is reported through the listener and the loop
    moves on to the next notification.
    """

    def __init__(
        self,
        registry: WatchRegistry,
        walker: TreeWalker,
        listener: ListenerGuard,
        config: WatcherConfig,
        dispatch_lock: Optional[threading.RLock] = None,
    ):
        """
        Initialize the event loop.

        Args:
            registry: Registry of watched directories and known files
            walker: Walker used for newly created directories
            listener: Guarded listener receiving events
            config: Watcher configuration
            dispatch_lock: Lock held while a notification is dispatched,
                shared with callers that walk new roots
        """
        self.registry = registry
        self.walker = walker
        self.listener = listener
        self.config = config
        self._dispatch_lock = dispatch_lock or threading.RLock()
        self._queue: "queue.Queue[Optional[PendingNotification]]" = queue.Queue()
        self._state = LoopState.RUNNING
        self._state_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> LoopState:
        return self._state

    def submit(self, notification: PendingNotification) -> None:
        """Queue a notification; dropped once the loop is no longer running."""
        if self._state is LoopState.RUNNING:
            self._queue.put(notification)

    def start(self) -> None:
        """Start the worker thread."""
        self._thread = threading.Thread(target=self.run, name="TreeWatchEventLoop")
        self._thread.daemon = True
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Ask the loop to finish its current notification and exit.

        Waits for the worker unless called from the worker itself.
        """
        with self._state_lock:
            if self._state is LoopState.RUNNING:
                self._state = LoopState.DRAINING
        self._queue.put(_WAKE)

        thread = self._thread
        if thread is None:
            self._state = LoopState.STOPPED
            return
        if thread is not threading.current_thread() and thread.is_alive():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Event loop did not stop within timeout")

    def run(self) -> None:
        """Worker loop; returns once a stop has been requested."""
        logger.debug("Event loop started")
        try:
            while self._state is LoopState.RUNNING:
                notification = self._queue.get()
                if notification is _WAKE or self._state is not LoopState.RUNNING:
                    break
                self.process(notification)
        finally:
            with self._state_lock:
                self._state = LoopState.STOPPED
            logger.debug("Event loop stopped")

    def process(self, notification: PendingNotification) -> None:
        """Reconcile a single notification and dispatch it."""
        directory = self.registry.resolve(notification.handle)
        if directory is None:
            logger.debug(f"Discarding late notification for {notification.src_path}")
            return

        subject = self._subject_path(directory, notification.src_path)
        entry = self.registry.entry_for(directory)
        if entry is None or not entry.accepts(subject):
            return
        if self.config.should_ignore(subject):
            return

        logger.debug(f"{notification.kind.value}: {subject}")
        with self._dispatch_lock:
            try:
                if notification.kind is NotificationKind.CREATED:
                    self._on_created(subject)
                elif notification.kind is NotificationKind.MODIFIED:
                    self._on_modified(subject)
                elif notification.kind is NotificationKind.DELETED:
                    self._on_deleted(subject)
            except Exception as e:
                logger.debug(f"Error processing {subject}: {e}")
                self.listener.report(subject, e)

    def _on_created(self, subject: Path) -> None:
        kind = classify_path(subject, self.config.follow_symlinks)
        if kind is PathKind.DIRECTORY:
            self.walker.walk(subject, is_initial_add=True)
        elif kind is PathKind.FILE:
            if self.registry.track_file(subject):
                self.listener.add_file(subject)
        else:
            # Gone again; its deleted notification follows.
            logger.debug(f"Created path vanished before processing: {subject}")

    def _on_modified(self, subject: Path) -> None:
        kind = classify_path(subject, self.config.follow_symlinks)
        if kind is PathKind.DIRECTORY:
            if self.registry.is_registered(subject):
                self.listener.change_directory(subject)
        elif kind is PathKind.FILE:
            if self.registry.is_known_file(subject):
                self.listener.change_file(subject)
            elif self.registry.track_file(subject):
                # The creation was never seen; report the file as new.
                self.listener.add_file(subject)

    def _on_deleted(self, subject: Path) -> None:
        # The subject no longer exists, so classify by what it was last known as.
        if self.registry.is_registered(subject, full_only=False):
            removal = self.registry.unregister_subtree(subject)
            for path, error in removal.failures:
                self.listener.report(path, error)
            for path in removal.directories:
                self.listener.remove_directory(path)
            for path in removal.files:
                self.listener.remove_file(path)
        elif self.registry.forget_file(subject):
            self.listener.remove_file(subject)
        else:
            logger.debug(f"Deleted path was not tracked: {subject}")

    @staticmethod
    def _subject_path(directory: Path, src_path: Path) -> Path:
        """Rebuild the subject's path under the registered directory path."""
        try:
            relative = src_path.relative_to(directory)
        except ValueError:
            relative = Path(src_path.name)
        return directory / relative
