"""Listener interface receiving the events reported by a FileManager."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

from .exceptions import ObservationError, WatcherError

logger = logging.getLogger(__name__)

PathCallback = Callable[[Path], None]
ErrorCallback = Callable[[Path, Optional[BaseException]], None]


class FileListener(ABC):
    """
    The set of hooks a FileManager reports to.

    Hooks run synchronously on whichever thread detected the event: the
    caller of ``add()`` for pre-existing entries, the event loop thread
    for everything else.
    """

    @abstractmethod
    def on_add_file(self, path: Path) -> None:
        """A file appeared, or was found while walking a new root."""
        pass

    @abstractmethod
    def on_add_directory(self, path: Path) -> None:
        """A directory appeared and is now being watched."""
        pass

    @abstractmethod
    def on_change_file(self, path: Path) -> None:
        """A known file was modified."""
        pass

    @abstractmethod
    def on_change_directory(self, path: Path) -> None:
        """A watched directory was modified."""
        pass

    @abstractmethod
    def on_remove_file(self, path: Path) -> None:
        """A known file disappeared."""
        pass

    @abstractmethod
    def on_remove_directory(self, path: Path) -> None:
        """A watched directory disappeared."""
        pass

    @abstractmethod
    def handle_exception(self, path: Path, cause: Optional[BaseException]) -> None:
        """
        Report an error that happened while processing ``path``.

        Args:
            path: The path being processed
            cause: The error, or None when there is nothing more specific
        """
        pass


class CallbackListener(FileListener):
    """A FileListener assembled from plain callables; missing hooks do nothing."""

    def __init__(
        self,
        on_add_file: Optional[PathCallback] = None,
        on_add_directory: Optional[PathCallback] = None,
        on_change_file: Optional[PathCallback] = None,
        on_change_directory: Optional[PathCallback] = None,
        on_remove_file: Optional[PathCallback] = None,
        on_remove_directory: Optional[PathCallback] = None,
        handle_exception: Optional[ErrorCallback] = None,
    ):
        self._on_add_file = on_add_file
        self._on_add_directory = on_add_directory
        self._on_change_file = on_change_file
        self._on_change_directory = on_change_directory
        self._on_remove_file = on_remove_file
        self._on_remove_directory = on_remove_directory
        self._handle_exception = handle_exception

    def on_add_file(self, path: Path) -> None:
        if self._on_add_file:
            self._on_add_file(path)

    def on_add_directory(self, path: Path) -> None:
        if self._on_add_directory:
            self._on_add_directory(path)

    def on_change_file(self, path: Path) -> None:
        if self._on_change_file:
            self._on_change_file(path)

    def on_change_directory(self, path: Path) -> None:
        if self._on_change_directory:
            self._on_change_directory(path)

    def on_remove_file(self, path: Path) -> None:
        if self._on_remove_file:
            self._on_remove_file(path)

    def on_remove_directory(self, path: Path) -> None:
        if self._on_remove_directory:
            self._on_remove_directory(path)

    def handle_exception(self, path: Path, cause: Optional[BaseException]) -> None:
        if self._handle_exception:
            self._handle_exception(path, cause)
        else:
            logger.error(f"Error while processing the item at {path}: {cause}")


class LoggingListener(FileListener):
    """Logs every event at INFO and every error at ERROR."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logging.getLogger(f"{__name__}.LoggingListener")

    def on_add_file(self, path: Path) -> None:
        self.log.info(f"Added file: {path}")

    def on_add_directory(self, path: Path) -> None:
        self.log.info(f"Added directory: {path}")

    def on_change_file(self, path: Path) -> None:
        self.log.info(f"Changed file: {path}")

    def on_change_directory(self, path: Path) -> None:
        self.log.info(f"Changed directory: {path}")

    def on_remove_file(self, path: Path) -> None:
        self.log.info(f"Removed file: {path}")

    def on_remove_directory(self, path: Path) -> None:
        self.log.info(f"Removed directory: {path}")

    def handle_exception(self, path: Path, cause: Optional[BaseException]) -> None:
        if cause is not None:
            self.log.error(f"Error while processing the item at {path}", exc_info=cause)
        else:
            self.log.error(f"Error while processing the item at {path}")


class ListenerGuard:
    """
    Invokes listener hooks so that a failing hook never escapes.

    A hook that raises is reported through ``handle_exception`` wrapped in
    an ObservationError; if ``handle_exception`` itself raises, the error
    is logged and dropped.
    """

    def __init__(self, listener: FileListener):
        self.listener = listener

    def call(self, hook: str, path: Path) -> bool:
        """
        Invoke one of the six event hooks.

        Args:
            hook: Hook name, e.g. ``"on_add_file"``
            path: Path to pass to the hook

        Returns:
            True if the hook returned normally
        """
        try:
            getattr(self.listener, hook)(path)
            return True
        except Exception as e:
            self.report(path, e, hook)
            return False

    def report(self, path: Path, cause: Optional[BaseException], hook: Optional[str] = None) -> None:
        """
        Route an error to the listener's ``handle_exception``.

        Errors that are not already WatcherErrors are wrapped in an
        ObservationError whose ``__cause__`` is the original exception.
        """
        if cause is not None and not isinstance(cause, WatcherError):
            where = f"{hook} " if hook else ""
            error = ObservationError(f"{where}failed for {path}: {cause}", path)
            error.__cause__ = cause
            cause = error

        try:
            self.listener.handle_exception(path, cause)
        except Exception:
            logger.error(f"Error handler failed for {path} (cause: {cause})", exc_info=True)

    def add_file(self, path: Path) -> bool:
        return self.call("on_add_file", path)

    def add_directory(self, path: Path) -> bool:
        return self.call("on_add_directory", path)

    def change_file(self, path: Path) -> bool:
        return self.call("on_change_file", path)

    def change_directory(self, path: Path) -> bool:
        return self.call("on_change_directory", path)

    def remove_file(self, path: Path) -> bool:
        return self.call("on_remove_file", path)

    def remove_directory(self, path: Path) -> bool:
        return self.call("on_remove_directory", path)
