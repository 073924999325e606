"""Recursive discovery of a directory tree."""

import logging
import os
from pathlib import Path
from typing import Callable, List, Optional, Set

from .config import WatcherConfig
from .exceptions import WatchRegistrationError
from .listener import ListenerGuard
from .models import PathKind, classify_path
from .registry import WatchRegistry

logger = logging.getLogger(__name__)


class TreeWalker:
    """
    Walks a directory tree depth-first, registering every directory and
    reporting every file and directory that is not yet known.

    Uses an explicit stack so deep trees do not hit the recursion limit.
    """

    def __init__(
        self,
        registry: WatchRegistry,
        listener: ListenerGuard,
        config: WatcherConfig,
        is_stopped: Optional[Callable[[], bool]] = None,
    ):
        self.registry = registry
        self.listener = listener
        self.config = config
        self.is_stopped = is_stopped or (lambda: False)

    def walk(self, root: Path, is_initial_add: bool = False) -> None:
        """
        Walk ``root`` and everything beneath it.

        A directory's add event always fires before any event for its
        children. Subdirectories that cannot be listed or registered are
        reported through the listener and skipped; the walk continues
        with their siblings. The walk ends early once ``is_stopped()``
        returns True.

        Args:
            root: Resolved directory to walk
            is_initial_add: Also register and report ``root`` itself

        Raises:
            WatchRegistrationError: If ``root`` itself cannot be registered
        """
        if is_initial_add:
            self._enter_directory(root)
            if self.is_stopped():
                return

        seen: Set[str] = {os.path.realpath(root)}
        stack: List[Path] = list(reversed(self._list_children(root)))

        while stack and not self.is_stopped():
            path = stack.pop()
            kind = classify_path(path, self.config.follow_symlinks)

            if kind is PathKind.DIRECTORY:
                real = os.path.realpath(path)
                if real in seen:
                    logger.debug(f"Skipping already visited directory {path}")
                    continue
                seen.add(real)
                try:
                    self._enter_directory(path)
                except WatchRegistrationError as e:
                    logger.warning(f"Not watching {path}: {e}")
                    self.listener.report(path, e)
                    continue
                stack.extend(reversed(self._list_children(path)))
            elif kind is PathKind.FILE:
                if self.registry.track_file(path):
                    self.listener.add_file(path)
            else:
                logger.debug(f"{path} vanished while walking")

    def _enter_directory(self, path: Path) -> None:
        """Register a directory, reporting it if it was not fully watched yet."""
        is_new = not self.registry.is_registered(path)
        self.registry.register(path)
        if is_new:
            self.listener.add_directory(path)

    def _list_children(self, directory: Path) -> List[Path]:
        """List a directory's children that are not ignored, sorted by name."""
        try:
            children = sorted(directory.iterdir())
        except OSError as e:
            logger.warning(f"Cannot list {directory}: {e}")
            self.listener.report(directory, e)
            return []
        return [c for c in children if not self.config.should_ignore(c)]
