"""Thread-safe registry of watched directories and known files."""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from .exceptions import WatchRegistrationError
from .models import WatchEntry, is_relative_to

logger = logging.getLogger(__name__)

ReleaseFailure = Tuple[Path, Exception]


@dataclass
class SubtreeRemoval:
    """
    Result of removing a directory and everything registered beneath it.

    Attributes:
        directories: Fully watched directories that were unregistered
        files: Known files that were forgotten
        failures: (path, error) pairs for handles that failed to release
    """
    directories: List[Path] = field(default_factory=list)
    files: List[Path] = field(default_factory=list)
    failures: List[ReleaseFailure] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.directories or self.files)


class WatchRegistry:
    """
    Bidirectional mapping between watched directories and watch handles.

    Also records the files that have been reported as added and not yet
    as removed, so a deleted path can be classified by what it was last
    known to be. Every operation runs under one coarse lock.
    """

    def __init__(
        self,
        schedule: Callable[[Path], Any],
        unschedule: Callable[[Any], None],
    ):
        """
        Initialize the registry.

        Args:
            schedule: Starts observing a directory and returns its handle
            unschedule: Stops observing the directory behind a handle
        """
        self._schedule = schedule
        self._unschedule = unschedule
        self._entries: Dict[Path, WatchEntry] = {}
        self._paths_by_handle: Dict[Any, Path] = {}
        self._files: Set[Path] = set()
        self._lock = threading.RLock()

    def register(self, path: Path, names: Optional[Iterable[str]] = None) -> Any:
        """
        Start watching a directory.

        Args:
            path: Resolved path of the directory
            names: If given, only these children of the directory are of
                interest. Registering without names upgrades an existing
                entry to a full watch.

        Returns:
            The watch handle for the directory

        Raises:
            WatchRegistrationError: If the observer refuses the directory
        """
        with self._lock:
            entry = self._entries.get(path)
            if entry is not None:
                if names is None:
                    entry.names = None
                elif entry.names is not None:
                    entry.names.update(names)
                return entry.handle

            try:
                handle = self._schedule(path)
            except OSError as e:
                raise WatchRegistrationError(f"Cannot watch {path}: {e}", path) from e

            self._entries[path] = WatchEntry(
                path=path,
                handle=handle,
                names=set(names) if names is not None else None,
            )
            self._paths_by_handle[handle] = path
            logger.debug(f"Registered watch for {path}")
            return handle

    def unregister(self, path: Path) -> List[ReleaseFailure]:
        """
        Stop watching a directory.

        Args:
            path: Path of the directory

        Returns:
            Release failures; empty when the handle was released cleanly
            or the path was not registered
        """
        with self._lock:
            entry = self._entries.pop(path, None)
            if entry is None:
                return []
            self._paths_by_handle.pop(entry.handle, None)
            return self._release(entry)

    def unregister_subtree(self, path: Path) -> SubtreeRemoval:
        """
        Unregister a directory, every registered descendant, and forget
        every known file beneath it.

        Args:
            path: Root of the subtree that disappeared

        Returns:
            What was removed, parents listed before their descendants
        """
        removal = SubtreeRemoval()
        with self._lock:
            doomed = sorted(
                (p for p in self._entries if is_relative_to(p, path)),
                key=lambda p: len(p.parts),
            )
            for directory in doomed:
                entry = self._entries.pop(directory)
                self._paths_by_handle.pop(entry.handle, None)
                if entry.is_full:
                    removal.directories.append(directory)
                removal.failures.extend(self._release(entry))

            files = sorted(f for f in self._files if is_relative_to(f, path))
            self._files.difference_update(files)
            removal.files.extend(files)

        logger.debug(
            f"Unregistered subtree {path}: {len(removal.directories)} directories, "
            f"{len(removal.files)} files"
        )
        return removal

    def resolve(self, handle: Any) -> Optional[Path]:
        """
        Find the directory a handle belongs to.

        Args:
            handle: Watch handle

        Returns:
            The directory path, or None if the handle is no longer registered
        """
        with self._lock:
            return self._paths_by_handle.get(handle)

    def entry_for(self, path: Path) -> Optional[WatchEntry]:
        """Return the registry entry for a directory, if any."""
        with self._lock:
            return self._entries.get(path)

    def handle_for(self, path: Path) -> Optional[Any]:
        """Return the watch handle for a directory, if any."""
        with self._lock:
            entry = self._entries.get(path)
            return entry.handle if entry is not None else None

    def is_registered(self, path: Path, full_only: bool = True) -> bool:
        """
        Check if a directory is registered.

        Args:
            path: Path to check
            full_only: Ignore entries that only watch selected files

        Returns:
            True if the directory has a matching entry
        """
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                return False
            return entry.is_full or not full_only

    def track_file(self, path: Path) -> bool:
        """
        Record a file as known.

        Returns:
            True if the file was not known before
        """
        with self._lock:
            if path in self._files:
                return False
            self._files.add(path)
            return True

    def forget_file(self, path: Path) -> bool:
        """
        Drop a file from the known set.

        Returns:
            True if the file was known
        """
        with self._lock:
            if path in self._files:
                self._files.discard(path)
                return True
            return False

    def is_known_file(self, path: Path) -> bool:
        """Check if a file is currently known."""
        with self._lock:
            return path in self._files

    def registered_paths(self) -> FrozenSet[Path]:
        """Return every fully watched directory."""
        with self._lock:
            return frozenset(p for p, e in self._entries.items() if e.is_full)

    def known_files(self) -> FrozenSet[Path]:
        """Return every known file."""
        with self._lock:
            return frozenset(self._files)

    def clear(self) -> List[ReleaseFailure]:
        """
        Release every handle and forget every file.

        Returns:
            Release failures collected along the way
        """
        failures: List[ReleaseFailure] = []
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
            self._paths_by_handle.clear()
            self._files.clear()
            for entry in entries:
                failures.extend(self._release(entry))
        return failures

    def _release(self, entry: WatchEntry) -> List[ReleaseFailure]:
        """Release a handle, returning the failure instead of raising it."""
        try:
            self._unschedule(entry.handle)
        except Exception as e:
            logger.debug(f"Failed to release watch for {entry.path}: {e}")
            return [(entry.path, e)]
        return []

    def __len__(self) -> int:
        """Return the number of registered directories."""
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: Path) -> bool:
        """Check if a directory is fully watched."""
        return self.is_registered(path)
