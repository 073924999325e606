"""Configuration for the tree watcher package."""

import fnmatch
from dataclasses import dataclass, field
from pathlib import Path
from typing import List


@dataclass
class WatcherConfig:
    """
    Configuration options for the tree watcher.

    Nothing is ignored by default. To skip editor and VCS clutter pass
    patterns explicitly, e.g. ``ignore_patterns=["*.swp", "*~", ".git"]``.

    Attributes:
        ignore_patterns: Glob patterns matched against file and directory names
        follow_symlinks: Whether to follow symbolic links
        use_polling: Use the polling observer instead of the native one
        polling_interval: Seconds between polls for the polling observer
        join_timeout: Seconds close() waits for each background thread
    """
    ignore_patterns: List[str] = field(default_factory=list)
    follow_symlinks: bool = False
    use_polling: bool = False
    polling_interval: float = 1.0
    join_timeout: float = 5.0

    def should_ignore(self, path: Path) -> bool:
        """
        Check if a path's name matches one of the ignore patterns.

        Only the last component is matched. An ignored directory is never
        watched, so nothing beneath it is ever seen.
        """
        return any(fnmatch.fnmatch(path.name, pattern) for pattern in self.ignore_patterns)
