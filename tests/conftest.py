"""Shared fixtures for tree watcher tests."""

import threading
import time
from collections import Counter
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from treewatch.config import WatcherConfig
from treewatch.event_loop import EventLoop
from treewatch.fs_watcher import DirectoryWatchPool
from treewatch.listener import FileListener, ListenerGuard
from treewatch.registry import WatchRegistry
from treewatch.walker import TreeWalker


class RecordingListener(FileListener):
    """Records every event and error it receives."""

    def __init__(self):
        self.events: List[Tuple[str, Path]] = []
        self.errors: List[Tuple[Path, Optional[BaseException]]] = []
        self._lock = threading.Lock()

    def _record(self, kind: str, path: Path) -> None:
        with self._lock:
            self.events.append((kind, path))

    def on_add_file(self, path):
        self._record("add_file", path)

    def on_add_directory(self, path):
        self._record("add_directory", path)

    def on_change_file(self, path):
        self._record("change_file", path)

    def on_change_directory(self, path):
        self._record("change_directory", path)

    def on_remove_file(self, path):
        self._record("remove_file", path)

    def on_remove_directory(self, path):
        self._record("remove_directory", path)

    def handle_exception(self, path, cause):
        with self._lock:
            self.errors.append((path, cause))

    def paths(self, kind: str) -> List[Path]:
        with self._lock:
            return [p for k, p in self.events if k == kind]

    def count(self, kind: str, path: Path) -> int:
        with self._lock:
            return Counter(self.events)[(kind, path)]

    def clear(self) -> None:
        with self._lock:
            self.events.clear()
            self.errors.clear()


class FakeWatch:
    """Stand-in for watchdog's ObservedWatch."""

    def __init__(self, path: str):
        self.path = path


class FakeObserver:
    """In-memory observer: records schedules and lets tests fire events."""

    def __init__(self):
        self.handlers: Dict[str, Tuple[object, FakeWatch]] = {}
        self.unscheduled: List[str] = []
        self.refuse: Dict[str, OSError] = {}
        self.fail_unschedule = False
        self.alive = False

    def start(self):
        self.alive = True

    def stop(self):
        self.alive = False

    def join(self, timeout=None):
        pass

    def is_alive(self):
        return self.alive

    def schedule(self, handler, path, recursive=False):
        assert recursive is False
        if path in self.refuse:
            raise self.refuse[path]
        watch = FakeWatch(path)
        self.handlers[path] = (handler, watch)
        return watch

    def unschedule(self, watch):
        self.unscheduled.append(watch.path)
        if self.fail_unschedule:
            raise OSError("release failed")
        del self.handlers[watch.path]

    def handler_for(self, path: Path):
        return self.handlers[str(path)][0]


class Harness:
    """The event loop stack wired to a FakeObserver, driven synchronously."""

    def __init__(self, config: Optional[WatcherConfig] = None):
        self.config = config or WatcherConfig()
        self.observer = FakeObserver()
        self.listener = RecordingListener()
        self.guard = ListenerGuard(self.listener)
        self.notifications = []
        self.pool = DirectoryWatchPool(self.notifications.append, self.config, self.observer)
        self.registry = WatchRegistry(self.pool.schedule, self.pool.unschedule)
        self.walker = TreeWalker(self.registry, self.guard, self.config)
        self.loop = EventLoop(self.registry, self.walker, self.guard, self.config)
        self.pool.start()

    def fire(self, directory: Path, method: str, event) -> None:
        """Deliver a watchdog event to the watch on ``directory``."""
        getattr(self.observer.handler_for(directory), method)(event)

    def drain(self) -> None:
        """Process every pending notification in order."""
        while self.notifications:
            self.loop.process(self.notifications.pop(0))


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def fake_observer():
    return FakeObserver()


@pytest.fixture
def harness():
    return Harness()


@pytest.fixture
def root(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return path.resolve()


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.05) -> bool:
    """Poll ``predicate`` until it holds or ``timeout`` seconds pass."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def make_tree(base: Path, layout: Dict[str, Optional[str]]) -> None:
    """Create files (str content) and directories (None) under ``base``."""
    for rel, content in layout.items():
        path = base / rel
        if content is None:
            path.mkdir(parents=True, exist_ok=True)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
