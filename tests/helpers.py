"""
Shared test helpers: file drops, polling, and a scripted watcher
"""
import os
import queue
import time
from pathlib import Path
from typing import Callable

_WAKE = object()
_END = object()


def drop_file(staging_dir: Path, target_dir: Path, name: str, content: str) -> Path:
    """Write a complete file outside the watched folder, then move it in"""
    staged = staging_dir / name
    staged.write_text(content)
    target = target_dir / name
    os.replace(staged, target)
    return target


def wait_for(condition: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll *condition* until it holds or *timeout* expires"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.05)
    return condition()


class FakeSubscription:
    """Scripted stand-in for watcher.Subscription"""

    def __init__(self):
        self._queue: queue.Queue = queue.Queue()
        self.close_calls = 0

    # ---- Subscription interface ----

    def events(self):
        while True:
            # Fail the test rather than hang if nothing is pushed
            item = self._queue.get(timeout=10)
            if item is _END:
                return
            if item is _WAKE:
                yield None
                continue
            yield item

    def wake(self):
        self._queue.put(_WAKE)

    def close(self):
        self.close_calls += 1

    # ---- test helpers ----

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def push(self, *items):
        for item in items:
            self._queue.put(item)

    def end(self):
        """Simulate the underlying watcher going away"""
        self._queue.put(_END)


class FakeWatcher:
    """watcher_factory replacement recording the folders it was asked to watch"""

    def __init__(self, subscription: FakeSubscription | None = None, setup_error=None):
        self.subscription = subscription or FakeSubscription()
        self.setup_error = setup_error
        self.directories: list[str] = []

    def __call__(self, directory: str) -> "FakeWatcher":
        self.directories.append(directory)
        return self

    def subscribe(self) -> FakeSubscription:
        if self.setup_error is not None:
            raise self.setup_error
        return self.subscription
