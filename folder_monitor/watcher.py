"""File system watcher for Folder Monitor.

Uses the watchdog library to observe a single folder (non-recursively)
and turns every watchdog event into a :class:`ChangeNotification` on a
queue.  Watcher-level failures travel on the same queue as
:class:`~folder_monitor.errors.WatcherError` instances, so the consumer
reads one multiplexed channel instead of two.
"""

from __future__ import annotations

import enum
import logging
import os
import queue
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Union

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from folder_monitor.errors import WatcherError, WatchSetupError

logger = logging.getLogger(__name__)

# Internal channel markers
_WAKE = object()
_CLOSED = object()


class OperationKind(enum.Enum):
    """What happened to a directory entry.  Only CREATE is acted upon."""

    CREATE = "create"
    OTHER = "other"


@dataclass(frozen=True)
class ChangeNotification:
    """A single change reported for the watched folder."""

    path: str
    kind: OperationKind


WatchEvent = Union[ChangeNotification, WatcherError]


class _QueueingHandler(FileSystemEventHandler):
    """Watchdog handler that forwards every event onto a queue."""

    def __init__(self, directory: str, events: queue.Queue):
        super().__init__()
        self._directory = os.path.normcase(os.path.abspath(directory))
        self._events = events

    def on_any_event(self, event: FileSystemEvent) -> None:
        try:
            path = os.fsdecode(event.src_path)
            if (
                event.event_type == EVENT_TYPE_DELETED
                and os.path.normcase(os.path.abspath(path)) == self._directory
            ):
                # The watch itself is gone; nothing more will arrive
                self._events.put(WatcherError(f"Watched folder was removed: {path}"))
                self._events.put(_CLOSED)
                return
            kind = (
                OperationKind.CREATE
                if event.event_type == EVENT_TYPE_CREATED
                else OperationKind.OTHER
            )
            self._events.put(ChangeNotification(path=path, kind=kind))
        except Exception as exc:
            self._events.put(WatcherError(f"Could not translate {event!r}: {exc}"))


class Subscription:
    """A live watch on one folder.

    Iterate :meth:`events` to receive :class:`ChangeNotification` and
    :class:`WatcherError` items in delivery order.  The iteration yields
    ``None`` after :meth:`wake` and ends once the underlying observer
    has stopped.  Always call :meth:`close` when done.
    """

    def __init__(
        self,
        directory: str,
        observer: Any,
        events: queue.Queue,
        poll_interval: float = 1.0,
        join_timeout: float = 5.0,
    ):
        self.directory = directory
        self._observer = observer
        self._events = events
        self._poll_interval = poll_interval
        self._join_timeout = join_timeout
        self._closed = False

    def events(self) -> Iterator[WatchEvent | None]:
        """Yield events until the watch ends.  Not restartable."""
        while True:
            try:
                item = self._events.get(timeout=self._poll_interval)
            except queue.Empty:
                if self._closed:
                    return
                if not self._observer_alive():
                    logger.warning("Watcher for %s stopped unexpectedly.", self.directory)
                    return
                continue
            if item is _CLOSED:
                return
            if item is _WAKE:
                yield None
                continue
            yield item

    def wake(self) -> None:
        """Make a blocked :meth:`events` iteration yield ``None``."""
        self._events.put(_WAKE)

    def close(self) -> None:
        """Stop the observer and end the event stream.  Idempotent."""
        if self._closed:
            return
        self._closed = True
        _stop_observer(self._observer, self._join_timeout)
        self._events.put(_CLOSED)
        logger.info("Stopped watching %s", self.directory)

    @property
    def closed(self) -> bool:
        return self._closed

    def _observer_alive(self) -> bool:
        if not self._observer.is_alive():
            return False
        emitters = list(self._observer.emitters)
        return bool(emitters) and all(emitter.is_alive() for emitter in emitters)


class DirectoryWatcher:
    """Factory for non-recursive :class:`Subscription` objects on one folder.

    Usage:
        sub = DirectoryWatcher("/data/in").subscribe()
        try:
            for event in sub.events():
                ...
        finally:
            sub.close()
    """

    def __init__(self, directory: str, poll_interval: float = 1.0):
        self.directory = directory
        self._poll_interval = poll_interval

    def subscribe(self) -> Subscription:
        """Start watching.  Raises WatchSetupError if the folder cannot be watched."""
        if not os.path.isdir(self.directory):
            raise WatchSetupError(f"Source folder does not exist: {self.directory}")

        events: queue.Queue = queue.Queue()
        observer = Observer()
        try:
            observer.schedule(
                _QueueingHandler(self.directory, events),
                self.directory,
                recursive=False,
            )
            observer.start()
        except Exception as exc:
            _stop_observer(observer, 1.0)
            raise WatchSetupError(f"Cannot watch {self.directory}: {exc}") from exc

        logger.info("Watching '%s' (recursive=False)", self.directory)
        return Subscription(self.directory, observer, events, self._poll_interval)


def _stop_observer(observer: Any, timeout: float) -> None:
    """Stop *observer*; safe even if it was never started."""
    try:
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=timeout)
    except Exception:
        logger.warning("Error while stopping watcher.", exc_info=True)
