"""
Event dispatch loop for Folder Monitor.

Consumes notifications from a :class:`~folder_monitor.watcher.Subscription`
and copies every newly created regular file into the destination folder.
Copies run synchronously, one at a time, in the order the watcher
delivers events.
"""

from __future__ import annotations

import enum
import logging
import os
import stat
from collections.abc import Callable
from typing import Any

from folder_monitor.copier import copy_file
from folder_monitor.errors import CopyError, WatcherError, WatchSetupError
from folder_monitor.shutdown import ShutdownSignal
from folder_monitor.watcher import ChangeNotification, DirectoryWatcher, OperationKind

logger = logging.getLogger(__name__)


class LoopState(enum.Enum):
    IDLE = "idle"
    WATCHING = "watching"
    STOPPED = "stopped"


class FolderMonitor:
    """
    Watches *source_dir* and mirrors new files into *dest_dir*.

    Parameters
    ----------
    source_dir : str
        Folder to watch (non-recursively).
    dest_dir : str
        Folder receiving the copies; created if missing.
    log : logging.Logger, optional
        Where to report progress and failures.  Defaults to this module's
        logger.
    watcher_factory : callable, optional
        Builds the watcher for *source_dir*; must return an object with a
        ``subscribe()`` method.
    """

    def __init__(
        self,
        source_dir: str,
        dest_dir: str,
        log: logging.Logger | None = None,
        watcher_factory: Callable[[str], Any] = DirectoryWatcher,
    ):
        self.source_dir = source_dir
        self.dest_dir = dest_dir
        self._log = log or logger
        self._watcher_factory = watcher_factory
        self._state = LoopState.IDLE

    @property
    def state(self) -> LoopState:
        return self._state

    def run(self, shutdown: ShutdownSignal) -> None:
        """Run until *shutdown* fires or the watcher stops.

        Raises WatchSetupError, without ever entering the watching state,
        if the destination cannot be created or the source cannot be
        watched.
        """
        subscription = None
        try:
            self._ensure_destination()
            try:
                subscription = self._watcher_factory(self.source_dir).subscribe()
            except WatchSetupError as exc:
                self._log.error("Error adding source directory to watcher: %s", exc)
                raise

            shutdown.add_waker(subscription.wake)
            self._state = LoopState.WATCHING
            self._log.info("Monitoring directory: %s", self.source_dir)

            for event in subscription.events():
                if shutdown.is_set():
                    break
                if event is None:
                    continue
                if isinstance(event, WatcherError):
                    self._log.error("Watcher error: %s", event)
                    continue
                self._dispatch(event)

            if shutdown.is_set():
                self._log.info("Service stopping...")
            else:
                self._log.warning("Watcher stream closed; monitoring ended.")
        finally:
            if subscription is not None:
                subscription.close()
            self._state = LoopState.STOPPED

    def _ensure_destination(self) -> None:
        try:
            os.makedirs(self.dest_dir, exist_ok=True)
        except OSError as exc:
            self._log.error("Error creating destination directory: %s", exc)
            raise WatchSetupError(
                f"Cannot create destination folder {self.dest_dir}: {exc}"
            ) from exc

    def _dispatch(self, event: ChangeNotification) -> None:
        if event.kind is not OperationKind.CREATE:
            self._log.debug("Ignoring %s event for %s", event.kind.value, event.path)
            return

        self._log.info("New file detected: %s", event.path)
        # Notifications carry no type information
        try:
            st = os.stat(event.path)
        except OSError as exc:
            self._log.error("Error stating file: %s", exc)
            return
        if stat.S_ISDIR(st.st_mode):
            self._log.info("Directory created, skipping: %s", event.path)
            return

        dest_path = os.path.join(self.dest_dir, os.path.basename(event.path))
        try:
            copy_file(event.path, dest_path)
        except CopyError as exc:
            self._log.error("Error copying file: %s", exc)
        else:
            self._log.info("Copied file %s to %s", event.path, dest_path)

