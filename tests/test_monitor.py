"""
Tests for the event dispatch loop, driven by a scripted watcher
"""
import logging
import threading
from pathlib import Path

import pytest

from folder_monitor.errors import WatcherError, WatchSetupError
from folder_monitor.monitor import FolderMonitor, LoopState
from folder_monitor.shutdown import ShutdownSignal
from folder_monitor.watcher import ChangeNotification, OperationKind

from .helpers import FakeWatcher, wait_for


def created(path: Path) -> ChangeNotification:
    return ChangeNotification(path=str(path), kind=OperationKind.CREATE)


def run_to_completion(monitor: FolderMonitor, fake_watcher: FakeWatcher, *events):
    """Feed *events*, close the stream, and run the loop on this thread"""
    fake_watcher.subscription.push(*events)
    fake_watcher.subscription.end()
    monitor.run(ShutdownSignal())


@pytest.fixture
def monitor(source_dir: Path, dest_dir: Path, fake_watcher: FakeWatcher) -> FolderMonitor:
    return FolderMonitor(str(source_dir), str(dest_dir), watcher_factory=fake_watcher)


class TestStartup:
    """Entering and leaving the watching state"""

    def test_initial_state_is_idle(self, monitor: FolderMonitor):
        assert monitor.state is LoopState.IDLE

    def test_missing_destination_is_created_before_watching(
        self, source_dir: Path, tmp_path: Path, fake_watcher: FakeWatcher
    ):
        dest = tmp_path / "deep" / "nested" / "dest"
        monitor = FolderMonitor(str(source_dir), str(dest), watcher_factory=fake_watcher)

        run_to_completion(monitor, fake_watcher)

        assert dest.is_dir()
        assert fake_watcher.directories == [str(source_dir)]

    def test_destination_failure_never_reaches_watching(
        self, source_dir: Path, tmp_path: Path, fake_watcher: FakeWatcher
    ):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("file in the way")
        monitor = FolderMonitor(str(source_dir), str(blocker), watcher_factory=fake_watcher)

        with pytest.raises(WatchSetupError):
            monitor.run(ShutdownSignal())

        assert monitor.state is LoopState.STOPPED
        assert fake_watcher.directories == []

    def test_watch_setup_error_is_raised_and_loop_stops(
        self, source_dir: Path, dest_dir: Path, caplog
    ):
        watcher = FakeWatcher(setup_error=WatchSetupError("cannot watch"))
        monitor = FolderMonitor(str(source_dir), str(dest_dir), watcher_factory=watcher)

        with caplog.at_level(logging.ERROR), pytest.raises(WatchSetupError):
            monitor.run(ShutdownSignal())

        assert monitor.state is LoopState.STOPPED
        assert "cannot watch" in caplog.text

    def test_stream_closure_stops_loop_and_releases_watch(
        self, monitor: FolderMonitor, fake_watcher: FakeWatcher, caplog
    ):
        with caplog.at_level(logging.WARNING):
            run_to_completion(monitor, fake_watcher)

        assert monitor.state is LoopState.STOPPED
        assert fake_watcher.subscription.close_calls == 1
        assert "stream closed" in caplog.text

    def test_state_is_watching_while_running(
        self, monitor: FolderMonitor, fake_watcher: FakeWatcher
    ):
        shutdown = ShutdownSignal()
        thread = threading.Thread(target=monitor.run, args=(shutdown,))
        thread.start()
        try:
            assert wait_for(lambda: monitor.state is LoopState.WATCHING)
        finally:
            shutdown.fire()
            thread.join(timeout=5)
        assert monitor.state is LoopState.STOPPED


class TestDispatch:
    """What happens for each kind of event"""

    def test_created_file_is_copied(
        self, monitor: FolderMonitor, fake_watcher: FakeWatcher, source_dir: Path, dest_dir: Path
    ):
        src = source_dir / "a.txt"
        src.write_text("hi")

        run_to_completion(monitor, fake_watcher, created(src))

        assert (dest_dir / "a.txt").read_text() == "hi"

    def test_created_directory_is_skipped(
        self, monitor: FolderMonitor, fake_watcher: FakeWatcher, source_dir: Path, dest_dir: Path
    ):
        sub = source_dir / "sub"
        sub.mkdir()

        run_to_completion(monitor, fake_watcher, created(sub))

        assert list(dest_dir.iterdir()) == []

    def test_non_create_events_are_ignored(
        self, monitor: FolderMonitor, fake_watcher: FakeWatcher, source_dir: Path, dest_dir: Path
    ):
        src = source_dir / "a.txt"
        src.write_text("hi")

        run_to_completion(
            monitor,
            fake_watcher,
            ChangeNotification(path=str(src), kind=OperationKind.OTHER),
        )

        assert not (dest_dir / "a.txt").exists()

    def test_vanished_file_is_logged_and_loop_continues(
        self, monitor: FolderMonitor, fake_watcher: FakeWatcher, source_dir: Path, dest_dir: Path, caplog
    ):
        later = source_dir / "b.txt"
        later.write_text("still here")

        with caplog.at_level(logging.ERROR):
            run_to_completion(
                monitor, fake_watcher, created(source_dir / "gone.txt"), created(later)
            )

        assert "Error stating file" in caplog.text
        assert (dest_dir / "b.txt").read_text() == "still here"

    def test_copy_failure_does_not_stop_monitoring(
        self, monitor: FolderMonitor, fake_watcher: FakeWatcher, source_dir: Path, dest_dir: Path, caplog
    ):
        # A directory in the destination with the same name makes the copy fail
        (dest_dir / "clash.txt").mkdir(parents=True)
        clash = source_dir / "clash.txt"
        clash.write_text("x")
        ok = source_dir / "ok.txt"
        ok.write_text("fine")

        with caplog.at_level(logging.ERROR):
            run_to_completion(monitor, fake_watcher, created(clash), created(ok))

        assert "Error copying file" in caplog.text
        assert (dest_dir / "clash.txt").is_dir()
        assert (dest_dir / "ok.txt").read_text() == "fine"

    def test_watcher_errors_are_logged_and_loop_continues(
        self, monitor: FolderMonitor, fake_watcher: FakeWatcher, source_dir: Path, dest_dir: Path, caplog
    ):
        src = source_dir / "after.txt"
        src.write_text("after errors")

        with caplog.at_level(logging.ERROR):
            run_to_completion(
                monitor,
                fake_watcher,
                WatcherError("overflow 1"),
                WatcherError("overflow 2"),
                WatcherError("overflow 3"),
                created(src),
            )

        assert caplog.text.count("Watcher error") == 3
        assert (dest_dir / "after.txt").read_text() == "after errors"

    def test_existing_destination_is_overwritten(
        self, monitor: FolderMonitor, fake_watcher: FakeWatcher, source_dir: Path, dest_dir: Path
    ):
        dest_dir.mkdir()
        (dest_dir / "a.txt").write_text("old")
        src = source_dir / "a.txt"
        src.write_text("new")

        run_to_completion(monitor, fake_watcher, created(src))

        assert (dest_dir / "a.txt").read_text() == "new"

    def test_injected_logger_receives_messages(
        self, source_dir: Path, dest_dir: Path, fake_watcher: FakeWatcher, caplog
    ):
        custom = logging.getLogger("tests.custom_monitor_log")
        monitor = FolderMonitor(
            str(source_dir), str(dest_dir), log=custom, watcher_factory=fake_watcher
        )

        with caplog.at_level(logging.INFO, logger="tests.custom_monitor_log"):
            run_to_completion(monitor, fake_watcher)

        assert any(
            r.name == "tests.custom_monitor_log" and "Monitoring directory" in r.getMessage()
            for r in caplog.records
        )


class TestShutdown:
    """Cooperative shutdown of the loop"""

    def test_signal_fired_before_run_processes_nothing(
        self, monitor: FolderMonitor, fake_watcher: FakeWatcher, source_dir: Path, dest_dir: Path
    ):
        src = source_dir / "a.txt"
        src.write_text("hi")
        fake_watcher.subscription.push(created(src))
        shutdown = ShutdownSignal()
        shutdown.fire()

        monitor.run(shutdown)

        assert not (dest_dir / "a.txt").exists()
        assert fake_watcher.subscription.closed
        assert monitor.state is LoopState.STOPPED

    def test_events_after_shutdown_are_not_processed(
        self, monitor: FolderMonitor, fake_watcher: FakeWatcher, source_dir: Path, dest_dir: Path
    ):
        first = source_dir / "first.txt"
        first.write_text("1")
        second = source_dir / "second.txt"
        second.write_text("2")
        shutdown = ShutdownSignal()
        thread = threading.Thread(target=monitor.run, args=(shutdown,))
        thread.start()

        fake_watcher.subscription.push(created(first))
        assert wait_for(lambda: (dest_dir / "first.txt").exists())

        shutdown.fire()
        fake_watcher.subscription.push(created(second))
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert not (dest_dir / "second.txt").exists()
        assert fake_watcher.subscription.close_calls == 1
