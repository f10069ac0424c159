"""
Background service support for Folder Monitor.

:class:`MonitorService` is the lifecycle controller: ``start()`` launches
the dispatch loop on its own thread and returns at once, ``stop()`` fires
the shutdown signal and waits (boundedly) for the loop to finish.

:func:`run_service` hosts the controller:

**Windows**: when launched by the service control manager, runs as the
``FolderMonitorService`` Windows service via pywin32.

**Everywhere else** (and on Windows outside the SCM): runs as a headless
foreground process until SIGINT/SIGTERM.
"""

import logging
import logging.handlers
import signal
import sys
import threading

from folder_monitor import (
    SERVICE_DESCRIPTION,
    SERVICE_DISPLAY_NAME,
    SERVICE_NAME,
    __app_name__,
    __version__,
)
from folder_monitor.config import Config, get_log_path
from folder_monitor.errors import FolderMonitorError
from folder_monitor.monitor import FolderMonitor
from folder_monitor.platform_utils import IS_WINDOWS
from folder_monitor.shutdown import ShutdownSignal

logger = logging.getLogger(__name__)

# ---- Windows service (pywin32) -----------------------------------------

_HAS_WIN32 = False
if IS_WINDOWS:
    try:
        import servicemanager  # type: ignore[import-untyped]
        import win32event  # type: ignore[import-untyped]
        import win32service  # type: ignore[import-untyped]
        import win32serviceutil  # type: ignore[import-untyped]
        _HAS_WIN32 = True
    except ImportError:
        pass

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


# ======================================================================
# Lifecycle controller
# ======================================================================

class MonitorService:
    """
    Owns one dispatch loop thread.

    Parameters
    ----------
    monitor : FolderMonitor
        The dispatch loop to run.
    log : logging.Logger, optional
        Logger for lifecycle messages.  Defaults to this module's logger.
    stop_timeout : float
        Longest time ``stop()`` waits for the loop thread to finish.
    """

    def __init__(
        self,
        monitor: FolderMonitor,
        log: logging.Logger | None = None,
        stop_timeout: float = 5.0,
    ):
        self.monitor = monitor
        self._log = log or logger
        self._stop_timeout = stop_timeout
        self._shutdown: ShutdownSignal | None = None
        self._thread: threading.Thread | None = None

    @classmethod
    def from_config(cls, cfg: Config, log: logging.Logger | None = None) -> "MonitorService":
        """Build a service for the folders named in *cfg*."""
        return cls(FolderMonitor(cfg.source_dir, cfg.dest_dir, log=log), log=log)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Launch the dispatch loop in the background and return immediately."""
        if self.is_running:
            self._log.warning("Service already running; start ignored.")
            return
        self._log.info("Service starting...")
        self._shutdown = ShutdownSignal()
        self._thread = threading.Thread(
            target=self._run_loop,
            args=(self._shutdown,),
            daemon=True,
            name="DispatchLoop",
        )
        self._thread.start()

    def stop(self) -> None:
        """Fire the shutdown signal once and wait briefly for the loop to exit."""
        if self._shutdown is None or not self._shutdown.fire():
            return
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._stop_timeout)
            if thread.is_alive():
                self._log.warning(
                    "Dispatch loop still busy after %.1fs; it will exit "
                    "once the current copy finishes.",
                    self._stop_timeout,
                )
        self._log.info("Service stopped")

    def _run_loop(self, shutdown: ShutdownSignal) -> None:
        try:
            self.monitor.run(shutdown)
        except FolderMonitorError as exc:
            self._log.error("Monitoring aborted: %s", exc)
        except Exception:
            self._log.exception("Unexpected error in dispatch loop")


# ======================================================================
# Logging
# ======================================================================

def setup_logging(cfg: Config, event_log: bool = False) -> None:
    """Configure rotating file log and stderr handler on the root logger."""
    level = getattr(logging, cfg.log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    fmt = logging.Formatter(_LOG_FORMAT)

    try:
        fh = logging.handlers.RotatingFileHandler(
            str(get_log_path()),
            maxBytes=cfg.max_log_size_mb * 1024 * 1024,
            backupCount=cfg.log_backup_count,
            encoding="utf-8",
        )
    except OSError as exc:
        print(f"Cannot open log file: {exc}", file=sys.stderr)
    else:
        fh.setLevel(level)
        fh.setFormatter(fmt)
        root_logger.addHandler(fh)

    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(level)
    sh.setFormatter(fmt)
    root_logger.addHandler(sh)

    if event_log and _HAS_WIN32:
        try:
            # Registering the event source needs admin rights the first time
            eh = logging.handlers.NTEventLogHandler(SERVICE_NAME)
        except Exception as exc:
            logger.warning("Windows event log unavailable: %s", exc)
        else:
            eh.setLevel(logging.WARNING)
            eh.setFormatter(logging.Formatter("%(name)s: %(message)s"))
            root_logger.addHandler(eh)


# ======================================================================
# Windows service
# ======================================================================

if _HAS_WIN32:

    class FolderMonitorWindowsService(win32serviceutil.ServiceFramework):
        """Windows service wrapper around :class:`MonitorService`."""

        _svc_name_ = SERVICE_NAME
        _svc_display_name_ = SERVICE_DISPLAY_NAME
        _svc_description_ = SERVICE_DESCRIPTION

        # Set by run_service() before the dispatcher starts
        config: Config | None = None

        def __init__(self, args):
            super().__init__(args)
            self._stop_event = win32event.CreateEvent(None, 0, 0, None)
            self._service: MonitorService | None = None

        def SvcStop(self):
            self.ReportServiceStatus(win32service.SERVICE_STOP_PENDING)
            if self._service:
                self._service.stop()
            win32event.SetEvent(self._stop_event)

        def SvcDoRun(self):
            servicemanager.LogMsg(
                servicemanager.EVENTLOG_INFORMATION_TYPE,
                servicemanager.PYS_SERVICE_STARTED,
                (self._svc_name_, ""),
            )
            self._service = MonitorService.from_config(type(self).config)
            self._service.start()
            win32event.WaitForSingleObject(self._stop_event, win32event.INFINITE)


def _run_windows_service(cfg: Config) -> bool:
    """Hand control to the SCM.  Returns False if not launched as a service."""
    FolderMonitorWindowsService.config = cfg
    try:
        servicemanager.Initialize()
        servicemanager.PrepareToHostSingle(FolderMonitorWindowsService)
        servicemanager.StartServiceCtrlDispatcher()
    except Exception as exc:
        # error 1063: the process was started from a console, not the SCM
        logger.debug("Not running under the service control manager: %s", exc)
        return False
    return True


# ======================================================================
# Cross-platform headless runner
# ======================================================================

def _run_foreground(service: MonitorService) -> None:
    """Run the service in the foreground until SIGINT/SIGTERM."""
    stop_requested = threading.Event()

    def _handler(sig, frame):
        stop_requested.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)

    service.start()
    print(f"{__app_name__} running (press Ctrl-C to stop)...")
    # Short waits keep the main thread responsive to signals on Windows
    while not stop_requested.wait(timeout=1):
        pass
    service.stop()
    print(f"{__app_name__} stopped.")


def run_service(cfg: Config) -> None:
    """Run the monitor under the host service manager until told to stop."""
    setup_logging(cfg, event_log=IS_WINDOWS)
    logger.info("%s %s starting.", __app_name__, __version__)

    if _HAS_WIN32 and _run_windows_service(cfg):
        return
    _run_foreground(MonitorService.from_config(cfg))
