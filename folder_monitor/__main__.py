"""Entry point for Folder Monitor.

Usage:
    python -m folder_monitor            Run the monitoring service
    python -m folder_monitor --config   Pick the source and destination
                                        folders and save them
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable
from pathlib import Path

from folder_monitor import __app_name__, __version__
from folder_monitor.config import Config
from folder_monitor.errors import ConfigError, FolderMonitorError

logger = logging.getLogger("folder_monitor")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="folder-monitor",
        description=f"{__app_name__} {__version__}: copies new files "
        "from a watched folder to a destination folder.",
    )
    parser.add_argument(
        "-config",
        "--config",
        action="store_true",
        help="Run configuration UI to select folders",
    )
    return parser.parse_args(argv)


def configure(
    path: Path | None = None,
    choose: Callable[[], tuple[str, str]] | None = None,
) -> Config:
    """Ask for both folders and write them to the configuration file."""
    if choose is None:
        from folder_monitor.setup_ui import choose_folders as choose

    source, dest = choose()
    cfg = Config(path, load=False)
    cfg.source_dir = source
    cfg.dest_dir = dest
    cfg.save()
    return cfg


def main(argv: list[str] | None = None) -> int:
    """Parse the command line and run configuration or service mode."""
    args = _parse_args(argv)

    if args.config:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
        try:
            cfg = configure()
        except FolderMonitorError as exc:
            logger.critical("Configuration failed: %s", exc)
            return 1
        except Exception as exc:
            logger.critical("Error selecting folders: %s", exc)
            return 1
        print(f"Configuration saved successfully to {cfg.path}")
        return 0

    try:
        cfg = Config()
    except ConfigError as exc:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
        logger.critical("Error reading config: %s", exc)
        return 1

    from folder_monitor.service import run_service

    run_service(cfg)
    return 0


if __name__ == "__main__":
    sys.exit(main())
