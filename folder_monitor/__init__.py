"""Folder Monitor: copies new files from a watched folder to a destination.

Runs as a long-lived background service: a dispatch loop consumes
filesystem notifications for one source folder and copies each newly
created regular file into the configured destination folder.
"""

__version__ = "1.0.0"
__app_name__ = "Folder Monitor"

SERVICE_NAME = "FolderMonitorService"
SERVICE_DISPLAY_NAME = "Folder Monitor Service"
SERVICE_DESCRIPTION = "Monitors a folder and copies new files to a destination folder."
