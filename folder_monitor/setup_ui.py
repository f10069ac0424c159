"""Folder pickers used by configuration mode.

Built with wxPython so the native directory dialog (Win32, Cocoa, GTK)
is used, which participates in the OS accessibility hierarchy.
"""

import logging

import wx

from folder_monitor.errors import SetupCancelled

logger = logging.getLogger(__name__)


def _browse(title: str, default_path: str = "") -> str:
    dlg = wx.DirDialog(
        None,
        title,
        defaultPath=default_path,
        style=wx.DD_DEFAULT_STYLE | wx.DD_DIR_MUST_EXIST,
    )
    try:
        if dlg.ShowModal() != wx.ID_OK:
            raise SetupCancelled(f"{title}: cancelled")
        return dlg.GetPath()
    finally:
        dlg.Destroy()


def choose_folders() -> tuple[str, str]:
    """Prompt for the source and destination folders, in that order."""
    app = wx.App(False)  # noqa: F841 (dialogs need a live wx.App)
    source = _browse("Select Source Folder")
    logger.debug("Source folder chosen: %s", source)
    dest = _browse("Select Destination Folder")
    logger.debug("Destination folder chosen: %s", dest)
    return source, dest
