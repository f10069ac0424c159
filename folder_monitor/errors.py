"""Exception hierarchy for Folder Monitor."""


class FolderMonitorError(Exception):
    """Base class for all Folder Monitor errors."""


class ConfigError(FolderMonitorError):
    """Configuration is missing, unreadable or invalid."""


class SetupCancelled(FolderMonitorError):
    """The user dismissed a folder prompt in configuration mode."""


class WatchSetupError(FolderMonitorError):
    """The source folder cannot be watched or the destination cannot be created."""


class WatcherError(FolderMonitorError):
    """Advisory failure reported by the underlying notification subsystem."""


class CopyError(FolderMonitorError):
    """A single file could not be copied."""


class NotRegularFile(CopyError):
    """The copy source is not a regular file."""

    def __init__(self, path: str):
        super().__init__(f"{path} is not a regular file")
        self.path = path
