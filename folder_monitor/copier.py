"""
File copy operation for Folder Monitor.

Copies one regular file to a destination path, streaming the bytes in
fixed-size chunks.  An existing destination is truncated and rewritten
in place (no temp file, no rename), so a concurrent reader may observe
a partially written file.
"""

import logging
import os
import shutil
import stat

from folder_monitor.errors import CopyError, NotRegularFile

logger = logging.getLogger(__name__)

_COPY_CHUNK = 256 * 1024  # 256 KiB read chunks


def copy_file(src: str | os.PathLike, dst: str | os.PathLike) -> None:
    """
    Copy the regular file *src* to *dst*, overwriting *dst* if it exists.

    Raises
    ------
    NotRegularFile
        *src* is a directory, device, FIFO, etc.  *dst* is not touched.
    CopyError
        *src* cannot be stat'ed or opened, *dst* cannot be created, or
        the transfer fails part-way.
    """
    try:
        st = os.stat(src)
    except OSError as exc:
        raise CopyError(f"Cannot stat {src}: {exc}") from exc

    if not stat.S_ISREG(st.st_mode):
        raise NotRegularFile(os.fspath(src))

    try:
        with open(src, "rb") as fsrc, open(dst, "wb") as fdst:
            shutil.copyfileobj(fsrc, fdst, _COPY_CHUNK)
    except OSError as exc:
        raise CopyError(f"Failed to copy {src} -> {dst}: {exc}") from exc

    logger.debug("Copied %s -> %s (%d bytes)", src, dst, st.st_size)
