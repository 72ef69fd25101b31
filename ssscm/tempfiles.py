"""Scoped temporary script files."""

from __future__ import annotations

import logging
import os
import tempfile

logger = logging.getLogger(__name__)


class TextTempFile:
    """Handle to a temporary text file created by `create_text_temp_file`."""

    def __init__(self, path: str) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def delete(self) -> None:
        """Remove the file. Deleting a file that is already gone is a no-op.

        Raises:
            OSError: If the file exists but cannot be removed
        """
        try:
            os.unlink(self._path)
        except FileNotFoundError:
            return
        logger.debug("Deleted temp file %s", self._path)

    def __repr__(self) -> str:
        return f"TextTempFile({self._path!r})"


def create_text_temp_file(base_dir: str, prefix: str, suffix: str, contents: str) -> TextTempFile:
    """Create a uniquely named file in base_dir holding contents verbatim.

    The name is chosen by `tempfile.mkstemp`, so concurrent builds sharing a
    workspace never collide.

    Args:
        base_dir: Directory to create the file in (must exist)
        prefix: File name prefix
        suffix: File name suffix
        contents: Text written as UTF-8 without newline translation

    Returns:
        Handle for the created file

    Raises:
        OSError: If the file cannot be created or written
        UnicodeEncodeError: If contents hold a surrogate outside the escaped byte range
    """
    fd, path = tempfile.mkstemp(suffix=suffix, prefix=prefix, dir=base_dir)
    try:
        # surrogateescape puts undecodable bytes from the job config back on disk unchanged
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
            f.write(contents)
    except BaseException:
        os.unlink(path)
        raise
    path = os.path.abspath(path)
    logger.debug("Created temp file %s", path)
    return TextTempFile(path)
