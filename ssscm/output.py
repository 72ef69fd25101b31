"""OutputSink that streams script output to a logger and a log file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Dict, Optional

logger = logging.getLogger(__name__)


class FileLogSink:
    """Logs script output line by line and appends the raw bytes to a file.

    Launchers deliver output in arbitrary chunks, so a partial trailing line
    is held back until its newline arrives (or until close). Script output is
    logged at INFO, diagnostics at ERROR.
    """

    def __init__(self, build_logger: logging.Logger, log_file_path: Path) -> None:
        self.build_logger = build_logger
        self.log_file_path = Path(log_file_path)
        self._pending: Dict[int, bytes] = {logging.INFO: b"", logging.ERROR: b""}
        self._file_handle: Optional[BinaryIO] = None
        try:
            self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_handle = open(self.log_file_path, "ab")
        except OSError as exc:
            logger.warning("Failed to open log file %s: %s", self.log_file_path, exc)

    def write_stdout(self, data: bytes) -> None:
        self._write(data, logging.INFO)

    def write_stderr(self, data: bytes) -> None:
        self._write(data, logging.ERROR)

    def _write(self, data: bytes, level: int) -> None:
        if not data:
            return
        *lines, self._pending[level] = (self._pending[level] + data).split(b"\n")
        for line in lines:
            self._log_line(line, level)

        if self._file_handle:
            try:
                self._file_handle.write(data)
                self._file_handle.flush()
            except OSError as exc:
                logger.warning("Error writing to log file %s: %s", self.log_file_path, exc)

    def _log_line(self, line: bytes, level: int) -> None:
        text = line.decode("utf-8", errors="replace").rstrip("\r")
        if text.strip():
            self.build_logger.log(level, text)

    def close(self) -> None:
        """Log any unterminated last line and close the file."""
        for level, rest in self._pending.items():
            if rest:
                self._log_line(rest, level)
                self._pending[level] = b""
        if self._file_handle:
            try:
                self._file_handle.close()
            except OSError as exc:
                logger.debug("Error closing log file %s: %s", self.log_file_path, exc)
            self._file_handle = None

    def __enter__(self) -> "FileLogSink":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
