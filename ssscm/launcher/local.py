"""Host process launcher."""

from __future__ import annotations

import logging
import subprocess
from typing import Mapping, Sequence

from .interface import LaunchError, OutputSink, ProcessLauncher

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096


class LocalLauncher(ProcessLauncher):
    """Runs command lines as child processes of the current process.

    stderr is merged into stdout so the sink sees output in the order the
    script produced it.
    """

    def launch(
        self,
        argv: Sequence[str],
        cwd: str,
        environment: Mapping[str, str],
        sink: OutputSink,
    ) -> int:
        logger.debug("Launching %s in %s", list(argv), cwd)
        try:
            proc = subprocess.Popen(
                list(argv),
                cwd=cwd,
                env=dict(environment),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except (OSError, ValueError) as exc:
            raise LaunchError(f"failed to launch {argv[0]}: {exc}", cause=exc)

        try:
            assert proc.stdout is not None
            with proc.stdout:
                while True:
                    chunk = proc.stdout.read1(READ_CHUNK_SIZE)
                    if not chunk:
                        break
                    sink.write_stdout(chunk)
            exit_code = proc.wait()
        except BaseException:
            # Interrupted or the sink failed: do not leave the child behind
            logger.warning("Interrupted while waiting for pid %d, killing it", proc.pid)
            proc.kill()
            proc.wait()
            raise

        logger.debug("Process %d exited with %d", proc.pid, exit_code)
        return exit_code
