from __future__ import annotations

from typing import Mapping, Optional, Protocol, Sequence


class OutputSink(Protocol):
    """Destination for script output and diagnostic messages."""

    def write_stdout(self, data: bytes) -> None:  # pragma: no cover - protocol
        ...

    def write_stderr(self, data: bytes) -> None:  # pragma: no cover - protocol
        ...


class ProcessLauncher(Protocol):
    """Runs a command line to completion on behalf of the script runner.

    Implementations block until the process exits and stream its combined
    output to the sink while it runs. An interruption during the wait must
    propagate to the caller after the child has been dealt with.
    """

    def launch(
        self,
        argv: Sequence[str],
        cwd: str,
        environment: Mapping[str, str],
        sink: OutputSink,
    ) -> int:  # pragma: no cover - protocol
        """Run argv in cwd with the given environment.

        Args:
            argv: Command and arguments
            cwd: Working directory for the process
            environment: Complete process environment
            sink: Receives stdout and stderr as they are produced

        Returns:
            Exit code of the process

        Raises:
            LaunchError: If the process could not be started or awaited
        """
        ...


class LaunchError(RuntimeError):
    """Raised when a command line cannot be run at all."""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class InMemoryOutputSink:
    """Simple bytes-accumulating sink useful for tests and bootstrap wiring."""

    def __init__(self) -> None:
        self._stdout: bytearray = bytearray()
        self._stderr: bytearray = bytearray()

    def write_stdout(self, data: bytes) -> None:
        self._stdout.extend(data)

    def write_stderr(self, data: bytes) -> None:
        self._stderr.extend(data)

    @property
    def stdout(self) -> bytes:
        return bytes(self._stdout)

    @property
    def stderr(self) -> bytes:
        return bytes(self._stderr)
