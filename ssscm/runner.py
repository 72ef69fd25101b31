"""Script runner: executes a script body through a shell or its own interpreter.

The runner writes the script to a temporary file in the workspace, builds the
command line, hands it to a ProcessLauncher and always removes the temporary
file afterwards. Failures never escape as exceptions; they are written to the
output sink and reported through the exit code channel as -1.
"""

from __future__ import annotations

import logging
import os
import shlex
import traceback
from typing import Callable, List, Mapping, Optional

from . import config as ssscm_config
from .launcher import LaunchError, OutputSink, ProcessLauncher, get_launcher
from .tempfiles import TextTempFile, create_text_temp_file

logger = logging.getLogger(__name__)

INTERPRETER_DIRECTIVE = "#!"
SHELL_FLAGS = "-xe"
FAILED_EXIT_CODE = -1

TempFileFactory = Callable[[str, str, str, str], TextTempFile]


def build_command_line(script: str, script_path: str, default_shell: str = "/bin/sh") -> List[str]:
    """Build the argument vector used to run a script file.

    A script starting with "#!" names its own interpreter: the first line is
    tokenized with shell quoting rules, "#!" is dropped from the first token
    and the script path is appended. Any other script runs as
    `<default_shell> -xe <script_path>`.

    Args:
        script: Script body
        script_path: Path of the file holding the script body
        default_shell: Shell for scripts without an interpreter directive

    Returns:
        Argument vector

    Raises:
        ValueError: If the interpreter directive has unbalanced quotes

    Examples:
        >>> build_command_line("#!/usr/bin/env python3 -u\\nprint(1)", "/ws/s.sh")
        ['/usr/bin/env', 'python3', '-u', '/ws/s.sh']
        >>> build_command_line("make checkout", "/ws/s.sh")
        ['/bin/sh', '-xe', '/ws/s.sh']
    """
    if not script.startswith(INTERPRETER_DIRECTIVE):
        return [default_shell, SHELL_FLAGS, script_path]

    end = script.find("\n")
    if end < 0:
        end = len(script)
    args = shlex.split(script[:end].strip())
    args.append(script_path)
    args[0] = args[0][len(INTERPRETER_DIRECTIVE):]
    return args


def _report(sink: OutputSink, message: str, exc: Optional[BaseException] = None) -> None:
    """Write a FATAL diagnostic, with the exception details, to the sink."""
    text = f"FATAL: {message}\n"
    if exc is not None:
        text += "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    sink.write_stderr(text.encode("utf-8", errors="replace"))


class ScriptRunner:
    """Runs script bodies in a workspace and returns their exit codes.

    Example:
        runner = ScriptRunner()
        exit_code = runner.execute("make fetch", "/var/lib/ci/workspace", sink)
    """

    def __init__(
        self,
        launcher: Optional[ProcessLauncher] = None,
        *,
        default_shell: Optional[str] = None,
        temp_prefix: Optional[str] = None,
        temp_suffix: Optional[str] = None,
        temp_file_factory: TempFileFactory = create_text_temp_file,
    ) -> None:
        """Initialize the runner.

        Args:
            launcher: Process launcher (configured launcher if None)
            default_shell: Shell for scripts without "#!" (config default_shell if None)
            temp_prefix: Temp file name prefix (config temp_prefix if None)
            temp_suffix: Temp file name suffix (config temp_suffix if None)
            temp_file_factory: Creates the temp file; replaceable in tests
        """
        self.launcher = launcher if launcher is not None else get_launcher()
        self.default_shell = default_shell if default_shell is not None else ssscm_config.ssscm_default_shell()
        self.temp_prefix = temp_prefix if temp_prefix is not None else ssscm_config.ssscm_temp_prefix()
        self.temp_suffix = temp_suffix if temp_suffix is not None else ssscm_config.ssscm_temp_suffix()
        self.temp_file_factory = temp_file_factory

    def execute(
        self,
        script: str,
        workspace: str,
        sink: OutputSink,
        environment: Optional[Mapping[str, str]] = None,
    ) -> int:
        """Run a script body in the workspace.

        Args:
            script: Script body (may be empty)
            workspace: Existing, writable working directory
            sink: Receives process output and diagnostics
            environment: Process environment (inherited os.environ if None)

        Returns:
            Exit code of the script, or -1 if it could not be produced or run

        Raises:
            KeyboardInterrupt: If interrupted while waiting; the temp file is
                still removed
        """
        workspace = os.fspath(workspace)
        try:
            script_file = self.temp_file_factory(
                workspace, self.temp_prefix, self.temp_suffix, script
            )
        except (OSError, UnicodeError) as exc:
            logger.error("Unable to produce a script file in %s: %s", workspace, exc)
            _report(sink, "Unable to produce a script file", exc)
            return FAILED_EXIT_CODE

        try:
            try:
                argv = build_command_line(script, script_file.path, self.default_shell)
            except ValueError as exc:
                logger.error("Unable to parse interpreter directive: %s", exc)
                _report(sink, "Unable to parse interpreter directive", exc)
                return FAILED_EXIT_CODE

            logger.debug("Running %s in %s", argv, workspace)
            env = dict(os.environ if environment is None else environment)
            try:
                exit_code = self.launcher.launch(argv, workspace, env, sink)
            except LaunchError as exc:
                logger.error("Command execution failed: %s", exc)
                _report(sink, "command execution failed", exc)
                exit_code = FAILED_EXIT_CODE
            return exit_code
        finally:
            try:
                script_file.delete()
            except OSError as exc:
                logger.error("Unable to delete script file %s: %s", script_file.path, exc)
                _report(sink, f"Unable to delete script file {script_file.path}", exc)
