"""Shell script SCM: checkout and change polling driven by user scripts."""

from .launcher import InMemoryOutputSink, LaunchError, LocalLauncher, get_launcher
from .runner import ScriptRunner, build_command_line
from .scm import SCMDescriptor, ScriptConfiguration, ShellScriptSCM

__all__ = [
    "InMemoryOutputSink",
    "LaunchError",
    "LocalLauncher",
    "SCMDescriptor",
    "ScriptConfiguration",
    "ScriptRunner",
    "ShellScriptSCM",
    "build_command_line",
    "get_launcher",
]
