"""SCM implementations backed by user supplied shell scripts."""

from .base import SCM, SCMDescriptor
from .shell_script import ScriptConfiguration, ShellScriptSCM

__all__ = [
    "SCM",
    "SCMDescriptor",
    "ScriptConfiguration",
    "ShellScriptSCM",
]
