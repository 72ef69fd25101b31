"""Process launchers that run script command lines.

Boundary rules:
- The script runner depends only on `ssscm.launcher.interface.ProcessLauncher`.
- Only `ssscm.launcher.podman` talks to the Podman Python API.
"""

from __future__ import annotations

from typing import Optional

from .interface import InMemoryOutputSink, LaunchError, OutputSink, ProcessLauncher
from .local import LocalLauncher
from .. import config as ssscm_config

__all__ = [
    "InMemoryOutputSink",
    "LaunchError",
    "LocalLauncher",
    "OutputSink",
    "ProcessLauncher",
    "get_launcher",
]


def get_launcher(name: Optional[str] = None) -> ProcessLauncher:
    """Factory function to get the process launcher by name.

    Args:
        name: 'local' or 'podman'. Defaults to the configured launcher.

    Returns:
        Launcher instance

    Raises:
        ValueError: If the name is not a known launcher
    """
    name = (name or ssscm_config.ssscm_launcher()).strip().lower()
    if name == "local":
        return LocalLauncher()
    if name == "podman":
        from .podman import PodmanLauncher

        return PodmanLauncher()
    raise ValueError(f"Unsupported launcher: {name}")
