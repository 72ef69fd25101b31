"""Base SCM protocol and descriptor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Protocol

from ..launcher.interface import OutputSink


class SCM(Protocol):
    """Protocol for SCM implementations driven by the CI host's build lifecycle."""

    def checkout(self, workspace: str, sink: OutputSink) -> bool:
        """Materialize the workspace contents.

        Args:
            workspace: Build workspace directory
            sink: Build log

        Returns:
            True if the build may continue
        """
        ...

    def poll_changes(self, workspace: str, sink: OutputSink) -> bool:
        """Decide whether a new checkout and build are warranted.

        Args:
            workspace: Build workspace directory
            sink: Polling log

        Returns:
            True if changes are pending
        """
        ...

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the SCM configuration."""
        ...


@dataclass(frozen=True)
class SCMDescriptor:
    """Describes an SCM type to a host-side registry.

    - type_name: stable identifier stored in job definitions
    - display_name: human readable name shown by the host
    - factory: builds an SCM from its serialized configuration
    """

    type_name: str
    display_name: str
    factory: Callable[..., SCM]

    def create(self, data: Dict[str, Any], **kwargs: Any) -> SCM:
        return self.factory(data, **kwargs)
