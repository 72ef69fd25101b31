"""Thread-safe registry mapping SCM type names to descriptors.

The host owns the registry; SCM implementations only expose descriptors.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from .scm.base import SCM, SCMDescriptor

logger = logging.getLogger(__name__)

# Process-wide registry (created on first use)
_default_registry: Optional["SCMRegistry"] = None
_registry_lock = threading.Lock()


class SCMRegistry:
    """Registry of SCM descriptors keyed by type name."""

    def __init__(self) -> None:
        self._descriptors: Dict[str, SCMDescriptor] = {}
        self._lock = threading.RLock()

    def register(self, descriptor: SCMDescriptor) -> None:
        """Register a descriptor, replacing any previous one with the same type name."""
        with self._lock:
            if descriptor.type_name in self._descriptors:
                logger.warning("Replacing SCM descriptor: %s", descriptor.type_name)
            self._descriptors[descriptor.type_name] = descriptor
            logger.debug("Registered SCM type: %s", descriptor.type_name)

    def unregister(self, type_name: str) -> None:
        with self._lock:
            self._descriptors.pop(type_name, None)

    def get(self, type_name: str) -> Optional[SCMDescriptor]:
        with self._lock:
            return self._descriptors.get(type_name)

    def type_names(self) -> List[str]:
        with self._lock:
            return sorted(self._descriptors)

    def create(self, type_name: str, data: Dict[str, Any], **kwargs: Any) -> SCM:
        """Build an SCM of the given type from its serialized configuration.

        Raises:
            ValueError: If no descriptor is registered for type_name
        """
        descriptor = self.get(type_name)
        if descriptor is None:
            raise ValueError(f"Unsupported SCM type: {type_name}")
        return descriptor.create(data, **kwargs)

    def clear(self) -> None:
        with self._lock:
            self._descriptors.clear()


def default_registry() -> SCMRegistry:
    """Get the process-wide registry, populated with the built-in SCM types."""
    global _default_registry
    with _registry_lock:
        if _default_registry is None:
            from .scm.shell_script import ShellScriptSCM

            registry = SCMRegistry()
            registry.register(ShellScriptSCM.descriptor())
            _default_registry = registry
        return _default_registry


def reset_default_registry() -> None:
    """Drop the process-wide registry (useful for testing)."""
    global _default_registry
    with _registry_lock:
        _default_registry = None
