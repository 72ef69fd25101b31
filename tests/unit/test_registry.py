"""Unit tests for the SCM registry."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from ssscm.registry import SCMRegistry, default_registry, reset_default_registry
from ssscm.scm.base import SCMDescriptor
from ssscm.scm.shell_script import ShellScriptSCM


class TestSCMRegistry:
    """Test SCMRegistry operations."""

    def test_register_and_get(self):
        """Test basic register and get operations."""
        registry = SCMRegistry()
        descriptor = ShellScriptSCM.descriptor()
        registry.register(descriptor)

        assert registry.get("shell-script") is descriptor
        assert registry.type_names() == ["shell-script"]

    def test_get_unknown(self):
        """Test that unknown type names return None."""
        assert SCMRegistry().get("git") is None

    def test_unregister(self):
        """Test unregister operation."""
        registry = SCMRegistry()
        registry.register(ShellScriptSCM.descriptor())
        registry.unregister("shell-script")
        registry.unregister("shell-script")

        assert registry.get("shell-script") is None

    def test_register_replaces(self):
        """Test that re-registering a type name replaces the descriptor."""
        registry = SCMRegistry()
        first = SCMDescriptor("custom", "Custom", MagicMock())
        second = SCMDescriptor("custom", "Custom v2", MagicMock())
        registry.register(first)
        registry.register(second)

        assert registry.get("custom") is second

    def test_create(self):
        """Test creating an SCM through its descriptor."""
        registry = SCMRegistry()
        registry.register(ShellScriptSCM.descriptor())
        runner = MagicMock()

        scm = registry.create("shell-script", {"polling_script": "exit 1"}, runner=runner)

        assert isinstance(scm, ShellScriptSCM)
        assert scm.polling_script == "exit 1"
        assert scm.runner is runner

    def test_create_unknown(self):
        """Test creating an unregistered type."""
        with pytest.raises(ValueError, match="Unsupported SCM type"):
            SCMRegistry().create("svn", {})

    def test_clear(self):
        """Test clearing the registry."""
        registry = SCMRegistry()
        registry.register(ShellScriptSCM.descriptor())
        registry.clear()
        assert registry.type_names() == []

    def test_concurrent_registration(self):
        """Test thread-safe registration."""
        registry = SCMRegistry()

        def register(i):
            registry.register(SCMDescriptor(f"type-{i}", f"Type {i}", MagicMock()))

        threads = [threading.Thread(target=register, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry.type_names()) == 20


class TestDefaultRegistry:
    """Test the process-wide registry."""

    def setup_method(self):
        reset_default_registry()

    def teardown_method(self):
        reset_default_registry()

    def test_contains_shell_script(self):
        """Test that the built-in SCM type is registered."""
        registry = default_registry()
        assert registry.get("shell-script") is not None
        assert registry.get("shell-script").display_name == "Shell Script"

    def test_singleton(self):
        """Test that the same registry is returned until reset."""
        first = default_registry()
        assert default_registry() is first
        reset_default_registry()
        assert default_registry() is not first
