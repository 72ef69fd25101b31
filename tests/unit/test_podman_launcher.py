"""Unit tests for PodmanLauncher with a mocked Podman client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from podman.errors import APIError, NotFound

from ssscm.launcher.interface import InMemoryOutputSink, LaunchError
from ssscm.launcher.podman import PodmanLauncher

ARGV = ["/bin/sh", "-xe", "/ws/SSSCM1.sh"]


def make_launcher(container, **kwargs):
    kwargs.setdefault("image", "test/image:latest")
    launcher = PodmanLauncher(**kwargs)
    launcher._client = MagicMock()
    launcher._client.containers.create.return_value = container
    return launcher


def make_container(chunks=(), exit_code=0):
    container = MagicMock()
    container.id = "test-container-id"
    container.status = "running"
    container.logs.return_value = iter(chunks)
    container.wait.return_value = exit_code
    return container


class TestPodmanLauncherLaunch:
    """Test launch() of PodmanLauncher."""

    def test_launch_success(self):
        """Test output streaming, exit code and removal."""
        container = make_container([b"+ git pull\n", b"done\n"], exit_code=1)
        launcher = make_launcher(container)
        sink = InMemoryOutputSink()

        with patch.object(launcher, "_ensure_client"):
            exit_code = launcher.launch(ARGV, "/ws", {"HOME": "/root"}, sink)

        assert exit_code == 1
        assert sink.stdout == b"+ git pull\ndone\n"
        container.start.assert_called_once()
        container.remove.assert_called_once_with(force=False)

    def test_create_arguments(self):
        """Test that the workspace is mounted and used as working dir."""
        container = make_container()
        launcher = make_launcher(container, network_enabled=False)

        with patch.object(launcher, "_ensure_client"):
            launcher.launch(ARGV, "/ws", {"A": "1"}, InMemoryOutputSink())

        kwargs = launcher._client.containers.create.call_args[1]
        assert kwargs["image"] == "test/image:latest"
        assert kwargs["command"] == ARGV
        assert kwargs["environment"] == {"A": "1"}
        assert kwargs["working_dir"] == "/ws"
        assert kwargs["mounts"] == [
            {"type": "bind", "source": "/ws", "target": "/ws", "read_only": False}
        ]
        assert kwargs["network_mode"] == "none"

    def test_network_enabled_by_default(self):
        """Test that no network mode is forced when networking is on."""
        container = make_container()
        launcher = make_launcher(container, network_enabled=True)

        with patch.object(launcher, "_ensure_client"):
            launcher.launch(ARGV, "/ws", {}, InMemoryOutputSink())

        assert "network_mode" not in launcher._client.containers.create.call_args[1]

    def test_wait_dict_result(self):
        """Test older dict-shaped wait() results."""
        container = make_container()
        container.wait.return_value = {"StatusCode": 127}
        launcher = make_launcher(container)

        with patch.object(launcher, "_ensure_client"):
            assert launcher.launch(ARGV, "/ws", {}, InMemoryOutputSink()) == 127

    def test_create_failure(self):
        """Test that create errors become LaunchError."""
        launcher = make_launcher(make_container())
        launcher._client.containers.create.side_effect = APIError("boom")

        with patch.object(launcher, "_ensure_client"):
            with pytest.raises(LaunchError, match="failed to create container"):
                launcher.launch(ARGV, "/ws", {}, InMemoryOutputSink())

    def test_start_failure_removes_container(self):
        """Test forced removal when the container cannot start."""
        container = make_container()
        container.start.side_effect = APIError("cannot start")
        launcher = make_launcher(container)

        with patch.object(launcher, "_ensure_client"):
            with pytest.raises(LaunchError, match="failed to run command"):
                launcher.launch(ARGV, "/ws", {}, InMemoryOutputSink())

        container.remove.assert_called_once_with(force=True)

    def test_interrupt_removes_container(self):
        """Test that interruption propagates after forced removal."""
        container = make_container()
        container.wait.side_effect = KeyboardInterrupt()
        launcher = make_launcher(container)

        with patch.object(launcher, "_ensure_client"):
            with pytest.raises(KeyboardInterrupt):
                launcher.launch(ARGV, "/ws", {}, InMemoryOutputSink())

        container.remove.assert_called_once_with(force=True)

    def test_remove_retries_with_stop(self):
        """Test graceful stop and forced removal when removal fails."""
        container = make_container()
        container.remove.side_effect = [APIError("still running"), None]
        launcher = make_launcher(container)

        with patch.object(launcher, "_ensure_client"):
            assert launcher.launch(ARGV, "/ws", {}, InMemoryOutputSink()) == 0

        container.stop.assert_called_once()
        assert container.remove.call_count == 2


class TestPodmanLauncherImages:
    """Test image pull policies."""

    def test_pull_when_missing(self):
        """Test if-not-present pulls a missing image."""
        launcher = make_launcher(make_container(), pull_always=False)
        launcher._client.images.get.side_effect = NotFound("no image")

        with patch.object(launcher, "_ensure_client"):
            launcher.ensure_image_available("test/image:latest")

        launcher._client.images.pull.assert_called_once_with("test/image:latest")

    def test_no_pull_when_present(self):
        """Test if-not-present skips the pull for a local image."""
        launcher = make_launcher(make_container(), pull_always=False)

        with patch.object(launcher, "_ensure_client"):
            launcher.ensure_image_available("test/image:latest")

        launcher._client.images.pull.assert_not_called()

    def test_pull_always(self):
        """Test the always policy."""
        launcher = make_launcher(make_container(), pull_always=True)

        with patch.object(launcher, "_ensure_client"):
            launcher.ensure_image_available("test/image:latest")

        launcher._client.images.pull.assert_called_once()

    def test_never_policy_missing_image(self, monkeypatch):
        """Test the never policy with a missing image."""
        monkeypatch.setenv("SSSCM_IMAGE_PULL_POLICY", "never")
        launcher = make_launcher(make_container())
        launcher._client.images.get.side_effect = NotFound("no image")

        with patch.object(launcher, "_ensure_client"):
            with pytest.raises(LaunchError, match="pull policy is 'never'"):
                launcher.ensure_image_available("test/image:latest")

    def test_image_from_config(self, monkeypatch):
        """Test that the image defaults to the configured one."""
        monkeypatch.setenv("SSSCM_CONTAINER_IMAGE", "registry/custom:1")
        assert PodmanLauncher().image == "registry/custom:1"
