from __future__ import annotations

import logging
from time import monotonic, sleep
from typing import Dict, Mapping, Optional, Sequence

from podman import PodmanClient
from podman.errors import APIError, NotFound

from .interface import LaunchError, OutputSink, ProcessLauncher
from .. import config as ssscm_config

logger = logging.getLogger(__name__)


class PodmanLauncher(ProcessLauncher):
    """Podman-backed implementation of ProcessLauncher.

    Each launch runs in a fresh container created from the configured image.
    The working directory is bind-mounted at the same path inside the
    container, so the script path in argv resolves unchanged. The container
    is removed once its exit code has been collected.
    """

    def __init__(
        self,
        *,
        image: Optional[str] = None,
        pull_always: Optional[bool] = None,
        network_enabled: Optional[bool] = None,
        base_url: Optional[str] = None,
    ) -> None:
        self._image = image or ssscm_config.ssscm_container_image()
        policy = (ssscm_config.ssscm_image_pull_policy() or "if-not-present").lower()
        self._pull_policy = policy  # values: always|if-not-present|never
        if pull_always is not None:
            self._pull_policy = "always" if pull_always else "if-not-present"

        self._network_enabled = (
            ssscm_config.ssscm_network_enabled() if network_enabled is None else network_enabled
        )
        self._base_url = base_url or ssscm_config.ssscm_podman_socket()
        # Lazy-init Podman client on first use to make tests lighter
        self._client = None  # type: ignore[var-annotated]
        t = ssscm_config.ssscm_container_timeouts()
        self._timeout_pull_s = int(t.get("pull", 300))
        self._timeout_start_s = int(t.get("start", 60))
        self._timeout_stop_grace_s = int(t.get("stop_grace", 20))

    @property
    def image(self) -> str:
        return self._image

    # --- public interface ---

    def launch(
        self,
        argv: Sequence[str],
        cwd: str,
        environment: Mapping[str, str],
        sink: OutputSink,
    ) -> int:
        self._ensure_client()
        self.ensure_image_available(self._image)

        try:
            container = self._client.containers.create(**self._create_kwargs(argv, cwd, environment))
        except APIError as exc:
            raise LaunchError("failed to create container", cause=exc)
        logger.debug("Created container %s for %s", container.id, list(argv))

        try:
            try:
                container.start()
                self._wait_started(container)
                for chunk in container.logs(stream=True, follow=True, stdout=True, stderr=True):
                    if chunk:
                        sink.write_stdout(chunk if isinstance(chunk, bytes) else bytes(chunk))
                exit_code = self._exit_code(container.wait())
            except APIError as exc:
                raise LaunchError(f"failed to run command in container: {list(argv)}", cause=exc)
        except BaseException:
            self._remove(container, force=True)
            raise

        self._remove(container, force=False)
        logger.debug("Container %s exited with %d", container.id, exit_code)
        return exit_code

    def ensure_image_available(self, image: str) -> None:
        self._ensure_client()
        try:
            has_local = self._has_image(image)
        except APIError as exc:
            raise LaunchError(f"failed to check image {image}", cause=exc)

        if self._pull_policy == "never":
            if not has_local:
                raise LaunchError(f"image not present locally and pull policy is 'never': {image}")
            return

        if self._pull_policy == "always" or not has_local:
            self._pull_image(image)

    # --- private helpers ---

    def _ensure_client(self) -> None:
        if self._client is None:
            self._client = PodmanClient(base_url=self._base_url)

    def _create_kwargs(
        self,
        argv: Sequence[str],
        cwd: str,
        environment: Mapping[str, str],
    ) -> Dict[str, object]:
        create_kwargs: Dict[str, object] = {
            "image": self._image,
            "command": list(argv),
            "environment": dict(environment),
            "working_dir": cwd,
            "mounts": [
                {
                    "type": "bind",
                    "source": cwd,
                    "target": cwd,
                    "read_only": False,
                }
            ],
            "labels": {"io.ssscm.launcher": "podman"},
            "tty": False,
            "stdin_open": False,
        }
        if not self._network_enabled:
            create_kwargs["network_mode"] = "none"
        return create_kwargs

    def _has_image(self, image: str) -> bool:
        assert self._client is not None
        try:
            self._client.images.get(image)
            return True
        except NotFound:
            return False

    def _pull_image(self, image: str) -> None:
        assert self._client is not None
        deadline = monotonic() + self._timeout_pull_s
        last_exc: Optional[BaseException] = None
        while True:
            try:
                self._client.images.pull(image)
                return
            except APIError as exc:
                last_exc = exc
            if monotonic() >= deadline:
                raise LaunchError(f"timeout pulling image: {image}", cause=last_exc)
            sleep(1.0)

    def _wait_started(self, container) -> None:
        deadline = monotonic() + self._timeout_start_s
        while True:
            container.reload()
            status = getattr(container, "status", None)
            if status in ("running", "exited", "stopped", "dead"):
                return
            if monotonic() >= deadline:
                raise LaunchError("timeout waiting for container to start")
            sleep(0.2)

    @staticmethod
    def _exit_code(result) -> int:
        # podman-py wait() returns an int, older versions a dict
        if isinstance(result, dict):
            return int(result.get("StatusCode", 1))
        return int(result)

    def _remove(self, container, *, force: bool) -> None:
        try:
            container.remove(force=force)
        except NotFound:
            return
        except APIError as exc:
            if force:
                logger.error("Failed to remove container %s: %s", container.id, exc)
                return
            try:
                container.stop(timeout=self._timeout_stop_grace_s)
                container.remove(force=True)
            except APIError as retry_exc:
                logger.error("Failed to remove container %s: %s", container.id, retry_exc)
