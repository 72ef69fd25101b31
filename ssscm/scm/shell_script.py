"""Shell script SCM: checkout and polling delegated to user scripts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..config import _parse_bool
from ..launcher.interface import OutputSink
from ..runner import ScriptRunner
from .base import SCMDescriptor

logger = logging.getLogger(__name__)

TYPE_NAME = "shell-script"
DISPLAY_NAME = "Shell Script"
SERIAL_VERSION = 1

# Exit code of the polling script that means "changes are pending"
CHANGES_PENDING_EXIT_CODE = 1


@dataclass(frozen=True)
class ScriptConfiguration:
    """Scripts configured on a job.

    - checkout_script: run on every checkout
    - polling_script: run when polling, unless use_checkout_for_polling
    - use_checkout_for_polling: poll with checkout_script instead
    """

    checkout_script: str = ""
    polling_script: str = ""
    use_checkout_for_polling: bool = False

    def polling_probe(self) -> str:
        """Script body that polling runs."""
        if self.use_checkout_for_polling:
            return self.checkout_script
        return self.polling_script

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": SERIAL_VERSION,
            "checkout_script": self.checkout_script,
            "polling_script": self.polling_script,
            "use_checkout_for_polling": self.use_checkout_for_polling,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScriptConfiguration":
        """Load a configuration written by `to_dict`.

        Raises:
            ValueError: If the data was written by an unsupported version
        """
        version = data.get("version", SERIAL_VERSION)
        if version != SERIAL_VERSION:
            raise ValueError(f"Unsupported configuration version: {version}")
        return cls(
            checkout_script=data.get("checkout_script") or "",
            polling_script=data.get("polling_script") or "",
            use_checkout_for_polling=_parse_bool(data.get("use_checkout_for_polling", False)),
        )


class ShellScriptSCM:
    """SCM whose checkout and polling are arbitrary scripts.

    Checkout always reports success, whatever the checkout script did.
    Polling reports pending changes only when the probe script exits with
    exactly 1; every other exit code, including -1 for a script that could
    not be run, means no changes.

    Example:
        scm = ShellScriptSCM(ScriptConfiguration(
            checkout_script="git pull",
            polling_script="git fetch --dry-run 2>&1 | grep -q . && exit 1 || exit 0",
        ))
        if scm.poll_changes("/var/lib/ci/workspace", sink):
            scm.checkout("/var/lib/ci/workspace", sink)
    """

    def __init__(
        self,
        configuration: Optional[ScriptConfiguration] = None,
        runner: Optional[ScriptRunner] = None,
    ) -> None:
        self._configuration = configuration or ScriptConfiguration()
        self._runner = runner

    @property
    def configuration(self) -> ScriptConfiguration:
        return self._configuration

    @property
    def checkout_script(self) -> str:
        return self._configuration.checkout_script

    @property
    def polling_script(self) -> str:
        return self._configuration.polling_script

    @property
    def use_checkout_for_polling(self) -> bool:
        return self._configuration.use_checkout_for_polling

    @property
    def runner(self) -> ScriptRunner:
        # Built on first use
        if self._runner is None:
            self._runner = ScriptRunner()
        return self._runner

    def reconfigure(self, configuration: ScriptConfiguration) -> None:
        """Replace the job's scripts; takes effect on the next call."""
        self._configuration = configuration

    def checkout(self, workspace: str, sink: OutputSink) -> bool:
        exit_code = self.runner.execute(self._configuration.checkout_script, workspace, sink)
        logger.info("Checkout script in %s exited with %d", workspace, exit_code)
        return True

    def poll_changes(self, workspace: str, sink: OutputSink) -> bool:
        exit_code = self.runner.execute(self._configuration.polling_probe(), workspace, sink)
        changed = exit_code == CHANGES_PENDING_EXIT_CODE
        logger.info(
            "Polling script in %s exited with %d (changes=%s)", workspace, exit_code, changed
        )
        return changed

    def to_dict(self) -> Dict[str, Any]:
        return self._configuration.to_dict()

    @classmethod
    def from_dict(cls, data: Dict[str, Any], runner: Optional[ScriptRunner] = None) -> "ShellScriptSCM":
        return cls(ScriptConfiguration.from_dict(data), runner=runner)

    @classmethod
    def descriptor(cls) -> SCMDescriptor:
        return SCMDescriptor(
            type_name=TYPE_NAME,
            display_name=DISPLAY_NAME,
            factory=cls.from_dict,
        )
