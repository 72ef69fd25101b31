"""Configuration management for ssscm.

Values are looked up through a fallback chain: environment variable, then
the host options object handed to `initialize()`, then the `[ssscm]`
section of the config file named by SSSCM_CONFIG, then the built-in default.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, Optional

import koji

logger = logging.getLogger(__name__)

CONFIG_SECTION = "ssscm"

# Module-level config cache
_config: Optional[Dict[str, Any]] = None
_options: Optional[Any] = None  # Host options object (set by initialize)


def initialize(options: Any) -> None:
    """Initialize config module with the host's parsed options object.

    Attributes named `ssscm_<key>` on the object take precedence over the
    config file.

    Args:
        options: Parsed options object from the CI host
    """
    global _options
    _options = options
    logger.debug("Config module initialized with host options object")


def _parse_config_file(config_file: Optional[str] = None) -> Dict[str, Any]:
    """Read the [ssscm] section of a koji-style ini file.

    Args:
        config_file: Path to config file. If None, nothing is read.

    Returns:
        Dict of raw string values from the [ssscm] section (may be empty)
    """
    if not config_file:
        return {}
    if not os.path.exists(config_file):
        logger.warning("Config file not found: %s", config_file)
        return {}

    parser = koji.read_config_files([config_file], raw=True)
    if not parser.has_section(CONFIG_SECTION):
        logger.debug("No [%s] section in %s", CONFIG_SECTION, config_file)
        return {}
    return dict(parser.items(CONFIG_SECTION))


def _get_config() -> Dict[str, Any]:
    """Get parsed config dict, initializing if needed."""
    global _config
    if _config is None:
        _config = _parse_config_file(os.environ.get("SSSCM_CONFIG"))
    return _config


def _get_config_value(
    key: str,
    default: Any,
    env_var: Optional[str] = None,
    converter: Optional[Callable[[Any], Any]] = None,
) -> Any:
    """Get config value with fallback chain: env var -> options -> config file -> default.

    Args:
        key: Config key name (in [ssscm] section)
        default: Default value if not found
        env_var: Optional environment variable name (e.g., SSSCM_DEFAULT_SHELL)
        converter: Optional function to convert string value (e.g., int, bool)

    Returns:
        Config value (converted if converter provided)
    """
    if env_var:
        env_value = os.environ.get(env_var)
        if env_value is not None:
            if converter:
                try:
                    return converter(env_value)
                except (ValueError, TypeError):
                    logger.warning(
                        "Invalid value for %s: %s, using default", env_var, env_value
                    )
                    return default
            return env_value

    if _options is not None:
        option_key = f"ssscm_{key}"
        if hasattr(_options, option_key):
            value = getattr(_options, option_key)
            if converter and isinstance(value, str):
                try:
                    return converter(value)
                except (ValueError, TypeError):
                    logger.warning("Invalid value for %s: %s, using default", key, value)
                    return default
            return value

    value = _get_config().get(key)
    if value is not None:
        if converter:
            try:
                return converter(value)
            except (ValueError, TypeError):
                logger.warning(
                    "Invalid value for config key %s: %s, using default", key, value
                )
                return default
        return value

    return default


def _parse_bool(value: Any) -> bool:
    """Parse boolean value from config (string or bool).

    Accepts: True, "true", "True", "1", "yes", "on" -> True
             anything else -> False
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes", "on")
    return bool(value)


def _parse_timeouts(value: Any) -> Dict[str, int]:
    """Parse container timeouts from config.

    Accepts formats:
    - Dict: {"pull": 300, "start": 60, "stop_grace": 20}
    - String: "pull=300,start=60,stop_grace=20"
    """
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        timeouts = {}
        for item in value.split(","):
            if "=" in item:
                key, val = item.split("=", 1)
                try:
                    timeouts[key.strip()] = int(val.strip())
                except ValueError:
                    logger.warning("Invalid timeout value: %s", item)
        return timeouts
    return {"pull": 300, "start": 60, "stop_grace": 20}


def ssscm_default_shell() -> str:
    """Shell used for scripts without an interpreter directive."""
    return _get_config_value(
        "default_shell",
        "/bin/sh",
        env_var="SSSCM_DEFAULT_SHELL",
    )


def ssscm_temp_prefix() -> str:
    """Name prefix of temporary script files."""
    return _get_config_value(
        "temp_prefix",
        "SSSCM",
        env_var="SSSCM_TEMP_PREFIX",
    )


def ssscm_temp_suffix() -> str:
    """Name suffix of temporary script files."""
    return _get_config_value(
        "temp_suffix",
        ".sh",
        env_var="SSSCM_TEMP_SUFFIX",
    )


def ssscm_launcher() -> str:
    """Process launcher name: 'local' | 'podman'."""
    value = _get_config_value(
        "launcher",
        "local",
        env_var="SSSCM_LAUNCHER",
    )
    return str(value).strip().lower()


def ssscm_container_image() -> str:
    """Image used by the podman launcher."""
    return _get_config_value(
        "container_image",
        "registry.fedoraproject.org/fedora-minimal:latest",
        env_var="SSSCM_CONTAINER_IMAGE",
    )


def ssscm_image_pull_policy() -> str:
    """Image pull policy: 'if-not-present' | 'always' | 'never'."""
    return _get_config_value(
        "image_pull_policy",
        "if-not-present",
        env_var="SSSCM_IMAGE_PULL_POLICY",
    )


def ssscm_network_enabled() -> bool:
    """Whether podman-launched scripts get network access."""
    return _get_config_value(
        "network_enabled",
        True,
        env_var="SSSCM_NETWORK_ENABLED",
        converter=_parse_bool,
    )


def ssscm_podman_socket() -> str:
    """Podman socket URI passed to PodmanClient as base_url."""
    return _get_config_value(
        "podman_socket",
        "unix:///run/podman/podman.sock",
        env_var="SSSCM_PODMAN_SOCKET",
    )


def ssscm_container_timeouts() -> Dict[str, int]:
    """Container lifecycle timeouts in seconds.

    Keys: pull, start, stop_grace
    """
    value = _get_config_value(
        "container_timeouts",
        {"pull": 300, "start": 60, "stop_grace": 20},
        env_var="SSSCM_CONTAINER_TIMEOUTS",
    )
    return _parse_timeouts(value)


def reset_config() -> None:
    """Reset config cache (useful for testing)."""
    global _config, _options
    _config = None
    _options = None
