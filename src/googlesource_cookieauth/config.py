"""Configuration: XDG paths, the default cookie location, and run settings.

This module handles the process-level configuration of googlesource-cookieauth:

* **Directory layout** -- XDG Base Directory compliant data directory on
  Linux/BSD, ``~/.googlesource-cookieauth/`` elsewhere. Crash logs live under
  :func:`get_data_dir`.
* **Default output** -- :func:`default_cookie_file` is used when git-config
  has no ``google.cookieFile``.
* **Precedence resolution** -- :func:`resolve_run_config` merges CLI flags,
  environment variables and defaults into a frozen
  :class:`~googlesource_cookieauth.models.RunConfig`.

Settings that belong to git (the output path, scopes, service-account keys)
are read from git-config by :mod:`googlesource_cookieauth.git`, not here.
"""

from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import Optional

from googlesource_cookieauth.exceptions import CookieAuthError
from googlesource_cookieauth.exit_codes import EXIT_INVALID_USAGE
from googlesource_cookieauth.models import (
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_TIMEOUT,
    RunConfig,
)

_APP_NAME = "googlesource-cookieauth"

COOKIE_FILE_KEY = "google.cookieFile"
"""git-config key overriding the output path. ``-`` means stdout."""

STDOUT_SENTINEL = "-"

ENV_REFRESH_INTERVAL = "GOOGLESOURCE_COOKIEAUTH_REFRESH_INTERVAL"
ENV_TIMEOUT = "GOOGLESOURCE_COOKIEAUTH_TIMEOUT"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/googlesource-cookieauth/`` (default
    ``~/.local/share/googlesource-cookieauth/``).
    On macOS/Windows: ``~/.googlesource-cookieauth/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_cookie_file() -> Path:
    """Return ``~/.git-credential-cache/googlesource-cookieauth-cookie``."""
    return Path.home() / ".git-credential-cache" / "googlesource-cookieauth-cookie"


# --- Precedence resolution ---


def _env_seconds(var_name: str) -> Optional[float]:
    """Read a positive number of seconds from *var_name*, or None if unset."""
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise CookieAuthError(
            f"{var_name} must be a number of seconds, got {raw!r}",
            exit_code=EXIT_INVALID_USAGE,
        ) from None
    if value <= 0:
        raise CookieAuthError(
            f"{var_name} must be positive, got {raw!r}",
            exit_code=EXIT_INVALID_USAGE,
        )
    return value


def resolve_run_config(
    git_configs: Optional[list[str]] = None,
    run_as_daemon: bool = False,
    refresh_interval: Optional[float] = None,
    timeout: Optional[float] = None,
    verbose: bool = False,
) -> RunConfig:
    """Resolve the run configuration with its precedence chain.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``GOOGLESOURCE_COOKIEAUTH_REFRESH_INTERVAL``,
           ``GOOGLESOURCE_COOKIEAUTH_TIMEOUT``)
        3. Defaults

    Args:
        git_configs: ``KEY=VALUE`` strings from repeated ``-c`` flags. A bare
            ``KEY`` is passed through too; git reads it as boolean true.
        run_as_daemon: Whether ``--run-as-daemon`` was given.
        refresh_interval: ``--refresh-interval`` in seconds, if given.
        timeout: ``--timeout`` in seconds, if given.
        verbose: Whether ``--verbose`` was given.

    Returns:
        A frozen :class:`~googlesource_cookieauth.models.RunConfig`.

    Raises:
        CookieAuthError: If a ``-c`` parameter is empty or has no key, or an environment
            variable holds a non-positive or non-numeric value.
    """
    configs = list(git_configs or [])
    for param in configs:
        if not param or param.startswith("="):
            raise CookieAuthError(
                f"Invalid -c parameter {param!r}: expected KEY[=VALUE]",
                exit_code=EXIT_INVALID_USAGE,
            )

    resolved_interval = DEFAULT_REFRESH_INTERVAL
    env_interval = _env_seconds(ENV_REFRESH_INTERVAL)
    if env_interval is not None:
        resolved_interval = env_interval
    if refresh_interval is not None:
        resolved_interval = refresh_interval

    resolved_timeout = DEFAULT_TIMEOUT
    env_timeout = _env_seconds(ENV_TIMEOUT)
    if env_timeout is not None:
        resolved_timeout = env_timeout
    if timeout is not None:
        resolved_timeout = timeout

    return RunConfig(
        git_configs=configs,
        run_as_daemon=run_as_daemon,
        refresh_interval=resolved_interval,
        timeout=resolved_timeout,
        verbose=verbose,
    )
