"""Locate the git binary and read the ``google.*`` settings from git-config.

git is the configuration store for this tool: the cookie file location, the
list of extra target URLs, and per-URL OAuth settings all live in the user's
git-config, scoped with git's own ``urlmatch`` rules. Every invocation passes
the user's ``-c KEY=VALUE`` parameters through, so that a one-off override on
the command line behaves exactly as it would for ``git`` itself.

Example::

    git = GitBinary.find(configs=["google.cookieFile=-"])
    for target in git.list_urls():
        print(target.url, git.get_urlmatch("google.scopes", target.url))
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Optional

from googlesource_cookieauth.exceptions import ConfigError, GitNotFoundError
from googlesource_cookieauth.models import TargetURL

logger = logging.getLogger(__name__)

_SECTION_PREFIX = "google."
_URL_KEY_PATTERN = r"^google\..+\..+$"

_EXIT_KEY_NOT_FOUND = 1
"""``git config`` exits with 1 when the requested key is not set."""


class GitBinary:
    """A git executable plus the ``-c`` parameters to pass on every call.

    Args:
        path: Absolute path to the git executable.
        configs: ``KEY=VALUE`` strings, each passed as ``-c KEY=VALUE``.
        timeout: Seconds to wait for each git invocation. ``None`` waits
            forever.
    """

    def __init__(
        self,
        path: str,
        configs: Optional[list[str]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.path = path
        self.configs = list(configs or [])
        self.timeout = timeout

    @classmethod
    def find(
        cls,
        configs: Optional[list[str]] = None,
        timeout: Optional[float] = None,
    ) -> GitBinary:
        """Locate ``git`` on ``PATH``.

        Raises:
            GitNotFoundError: If no git executable is on ``PATH``.
        """
        path = shutil.which("git")
        if path is None:
            raise GitNotFoundError("cannot find the git binary: git is not on PATH")
        logger.debug("Using git at %s", path)
        return cls(path, configs=configs, timeout=timeout)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_urls(self) -> list[TargetURL]:
        """Return every URL that appears as a ``google.<url>.*`` subsection.

        URLs are returned in git-config order with duplicates removed.
        Subsections that are not absolute URLs are skipped with a warning.

        Raises:
            ConfigError: If git-config cannot be read.
        """
        stdout = self._config("--null", "--get-regexp", _URL_KEY_PATTERN)
        if stdout is None:
            return []

        targets: list[TargetURL] = []
        seen: set[str] = set()
        for entry in stdout.split("\0"):
            if not entry:
                continue
            key = entry.partition("\n")[0]
            subsection = _url_subsection(key)
            if subsection is None:
                continue
            try:
                target = TargetURL.parse(subsection)
            except ValueError:
                logger.warning("Ignoring non-URL git-config section '%s'", key)
                continue
            if target.url in seen:
                continue
            seen.add(target.url)
            targets.append(target)
        return targets

    def get_config(self, key: str, *, path: bool = False) -> str:
        """Return the value of *key*, or ``""`` when it is not set.

        Args:
            key: Fully-qualified git-config key such as ``google.cookieFile``.
            path: Read with ``--type=path`` so that ``~`` is expanded.

        Raises:
            ConfigError: If git-config cannot be read.
        """
        args = ["--type=path"] if path else []
        stdout = self._config(*args, "--get", key)
        return "" if stdout is None else stdout.rstrip("\n")

    def get_urlmatch(self, key: str, url: str, *, path: bool = False) -> str:
        """Return the value of *key* that best matches *url*, or ``""``.

        Uses ``git config --get-urlmatch`` so that ``[google "https://host"]``
        sections apply to every URL under that prefix.

        Raises:
            ConfigError: If git-config cannot be read.
        """
        args = ["--type=path"] if path else []
        stdout = self._config(*args, "--get-urlmatch", key, url)
        return "" if stdout is None else stdout.rstrip("\n")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _command(self, *args: str) -> list[str]:
        cmd = [self.path]
        for param in self.configs:
            cmd.extend(["-c", param])
        cmd.extend(args)
        return cmd

    def _config(self, *args: str) -> Optional[str]:
        """Run ``git config <args>`` and return stdout, or None if the key is unset."""
        cmd = self._command("config", *args)
        logger.debug("Running %s", cmd)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise ConfigError(f"git config timed out after {exc.timeout}s") from exc
        except OSError as exc:
            raise ConfigError(f"cannot run {self.path}: {exc}") from exc

        if result.returncode == _EXIT_KEY_NOT_FOUND:
            return None
        if result.returncode != 0:
            stderr = result.stderr.strip() or f"exit status {result.returncode}"
            raise ConfigError(f"git config {' '.join(args)} failed: {stderr}")
        return result.stdout


def _url_subsection(key: str) -> Optional[str]:
    """Extract ``<url>`` from a ``google.<url>.<name>`` key.

    Keys without a subsection (``google.cookiefile``) return None.
    """
    if not key.startswith(_SECTION_PREFIX):
        return None
    subsection, sep, _name = key[len(_SECTION_PREFIX):].rpartition(".")
    if not sep or not subsection:
        return None
    return subsection
