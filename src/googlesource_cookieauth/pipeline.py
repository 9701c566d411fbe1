"""Token-to-cookie acquisition pipeline.

One call to :func:`write_cookies` performs a complete refresh:

1. Locate git and list the ``google.<url>.*`` URLs from git-config.
2. Add the well-known hosts (:data:`WELL_KNOWN_HOSTS`) unless already listed.
3. Fetch one token per URL, in order, and turn each into cookie records.
4. Resolve the destination (``google.cookieFile``, else
   :func:`~googlesource_cookieauth.config.default_cookie_file`).
5. Write the header and cookie lines to stdout or the destination file.

All tokens are obtained before the destination is touched. A failure for
any URL aborts the run with the previous cookie file left as it was. File
writes go through a temp file and ``os.replace``, so readers never see a
half-written jar.
"""

from __future__ import annotations

import os
import sys
import tempfile
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from googlesource_cookieauth.auth import TokenProvider
from googlesource_cookieauth.config import (
    COOKIE_FILE_KEY,
    STDOUT_SENTINEL,
    default_cookie_file,
)
from googlesource_cookieauth.cookies import make_cookies, write_cookie_jar
from googlesource_cookieauth.exceptions import (
    ConfigError,
    CookieAuthError,
    OutputError,
    RunCancelled,
    TokenError,
)
from googlesource_cookieauth.git import GitBinary
from googlesource_cookieauth.models import CookieRecord, RunConfig, TargetURL
from googlesource_cookieauth.output import debug

WELL_KNOWN_HOSTS = ("googlesource.com", "source.developers.google.com")
"""Hosts that always get a cookie, whatever git-config says."""

_DIR_MODE = 0o700
_FILE_MODE = 0o600


def _local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class RunContext:
    """Everything a single pipeline run needs, passed explicitly.

    Attributes:
        config: The process-wide run configuration.
        provider: Source of access tokens.
        program: Name written into the cookie-file header.
        clock: Returns the timestamp written into the header.
        stop: Set to cancel the run before its next token request.
    """

    config: RunConfig
    provider: TokenProvider
    program: str = field(default_factory=lambda: sys.argv[0])
    clock: Callable[[], datetime] = _local_now
    stop: threading.Event = field(default_factory=threading.Event)

    @property
    def cancelled(self) -> bool:
        return self.stop.is_set()


# --- Target resolution ---


def normalize_targets(targets: list[TargetURL]) -> list[TargetURL]:
    """Return *targets* with each well-known host present exactly once.

    A configured URL counts as a well-known host only when its host matches
    exactly and its path is empty or ``/``. ``https://googlesource.com/foo``
    is a separate target and does not stop ``https://googlesource.com``
    from being added. Configured order is preserved; missing well-known
    hosts are appended over https.
    """
    result: list[TargetURL] = []
    present: set[str] = set()
    for target in targets:
        if target.host in WELL_KNOWN_HOSTS and target.is_root:
            if target.host in present:
                continue
            present.add(target.host)
        result.append(target)
    for host in WELL_KNOWN_HOSTS:
        if host not in present:
            result.append(TargetURL(scheme="https", host=host))
    return result


def resolve_destination(git: GitBinary) -> str:
    """Return the output path from ``google.cookieFile``, or the default path."""
    configured = git.get_config(COOKIE_FILE_KEY, path=True)
    if configured:
        return configured
    return str(default_cookie_file())


# --- Output ---


def _make_private_dirs(directory: Path) -> None:
    """Create *directory* and any missing parents with mode ``0700``.

    Directories that already exist keep their permissions.
    """
    missing: list[Path] = []
    current = directory
    while not current.exists():
        missing.append(current)
        current = current.parent
    for path in reversed(missing):
        path.mkdir(mode=_DIR_MODE, exist_ok=True)


def _write_file(path: Path, cookies: list[CookieRecord], program: str, now: datetime) -> None:
    """Atomically replace *path* with a cookie jar readable only by its owner.

    A symlinked *path* is followed, so the link keeps pointing at the
    refreshed file.
    """
    path = Path(os.path.realpath(path))
    try:
        _make_private_dirs(path.parent)
    except OSError as exc:
        raise OutputError(f"cannot create the output directory: {exc}") from exc

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        os.chmod(tmp_path, _FILE_MODE)
        write_cookie_jar(fd, cookies, program, now)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException as exc:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        if isinstance(exc, OSError):
            raise OutputError(f"cannot write the output file {path}: {exc}") from exc
        raise


def write_output(
    destination: str,
    cookies: list[CookieRecord],
    program: str,
    now: datetime,
) -> None:
    """Write the cookie jar to *destination*; ``-`` writes to stdout.

    Raises:
        OutputError: If the directory or file cannot be written.
    """
    if destination == STDOUT_SENTINEL:
        write_cookie_jar(sys.stdout, cookies, program, now)
        sys.stdout.flush()
        return
    _write_file(Path(destination), cookies, program, now)


# --- Pipeline ---


def write_cookies(context: RunContext) -> str:
    """Run the pipeline once.

    Args:
        context: The run's configuration, provider and cancellation event.

    Returns:
        Where the cookies went: a file path, or ``-`` for stdout.

    Raises:
        CookieAuthError: On any failure. No cookie output is written unless
            every step before the write succeeded.
    """
    config = context.config
    git = GitBinary.find(configs=config.git_configs, timeout=config.timeout)
    try:
        configured = git.list_urls()
    except ConfigError as exc:
        raise ConfigError(f"cannot read the list of URLs in git-config: {exc}") from exc

    targets = normalize_targets(configured)
    debug(f"Refreshing cookies for {len(targets)} URL(s)")

    cookies: list[CookieRecord] = []
    for target in targets:
        if context.cancelled:
            raise RunCancelled("run cancelled")
        try:
            token = context.provider.token_for(git, target, config.timeout)
        except ConfigError as exc:
            raise ConfigError(f"cannot read the settings for {target}: {exc}") from exc
        except CookieAuthError as exc:
            raise TokenError(f"cannot create a token for {target}: {exc}") from exc
        debug(f"Obtained a token for {target}")
        cookies.extend(make_cookies(target, token))

    try:
        destination = resolve_destination(git)
    except ConfigError as exc:
        raise ConfigError(f"cannot read {COOKIE_FILE_KEY} in git-config: {exc}") from exc

    write_output(destination, cookies, context.program, context.clock())
    return destination
