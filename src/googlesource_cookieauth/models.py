"""Canonical Pydantic models shared across googlesource-cookieauth.

**Configuration models** -- built once at startup and passed explicitly:
    :class:`RunConfig`.

**Pipeline models** -- produced and consumed within a single run:
    :class:`TargetURL`, :class:`Token`, and :class:`CookieRecord`.

All models use Pydantic v2. Configuration and target models are frozen so
that nothing downstream of the CLI can mutate them mid-run.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_REFRESH_INTERVAL = 45 * 60.0
"""Seconds between daemon-mode refreshes (45 minutes)."""

DEFAULT_TIMEOUT = 30.0
"""Seconds allowed for each HTTP request made while fetching a token."""


# --- Run configuration ---


class RunConfig(BaseModel):
    """Effective configuration for a process, resolved once at startup.

    Built by :func:`~googlesource_cookieauth.config.resolve_run_config` from
    CLI flags and environment variables, then handed to the scheduler and
    pipeline. Replaces the package-level flag state a small CLI would
    otherwise reach for.

    Example::

        RunConfig(git_configs=["google.cookieFile=-"], run_as_daemon=True)
    """

    model_config = ConfigDict(frozen=True)

    git_configs: list[str] = Field(
        default_factory=list,
        description="KEY=VALUE parameters passed to git as '-c KEY=VALUE'",
    )
    run_as_daemon: bool = Field(
        default=False, description="Refresh forever instead of running once"
    )
    refresh_interval: float = Field(
        default=DEFAULT_REFRESH_INTERVAL,
        gt=0,
        description="Seconds between daemon-mode refreshes",
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        gt=0,
        description="Per-request timeout for token HTTP calls, in seconds",
    )
    verbose: bool = False


# --- Pipeline models ---


class TargetURL(BaseModel):
    """An endpoint that needs an authentication cookie.

    Only the scheme, host and path are kept. Query strings and fragments
    carry no meaning for cookie scoping and are dropped by :meth:`parse`.
    """

    model_config = ConfigDict(frozen=True)

    scheme: str = "https"
    host: str
    path: str = ""

    @classmethod
    def parse(cls, raw: str) -> TargetURL:
        """Parse *raw* into a :class:`TargetURL`.

        Raises:
            ValueError: If *raw* has no scheme or no host.
        """
        parts = urlsplit(raw)
        if not parts.scheme or not parts.hostname:
            raise ValueError(f"not an absolute URL: {raw!r}")
        # Drop any userinfo but keep an explicit port.
        host = parts.netloc.rsplit("@", 1)[-1]
        return cls(scheme=parts.scheme, host=host, path=parts.path)

    @property
    def url(self) -> str:
        return urlunsplit((self.scheme, self.host, self.path, "", ""))

    @property
    def is_root(self) -> bool:
        """True when the path is empty or ``/``."""
        return self.path in ("", "/")

    def __str__(self) -> str:
        return self.url


class Token(BaseModel):
    """An access token issued for one target URL."""

    access_token: str
    expiry: Optional[datetime] = Field(
        default=None, description="When the token expires (None = unknown)"
    )


class CookieRecord(BaseModel):
    """One line of a Netscape cookie-jar file.

    A leading dot on :attr:`domain` means the cookie also applies to every
    subdomain. :attr:`expires` is a Unix timestamp in seconds, where ``0``
    marks a session cookie.
    """

    domain: str
    path: str = "/"
    name: str
    value: str
    expires: int = 0
    secure: bool = True
    http_only: bool = False

    @property
    def include_subdomains(self) -> bool:
        return self.domain.startswith(".")
