"""Shared test fixtures for googlesource-cookieauth.

Provides fakes for the two external collaborators (git and the token
provider), an isolated home directory, output-state management, and a CLI
runner. These fixtures are automatically discovered by pytest and available
to all test modules without explicit imports.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest

from googlesource_cookieauth.auth.base import TokenProvider
from googlesource_cookieauth.exceptions import TokenError
from googlesource_cookieauth.git import GitBinary
from googlesource_cookieauth.models import RunConfig, TargetURL, Token
from googlesource_cookieauth.output import OutputManager, reset_output, set_output
from googlesource_cookieauth.pipeline import RunContext


FIXED_NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)
TOKEN_EXPIRY = FIXED_NOW + timedelta(hours=1)


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches a reference to sys.stderr at creation time.
    When capsys or Typer's CliRunner swap that stream out, the cached
    reference goes stale. Resetting forces a fresh manager on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Fakes for git and the token provider
# ---------------------------------------------------------------------------


class FakeGit(GitBinary):
    """A GitBinary that answers from dicts instead of running git."""

    def __init__(
        self,
        urls: Optional[list[str]] = None,
        values: Optional[dict[str, str]] = None,
        urlmatch: Optional[dict[tuple[str, str], str]] = None,
    ) -> None:
        super().__init__("/usr/bin/git")
        self.urls = urls or []
        self.values = values or {}
        self.urlmatch = urlmatch or {}

    def list_urls(self) -> list[TargetURL]:
        return [TargetURL.parse(u) for u in self.urls]

    def get_config(self, key: str, *, path: bool = False) -> str:
        return self.values.get(key, "")

    def get_urlmatch(self, key: str, url: str, *, path: bool = False) -> str:
        return self.urlmatch.get((key, url), "")


class FakeProvider(TokenProvider):
    """Issues ``token-<host>`` tokens and records every request.

    URLs listed in *fail_for* raise :class:`TokenError` instead.
    """

    def __init__(self, fail_for: Optional[set[str]] = None) -> None:
        self.fail_for = fail_for or set()
        self.requested: list[str] = []

    @property
    def provider_type(self) -> str:
        return "fake"

    def token_for(self, git: GitBinary, target: TargetURL, timeout: float) -> Token:
        self.requested.append(target.url)
        if target.url in self.fail_for:
            raise TokenError("credentials unavailable")
        return Token(access_token=f"token-{target.host}", expiry=TOKEN_EXPIRY)


@pytest.fixture
def make_git() -> type[FakeGit]:
    """The FakeGit class, for tests that build or subclass their own."""
    return FakeGit


@pytest.fixture
def fake_git() -> FakeGit:
    """A FakeGit with no configured URLs that prints cookies to stdout."""
    return FakeGit(values={"google.cookieFile": "-"})


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def run_context(fake_provider: FakeProvider) -> RunContext:
    """A RunContext with a fixed clock and program name."""
    return RunContext(
        config=RunConfig(),
        provider=fake_provider,
        program="googlesource-cookieauth",
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def use_git(monkeypatch: pytest.MonkeyPatch):
    """Return a function that makes GitBinary.find() hand back a given fake."""

    def _install(git: GitBinary) -> GitBinary:
        monkeypatch.setattr(
            GitBinary, "find", classmethod(lambda cls, configs=None, timeout=None: git)
        )
        return git

    return _install


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME and XDG_DATA_HOME at tmp_path and clear our env vars."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: home))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "GOOGLESOURCE_COOKIEAUTH_REFRESH_INTERVAL",
        "GOOGLESOURCE_COOKIEAUTH_TIMEOUT",
    ]:
        monkeypatch.delenv(var, raising=False)
    return home


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def plain_output() -> OutputManager:
    """Install a colourless OutputManager so stderr is easy to assert on."""
    output = OutputManager(no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
