"""Tests for the token-to-cookie acquisition pipeline."""

from __future__ import annotations

import os
import stat
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from googlesource_cookieauth.auth.base import TokenProvider
from googlesource_cookieauth.exceptions import (
    ConfigError,
    GitNotFoundError,
    OutputError,
    RunCancelled,
    TokenError,
)
from googlesource_cookieauth.exit_codes import EXIT_CONFIG_ERROR, EXIT_INTERRUPTED
from googlesource_cookieauth.git import GitBinary
from googlesource_cookieauth.models import CookieRecord, TargetURL
from googlesource_cookieauth.pipeline import (
    WELL_KNOWN_HOSTS,
    RunContext,
    normalize_targets,
    resolve_destination,
    write_cookies,
    write_output,
)

FIXED_NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


def _targets(*urls: str) -> list[TargetURL]:
    return [TargetURL.parse(u) for u in urls]


def _cookie_lines(text: str) -> list[str]:
    return [line for line in text.splitlines() if not line.startswith("# ")]


# ---------------------------------------------------------------------------
# normalize_targets
# ---------------------------------------------------------------------------


class TestNormalizeTargets:
    def test_empty_list_gets_both_well_known_hosts(self) -> None:
        result = normalize_targets([])
        assert [t.url for t in result] == [
            "https://googlesource.com",
            "https://source.developers.google.com",
        ]

    def test_configured_urls_come_first(self) -> None:
        result = normalize_targets(
            _targets("https://a.example.com", "https://b.example.com/x")
        )
        assert [t.url for t in result] == [
            "https://a.example.com",
            "https://b.example.com/x",
            "https://googlesource.com",
            "https://source.developers.google.com",
        ]

    @pytest.mark.parametrize(
        "configured",
        ["https://googlesource.com", "https://googlesource.com/"],
    )
    def test_well_known_host_not_duplicated(self, configured: str) -> None:
        result = normalize_targets(_targets(configured))
        hosts = [t.host for t in result]
        assert hosts.count("googlesource.com") == 1
        assert hosts.count("source.developers.google.com") == 1
        assert result[0].url == configured

    def test_both_well_known_hosts_configured(self) -> None:
        configured = _targets(
            "https://source.developers.google.com/", "https://googlesource.com"
        )
        assert normalize_targets(configured) == configured

    def test_path_variant_is_a_separate_target(self) -> None:
        result = normalize_targets(_targets("https://googlesource.com/foo"))
        assert [t.url for t in result] == [
            "https://googlesource.com/foo",
            "https://googlesource.com",
            "https://source.developers.google.com",
        ]

    def test_empty_and_root_path_collapse_to_one(self) -> None:
        result = normalize_targets(
            _targets("https://googlesource.com", "https://googlesource.com/")
        )
        assert [t.url for t in result].count("https://googlesource.com") == 1
        assert "https://googlesource.com/" not in [t.url for t in result]

    def test_each_well_known_host_exactly_once(self) -> None:
        result = normalize_targets(
            _targets("https://x.example.com", "http://googlesource.com/")
        )
        for host in WELL_KNOWN_HOSTS:
            assert sum(1 for t in result if t.host == host and t.is_root) == 1


# ---------------------------------------------------------------------------
# resolve_destination
# ---------------------------------------------------------------------------


class TestResolveDestination:
    def test_configured_value_wins(self, make_git) -> None:
        git = make_git(values={"google.cookieFile": "/tmp/cookies"})
        assert resolve_destination(git) == "/tmp/cookies"

    def test_default_under_home(self, make_git, isolated_home: Path) -> None:
        assert resolve_destination(make_git()) == str(
            isolated_home / ".git-credential-cache" / "googlesource-cookieauth-cookie"
        )


# ---------------------------------------------------------------------------
# write_output
# ---------------------------------------------------------------------------


class TestWriteOutput:
    def _cookies(self) -> list[CookieRecord]:
        return [CookieRecord(domain=".googlesource.com", name="o", value="v")]

    def test_dash_writes_to_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        write_output("-", self._cookies(), "prog", FIXED_NOW)
        out = capsys.readouterr().out
        assert out.startswith("# Created by prog at 2026-10-18T12:00:00+00:00\n")
        assert ".googlesource.com\tTRUE\t/\tTRUE\t0\to\tv" in out

    def test_file_and_directory_permissions(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "dir" / "cookie"
        write_output(str(target), self._cookies(), "prog", FIXED_NOW)

        assert stat.S_IMODE(os.stat(target).st_mode) == 0o600
        assert stat.S_IMODE(os.stat(target.parent).st_mode) == 0o700
        assert stat.S_IMODE(os.stat(target.parent.parent).st_mode) == 0o700

    def test_existing_directory_permissions_untouched(self, tmp_path: Path) -> None:
        existing = tmp_path / "shared"
        existing.mkdir(mode=0o755)
        os.chmod(existing, 0o755)
        write_output(str(existing / "cookie"), self._cookies(), "prog", FIXED_NOW)
        assert stat.S_IMODE(os.stat(existing).st_mode) == 0o755

    def test_file_is_truncated_not_appended(self, tmp_path: Path) -> None:
        target = tmp_path / "cookie"
        target.write_text("stale line\n" * 50)
        write_output(str(target), self._cookies(), "prog", FIXED_NOW)

        content = target.read_text()
        assert "stale line" not in content
        assert len(content.splitlines()) == 2

    def test_existing_file_mode_is_tightened(self, tmp_path: Path) -> None:
        target = tmp_path / "cookie"
        target.write_text("old\n")
        os.chmod(target, 0o644)
        write_output(str(target), self._cookies(), "prog", FIXED_NOW)
        assert stat.S_IMODE(os.stat(target).st_mode) == 0o600

    def test_no_temp_files_left_behind(self, tmp_path: Path) -> None:
        write_output(str(tmp_path / "cookie"), self._cookies(), "prog", FIXED_NOW)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["cookie"]

    def test_directory_creation_failure(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(OutputError, match="cannot create the output directory"):
            write_output(str(blocker / "sub" / "cookie"), self._cookies(), "prog", FIXED_NOW)

    def test_symlinked_destination_is_written_through(self, tmp_path: Path) -> None:
        real = tmp_path / "store" / "cookie"
        real.parent.mkdir()
        real.write_text("old\n")
        link = tmp_path / "cookie-link"
        link.symlink_to(real)

        write_output(str(link), self._cookies(), "prog", FIXED_NOW)

        assert link.is_symlink()
        assert "old" not in real.read_text()
        assert real.read_text().startswith("# Created by prog")
        assert stat.S_IMODE(os.stat(real).st_mode) == 0o600
        assert sorted(p.name for p in real.parent.iterdir()) == ["cookie"]

    def test_dangling_symlink_creates_its_target(self, tmp_path: Path) -> None:
        real = tmp_path / "missing" / "cookie"
        link = tmp_path / "cookie-link"
        link.symlink_to(real)

        write_output(str(link), self._cookies(), "prog", FIXED_NOW)

        assert link.is_symlink()
        assert real.read_text().startswith("# Created by prog")
        assert stat.S_IMODE(os.stat(real.parent).st_mode) == 0o700

    def test_replace_failure_keeps_previous_file(self, tmp_path: Path) -> None:
        target = tmp_path / "cookie"
        target.write_text("previous\n")
        with patch(
            "googlesource_cookieauth.pipeline.os.replace",
            side_effect=PermissionError("denied"),
        ):
            with pytest.raises(OutputError, match="cannot write the output file"):
                write_output(str(target), self._cookies(), "prog", FIXED_NOW)
        assert target.read_text() == "previous\n"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["cookie"]


# ---------------------------------------------------------------------------
# write_cookies
# ---------------------------------------------------------------------------


class TestWriteCookies:
    def test_default_targets_to_stdout(
        self,
        use_git,
        fake_git: GitBinary,
        fake_provider: TokenProvider,
        run_context: RunContext,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        use_git(fake_git)
        destination = write_cookies(run_context)

        assert destination == "-"
        assert fake_provider.requested == [
            "https://googlesource.com",
            "https://source.developers.google.com",
        ]
        out = capsys.readouterr().out
        lines = out.splitlines()
        assert lines[0] == (
            "# Created by googlesource-cookieauth at 2026-10-18T12:00:00+00:00"
        )
        cookie_lines = _cookie_lines(out)
        assert len(cookie_lines) == 2
        assert cookie_lines[0].startswith(".googlesource.com\tTRUE\t/\tTRUE\t")
        assert cookie_lines[0].endswith("\to\ttoken-googlesource.com")
        assert cookie_lines[1].startswith(".source.developers.google.com\t")

    def test_configured_urls_are_included(
        self,
        use_git,
        make_git,
        fake_provider: TokenProvider,
        run_context: RunContext,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        use_git(
            make_git(
                urls=["https://chromium.googlesource.com", "https://googlesource.com/"],
                values={"google.cookieFile": "-"},
            )
        )
        write_cookies(run_context)

        assert fake_provider.requested == [
            "https://chromium.googlesource.com",
            "https://googlesource.com/",
            "https://source.developers.google.com",
        ]
        assert len(_cookie_lines(capsys.readouterr().out)) == 3

    def test_writes_default_file(
        self,
        use_git,
        make_git,
        isolated_home: Path,
        run_context: RunContext,
    ) -> None:
        use_git(make_git())
        destination = write_cookies(run_context)

        path = Path(destination)
        assert path == isolated_home / ".git-credential-cache" / "googlesource-cookieauth-cookie"
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
        assert stat.S_IMODE(os.stat(path.parent).st_mode) == 0o700
        assert len(path.read_text().splitlines()) == 3

    def test_provider_failure_aborts_without_touching_output(
        self,
        use_git,
        make_git,
        tmp_path: Path,
        run_context: RunContext,
        fake_provider: TokenProvider,
    ) -> None:
        target = tmp_path / "out" / "cookie"
        target.parent.mkdir()
        target.write_text("previous\n")
        use_git(make_git(values={"google.cookieFile": str(target)}))
        fake_provider.fail_for = {"https://source.developers.google.com"}

        with pytest.raises(TokenError) as exc_info:
            write_cookies(run_context)

        assert "cannot create a token for https://source.developers.google.com" in str(
            exc_info.value
        )
        assert target.read_text() == "previous\n"
        assert sorted(p.name for p in target.parent.iterdir()) == ["cookie"]

    def test_first_failure_stops_further_requests(
        self,
        use_git,
        fake_git: GitBinary,
        fake_provider: TokenProvider,
        run_context: RunContext,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        use_git(fake_git)
        fake_provider.fail_for = {"https://googlesource.com"}

        with pytest.raises(TokenError):
            write_cookies(run_context)

        assert fake_provider.requested == ["https://googlesource.com"]
        assert capsys.readouterr().out == ""

    def test_git_not_found(self, run_context: RunContext) -> None:
        with patch("googlesource_cookieauth.git.shutil.which", return_value=None):
            with pytest.raises(GitNotFoundError):
                write_cookies(run_context)

    def test_unreadable_url_list(
        self, use_git, make_git, run_context: RunContext
    ) -> None:
        class BrokenGit(make_git):
            def list_urls(self) -> list[TargetURL]:
                raise ConfigError("fatal: bad config")

        use_git(BrokenGit())
        with pytest.raises(ConfigError, match="cannot read the list of URLs in git-config"):
            write_cookies(run_context)

    def test_unreadable_cookie_file_setting(
        self, use_git, make_git, run_context: RunContext
    ) -> None:
        class BrokenGit(make_git):
            def get_config(self, key: str, *, path: bool = False) -> str:
                raise ConfigError("fatal: bad config")

        use_git(BrokenGit())
        with pytest.raises(ConfigError, match="cannot read google.cookieFile"):
            write_cookies(run_context)

    def test_cancelled_run_stops_before_token_requests(
        self,
        use_git,
        fake_git: GitBinary,
        fake_provider: TokenProvider,
        run_context: RunContext,
    ) -> None:
        use_git(fake_git)
        run_context.stop.set()

        with pytest.raises(RunCancelled, match="cancelled") as exc_info:
            write_cookies(run_context)
        assert exc_info.value.exit_code == EXIT_INTERRUPTED
        assert fake_provider.requested == []

    def test_unreadable_url_settings_keep_config_exit_code(
        self, use_git, make_git, run_context: RunContext
    ) -> None:
        class BrokenGit(make_git):
            def get_urlmatch(self, key: str, url: str, *, path: bool = False) -> str:
                raise ConfigError("fatal: bad config line 7")

        class SettingsReadingProvider(TokenProvider):
            @property
            def provider_type(self) -> str:
                return "settings"

            def token_for(self, git, target, timeout):
                git.get_urlmatch("google.scopes", target.url)
                raise AssertionError("unreachable")

        use_git(BrokenGit(values={"google.cookieFile": "-"}))
        run_context.provider = SettingsReadingProvider()

        with pytest.raises(ConfigError) as exc_info:
            write_cookies(run_context)

        assert not isinstance(exc_info.value, TokenError)
        assert exc_info.value.exit_code == EXIT_CONFIG_ERROR
        assert "cannot read the settings for https://googlesource.com" in str(exc_info.value)
        assert "bad config line 7" in str(exc_info.value)

    def test_git_configs_and_timeout_reach_find(
        self, fake_git: GitBinary, fake_provider: TokenProvider, capsys
    ) -> None:
        from googlesource_cookieauth.models import RunConfig

        context = RunContext(
            config=RunConfig(git_configs=["google.cookieFile=-"], timeout=12.0),
            provider=fake_provider,
        )
        with patch.object(GitBinary, "find", return_value=fake_git) as mock_find:
            write_cookies(context)
        mock_find.assert_called_once_with(configs=["google.cookieFile=-"], timeout=12.0)
