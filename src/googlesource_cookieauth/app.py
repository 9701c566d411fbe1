"""Typer application and CLI entry point for googlesource-cookieauth.

The command writes the cookie file once, or with ``--run-as-daemon`` keeps
refreshing it every 45 minutes until it receives SIGTERM or SIGINT.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Unhandled exceptions are written to a crash log under the
data directory.

See Also:
    :mod:`googlesource_cookieauth.config`: Run configuration resolution.
    :mod:`googlesource_cookieauth.scheduler`: The run modes.
"""

from __future__ import annotations

import os
import signal
import sys
import threading
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from googlesource_cookieauth import __version__
from googlesource_cookieauth.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED


app = typer.Typer(
    name="googlesource-cookieauth",
    help="Write a Netscape cookie file for googlesource.com and source.developers.google.com.",
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"googlesource-cookieauth {__version__}")
        raise typer.Exit()


@app.command()
def main_command(
    configs: Optional[list[str]] = typer.Option(
        None,
        "-c",
        metavar="KEY[=VALUE]",
        help="Configuration parameter passed to git. Can be repeated.",
    ),
    run_as_daemon: bool = typer.Option(
        False,
        "--run-as-daemon",
        help="Keep running and refresh the cookies every 45 minutes.",
    ),
    refresh_interval: Optional[float] = typer.Option(
        None,
        "--refresh-interval",
        min=1.0,
        help="Seconds between refreshes in daemon mode. "
        "[env: GOOGLESOURCE_COOKIEAUTH_REFRESH_INTERVAL] [default: 2700]",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        min=1.0,
        help="Seconds allowed per token HTTP request. "
        "[env: GOOGLESOURCE_COOKIEAUTH_TIMEOUT] [default: 30]",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Write cookies for googlesource.com and source.developers.google.com.

    The output path comes from ``google.cookieFile`` in git-config and
    defaults to ``~/.git-credential-cache/googlesource-cookieauth-cookie``.
    Set it to ``-`` to print the cookies to stdout.

    Example::

        googlesource-cookieauth
        googlesource-cookieauth -c google.cookieFile=-
        googlesource-cookieauth --run-as-daemon
    """
    from googlesource_cookieauth.auth import create_default_provider
    from googlesource_cookieauth.config import resolve_run_config
    from googlesource_cookieauth.exceptions import CookieAuthError
    from googlesource_cookieauth.output import (
        OutputManager,
        configure_logging,
        debug,
        error,
        info,
        set_output,
    )
    from googlesource_cookieauth.pipeline import RunContext
    from googlesource_cookieauth.scheduler import run_daemon, run_once

    set_output(
        OutputManager(
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
            timestamps=run_as_daemon,
        )
    )
    configure_logging(verbose)

    try:
        config = resolve_run_config(
            git_configs=configs,
            run_as_daemon=run_as_daemon,
            refresh_interval=refresh_interval,
            timeout=timeout,
            verbose=verbose,
        )
    except CookieAuthError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    context = RunContext(config=config, provider=create_default_provider())

    if config.run_as_daemon:
        info(f"Refreshing cookies every {config.refresh_interval:g}s")
        previous = _install_stop_handlers(context.stop)
        try:
            run_daemon(context)
        finally:
            _restore_handlers(previous)
        info("Stopped.")
        return

    try:
        destination = run_once(context)
    except CookieAuthError as exc:
        error(f"Cannot write cookies: {exc}")
        raise typer.Exit(code=exc.exit_code) from None
    debug(f"Wrote cookies to {destination}")


def _install_stop_handlers(stop: threading.Event) -> dict[int, Any]:
    """Make SIGTERM and SIGINT set *stop*; return the handlers they replace."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        stop.set()

    previous: dict[int, Any] = {}
    for signum in (signal.SIGTERM, signal.SIGINT):
        previous[signum] = signal.signal(signum, _handler)
    return previous


def _restore_handlers(previous: dict[int, Any]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def _exit_on_sigint() -> None:
    """Make Ctrl-C end a one-shot run with exit code 130.

    Click would otherwise report ``Aborted!`` and exit with 1. Daemon mode
    swaps this for :func:`_install_stop_handlers` while it runs.
    """

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: BaseException) -> Path:
    """Save *exc* with its traceback under ``<data dir>/logs/``.

    The file name carries the time and the process id, so two daemons
    crashing in the same second do not overwrite each other.
    """
    from googlesource_cookieauth.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    now = datetime.now().astimezone()
    log_path = logs_dir / f"crash-{now:%Y%m%d-%H%M%S}-{os.getpid()}.log"
    header = (
        f"googlesource-cookieauth {__version__} crashed at "
        f"{now.isoformat(timespec='seconds')}\n\n"
    )
    log_path.write_text(
        header + "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return log_path


def main() -> None:
    """Console-script entry point.

    Errors that escape the command become exit codes here: a
    :class:`~googlesource_cookieauth.exceptions.CookieAuthError` exits with
    its own code, and anything unexpected leaves a crash log behind and
    exits with 1.
    """
    from googlesource_cookieauth.exceptions import CookieAuthError
    from googlesource_cookieauth.output import error

    _exit_on_sigint()
    try:
        app()
    except CookieAuthError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        log_path = _write_crash_log(exc)
        error(f"Unexpected failure; the traceback is in {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
