"""One-shot and daemon run modes.

* :func:`run_once` runs the pipeline a single time and lets any error reach
  the caller, which turns it into a non-zero exit.
* :func:`run_daemon` runs the pipeline immediately and then every
  ``refresh_interval`` seconds. Failures are reported and the schedule
  continues. It returns only when the context's stop event is set, which
  the CLI does from its SIGTERM/SIGINT handlers.

The timing itself lives in :func:`run_every` so that it can be tested with
a fake clock and a fake stop event.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from googlesource_cookieauth.exceptions import CookieAuthError, RunCancelled
from googlesource_cookieauth.output import error, success
from googlesource_cookieauth.pipeline import RunContext, write_cookies

logger = logging.getLogger(__name__)


def run_every(
    interval: float,
    work: Callable[[], None],
    stop: threading.Event,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """Call *work* now and then every *interval* seconds until *stop* is set.

    Fire times are computed from the previous fire time, not from when
    *work* returned, so a slow run does not push the schedule back. When a
    run takes longer than *interval*, the missed tick is dropped and the
    next one is scheduled *interval* seconds from now.

    Args:
        interval: Seconds between the starts of consecutive runs.
        work: The unit of work. It must not raise.
        stop: Cancellation event; checked before each run and waited on
            between runs.
        clock: Monotonic clock, in seconds.
    """
    next_fire = clock()
    while not stop.is_set():
        work()
        next_fire += interval
        now = clock()
        if next_fire <= now:
            logger.debug("Run overran the %ss interval, skipping a tick", interval)
            next_fire = now + interval
        if stop.wait(next_fire - now):
            return


def run_once(context: RunContext) -> str:
    """Run the pipeline once.

    Returns:
        The destination the cookies were written to.

    Raises:
        CookieAuthError: If the run fails.
    """
    return write_cookies(context)


def run_daemon(context: RunContext) -> None:
    """Refresh the cookies forever, reporting each run's outcome."""

    def _refresh() -> None:
        try:
            destination = write_cookies(context)
        except RunCancelled:
            logger.debug("Refresh cancelled before it finished")
        except CookieAuthError as exc:
            error(f"Cannot write cookies: {exc}")
        except Exception as exc:
            logger.debug("Unexpected error during refresh", exc_info=True)
            error(f"Cannot write cookies: unexpected error: {exc!r}")
        else:
            success(f"Wrote cookies to {destination}")

    run_every(context.config.refresh_interval, _refresh, context.stop)
