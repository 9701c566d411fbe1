"""Exception hierarchy for googlesource-cookieauth.

All exceptions inherit from :class:`CookieAuthError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`googlesource_cookieauth.exit_codes`. A one-shot run lets the error
reach :func:`googlesource_cookieauth.app.main`, which exits with that code;
daemon mode logs it and waits for the next tick.

Subclass hierarchy::

    CookieAuthError (exit 1)
    +-- TokenError        (exit 3)
    +-- GitNotFoundError  (exit 4)
    +-- ConfigError       (exit 5)
    +-- OutputError       (exit 6)
    +-- RunCancelled      (exit 130)
"""

from googlesource_cookieauth.exit_codes import (
    EXIT_CONFIG_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_GIT_NOT_FOUND,
    EXIT_INTERRUPTED,
    EXIT_OUTPUT_ERROR,
    EXIT_TOKEN_FAILURE,
)


class CookieAuthError(Exception):
    """Base exception for all googlesource-cookieauth errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class TokenError(CookieAuthError):
    """Raised when the credential provider cannot produce a token for a URL."""

    exit_code = EXIT_TOKEN_FAILURE


class GitNotFoundError(CookieAuthError):
    """Raised when the git binary cannot be found on ``PATH``."""

    exit_code = EXIT_GIT_NOT_FOUND


class ConfigError(CookieAuthError):
    """Raised when git-config cannot be read or holds an unusable value."""

    exit_code = EXIT_CONFIG_ERROR


class OutputError(CookieAuthError):
    """Raised when the output directory or cookie file cannot be written."""

    exit_code = EXIT_OUTPUT_ERROR


class RunCancelled(CookieAuthError):
    """Raised when the stop event is set before a run finishes."""

    exit_code = EXIT_INTERRUPTED
