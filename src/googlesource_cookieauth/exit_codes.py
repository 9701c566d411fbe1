"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~googlesource_cookieauth.exceptions.CookieAuthError`
subclass. Process supervisors and wrapper scripts can inspect the exit code
of a one-shot run to tell a missing git binary apart from a token failure.

Example::

    $ googlesource-cookieauth
    Error: Cannot write cookies: cannot find the git binary: ...
    $ echo $?
    4   # EXIT_GIT_NOT_FOUND
"""

EXIT_SUCCESS = 0
"""The cookie file was written."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_TOKEN_FAILURE = 3
"""A token could not be obtained for one of the target URLs."""

EXIT_GIT_NOT_FOUND = 4
"""The git binary could not be located."""

EXIT_CONFIG_ERROR = 5
"""git-config could not be read."""

EXIT_OUTPUT_ERROR = 6
"""The output directory or cookie file could not be written."""

EXIT_INTERRUPTED = 130
"""The process was interrupted with Ctrl-C."""
