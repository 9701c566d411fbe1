"""googlesource_cookieauth -- keep a git cookie file filled with fresh OAuth2 tokens.

This package obtains an access token from the local Google credential setup
(Application Default Credentials or a service-account key named in
git-config) and writes it into a Netscape cookie-jar file that git reads via
``http.cookiefile``. It can run once or stay resident and refresh the file
every 45 minutes.

Typical usage::

    googlesource-cookieauth                  # write the cookie file once
    googlesource-cookieauth --run-as-daemon  # refresh it forever

Modules:
    app: Typer application and console-script entry point.
    pipeline: Token-to-cookie acquisition pipeline.
    scheduler: One-shot and daemon run modes.
    git: Locating git and reading git-config.
    auth: Token providers.
    cookies: Cookie records and Netscape cookie-jar serialisation.
    config: XDG paths and run configuration resolution.
    models: Pydantic models shared across the package.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stderr diagnostics with Rich support.
"""

__version__ = "0.1.0"
