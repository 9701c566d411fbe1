"""Token providers for googlesource-cookieauth.

- :class:`TokenProvider` -- abstract base class for token providers.
- :class:`GoogleTokenProvider` -- the default provider, backed by google-auth.
- :func:`create_default_provider` -- factory used by the CLI.

Typical usage::

    from googlesource_cookieauth.auth import create_default_provider

    provider = create_default_provider()
    token = provider.token_for(git, target, timeout=30.0)
"""

from googlesource_cookieauth.auth.base import TokenProvider
from googlesource_cookieauth.auth.google import GoogleTokenProvider


def create_default_provider() -> TokenProvider:
    """Return the provider used when none is injected."""
    return GoogleTokenProvider()


__all__ = [
    "GoogleTokenProvider",
    "TokenProvider",
    "create_default_provider",
]
