"""Abstract base class for token providers.

A token provider turns a target URL into an access token. The pipeline calls
:meth:`TokenProvider.token_for` once per URL and never reuses a token across
URLs, so providers are free to pick different credentials per URL based on
git-config.

To implement a new provider, subclass :class:`TokenProvider`, set the
:attr:`~TokenProvider.provider_type` property, and implement
:meth:`~TokenProvider.token_for`.

See Also:
    :mod:`googlesource_cookieauth.auth.google` for the default provider.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from googlesource_cookieauth.git import GitBinary
from googlesource_cookieauth.models import TargetURL, Token


class TokenProvider(ABC):
    """Abstract base class for token providers."""

    @property
    @abstractmethod
    def provider_type(self) -> str:
        """Return a short identifier such as ``"google"``."""
        ...

    @abstractmethod
    def token_for(self, git: GitBinary, target: TargetURL, timeout: float) -> Token:
        """Obtain a fresh access token for *target*.

        Args:
            git: git binary used to read URL-matched settings.
            target: The URL the token will authenticate against.
            timeout: Seconds allowed for each HTTP request the provider makes.

        Returns:
            A :class:`~googlesource_cookieauth.models.Token`.

        Raises:
            TokenError: If no token can be obtained.
            ConfigError: If git-config cannot be read.
        """
        ...
