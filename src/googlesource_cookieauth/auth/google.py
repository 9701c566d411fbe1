"""Google OAuth2 token provider built on google-auth.

For each target URL the provider reads two URL-matched git-config settings:

* ``google.scopes`` -- OAuth2 scopes, separated by commas or whitespace.
  Defaults to :data:`DEFAULT_SCOPES`.
* ``google.serviceAccountJSONFilename`` -- path to a service-account key.
  When unset, Application Default Credentials are used (``gcloud auth
  application-default login``, ``GOOGLE_APPLICATION_CREDENTIALS``, or the GCE
  metadata server).

The credentials are refreshed through :class:`~.transport.HttpxRequest`
inside a short-lived :class:`httpx.Client`, so nothing is cached between
URLs or between runs.
"""

from __future__ import annotations

import logging
import re
from datetime import timezone

import google.auth
import httpx
from google.auth import exceptions as google_exceptions
from google.oauth2 import service_account

from googlesource_cookieauth.auth.base import TokenProvider
from googlesource_cookieauth.auth.transport import HttpxRequest
from googlesource_cookieauth.exceptions import TokenError
from googlesource_cookieauth.git import GitBinary
from googlesource_cookieauth.models import TargetURL, Token

logger = logging.getLogger(__name__)

SCOPES_KEY = "google.scopes"
SERVICE_ACCOUNT_KEY = "google.serviceAccountJSONFilename"

DEFAULT_SCOPES = [
    "https://www.googleapis.com/auth/cloud-platform",
    "https://www.googleapis.com/auth/userinfo.email",
]


def parse_scopes(raw: str) -> list[str]:
    """Split a ``google.scopes`` value into a list, falling back to the defaults."""
    scopes = [s for s in re.split(r"[\s,]+", raw) if s]
    return scopes or list(DEFAULT_SCOPES)


def _load_service_account(
    key_file: str, scopes: list[str]
) -> service_account.Credentials:
    try:
        return service_account.Credentials.from_service_account_file(
            key_file, scopes=scopes
        )
    except (OSError, ValueError) as exc:
        raise TokenError(f"cannot load service account key {key_file}: {exc}") from exc


class GoogleTokenProvider(TokenProvider):
    """Issue access tokens from ADC or a service-account key."""

    @property
    def provider_type(self) -> str:
        return "google"

    def token_for(self, git: GitBinary, target: TargetURL, timeout: float) -> Token:
        scopes = parse_scopes(git.get_urlmatch(SCOPES_KEY, target.url))
        key_file = git.get_urlmatch(SERVICE_ACCOUNT_KEY, target.url, path=True)

        with httpx.Client(timeout=timeout) as client:
            request = HttpxRequest(client, timeout=timeout)
            try:
                if key_file:
                    logger.debug("Using service account key %s for %s", key_file, target)
                    credentials = _load_service_account(key_file, scopes)
                else:
                    logger.debug("Using application default credentials for %s", target)
                    credentials, _project = google.auth.default(
                        scopes=scopes, request=request
                    )
                credentials.refresh(request)
            except google_exceptions.GoogleAuthError as exc:
                raise TokenError(str(exc)) from exc

        if not credentials.token:
            raise TokenError("the credential provider returned an empty token")

        # google-auth reports expiry as a naive UTC datetime.
        expiry = credentials.expiry
        if expiry is not None and expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return Token(access_token=credentials.token, expiry=expiry)
