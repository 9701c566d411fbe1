"""httpx transport for google-auth.

google-auth performs its token exchanges through a small transport interface
(:class:`google.auth.transport.Request`). This module implements that
interface on top of an :class:`httpx.Client` so that every token request
goes through the same HTTP stack and honours the run's timeout.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import httpx
from google.auth import exceptions, transport


class HttpxResponse(transport.Response):
    """Adapts an :class:`httpx.Response` to google-auth's response interface."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    @property
    def status(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> Mapping[str, str]:
        return self._response.headers

    @property
    def data(self) -> bytes:
        return self._response.content


class HttpxRequest(transport.Request):
    """Callable that google-auth uses to make HTTP requests.

    Args:
        client: The client to send requests through. The caller owns it and
            is responsible for closing it.
        timeout: Default timeout in seconds, used when google-auth does not
            pass one of its own.
    """

    def __init__(self, client: httpx.Client, timeout: Optional[float] = None) -> None:
        self._client = client
        self._timeout = timeout

    def __call__(
        self,
        url: str,
        method: str = "GET",
        body: Optional[bytes] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> HttpxResponse:
        """Send a request and wrap the response.

        Raises:
            google.auth.exceptions.TransportError: On any network-level
                failure (timeout, DNS resolution, connection refused).
        """
        effective_timeout = timeout if timeout is not None else self._timeout
        try:
            response = self._client.request(
                method,
                url,
                content=body,
                headers=dict(headers) if headers else None,
                timeout=effective_timeout,
            )
        except httpx.HTTPError as exc:
            raise exceptions.TransportError(exc) from exc
        return HttpxResponse(response)
