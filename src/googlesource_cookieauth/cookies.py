"""Cookie records and the Netscape cookie-jar text format.

Each line of a Netscape (Mozilla) cookie-jar file has seven tab-separated
fields::

    domain  include_subdomains  path  secure  expires  name  value

Cookies flagged http-only are written with a ``#HttpOnly_`` prefix on the
domain, as curl and git do. Every other line starting with ``#`` is a comment.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, TextIO
from urllib.parse import urlsplit

from googlesource_cookieauth.models import CookieRecord, TargetURL, Token

COOKIE_NAME = "o"
"""Cookie name googlesource.com reads the OAuth2 access token from."""

_HTTP_ONLY_PREFIX = "#HttpOnly_"


def make_cookies(target: TargetURL, token: Token) -> list[CookieRecord]:
    """Build the cookie records that carry *token* to *target*.

    The domain gets a leading dot so the cookie also covers subdomains
    (``.googlesource.com`` matches ``chromium.googlesource.com``). The
    cookie expires with the token.
    """
    hostname = urlsplit(target.url).hostname or target.host
    expires = int(token.expiry.timestamp()) if token.expiry is not None else 0
    return [
        CookieRecord(
            domain=f".{hostname}",
            path=target.path or "/",
            name=COOKIE_NAME,
            value=token.access_token,
            expires=expires,
            secure=target.scheme == "https",
        )
    ]


def _flag(value: bool) -> str:
    return "TRUE" if value else "FALSE"


def marshal_cookie(writer: TextIO, cookie: CookieRecord) -> None:
    """Write *cookie* to *writer* as one cookie-jar line."""
    domain = cookie.domain
    if cookie.http_only:
        domain = _HTTP_ONLY_PREFIX + domain
    fields = [
        domain,
        _flag(cookie.include_subdomains),
        cookie.path,
        _flag(cookie.secure),
        str(cookie.expires),
        cookie.name,
        cookie.value,
    ]
    writer.write("\t".join(fields) + "\n")


def header_line(program: str, now: datetime) -> str:
    """Return the ``# Created by ... at ...`` comment, with an RFC 3339 timestamp."""
    if now.tzinfo is None:
        now = now.astimezone()
    return f"# Created by {program} at {now.isoformat(timespec='seconds')}\n"


def write_cookie_jar(
    writer: TextIO,
    cookies: Iterable[CookieRecord],
    program: str,
    now: datetime,
) -> None:
    """Write the header line followed by one line per cookie, in order."""
    writer.write(header_line(program, now))
    for cookie in cookies:
        marshal_cookie(writer, cookie)
