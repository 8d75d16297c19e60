"""
Request-scoped cookie transport.

A `RequestContext` bundles everything a cookie needs to talk to the outside
world: the inbound cookie jar, the outbound sink and the client address used
for key derivation. Contexts are created per request and passed explicitly.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from email.utils import formatdate
from typing import Protocol
from urllib.parse import unquote

from streamlit_typed_cookies.validation import encode_pair, is_safe_attribute

logger = logging.getLogger(__name__)


class CookieSink(Protocol):
    """Outbound channel accepting cookies for the response."""

    def set_cookie(
        self,
        name: str,
        value: str,
        expire: int | None,
        path: str | None,
        domain: str | None,
        secure: bool,
        httponly: bool,
    ) -> bool: ...


def parse_cookies(raw_cookie: str) -> Mapping[str, str]:
    """
    Parse a raw cookie header into a dictionary.

    Returns a mapping from cookie names to values. Malformed parts are ignored.

    Returns:
        Mapping[str, str]: The parsed cookie dictionary.

    """
    cookies: dict[str, str] = {}
    if not raw_cookie:
        return cookies

    for part_raw in raw_cookie.split(";"):
        part = part_raw.strip()
        if not part:
            continue
        try:
            name, value = part.split("=", 1)
        except ValueError:
            # Malformed part such as "name" without a value.
            continue
        if not name:
            continue
        cookies[unquote(name)] = unquote(value)
    return cookies


def format_set_cookie(
    name: str,
    value: str,
    expire: int | None = None,
    path: str | None = None,
    domain: str | None = None,
    secure: bool = False,
    httponly: bool = False,
) -> str:
    """
    Build a ``Set-Cookie`` header value, percent-encoding name and value.

    Returns:
        str: The header value, without the ``Set-Cookie:`` prefix.

    Raises:
        ValueError: If the path or domain would inject extra attributes or headers.

    """
    parts = [encode_pair(name, value)]
    if expire is not None:
        parts.append(f"Expires={formatdate(expire, usegmt=True)}")
    # Attributes are written verbatim; refuse anything that could end them early.
    for attribute, text in (("Path", path), ("Domain", domain)):
        if not text:
            continue
        if not is_safe_attribute(text):
            msg = f"Unsafe {attribute} attribute for cookie {name!r}: {text!r}"
            raise ValueError(msg)
        parts.append(f"{attribute}={text}")
    if secure:
        parts.append("Secure")
    if httponly:
        parts.append("HttpOnly")
    return "; ".join(parts)


class HeaderCookieSink:
    """
    Collect ``Set-Cookie`` headers for a response.

    Writing a cookie twice replaces the first header. Once the response
    headers are flagged as sent with `mark_sent`, every write is rejected.
    """

    def __init__(self) -> None:
        """Initialize an empty sink."""
        # Keyed by cookie name so a rewrite replaces the earlier header.
        self._headers: dict[str, str] = {}
        self._sent = False

    @property
    def sent(self) -> bool:
        """Whether the response headers were already emitted."""
        return self._sent

    def mark_sent(self) -> None:
        """Flag the response headers as emitted."""
        self._sent = True

    def set_cookie(
        self,
        name: str,
        value: str,
        expire: int | None,
        path: str | None,
        domain: str | None,
        secure: bool,
        httponly: bool,
    ) -> bool:
        """
        Add or replace the ``Set-Cookie`` header for `name`.

        Returns:
            bool: False once the headers are sent, True otherwise.

        Raises:
            ValueError: If the path or domain is unsafe. See `format_set_cookie`.

        """
        if self._sent:
            logger.debug("Rejecting cookie %r: headers already sent", name)
            return False
        self._headers[name] = format_set_cookie(name, value, expire, path, domain, secure, httponly)
        return True

    @property
    def headers(self) -> list[str]:
        """Return the ``Set-Cookie`` values in write order."""
        return list(self._headers.values())

    def header_items(self) -> list[tuple[str, str]]:
        """Return headers as ``(name, value)`` pairs, ready for a WSGI response."""
        return [("Set-Cookie", header) for header in self._headers.values()]

    def __repr__(self) -> str:
        """
        Return a string representation of the sink.

        Returns:
            str: The collected header values.

        """
        return f"<HeaderCookieSink: {self.headers!r}>"


def _header(headers: Mapping[str, str] | Iterable[tuple[str, str]], wanted: str) -> str:
    """
    Return every value of header `wanted` (lower-case), joined.

    Repeated ``Cookie`` headers are joined with ``; ``, any other header with ``, ``.
    """
    items = headers.items() if isinstance(headers, Mapping) else headers
    values = [value for key, value in items if key.lower() == wanted]
    return "; ".join(values) if wanted == "cookie" else ", ".join(values)


@dataclass(frozen=True)
class RequestContext:
    """Inbound cookies, outbound sink and client address of one request."""

    cookies: Mapping[str, str]
    sink: CookieSink
    remote_addr: str = ""
    forwarded_for: str = ""

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, str] | Iterable[tuple[str, str]],
        remote_addr: str = "",
        sink: CookieSink | None = None,
    ) -> "RequestContext":
        """
        Build a context from raw request headers.

        Args:
            headers: Request headers as a mapping or a sequence of pairs.
            remote_addr: Network address of the peer.
            sink: Outbound channel. Defaults to a fresh `HeaderCookieSink`.

        Returns:
            RequestContext: The context for the request.

        """
        headers = list(headers.items()) if isinstance(headers, Mapping) else list(headers)
        return cls(
            cookies=parse_cookies(_header(headers, "cookie")),
            sink=sink if sink is not None else HeaderCookieSink(),
            remote_addr=remote_addr,
            forwarded_for=_header(headers, "x-forwarded-for"),
        )

    @property
    def client_id(self) -> str:
        """Return the address string identifying the client."""
        return self.remote_addr + self.forwarded_for
