"""Probe definitions: one monitored outbound HTTP request.

The probe URL is the identity key shared with the score store. It is parsed
with :class:`httpx.URL` and used verbatim apart from the normalisation that
URI parsing implies (an empty path becomes ``/``).
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

import httpx

from isup.errors import InvalidURLError

_ALLOWED_SCHEMES = frozenset({"http", "https"})

# RFC 9110 token characters
_METHOD_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

# Visible ASCII plus space and tab; no CR/LF
_HEADER_VALUE_RE = re.compile(r"[\t\x20-\x7e]*")


def normalize_url(url: str) -> str:
    """Parse *url* and return its normalised string form.

    Raises :class:`InvalidURLError` if the URL cannot be parsed or is not an
    absolute http(s) URL.
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidURLError(str(url), "empty URL")
    try:
        parsed = httpx.URL(url.strip())
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise InvalidURLError(url, str(exc)) from exc

    if parsed.scheme not in _ALLOWED_SCHEMES:
        raise InvalidURLError(url, "scheme must be http or https")
    if not parsed.host:
        raise InvalidURLError(url, "missing host")

    if urlsplit(str(parsed)).path == "":
        parsed = parsed.copy_with(path="/")
    return str(parsed)


def normalize_method(method: str) -> str:
    """Return *method* upper-cased; raise ValueError if it is not an HTTP token."""
    if not isinstance(method, str) or not _METHOD_RE.match(method.strip()):
        raise ValueError(f"Invalid HTTP method: {method!r}")
    return method.strip().upper()


def normalize_headers(headers: Dict[Any, Any]) -> Dict[str, str]:
    """Return *headers* with names and values as strings.

    Raises ValueError for a name that is not an HTTP token or a value that
    is not sendable as ASCII header text.
    """
    result: Dict[str, str] = {}
    for name, value in headers.items():
        name, value = str(name), str(value)
        if not _METHOD_RE.fullmatch(name):
            raise ValueError(f"Invalid header name: {name!r}")
        if not _HEADER_VALUE_RE.fullmatch(value):
            raise ValueError(f"Invalid value for header {name!r}: {value!r}")
        result[name] = value
    return result


def encode_body(body: Any) -> bytes:
    """Convert a configured request body into raw bytes.

    ``bytes`` pass through, ``str`` is UTF-8 encoded and anything else is
    treated as a JSON value and serialised compactly.
    """
    if body is None:
        return b""
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body, separators=(",", ":")).encode("utf-8")


@dataclass(frozen=True)
class Probe:
    """One configured outbound request monitored for health."""

    method: str
    url: str
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    def __hash__(self) -> int:
        return hash((self.method, self.url, self.body))

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", normalize_method(self.method))
        object.__setattr__(self, "url", normalize_url(self.url))
        object.__setattr__(self, "body", encode_body(self.body))
        object.__setattr__(self, "headers", normalize_headers(self.headers))

    @classmethod
    def create(
        cls,
        method: str,
        url: str,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> "Probe":
        """Build a probe, encoding a JSON-serialisable *body* to bytes."""
        return cls(method=method, url=url, body=encode_body(body), headers=dict(headers or {}))
