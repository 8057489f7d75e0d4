"""
Gemini protocol primitives.

This module handles resource references, status line and media type
classification, and the two response shapes (text and binary pages)
exchanged between the transport, the renderer and the session.
"""

import re
import urllib.parse
from enum import Enum
from typing import List, Optional, Tuple

from .exceptions import NavigationError, ProtocolError


SCHEME = "gemini"
DEFAULT_PORT = 1965
GEMTEXT_SUBTYPE = "gemini"
LINE_TERMINATOR = "\r\n"

# urljoin only resolves relative references for schemes it knows about
if SCHEME not in urllib.parse.uses_relative:
    urllib.parse.uses_relative.append(SCHEME)
if SCHEME not in urllib.parse.uses_netloc:
    urllib.parse.uses_netloc.append(SCHEME)

_MEDIA_TYPE_RE = re.compile(r"^([^/\s;]+)/([^/\s;]+)$")


class StatusClass(Enum):
    INPUT = "1"
    SUCCESS = "2"
    REDIRECT = "3"
    TEMPORARY_FAILURE = "4"
    PERMANENT_FAILURE = "5"
    CERTIFICATE_REQUIRED = "6"
    OTHER = ""


def classify_status(status_line: Optional[str]) -> StatusClass:
    """Classify a status line by the first digit of its status code."""
    if not status_line:
        return StatusClass.OTHER
    code = status_line.split(maxsplit=1)[0] if status_line.strip() else ""
    if len(code) != 2 or not code.isdigit():
        return StatusClass.OTHER
    for status_class in StatusClass:
        if status_class.value and code[0] == status_class.value:
            return status_class
    return StatusClass.OTHER


def status_meta(status_line: str) -> str:
    """Return the metadata part of a status line (everything after the code)."""
    parts = status_line.split(maxsplit=1)
    return parts[1].strip() if len(parts) > 1 else ""


class MediaType:
    """A `type/subtype` pair. Parameters are discarded on parse."""

    def __init__(self, type: str, subtype: str):
        self.type = type
        self.subtype = subtype

    @classmethod
    def parse(cls, meta: str) -> "MediaType":
        """
        Parse a `type/subtype[;params]` string.

        Raises:
            ProtocolError: If the type part is not `type/subtype`
        """
        essence = meta.split(";", 1)[0].strip()
        match = _MEDIA_TYPE_RE.match(essence)
        if not match:
            raise ProtocolError(f"Malformed media type: {meta!r}")
        return cls(match.group(1).lower(), match.group(2).lower())

    @property
    def is_text(self) -> bool:
        return self.type == "text"

    @property
    def is_gemtext(self) -> bool:
        return self.type == "text" and self.subtype == GEMTEXT_SUBTYPE

    def __eq__(self, other) -> bool:
        if not isinstance(other, MediaType):
            return NotImplemented
        return (self.type, self.subtype) == (other.type, other.subtype)

    def __repr__(self) -> str:
        return f"MediaType({self.type}/{self.subtype})"


class Resource:
    """
    A parsed resource reference.

    A reference without a host is relative and must be joined onto a
    base resource before it can be fetched.
    """

    def __init__(self, scheme: str = "", host: str = "", port: Optional[int] = None,
                 path: str = "", query: Optional[str] = None):
        self.scheme = scheme
        self.host = host
        self.port = port
        self.path = path
        self.query = query

    @classmethod
    def parse(cls, text: str) -> "Resource":
        """
        Parse a URL string into a Resource.

        A bare `host/path` without a scheme is treated as relative; callers
        decide how to interpret it.

        Raises:
            NavigationError: If the URL cannot be parsed
        """
        try:
            parts = urllib.parse.urlsplit(text.strip())
            port = parts.port
        except ValueError as e:
            raise NavigationError(f"Invalid URL {text!r}: {e}")
        return cls(
            scheme=parts.scheme.lower(),
            host=parts.hostname or "",
            port=port,
            path=parts.path,
            query=parts.query or None,
        )

    @property
    def is_absolute(self) -> bool:
        return bool(self.host)

    @property
    def effective_port(self) -> int:
        """The port to connect to, falling back to the well-known port."""
        if self.port is None or self.port <= 0:
            return DEFAULT_PORT
        return self.port

    @property
    def address(self) -> Tuple[str, int]:
        return self.host, self.effective_port

    @property
    def url(self) -> str:
        """Absolute string form. The default port is left out."""
        netloc = self.host
        if ":" in netloc:
            netloc = f"[{netloc}]"
        if self.port is not None and self.port > 0 and self.port != DEFAULT_PORT:
            netloc = f"{netloc}:{self.port}"
        scheme = self.scheme or SCHEME
        path = self.path
        if scheme == SCHEME and not path:
            path = "/"
        return urllib.parse.urlunsplit((scheme, netloc, path, self.query or "", ""))

    def join(self, reference: str) -> "Resource":
        """
        Resolve `reference` against this resource.

        Raises:
            NavigationError: If this resource is not a gemini resource
        """
        if self.scheme != SCHEME:
            raise NavigationError(
                f"Cannot resolve {reference!r} relative to a {self.scheme or 'schemeless'} resource"
            )
        return Resource.parse(urllib.parse.urljoin(self.url, reference))

    def with_query(self, query: str) -> "Resource":
        """Return a copy whose query is replaced by the percent-encoded `query`."""
        return Resource(self.scheme, self.host, self.port, self.path,
                        urllib.parse.quote(query))

    def __eq__(self, other) -> bool:
        if not isinstance(other, Resource):
            return NotImplemented
        return self.url == other.url

    def __hash__(self) -> int:
        return hash(self.url)

    def __repr__(self) -> str:
        return f"Resource({self.url})"


class TextPage:
    """A text response: the status line followed by the body lines."""

    def __init__(self, lines: Optional[List[str]] = None):
        self.lines: List[str] = list(lines) if lines else []

    @property
    def status_line(self) -> str:
        return self.lines[0] if self.lines else ""

    @property
    def status_class(self) -> StatusClass:
        return classify_status(self.status_line)

    @property
    def body(self) -> List[str]:
        return self.lines[1:]

    def __repr__(self) -> str:
        return f"TextPage(status={self.status_line!r}, lines={len(self.lines)})"


class BinaryPage:
    """A non-text success response, tagged with its media type."""

    def __init__(self, media_type: MediaType, data: bytes):
        self.media_type = media_type
        self.data = data

    def __repr__(self) -> str:
        return f"BinaryPage({self.media_type.type}/{self.media_type.subtype}, {len(self.data)} bytes)"


class Page:
    """A history entry: a resource paired with the text page fetched from it."""

    def __init__(self, resource: Resource, text: TextPage):
        self.resource = resource
        self.text = text

    def __repr__(self) -> str:
        return f"Page({self.resource.url}, {self.text.status_line!r})"
