"""
URL parsing, normalization and relative-link resolution.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional
from urllib.parse import SplitResult, urljoin, urlsplit, urlunsplit


class MalformedURLError(ValueError):
    """Raised when a string cannot be turned into an absolute URL."""


# Schemes that are meaningless without a host component
HOST_SCHEMES = {'http', 'https', 'ftp', 'ws', 'wss'}
DEFAULT_PORTS = {'http': 80, 'https': 443, 'ftp': 21, 'ws': 80, 'wss': 443}

_SCHEME_PATTERN = re.compile(r'^[A-Za-z][A-Za-z0-9+.-]*:')
_STRIP_CHARS = ''.join(chr(c) for c in range(0x21))
_TAB_NEWLINE = re.compile(r'[\t\n\r]')
_SEGMENT_END = re.compile(r'[/?#]')


@dataclass(frozen=True, order=True)
class URL:
    """An absolute, normalized URL. Compared and hashed by its string form."""
    value: str
    _parts: SplitResult = field(compare=False, repr=False, hash=False, default=None)

    def __post_init__(self):
        if self._parts is None:
            object.__setattr__(self, '_parts', urlsplit(self.value))

    @property
    def scheme(self) -> str:
        return self._parts.scheme

    @property
    def host(self) -> str:
        return self._parts.hostname or ''

    @property
    def port(self) -> Optional[int]:
        return self._parts.port

    @property
    def path(self) -> str:
        return self._parts.path

    @property
    def query(self) -> str:
        return self._parts.query

    def __str__(self) -> str:
        return self.value


def _clean(raw: str) -> str:
    """Strip surrounding control/space characters and embedded tabs/newlines."""
    return _TAB_NEWLINE.sub('', raw.strip(_STRIP_CHARS))


def _build(parts: SplitResult) -> URL:
    """Validate split components and assemble the normalized URL."""
    scheme = parts.scheme.lower()

    try:
        hostname = parts.hostname
        port = parts.port
    except ValueError as e:
        raise MalformedURLError(f"Invalid host or port in {urlunsplit(parts)!r}: {e}")

    if scheme in HOST_SCHEMES and not hostname:
        raise MalformedURLError(f"Missing host in {urlunsplit(parts)!r}")

    netloc = parts.netloc
    if hostname:
        host = hostname.lower()
        if ':' in host:
            host = f'[{host}]'
        userinfo = ''
        if '@' in netloc:
            userinfo = netloc.rsplit('@', 1)[0] + '@'
        if port is not None and port != DEFAULT_PORTS.get(scheme):
            host = f'{host}:{port}'
        netloc = userinfo + host

    path = parts.path
    if netloc and not path:
        path = '/'

    normalized = SplitResult(scheme, netloc, path, parts.query, '')
    return URL(urlunsplit(normalized), normalized)


def parse_url(raw: str) -> URL:
    """
    Parse an absolute URL.

    Raises:
        MalformedURLError: if ``raw`` has no scheme or is otherwise invalid
    """
    value = _clean(raw)
    if not _SCHEME_PATTERN.match(value):
        raise MalformedURLError(f"Not an absolute URL: {raw!r}")

    try:
        parts = urlsplit(value)
    except ValueError as e:
        raise MalformedURLError(f"Cannot parse {raw!r}: {e}")

    return _build(parts)


def normalize(base: URL, raw: str) -> URL:
    """
    Resolve a raw link against the URL of the page it was found on.

    An absolute link is returned normalized but otherwise unchanged. A
    relative reference is merged with ``base`` per RFC 3986.

    Args:
        base: URL of the page containing the link
        raw: Raw ``href`` value

    Returns:
        Normalized absolute URL

    Raises:
        MalformedURLError: if the link is neither a valid absolute URL nor a
            valid relative reference
    """
    value = _clean(raw)
    if _SCHEME_PATTERN.match(value):
        return parse_url(value)

    # A relative-path reference may not carry a colon in its first segment
    if not value.startswith(('/', '?', '#')):
        first_segment = _SEGMENT_END.split(value, 1)[0]
        if ':' in first_segment:
            raise MalformedURLError(f"Ambiguous relative reference: {raw!r}")

    try:
        resolved = urljoin(str(base), value)
    except ValueError as e:
        raise MalformedURLError(f"Cannot resolve {raw!r} against {base}: {e}")

    return parse_url(resolved)


def is_admissible(url: URL, schemes: Iterable[str]) -> bool:
    """Check whether the URL's scheme is one the crawler fetches."""
    return url.scheme in schemes
