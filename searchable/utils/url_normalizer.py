"""
URL Normalization

Canonicalizes URL strings into stable comparison keys. The canonical URL is
the identity used for citation deduplication everywhere in the system, so
normalization must stay pure and deterministic.

Canonical form:
- Scheme is always https (https:// is assumed when missing)
- Host and path are lowercased, leading www. labels are removed
- Trailing slashes are stripped
- Default port (443) is removed
- Query parameters are dropped unless explicitly kept
- Fragments and credentials are dropped

Example:
    >>> normalize_url("http://WWW.Example.com/Path/?utm_source=x")
    'https://example.com/path'
    >>> normalize_domain("http://WWW.Example.com/Path/")
    'example.com'
"""

import ipaddress
import re
from typing import Iterable, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_HOST_LABEL_RE = re.compile(r"^[\w-]+$", re.UNICODE)

DEFAULT_PORTS = {"https": 443, "http": 80}


class UrlNormalizationError(ValueError):
    """Raised when a string cannot be turned into a canonical URL."""

    def __init__(self, message: str, input: str):
        super().__init__(f"{message}: {input!r}")
        self.input = input


def normalize_url(url_input: str, keep_params: Optional[Iterable[str]] = None) -> str:
    """
    Normalize a URL to its canonical https form.

    Args:
        url_input: Raw URL, with or without scheme
        keep_params: Query parameter names to retain (all others dropped)

    Returns:
        Canonical URL string

    Raises:
        UrlNormalizationError: Empty or unparseable input
    """
    if not isinstance(url_input, str):
        raise UrlNormalizationError("URL must be a string", repr(url_input))

    trimmed = url_input.strip()
    if not trimmed:
        raise UrlNormalizationError("Empty URL", url_input)

    if trimmed.startswith("//"):
        href = "https:" + trimmed
    elif _SCHEME_RE.match(trimmed):
        href = trimmed
    else:
        href = "https://" + trimmed

    try:
        parts = urlsplit(href)
        port = parts.port
    except ValueError as e:
        raise UrlNormalizationError("Malformed URL", url_input) from e

    host = strip_www(_validate_host(parts.hostname, url_input))

    scheme = parts.scheme.lower()
    if port is not None and port != DEFAULT_PORTS["https"] and port != DEFAULT_PORTS.get(scheme):
        netloc = f"{host}:{port}"
    else:
        netloc = host

    path = parts.path.lower().rstrip("/")
    if any(ch.isspace() for ch in path):
        raise UrlNormalizationError("Malformed URL", url_input)

    query = _filter_query(parts.query, keep_params)

    canonical = f"https://{netloc}{path}"
    if query:
        canonical = f"{canonical}?{query}"
    return canonical


def normalize_domain(url_input: str) -> str:
    """
    Extract the registrable domain from a URL.

    e.g. "https://www.nike.com/page" -> "nike.com"
    """
    url = normalize_url(url_input)
    hostname = urlsplit(url).hostname
    if not hostname:
        raise UrlNormalizationError("Invalid URL for domain extraction", url_input)
    return strip_www(hostname)


def strip_www(hostname: str) -> str:
    """Remove leading www. labels, keeping at least two labels."""
    host = hostname
    while host.lower().startswith("www.") and "." in host[4:]:
        host = host[4:]
    return host


def is_valid_url(url_input: str) -> bool:
    """Check whether a string normalizes without error."""
    try:
        normalize_url(url_input)
        return True
    except UrlNormalizationError:
        return False


def _validate_host(hostname: Optional[str], url_input: str) -> str:
    if not hostname:
        raise UrlNormalizationError("Missing host", url_input)

    host = hostname.lower().rstrip(".")

    # IPv6 literals come back without brackets
    if ":" in host:
        try:
            ipaddress.IPv6Address(host)
        except ValueError as e:
            raise UrlNormalizationError("Malformed host", url_input) from e
        return f"[{host}]"

    labels = host.split(".")
    if not all(label and _HOST_LABEL_RE.match(label) for label in labels):
        raise UrlNormalizationError("Malformed host", url_input)
    return host


def _filter_query(query: str, keep_params: Optional[Iterable[str]]) -> str:
    if not query or not keep_params:
        return ""

    keep = {name.lower() for name in keep_params}
    pairs = [
        (key, value)
        for key, value in parse_qsl(query, keep_blank_values=True)
        if key.lower() in keep
    ]
    pairs.sort()
    return urlencode(pairs)
