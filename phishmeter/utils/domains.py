"""URL and domain normalization utilities."""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlparse

import idna
import tldextract

# Bundled public-suffix snapshot only; scoring never touches the network.
_extract = tldextract.TLDExtract(suffix_list_urls=())

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


class InputError(ValueError):
    """Raised when a URL cannot be split into scheme, host and path."""


@dataclass(frozen=True)
class ParsedUrl:
    """The pieces of a URL the checks look at."""

    url: str
    scheme: str
    host: str
    path: str
    query: str

    @property
    def is_https(self) -> bool:
        return self.scheme == "https"


def parse_url(url: str) -> ParsedUrl:
    """
    Split a URL into scheme/host/path/query.

    - Scheme is required (``example.com`` alone is rejected)
    - Host is lowercased, brackets/credentials/port removed
    - Raises InputError for anything that does not look like a URL
    """
    raw = (url or "").strip()
    if not raw:
        raise InputError("empty URL")
    if not _SCHEME_RE.match(raw):
        raise InputError(f"missing scheme: {raw!r}")

    try:
        parsed = urlparse(raw)
        host = parsed.hostname or ""
        # Accessing .port validates it
        parsed.port
    except ValueError as exc:
        raise InputError(str(exc)) from exc

    if not host:
        raise InputError(f"missing host: {raw!r}")
    if any(ch.isspace() for ch in host):
        raise InputError(f"invalid host: {host!r}")

    return ParsedUrl(
        url=raw,
        scheme=parsed.scheme.lower(),
        host=host,
        path=parsed.path or "",
        query=parsed.query or "",
    )


def extract_hostname(value: str) -> str:
    """Best-effort hostname from a URL or bare domain ("" when there is none)."""
    raw = (value or "").strip()
    if not raw:
        return ""
    candidate = raw if "://" in raw else f"https://{raw}"
    try:
        return (urlparse(candidate).hostname or "").strip(".")
    except ValueError:
        return ""


def registered_label(value: str) -> str:
    """Return the registrable label of a host (``paypal`` for ``www.paypal.com``)."""
    host = extract_hostname(value)
    if not host:
        return ""
    extracted = _extract(host)
    return (extracted.domain or host.split(".")[0]).lower()


def registered_domain(value: str) -> str:
    """Return the registrable domain for a host or URL (best-effort)."""
    host = extract_hostname(value)
    if not host:
        return ""
    extracted = _extract(host)
    if extracted.domain and extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}".lower()
    return host


def decode_idn(host: str) -> str:
    """Decode punycode (``xn--``) labels to Unicode; returns the input on failure."""
    if "xn--" not in (host or ""):
        return host
    try:
        decoded = idna.decode(host)
    except (idna.IDNAError, UnicodeError):
        return host
    return decoded or host
