"""Header normalization and preflight classification.

Everything here is total: malformed input resolves to "no signal" rather
than an exception, so the analyzer can call these helpers on whatever a
host framework hands it.
"""

from collections.abc import Mapping
from typing import Any, Iterable, Iterator, List, Optional, Tuple, Union
import logging

logger = logging.getLogger(__name__)

ORIGIN = "origin"
COOKIE = "cookie"
REQUEST_METHOD = "access-control-request-method"
REQUEST_HEADERS = "access-control-request-headers"
ALLOW_ORIGIN = "access-control-allow-origin"
ALLOW_CREDENTIALS = "access-control-allow-credentials"
ALLOW_METHODS = "access-control-allow-methods"
ALLOW_HEADERS = "access-control-allow-headers"
EXPOSE_HEADERS = "access-control-expose-headers"
MAX_AGE = "access-control-max-age"

WILDCARD = "*"

RawHeaders = Union[Mapping, Iterable[Tuple[str, Any]], None]


def normalize_origin(origin: Optional[str]) -> str:
    """Canonicalize an Origin value: trimmed, lower-cased, no trailing slash.

    ``None`` and empty values normalize to ``""``.
    """
    if not origin:
        return ""

    normalized = str(origin).strip().lower()
    if normalized.endswith("/"):
        normalized = normalized[:-1].rstrip()
    return normalized


class HeaderView(Mapping):
    """Read-only, case-insensitive view of one header bag.

    Keys are stored lower-cased and hold a single string value each.
    """

    __slots__ = ("_headers",)

    def __init__(self, headers: Optional[Mapping] = None) -> None:
        self._headers = {str(k).lower(): v for k, v in (headers or {}).items()}

    def __getitem__(self, name: str) -> str:
        if not isinstance(name, str):
            raise KeyError(name)
        return self._headers[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._headers

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HeaderView):
            return self._headers == other._headers
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._headers.items()))

    def __repr__(self) -> str:
        return f"HeaderView({self._headers!r})"


def _first_value(value: Any) -> Optional[str]:
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("latin-1")
    value = str(value)
    return value or None


def _iter_entries(raw: RawHeaders) -> Iterator[Tuple[Any, Any]]:
    if raw is None:
        return
    items = raw.items() if isinstance(raw, Mapping) else raw
    for entry in items:
        try:
            key, value = entry
        except (TypeError, ValueError):
            logger.debug("Skipping malformed header entry: %r", entry)
            continue
        yield key, value


def build_header_view(raw: RawHeaders) -> HeaderView:
    """Build a HeaderView from a mapping or a list of (name, value) pairs.

    Array values collapse to their first element, ``None``/empty values are
    dropped. For pair lists the first occurrence of a name wins; for
    mappings whose keys differ only in case the last one wins.
    """
    if isinstance(raw, HeaderView):
        return raw

    last_wins = isinstance(raw, Mapping)
    collected = {}
    try:
        for key, value in _iter_entries(raw):
            if not isinstance(key, (str, bytes)):
                continue
            name = key.decode("latin-1") if isinstance(key, bytes) else key
            name = name.lower()
            if name in collected and not last_wins:
                continue
            text = _first_value(value)
            if text is not None:
                collected[name] = text
    except TypeError:
        logger.debug("Header bag of type %s is not iterable", type(raw).__name__)
    return HeaderView(collected)


def is_preflight(method: Optional[str], request_headers: RawHeaders) -> bool:
    """Return True for an OPTIONS request that asks CORS permission."""
    if method != "OPTIONS":
        return False

    headers = build_header_view(request_headers)
    return REQUEST_METHOD in headers or REQUEST_HEADERS in headers


def split_header_list(value: Optional[str]) -> Optional[List[str]]:
    """Split a comma-separated header value; None when the header is absent."""
    if value is None:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]
