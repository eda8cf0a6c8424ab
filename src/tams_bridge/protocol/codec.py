"""
Paging Protocol Codec

Pure functions for the wire side of paged TAMS listings:

- ``Link`` header tokens (RFC 5988)
- the ``X-Paging-*`` header family
- query-string encoding of filter options, tag predicates and cursors
"""

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import parse_qs, quote, urlencode, urlsplit

from multidict import CIMultiDict

from .models import FilterOptions, LinkEntry, NormalizedResponse, PaginationMetadata

logger = logging.getLogger(__name__)

# Query parameters lifted from a link target into LinkEntry.params
LINK_QUERY_PARAMS = ("page", "limit", "timerange", "format", "codec", "label")

# Header names, compared case-insensitively
HEADER_LINK = "Link"
HEADER_LIMIT = "X-Paging-Limit"
HEADER_NEXT_KEY = "X-Paging-NextKey"
HEADER_PREV_KEY = "X-Paging-PrevKey"
HEADER_FIRST_KEY = "X-Paging-FirstKey"
HEADER_LAST_KEY = "X-Paging-LastKey"
HEADER_TIMERANGE = "X-Paging-Timerange"
HEADER_COUNT = "X-Paging-Count"
HEADER_REVERSE_ORDER = "X-Paging-ReverseOrder"

_TOKEN_SPLIT = re.compile(r",\s*(?=<)")
_TOKEN = re.compile(r"^\s*<([^>]*)>(.*)$", re.DOTALL)
_ATTRIBUTE = re.compile(r';\s*([^\s=;,]+)\s*=\s*(?:"([^"]*)"|([^\s;,]+))')


def parse_link_header(value: str | None) -> list[LinkEntry]:
    """
    Parse a raw ``Link`` header value.

    Tokens missing either a target address or a ``rel`` attribute are
    dropped. Order is preserved and duplicate relations are kept.

    Args:
        value: Header value, e.g. ``<https://x/flows?page=abc>; rel="next"``

    Returns:
        Parsed entries in header order
    """
    if not value:
        return []

    entries: list[LinkEntry] = []
    for token in _TOKEN_SPLIT.split(value.strip()):
        match = _TOKEN.match(token)
        if not match:
            continue

        url = match.group(1).strip()
        attributes = {
            m.group(1): m.group(2) if m.group(2) is not None else m.group(3)
            for m in _ATTRIBUTE.finditer(match.group(2))
        }
        rel = attributes.pop("rel", None)
        if not url or not rel:
            continue

        params = dict(attributes)
        params.update(_link_query_params(url))
        entries.append(LinkEntry(url=url, rel=rel, params=params))

    return entries


def _link_query_params(url: str) -> dict[str, str]:
    """Extract the well-known cursor parameters from a link target."""
    try:
        query = parse_qs(urlsplit(url).query, keep_blank_values=True)
    except ValueError as e:
        logger.warning(f"Could not parse link target {url!r}: {e}")
        return {}

    return {
        name: query[name][0]
        for name in LINK_QUERY_PARAMS
        if name in query
    }


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_paging_headers(headers: Mapping[str, str] | Iterable[tuple[str, str]] | None) -> PaginationMetadata:
    """
    Build ``PaginationMetadata`` from a response header set.

    Header names are matched case-insensitively. Empty headers and numeric
    headers that do not parse as integers are treated as absent.
    ``reverse_order`` is only set when its header is present, and is true
    only for ``"true"``.

    Args:
        headers: Response headers (dict, multidict or pairs)

    Returns:
        Metadata holding only the fields that were present and valid
    """
    if not headers:
        return PaginationMetadata()

    lookup = CIMultiDict(headers)
    reverse = lookup.get(HEADER_REVERSE_ORDER)

    return PaginationMetadata(
        limit=_parse_int(lookup.get(HEADER_LIMIT)),
        count=_parse_int(lookup.get(HEADER_COUNT)),
        next_key=lookup.get(HEADER_NEXT_KEY) or None,
        prev_key=lookup.get(HEADER_PREV_KEY) or None,
        first_key=lookup.get(HEADER_FIRST_KEY) or None,
        last_key=lookup.get(HEADER_LAST_KEY) or None,
        link=lookup.get(HEADER_LINK) or None,
        timerange=lookup.get(HEADER_TIMERANGE) or None,
        reverse_order=None if reverse is None else reverse == "true",
    )


def _encode_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_query_params(options: FilterOptions | dict[str, Any] | None) -> list[tuple[str, str]]:
    """
    Flatten filter options into ordered query pairs.

    Zero and empty values are skipped. Tag predicates use their namespaced
    key form.
    """
    if options is None:
        return []
    if isinstance(options, dict):
        options = FilterOptions.from_dict(options)

    pairs: list[tuple[str, str]] = []
    for name in ("page", "limit", "timerange", "format", "codec"):
        value = getattr(options, name)
        if value:
            pairs.append((name, _encode_value(value)))

    for tag, value in options.tags.items():
        pairs.append((f"tag.{tag}", _encode_value(value)))

    for tag, exists in options.tag_exists.items():
        pairs.append((f"tag_exists.{tag}", _encode_value(bool(exists))))

    for name, value in options.custom.items():
        if value is None or value == "":
            continue
        pairs.append((name, _encode_value(value)))

    return pairs


def build_query_string(options: FilterOptions | dict[str, Any] | None) -> str:
    """
    Encode filter options as a query string.

    Returns:
        ``"?key=value&..."`` with every value percent-encoded, or ``""``
        when there is nothing to send
    """
    pairs = build_query_params(options)
    if not pairs:
        return ""
    return "?" + urlencode(pairs, quote_via=quote)


def normalize_response(
    data: Iterable[Any] | None,
    headers: Mapping[str, str] | None = None,
) -> NormalizedResponse:
    """Combine decoded items with paging metadata and links from headers."""
    pagination = parse_paging_headers(headers)
    return NormalizedResponse(
        data=list(data or []),
        pagination=pagination,
        links=parse_link_header(pagination.link),
    )
