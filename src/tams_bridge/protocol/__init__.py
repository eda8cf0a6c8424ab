"""
Paging protocol layer for TAMS Bridge.

This module provides:
- Value types for paged listings (LinkEntry, PaginationMetadata, NormalizedResponse)
- Link and X-Paging header decoding
- Query-string encoding of list filters
- Navigation cursor resolution
"""

from .codec import (
    build_query_params,
    build_query_string,
    normalize_response,
    parse_link_header,
    parse_paging_headers,
)
from .models import FilterOptions, LinkEntry, NormalizedResponse, PaginationMetadata
from .navigation import (
    get_all_navigation_cursors,
    get_current_limit,
    get_first_page_cursor,
    get_last_page_cursor,
    get_next_page_cursor,
    get_previous_page_cursor,
    get_response_timerange,
    get_total_count,
    has_next_page,
    has_previous_page,
)

__all__ = [
    # Models
    "FilterOptions",
    "LinkEntry",
    "NormalizedResponse",
    "PaginationMetadata",
    # Codec
    "build_query_params",
    "build_query_string",
    "normalize_response",
    "parse_link_header",
    "parse_paging_headers",
    # Navigation
    "get_all_navigation_cursors",
    "get_current_limit",
    "get_first_page_cursor",
    "get_last_page_cursor",
    "get_next_page_cursor",
    "get_previous_page_cursor",
    "get_response_timerange",
    "get_total_count",
    "has_next_page",
    "has_previous_page",
]
