"""
Navigation cursor resolution for normalized list responses.

Some backends emit RFC 5988 ``Link`` headers, others only the custom
``X-Paging-*`` keys. A cursor is taken from the ``page`` parameter of a
matching link relation first, and from the paging metadata otherwise.
"""

from .models import NormalizedResponse

# relation name -> PaginationMetadata attribute
_RELATIONS = {
    "next": "next_key",
    "prev": "prev_key",
    "first": "first_key",
    "last": "last_key",
}


def _resolve_cursor(response: NormalizedResponse, rel: str) -> str | None:
    for link in response.links:
        if link.rel == rel and link.params.get("page"):
            return link.params["page"]
    return getattr(response.pagination, _RELATIONS[rel])


def get_next_page_cursor(response: NormalizedResponse) -> str | None:
    return _resolve_cursor(response, "next")


def get_previous_page_cursor(response: NormalizedResponse) -> str | None:
    return _resolve_cursor(response, "prev")


def get_first_page_cursor(response: NormalizedResponse) -> str | None:
    return _resolve_cursor(response, "first")


def get_last_page_cursor(response: NormalizedResponse) -> str | None:
    return _resolve_cursor(response, "last")


def get_all_navigation_cursors(response: NormalizedResponse) -> dict[str, str]:
    """
    Resolve every navigation cursor available on a response.

    Returns:
        Mapping of relation name ("next", "prev", "first", "last") to
        cursor, holding only the relations that resolved
    """
    cursors = {}
    for rel in _RELATIONS:
        cursor = _resolve_cursor(response, rel)
        if cursor:
            cursors[rel] = cursor
    return cursors


def has_next_page(response: NormalizedResponse) -> bool:
    return bool(get_next_page_cursor(response))


def has_previous_page(response: NormalizedResponse) -> bool:
    return bool(get_previous_page_cursor(response))


def get_total_count(response: NormalizedResponse) -> int:
    """Total item count reported by the backend, 0 when unknown."""
    return response.pagination.count or 0


def get_current_limit(response: NormalizedResponse) -> int:
    """Page size reported by the backend, 0 when unknown."""
    return response.pagination.limit or 0


def get_response_timerange(response: NormalizedResponse) -> str | None:
    return response.pagination.timerange
