"""
Protocol Data Models

Value types shared by the paging codec and every backend client:
link relations, paging metadata, the normalized list envelope and the
filter options used to build list queries.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass
class LinkEntry:
    """
    A single parsed token of an RFC 5988 ``Link`` header.

    Attributes:
        url: Target address of the relation (may be relative)
        rel: Relation name ("next", "prev", "first", "last" or other)
        params: Token attributes merged with well-known query parameters
            of the target address
    """
    url: str
    rel: str
    params: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "url": self.url,
            "rel": self.rel,
            "params": dict(self.params),
        }


@dataclass
class PaginationMetadata:
    """
    Paging information derived from a single response.

    Every field is optional. Fields the backend did not send (or sent in a
    form that could not be parsed) stay ``None`` and are left out of
    ``to_dict()``.
    """
    limit: int | None = None
    count: int | None = None
    next_key: str | None = None
    prev_key: str | None = None
    first_key: str | None = None
    last_key: str | None = None
    link: str | None = None
    timerange: str | None = None
    reverse_order: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return only the fields that carry a value."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass
class NormalizedResponse(Generic[T]):
    """
    The common list envelope returned by every list operation.

    ``pagination`` is always present; an empty ``PaginationMetadata`` is
    used when the backend reported nothing about paging.
    """
    data: list[T] = field(default_factory=list)
    pagination: PaginationMetadata = field(default_factory=PaginationMetadata)
    links: list[LinkEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "data": list(self.data),
            "pagination": self.pagination.to_dict(),
            "links": [link.to_dict() for link in self.links],
        }


@dataclass
class FilterOptions:
    """
    Options accepted by list operations.

    Attributes:
        page: Opaque cursor returned by a previous page
        limit: Maximum number of items per page
        timerange: Timerange expression, e.g. "[0:0_10:0)"
        format: Content format URN filter
        codec: Codec filter
        tags: Tag equality predicates, sent as ``tag.<name>=<value>``
        tag_exists: Tag existence predicates, sent as ``tag_exists.<name>=<bool>``
        custom: Additional named query parameters
    """
    page: str | None = None
    limit: int | None = None
    timerange: str | None = None
    format: str | None = None
    codec: str | None = None
    tags: dict[str, str] = field(default_factory=dict)
    tag_exists: dict[str, bool] = field(default_factory=dict)
    custom: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FilterOptions":
        """Create from dictionary."""
        return cls(
            page=data.get("page"),
            limit=data.get("limit"),
            timerange=data.get("timerange"),
            format=data.get("format"),
            codec=data.get("codec"),
            tags=dict(data.get("tags") or {}),
            tag_exists=dict(data.get("tag_exists") or {}),
            custom=dict(data.get("custom") or {}),
        )
