"""
Custom Client

Minimal adapter for stores exposing only core CRUD under a generic path
layout (``/api/...`` by default). List calls forward only the cursor and
page size.
"""

from ..base import EntityType
from .tams import TamsClient

ENTITY_FIELDS = ["id", "name", "created", "updated"]


class CustomClient(TamsClient):
    """
    Client for minimal custom backends.

    Every advanced operation raises UnsupportedOperationError. Read-only
    discovery calls answer with fixed values instead.
    """

    async def get_entity_fields(self, entity: EntityType | str, entity_id: str) -> list[str]:
        return list(ENTITY_FIELDS)

    async def get_webhook_event_types(self) -> list[str]:
        return []
