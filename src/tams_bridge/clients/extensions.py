"""
Capability Extensions

Mixins implementing the optional operations of the client contract.
An adapter opts into an extension by inheriting from it; extensions
bound to a capability list it in ``provides`` and check it with
``require()`` before any I/O.

The mixins rely on the request helpers of ``ApiClient`` and must be
listed before it in a class's bases.
"""

import logging
from typing import Any
from urllib.parse import quote

from ..errors import TamsApiError
from ..protocol import FilterOptions, NormalizedResponse, PaginationMetadata, parse_paging_headers
from .base import CapabilityKey, EntityType

logger = logging.getLogger(__name__)

DEFAULT_WEBHOOK_EVENTS = [
    "flow.created",
    "flow.updated",
    "flow.deleted",
    "source.created",
    "source.updated",
    "source.deleted",
    "segment.created",
    "segment.updated",
    "segment.deleted",
]

COMMON_ENTITY_FIELDS = [
    "label",
    "description",
    "format",
    "codec",
    "frame_width",
    "frame_height",
    "frame_rate",
    "sample_rate",
    "channels",
    "max_bit_rate",
    "tags",
    "created",
    "updated",
]

FALLBACK_ENTITY_FIELDS = ["label", "description", "format", "codec", "tags"]


def _unwrap(value: Any, key: str) -> Any:
    """Return ``value[key]`` for single-key envelopes, else the value itself."""
    if isinstance(value, dict) and key in value:
        return value[key]
    return value


class SoftDeleteExtension:
    """Restore of soft-deleted sources and flows."""

    provides = (CapabilityKey.SOFT_DELETE,)

    async def restore_source(self, source_id: str) -> dict[str, Any]:
        self.require(CapabilityKey.SOFT_DELETE, "restore_source")
        response = await self._request("POST", self._path("sources", source_id, "restore"))
        return response.json() or {}

    async def restore_flow(self, flow_id: str) -> dict[str, Any]:
        self.require(CapabilityKey.SOFT_DELETE, "restore_flow")
        response = await self._request("POST", self._path("flows", flow_id, "restore"))
        return response.json() or {}


class AnalyticsExtension:
    """Client-data (CMCD) analytics reports."""

    provides = (CapabilityKey.CMCD,)

    async def _analytics(self, report: str, operation: str, options: dict[str, Any] | None) -> dict[str, Any]:
        self.require(CapabilityKey.CMCD, operation)
        return await self._get_json(self._path("analytics", report), params=options) or {}

    async def get_flow_usage_analytics(self, options: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self._analytics("flow-usage", "get_flow_usage_analytics", options)

    async def get_storage_usage_analytics(self, options: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self._analytics("storage-usage", "get_storage_usage_analytics", options)

    async def get_time_range_analytics(self, options: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self._analytics("time-range-analysis", "get_time_range_analytics", options)


class WebhookExtension:
    """
    Webhook management.

    Event type discovery falls back to DEFAULT_WEBHOOK_EVENTS when the
    backend cannot enumerate them.
    """

    provides = (CapabilityKey.WEBHOOKS,)

    # Path listing the event types a webhook may subscribe to
    webhook_events_path: str | None = None

    async def get_webhooks(self, options: FilterOptions | dict[str, Any] | None = None) -> NormalizedResponse:
        self.require(CapabilityKey.WEBHOOKS, "get_webhooks")
        response = await self._request("GET", self._path("webhooks"), params=self._filter_options(options))
        return self._normalize_list(response, "webhooks")

    async def create_webhook(self, webhook: dict[str, Any]) -> dict[str, Any]:
        self.require(CapabilityKey.WEBHOOKS, "create_webhook")
        response = await self._request("POST", self._path("webhooks"), json=webhook)
        return response.json() or {}

    async def update_webhook(self, webhook_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        self.require(CapabilityKey.WEBHOOKS, "update_webhook")
        response = await self._request("PUT", self._path("webhooks", webhook_id), json=updates)
        return response.json() or {}

    async def delete_webhook(self, webhook_id: str) -> None:
        self.require(CapabilityKey.WEBHOOKS, "delete_webhook")
        await self._request("DELETE", self._path("webhooks", webhook_id))

    async def test_webhook(self, webhook_id: str) -> dict[str, Any]:
        self.require(CapabilityKey.WEBHOOKS, "test_webhook")
        response = await self._request("POST", self._path("webhooks", webhook_id, "test"))
        return response.json() or {}

    async def get_webhook_history(
        self,
        webhook_id: str,
        options: FilterOptions | dict[str, Any] | None = None,
    ) -> NormalizedResponse:
        self.require(CapabilityKey.WEBHOOKS, "get_webhook_history")
        response = await self._request(
            "GET",
            self._path("webhooks", webhook_id, "history"),
            params=self._filter_options(options),
        )
        return self._normalize_list(response, "history")

    async def get_webhook_stats(self, webhook_id: str | None = None) -> dict[str, Any]:
        self.require(CapabilityKey.WEBHOOKS, "get_webhook_stats")
        if webhook_id:
            path = self._path("webhooks", webhook_id, "stats")
        else:
            path = self._path("webhooks", "stats")
        return await self._get_json(path) or {}

    async def get_webhook_event_types(self) -> list[str]:
        self.require(CapabilityKey.WEBHOOKS, "get_webhook_event_types")
        path = self.webhook_events_path or self._path("webhooks", "events")
        try:
            body = await self._get_json(path)
        except TamsApiError as e:
            logger.warning(f"Could not retrieve webhook event types, using fallback: {e}")
            return list(DEFAULT_WEBHOOK_EVENTS)

        events = _unwrap(_unwrap(body, "events"), "event_types")
        if isinstance(events, list) and events:
            return [str(event) for event in events]
        return list(DEFAULT_WEBHOOK_EVENTS)


class StorageExtension:
    """Pre-allocation of segment storage."""

    provides = (CapabilityKey.STORAGE_ALLOCATION,)

    async def get_storage(self, flow_id: str) -> dict[str, Any]:
        self.require(CapabilityKey.STORAGE_ALLOCATION, "get_storage")
        return await self._get_json(self._endpoint("storage", flow_id=flow_id)) or {}

    async def allocate_storage(
        self,
        flow_id: str,
        limit: int | None = None,
        object_ids: list[str] | None = None,
    ) -> dict[str, Any]:
        self.require(CapabilityKey.STORAGE_ALLOCATION, "allocate_storage")
        body: dict[str, Any] = {}
        if limit is not None:
            body["limit"] = limit
        if object_ids:
            body["object_ids"] = list(object_ids)
        response = await self._request("POST", self._endpoint("storage", flow_id=flow_id), json=body)
        return response.json() or {}


class FlowCollectionExtension:
    """Grouping of flows into collections."""

    provides = (CapabilityKey.FLOW_COLLECTIONS,)

    async def get_flow_collection(self, flow_id: str) -> dict[str, Any] | None:
        self.require(CapabilityKey.FLOW_COLLECTIONS, "get_flow_collection")
        return await self._get_json(self._path("flows", flow_id, "flow_collection"))

    async def set_flow_collection(self, flow_id: str, collection_id: str) -> None:
        self.require(CapabilityKey.FLOW_COLLECTIONS, "set_flow_collection")
        await self._request(
            "PUT",
            self._path("flows", flow_id, "flow_collection"),
            json={"collection_id": collection_id},
        )

    async def remove_flow_from_collection(self, flow_id: str) -> None:
        self.require(CapabilityKey.FLOW_COLLECTIONS, "remove_flow_from_collection")
        await self._request("DELETE", self._path("flows", flow_id, "flow_collection"))


class FlowMetadataExtension:
    """Flow tags, description and label."""

    async def get_flow_tags(self, flow_id: str) -> dict[str, Any]:
        return await self._get_json(self._path("flows", flow_id, "tags")) or {}

    async def set_flow_tag(self, flow_id: str, name: str, value: Any) -> None:
        await self._request("PUT", self._path("flows", flow_id, "tags", name), json={"value": value})

    async def delete_flow_tag(self, flow_id: str, name: str) -> None:
        await self._request("DELETE", self._path("flows", flow_id, "tags", name))

    async def get_flow_description(self, flow_id: str) -> str | None:
        body = await self._get_json(self._path("flows", flow_id, "description"))
        return _unwrap(body, "description")

    async def set_flow_description(self, flow_id: str, description: str) -> None:
        await self._request(
            "PUT",
            self._path("flows", flow_id, "description"),
            json={"description": description},
        )

    async def get_flow_label(self, flow_id: str) -> str | None:
        body = await self._get_json(self._path("flows", flow_id, "label"))
        return _unwrap(body, "label")

    async def set_flow_label(self, flow_id: str, label: str) -> None:
        await self._request("PUT", self._path("flows", flow_id, "label"), json={"label": label})


class ReadOnlyExtension:
    """Toggling of a flow's read-only flag."""

    async def get_flow_read_only(self, flow_id: str) -> bool:
        body = await self._get_json(self._path("flows", flow_id, "read_only"))
        return bool(_unwrap(body, "read_only"))

    async def set_flow_read_only(self, flow_id: str, read_only: bool) -> None:
        await self._request(
            "PUT",
            self._path("flows", flow_id, "read_only"),
            json={"read_only": bool(read_only)},
        )


class FieldExtension:
    """
    Field-level access on ``/{entity}/{id}/{field}``.

    ``field_entities`` limits which entity kinds are addressable.
    """

    field_entities: frozenset[EntityType] = frozenset(EntityType)

    def _field_path(self, operation: str, entity: EntityType | str, entity_id: str, *parts: str) -> str:
        entity = EntityType(entity)
        if entity not in self.field_entities:
            raise self._unsupported(f"{operation} on {entity.value}")
        path = f"/{entity.value}/{quote(str(entity_id), safe='')}"
        for part in parts:
            path = f"{path}/{quote(str(part), safe='')}"
        return path

    async def get_field_value(self, entity: EntityType | str, entity_id: str, field_name: str) -> Any:
        body = await self._get_json(self._field_path("get_field_value", entity, entity_id, field_name))
        return _unwrap(body, field_name)

    async def update_field_value(
        self,
        entity: EntityType | str,
        entity_id: str,
        field_name: str,
        value: Any,
    ) -> None:
        path = self._field_path("update_field_value", entity, entity_id, field_name)
        await self._request("PUT", path, json=value)

    async def delete_field(self, entity: EntityType | str, entity_id: str, field_name: str) -> None:
        path = self._field_path("delete_field", entity, entity_id, field_name)
        await self._request("DELETE", path)

    async def get_field_metadata(
        self,
        entity: EntityType | str,
        entity_id: str,
        field_name: str,
    ) -> PaginationMetadata:
        path = self._field_path("get_field_metadata", entity, entity_id, field_name)
        response = await self._request("HEAD", path)
        return parse_paging_headers(response.headers)

    async def get_entity_fields(self, entity: EntityType | str, entity_id: str) -> list[str]:
        path = self._field_path("get_entity_fields", entity, entity_id)
        try:
            await self._request("HEAD", path)
        except TamsApiError as e:
            logger.warning(f"Could not probe {path} for fields, using fallback: {e}")
            return list(FALLBACK_ENTITY_FIELDS)
        return list(COMMON_ENTITY_FIELDS)


class MonitoringExtension:
    """Metrics and service description endpoints."""

    provides = (CapabilityKey.HEALTH_MONITORING,)

    async def get_metrics(self) -> dict[str, Any]:
        self.require(CapabilityKey.HEALTH_MONITORING, "get_metrics")
        return await self._get_json(self._path("metrics")) or {}

    async def get_service_info(self) -> dict[str, Any]:
        self.require(CapabilityKey.HEALTH_MONITORING, "get_service_info")
        return await self._get_json("/service") or {}


class AdvancedSearchExtension:
    """Marks a client that forwards tag, timerange and format filters."""

    provides = (CapabilityKey.ADVANCED_SEARCH,)


class FlowDeleteRequestExtension:
    """Asynchronous flow deletion requests."""

    provides = (CapabilityKey.ASYNC_OPERATIONS,)

    async def get_flow_delete_requests(
        self,
        options: FilterOptions | dict[str, Any] | None = None,
    ) -> NormalizedResponse:
        self.require(CapabilityKey.ASYNC_OPERATIONS, "get_flow_delete_requests")
        response = await self._request(
            "GET",
            self._path("flow_delete_requests"),
            params=self._filter_options(options),
        )
        return self._normalize_list(response, "delete_requests")

    async def get_flow_delete_request(self, request_id: str) -> dict[str, Any]:
        self.require(CapabilityKey.ASYNC_OPERATIONS, "get_flow_delete_request")
        return await self._get_json(self._path("flow_delete_requests", request_id)) or {}

    async def create_flow_delete_request(self, flow_id: str, request: dict[str, Any] | None = None) -> dict[str, Any]:
        self.require(CapabilityKey.ASYNC_OPERATIONS, "create_flow_delete_request")
        body = {"flow_id": flow_id, **(request or {})}
        response = await self._request("POST", self._path("flow_delete_requests"), json=body)
        return response.json() or {}

    async def update_flow_delete_request(self, request_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        self.require(CapabilityKey.ASYNC_OPERATIONS, "update_flow_delete_request")
        response = await self._request(
            "PUT",
            self._path("flow_delete_requests", request_id),
            json=updates,
        )
        return response.json() or {}
