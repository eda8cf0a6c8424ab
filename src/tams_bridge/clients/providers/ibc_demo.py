"""
IBC Demo Client

Adapter for the streaming-oriented IBC demo backend. The store is read
only through this client; it adds HLS playlists, marker flows and a
websocket event channel. Dashboards should keep working against it, so
read-only introspection it cannot answer returns empty defaults instead
of raising, and a failed initialization is only logged.
"""

import dataclasses
import logging
import uuid
from typing import Any, BinaryIO

from ...errors import ConfigurationError, TamsApiError
from ...protocol import FilterOptions, NormalizedResponse
from ...settings.models import BackendConfig
from .. import streaming
from ..base import ApiClient, CapabilityKey, EntityType
from ..events import EventCallback, EventChannel, ReconnectPolicy
from ..extensions import AdvancedSearchExtension, StorageExtension
from ..http import HttpResponse, HttpTransport
from ..streaming import HlsManifest

logger = logging.getLogger(__name__)

ENTITY_FIELDS = ["id", "label", "description", "tags", "created", "updated"]

HLS_ACCEPT = "application/vnd.apple.mpegurl, application/x-mpegURL, application/octet-stream"


class IbcDemoClient(StorageExtension, AdvancedSearchExtension, ApiClient):
    """
    Client for the IBC demo streaming backend.

    Example:
        client = IbcDemoClient(config)
        manifest = await client.get_hls_manifest(flow_id)
        client.subscribe("marker_created", on_marker)
        await client.connect_events()
    """

    provides = (
        CapabilityKey.HLS_STREAMING,
        CapabilityKey.REAL_TIME_MARKERS,
        CapabilityKey.WEBSOCKET_UPDATES,
    )

    # Marker helpers
    extract_markers_from_source = staticmethod(streaming.extract_markers_from_source)
    extract_video_flows_from_source = staticmethod(streaming.extract_video_flows_from_source)
    is_marker_flow = staticmethod(streaming.is_marker_flow)
    get_marker_color = staticmethod(streaming.get_marker_color)
    get_marker_display_type = staticmethod(streaming.get_marker_display_type)
    is_marker_editable = staticmethod(streaming.is_marker_editable)

    def __init__(
        self,
        config: BackendConfig,
        transport: HttpTransport | None = None,
        reconnect_policy: ReconnectPolicy | None = None,
    ):
        super().__init__(config, transport)
        self.reconnect_policy = reconnect_policy or ReconnectPolicy()
        self._events: EventChannel | None = None

    async def initialize(self) -> None:
        """Probe the backend; failures are logged and tolerated."""
        try:
            await self.get_health()
        except TamsApiError as e:
            logger.warning(f"IBC demo backend {self.backend_id} unavailable during initialization: {e}")

    async def close(self) -> None:
        await self.disconnect_events()
        await super().close()

    def _normalize_list(self, response: HttpResponse, plural: str) -> NormalizedResponse:
        """Lists arrive as ``{<plural>: [...]}`` without paging information."""
        body = response.json()
        if isinstance(body, dict):
            items = body.get(plural) or body.get("data") or []
        elif isinstance(body, list):
            items = body
        else:
            items = []
        return NormalizedResponse(data=list(items))

    async def _list(self, path: str, plural: str, options: FilterOptions) -> NormalizedResponse:
        response = await self._request("GET", path, params=options)
        return self._normalize_list(response, plural)

    # Sources

    async def get_sources(self, options: FilterOptions | dict[str, Any] | None = None) -> NormalizedResponse:
        # The backend rejects the limit parameter on sources
        options = dataclasses.replace(self._filter_options(options), limit=None)
        return await self._list(self._path("sources"), "sources", options)

    async def get_source(self, source_id: str) -> dict[str, Any]:
        return await self._get_json(self._path("sources", source_id)) or {}

    async def create_source(self, source: dict[str, Any]) -> dict[str, Any]:
        raise self._unsupported("create_source")

    async def update_source(self, source_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        raise self._unsupported("update_source")

    async def delete_source(
        self,
        source_id: str,
        soft_delete: bool = False,
        cascade: bool = False,
        deleted_by: str | None = None,
    ) -> None:
        raise self._unsupported("delete_source")

    # Flows

    async def get_flows(self, options: FilterOptions | dict[str, Any] | None = None) -> NormalizedResponse:
        return await self._list(self._path("flows"), "flows", self._filter_options(options))

    async def get_flow(self, flow_id: str) -> dict[str, Any]:
        return await self._get_json(self._path("flows", flow_id)) or {}

    async def create_flow(self, flow: dict[str, Any]) -> dict[str, Any]:
        raise self._unsupported("create_flow")

    async def update_flow(self, flow_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        raise self._unsupported("update_flow")

    async def delete_flow(
        self,
        flow_id: str,
        soft_delete: bool = False,
        cascade: bool = False,
        deleted_by: str | None = None,
    ) -> None:
        raise self._unsupported("delete_flow")

    # Segments

    async def get_flow_segments(
        self,
        flow_id: str,
        options: FilterOptions | dict[str, Any] | None = None,
    ) -> NormalizedResponse:
        path = self._path("segments", flow_id=flow_id)
        return await self._list(path, "segments", self._filter_options(options))

    async def create_flow_segment(
        self,
        flow_id: str,
        segment: dict[str, Any],
        file: bytes | BinaryIO | None = None,
        filename: str = "segment",
    ) -> dict[str, Any]:
        raise self._unsupported("create_flow_segment")

    async def delete_flow_segments(self, flow_id: str, timerange: str | None = None) -> None:
        raise self._unsupported("delete_flow_segments")

    # Objects

    async def get_objects(self, options: FilterOptions | dict[str, Any] | None = None) -> NormalizedResponse:
        return await self._list(self._path("objects"), "objects", self._filter_options(options))

    async def get_object(self, object_id: str) -> dict[str, Any]:
        return await self._get_json(self._path("objects", object_id)) or {}

    async def create_object(self, obj: dict[str, Any]) -> dict[str, Any]:
        raise self._unsupported("create_object")

    async def delete_object(self, object_id: str) -> None:
        raise self._unsupported("delete_object")

    # Read-only introspection without backend support

    async def get_flow_usage_analytics(self, options: dict[str, Any] | None = None) -> dict[str, Any]:
        logger.warning("Analytics not supported by IBC demo backend, returning empty flow usage")
        return {
            "flows": [],
            "total_flows": 0,
            "active_flows": 0,
            "inactive_flows": 0,
            "usage": {"total": 0, "active": 0, "inactive": 0},
        }

    async def get_storage_usage_analytics(self, options: dict[str, Any] | None = None) -> dict[str, Any]:
        logger.warning("Analytics not supported by IBC demo backend, returning empty storage usage")
        return {
            "total_storage": 0,
            "used_storage": 0,
            "available_storage": 0,
            "flows": [],
            "usage": {"total": 0, "used": 0, "available": 0},
        }

    async def get_time_range_analytics(self, options: dict[str, Any] | None = None) -> dict[str, Any]:
        logger.warning("Analytics not supported by IBC demo backend, returning empty time range analysis")
        return {
            "time_ranges": [],
            "total_segments": 0,
            "total_duration": 0,
            "average_duration": 0,
            "usage": {"total": 0, "average": 0},
        }

    async def get_webhook_event_types(self) -> list[str]:
        return []

    async def get_flow_tags(self, flow_id: str) -> dict[str, Any]:
        return {}

    async def get_flow_collection(self, flow_id: str) -> dict[str, Any] | None:
        return None

    async def get_flow_read_only(self, flow_id: str) -> bool:
        return False

    async def get_flow_description(self, flow_id: str) -> str | None:
        return None

    async def get_flow_label(self, flow_id: str) -> str | None:
        return None

    async def get_entity_fields(self, entity: EntityType | str, entity_id: str) -> list[str]:
        return list(ENTITY_FIELDS)

    async def get_storage(self, flow_id: str) -> dict[str, Any]:
        """Storage is requested with a POST on this backend."""
        return await self.allocate_storage(flow_id)

    # Streaming

    async def get_hls_manifest(self, flow_id: str) -> HlsManifest:
        """Fetch and parse a flow's HLS playlist."""
        self.require(CapabilityKey.HLS_STREAMING, "get_hls_manifest")
        response = await self._request(
            "GET",
            self._path("flows", flow_id, "stream.m3u8"),
            headers={"Accept": HLS_ACCEPT},
        )
        return streaming.parse_hls_manifest(response.text(), base_url=response.url)

    async def create_marker(self, marker: dict[str, Any]) -> dict[str, Any]:
        """
        Create a marker flow.

        Args:
            marker: Marker fields (``id``, ``source_id``, ``label``,
                ``description``, ``tags``, ``metadata``). A flow id is
                generated when ``id`` is missing.
        """
        self.require(CapabilityKey.REAL_TIME_MARKERS, "create_marker")
        marker_id = marker.get("id") or str(uuid.uuid4())
        response = await self._request(
            "POST",
            self._path("flows", marker_id),
            json=streaming.build_marker_payload(marker),
        )
        return response.json() or {}

    async def update_marker(self, marker_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        self.require(CapabilityKey.REAL_TIME_MARKERS, "update_marker")
        response = await self._request("PUT", self._path("flows", marker_id), json=updates)
        return response.json() or {}

    async def delete_marker(self, marker_id: str) -> None:
        self.require(CapabilityKey.REAL_TIME_MARKERS, "delete_marker")
        await self._request("DELETE", self._path("flows", marker_id))

    def _event_channel(self) -> EventChannel:
        if self._events is None:
            if not self._config.ws_url:
                raise ConfigurationError(
                    f"Backend {self.backend_id} has no event channel address",
                    backend=self.backend_id,
                )
            self._events = EventChannel(self._config.ws_url, policy=self.reconnect_policy)
        return self._events

    async def connect_events(self) -> None:
        self.require(CapabilityKey.WEBSOCKET_UPDATES, "connect_events")
        await self._event_channel().connect()

    async def disconnect_events(self) -> None:
        if self._events is not None:
            await self._events.disconnect()

    def subscribe(self, event_type: str, callback: EventCallback) -> None:
        self.require(CapabilityKey.WEBSOCKET_UPDATES, "subscribe")
        self._event_channel().subscribe(event_type, callback)

    def unsubscribe(self, event_type: str, callback: EventCallback) -> None:
        if self._events is not None:
            self._events.unsubscribe(event_type, callback)

    def events_connected(self) -> bool:
        return self._events is not None and self._events.connected
