"""
Client Contract

Defines the abstract interface every backend client implements, the
capability keys used to negotiate optional features, and the connection
status record. Concrete adapters inherit from ApiClient and mix in the
extension classes from ``extensions`` for the optional operations they
actually support.
"""

import dataclasses
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, BinaryIO
from urllib.parse import quote

from ..errors import (
    ConfigurationError,
    HttpStatusError,
    TamsApiError,
    UnsupportedOperationError,
)
from ..protocol import (
    FilterOptions,
    NormalizedResponse,
    PaginationMetadata,
    build_query_string,
    normalize_response,
)
from ..settings.models import BackendConfig, BackendType
from .http import HttpResponse, HttpTransport

logger = logging.getLogger(__name__)


class CapabilityKey(str, Enum):
    """Optional features a backend may support."""

    SOFT_DELETE = "soft_delete"
    CMCD = "cmcd"
    WEBHOOKS = "webhooks"
    STORAGE_ALLOCATION = "storage_allocation"
    FLOW_COLLECTIONS = "flow_collections"
    ADVANCED_SEARCH = "advanced_search"
    ASYNC_OPERATIONS = "async_operations"
    HEALTH_MONITORING = "health_monitoring"
    HLS_STREAMING = "hls_streaming"
    REAL_TIME_MARKERS = "real_time_markers"
    WEBSOCKET_UPDATES = "websocket_updates"


# Capabilities that are not config flags; granted by backend identity
STREAMING_CAPABILITIES = frozenset({
    CapabilityKey.HLS_STREAMING,
    CapabilityKey.REAL_TIME_MARKERS,
    CapabilityKey.WEBSOCKET_UPDATES,
})

STREAMING_BACKEND_TYPE = BackendType.IBC_DEMO


class EntityType(str, Enum):
    """Entity kinds addressable by field-level operations."""

    FLOWS = "flows"
    SOURCES = "sources"
    SEGMENTS = "segments"


@dataclass
class ConnectionStatus:
    """
    Result of the most recent connection test.

    Attributes:
        connected: Whether the backend answered usefully
        last_check: When the test ran (None before the first test)
        response_time_ms: Round trip of the health probe
        error: Failure or degradation message
        status: "healthy", "degraded", "unhealthy" or "unknown"
    """
    connected: bool = False
    last_check: datetime | None = None
    response_time_ms: float | None = None
    error: str | None = None
    status: str = "unknown"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "connected": self.connected,
            "last_check": self.last_check.isoformat() if self.last_check else None,
            "response_time_ms": self.response_time_ms,
            "error": self.error,
            "status": self.status,
        }


class ApiClient(ABC):
    """
    Abstract base class for backend clients.

    The required surface is the core CRUD for sources, flows, segments and
    objects plus health and lifecycle. Every optional operation is declared
    here with a default that raises UnsupportedOperationError; extension
    mixins replace those defaults and advertise their capability through
    ``provides``.

    Subclasses must implement the abstract CRUD methods.
    """

    # Capabilities implemented by this class, collected from its MRO
    capabilities: frozenset[CapabilityKey] = frozenset()

    HEALTHY_STATUSES = frozenset({"healthy", "ok", "up"})
    DEGRADED_STATUS = "degraded"

    def __init_subclass__(cls, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        provided: set[CapabilityKey] = set()
        for klass in cls.__mro__:
            provided.update(vars(klass).get("provides", ()))
        cls.capabilities = frozenset(provided)

    def __init__(self, config: BackendConfig, transport: HttpTransport | None = None):
        """
        Initialize the client.

        Args:
            config: Backend configuration
            transport: HTTP transport (created from the config if omitted)
        """
        self._config = config
        self.transport = transport or HttpTransport(
            config.base_url,
            timeout=config.timeout,
            backend=config.id,
        )
        self._status = ConnectionStatus()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Lifecycle and metadata
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Prepare the client for use. The default does nothing."""
        logger.debug(f"Initialized {self.backend_type.value} client for {self.backend_id}")

    async def close(self) -> None:
        """Release network resources."""
        await self.transport.close()

    def get_backend_config(self) -> BackendConfig:
        return self._config

    def set_backend_config(self, config: BackendConfig) -> None:
        """
        Replace the backend configuration.

        Raises:
            ConfigurationError: If the new config is for another backend type
        """
        if config.backend_type != self._config.backend_type:
            raise ConfigurationError(
                f"Cannot reconfigure a {self._config.backend_type.value} client "
                f"with a {config.backend_type.value} config",
                backend=config.id,
            )
        self._config = config
        self.transport.base_url = config.base_url.rstrip("/")
        self.transport.backend = config.id

    @property
    def backend_id(self) -> str:
        return self._config.id

    @property
    def backend_name(self) -> str:
        return self._config.name

    @property
    def backend_type(self) -> BackendType:
        return self._config.backend_type

    @property
    def backend_version(self) -> str:
        return self._config.version

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def description(self) -> str:
        return self._config.description

    # ------------------------------------------------------------------
    # Capability negotiation
    # ------------------------------------------------------------------

    def supports(self, key: CapabilityKey | str) -> bool:
        """
        Check whether an optional capability is usable.

        A capability is usable when this class implements it and the
        config declares the matching flag. Streaming extras have no flag
        and are granted to the streaming backend type only.
        """
        try:
            key = CapabilityKey(key)
        except ValueError:
            return False

        if key not in self.capabilities:
            return False
        if key in STREAMING_CAPABILITIES:
            return self.backend_type == STREAMING_BACKEND_TYPE
        return bool(getattr(self._config.features, key.value))

    def get_supported_features(self) -> list[str]:
        return [key.value for key in CapabilityKey if self.supports(key)]

    def get_unsupported_features(self) -> list[str]:
        return [key.value for key in CapabilityKey if not self.supports(key)]

    def require(self, key: CapabilityKey, operation: str) -> None:
        """Raise UnsupportedOperationError unless ``key`` is supported."""
        if not self.supports(key):
            raise self._unsupported(operation, key)

    def _unsupported(
        self,
        operation: str,
        capability: CapabilityKey | None = None,
    ) -> UnsupportedOperationError:
        return UnsupportedOperationError(
            operation,
            backend=self.backend_id,
            capability=capability.value if capability else None,
        )

    # ------------------------------------------------------------------
    # Connection testing
    # ------------------------------------------------------------------

    async def test_connection(self) -> bool:
        """
        Probe the backend's health endpoint and record the result.

        Returns:
            True if the backend is reachable (healthy or degraded)
        """
        start = time.monotonic()
        try:
            health = await self.get_health()
            connected, status, error = self._interpret_health(health)
        except TamsApiError as e:
            logger.warning(f"Connection test failed for {self.backend_id}: {e}")
            connected, status, error = False, "unhealthy", str(e)

        self._status = ConnectionStatus(
            connected=connected,
            last_check=datetime.now(timezone.utc),
            response_time_ms=round((time.monotonic() - start) * 1000, 2),
            error=error,
            status=status,
        )
        return connected

    def _interpret_health(self, health: Any) -> tuple[bool, str, str | None]:
        """Map a health payload to (connected, status, error)."""
        status = health.get("status") if isinstance(health, dict) else None
        if status is None:
            return True, "healthy", None

        status = str(status).lower()
        if status in self.HEALTHY_STATUSES:
            return True, "healthy", None
        if status == self.DEGRADED_STATUS:
            logger.warning(f"Backend {self.backend_id} reports degraded health")
            return True, "degraded", "Service is degraded"
        return False, "unhealthy", f"Backend reported status '{status}'"

    def get_connection_status(self) -> ConnectionStatus:
        return dataclasses.replace(self._status)

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------

    def _endpoint(self, name: str, **params: Any) -> str:
        return self._config.endpoints.render(name, **params)

    def _path(self, endpoint: str, *parts: str, **params: Any) -> str:
        """Render an endpoint and append percent-encoded path segments."""
        path = self._endpoint(endpoint, **params).rstrip("/")
        for part in parts:
            path = f"{path}/{quote(str(part), safe='')}"
        return path

    def _filter_options(self, options: FilterOptions | dict[str, Any] | None) -> FilterOptions:
        """
        Coerce list options, keeping only cursor and page size unless the
        backend supports advanced search.
        """
        if options is None:
            return FilterOptions()
        if isinstance(options, dict):
            options = FilterOptions.from_dict(options)
        if self.supports(CapabilityKey.ADVANCED_SEARCH):
            return options
        return FilterOptions(page=options.page, limit=options.limit)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: FilterOptions | dict[str, Any] | None = None,
        json: Any = None,
        data: Any = None,
        headers: dict[str, str] | None = None,
        allow_status: tuple[int, ...] = (),
    ) -> HttpResponse:
        """
        Issue a request and check its status.

        Args:
            method: HTTP method
            path: Rendered path or absolute URL
            params: Filter options, or a dict of plain query parameters
            json: JSON body
            data: Raw or multipart body
            headers: Extra request headers
            allow_status: Non-success statuses returned instead of raised

        Raises:
            HttpStatusError: For non-success statuses not in ``allow_status``
            TamsApiError: For transport failures
        """
        if isinstance(params, dict):
            params = FilterOptions(custom=params)
        path = path + build_query_string(params)

        response = await self.transport.request(
            method, path, json=json, data=data, headers=headers
        )
        if not response.ok and response.status not in allow_status:
            raise HttpStatusError(
                response.status,
                response.reason,
                backend=self.backend_id,
                url=response.url,
                body=response.text()[:500],
            )
        return response

    async def _get_json(self, path: str, params: FilterOptions | dict[str, Any] | None = None) -> Any:
        response = await self._request("GET", path, params=params)
        return response.json()

    def _normalize_list(self, response: HttpResponse, plural: str) -> NormalizedResponse:
        """Build the list envelope from ``{"data": [...]}`` or a bare array."""
        body = response.json()
        if isinstance(body, dict):
            items = body.get("data") or []
        elif isinstance(body, list):
            items = body
        else:
            items = []
        return normalize_response(items, response.headers)

    # ------------------------------------------------------------------
    # Core CRUD (required)
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_sources(self, options: FilterOptions | dict[str, Any] | None = None) -> NormalizedResponse:
        """List sources."""
        pass

    @abstractmethod
    async def get_source(self, source_id: str) -> dict[str, Any]:
        pass

    @abstractmethod
    async def create_source(self, source: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    async def update_source(self, source_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    async def delete_source(
        self,
        source_id: str,
        soft_delete: bool = False,
        cascade: bool = False,
        deleted_by: str | None = None,
    ) -> None:
        """
        Delete a source.

        Soft deletion options require the soft_delete capability.
        """
        pass

    @abstractmethod
    async def get_flows(self, options: FilterOptions | dict[str, Any] | None = None) -> NormalizedResponse:
        """List flows."""
        pass

    @abstractmethod
    async def get_flow(self, flow_id: str) -> dict[str, Any]:
        pass

    @abstractmethod
    async def create_flow(self, flow: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    async def update_flow(self, flow_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    async def delete_flow(
        self,
        flow_id: str,
        soft_delete: bool = False,
        cascade: bool = False,
        deleted_by: str | None = None,
    ) -> None:
        pass

    @abstractmethod
    async def get_flow_segments(
        self,
        flow_id: str,
        options: FilterOptions | dict[str, Any] | None = None,
    ) -> NormalizedResponse:
        """List segments of a flow."""
        pass

    @abstractmethod
    async def create_flow_segment(
        self,
        flow_id: str,
        segment: dict[str, Any],
        file: bytes | BinaryIO | None = None,
        filename: str = "segment",
    ) -> dict[str, Any]:
        """
        Register a segment, optionally uploading its media in the same request.

        Args:
            flow_id: Owning flow
            segment: Segment metadata
            file: Media payload sent as multipart ``file`` part
            filename: File name reported for the upload
        """
        pass

    @abstractmethod
    async def delete_flow_segments(self, flow_id: str, timerange: str | None = None) -> None:
        pass

    @abstractmethod
    async def get_objects(self, options: FilterOptions | dict[str, Any] | None = None) -> NormalizedResponse:
        pass

    @abstractmethod
    async def get_object(self, object_id: str) -> dict[str, Any]:
        pass

    @abstractmethod
    async def create_object(self, obj: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    async def delete_object(self, object_id: str) -> None:
        pass

    async def get_health(self) -> dict[str, Any]:
        """Fetch the backend's health document."""
        return await self._get_json(self._endpoint("health")) or {}

    # ------------------------------------------------------------------
    # Optional operations (overridden by extensions)
    # ------------------------------------------------------------------

    async def restore_source(self, source_id: str) -> dict[str, Any]:
        raise self._unsupported("restore_source", CapabilityKey.SOFT_DELETE)

    async def restore_flow(self, flow_id: str) -> dict[str, Any]:
        raise self._unsupported("restore_flow", CapabilityKey.SOFT_DELETE)

    async def get_flow_usage_analytics(self, options: dict[str, Any] | None = None) -> dict[str, Any]:
        raise self._unsupported("get_flow_usage_analytics", CapabilityKey.CMCD)

    async def get_storage_usage_analytics(self, options: dict[str, Any] | None = None) -> dict[str, Any]:
        raise self._unsupported("get_storage_usage_analytics", CapabilityKey.CMCD)

    async def get_time_range_analytics(self, options: dict[str, Any] | None = None) -> dict[str, Any]:
        raise self._unsupported("get_time_range_analytics", CapabilityKey.CMCD)

    async def get_webhooks(self, options: FilterOptions | dict[str, Any] | None = None) -> NormalizedResponse:
        raise self._unsupported("get_webhooks", CapabilityKey.WEBHOOKS)

    async def create_webhook(self, webhook: dict[str, Any]) -> dict[str, Any]:
        raise self._unsupported("create_webhook", CapabilityKey.WEBHOOKS)

    async def update_webhook(self, webhook_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        raise self._unsupported("update_webhook", CapabilityKey.WEBHOOKS)

    async def delete_webhook(self, webhook_id: str) -> None:
        raise self._unsupported("delete_webhook", CapabilityKey.WEBHOOKS)

    async def test_webhook(self, webhook_id: str) -> dict[str, Any]:
        raise self._unsupported("test_webhook", CapabilityKey.WEBHOOKS)

    async def get_webhook_history(
        self,
        webhook_id: str,
        options: FilterOptions | dict[str, Any] | None = None,
    ) -> NormalizedResponse:
        raise self._unsupported("get_webhook_history", CapabilityKey.WEBHOOKS)

    async def get_webhook_stats(self, webhook_id: str | None = None) -> dict[str, Any]:
        raise self._unsupported("get_webhook_stats", CapabilityKey.WEBHOOKS)

    async def get_webhook_event_types(self) -> list[str]:
        raise self._unsupported("get_webhook_event_types", CapabilityKey.WEBHOOKS)

    async def get_storage(self, flow_id: str) -> dict[str, Any]:
        raise self._unsupported("get_storage", CapabilityKey.STORAGE_ALLOCATION)

    async def allocate_storage(
        self,
        flow_id: str,
        limit: int | None = None,
        object_ids: list[str] | None = None,
    ) -> dict[str, Any]:
        raise self._unsupported("allocate_storage", CapabilityKey.STORAGE_ALLOCATION)

    async def get_flow_collection(self, flow_id: str) -> dict[str, Any] | None:
        raise self._unsupported("get_flow_collection", CapabilityKey.FLOW_COLLECTIONS)

    async def set_flow_collection(self, flow_id: str, collection_id: str) -> None:
        raise self._unsupported("set_flow_collection", CapabilityKey.FLOW_COLLECTIONS)

    async def remove_flow_from_collection(self, flow_id: str) -> None:
        raise self._unsupported("remove_flow_from_collection", CapabilityKey.FLOW_COLLECTIONS)

    async def get_flow_tags(self, flow_id: str) -> dict[str, Any]:
        raise self._unsupported("get_flow_tags")

    async def set_flow_tag(self, flow_id: str, name: str, value: Any) -> None:
        raise self._unsupported("set_flow_tag")

    async def delete_flow_tag(self, flow_id: str, name: str) -> None:
        raise self._unsupported("delete_flow_tag")

    async def get_flow_description(self, flow_id: str) -> str | None:
        raise self._unsupported("get_flow_description")

    async def set_flow_description(self, flow_id: str, description: str) -> None:
        raise self._unsupported("set_flow_description")

    async def get_flow_label(self, flow_id: str) -> str | None:
        raise self._unsupported("get_flow_label")

    async def set_flow_label(self, flow_id: str, label: str) -> None:
        raise self._unsupported("set_flow_label")

    async def get_flow_read_only(self, flow_id: str) -> bool:
        raise self._unsupported("get_flow_read_only")

    async def set_flow_read_only(self, flow_id: str, read_only: bool) -> None:
        raise self._unsupported("set_flow_read_only")

    async def get_field_value(self, entity: EntityType | str, entity_id: str, field_name: str) -> Any:
        raise self._unsupported("get_field_value")

    async def update_field_value(
        self,
        entity: EntityType | str,
        entity_id: str,
        field_name: str,
        value: Any,
    ) -> None:
        raise self._unsupported("update_field_value")

    async def delete_field(self, entity: EntityType | str, entity_id: str, field_name: str) -> None:
        raise self._unsupported("delete_field")

    async def get_field_metadata(
        self,
        entity: EntityType | str,
        entity_id: str,
        field_name: str,
    ) -> PaginationMetadata:
        raise self._unsupported("get_field_metadata")

    async def get_entity_fields(self, entity: EntityType | str, entity_id: str) -> list[str]:
        raise self._unsupported("get_entity_fields")

    async def get_metrics(self) -> dict[str, Any]:
        raise self._unsupported("get_metrics", CapabilityKey.HEALTH_MONITORING)

    async def get_service_info(self) -> dict[str, Any]:
        raise self._unsupported("get_service_info", CapabilityKey.HEALTH_MONITORING)

    async def get_flow_delete_requests(
        self,
        options: FilterOptions | dict[str, Any] | None = None,
    ) -> NormalizedResponse:
        raise self._unsupported("get_flow_delete_requests", CapabilityKey.ASYNC_OPERATIONS)

    async def get_flow_delete_request(self, request_id: str) -> dict[str, Any]:
        raise self._unsupported("get_flow_delete_request", CapabilityKey.ASYNC_OPERATIONS)

    async def create_flow_delete_request(self, flow_id: str, request: dict[str, Any] | None = None) -> dict[str, Any]:
        raise self._unsupported("create_flow_delete_request", CapabilityKey.ASYNC_OPERATIONS)

    async def update_flow_delete_request(self, request_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        raise self._unsupported("update_flow_delete_request", CapabilityKey.ASYNC_OPERATIONS)

    async def get_hls_manifest(self, flow_id: str) -> Any:
        raise self._unsupported("get_hls_manifest", CapabilityKey.HLS_STREAMING)

    async def create_marker(self, marker: dict[str, Any]) -> dict[str, Any]:
        raise self._unsupported("create_marker", CapabilityKey.REAL_TIME_MARKERS)

    async def update_marker(self, marker_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        raise self._unsupported("update_marker", CapabilityKey.REAL_TIME_MARKERS)

    async def delete_marker(self, marker_id: str) -> None:
        raise self._unsupported("delete_marker", CapabilityKey.REAL_TIME_MARKERS)

    async def connect_events(self) -> None:
        raise self._unsupported("connect_events", CapabilityKey.WEBSOCKET_UPDATES)

    async def disconnect_events(self) -> None:
        raise self._unsupported("disconnect_events", CapabilityKey.WEBSOCKET_UPDATES)

    def subscribe(self, event_type: str, callback: Any) -> None:
        raise self._unsupported("subscribe", CapabilityKey.WEBSOCKET_UPDATES)

    def unsubscribe(self, event_type: str, callback: Any) -> None:
        raise self._unsupported("unsubscribe", CapabilityKey.WEBSOCKET_UPDATES)

    def events_connected(self) -> bool:
        return False
