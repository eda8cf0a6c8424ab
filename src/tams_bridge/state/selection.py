"""
Backend Selection State

Tracks which backend the application is talking to and performs live
switching between catalog backends:

    idle -> initializing -> ready
    ready -> switching -> ready
    ready -> refreshing -> ready

Every transition runs under one asyncio.Lock, so callers always observe
a complete state.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import yaml

from ..clients.base import STREAMING_BACKEND_TYPE, STREAMING_CAPABILITIES, ApiClient, CapabilityKey
from ..clients.factory import ClientFactory
from ..errors import ConfigurationError, TamsApiError
from ..settings.catalog import BackendCatalog, get_feature_summary
from ..settings.models import BackendConfig
from ..settings.storage import SelectionStorage

logger = logging.getLogger(__name__)

DEFAULT_SWITCH_HISTORY = 20
DEFAULT_CONNECTION_HISTORY = 50

# Flags counted by has_advanced_features()
ADVANCED_FEATURES = (
    CapabilityKey.SOFT_DELETE,
    CapabilityKey.CMCD,
    CapabilityKey.WEBHOOKS,
    CapabilityKey.STORAGE_ALLOCATION,
    CapabilityKey.FLOW_COLLECTIONS,
    CapabilityKey.ASYNC_OPERATIONS,
)


class SelectionStatus(str, Enum):
    """Lifecycle status of the selection state."""
    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"
    SWITCHING = "switching"
    REFRESHING = "refreshing"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SwitchEvent:
    """A completed or failed backend switch."""
    from_backend: str | None
    to_backend: str
    timestamp: datetime = field(default_factory=_now)
    reason: str = "user"
    success: bool = True
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_backend,
            "to": self.to_backend,
            "timestamp": self.timestamp.isoformat(),
            "reason": self.reason,
            "success": self.success,
            "error": self.error,
        }


@dataclass
class ConnectionTest:
    """Outcome of one connection probe."""
    backend_id: str
    connected: bool
    timestamp: datetime = field(default_factory=_now)
    response_time_ms: float | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "backend_id": self.backend_id,
            "connected": self.connected,
            "timestamp": self.timestamp.isoformat(),
            "response_time_ms": self.response_time_ms,
            "error": self.error,
        }


@dataclass
class SelectionState:
    """
    Snapshot of the selection.

    Attributes:
        status: Current lifecycle status
        current_backend: Active backend configuration
        available_backends: Backends known to the catalog
        is_loading: True while a transition is running
        error: Message of the last failure, cleared by clear_error()
        last_switch_time: When the last successful switch finished
        switch_history: Recent switch events, oldest first
        connection_history: Recent connection tests, oldest first
    """
    status: SelectionStatus = SelectionStatus.IDLE
    current_backend: BackendConfig | None = None
    available_backends: list[BackendConfig] = field(default_factory=list)
    is_loading: bool = False
    error: str | None = None
    last_switch_time: datetime | None = None
    switch_history: deque = field(default_factory=lambda: deque(maxlen=DEFAULT_SWITCH_HISTORY))
    connection_history: deque = field(default_factory=lambda: deque(maxlen=DEFAULT_CONNECTION_HISTORY))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "status": self.status.value,
            "current_backend": self.current_backend.id if self.current_backend else None,
            "available_backends": [b.id for b in self.available_backends],
            "is_loading": self.is_loading,
            "error": self.error,
            "last_switch_time": self.last_switch_time.isoformat() if self.last_switch_time else None,
            "switch_history": [e.to_dict() for e in self.switch_history],
            "connection_history": [t.to_dict() for t in self.connection_history],
        }


@dataclass(frozen=True)
class FeatureAvailability:
    """
    Feature availability of a backend.

    A feature is available when the adapter for the backend type
    implements it and the configuration declares it, matching
    ``ApiClient.supports``. Streaming features are available to the
    streaming backend type only.
    """
    backend_id: str | None = None
    can_use_soft_delete: bool = False
    can_use_cmcd: bool = False
    can_use_webhooks: bool = False
    can_use_storage_allocation: bool = False
    can_use_flow_collections: bool = False
    can_use_advanced_search: bool = False
    can_use_async_operations: bool = False
    can_use_health_monitoring: bool = False
    can_use_hls_streaming: bool = False
    can_use_real_time_markers: bool = False
    can_use_websocket_updates: bool = False

    @classmethod
    def from_config(cls, config: BackendConfig | None) -> "FeatureAvailability":
        if config is None:
            return cls()
        implemented = ClientFactory._get_client_class(config.backend_type).capabilities
        streaming = config.backend_type == STREAMING_BACKEND_TYPE
        values: dict[str, Any] = {"backend_id": config.id}
        for key in CapabilityKey:
            if key not in implemented:
                available = False
            elif key in STREAMING_CAPABILITIES:
                available = streaming
            else:
                available = bool(getattr(config.features, key.value))
            values[f"can_use_{key.value}"] = available
        return cls(**values)

    def supports(self, key: CapabilityKey | str) -> bool:
        try:
            key = CapabilityKey(key)
        except ValueError:
            return False
        return getattr(self, f"can_use_{key.value}")

    def get_supported_features(self) -> list[str]:
        return [key.value for key in CapabilityKey if self.supports(key)]

    def get_unsupported_features(self) -> list[str]:
        return [key.value for key in CapabilityKey if not self.supports(key)]

    def has_advanced_features(self) -> bool:
        return any(self.supports(key) for key in ADVANCED_FEATURES)

    def get_feature_summary(self) -> dict[str, Any]:
        supported = self.get_supported_features()
        return {
            "backend_id": self.backend_id,
            "supported": supported,
            "unsupported": self.get_unsupported_features(),
            "supported_count": len(supported),
            "total": len(CapabilityKey),
            "has_advanced_features": self.has_advanced_features(),
        }

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class BackendSelection:
    """
    Current-backend state with switch, refresh and test operations.

    Example:
        selection = BackendSelection(ClientFactory())
        await selection.initialize()
        await selection.switch_backend("bbc-tams")
        client = await selection.get_client()
    """

    def __init__(
        self,
        factory: ClientFactory,
        catalog: BackendCatalog | None = None,
        storage: SelectionStorage | None = None,
        switch_history_size: int = DEFAULT_SWITCH_HISTORY,
        connection_history_size: int = DEFAULT_CONNECTION_HISTORY,
    ):
        """
        Initialize the selection.

        Args:
            factory: Client factory used for all clients
            catalog: Backend catalog (defaults to the built-in catalog)
            storage: Persistence for the selected backend id
            switch_history_size: Number of switch events kept
            connection_history_size: Number of connection tests kept
        """
        self.factory = factory
        self.catalog = catalog or BackendCatalog()
        self.storage = storage or SelectionStorage()
        self._state = SelectionState(
            switch_history=deque(maxlen=switch_history_size),
            connection_history=deque(maxlen=connection_history_size),
        )
        self._client: ApiClient | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def current_backend(self) -> BackendConfig | None:
        return self._state.current_backend

    @property
    def error(self) -> str | None:
        return self._state.error

    def _begin(self, status: SelectionStatus) -> None:
        logger.debug(f"Selection {self._state.status.value} -> {status.value}")
        self._state.status = status
        self._state.is_loading = True

    def _finish(self) -> None:
        self._state.status = SelectionStatus.READY
        self._state.is_loading = False

    async def initialize(self) -> BackendConfig:
        """
        Load the catalog and restore the persisted backend choice.

        Falls back to the catalog default when nothing valid was persisted.
        No connection test is run.
        """
        async with self._lock:
            self._begin(SelectionStatus.INITIALIZING)
            try:
                self._state.available_backends = self.catalog.reload()

                try:
                    persisted = self.storage.get_selected_backend()
                except (OSError, yaml.YAMLError) as e:
                    logger.warning(f"Could not read persisted backend selection: {e}")
                    persisted = None

                if persisted and self.catalog.is_valid_backend_id(persisted):
                    backend = self.catalog.get_backend_config(persisted)
                else:
                    if persisted:
                        logger.warning(f"Persisted backend '{persisted}' is not in the catalog, using default")
                    backend = self.catalog.get_default_backend()

                self._state.current_backend = backend
                self._client = None
                logger.info(f"Selected backend: {backend.id}")
                return backend
            finally:
                self._finish()

    async def switch_backend(self, backend_id: str, reason: str = "user") -> BackendConfig:
        """
        Switch to another catalog backend.

        Steps: validate the target, test its connection, obtain a client
        from the factory, persist the choice, then make it current. For the
        streaming backend a failed connection test or client creation is
        logged and the switch proceeds without a client.

        On failure the previous backend stays active, the persisted choice
        is untouched, ``error`` is set and a failed SwitchEvent is recorded.

        Raises:
            ConfigurationError: If the target is unknown or invalid
            TamsApiError: If the target cannot be reached
        """
        async with self._lock:
            previous = self._state.current_backend
            from_id = previous.id if previous else None
            self._begin(SelectionStatus.SWITCHING)
            self._state.error = None
            try:
                target = self._validated_target(backend_id)
                streaming = target.backend_type == STREAMING_BACKEND_TYPE

                if not await self._test_config(target):
                    if not streaming:
                        raise TamsApiError(f"Cannot connect to backend '{target.id}'", backend=target.id)
                    logger.warning(f"Streaming backend {target.id} failed its connection test, switching anyway")

                client: ApiClient | None
                try:
                    client = await self.factory.create_client(target.backend_type, target)
                except TamsApiError as e:
                    if not streaming or isinstance(e, ConfigurationError):
                        raise
                    logger.warning(f"No client for streaming backend {target.id} yet: {e}")
                    client = None

                self.storage.set_selected_backend(target.id)
                self._state.current_backend = target
                self._client = client
                self._state.last_switch_time = _now()
                self._state.switch_history.append(
                    SwitchEvent(from_backend=from_id, to_backend=target.id, reason=reason)
                )
                logger.info(f"Switched backend {from_id} -> {target.id}")
                return target
            except Exception as e:
                self._state.error = str(e)
                self._state.switch_history.append(
                    SwitchEvent(
                        from_backend=from_id,
                        to_backend=backend_id,
                        reason=reason,
                        success=False,
                        error=str(e),
                    )
                )
                logger.error(f"Switch to {backend_id} failed: {e}")
                raise
            finally:
                self._finish()

    def _validated_target(self, backend_id: str) -> BackendConfig:
        target = self.catalog.get_backend_config(backend_id)
        if target is None:
            raise ConfigurationError(f"Backend '{backend_id}' not found", backend=backend_id)

        problems = self.catalog.validate_backend_config(target)
        problems += self.factory.check_config(target.backend_type, target).errors
        if problems:
            raise ConfigurationError(
                f"Invalid configuration for backend '{backend_id}': " + "; ".join(problems),
                backend=backend_id,
                errors=problems,
            )
        return target

    async def refresh_backend(self) -> bool:
        """
        Re-read the catalog and re-test the current backend.

        The selection itself does not change.

        Returns:
            True if the current backend answered the connection test
        """
        async with self._lock:
            self._begin(SelectionStatus.REFRESHING)
            try:
                self._state.available_backends = self.catalog.reload()
                current = self._state.current_backend
                if current is None:
                    return False

                refreshed = self.catalog.get_backend_config(current.id)
                if refreshed is not None and refreshed != current:
                    self._state.current_backend = refreshed
                    self._client = None
                    current = refreshed

                connected = await self._test_config(current)
                if not connected:
                    self._state.error = f"Backend '{current.id}' is not reachable"
                return connected
            except TamsApiError as e:
                self._state.error = str(e)
                raise
            finally:
                self._finish()

    async def test_backend_connection(self, backend_id: str) -> bool:
        """Probe a catalog backend with a throwaway client."""
        config = self.catalog.get_backend_config(backend_id)
        if config is None:
            self._state.connection_history.append(
                ConnectionTest(backend_id=backend_id, connected=False, error="Backend not found")
            )
            return False
        return await self._test_config(config)

    async def _test_config(self, config: BackendConfig) -> bool:
        client = self.factory.build_client(config.backend_type, config)
        try:
            connected = await client.test_connection()
            status = client.get_connection_status()
        finally:
            await client.close()

        self._state.connection_history.append(
            ConnectionTest(
                backend_id=config.id,
                connected=connected,
                response_time_ms=status.response_time_ms,
                error=status.error,
            )
        )
        return connected

    def clear_error(self) -> None:
        self._state.error = None

    async def get_client(self) -> ApiClient:
        """
        Return a client for the current backend, creating one on demand.

        Raises:
            ConfigurationError: If no backend is selected
            TamsApiError: If the client cannot be created
        """
        async with self._lock:
            current = self._state.current_backend
            if current is None:
                raise ConfigurationError("No backend selected")
            if self._client is None:
                self._client = await self.factory.create_client(current.backend_type, current)
            return self._client

    def feature_availability(self) -> FeatureAvailability:
        return FeatureAvailability.from_config(self._state.current_backend)

    def get_backend_feature_summary(self, backend_id: str) -> dict[str, Any]:
        """Flag summary for any catalog backend."""
        config = self.catalog.get_backend_config(backend_id)
        if config is None:
            return {}
        return get_feature_summary(config.features)
