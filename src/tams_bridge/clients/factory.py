"""
Client Factory

Creates, validates, caches and health-checks backend clients. A factory
is constructed explicitly and passed to whatever needs clients; there is
no module-level instance.
"""

import asyncio
import copy
import logging
from typing import Any, Callable

from ..errors import ConfigurationError, TamsApiError
from ..settings.defaults import DEFAULT_CONFIGS
from ..settings.models import BackendConfig, BackendType
from ..settings.validation import BackendConfigValidator, ValidationResult
from .base import ApiClient
from .http import HttpTransport

logger = logging.getLogger(__name__)

# Type alias for adapter classes
ClientClass = type[ApiClient]


class ClientFactory:
    """
    Factory and cache for ApiClient instances.

    Clients are cached under ``"<type>-<config id>"``. A cached client is
    connection-tested again before it is handed out; a failing client is
    evicted and rebuilt.

    Example:
        factory = ClientFactory()
        client = await factory.create_client(BackendType.VAST_TAMS, config)
        flows = await client.get_flows()
        await factory.close()
    """

    # Seed configuration per backend type
    _default_configs: dict[BackendType, dict[str, Any]] = DEFAULT_CONFIGS

    def __init__(
        self,
        transport_factory: Callable[[BackendConfig], HttpTransport] | None = None,
    ):
        """
        Initialize the factory.

        Args:
            transport_factory: Builds the HTTP transport for a config
                (clients create their own when omitted)
        """
        self._transport_factory = transport_factory
        self._cache: dict[str, ApiClient] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def cache_key(backend_type: BackendType | str, backend_id: str) -> str:
        return f"{BackendType.from_value(backend_type).value}-{backend_id}"

    async def create_client(self, backend_type: BackendType | str, config: BackendConfig) -> ApiClient:
        """
        Return a connected client for a backend.

        Args:
            backend_type: Type of client to create
            config: Backend configuration

        Returns:
            A cached client that passed a fresh connection test, or a newly
            built, initialized and connection-tested one

        Raises:
            ConfigurationError: If the config is invalid for the type
            TamsApiError: If initialization or the connection test fails
        """
        backend_type = BackendType.from_value(backend_type)
        self._ensure_valid(backend_type, config)
        key = self.cache_key(backend_type, config.id)

        async with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                if await cached.test_connection():
                    logger.debug(f"Reusing cached client {key}")
                    return cached
                logger.info(f"Cached client {key} failed its connection test, recreating")
                self._cache.pop(key, None)
                await cached.close()

            client = self.build_client(backend_type, config)
            try:
                await client.initialize()
                connected = await client.test_connection()
            except Exception:
                await client.close()
                raise

            if not connected:
                status = client.get_connection_status()
                await client.close()
                logger.error(f"Failed to connect to {config.name} at {config.base_url}: {status.error}")
                raise TamsApiError(
                    f"Failed to connect to {config.name} backend at {config.base_url}"
                    + (f": {status.error}" if status.error else ""),
                    backend=config.id,
                )

            self._cache[key] = client
            logger.info(f"Created {backend_type.value} client for {config.id}")
            return client

    def build_client(self, backend_type: BackendType | str, config: BackendConfig) -> ApiClient:
        """Construct a client without initializing, testing or caching it."""
        backend_type = BackendType.from_value(backend_type)
        client_class = self._get_client_class(backend_type)
        transport = self._transport_factory(config) if self._transport_factory else None
        return client_class(config, transport=transport)

    @staticmethod
    def _get_client_class(backend_type: BackendType) -> ClientClass:
        """
        Resolve the adapter class for a backend type.

        Adapters are imported lazily.
        """
        if backend_type == BackendType.VAST_TAMS:
            from .providers.vast_tams import VastTamsClient
            return VastTamsClient
        elif backend_type == BackendType.BBC_TAMS:
            from .providers.bbc_tams import BbcTamsClient
            return BbcTamsClient
        elif backend_type == BackendType.IBC_DEMO:
            from .providers.ibc_demo import IbcDemoClient
            return IbcDemoClient
        elif backend_type == BackendType.CUSTOM:
            from .providers.custom import CustomClient
            return CustomClient
        else:
            raise ConfigurationError(f"Unsupported backend type: {backend_type}")

    def check_config(self, backend_type: BackendType | str, config: BackendConfig) -> ValidationResult:
        """Validate a config against a backend type and return the details."""
        return BackendConfigValidator.validate_for_type(BackendType.from_value(backend_type), config)

    def validate_config(self, backend_type: BackendType | str, config: BackendConfig) -> bool:
        return self.check_config(backend_type, config).valid

    def _ensure_valid(self, backend_type: BackendType, config: BackendConfig) -> None:
        result = self.check_config(backend_type, config)
        if not result.valid:
            raise ConfigurationError(
                f"Invalid {backend_type.value} configuration for '{config.id}': "
                + "; ".join(result.errors),
                backend=config.id,
                errors=result.errors,
            )
        for warning in result.warnings:
            logger.warning(f"{config.id}: {warning}")

    @classmethod
    def get_default_config(cls, backend_type: BackendType | str) -> dict[str, Any]:
        """
        Get the seed configuration for a backend type.

        Returns:
            Dictionary with ``backend_type``, ``features`` and ``endpoints``
        """
        backend_type = BackendType.from_value(backend_type)
        config = copy.deepcopy(cls._default_configs[backend_type])
        config["backend_type"] = backend_type.value
        return config

    @staticmethod
    def get_available_backend_types() -> list[BackendType]:
        return list(BackendType)

    def get_cached_client(self, backend_type: BackendType | str, backend_id: str) -> ApiClient | None:
        return self._cache.get(self.cache_key(backend_type, backend_id))

    def get_all_cached_clients(self) -> dict[str, ApiClient]:
        return dict(self._cache)

    async def remove_from_cache(self, backend_type: BackendType | str, backend_id: str) -> bool:
        """Evict and close a cached client. Returns True if one was cached."""
        async with self._lock:
            client = self._cache.pop(self.cache_key(backend_type, backend_id), None)
        if client is None:
            return False
        await client.close()
        return True

    async def clear_cache(self) -> None:
        """Evict and close every cached client."""
        async with self._lock:
            clients = list(self._cache.values())
            self._cache.clear()
        for client in clients:
            await client.close()

    async def close(self) -> None:
        await self.clear_cache()
