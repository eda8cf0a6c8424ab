"""
Backend configuration models for TAMS Bridge.

This module defines:
- BackendType: closed set of supported backend kinds
- BackendFeatures: capability flags declared per backend
- EndpointTemplates: path templates with placeholder substitution
- BackendConfig: immutable description of one backend
"""

import string
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any
from urllib.parse import quote

from ..errors import ConfigurationError


class BackendType(Enum):
    """
    Supported backend kinds.

    - VAST_TAMS: Full-featured store (soft delete, analytics, webhooks, storage)
    - BBC_TAMS: Reference API surface only
    - IBC_DEMO: Streaming-oriented demo store (HLS, markers, event channel)
    - CUSTOM: Minimal store with a generic path layout
    """

    VAST_TAMS = "vast-tams"
    BBC_TAMS = "bbc-tams"
    IBC_DEMO = "ibc-demo"
    CUSTOM = "custom"

    @classmethod
    def from_value(cls, value: "BackendType | str") -> "BackendType":
        """Resolve a BackendType from an enum member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigurationError(f"Unknown backend type: {value}")


@dataclass(frozen=True)
class BackendFeatures:
    """
    Capability flags declared by a backend configuration.

    Attributes:
        soft_delete: Deletions can be soft and later restored
        cmcd: Client-data analytics endpoints
        webhooks: Webhook management
        storage_allocation: Pre-allocation of segment storage
        flow_collections: Grouping of flows into collections
        advanced_search: Tag and timerange queries
        async_operations: Long-running server side operations
        health_monitoring: Health and metrics endpoints
    """

    soft_delete: bool = False
    cmcd: bool = False
    webhooks: bool = False
    storage_allocation: bool = False
    flow_collections: bool = False
    advanced_search: bool = False
    async_operations: bool = False
    health_monitoring: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "BackendFeatures":
        data = data or {}
        return cls(**{f.name: bool(data.get(f.name, False)) for f in fields(cls)})

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)

    def enabled(self) -> list[str]:
        """Names of the flags that are set."""
        return [name for name, value in self.to_dict().items() if value]


@dataclass(frozen=True)
class EndpointTemplates:
    """
    Path templates for each entity and feature.

    Templates may contain ``{placeholder}`` fields (for example
    ``/flows/{flow_id}/segments``) that are filled in by ``render()``.
    """

    sources: str = ""
    flows: str = ""
    segments: str = ""
    objects: str = ""
    analytics: str = ""
    webhooks: str = ""
    health: str = ""
    metrics: str = ""
    storage: str = ""
    flow_delete_requests: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "EndpointTemplates":
        data = data or {}
        return cls(**{f.name: str(data.get(f.name) or "") for f in fields(cls)})

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    def placeholders(self, name: str) -> list[str]:
        """Placeholder names used by a template."""
        template = self.get(name)
        return [
            field_name
            for _, field_name, _, _ in string.Formatter().parse(template)
            if field_name
        ]

    def get(self, name: str) -> str:
        if name not in {f.name for f in fields(self)}:
            raise ConfigurationError(f"Unknown endpoint: {name}")
        return getattr(self, name)

    def render(self, name: str, **params: Any) -> str:
        """
        Fill a template's placeholders.

        Args:
            name: Endpoint name (e.g. "segments")
            **params: Placeholder values, percent-encoded on substitution

        Returns:
            The rendered path

        Raises:
            ConfigurationError: If the endpoint is not configured or a
                placeholder value is missing
        """
        template = self.get(name)
        if not template:
            raise ConfigurationError(f"Endpoint '{name}' is not configured")

        encoded = {key: quote(str(value), safe="") for key, value in params.items()}
        try:
            return template.format(**encoded)
        except KeyError as e:
            raise ConfigurationError(
                f"Missing value for placeholder {e} in endpoint '{name}'"
            ) from e


@dataclass(frozen=True)
class BackendConfig:
    """
    Immutable description of one backend.

    A selection switch replaces the whole config; derived copies are made
    with ``dataclasses.replace``.

    Attributes:
        id: Unique backend identifier (e.g. "vast-tams")
        name: Display name
        base_url: Base address of the HTTP API
        backend_type: Backend kind selecting the client adapter
        version: Protocol version reported by the backend family
        description: Free-text description
        features: Declared capability flags
        endpoints: Endpoint path templates
        ws_url: Event channel address (streaming backends only)
        timeout: Per-request timeout in seconds
    """

    id: str
    name: str
    base_url: str
    backend_type: BackendType
    version: str = ""
    description: str = ""
    features: BackendFeatures = field(default_factory=BackendFeatures)
    endpoints: EndpointTemplates = field(default_factory=EndpointTemplates)
    ws_url: str | None = None
    timeout: float = 30.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BackendConfig":
        """Create from dictionary."""
        backend_type = data.get("backend_type") or data.get("type")
        if not backend_type:
            raise ConfigurationError("Backend type is required", backend=data.get("id"))

        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            base_url=str(data.get("base_url", "")).rstrip("/"),
            backend_type=BackendType.from_value(backend_type),
            version=str(data.get("version", "")),
            description=data.get("description", ""),
            features=BackendFeatures.from_dict(data.get("features")),
            endpoints=EndpointTemplates.from_dict(data.get("endpoints")),
            ws_url=data.get("ws_url"),
            timeout=float(data.get("timeout", 30.0)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        result = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "base_url": self.base_url,
            "backend_type": self.backend_type.value,
            "version": self.version,
            "features": self.features.to_dict(),
            "endpoints": self.endpoints.to_dict(),
            "timeout": self.timeout,
        }
        if self.ws_url:
            result["ws_url"] = self.ws_url
        return result
