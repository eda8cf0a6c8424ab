"""
TAMS Bridge Client Module

Provides the uniform client layer over heterogeneous TAMS backends.

Key Components:
- ApiClient: Abstract client contract with capability negotiation
- CapabilityKey: Optional features a backend may support
- ConnectionStatus: Result of the last connection test
- HttpTransport: aiohttp request executor
- EventChannel: Websocket event delivery for the streaming backend
- ClientFactory: Client creation, validation and caching
"""

from ..errors import (
    ConfigurationError,
    HttpStatusError,
    TamsApiError,
    UnsupportedOperationError,
)
from .base import ApiClient, CapabilityKey, ConnectionStatus, EntityType
from .events import EventChannel, ReconnectPolicy
from .factory import ClientFactory
from .http import HttpResponse, HttpTransport

__all__ = [
    "ApiClient",
    "CapabilityKey",
    "ConnectionStatus",
    "EntityType",
    "EventChannel",
    "ReconnectPolicy",
    "ClientFactory",
    "HttpResponse",
    "HttpTransport",
    # Errors
    "ConfigurationError",
    "HttpStatusError",
    "TamsApiError",
    "UnsupportedOperationError",
]
