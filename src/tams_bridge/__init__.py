"""
TAMS Bridge - one async client contract for many TAMS backends

TAMS Bridge lets an application talk to structurally different
Time-addressable Media Store backends through a single client interface
and switch between them at runtime.

Architecture:
    - Protocol Layer: Link and X-Paging header decoding, list normalization
    - Client Layer: Capability-negotiated adapters per backend type
    - Selection Layer: Cached client factory and live backend switching

Example usage:
    from tams_bridge import BackendSelection, ClientFactory

    selection = BackendSelection(ClientFactory())
    await selection.initialize()
    client = await selection.get_client()
    flows = await client.get_flows({"limit": 10})
"""

__version__ = "1.0.0"

from .clients import (
    ApiClient,
    CapabilityKey,
    ClientFactory,
    ConnectionStatus,
    EntityType,
    EventChannel,
    HttpTransport,
    ReconnectPolicy,
)
from .errors import (
    ConfigurationError,
    HttpStatusError,
    TamsApiError,
    UnsupportedOperationError,
)
from .protocol import (
    FilterOptions,
    LinkEntry,
    NormalizedResponse,
    PaginationMetadata,
    normalize_response,
    parse_link_header,
    parse_paging_headers,
)
from .settings import (
    BackendCatalog,
    BackendConfig,
    BackendFeatures,
    BackendType,
    EndpointTemplates,
    SelectionStorage,
)
from .state import BackendSelection, FeatureAvailability, SelectionState, SelectionStatus

__all__ = [
    "__version__",
    # Clients
    "ApiClient",
    "CapabilityKey",
    "ClientFactory",
    "ConnectionStatus",
    "EntityType",
    "EventChannel",
    "HttpTransport",
    "ReconnectPolicy",
    # Errors
    "ConfigurationError",
    "HttpStatusError",
    "TamsApiError",
    "UnsupportedOperationError",
    # Protocol
    "FilterOptions",
    "LinkEntry",
    "NormalizedResponse",
    "PaginationMetadata",
    "normalize_response",
    "parse_link_header",
    "parse_paging_headers",
    # Settings
    "BackendCatalog",
    "BackendConfig",
    "BackendFeatures",
    "BackendType",
    "EndpointTemplates",
    "SelectionStorage",
    # State
    "BackendSelection",
    "FeatureAvailability",
    "SelectionState",
    "SelectionStatus",
]
