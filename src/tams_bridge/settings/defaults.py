"""
Seed configuration per backend type.

Each entry holds the canonical feature flags and endpoint templates an
operator starts from when declaring a backend of that type.
"""

from typing import Any

from .models import BackendType

_TAMS_ENDPOINTS: dict[str, str] = {
    "sources": "/sources",
    "flows": "/flows",
    "segments": "/flows/{flow_id}/segments",
    "objects": "/objects",
    "analytics": "/analytics",
    "webhooks": "/service/webhooks",
    "health": "/health",
    "metrics": "/metrics",
    "storage": "/flows/{flow_id}/storage",
    "flow_delete_requests": "/flow-delete-requests",
}

DEFAULT_CONFIGS: dict[BackendType, dict[str, Any]] = {
    BackendType.VAST_TAMS: {
        "features": {
            "soft_delete": True,
            "cmcd": True,
            "webhooks": True,
            "storage_allocation": True,
            "flow_collections": True,
            "advanced_search": True,
            "async_operations": True,
            "health_monitoring": True,
        },
        "endpoints": dict(_TAMS_ENDPOINTS),
    },
    BackendType.BBC_TAMS: {
        "features": {
            "soft_delete": False,
            "cmcd": True,
            "webhooks": True,
            "storage_allocation": False,
            "flow_collections": False,
            "advanced_search": True,
            "async_operations": False,
            "health_monitoring": True,
        },
        "endpoints": {**_TAMS_ENDPOINTS, "webhooks": "/webhooks"},
    },
    BackendType.IBC_DEMO: {
        "features": {
            "soft_delete": False,
            "cmcd": False,
            "webhooks": False,
            "storage_allocation": True,
            "flow_collections": False,
            "advanced_search": True,
            "async_operations": False,
            "health_monitoring": True,
        },
        "endpoints": {**_TAMS_ENDPOINTS, "webhooks": "/websocket"},
    },
    BackendType.CUSTOM: {
        "features": {
            "soft_delete": False,
            "cmcd": False,
            "webhooks": False,
            "storage_allocation": False,
            "flow_collections": False,
            "advanced_search": False,
            "async_operations": False,
            "health_monitoring": False,
        },
        "endpoints": {
            "sources": "/api/sources",
            "flows": "/api/flows",
            "segments": "/api/flows/{flow_id}/segments",
            "objects": "/api/objects",
            "analytics": "/api/analytics",
            "webhooks": "/api/webhooks",
            "health": "/api/health",
            "metrics": "/api/metrics",
            "storage": "/api/flows/{flow_id}/storage",
            "flow_delete_requests": "/api/flow-delete-requests",
        },
    },
}
