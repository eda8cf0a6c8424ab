"""
VAST TAMS Client

Adapter for the full-featured VAST TAMS backend. Supports every optional
capability, vendor extras (flow cleanup and stats, segment patching,
segment access URLs, flow delete requests, OpenAPI document) and treats
a 503 from the health endpoint as a degraded-but-reachable service.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from ...errors import TamsApiError
from ...protocol import NormalizedResponse, normalize_response
from ..base import EntityType
from ..extensions import (
    AdvancedSearchExtension,
    AnalyticsExtension,
    FieldExtension,
    FlowCollectionExtension,
    FlowDeleteRequestExtension,
    FlowMetadataExtension,
    MonitoringExtension,
    ReadOnlyExtension,
    SoftDeleteExtension,
    StorageExtension,
    WebhookExtension,
)
from ..http import HttpResponse
from .tams import TamsClient

logger = logging.getLogger(__name__)


class VastTamsClient(
    SoftDeleteExtension,
    AnalyticsExtension,
    WebhookExtension,
    StorageExtension,
    FlowCollectionExtension,
    FlowMetadataExtension,
    ReadOnlyExtension,
    FieldExtension,
    MonitoringExtension,
    AdvancedSearchExtension,
    FlowDeleteRequestExtension,
    TamsClient,
):
    """
    Client for the VAST TAMS backend.

    Response envelopes vary across VAST releases; ``_normalize_list``
    accepts all of them.

    Example:
        client = VastTamsClient(config)
        flows = await client.get_flows({"limit": 25})
        await client.restore_flow(flows.data[0]["id"])
    """

    webhook_events_path = "/service/webhook-events"
    field_entities = frozenset({EntityType.FLOWS})

    def _normalize_list(self, response: HttpResponse, plural: str) -> NormalizedResponse:
        """
        Normalize a VAST list response.

        Shapes are tried in this order:
        1. ``{"data": [...]}``
        2. ``{<plural>: [...], "count": n}`` (count lifted into pagination
           when the paging headers carry none)
        3. a bare array
        4. a single object, wrapped in a list

        Empty bodies (204 or zero length) and envelopes whose ``data`` or
        plural key is not a list yield an empty list. This is a
        compatibility shim for backend drift, not a shape to copy.
        """
        if response.is_empty:
            return normalize_response([], response.headers)

        body = response.json()
        count = None
        if isinstance(body, dict) and isinstance(body.get("data"), list):
            items = body["data"]
        elif isinstance(body, dict) and isinstance(body.get(plural), list):
            items = body[plural]
            count = body.get("count")
        elif isinstance(body, dict) and ("data" in body or plural in body):
            items = []
        elif isinstance(body, list):
            items = body
        elif body:
            items = [body]
        else:
            items = []

        normalized = normalize_response(items, response.headers)
        if normalized.pagination.count is None and isinstance(count, int):
            normalized.pagination.count = count
        return normalized

    async def get_health(self) -> dict[str, Any]:
        """
        Fetch health, reading a 503 as a degraded service.

        A 503 body is used when it parses; otherwise a synthetic degraded
        document is returned.
        """
        response = await self._request("GET", self._path("health"), allow_status=(503,))
        if response.status != 503:
            return response.json() or {}

        logger.warning(f"VAST backend {self.backend_id} answered 503 on health; treating as degraded")
        try:
            body = response.json()
        except TamsApiError:
            body = None

        if not isinstance(body, dict) or not body:
            body = {
                "version": "unknown",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "system": {"cpu_percent": 0, "memory_percent": 0, "disk_percent": 0},
            }
        reported = body.get("status")
        if reported and reported != self.DEGRADED_STATUS:
            body["reported_status"] = reported
        body["status"] = self.DEGRADED_STATUS
        return body

    async def cleanup_flow(self, flow_id: str, hours: int = 24) -> dict[str, Any]:
        """Remove segments older than ``hours`` from a flow."""
        response = await self._request(
            "DELETE",
            self._path("flows", flow_id, "cleanup"),
            params={"hours": hours},
        )
        return response.json() or {}

    async def get_flow_stats(self, flow_id: str) -> dict[str, Any]:
        return await self._get_json(self._path("flows", flow_id, "stats")) or {}

    async def update_flow_segment(self, flow_id: str, segment_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "PATCH",
            self._path("segments", segment_id, flow_id=flow_id),
            json=updates,
        )
        return response.json() or {}

    async def _segment_url(self, flow_id: str, segment_id: str, verb: str) -> str:
        segments = await self.get_flow_segments(flow_id)
        segment = next(
            (s for s in segments.data if segment_id in (s.get("id"), s.get("object_id"))),
            None,
        )
        if segment is None:
            raise TamsApiError(f"Segment {segment_id} not found in flow {flow_id}", backend=self.backend_id)

        for entry in segment.get("get_urls") or []:
            if verb in (entry.get("label") or ""):
                return entry["url"]
        raise TamsApiError(f"No {verb} URL found for segment {segment_id}", backend=self.backend_id)

    async def get_segment_content_url(self, flow_id: str, segment_id: str) -> str:
        """URL for fetching a segment's media."""
        return await self._segment_url(flow_id, segment_id, "GET")

    async def get_segment_metadata_url(self, flow_id: str, segment_id: str) -> str:
        """URL for probing a segment's metadata."""
        return await self._segment_url(flow_id, segment_id, "HEAD")

    async def get_openapi_spec(self) -> dict[str, Any]:
        return await self._get_json("/openapi.json") or {}
