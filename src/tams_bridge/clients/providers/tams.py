"""
Standard TAMS REST client.

Core CRUD shared by the adapters that speak the regular TAMS resource
layout (sources, flows, nested segments, objects). Paths come from the
config's endpoint templates, so the same code serves ``/flows`` and
``/api/flows`` layouts.
"""

import json
from typing import Any, BinaryIO

import aiohttp

from ...errors import TamsApiError
from ...protocol import FilterOptions, NormalizedResponse
from ..base import ApiClient, CapabilityKey


class TamsClient(ApiClient):
    """Base class for adapters using the standard TAMS resource layout."""

    def _unwrap_entity(self, body: Any, plural: str, what: str) -> dict[str, Any]:
        """
        Extract a single entity from a response body.

        Accepts a bare object, ``{"data": [...]}``, ``{<plural>: [...]}``
        or a bare array, and takes the first item of list shapes.
        """
        if isinstance(body, dict):
            for key in ("data", plural):
                if isinstance(body.get(key), list):
                    body = body[key]
                    break
        if isinstance(body, list):
            body = body[0] if body else None
        if not body:
            raise TamsApiError(f"{what} not available", backend=self.backend_id)
        return body

    def _delete_params(
        self,
        operation: str,
        soft_delete: bool,
        cascade: bool,
        deleted_by: str | None,
    ) -> dict[str, Any]:
        if not (soft_delete or cascade or deleted_by):
            return {}
        self.require(CapabilityKey.SOFT_DELETE, operation)
        params: dict[str, Any] = {"soft_delete": soft_delete, "cascade": cascade}
        if deleted_by:
            params["deleted_by"] = deleted_by
        return params

    async def _list(self, endpoint: str, plural: str, options: Any, **path_params: Any) -> NormalizedResponse:
        response = await self._request(
            "GET",
            self._path(endpoint, **path_params),
            params=self._filter_options(options),
        )
        return self._normalize_list(response, plural)

    async def _get_one(self, endpoint: str, entity_id: str, plural: str) -> dict[str, Any]:
        body = await self._get_json(self._path(endpoint, entity_id))
        return self._unwrap_entity(body, plural, f"{plural[:-1].capitalize()} {entity_id}")

    async def _send(self, method: str, path: str, payload: Any) -> dict[str, Any]:
        response = await self._request(method, path, json=payload)
        return response.json() or {}

    # Sources

    async def get_sources(self, options: FilterOptions | dict[str, Any] | None = None) -> NormalizedResponse:
        return await self._list("sources", "sources", options)

    async def get_source(self, source_id: str) -> dict[str, Any]:
        return await self._get_one("sources", source_id, "sources")

    async def create_source(self, source: dict[str, Any]) -> dict[str, Any]:
        return await self._send("POST", self._path("sources"), source)

    async def update_source(self, source_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        return await self._send("PUT", self._path("sources", source_id), updates)

    async def delete_source(
        self,
        source_id: str,
        soft_delete: bool = False,
        cascade: bool = False,
        deleted_by: str | None = None,
    ) -> None:
        params = self._delete_params("delete_source", soft_delete, cascade, deleted_by)
        await self._request("DELETE", self._path("sources", source_id), params=params or None)

    # Flows

    async def get_flows(self, options: FilterOptions | dict[str, Any] | None = None) -> NormalizedResponse:
        return await self._list("flows", "flows", options)

    async def get_flow(self, flow_id: str) -> dict[str, Any]:
        return await self._get_one("flows", flow_id, "flows")

    async def create_flow(self, flow: dict[str, Any]) -> dict[str, Any]:
        return await self._send("POST", self._path("flows"), flow)

    async def update_flow(self, flow_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        return await self._send("PUT", self._path("flows", flow_id), updates)

    async def delete_flow(
        self,
        flow_id: str,
        soft_delete: bool = False,
        cascade: bool = False,
        deleted_by: str | None = None,
    ) -> None:
        params = self._delete_params("delete_flow", soft_delete, cascade, deleted_by)
        await self._request("DELETE", self._path("flows", flow_id), params=params or None)

    # Segments

    async def get_flow_segments(
        self,
        flow_id: str,
        options: FilterOptions | dict[str, Any] | None = None,
    ) -> NormalizedResponse:
        return await self._list("segments", "segments", options, flow_id=flow_id)

    async def create_flow_segment(
        self,
        flow_id: str,
        segment: dict[str, Any],
        file: bytes | BinaryIO | None = None,
        filename: str = "segment",
    ) -> dict[str, Any]:
        path = self._path("segments", flow_id=flow_id)
        if file is None:
            return await self._send("POST", path, segment)

        form = aiohttp.FormData()
        form.add_field("segment_data", json.dumps(segment), content_type="application/json")
        form.add_field("file", file, filename=filename, content_type="application/octet-stream")
        response = await self._request("POST", path, data=form)
        return response.json() or {}

    async def delete_flow_segments(self, flow_id: str, timerange: str | None = None) -> None:
        params = {"timerange": timerange} if timerange else None
        await self._request("DELETE", self._path("segments", flow_id=flow_id), params=params)

    # Objects

    async def get_objects(self, options: FilterOptions | dict[str, Any] | None = None) -> NormalizedResponse:
        return await self._list("objects", "objects", options)

    async def get_object(self, object_id: str) -> dict[str, Any]:
        return await self._get_one("objects", object_id, "objects")

    async def create_object(self, obj: dict[str, Any]) -> dict[str, Any]:
        return await self._send("POST", self._path("objects"), obj)

    async def delete_object(self, object_id: str) -> None:
        await self._request("DELETE", self._path("objects", object_id))
