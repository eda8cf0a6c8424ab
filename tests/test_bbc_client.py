"""Tests for the BBC TAMS client."""

import pytest

from tams_bridge.clients.base import CapabilityKey
from tams_bridge.clients.extensions import (
    COMMON_ENTITY_FIELDS,
    DEFAULT_WEBHOOK_EVENTS,
    FALLBACK_ENTITY_FIELDS,
)
from tams_bridge.clients.providers.bbc_tams import BbcTamsClient
from tams_bridge.errors import HttpStatusError, TamsApiError, UnsupportedOperationError


@pytest.fixture
def client(bbc_config, transport):
    return BbcTamsClient(bbc_config, transport=transport)


class TestCapabilities:
    """Tests for BBC capability negotiation."""

    def test_supported_features(self, client):
        assert client.get_supported_features() == [
            "cmcd",
            "webhooks",
            "advanced_search",
            "health_monitoring",
        ]

    def test_structurally_missing(self, client):
        """Flags alone cannot grant what the adapter does not implement."""
        assert CapabilityKey.SOFT_DELETE not in client.capabilities
        assert CapabilityKey.STORAGE_ALLOCATION not in client.capabilities
        assert not client.supports(CapabilityKey.FLOW_COLLECTIONS)


class TestUnsupportedOperations:
    """Unsupported operations fail before any request is made."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operation, args",
        [
            ("restore_flow", ("f1",)),
            ("restore_source", ("s1",)),
            ("allocate_storage", ("f1",)),
            ("get_storage", ("f1",)),
            ("get_flow_collection", ("f1",)),
            ("set_flow_collection", ("f1", "c1")),
            ("set_flow_read_only", ("f1", True)),
            ("get_flow_delete_requests", ()),
            ("get_hls_manifest", ("f1",)),
            ("create_marker", ({"label": "m"},)),
        ],
    )
    async def test_raises_without_request(self, client, transport, operation, args):
        with pytest.raises(UnsupportedOperationError) as exc_info:
            await getattr(client, operation)(*args)

        assert exc_info.value.operation == operation
        assert exc_info.value.backend == "bbc-test"
        transport.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_soft_delete_option_rejected(self, client, transport):
        with pytest.raises(UnsupportedOperationError):
            await client.delete_flow("f1", soft_delete=True)

        transport.request.assert_not_called()

    def test_event_channel_unsupported(self, client):
        with pytest.raises(UnsupportedOperationError):
            client.subscribe("marker_created", lambda data: None)
        assert client.events_connected() is False

    def test_error_message(self, client):
        error = client._unsupported("restore_flow", CapabilityKey.SOFT_DELETE)

        assert str(error) == "Operation 'restore_flow' is not supported by backend 'bbc-test' (requires soft_delete)"


class TestSupportedOperations:
    """Tests for the operations BBC does support."""

    @pytest.mark.asyncio
    async def test_get_flows(self, client, transport, make_response):
        transport.request.return_value = make_response(
            body=[{"id": "f1"}],
            headers={"X-Paging-NextKey": "k2"},
        )

        result = await client.get_flows({"limit": 5, "timerange": "_"})

        assert result.data == [{"id": "f1"}]
        assert result.pagination.next_key == "k2"
        assert transport.request.call_args.args == ("GET", "/flows?limit=5&timerange=_")

    @pytest.mark.asyncio
    async def test_webhooks_path(self, client, transport, make_response):
        transport.request.return_value = make_response(status=201, body={"id": "w1"})

        await client.create_webhook({"url": "http://hook"})

        assert transport.request.call_args.args == ("POST", "/webhooks")

    @pytest.mark.asyncio
    async def test_event_types_fallback_on_error(self, client, transport):
        transport.request.side_effect = TamsApiError("boom")

        assert await client.get_webhook_event_types() == DEFAULT_WEBHOOK_EVENTS
        assert transport.request.call_args.args[1] == "/webhooks/events"

    @pytest.mark.asyncio
    async def test_event_types_fallback_on_empty(self, client, transport, make_response):
        transport.request.return_value = make_response(body={"event_types": []})

        assert await client.get_webhook_event_types() == DEFAULT_WEBHOOK_EVENTS

    @pytest.mark.asyncio
    async def test_entity_fields_probe(self, client, transport, make_response):
        transport.request.return_value = make_response(status=200)

        fields = await client.get_entity_fields("sources", "s1")

        assert fields == COMMON_ENTITY_FIELDS
        assert transport.request.call_args.args == ("HEAD", "/sources/s1")

    @pytest.mark.asyncio
    async def test_entity_fields_fallback(self, client, transport, make_response):
        transport.request.return_value = make_response(status=405)

        assert await client.get_entity_fields("flows", "f1") == FALLBACK_ENTITY_FIELDS

    @pytest.mark.asyncio
    async def test_field_metadata(self, client, transport, make_response):
        transport.request.return_value = make_response(headers={"X-Paging-Count": "4"})

        meta = await client.get_field_metadata("flows", "f1", "tags")

        assert meta.count == 4

    @pytest.mark.asyncio
    async def test_analytics(self, client, transport, make_response):
        transport.request.return_value = make_response(body={"total_flows": 3})

        result = await client.get_flow_usage_analytics({"window": "1h"})

        assert result == {"total_flows": 3}
        assert transport.request.call_args.args == ("GET", "/analytics/flow-usage?window=1h")

    @pytest.mark.asyncio
    async def test_flow_label(self, client, transport, make_response):
        transport.request.return_value = make_response(body={"label": "Camera 1"})

        assert await client.get_flow_label("f1") == "Camera 1"

    @pytest.mark.asyncio
    async def test_metrics(self, client, transport, make_response):
        transport.request.return_value = make_response(body={"requests": 10})

        assert await client.get_metrics() == {"requests": 10}

    @pytest.mark.asyncio
    async def test_status_error(self, client, transport, make_response):
        transport.request.return_value = make_response(status=400, reason="Bad Request")

        with pytest.raises(HttpStatusError, match="HTTP 400 Bad Request"):
            await client.update_flow("f1", {"label": "x"})
