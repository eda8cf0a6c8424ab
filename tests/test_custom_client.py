"""Tests for the minimal custom backend client."""

import pytest

from tams_bridge.clients.providers.custom import CustomClient
from tams_bridge.errors import UnsupportedOperationError


@pytest.fixture
def client(custom_config, transport):
    return CustomClient(custom_config, transport=transport)


class TestCustomClient:
    """Tests for CustomClient."""

    def test_supports_nothing_optional(self, client):
        assert client.get_supported_features() == []
        assert client.capabilities == frozenset()

    @pytest.mark.asyncio
    async def test_only_cursor_and_limit_forwarded(self, client, transport, make_response):
        """Filters other than page and limit are dropped."""
        transport.request.return_value = make_response(body={"data": [{"id": "f1"}]})

        result = await client.get_flows({
            "page": "p2",
            "limit": 5,
            "tags": {"genre": "news"},
            "timerange": "_",
        })

        assert result.data == [{"id": "f1"}]
        assert transport.request.call_args.args == ("GET", "/api/flows?page=p2&limit=5")

    @pytest.mark.asyncio
    async def test_generic_paths(self, client, transport, make_response):
        transport.request.return_value = make_response(body={"id": "s1"})

        await client.get_source("s1")
        await client.get_health()

        paths = [call.args[1] for call in transport.request.call_args_list]
        assert paths == ["/api/sources/s1", "/api/health"]

    @pytest.mark.asyncio
    async def test_fixed_discovery_answers(self, client, transport):
        assert await client.get_entity_fields("flows", "f1") == ["id", "name", "created", "updated"]
        assert await client.get_webhook_event_types() == []
        transport.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_advanced_operations_unsupported(self, client, transport):
        for call in (
            client.restore_flow("f1"),
            client.get_webhooks(),
            client.get_flow_usage_analytics(),
            client.get_flow_tags("f1"),
            client.get_metrics(),
        ):
            with pytest.raises(UnsupportedOperationError):
                await call

        transport.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_context_manager_closes_transport(self, custom_config, transport):
        async with CustomClient(custom_config, transport=transport):
            pass

        transport.close.assert_awaited_once()
