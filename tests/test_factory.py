"""Tests for ClientFactory."""

import dataclasses
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tams_bridge.clients.factory import ClientFactory
from tams_bridge.clients.http import HttpTransport
from tams_bridge.clients.providers import BbcTamsClient, CustomClient, IbcDemoClient, VastTamsClient
from tams_bridge.errors import ConfigurationError, TamsApiError
from tams_bridge.settings.models import BackendType


def _transport_factory(config):
    transport = MagicMock(spec=HttpTransport)
    transport.request = AsyncMock()
    transport.close = AsyncMock()
    return transport


@pytest.fixture
def factory():
    return ClientFactory(transport_factory=_transport_factory)


class TestBuildClient:
    """Tests for adapter selection."""

    @pytest.mark.parametrize(
        "config_fixture, client_class",
        [
            ("vast_config", VastTamsClient),
            ("bbc_config", BbcTamsClient),
            ("ibc_config", IbcDemoClient),
            ("custom_config", CustomClient),
        ],
    )
    def test_adapter_per_type(self, factory, request, config_fixture, client_class):
        config = request.getfixturevalue(config_fixture)

        client = factory.build_client(config.backend_type, config)

        assert type(client) is client_class
        assert client.backend_id == config.id

    def test_string_type(self, factory, vast_config):
        assert isinstance(factory.build_client("vast-tams", vast_config), VastTamsClient)

    def test_unknown_type(self, factory, vast_config):
        with pytest.raises(ConfigurationError):
            factory.build_client("unknown", vast_config)


class TestValidation:
    """Tests for config validation through the factory."""

    def test_validate_config(self, factory, vast_config, bbc_config):
        assert factory.validate_config(BackendType.VAST_TAMS, vast_config) is True
        assert factory.validate_config(BackendType.VAST_TAMS, bbc_config) is False

    @pytest.mark.asyncio
    async def test_invalid_config_rejected(self, factory, bbc_config):
        config = dataclasses.replace(
            bbc_config,
            features=dataclasses.replace(bbc_config.features, soft_delete=True),
        )

        with pytest.raises(ConfigurationError) as exc_info:
            await factory.create_client(BackendType.BBC_TAMS, config)

        assert exc_info.value.errors
        assert factory.get_all_cached_clients() == {}

    def test_default_config_is_a_copy(self):
        config = ClientFactory.get_default_config(BackendType.VAST_TAMS)
        config["features"]["soft_delete"] = False

        fresh = ClientFactory.get_default_config("vast-tams")
        assert fresh["features"]["soft_delete"] is True
        assert fresh["backend_type"] == "vast-tams"

    def test_available_types(self):
        assert ClientFactory.get_available_backend_types() == list(BackendType)


class TestCaching:
    """Tests for the client cache."""

    def test_cache_key(self):
        assert ClientFactory.cache_key("bbc-tams", "x") == "bbc-tams-x"
        assert ClientFactory.cache_key(BackendType.IBC_DEMO, "demo") == "ibc-demo-demo"

    @pytest.mark.asyncio
    async def test_cache_hit_returns_same_instance(self, factory, vast_config):
        with patch.object(VastTamsClient, "test_connection", new=AsyncMock(return_value=True)) as test:
            first = await factory.create_client(BackendType.VAST_TAMS, vast_config)
            second = await factory.create_client(BackendType.VAST_TAMS, vast_config)

        assert first is second
        assert test.await_count == 2
        assert factory.get_cached_client(BackendType.VAST_TAMS, vast_config.id) is first
        assert list(factory.get_all_cached_clients()) == ["vast-tams-vast-test"]

    @pytest.mark.asyncio
    async def test_failed_cached_client_is_replaced(self, factory, vast_config):
        with patch.object(VastTamsClient, "test_connection", new=AsyncMock(side_effect=[True, False, True])):
            first = await factory.create_client(BackendType.VAST_TAMS, vast_config)
            second = await factory.create_client(BackendType.VAST_TAMS, vast_config)

        assert first is not second
        first.transport.close.assert_awaited_once()
        assert factory.get_cached_client(BackendType.VAST_TAMS, vast_config.id) is second

    @pytest.mark.asyncio
    async def test_connection_failure_not_cached(self, factory, bbc_config):
        with patch.object(BbcTamsClient, "test_connection", new=AsyncMock(return_value=False)):
            with pytest.raises(TamsApiError, match="Failed to connect"):
                await factory.create_client(BackendType.BBC_TAMS, bbc_config)

        assert factory.get_all_cached_clients() == {}

    @pytest.mark.asyncio
    async def test_initialize_error_closes_client(self, factory, custom_config):
        with patch.object(CustomClient, "initialize", new=AsyncMock(side_effect=TamsApiError("init"))):
            with pytest.raises(TamsApiError, match="init"):
                await factory.create_client(BackendType.CUSTOM, custom_config)

        assert factory.get_all_cached_clients() == {}

    @pytest.mark.asyncio
    async def test_remove_and_clear(self, factory, vast_config, bbc_config):
        with patch.object(VastTamsClient, "test_connection", new=AsyncMock(return_value=True)), \
                patch.object(BbcTamsClient, "test_connection", new=AsyncMock(return_value=True)):
            vast = await factory.create_client(BackendType.VAST_TAMS, vast_config)
            bbc = await factory.create_client(BackendType.BBC_TAMS, bbc_config)

        assert await factory.remove_from_cache(BackendType.VAST_TAMS, vast_config.id) is True
        assert await factory.remove_from_cache(BackendType.VAST_TAMS, vast_config.id) is False
        vast.transport.close.assert_awaited_once()

        await factory.close()

        bbc.transport.close.assert_awaited_once()
        assert factory.get_all_cached_clients() == {}

    @pytest.mark.asyncio
    async def test_real_health_probe(self, vast_config, make_response):
        """Without patching, creation probes the health endpoint through the transport."""
        transport = _transport_factory(vast_config)
        transport.request.return_value = make_response(body={"status": "healthy"})
        factory = ClientFactory(transport_factory=lambda config: transport)

        client = await factory.create_client(BackendType.VAST_TAMS, vast_config)

        assert client.get_connection_status().connected is True
        assert transport.request.call_args.args == ("GET", "/health")
