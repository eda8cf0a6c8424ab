"""Tests for the IBC demo streaming client and streaming helpers."""

import dataclasses
from unittest.mock import AsyncMock, patch

import pytest

from tams_bridge.clients.base import CapabilityKey
from tams_bridge.clients.events import EventChannel, ReconnectPolicy
from tams_bridge.clients.providers.ibc_demo import ENTITY_FIELDS, HLS_ACCEPT, IbcDemoClient
from tams_bridge.clients.streaming import (
    MARKER_FORMAT,
    build_marker_payload,
    extract_markers_from_source,
    extract_video_flows_from_source,
    get_marker_color,
    get_marker_display_type,
    is_marker_editable,
    parse_hls_manifest,
)
from tams_bridge.errors import ConfigurationError, TamsApiError, UnsupportedOperationError

PLAYLIST = """#EXTM3U
#EXT-X-VERSION:3
#EXT-X-TARGETDURATION:10
#EXTINF:10.0,
segments/seg-001.ts
#EXTINF:4.5,
segments/seg-002.ts
#EXT-X-ENDLIST
"""


@pytest.fixture
def client(ibc_config, transport):
    return IbcDemoClient(ibc_config, transport=transport)


class TestCapabilities:
    """Tests for streaming capability negotiation."""

    def test_streaming_features(self, client):
        assert client.supports(CapabilityKey.HLS_STREAMING)
        assert client.supports(CapabilityKey.REAL_TIME_MARKERS)
        assert client.supports(CapabilityKey.WEBSOCKET_UPDATES)
        assert client.supports(CapabilityKey.STORAGE_ALLOCATION)
        assert not client.supports(CapabilityKey.SOFT_DELETE)
        assert not client.supports(CapabilityKey.WEBHOOKS)

    def test_health_monitoring_flag_without_extension(self, client):
        """The declared flag is not enough without an implementation."""
        assert client.get_backend_config().features.health_monitoring is True
        assert not client.supports(CapabilityKey.HEALTH_MONITORING)


class TestReads:
    """Tests for read operations."""

    @pytest.mark.asyncio
    async def test_sources_drop_limit(self, client, transport, make_response):
        transport.request.return_value = make_response(body={"sources": [{"id": "s1"}]})

        result = await client.get_sources({"limit": 5, "page": "p"})

        assert result.data == [{"id": "s1"}]
        assert result.pagination.is_empty()
        assert transport.request.call_args.args == ("GET", "/sources?page=p")

    @pytest.mark.asyncio
    async def test_flows_envelope(self, client, transport, make_response):
        transport.request.return_value = make_response(
            body={"flows": [{"id": "f1"}, {"id": "f2"}]},
            headers={"X-Paging-NextKey": "ignored"},
        )

        result = await client.get_flows({"limit": 2})

        assert len(result) == 2
        assert result.pagination.next_key is None
        assert transport.request.call_args.args == ("GET", "/flows?limit=2")

    @pytest.mark.asyncio
    async def test_segments_envelope(self, client, transport, make_response):
        transport.request.return_value = make_response(body={"segments": [{"object_id": "o1"}]})

        result = await client.get_flow_segments("f1")

        assert result.data == [{"object_id": "o1"}]
        assert transport.request.call_args.args == ("GET", "/flows/f1/segments")


class TestWritesAndDefaults:
    """Writes are unsupported; read-only introspection has defaults."""

    @pytest.mark.asyncio
    async def test_writes_unsupported(self, client, transport):
        for call in (
            client.create_flow({"id": "x"}),
            client.update_source("s1", {}),
            client.delete_flow("f1"),
            client.create_flow_segment("f1", {}),
            client.delete_object("o1"),
            client.restore_flow("f1"),
        ):
            with pytest.raises(UnsupportedOperationError):
                await call

        transport.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_defaults(self, client, transport):
        analytics = await client.get_flow_usage_analytics()
        assert analytics["total_flows"] == 0
        assert (await client.get_storage_usage_analytics())["used_storage"] == 0
        assert (await client.get_time_range_analytics())["total_segments"] == 0
        assert await client.get_webhook_event_types() == []
        assert await client.get_flow_tags("f1") == {}
        assert await client.get_flow_collection("f1") is None
        assert await client.get_flow_read_only("f1") is False
        assert await client.get_flow_description("f1") is None
        assert await client.get_flow_label("f1") is None
        assert await client.get_entity_fields("flows", "f1") == ENTITY_FIELDS
        transport.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_storage_uses_post(self, client, transport, make_response):
        transport.request.return_value = make_response(body={"media_objects": [{"object_id": "o1"}]})

        result = await client.get_storage("f1")

        assert result["media_objects"][0]["object_id"] == "o1"
        assert transport.request.call_args.args == ("POST", "/flows/f1/storage")


class TestLifecycle:
    """Tests for tolerant initialization."""

    @pytest.mark.asyncio
    async def test_initialize_tolerates_failure(self, client, transport):
        transport.request.side_effect = TamsApiError("Cannot connect")

        await client.initialize()

    @pytest.mark.asyncio
    async def test_close_disconnects_events(self, client, transport):
        client.subscribe("marker_created", lambda data: None)

        with patch.object(EventChannel, "disconnect", new_callable=AsyncMock) as disconnect:
            await client.close()

        disconnect.assert_awaited_once()
        transport.close.assert_awaited_once()


class TestHls:
    """Tests for HLS manifest retrieval and parsing."""

    @pytest.mark.asyncio
    async def test_get_hls_manifest(self, client, transport, make_response):
        transport.request.return_value = make_response(
            body=PLAYLIST,
            url="http://ibc.test/flows/f1/stream.m3u8",
        )

        manifest = await client.get_hls_manifest("f1")

        assert transport.request.call_args.args == ("GET", "/flows/f1/stream.m3u8")
        assert transport.request.call_args.kwargs["headers"] == {"Accept": HLS_ACCEPT}
        assert [s.segment_id for s in manifest.segments] == ["seg-001.ts", "seg-002.ts"]
        assert manifest.segments[0].url == "http://ibc.test/flows/f1/segments/seg-001.ts"
        assert manifest.duration_ms == 14500.0

    def test_parse_without_base(self):
        manifest = parse_hls_manifest(PLAYLIST)

        assert manifest.segments[1].url == "segments/seg-002.ts"
        assert manifest.segments[1].duration_ms == 4500.0
        assert manifest.manifest == PLAYLIST

    def test_parse_bad_duration(self):
        manifest = parse_hls_manifest("#EXTINF:abc,\nseg.ts\n")

        assert manifest.segments[0].duration_ms == 0.0


class TestMarkers:
    """Tests for marker flows."""

    @pytest.mark.asyncio
    async def test_create_marker(self, client, transport, make_response):
        transport.request.return_value = make_response(status=201, body={"id": "m1"})

        await client.create_marker({"id": "m1", "source_id": "s1", "label": "Goal"})

        assert transport.request.call_args.args == ("POST", "/flows/m1")
        payload = transport.request.call_args.kwargs["json"]
        assert payload["format"] == MARKER_FORMAT
        assert payload["tags"]["content_type"] == ["marker"]
        assert payload["tags"]["color"] == ["#00ff00"]

    @pytest.mark.asyncio
    async def test_create_marker_generates_id(self, client, transport, make_response):
        transport.request.return_value = make_response(status=201, body={})

        await client.create_marker({"source_id": "s1"})

        path = transport.request.call_args.args[1]
        assert path.startswith("/flows/")
        assert len(path) > len("/flows/")

    @pytest.mark.asyncio
    async def test_update_and_delete_marker(self, client, transport, make_response):
        transport.request.return_value = make_response(status=204)

        await client.update_marker("m1", {"label": "Updated"})
        await client.delete_marker("m1")

        methods = [call.args[0] for call in transport.request.call_args_list]
        assert methods == ["PUT", "DELETE"]

    def test_payload_keeps_supplied_tags(self):
        payload = build_marker_payload({"tags": {"color": ["#ff0000"]}, "metadata": {"k": 1}})

        assert payload["tags"]["color"] == ["#ff0000"]
        assert payload["tags"]["display"] == ["square"]
        assert payload["metadata"] == {"k": 1}

    def test_marker_helpers(self):
        marker = {"id": "m", "tags": {"content_type": ["marker"], "color": ["#123456"], "editable": ["false"]}}
        video = {"id": "v", "tags": {"content_type": "video"}}
        source = {"flows": [marker, video]}

        assert extract_markers_from_source(source) == [marker]
        assert extract_video_flows_from_source(source) == [video]
        assert get_marker_color(marker) == "#123456"
        assert get_marker_display_type(marker) == "square"
        assert is_marker_editable(marker) is False
        assert IbcDemoClient.is_marker_flow(marker) is True
        assert IbcDemoClient.is_marker_flow(video) is False


class TestEventChannelWiring:
    """Tests for the client's event channel."""

    def test_subscribe_registers_listener(self, client):
        client.subscribe("marker_created", lambda data: None)

        assert client._events.listener_count("marker_created") == 1
        assert client._events.url == "ws://ibc.test/ws"
        assert client.events_connected() is False

    def test_missing_ws_url(self, ibc_config, transport):
        client = IbcDemoClient(dataclasses.replace(ibc_config, ws_url=None), transport=transport)

        with pytest.raises(ConfigurationError):
            client.subscribe("marker_created", lambda data: None)

    @pytest.mark.asyncio
    async def test_connect_events(self, ibc_config, transport):
        policy = ReconnectPolicy(max_attempts=2, base_delay=0.5)
        client = IbcDemoClient(ibc_config, transport=transport, reconnect_policy=policy)

        with patch.object(EventChannel, "connect", new_callable=AsyncMock) as connect:
            await client.connect_events()

        connect.assert_awaited_once()
        assert client._events.policy is policy

    def test_unsubscribe_without_channel(self, client):
        client.unsubscribe("marker_created", lambda data: None)
