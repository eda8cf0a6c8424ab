"""Pytest configuration and fixtures for TAMS Bridge tests."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from multidict import CIMultiDict

from tams_bridge.clients.factory import ClientFactory
from tams_bridge.clients.http import HttpResponse, HttpTransport
from tams_bridge.settings.catalog import BackendCatalog
from tams_bridge.settings.models import BackendConfig, BackendType
from tams_bridge.settings.storage import SelectionStorage


def _config(backend_type: BackendType, backend_id: str, base_url: str, **extra) -> BackendConfig:
    data = ClientFactory.get_default_config(backend_type)
    data.update(
        id=backend_id,
        name=backend_id.replace("-", " ").title(),
        base_url=base_url,
        version="1.0",
        **extra,
    )
    return BackendConfig.from_dict(data)


@pytest.fixture
def vast_config():
    """A VAST TAMS backend with every feature enabled."""
    return _config(BackendType.VAST_TAMS, "vast-test", "http://vast.test")


@pytest.fixture
def bbc_config():
    """A reference TAMS backend."""
    return _config(BackendType.BBC_TAMS, "bbc-test", "http://bbc.test")


@pytest.fixture
def ibc_config():
    """A streaming demo backend with an event channel address."""
    return _config(BackendType.IBC_DEMO, "ibc-test", "http://ibc.test", ws_url="ws://ibc.test/ws")


@pytest.fixture
def custom_config():
    """A minimal custom backend."""
    return _config(BackendType.CUSTOM, "custom-test", "http://custom.test")


@pytest.fixture
def make_response():
    """Build HttpResponse objects; dict and list bodies are JSON encoded."""

    def _make(status=200, body=None, headers=None, url="http://backend.test/", reason=""):
        if body is None:
            raw = b""
        elif isinstance(body, (dict, list)):
            raw = json.dumps(body).encode()
        elif isinstance(body, str):
            raw = body.encode()
        else:
            raw = body
        return HttpResponse(
            status=status,
            reason=reason,
            headers=CIMultiDict(headers or {}),
            body=raw,
            url=url,
        )

    return _make


@pytest.fixture
def transport(make_response):
    """Transport double; every request answers 200 with an empty JSON object."""
    mock = MagicMock(spec=HttpTransport)
    mock.request = AsyncMock(return_value=make_response(body={}))
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def catalog():
    """Built-in catalog isolated from the process environment."""
    return BackendCatalog(environ={})


@pytest.fixture
def storage(tmp_path):
    """Selection storage in a temporary directory."""
    return SelectionStorage(tmp_path / "tams-bridge")
