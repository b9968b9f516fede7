"""Shared test fixtures for cloudcompute."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest

from cloudcompute.api.client import ComputeClient
from cloudcompute.api.resources.server import Server
from cloudcompute.api.service import ComputeService

ENDPOINT = "https://compute.example.com/v2.1/tenant-1"


def _make_response(status_code, json_data=None, text=""):
    if json_data is not None:
        return httpx.Response(status_code, json=json_data)
    return httpx.Response(status_code, text=text)


@pytest.fixture
def make_response():
    """Build real httpx responses for the mocked transport to return."""
    return _make_response


@pytest.fixture
def mock_client():
    """A ComputeClient with mocked HTTP methods."""
    client = ComputeClient("test-token")
    client.get = MagicMock(return_value=_make_response(200, {}))
    client.post = MagicMock(return_value=_make_response(202))
    client.put = MagicMock(return_value=_make_response(200))
    client.delete = MagicMock(return_value=_make_response(204))
    return client


@pytest.fixture
def service(mock_client):
    return ComputeService(mock_client, ENDPOINT)


@pytest.fixture
def sample_server_data():
    """Raw server object as returned under the "server" key."""
    return {
        "id": "42",
        "name": "web-1",
        "status": "ACTIVE",
        "progress": 100,
        "hostId": "e4d909c290d0fb1ca068ffaddf22cbd0",
        "tenant_id": "tenant-1",
        "user_id": "user-1",
        "key_name": "deploy",
        "accessIPv4": "203.0.113.10",
        "accessIPv6": "2001:db8::10",
        "created": "2026-01-02T03:04:05Z",
        "updated": "2026-01-02T03:09:00Z",
        "image": {
            "id": "img-1",
            "links": [{"href": "https://compute.example.com/images/img-1", "rel": "bookmark"}],
        },
        "flavor": {
            "id": "m1.small",
            "links": [{"href": "https://compute.example.com/flavors/m1.small", "rel": "bookmark"}],
        },
        "addresses": {
            "private": [
                {"addr": "10.0.0.5", "version": 4},
                {"addr": "fd00::5", "version": 6},
            ],
        },
        "metadata": {"role": "web"},
        "links": [{"href": f"{ENDPOINT}/servers/42", "rel": "self"}],
        "OS-EXT-STS:task_state": None,
    }


@pytest.fixture
def sample_server(service, sample_server_data):
    return Server.from_data(service, sample_server_data)


@pytest.fixture
def image_ref():
    return {"id": "img-2", "links": [{"href": "I1"}]}


@pytest.fixture
def flavor_ref():
    return {"id": "m1.large", "links": [{"href": "F1"}]}
