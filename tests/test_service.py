"""Tests for the compute service."""

from __future__ import annotations

import pytest

from cloudcompute.api.client import ComputeClient
from cloudcompute.api.exceptions import InvalidArgument, NotFoundError, UnknownError
from cloudcompute.api.resources.server import Server
from cloudcompute.api.service import ComputeService
from cloudcompute.config import ClientConfig, CloudComputeConfig, ServiceConfig

from conftest import ENDPOINT


class TestInit:
    def test_requires_endpoint(self, mock_client):
        with pytest.raises(InvalidArgument):
            ComputeService(mock_client, "")

    def test_strips_trailing_slash(self, mock_client):
        service = ComputeService(mock_client, ENDPOINT + "/")
        assert service.endpoint == ENDPOINT
        assert service.collection_url("/servers/") == f"{ENDPOINT}/servers"

    def test_from_config(self):
        config = CloudComputeConfig(
            service=ServiceConfig(endpoint=ENDPOINT, token="tok", region="RegionOne"),
            client=ClientConfig(timeout=5.0, user_agent="tests/1.0"),
        )
        service = ComputeService.from_config(config)
        assert isinstance(service.client, ComputeClient)
        assert service.client.token == "tok"
        assert service.client.user_agent == "tests/1.0"
        assert service.region == "RegionOne"


class TestServerFactory:
    def test_none_gives_empty(self, service, mock_client):
        server = service.server()
        assert isinstance(server, Server)
        assert server.id is None
        mock_client.get.assert_not_called()

    def test_mapping_gives_prefetched(self, service, mock_client, sample_server_data):
        server = service.server(sample_server_data)
        assert server.id == "42"
        mock_client.get.assert_not_called()

    def test_string_fetches(self, service, mock_client, make_response, sample_server_data):
        mock_client.get.return_value = make_response(200, {"server": sample_server_data})
        server = service.server("42")
        assert server.name == "web-1"
        mock_client.get.assert_called_once_with(f"{ENDPOINT}/servers/42")

    def test_other_types_rejected(self, service):
        with pytest.raises(InvalidArgument):
            service.server(42)


class TestListing:
    def test_servers_detail(self, service, mock_client, make_response, sample_server_data):
        mock_client.get.return_value = make_response(
            200, {"servers": [sample_server_data, {"id": "43", "name": "web-2"}]}
        )
        servers = service.servers(status="ACTIVE")
        mock_client.get.assert_called_once_with(
            f"{ENDPOINT}/servers/detail", params={"status": "ACTIVE"}
        )
        assert [s.id for s in servers] == ["42", "43"]
        assert servers[0].metadata["role"] == "web"
        assert servers[1].url() == f"{ENDPOINT}/servers/43"

    def test_servers_without_detail(self, service, mock_client, make_response):
        mock_client.get.return_value = make_response(200, {"servers": []})
        assert service.servers(detail=False) == []
        mock_client.get.assert_called_once_with(f"{ENDPOINT}/servers", params=None)

    def test_servers_failure(self, service, mock_client, make_response):
        mock_client.get.return_value = make_response(500, text="down")
        with pytest.raises(UnknownError):
            service.servers()

    @pytest.mark.parametrize("servers", [None, {"id": "42"}])
    def test_servers_not_a_list(self, service, mock_client, make_response, servers):
        mock_client.get.return_value = make_response(200, {"servers": servers})
        with pytest.raises(UnknownError):
            service.servers()

    def test_flavors(self, service, mock_client, make_response):
        mock_client.get.return_value = make_response(
            200, {"flavors": [{"id": "1", "name": "m1.tiny", "ram": 512, "vcpus": 1, "links": None}]}
        )
        flavors = service.flavors()
        assert flavors[0].ram == 512
        assert flavors[0].links == []

    def test_images(self, service, mock_client, make_response):
        mock_client.get.return_value = make_response(
            200, {"images": [{"id": "img-1", "name": "ubuntu", "minDisk": 10, "links": [{"href": "I1"}]}]}
        )
        images = service.images()
        assert images[0].min_disk == 10
        assert images[0].url() == "I1"

    def test_flavor_by_id(self, service, mock_client, make_response):
        mock_client.get.return_value = make_response(
            200, {"flavor": {"id": "2", "name": "m1.small", "links": [{"href": "F2"}]}}
        )
        assert service.flavor("2").url() == "F2"
        mock_client.get.assert_called_once_with(f"{ENDPOINT}/flavors/2")

    def test_image_not_found(self, service, mock_client, make_response):
        mock_client.get.return_value = make_response(404, text="no image")
        with pytest.raises(NotFoundError):
            service.image("missing")
