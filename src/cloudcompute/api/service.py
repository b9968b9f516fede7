"""Compute service: endpoint, collections and resource construction."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from cloudcompute.api.binding import (
    ResourceBinding,
    decode_body,
    ensure_response,
    join_url,
    response_error,
)
from cloudcompute.api.client import ComputeClient
from cloudcompute.api.exceptions import InvalidArgument, UnknownError
from cloudcompute.api.models import Flavor, Image
from cloudcompute.api.resources.server import Server
from cloudcompute.config import CloudComputeConfig

logger = logging.getLogger(__name__)


class ComputeService:
    """A compute endpoint (e.g. ``https://compute.example.com/v2.1/<project>``)."""

    def __init__(self, client: ComputeClient, endpoint: str, region: str | None = None) -> None:
        if not endpoint:
            raise InvalidArgument("A compute endpoint is required")
        self._client = client
        self.endpoint = endpoint.rstrip("/")
        self.region = region or None

    @classmethod
    def from_config(cls, config: CloudComputeConfig) -> ComputeService:
        client = ComputeClient(
            config.service.token,
            timeout=config.client.timeout,
            user_agent=config.client.user_agent,
        )
        return cls(client, config.service.endpoint, config.service.region)

    @property
    def client(self) -> ComputeClient:
        return self._client

    def collection_url(self, collection: str) -> str:
        return join_url(self.endpoint, collection)

    def server(self, info: str | Mapping[str, Any] | None = None) -> Server:
        """Build a server from nothing, an id, or already fetched data."""
        if info is None:
            return Server.empty(self)
        if isinstance(info, str):
            return Server.from_id(self, info)
        if isinstance(info, Mapping):
            return Server.from_data(self, info)
        raise InvalidArgument(f"Cannot build a server from {type(info).__name__}")

    def servers(self, detail: bool = True, **filters: Any) -> list[Server]:
        """List servers; each element is built without further requests."""
        data = self._list(Server.collection, "servers", detail, filters)
        return [Server.from_data(self, s) for s in data]

    def flavors(self, detail: bool = True) -> list[Flavor]:
        return [Flavor(**f) for f in self._list("flavors", "flavors", detail)]

    def flavor(self, flavor_id: str) -> Flavor:
        return Flavor(**ResourceBinding(self, "flavors", "flavor").fetch(flavor_id))

    def images(self, detail: bool = True) -> list[Image]:
        return [Image(**i) for i in self._list("images", "images", detail)]

    def image(self, image_id: str) -> Image:
        return Image(**ResourceBinding(self, "images", "image").fetch(image_id))

    def _list(
        self,
        collection: str,
        key: str,
        detail: bool,
        filters: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        url = join_url(self.collection_url(collection), "detail" if detail else None)
        response = ensure_response(self._client.get(url, params=dict(filters) if filters else None))
        if response.status_code >= 300:
            raise response_error(UnknownError, f"Listing {collection}", response)
        items = decode_body(response, key, list)
        logger.debug("Listed %d %s", len(items), collection)
        return items

    def close(self) -> None:
        self._client.close()
