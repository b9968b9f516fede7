"""Key/value metadata attached to a server."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, MutableMapping
from typing import TYPE_CHECKING, Any

from cloudcompute.api.binding import decode_body, ensure_response, response_error
from cloudcompute.api.exceptions import InvalidArgument, MetadataError

if TYPE_CHECKING:
    from cloudcompute.api.resources.server import Server

logger = logging.getLogger(__name__)


def flatten_metadata(values: Mapping[Any, Any] | None) -> dict[str, str]:
    """Coerce a mapping into the string-to-string form the API accepts."""
    if not values:
        return {}
    return {str(k): "" if v is None else str(v) for k, v in values.items()}


class ServerMetadata(MutableMapping[str, str]):
    """Metadata owned by a server.

    Building a handle never touches the network; call :meth:`fetch`,
    :meth:`save` or :meth:`delete` explicitly. A handle scoped to a ``key``
    shares its values with the server's metadata but only reads and writes
    that single item remotely.
    """

    def __init__(
        self,
        server: Server,
        key: str | None = None,
        values: dict[str, str] | None = None,
    ) -> None:
        self._server = server
        self.key = key
        self._values: dict[str, str] = values if values is not None else {}

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self._values[str(name)] = "" if value is None else str(value)

    def __delitem__(self, name: str) -> None:
        del self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        scope = f" key={self.key!r}" if self.key else ""
        return f"<ServerMetadata{scope} {self._values!r}>"

    def to_dict(self) -> dict[str, str]:
        return dict(self._values)

    def replace(self, values: Mapping[Any, Any] | None) -> None:
        self._values.clear()
        self._values.update(flatten_metadata(values))

    def scoped(self, key: str) -> ServerMetadata:
        """Return a handle for one key, sharing these values."""
        return ServerMetadata(self._server, key, self._values)

    def url(self) -> str:
        if self.key:
            return self._server.url(f"metadata/{self.key}")
        return self._server.url("metadata")

    def fetch(self) -> ServerMetadata:
        response = ensure_response(self._server.client.get(self.url()))
        if response.status_code >= 300:
            raise response_error(MetadataError, "Fetching metadata", response)
        if self.key:
            self._values.update(flatten_metadata(decode_body(response, "meta")))
        else:
            self.replace(decode_body(response, "metadata"))
        return self

    def save(self) -> None:
        if self.key:
            if self.key not in self._values:
                raise InvalidArgument(f"No metadata value set for {self.key!r}")
            payload = {"meta": {self.key: self._values[self.key]}}
        else:
            payload = {"metadata": self.to_dict()}
        response = ensure_response(self._server.client.put(self.url(), json=payload))
        if response.status_code >= 300:
            raise response_error(MetadataError, "Saving metadata", response)
        logger.info("Saved metadata for server %s", self._server.id)

    def delete(self) -> None:
        if not self.key:
            raise InvalidArgument("Only a single metadata key can be deleted")
        response = ensure_response(self._server.client.delete(self.url()))
        if response.status_code >= 300:
            raise response_error(MetadataError, f"Deleting metadata {self.key!r}", response)
        self._values.pop(self.key, None)
