"""The server (compute instance) resource.

A :class:`Server` holds the last known state of one remote instance and maps
its lifecycle operations onto the compute API. Nothing here polls or retries;
each call issues its request(s) and reports what the service said.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

import httpx
from pydantic import BaseModel, Field, PrivateAttr, ValidationError, field_validator

from cloudcompute.api.binding import (
    ResourceBinding,
    decode_body,
    ensure_response,
    response_error,
)
from cloudcompute.api.exceptions import (
    CreateError,
    DeleteError,
    ImageError,
    InvalidArgument,
    IpsError,
    UnknownError,
    UpdateError,
    UrlError,
)
from cloudcompute.api.models import Flavor, Image, IPAddress, Link, _ComputeModel
from cloudcompute.api.resources.metadata import ServerMetadata, flatten_metadata

if TYPE_CHECKING:
    from cloudcompute.api.client import ComputeClient
    from cloudcompute.api.service import ComputeService

logger = logging.getLogger(__name__)

#: Metadata key stamped on every server created through this client
CLIENT_TAG_KEY = "sdk"

REBOOT_TYPES = ("soft", "hard")


class ServerField(str, Enum):
    """Server fields a caller may set, by their wire name."""

    NAME = "name"
    IMAGE = "image"
    FLAVOR = "flavor"
    ACCESS_IPV4 = "accessIPv4"
    ACCESS_IPV6 = "accessIPv6"
    KEY_NAME = "key_name"
    METADATA = "metadata"


_ATTRIBUTES = {
    ServerField.NAME: "name",
    ServerField.IMAGE: "image",
    ServerField.FLAVOR: "flavor",
    ServerField.ACCESS_IPV4: "access_ipv4",
    ServerField.ACCESS_IPV6: "access_ipv6",
    ServerField.KEY_NAME: "key_name",
}

UPDATABLE_FIELDS = frozenset({ServerField.NAME, ServerField.ACCESS_IPV4, ServerField.ACCESS_IPV6})

# Optional create fields, sent only when set
_OPTIONAL_CREATE_FIELDS = (ServerField.ACCESS_IPV4, ServerField.ACCESS_IPV6, ServerField.KEY_NAME)


def _coerce_field(key: ServerField | str) -> ServerField:
    try:
        return ServerField(key)
    except ValueError:
        raise InvalidArgument(f"Unknown server field: {key!r}") from None


def _coerce_linked(model: type[Image] | type[Flavor], value: Any) -> Any:
    """Accept a model, a dict of its fields, or a bare URL."""
    if value is None or isinstance(value, model):
        return value
    if isinstance(value, str):
        return model(id=value, links=[Link(href=value)])
    return model.model_validate(value)


class Server(_ComputeModel):
    """One compute instance.

    Build with :meth:`empty`, :meth:`from_data` or :meth:`from_id` (or
    ``ComputeService.server``) so that the server is bound to a service.
    Fields the model does not declare are kept as extra attributes.
    """

    collection: ClassVar[str] = "servers"
    resource_key: ClassVar[str] = "server"

    id: str | None = None
    name: str | None = None
    status: str | None = None
    progress: int | None = None
    image: Image | None = None
    flavor: Flavor | None = None
    addresses: dict[str, list[IPAddress]] = Field(default_factory=dict)
    access_ipv4: str | None = Field(alias="accessIPv4", default=None)
    access_ipv6: str | None = Field(alias="accessIPv6", default=None)
    admin_pass: str | None = Field(alias="adminPass", default=None, repr=False)
    host_id: str | None = Field(alias="hostId", default=None)
    tenant_id: str | None = None
    user_id: str | None = None
    key_name: str | None = None
    created: str | None = None
    updated: str | None = None
    links: list[Link] = Field(default_factory=list)
    fault: dict | None = None

    _binding: ResourceBinding | None = PrivateAttr(default=None)
    _metadata: ServerMetadata | None = PrivateAttr(default=None)
    _image_ref: str | None = PrivateAttr(default=None)
    _flavor_ref: str | None = PrivateAttr(default=None)

    @field_validator("image", "flavor", mode="before")
    @classmethod
    def _coerce_blank(cls, v):
        # Servers booted from a volume report image as ""
        return v or None

    @field_validator("addresses", mode="before")
    @classmethod
    def _coerce_addresses(cls, v):
        return v if v is not None else {}

    @field_validator("links", mode="before")
    @classmethod
    def _coerce_links(cls, v):
        return v if v is not None else []

    # -- construction -----------------------------------------------------

    @classmethod
    def empty(cls, service: ComputeService) -> Server:
        """A blank server, ready for :meth:`create`."""
        server = cls()
        server._attach(service)
        return server

    @classmethod
    def from_data(cls, service: ComputeService, data: Mapping[str, Any]) -> Server:
        """A server built from already fetched data. No request is made."""
        data = dict(data)
        metadata = data.pop("metadata", None)
        server = cls.model_validate(data)
        server._attach(service)
        server.metadata.replace(metadata)
        return server

    @classmethod
    def from_id(cls, service: ComputeService, server_id: str) -> Server:
        """Fetch a server by id.

        Raises NotFoundError on 404 and UnknownError on any other failure.
        """
        server = cls.empty(service)
        server._absorb(server.binding.fetch(server_id))
        return server

    def _attach(self, service: ComputeService) -> None:
        self._binding = ResourceBinding(service, self.collection, self.resource_key)
        self._metadata = ServerMetadata(self)

    def _absorb(self, data: Mapping[str, Any]) -> None:
        """Copy every field of a server object returned by the API onto self."""
        if not isinstance(data, Mapping):
            raise UnknownError(f"Malformed server object: {data!r}")
        data = dict(data)
        metadata = data.pop("metadata", None)
        try:
            record = type(self).model_validate(data)
        except ValidationError as exc:
            raise UnknownError(f"Malformed server object: {exc}") from exc
        for name in record.model_fields_set:
            setattr(self, name, getattr(record, name))
        for name, value in (record.model_extra or {}).items():
            setattr(self, name, value)
        if metadata is not None:
            self.metadata.replace(metadata)

    # -- plumbing ---------------------------------------------------------

    @property
    def binding(self) -> ResourceBinding:
        if self._binding is None:
            raise UrlError("Server is not attached to a compute service")
        return self._binding

    @property
    def client(self) -> ComputeClient:
        return self.binding.client

    @property
    def metadata(self) -> ServerMetadata:
        if self._metadata is None:
            self._metadata = ServerMetadata(self)
        return self._metadata

    @property
    def image_ref(self) -> str | None:
        return self._image_ref

    @property
    def flavor_ref(self) -> str | None:
        return self._flavor_ref

    def url(self, subresource: str | None = None) -> str:
        """The URL of this server, or of one of its subresources."""
        return self.binding.url(self.id, subresource)

    def action(self, payload: Any) -> bool:
        return self.binding.action(self.id, payload)

    def get_metadata(self, key: str | None = None) -> ServerMetadata:
        """Return the metadata handle, optionally scoped to a single key."""
        if key is None:
            return self.metadata
        return self.metadata.scoped(key)

    def primary_address(self, ip_version: int) -> str | None:
        if ip_version == 4:
            return self.access_ipv4
        if ip_version == 6:
            return self.access_ipv6
        raise InvalidArgument(f"Invalid IP version: {ip_version!r}")

    # -- field updates ----------------------------------------------------

    def set(self, field: ServerField | str, value: Any) -> None:
        field = _coerce_field(field)
        if field is ServerField.METADATA:
            self.metadata.update(flatten_metadata(value))
        elif field is ServerField.IMAGE:
            self.image = _coerce_linked(Image, value)
        elif field is ServerField.FLAVOR:
            self.flavor = _coerce_linked(Flavor, value)
        else:
            setattr(self, _ATTRIBUTES[field], value)

    def apply(self, params: Mapping[ServerField | str, Any] | None) -> None:
        for key, value in (params or {}).items():
            self.set(key, value)

    def _wire_value(self, field: ServerField) -> Any:
        if field is ServerField.METADATA:
            return self.metadata.to_dict()
        value = getattr(self, _ATTRIBUTES[field])
        if isinstance(value, BaseModel):
            return value.model_dump(by_alias=True, exclude_none=True)
        return value

    def create_json(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "name": self.name,
            "imageRef": self._image_ref,
            "flavorRef": self._flavor_ref,
            "metadata": self.metadata.to_dict(),
        }
        for field in _OPTIONAL_CREATE_FIELDS:
            value = self._wire_value(field)
            if value:
                body[field.value] = value
        return {self.resource_key: body}

    def update_json(self, fields: list[ServerField]) -> dict[str, Any]:
        """Payload for the given fields, valued from the current state."""
        return {self.resource_key: {f.value: self._wire_value(f) for f in fields}}

    # -- lifecycle --------------------------------------------------------

    def create(self, params: Mapping[ServerField | str, Any] | None = None) -> None:
        """Create this server remotely and absorb the service's answer.

        The one-time ``admin_pass`` is only available after this call.
        """
        self.apply(params)
        self.id = None
        self.status = None
        self.metadata[CLIENT_TAG_KEY] = self.client.user_agent
        if self.image is None:
            raise InvalidArgument("An image is required to create a server")
        if self.flavor is None:
            raise InvalidArgument("A flavor is required to create a server")
        self._image_ref = self.image.url()
        self._flavor_ref = self.flavor.url()

        response = ensure_response(
            self.client.post(self.binding.collection_url(), json=self.create_json())
        )
        if response.status_code >= 300:
            raise response_error(CreateError, f"Creating server {self.name!r}", response)
        self._absorb(decode_body(response, self.resource_key, dict))
        logger.info("Created server %s (%s)", self.id, self.name)

    def refresh(self) -> None:
        """Re-read this server from the service."""
        self._absorb(self.binding.fetch(self.id))

    def update(self, params: Mapping[ServerField | str, Any]) -> None:
        fields = [_coerce_field(key) for key in params]
        for field in fields:
            if field not in UPDATABLE_FIELDS:
                raise InvalidArgument(f"Server field {field.value!r} cannot be updated")
        url = self.url()
        self.apply(params)

        response = ensure_response(self.client.put(url, json=self.update_json(fields)))
        if response.status_code >= 300:
            raise response_error(UpdateError, f"Updating server {self.id}", response)
        self._absorb_optional(response)
        logger.info("Updated server %s (%s)", self.id, ", ".join(f.value for f in fields))

    def _absorb_optional(self, response: httpx.Response) -> None:
        # Some deployments answer an update with an empty body
        try:
            data = response.json() if response.content else None
        except ValueError:
            return
        if isinstance(data, dict) and isinstance(data.get(self.resource_key), dict):
            self._absorb(data[self.resource_key])

    def delete(self) -> None:
        """Delete this server remotely. Local state is left untouched."""
        response = ensure_response(self.client.delete(self.url()))
        if response.status_code >= 300:
            raise response_error(DeleteError, f"Deleting server {self.id}", response)
        logger.info("Deleted server %s", self.id)

    # -- actions ----------------------------------------------------------

    def reboot(self, reboot_type: str = "soft") -> bool:
        if not isinstance(reboot_type, str) or reboot_type.lower() not in REBOOT_TYPES:
            raise InvalidArgument(f"Reboot type must be one of {REBOOT_TYPES}, not {reboot_type!r}")
        return self.action({"reboot": {"type": reboot_type.upper()}})

    def create_image(self, name: str, metadata: Mapping[Any, Any] | None = None) -> bool:
        """Snapshot this server into a new image called ``name``."""
        if not name:
            raise ImageError("An image name is required")
        return self.action(
            {"createImage": {"name": name, "metadata": flatten_metadata(metadata)}}
        )

    def resize(self, flavor: Flavor | Mapping[str, Any] | str) -> bool:
        flavor = _coerce_linked(Flavor, flavor)
        return self.action({"resize": {"flavorRef": flavor.url()}})

    def resize_confirm(self) -> bool:
        """Confirm a resize, then reload the server's post-resize attributes."""
        result = self.action({"confirmResize": None})
        self.refresh()
        return result

    def resize_revert(self) -> bool:
        return self.action({"revertResize": None})

    def set_password(self, new_password: str) -> bool:
        return self.action({"changePassword": {"adminPass": new_password}})

    def rebuild(
        self,
        image: Image | Mapping[str, Any] | str,
        name: str | None = None,
        admin_pass: str | None = None,
    ) -> bool:
        image = _coerce_linked(Image, image)
        body: dict[str, Any] = {"imageRef": image.url()}
        if name:
            body["name"] = name
        if admin_pass:
            body["adminPass"] = admin_pass
        return self.action({"rebuild": body})

    def rescue(self) -> bool:
        return self.action({"rescue": None})

    def unrescue(self) -> bool:
        return self.action({"unrescue": None})

    def start(self) -> bool:
        return self.action({"os-start": None})

    def stop(self) -> bool:
        return self.action({"os-stop": None})

    # -- addresses --------------------------------------------------------

    def list_addresses(self, network: str | None = None) -> Any:
        """Return the server's IP addresses, optionally for one network.

        The body is keyed ``addresses`` for the whole server and by network
        otherwise; an empty dict is returned when neither is present.
        """
        subresource = f"ips/{network}" if network else "ips"
        response = ensure_response(self.client.get(self.url(subresource)))
        if response.status_code >= 300:
            raise response_error(IpsError, f"Listing addresses of server {self.id}", response)
        data = decode_body(response) if response.content else {}
        if not isinstance(data, dict):
            return {}
        if "addresses" in data:
            return data["addresses"]
        if "network" in data:
            return data["network"]
        if network and network in data:
            return data[network]
        return {}
