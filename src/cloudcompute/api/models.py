"""Pydantic models for compute API responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cloudcompute.api.exceptions import InvalidArgument


class _ComputeModel(BaseModel):
    """Base model that keeps extra fields from the API.

    Fields can be populated by their python name or by their wire alias.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)


def _none_to_list(v: list | None) -> list:
    """Coerce None to empty list for API fields that may return null."""
    return v if v is not None else []


class Link(_ComputeModel):
    href: str
    rel: str | None = None
    type: str | None = None


class _LinkedModel(_ComputeModel):
    """A resource that can be referenced by the first of its links."""

    id: str | None = None
    name: str | None = None
    links: list[Link] = Field(default_factory=list)

    @field_validator("links", mode="before")
    @classmethod
    def _coerce_links(cls, v):
        return _none_to_list(v)

    def url(self) -> str:
        """Return the first link href, which the API accepts as a reference."""
        if not self.links:
            raise InvalidArgument(f"{type(self).__name__} {self.id or self.name!r} has no links")
        return self.links[0].href


class Image(_LinkedModel):
    status: str | None = None
    progress: int | None = None
    min_disk: int | None = Field(alias="minDisk", default=None)
    min_ram: int | None = Field(alias="minRam", default=None)
    metadata: dict = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def _coerce_metadata(cls, v):
        return v if v is not None else {}


class Flavor(_LinkedModel):
    ram: int | None = None
    disk: int | None = None
    vcpus: int | None = None


class IPAddress(_ComputeModel):
    addr: str
    version: int = 4
