"""Shared plumbing for resources that live under a service collection.

A resource composes a :class:`ResourceBinding` rather than inheriting from a
common base: the binding knows the collection URL, can fetch a resource by id
and can POST payloads to the resource's ``action`` subresource.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

import httpx

from cloudcompute.api.exceptions import (
    ActionError,
    HttpError,
    NotFoundError,
    ResponseError,
    UnknownError,
    UrlError,
)

if TYPE_CHECKING:
    from cloudcompute.api.client import ComputeClient
    from cloudcompute.api.service import ComputeService

logger = logging.getLogger(__name__)

_SLASHES = re.compile(r"/{2,}")


def join_url(base: str, *parts: Any) -> str:
    """Join URL path segments without doubling up separators."""
    segments = [base.rstrip("/")]
    for part in parts:
        if part is None:
            continue
        part = _SLASHES.sub("/", str(part)).strip("/")
        if part:
            segments.append(part)
    return "/".join(segments)


def ensure_response(response: Any) -> httpx.Response:
    """Fail with HttpError unless the transport handed back a real response."""
    if not isinstance(response, httpx.Response):
        raise HttpError(f"Transport returned {type(response).__name__}, not a response")
    return response


def response_error(
    error_cls: type[ResponseError], action: str, response: httpx.Response
) -> ResponseError:
    """Build an error carrying the status and raw body of a failed response."""
    return error_cls(
        f"{action} failed [{response.status_code}]: {response.text}",
        status_code=response.status_code,
        body=response.text,
    )


def decode_body(
    response: httpx.Response, key: str | None = None, kind: type | None = None
) -> Any:
    """Parse a JSON body, optionally returning the value under ``key``.

    Raises UnknownError for an empty or unparseable body, a missing key, or a
    value that is not an instance of ``kind``.
    """
    if not response.content:
        raise UnknownError(
            f"Empty response body [{response.status_code}]",
            status_code=response.status_code,
        )
    try:
        data = response.json()
    except ValueError:
        raise UnknownError(
            f"Unparseable response body [{response.status_code}]: {response.text}",
            status_code=response.status_code,
            body=response.text,
        ) from None
    if key is None:
        return data
    if not isinstance(data, dict) or key not in data:
        raise UnknownError(
            f"Response has no {key!r} object [{response.status_code}]: {response.text}",
            status_code=response.status_code,
            body=response.text,
        )
    value = data[key]
    if kind is not None and not isinstance(value, kind):
        raise UnknownError(
            f"Response {key!r} is not a {kind.__name__} [{response.status_code}]: {response.text}",
            status_code=response.status_code,
            body=response.text,
        )
    return value


class ResourceBinding:
    """Addresses one kind of resource (e.g. servers) within a service."""

    def __init__(self, service: ComputeService, collection: str, resource_key: str) -> None:
        self._service = service
        self.collection = collection
        self.resource_key = resource_key

    @property
    def service(self) -> ComputeService:
        return self._service

    @property
    def client(self) -> ComputeClient:
        return self._service.client

    def collection_url(self) -> str:
        return self._service.collection_url(self.collection)

    def url(self, resource_id: str | None, subresource: str | None = None) -> str:
        if not resource_id:
            raise UrlError(f"Cannot build a URL for a {self.resource_key} without an id")
        return join_url(self.collection_url(), resource_id, subresource)

    def fetch(self, resource_id: str) -> dict[str, Any]:
        """GET a single resource and return the object under the resource key."""
        response = ensure_response(self.client.get(self.url(resource_id)))
        if response.status_code == 404:
            raise response_error(NotFoundError, f"Fetching {self.resource_key} {resource_id}", response)
        if response.status_code >= 300:
            raise response_error(UnknownError, f"Fetching {self.resource_key} {resource_id}", response)
        return decode_body(response, self.resource_key, dict)

    def action(self, resource_id: str | None, payload: Any) -> bool:
        """POST ``payload`` to the action subresource; True on success."""
        url = self.url(resource_id, "action")
        response = ensure_response(self.client.post(url, json=payload))
        if response.status_code >= 300:
            raise response_error(ActionError, f"Action on {self.resource_key} {resource_id}", response)
        logger.info("Action %s accepted for %s %s", _action_name(payload), self.resource_key, resource_id)
        return True


def _action_name(payload: Any) -> str:
    if isinstance(payload, dict) and len(payload) == 1:
        return next(iter(payload))
    return "<custom>"
