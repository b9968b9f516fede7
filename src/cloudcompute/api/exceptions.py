"""Custom exceptions for the compute API client."""

from __future__ import annotations


class ComputeError(Exception):
    """Base exception for compute API errors."""


class HttpError(ComputeError):
    """The transport failed or returned something that is not a response."""


class UrlError(ComputeError):
    """A URL was requested for a resource that has no id yet."""


class ImageError(ComputeError):
    """An image could not be requested (e.g. missing name)."""


class InvalidArgument(ComputeError, ValueError):
    """A caller-supplied argument is not acceptable."""


class ResponseError(ComputeError):
    """The service answered, but not with what was expected.

    Carries the HTTP status and raw body for diagnostics.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class NotFoundError(ResponseError):
    """404 - Resource not found."""


class UnknownError(ResponseError):
    """Unexpected status or an empty/unparseable body."""


class CreateError(ResponseError):
    """Creating a resource failed."""


class DeleteError(ResponseError):
    """Deleting a resource failed."""


class UpdateError(ResponseError):
    """Updating a resource failed."""


class IpsError(ResponseError):
    """Listing the addresses of a server failed."""


class ActionError(ResponseError):
    """A POST to the action subresource failed."""


class MetadataError(ResponseError):
    """Reading or writing server metadata failed."""
