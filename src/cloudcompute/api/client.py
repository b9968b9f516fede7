"""Synchronous HTTP client for an OpenStack-style compute API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from cloudcompute.api.exceptions import HttpError

logger = logging.getLogger(__name__)

USER_AGENT = "cloudcompute/0.1.0"


class ComputeClient:
    """Blocking API client for a compute service.

    Uses a single long-lived httpx.Client to reuse TCP/TLS connections.
    The client is lazily initialized on first request. Responses are returned
    as-is: interpreting status codes is left to the resource that asked.
    """

    def __init__(
        self,
        token: str,
        *,
        timeout: float = 30.0,
        user_agent: str = USER_AGENT,
    ) -> None:
        self._token = token
        self._timeout = timeout
        self._user_agent = user_agent
        self._client: httpx.Client | None = None

    @property
    def token(self) -> str:
        return self._token

    @property
    def user_agent(self) -> str:
        return self._user_agent

    def _get_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={
                    "X-Auth-Token": self._token,
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                    "User-Agent": self._user_agent,
                },
                timeout=httpx.Timeout(self._timeout, connect=10.0),
            )
        return self._client

    def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        client = self._get_client()
        logger.debug("%s %s", method, url)
        try:
            response = client.request(method, url, json=json, params=params)
        except httpx.HTTPError as exc:
            raise HttpError(f"{method} {url} failed: {exc}") from exc
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return response

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("PUT", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("DELETE", url, **kwargs)

    def close(self) -> None:
        if self._client and not self._client.is_closed:
            self._client.close()

    def __enter__(self) -> ComputeClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
