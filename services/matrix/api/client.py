"""Matrix client-server API request wrapper (bearer-token authenticated)."""

from __future__ import annotations

import json as jsonlib
from typing import Any, Dict, Mapping, Optional, Union

import httpx

from runtime.version import user_agent
from services.matrix.api.errors import (
    MatrixApiError,
    MatrixCredentialsError,
    MatrixCredentialsInvalid,
)
from shared.config.matrix import DEFAULT_HTTP_TIMEOUT, MatrixCredentials
from shared.logging.logger import get_logger

log = get_logger("matrix.api")

Body = Union[Mapping[str, Any], bytes, str, None]


class MatrixApiClient:
    """
    Thin async wrapper around the Matrix client-server HTTP API.

    - One request per call, no retries.
    - URLs are built as <homeserver>/_matrix/<prefix>/r0<resource>.
    - Error responses are mapped onto the MatrixError hierarchy; anything
      else (transport failures, non-API error bodies) propagates as-is.
    """

    API_VERSION = "r0"
    DEFAULT_PREFIX = "client"
    JSON_CONTENT_TYPE = "application/json; charset=utf-8"

    def __init__(
        self,
        credentials: Optional[MatrixCredentials],
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.credentials = credentials
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> "MatrixApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def build_url(self, resource: str, override_prefix: Optional[str] = None) -> str:
        if not self.credentials or not self.credentials.access_token:
            raise MatrixCredentialsError()

        prefix = override_prefix or self.DEFAULT_PREFIX
        return (
            f"{self.credentials.homeserver_url}/_matrix/{prefix}/"
            f"{self.API_VERSION}{resource}"
        )

    async def request(
        self,
        method: str,
        resource: str,
        body: Body = None,
        query: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        *,
        override_prefix: Optional[str] = None,
        json: bool = True,
    ) -> Any:
        """
        Perform one round trip and return the decoded response.

        `headers` replaces the default JSON content type when given; the
        Authorization header is always injected. Empty bodies and queries
        are omitted, as are query keys whose value is None. `json=False`
        only changes how the body is sent; responses are always decoded JSON.
        """
        url = self.build_url(resource, override_prefix)

        request_headers: Dict[str, str] = (
            dict(headers)
            if headers is not None
            else {"Content-Type": self.JSON_CONTENT_TYPE}
        )
        request_headers["Authorization"] = f"Bearer {self.credentials.access_token}"
        request_headers.setdefault("User-Agent", user_agent())

        params = {k: v for k, v in (query or {}).items() if v is not None}

        kwargs: Dict[str, Any] = {"headers": request_headers}
        if params:
            kwargs["params"] = params
        if body:
            if json and not isinstance(body, (bytes, str)):
                kwargs["content"] = jsonlib.dumps(body).encode("utf-8")
            else:
                kwargs["content"] = body

        log.debug(f"{method} {url}")
        response = await self._client.request(method, url, **kwargs)

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            self._raise_for_error(e)

        # Media uploads are sent as raw bytes but still answer with JSON.
        if override_prefix == "media":
            try:
                return jsonlib.loads(response.text)
            except ValueError as e:
                raise MatrixApiError(
                    response.status_code,
                    f"media response is not valid JSON ({e})",
                ) from e

        if not response.content:
            return {}
        return response.json()

    # ------------------------------------------------------------------ #
    # Error mapping
    # ------------------------------------------------------------------ #

    @staticmethod
    def _raise_for_error(error: httpx.HTTPStatusError) -> None:
        response = error.response
        status = response.status_code

        if status == 401:
            log.warning("Homeserver rejected the access token (401)")
            raise MatrixCredentialsInvalid() from error

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and payload.get("error"):
            log.warning(
                f"Matrix API error [{status}] "
                f"errcode={payload.get('errcode')}: {payload['error']}"
            )
            raise MatrixApiError(
                status,
                payload["error"],
                errcode=payload.get("errcode"),
            ) from error

        raise error
