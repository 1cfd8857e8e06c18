"""
Generic REST proxy gateway.

``RestProxy`` performs one upstream round trip and normalizes the outcome:
a parsed JSON body on success, ``UpstreamError`` for a non-2xx reply and
``TransportError`` when the network or the JSON decoding fails. There is no
retry; the only timeout is the client default.

``AirtableGateway`` layers the tabular-data API's conventions on top: bearer
credentials, the two path dialects and the descriptor preconditions.
"""

import json
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Mapping, Optional

import httpx

from socialsync.config import AirtableConfig
from socialsync.errors import ConfigurationError, InvalidRequestError, TransportError, UpstreamError
from socialsync.logging import get_logger
from socialsync.models.gateway import RequestDescriptor, UpstreamResponse
from socialsync.paths import build_upstream_url, resolve_path

logger = get_logger("socialsync.gateway")

BODY_METHODS = {"POST", "PATCH", "PUT"}

HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "host",
    "content-length",
}


class RestProxy:
    """JSON-over-HTTP client for one upstream service."""

    def __init__(
        self,
        upstream: str,
        base_url: str,
        default_headers: Optional[Mapping[str, str]] = None,
        timeout: float = 30.0,
    ):
        self.upstream = upstream
        self.base_url = base_url.rstrip("/")
        self.default_headers = dict(default_headers or {})
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    @asynccontextmanager
    async def session(self) -> AsyncIterator["RestProxy"]:
        """Share one connection pool across the calls made inside the block."""
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            self._client = client
            try:
                yield self
            finally:
                self._client = None

    def build_url(self, path: str) -> str:
        return build_upstream_url(self.base_url, path)

    def build_headers(self, headers: Optional[Mapping[str, str]] = None) -> httpx.Headers:
        """Merge caller headers over the defaults; the caller wins on collision."""
        merged = httpx.Headers(self.default_headers)
        for key, value in (headers or {}).items():
            if key.lower() in HOP_BY_HOP_HEADERS:
                continue
            merged[key] = value
        return merged

    async def send(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> UpstreamResponse:
        """Perform one upstream call and return its parsed reply."""
        method = method.upper()
        url = self.build_url(path)
        request_headers = self.build_headers(headers)

        content = None
        if files is None and method in BODY_METHODS and body is not None:
            content = json.dumps(body).encode("utf-8")
            request_headers.setdefault("content-type", "application/json")

        logger.log_upstream_request(self.upstream, method, url)
        start_time = time.time()

        try:
            if self._client is not None:
                response = await self._request(
                    self._client, method, url, request_headers, content, params, files, data
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._request(
                        client, method, url, request_headers, content, params, files, data
                    )
        except httpx.HTTPError as e:
            logger.log_upstream_error(self.upstream, url, e)
            raise TransportError(str(e) or type(e).__name__) from e

        duration_ms = (time.time() - start_time) * 1000
        logger.log_upstream_response(self.upstream, url, response.status_code, duration_ms)

        return self._parse_response(url, response)

    async def _request(self, client, method, url, headers, content, params, files, data):
        return await client.request(
            method=method,
            url=url,
            headers=headers,
            content=content,
            params=params,
            files=files,
            data=data,
            follow_redirects=False,
        )

    def _parse_response(self, url: str, response: httpx.Response) -> UpstreamResponse:
        parsed = None
        parse_error = None
        if response.content:
            try:
                parsed = response.json()
            except ValueError as e:
                parse_error = e

        if not response.is_success:
            raw_body = response.text if parse_error else json.dumps(parsed)
            error = UpstreamError(
                self.upstream, response.status_code, response.reason_phrase, raw_body
            )
            logger.log_upstream_error(
                self.upstream, url, error, status_code=response.status_code
            )
            raise error

        if parse_error is not None:
            logger.log_upstream_error(self.upstream, url, parse_error)
            raise TransportError(f"Invalid JSON in {self.upstream} response: {parse_error}")

        return UpstreamResponse(status_code=response.status_code, body=parsed)


class AirtableGateway(RestProxy):
    """Forward abstract request descriptors to the tabular-data API."""

    def __init__(self, config: AirtableConfig):
        credentials = config.credentials()
        default_headers = {"Content-Type": "application/json"}
        if credentials is not None:
            default_headers["Authorization"] = f"Bearer {credentials.token}"
        super().__init__(
            "Airtable",
            config.api_url,
            default_headers=default_headers,
            timeout=config.request_timeout_seconds,
        )
        self.config = config

    def _require_credentials(self):
        credentials = self.config.credentials()
        if credentials is None:
            required = (
                ("AIRTABLE_PAT", self.config.token),
                ("AIRTABLE_BASE_ID", self.config.base_id),
            )
            missing = [name for name, value in required if not value]
            raise ConfigurationError(
                f"Airtable credentials not configured on server. Missing: {', '.join(missing)}"
            )
        return credentials

    async def dispatch(self, descriptor: RequestDescriptor) -> Any:
        """Execute one forwarded call; the upstream body is returned unmodified."""
        credentials = self._require_credentials()

        if not descriptor.path:
            raise InvalidRequestError("Missing path for Airtable request")

        resolved = resolve_path(descriptor.path, credentials.resource_id)

        response = await self.send(
            descriptor.method,
            resolved,
            body=descriptor.body,
            headers=descriptor.headers,
        )
        return response.body

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Shorthand for dispatching a descriptor built from arguments."""
        descriptor = RequestDescriptor(method=method, path=path, body=body, headers=headers or {})
        return await self.dispatch(descriptor)
