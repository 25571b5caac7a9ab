"""
HTTP dispatch sink backed by a pooled ``httpx.AsyncClient``.

Each call to ``send`` issues one POST of ``{"logs": batch}`` to the
configured endpoint. Connection pooling, TLS and connect retries belong to
httpx; the sink itself never retries and never raises.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

import httpx
import orjson

from ..core import diagnostics
from ..core.errors import TransportError
from ..core.results import Failure, FlushResult, Success
from ..core.settings import LogserverSettings

__all__ = ["HttpDispatchSink"]


class HttpDispatchSink:
    """Send detached batches to the log server."""

    name = "logserver-http"

    def __init__(
        self,
        settings: LogserverSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = settings.api_log_endpoint
        self._headers = {
            "x-api-key": settings.api_key.get_secret_value(),
            "content-type": "application/json",
        }
        if transport is None:
            transport = httpx.AsyncHTTPTransport(retries=settings.connect_retries)
        self._client = httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )
        self._last_status: int | None = None
        self._last_error: str | None = None

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send(self, batch: Sequence[Mapping[str, Any]]) -> FlushResult:
        try:
            payload = orjson.dumps({"logs": list(batch)})
        except TypeError as exc:
            return self._fail(TransportError("batch is not JSON serializable", cause=exc))

        try:
            response = await self._client.post(
                self._endpoint, content=payload, headers=self._headers
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return self._fail(TransportError(str(exc) or type(exc).__name__, cause=exc))

        self._last_status = response.status_code
        if response.is_error:
            return self._fail(
                TransportError(
                    f"Request failed with status code {response.status_code}",
                    status_code=response.status_code,
                )
            )
        try:
            body = orjson.loads(response.content)
        except orjson.JSONDecodeError as exc:
            return self._fail(
                TransportError(
                    "log server returned a non-JSON response",
                    status_code=response.status_code,
                    cause=exc,
                )
            )

        self._last_error = None
        diagnostics.debug(
            "http-sink",
            "batch delivered",
            endpoint=self._endpoint,
            records=len(batch),
            status_code=response.status_code,
        )
        return Success(body)

    def _fail(self, error: TransportError) -> Failure:
        self._last_error = error.message
        if error.status_code is None:
            self._last_status = None
        return Failure(error)

    async def health_check(self) -> bool:
        return (
            self._last_error is None
            and self._last_status is not None
            and self._last_status < 400
        )
