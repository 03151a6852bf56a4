# src/logdna_shipper/transport.py
"""HTTP transport to the ingestion endpoint.

Wraps an httpx.Client configured with the logger's credentials and timeout.
The transport knows how to address a POST (query parameters, headers) but
nothing about batching: it accepts an already-serialized body.
"""

from __future__ import annotations

import base64
from collections.abc import Mapping
from typing import TYPE_CHECKING

import httpx

from logdna_shipper.clock import DEFAULT_CLOCK, Clock
from logdna_shipper.defaults import CONTENT_TYPE, DEFAULT_REQUEST_TIMEOUT_MS, LOGDNA_URL

if TYPE_CHECKING:
    from logdna_shipper.records import Source


def basic_credential(ingestion_key: str) -> str:
    """Return the Authorization header value for an ingestion key.

    The credential is the base64 of the bare key (no ``user:`` pair).
    """
    encoded = base64.b64encode(ingestion_key.encode("utf-8")).decode("ascii")
    return f"Basic {encoded}"


def build_headers(ingestion_key: str) -> dict[str, str]:
    from logdna_shipper import __version__

    return {
        "Authorization": basic_credential(ingestion_key),
        "Content-Type": CONTENT_TYPE,
        "User-Agent": f"logdna-shipper/{__version__}",
    }


class IngestTransport:
    """Sends serialized batches to the ingestion endpoint.

    httpx.Client is thread-safe, so one transport serves every flush of its
    logger, including flushes running concurrently on the worker pool.

    Example:
        transport = IngestTransport("key", source=Source(hostname="web-1"))
        response = transport.post(b'{"e":"ls","ls":[]}')
    """

    def __init__(
        self,
        ingestion_key: str,
        *,
        source: Source,
        url: str = LOGDNA_URL,
        timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS,
        mac: str | None = None,
        ip: str | None = None,
        query_params: Mapping[str, str] | None = None,
        with_credentials: bool = False,
        clock: Clock = DEFAULT_CLOCK,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            ingestion_key: Account credential, sent as Basic auth
            source: Hostname and tags are sent as query parameters
            url: Ingestion endpoint
            timeout_ms: Request timeout in milliseconds
            mac: Optional MAC address query parameter
            ip: Optional IP address query parameter
            query_params: Extra endpoint-specific query parameters
            with_credentials: Recorded for parity with browser clients; httpx
                always sends the configured Authorization header
            clock: Source of the ``now`` query parameter
            client: Pre-built httpx.Client (tests); one is created otherwise
        """
        self._url = url
        self._timeout_ms = timeout_ms
        self._clock = clock
        self._with_credentials = with_credentials
        self._base_params: dict[str, str] = {
            key: value
            for key, value in (
                ("hostname", source.hostname),
                ("mac", mac),
                ("ip", ip),
                ("tags", source.tags),
            )
            if value
        }
        self._extra_params = dict(query_params or {})
        self._headers = build_headers(ingestion_key)
        self._client = client if client is not None else httpx.Client(timeout=timeout_ms / 1000)
        self._closed = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    @property
    def with_credentials(self) -> bool:
        return self._with_credentials

    def query_params(self) -> dict[str, str]:
        """Query parameters for the next request, stamped with the current time."""
        params = dict(self._base_params)
        params["now"] = str(self._clock.now_ms())
        params.update(self._extra_params)
        return params

    def post(self, body: bytes) -> httpx.Response:
        """POST a serialized batch.

        Raises:
            httpx.HTTPError: On connection, timeout or protocol failures.
                HTTP error statuses are returned, not raised.
        """
        return self._client.post(
            self._url,
            params=self.query_params(),
            content=body,
            headers=self._headers,
            timeout=self._timeout_ms / 1000,
        )

    def close(self) -> None:
        """Close the underlying client. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._client.close()
