# src/logdna_shipper/transmitter.py
"""Serialize drained batches and deliver them off the caller's thread.

Delivery is fire-and-forget with respect to the data: by the time a batch
reaches the transmitter it has already left the buffer, so a failed send
loses it. Failures are reported through FlushResult and a warning, never
raised into application code.
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import Executor, Future

import httpx
import structlog

from logdna_shipper.records import FlushResult, FlushResultKind, LogRecord
from logdna_shipper.serialization import safe_dumps
from logdna_shipper.transport import IngestTransport

logger = structlog.get_logger(__name__)

BATCH_EVENT = "ls"


def build_payload(batch: Sequence[LogRecord]) -> bytes:
    """Return the POST body ``{"e": "ls", "ls": [...]}`` as UTF-8 JSON.

    Unrepresentable values inside records (e.g. in indexed meta) are omitted.
    """
    return safe_dumps({"e": BATCH_EVENT, "ls": [record.to_wire() for record in batch]}).encode("utf-8")


def completed(result: FlushResult) -> Future[FlushResult]:
    """Return an already-resolved future."""
    future: Future[FlushResult] = Future()
    future.set_result(result)
    return future


class Transmitter:
    """Sends batches for one logger on a shared worker pool.

    Example:
        transmitter = Transmitter(transport, executor)
        future = transmitter.submit(buffer.drain())
        result = future.result()
    """

    def __init__(self, transport: IngestTransport, executor: Executor) -> None:
        self._transport = transport
        self._executor = executor

    @property
    def transport(self) -> IngestTransport:
        return self._transport

    def submit(self, batch: list[LogRecord]) -> Future[FlushResult]:
        """Schedule delivery of a drained batch.

        An empty batch resolves immediately with an EMPTY result.

        A batch the worker pool refuses (it has been shut down) resolves
        immediately with NOT_SUBMITTED; its records are lost.
        """
        if not batch:
            logger.debug("Nothing to flush")
            return completed(FlushResult.empty())
        try:
            return self._executor.submit(self.send, batch)
        except RuntimeError as e:
            logger.warning(
                "Worker pool is shut down, dropping batch",
                url=self._transport.url,
                lines=len(batch),
                error=str(e),
            )
            return completed(FlushResult(kind=FlushResultKind.NOT_SUBMITTED, line_count=len(batch), error=e))

    def send(self, batch: list[LogRecord]) -> FlushResult:
        """Deliver a batch synchronously and classify the outcome."""
        line_count = len(batch)
        body = build_payload(batch)

        try:
            response = self._transport.post(body)
        except httpx.HTTPError as e:
            logger.warning(
                "Encountered an error in POST request",
                url=self._transport.url,
                lines=line_count,
                error=str(e),
                error_type=type(e).__name__,
            )
            return FlushResult(kind=FlushResultKind.NETWORK_ERROR, line_count=line_count, error=e)

        if response.status_code >= 400:
            logger.warning(
                "Ingestion endpoint rejected batch",
                http_status=response.status_code,
                lines=line_count,
                body=response.text[:500],
            )
            return FlushResult(
                kind=FlushResultKind.HTTP_ERROR,
                line_count=line_count,
                http_status=response.status_code,
            )

        logger.debug(
            "API success",
            http_status=response.status_code,
            lines=line_count,
        )
        return FlushResult(kind=FlushResultKind.SENT, line_count=line_count, http_status=response.status_code)
