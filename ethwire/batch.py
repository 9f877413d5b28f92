"""A transport that collects calls and sends them to the node as one batch."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Generator

from .errors import InternalError, Web3Error
from .transport import BatchTransport, RequestId, Transport


class _SingleResult:
    """Awaitable result of one call that travels inside a batch."""

    __slots__ = ("_settled", "_value", "_error", "_waiter")

    def __init__(self) -> None:
        self._settled = False
        self._value: Any = None
        self._error: BaseException | None = None
        self._waiter: asyncio.Future | None = None

    @property
    def done(self) -> bool:
        return self._settled

    def _settle(self, value: Any = None, error: BaseException | None = None) -> None:
        if self._settled:
            return
        self._settled = True
        self._value = value
        self._error = error
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(None)

    def __await__(self) -> Generator[Any, None, Any]:
        if not self._settled:
            if self._waiter is None:
                self._waiter = asyncio.get_running_loop().create_future()
            yield from self._waiter.__await__()
        if self._error is not None:
            raise self._error
        return self._value


class Batch(Transport):
    """Queues calls made through it until ``submit_batch`` sends them together."""

    def __init__(self, transport: BatchTransport) -> None:
        if not isinstance(transport, BatchTransport):
            raise TypeError("Batch needs a transport that supports batch requests")
        self._transport = transport
        self._pending: dict[RequestId, _SingleResult] = {}
        self._batch: list[tuple[RequestId, dict]] = []

    @property
    def transport(self) -> BatchTransport:
        """The wrapped transport."""
        return self._transport

    @property
    def queued(self) -> int:
        """Number of calls waiting for the next submission."""
        return len(self._batch)

    def prepare(self, method: str, params: list[Any]) -> tuple[RequestId, dict]:
        return self._transport.prepare(method, params)

    def send(self, id: RequestId, request: dict) -> _SingleResult:
        result = _SingleResult()
        self._pending[id] = result
        self._batch.append((id, request))
        return result

    def submit_batch(self) -> Awaitable[list[Any]]:
        """Send every queued call as one batch.

        The batch is handed to the transport at once; the returned awaitable
        yields the per-call results and resolves each pending call.
        """
        batch, self._batch = self._batch, []
        ids = [request_id for request_id, _ in batch]
        outcome = self._transport.send_batch(batch)
        return self._deliver(ids, outcome)

    async def _deliver(self, ids: list[RequestId], outcome: Awaitable[list[Any]]) -> list[Any]:
        try:
            results = await outcome
        except Exception as exc:
            error = exc if isinstance(exc, Web3Error) else InternalError()
            for request_id in ids:
                pending = self._pending.pop(request_id, None)
                if pending is not None:
                    pending._settle(error=error)
            raise
        for index, request_id in enumerate(ids):
            pending = self._pending.pop(request_id, None)
            if pending is None:
                continue
            if index < len(results):
                item = results[index]
                if isinstance(item, Web3Error):
                    pending._settle(error=item)
                else:
                    pending._settle(value=item)
            else:
                pending._settle(error=InternalError())
        return results