"""Abstract transports that carry JSON-RPC calls to a node."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Awaitable, Iterable

RequestId = int
SubscriptionId = str


class Transport(ABC):
    """Prepares and sends JSON-RPC calls.

    ``send`` registers the call immediately and returns an awaitable for its
    result, so batching transports can collect calls before they are awaited.
    """

    @abstractmethod
    def prepare(self, method: str, params: list[Any]) -> tuple[RequestId, dict]:
        """Build a call for ``method`` with ``params`` and assign it an id."""

    @abstractmethod
    def send(self, id: RequestId, request: dict) -> Awaitable[Any]:
        """Send a prepared call; the awaitable yields its result or raises."""

    def execute(self, method: str, params: list[Any]) -> Awaitable[Any]:
        """Prepare and send a call in one step."""
        request_id, request = self.prepare(method, params)
        return self.send(request_id, request)


class BatchTransport(Transport):
    """A transport that can send several prepared calls at once."""

    @abstractmethod
    def send_batch(self, requests: Iterable[tuple[RequestId, dict]]) -> Awaitable[list[Any]]:
        """Send prepared calls together.

        The awaitable yields one entry per call, in order: the result value, or
        the Web3Error describing why that call failed.
        """


class DuplexTransport(Transport):
    """A transport that also delivers subscription notifications."""

    @abstractmethod
    def subscribe(self, id: SubscriptionId) -> AsyncIterator[Any]:
        """Start routing notifications for ``id`` to the returned iterator."""

    @abstractmethod
    def unsubscribe(self, id: SubscriptionId) -> None:
        """Stop routing notifications for ``id``."""