"""A transport that is one of two possible transports."""

from __future__ import annotations

from typing import Any, AsyncIterator, Awaitable, Iterable

from .transport import (
    BatchTransport,
    DuplexTransport,
    RequestId,
    SubscriptionId,
    Transport,
)


class Either(BatchTransport, DuplexTransport):
    """Holds a left or a right transport and forwards every call to it.

    Useful for code that picks its transport at run time.
    """

    __slots__ = ("_transport", "_is_left")

    def __init__(self, transport: Transport, *, is_left: bool = True) -> None:
        self._transport = transport
        self._is_left = is_left

    @classmethod
    def left(cls, transport: Transport) -> "Either":
        """Wrap the first possible transport."""
        return cls(transport, is_left=True)

    @classmethod
    def right(cls, transport: Transport) -> "Either":
        """Wrap the second possible transport."""
        return cls(transport, is_left=False)

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def is_left(self) -> bool:
        return self._is_left

    @property
    def is_right(self) -> bool:
        return not self._is_left

    def __repr__(self) -> str:
        side = "Left" if self._is_left else "Right"
        return f"Either.{side.lower()}({self._transport!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Either):
            return NotImplemented
        return self._is_left == other._is_left and self._transport == other._transport

    def __hash__(self) -> int:
        return hash((self._is_left, id(self._transport)))

    def _require(self, kind: type, action: str) -> Any:
        if not isinstance(self._transport, kind):
            raise TypeError(f"{type(self._transport).__name__} does not support {action}")
        return self._transport

    def prepare(self, method: str, params: list[Any]) -> tuple[RequestId, dict]:
        return self._transport.prepare(method, params)

    def send(self, id: RequestId, request: dict) -> Awaitable[Any]:
        return self._transport.send(id, request)

    def send_batch(self, requests: Iterable[tuple[RequestId, dict]]) -> Awaitable[list[Any]]:
        return self._require(BatchTransport, "batch requests").send_batch(requests)

    def subscribe(self, id: SubscriptionId) -> AsyncIterator[Any]:
        return self._require(DuplexTransport, "subscriptions").subscribe(id)

    def unsubscribe(self, id: SubscriptionId) -> None:
        self._require(DuplexTransport, "subscriptions").unsubscribe(id)