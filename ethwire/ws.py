"""JSON-RPC over a WebSocket connection."""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
import urllib.parse
from typing import Any, Awaitable, Callable, Iterable

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .errors import InvalidResponseError, IoError, TransportError, Web3Error
from .rpc import (
    Notification,
    build_request,
    to_notification_from_slice,
    to_response_from_slice,
    to_results_from_outputs,
    to_string,
)
from .transport import BatchTransport, DuplexTransport, RequestId, SubscriptionId

log = logging.getLogger(__name__)

_DROPPED = "Cannot send request. Internal task finished."
_END = object()


def _dropped() -> TransportError:
    return TransportError(_DROPPED)


def _mark_retrieved(future: asyncio.Future) -> None:
    if not future.cancelled():
        future.exception()


def _fail(future: asyncio.Future) -> None:
    if not future.done():
        future.set_exception(_dropped())


def _batch_to_single(results: list[Any]) -> Any:
    if not results:
        raise InvalidResponseError("Expected single, got batch.")
    first = results[0]
    if isinstance(first, Web3Error):
        raise first
    return first


def _batch_to_batch(results: list[Any]) -> list[Any]:
    return results


class _Subscription:
    """Async iterator over the notifications of one subscription."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._ended = False

    def _push(self, value: Any) -> None:
        if not self._ended:
            self._queue.put_nowait(value)

    def _end(self) -> None:
        if not self._ended:
            self._ended = True
            self._queue.put_nowait(_END)

    def __aiter__(self) -> "_Subscription":
        return self

    async def __anext__(self) -> Any:
        item = await self._queue.get()
        if item is _END:
            self._queue.put_nowait(_END)
            raise StopAsyncIteration
        return item


class WebSocket(BatchTransport, DuplexTransport):
    """Sends calls over a WebSocket and routes responses and notifications back.

    ``connection`` is any object with async ``send(text)``, ``recv()`` and
    ``close()`` methods, such as a connection from the websockets library.
    """

    def __init__(self, connection: Any) -> None:
        loop = asyncio.get_running_loop()
        self._loop = loop
        self._connection = connection
        self._ids = itertools.count(1)
        self._pending: dict[RequestId, asyncio.Future] = {}
        self._subscriptions: dict[SubscriptionId, _Subscription] = {}
        self._outgoing: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._reader_task = loop.create_task(self._read_loop())
        self._writer_task = loop.create_task(self._write_loop())

    @classmethod
    async def connect(cls, url: str) -> "WebSocket":
        """Open a connection to a ``ws://`` or ``wss://`` URL."""
        try:
            parsed = urllib.parse.urlsplit(url)
            parsed.port
        except ValueError as exc:
            raise TransportError(f"failed to parse url: {exc}") from exc
        if not parsed.scheme:
            raise TransportError("failed to parse url: relative URL without a base")
        if parsed.scheme not in ("ws", "wss"):
            raise TransportError(f"Wrong scheme: {parsed.scheme}")
        if not parsed.hostname:
            raise TransportError("Wrong host name")
        log.debug("Connecting websocket client to %s", url)
        try:
            connection = await websockets.connect(url)
        except WebSocketException as exc:
            raise TransportError(f"Handshake Error: {exc!r}") from exc
        except OSError as exc:
            raise IoError(exc) from exc
        except asyncio.TimeoutError as exc:
            raise TransportError(f"Handshake Error: {exc!r}") from exc
        return cls(connection)

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        return f"WebSocket(closed={self._closed})"

    async def __aenter__(self) -> "WebSocket":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def prepare(self, method: str, params: list[Any]) -> tuple[RequestId, dict]:
        request_id = next(self._ids)
        return request_id, build_request(request_id, method, params)

    def send(self, id: RequestId, request: dict) -> Awaitable[Any]:
        return self._request(id, request, _batch_to_single)

    def send_batch(self, requests: Iterable[tuple[RequestId, dict]]) -> Awaitable[list[Any]]:
        pairs = list(requests)
        batch_id = pairs[0][0] if pairs else 0
        return self._request(batch_id, [call for _, call in pairs], _batch_to_batch)

    def subscribe(self, id: SubscriptionId) -> _Subscription:
        self._ensure_open()
        subscription = _Subscription()
        previous = self._subscriptions.get(id)
        if previous is not None:
            log.warning("Replacing already-registered subscription with id %r", id)
            previous._end()
        self._subscriptions[id] = subscription
        return subscription

    def unsubscribe(self, id: SubscriptionId) -> None:
        self._ensure_open()
        subscription = self._subscriptions.pop(id, None)
        if subscription is None:
            log.warning("Unsubscribing from non-existent subscription with id %r", id)
        else:
            subscription._end()

    async def close(self) -> None:
        """Stop the background tasks and close the connection; pending calls fail."""
        self._shutdown()
        current = asyncio.current_task()
        tasks = [task for task in (self._reader_task, self._writer_task) if task is not current]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        with contextlib.suppress(Exception):
            await self._connection.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise _dropped()

    @staticmethod
    async def _raise(error: Web3Error) -> Any:
        raise error

    def _request(self, request_id: RequestId, payload: Any, extract: Callable[[list[Any]], Any]) -> Awaitable[Any]:
        text = to_string(payload)
        log.debug("[%s] Calling: %s", request_id, text)
        if self._closed:
            return self._raise(_dropped())
        future = self._register(request_id)
        self._outgoing.put_nowait((request_id, text))
        return self._wait(future, extract)

    def _register(self, request_id: RequestId) -> asyncio.Future:
        future = self._loop.create_future()
        future.add_done_callback(_mark_retrieved)
        previous = self._pending.get(request_id)
        if previous is not None:
            log.warning("Replacing a pending request with id %r", request_id)
            _fail(previous)
        self._pending[request_id] = future
        return future

    @staticmethod
    async def _wait(future: asyncio.Future, extract: Callable[[list[Any]], Any]) -> Any:
        results = await future
        return extract(results)

    def _shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        pending, self._pending = self._pending, {}
        for future in pending.values():
            _fail(future)
        subscriptions, self._subscriptions = self._subscriptions, {}
        for subscription in subscriptions.values():
            subscription._end()
        if self._writer_task is not asyncio.current_task():
            self._writer_task.cancel()

    async def _write_loop(self) -> None:
        while True:
            request_id, text = await self._outgoing.get()
            try:
                await self._connection.send(text)
            except (WebSocketException, OSError, RuntimeError) as exc:
                log.error("WS connection error: %r", exc)
                future = self._pending.pop(request_id, None)
                if future is not None:
                    _fail(future)

    async def _read_loop(self) -> None:
        try:
            while True:
                data = await self._connection.recv()
                self._handle_message(data)
        except ConnectionClosed:
            pass
        except (WebSocketException, OSError) as exc:
            log.error("WS connection error: %r", exc)
        self._shutdown()

    def _handle_message(self, data: str | bytes) -> None:
        log.debug("Message received: %r", data)
        try:
            notification = to_notification_from_slice(data)
        except InvalidResponseError:
            self._respond(data)
        else:
            self._notify(notification)

    def _notify(self, notification: Notification) -> None:
        params = notification.params
        if not isinstance(params, dict):
            return
        subscription_id = params.get("subscription")
        if isinstance(subscription_id, str) and "result" in params:
            subscription = self._subscriptions.get(subscription_id)
            if subscription is None:
                log.warning("Got notification for unknown subscription (id: %r)", subscription_id)
            else:
                subscription._push(params["result"])
        else:
            log.error("Got unsupported notification (id: %r)", subscription_id)

    def _respond(self, data: str | bytes) -> None:
        try:
            response = to_response_from_slice(data)
        except InvalidResponseError:
            outputs = []
        else:
            outputs = response if isinstance(response, list) else [response]
        response_id = outputs[0].id if outputs else 0
        if not isinstance(response_id, int) or isinstance(response_id, bool):
            log.warning("Got unsupported response (id: %r)", response_id)
            return
        future = self._pending.pop(response_id, None)
        if future is None:
            log.warning("Got response for unknown request (id: %r)", response_id)
            return
        if future.done():
            log.warning("Sending a response to deallocated channel (id: %r)", response_id)
            return
        future.set_result(to_results_from_outputs(outputs))