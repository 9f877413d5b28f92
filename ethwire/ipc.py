"""JSON-RPC over a Unix domain socket."""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import itertools
import json
import logging
import os
from typing import Any, Awaitable, Iterable

from .errors import InvalidResponseError, IoError, TransportError, Web3Error
from .rpc import (
    Notification,
    Output,
    build_request,
    to_notification_from_slice,
    to_response_from_slice,
    to_result_from_output,
    to_string,
)
from .transport import BatchTransport, DuplexTransport, RequestId, SubscriptionId

log = logging.getLogger(__name__)

_READ_SIZE = 64 * 1024
_WHITESPACE = " \t\n\r"
_END = object()

_SEND_ERROR = "Send Error: transport is closed"
_RECV_ERROR = "Recv Error: connection closed"


def _mark_retrieved(future: asyncio.Future) -> None:
    if not future.cancelled():
        future.exception()


def _fail(future: asyncio.Future) -> None:
    if not future.done():
        future.set_exception(TransportError(_RECV_ERROR))


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


class Ipc(BatchTransport, DuplexTransport):
    """Talks to a node over a stream socket, matching responses to requests by id."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        loop = asyncio.get_running_loop()
        self._loop = loop
        self._reader = reader
        self._writer = writer
        self._ids = itertools.count(1)
        self._pending: dict[RequestId, asyncio.Future] = {}
        self._subscriptions: dict[SubscriptionId, _Subscription] = {}
        self._outgoing: asyncio.Queue = asyncio.Queue()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._json = json.JSONDecoder()
        self._buffer = ""
        self._closed = False
        self._reader_task = loop.create_task(self._read_loop())
        self._writer_task = loop.create_task(self._write_loop())

    @classmethod
    async def connect(cls, path: str | os.PathLike) -> "Ipc":
        """Connect to the socket at ``path``."""
        try:
            reader, writer = await asyncio.open_unix_connection(os.fspath(path))
        except OSError as exc:
            raise IoError(exc) from exc
        return cls(reader, writer)

    @classmethod
    def from_streams(cls, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> "Ipc":
        """Use an already connected pair of streams."""
        return cls(reader, writer)

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "Ipc":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def prepare(self, method: str, params: list[Any]) -> tuple[RequestId, dict]:
        request_id = next(self._ids)
        return request_id, build_request(request_id, method, params)

    def send(self, id: RequestId, request: dict) -> Awaitable[Any]:
        try:
            self._ensure_open()
        except TransportError as exc:
            return self._raise(exc)
        future = self._register(id)
        self._outgoing.put_nowait((to_string(request).encode("utf-8"), [id]))
        return self._await_single(future)

    def send_batch(self, requests: Iterable[tuple[RequestId, dict]]) -> Awaitable[list[Any]]:
        pairs = list(requests)
        try:
            self._ensure_open()
        except TransportError as exc:
            return self._raise(exc)
        ids = [request_id for request_id, _ in pairs]
        futures = [self._register(request_id) for request_id in ids]
        payload = to_string([call for _, call in pairs]).encode("utf-8")
        self._outgoing.put_nowait((payload, ids))
        return self._await_batch(futures)

    def subscribe(self, id: SubscriptionId) -> _Subscription:
        self._ensure_open()
        subscription = _Subscription()
        previous = self._subscriptions.get(id)
        if previous is not None:
            log.warning("Replacing a subscription with id %r", id)
            previous._end()
        self._subscriptions[id] = subscription
        return subscription

    def unsubscribe(self, id: SubscriptionId) -> None:
        self._ensure_open()
        subscription = self._subscriptions.pop(id, None)
        if subscription is None:
            log.warning("Unsubscribing not subscribed id %r", id)
        else:
            subscription._end()

    async def close(self) -> None:
        """Stop the background tasks and close the socket; pending calls fail."""
        self._shutdown()
        current = asyncio.current_task()
        tasks = [task for task in (self._reader_task, self._writer_task) if task is not current]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        with contextlib.suppress(OSError):
            await self._writer.wait_closed()

    def _ensure_open(self) -> None:
        if self._closed:
            raise TransportError(_SEND_ERROR)

    @staticmethod
    async def _raise(error: Web3Error) -> Any:
        raise error

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
    async def _await_single(future: asyncio.Future) -> Any:
        output = await future
        return to_result_from_output(output)

    @staticmethod
    async def _await_batch(futures: list[asyncio.Future]) -> list[Any]:
        results: list[Any] = []
        for future in futures:
            try:
                output = await future
            except Web3Error as exc:
                results.append(exc)
                continue
            results.append(output.result if output.error is None else output.error)
        return results

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
        self._writer.close()

    async def _write_loop(self) -> None:
        while True:
            data, ids = await self._outgoing.get()
            try:
                self._writer.write(data)
                await self._writer.drain()
            except (OSError, RuntimeError) as exc:
                log.error("IPC write error: %r", exc)
                for request_id in ids:
                    future = self._pending.pop(request_id, None)
                    if future is not None:
                        _fail(future)

    async def _read_loop(self) -> None:
        try:
            while True:
                chunk = await self._reader.read(_READ_SIZE)
                if not chunk:
                    break
                self._feed(chunk)
        except OSError as exc:
            log.error("IPC read error: %r", exc)
        self._shutdown()

    def _feed(self, chunk: bytes) -> None:
        text = self._buffer + self._decoder.decode(chunk)
        position = 0
        while True:
            start = position
            while start < len(text) and text[start] in _WHITESPACE:
                start += 1
            if start == len(text):
                position = start
                break
            try:
                _, end = self._json.raw_decode(text, start)
            except json.JSONDecodeError:
                position = start
                break
            self._dispatch(text[start:end])
            position = end
        self._buffer = text[position:]

    def _dispatch(self, raw: str) -> None:
        try:
            notification = to_notification_from_slice(raw)
        except InvalidResponseError:
            pass
        else:
            self._notify(notification)
            return
        try:
            response = to_response_from_slice(raw)
        except InvalidResponseError:
            log.warning("JSON is not a response or notification")
            return
        outputs = response if isinstance(response, list) else [response]
        for output in outputs:
            self._respond(output)

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

    def _respond(self, output: Output) -> None:
        request_id = output.id
        if not isinstance(request_id, int) or isinstance(request_id, bool):
            log.warning("Got unsupported response (id: %r)", request_id)
            return
        future = self._pending.pop(request_id, None)
        if future is None:
            log.warning("Got response for unknown request (id: %r)", request_id)
            return
        if future.done():
            log.warning("Sending a response to deallocated channel (id: %r)", request_id)
            return
        future.set_result(output)