"""An in-memory transport that records calls and replays canned responses."""

from __future__ import annotations

import json
from collections import deque
from typing import Any, Generator

from .errors import UnreachableError
from .rpc import build_request
from .transport import RequestId, Transport


class _Ready:
    """An awaitable that is already resolved."""

    __slots__ = ("_value", "_error")

    def __init__(self, value: Any = None, error: BaseException | None = None) -> None:
        self._value = value
        self._error = error

    def __await__(self) -> Generator[Any, None, Any]:
        if self._error is not None:
            raise self._error
        return self._value
        yield  # pragma: no cover


def _canonical(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


class MockTransport(Transport):
    """Records every prepared call and answers from a queue of responses."""

    def __init__(self) -> None:
        self._asserted = 0
        self._requests: list[tuple[str, list[Any]]] = []
        self._responses: deque[Any] = deque()

    def prepare(self, method: str, params: list[Any]) -> tuple[RequestId, dict]:
        params = list(params)
        request = build_request(1, method, params)
        self._requests.append((method, params))
        return len(self._requests), request

    def send(self, id: RequestId, request: dict) -> _Ready:
        if not self._responses:
            return _Ready(error=UnreachableError())
        return _Ready(self._responses.popleft())

    def set_response(self, value: Any) -> None:
        """Replace all queued responses with ``value``."""
        self._responses = deque([value])

    def add_response(self, value: Any) -> None:
        """Queue ``value`` as the next unanswered response."""
        self._responses.append(value)

    def assert_request(self, method: str, params: list[str]) -> None:
        """Check the next recorded call; params are compared as JSON text with sorted keys."""
        index = self._asserted
        self._asserted += 1
        if index >= len(self._requests):
            raise AssertionError("Expected result.")
        recorded_method, recorded_params = self._requests[index]
        if recorded_method != method:
            raise AssertionError(f"method {recorded_method!r} != {method!r}")
        serialized = [_canonical(p) for p in recorded_params]
        if serialized != list(params):
            raise AssertionError(f"params {serialized!r} != {list(params)!r}")

    def assert_no_more_requests(self) -> None:
        """Check that every recorded call has been asserted."""
        if self._asserted != len(self._requests):
            remaining = self._requests[self._asserted:]
            raise AssertionError(f"Expected no more requests, got: {remaining!r}")