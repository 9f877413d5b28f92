"""JSON-RPC over HTTP."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Iterable

import httpx

from .errors import InvalidResponseError, TransportError
from .rpc import Output, Response, build_request, to_response_from_slice, to_result_from_output, to_string
from .transport import BatchTransport, RequestId

log = logging.getLogger(__name__)

USER_AGENT = "ethwire"


def _parse_url(url: str) -> httpx.URL:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise TransportError(f"failed to parse url: {exc}") from exc
    if not parsed.scheme:
        raise TransportError("failed to parse url: relative URL without a base")
    if parsed.scheme in ("http", "https") and not parsed.host:
        raise TransportError("failed to parse url: empty host")
    return parsed


class Http(BatchTransport):
    """Sends each call, or each batch, as one HTTP POST request."""

    def __init__(self, url: str, client: httpx.AsyncClient | None = None) -> None:
        self._url = _parse_url(url)
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(headers={"User-Agent": USER_AGENT})
        self._ids = itertools.count()

    @property
    def url(self) -> str:
        return str(self._url)

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    def __repr__(self) -> str:
        return f"Http({self.url!r})"

    async def __aenter__(self) -> "Http":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    def prepare(self, method: str, params: list[Any]) -> tuple[RequestId, dict]:
        request_id = next(self._ids)
        return request_id, build_request(request_id, method, params)

    def send(self, id: RequestId, request: dict):
        return self._send_single(id, request)

    def send_batch(self, requests: Iterable[tuple[RequestId, dict]]):
        # The batch id only ties the response log line to the request log line.
        batch_id = next(self._ids)
        pairs = list(requests)
        ids = [request_id for request_id, _ in pairs]
        calls = [call for _, call in pairs]
        return self._send_many(batch_id, ids, calls)

    async def _send_single(self, request_id: RequestId, call: dict) -> Any:
        parsed = await self._execute(call, request_id)
        if isinstance(parsed, list):
            raise TransportError("failed to deserialize response: expected a single response, got a batch")
        return to_result_from_output(parsed)

    async def _send_many(self, batch_id: RequestId, ids: list[RequestId], calls: list[dict]) -> list[Any]:
        parsed = await self._execute(calls, batch_id)
        if not isinstance(parsed, list):
            raise TransportError("failed to deserialize response: expected a batch response")
        return handle_batch_response(ids, parsed)

    async def _execute(self, payload: Any, request_id: RequestId) -> Response:
        body = to_string(payload)
        log.debug("[id:%s] sending request: %r", request_id, body)
        request = self._client.build_request(
            "POST",
            self._url,
            content=body.encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise TransportError(f"failed to send request: {exc}") from exc
        try:
            try:
                data = await response.aread()
            except httpx.HTTPError as exc:
                raise TransportError(f"failed to read response bytes: {exc}") from exc
        finally:
            await response.aclose()
        log.debug("[id:%s] received response: %r", request_id, data.decode("utf-8", errors="replace"))
        if not response.is_success:
            raise TransportError(
                f"response status code is not success: {response.status_code} {response.reason_phrase}"
            )
        try:
            return to_response_from_slice(data)
        except InvalidResponseError as exc:
            raise TransportError(f"failed to deserialize response: {exc.message}") from None


def _id_of_output(output: Output) -> RequestId:
    if isinstance(output.id, int) and not isinstance(output.id, bool):
        return output.id
    raise InvalidResponseError("response id is not u64")


def handle_batch_response(ids: Iterable[RequestId], outputs: Iterable[Output]) -> list[Any]:
    """Match batch outputs to request ids, restoring the order of the ids.

    Each entry is the call's result, or the RpcError the node returned for it.
    """
    ids = list(ids)
    outputs = list(outputs)
    if len(ids) != len(outputs):
        raise InvalidResponseError("unexpected number of responses")
    by_id = {
        _id_of_output(output): output.result if output.error is None else output.error
        for output in outputs
    }
    results = []
    for request_id in ids:
        try:
            results.append(by_id.pop(request_id))
        except KeyError:
            raise InvalidResponseError(f"batch response is missing id {request_id}") from None
    return results