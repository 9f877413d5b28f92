"""JSON-RPC 2.0 request building and response parsing."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Union

from .errors import InvalidResponseError, RpcError

JSONRPC_VERSION = "2.0"

_OUTPUT_KEYS = frozenset({"jsonrpc", "id", "result", "error"})
_NOTIFICATION_KEYS = frozenset({"jsonrpc", "method", "params"})


@dataclass(frozen=True)
class Output:
    """One JSON-RPC response object: a result or an error for a request id."""

    id: int | str | None
    result: Any = None
    error: RpcError | None = None
    jsonrpc: str | None = JSONRPC_VERSION

    @property
    def is_success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Notification:
    """A server-initiated JSON-RPC message without an id."""

    method: str
    params: list | dict | None = None
    jsonrpc: str | None = JSONRPC_VERSION


Response = Union[Output, list[Output]]


class _Malformed(ValueError):
    pass


def build_request(id: int, method: str, params: Iterable[Any]) -> dict:
    """Build a JSON-RPC 2.0 method call."""
    return {"jsonrpc": JSONRPC_VERSION, "method": method, "params": list(params), "id": id}


def to_string(request: Any) -> str:
    """Serialise a request to compact JSON text."""
    return json.dumps(request, separators=(",", ":"), ensure_ascii=False)


def _load(data: bytes | bytearray | memoryview | str) -> Any:
    if isinstance(data, memoryview):
        data = data.tobytes()
    try:
        return json.loads(data)
    except (ValueError, UnicodeDecodeError) as exc:
        raise _Malformed(str(exc)) from exc


def _parse_version(obj: dict) -> str | None:
    version = obj.get("jsonrpc")
    if version is not None and version != JSONRPC_VERSION:
        raise _Malformed(f"unsupported jsonrpc version {version!r}")
    return version


def _parse_id(obj: dict) -> int | str | None:
    if "id" not in obj:
        raise _Malformed("missing field `id`")
    value = obj["id"]
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    raise _Malformed(f"invalid id {value!r}")


def _parse_error(obj: Any) -> RpcError:
    if not isinstance(obj, dict):
        raise _Malformed("error is not an object")
    code = obj.get("code")
    message = obj.get("message")
    if not isinstance(code, int) or isinstance(code, bool):
        raise _Malformed(f"invalid error code {code!r}")
    if not isinstance(message, str):
        raise _Malformed("missing or invalid error message")
    return RpcError(code, message, obj.get("data"))


def _parse_output(obj: Any) -> Output:
    if not isinstance(obj, dict):
        raise _Malformed("output is not an object")
    unknown = set(obj) - _OUTPUT_KEYS
    if unknown:
        raise _Malformed(f"unknown fields {sorted(unknown)}")
    has_result = "result" in obj
    has_error = "error" in obj
    if has_result == has_error:
        raise _Malformed("output must hold exactly one of `result` and `error`")
    version = _parse_version(obj)
    output_id = _parse_id(obj)
    if has_error:
        return Output(id=output_id, error=_parse_error(obj["error"]), jsonrpc=version)
    return Output(id=output_id, result=obj["result"], jsonrpc=version)


def _parse_notification(obj: Any) -> Notification:
    if not isinstance(obj, dict):
        raise _Malformed("notification is not an object")
    unknown = set(obj) - _NOTIFICATION_KEYS
    if unknown:
        raise _Malformed(f"unknown fields {sorted(unknown)}")
    method = obj.get("method")
    if not isinstance(method, str):
        raise _Malformed("missing or invalid `method`")
    params = obj.get("params")
    if params is not None and not isinstance(params, (list, dict)):
        raise _Malformed("`params` must be an array or an object")
    return Notification(method=method, params=params, jsonrpc=_parse_version(obj))


def to_response_from_slice(data: bytes | bytearray | memoryview | str) -> Response:
    """Parse a single response object, or a list of them for a batch."""
    try:
        value = _load(data)
        if isinstance(value, list):
            return [_parse_output(item) for item in value]
        return _parse_output(value)
    except _Malformed as exc:
        raise InvalidResponseError(str(exc)) from None


def to_notification_from_slice(data: bytes | bytearray | memoryview | str) -> Notification:
    """Parse a JSON-RPC notification."""
    try:
        return _parse_notification(_load(data))
    except _Malformed as exc:
        raise InvalidResponseError(str(exc)) from None


def to_result_from_output(output: Output) -> Any:
    """Return the result of an output, raising its error if it failed."""
    if output.error is not None:
        raise output.error
    return output.result


def to_results_from_outputs(outputs: Iterable[Output]) -> list[Any]:
    """Turn outputs into a list of results; failures appear as RpcError instances."""
    return [output.result if output.error is None else output.error for output in outputs]