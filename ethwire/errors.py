"""Errors raised by transports, the JSON-RPC layer and contract helpers."""

from __future__ import annotations

import json
from typing import Any

_RPC_CODE_NAMES = {
    -32700: "ParseError",
    -32600: "InvalidRequest",
    -32601: "MethodNotFound",
    -32602: "InvalidParams",
    -32603: "InternalError",
}


class Web3Error(Exception):
    """Base class of every error raised by the package."""

    def _key(self) -> tuple:
        return self.args

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self._key() == other._key()  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self), repr(self._key())))


class _MessageError(Web3Error):
    _prefix = ""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self._prefix}{self.message}"


class UnreachableError(Web3Error):
    """The server could not be reached."""

    def __str__(self) -> str:
        return "Server is unreachable"


class DecoderError(_MessageError):
    """A value could not be decoded into the expected type."""

    _prefix = "Decoder error: "


class InvalidResponseError(_MessageError):
    """The server sent something that is not a valid response."""

    _prefix = "Got invalid response: "


class TransportError(_MessageError):
    """The transport failed to deliver a request or its response."""

    _prefix = "Transport error: "


class RpcError(Web3Error):
    """The server answered with a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(code, message, data)
        self.code = code
        self.message = message
        self.data = data

    @property
    def code_name(self) -> str:
        """Symbolic name of the error code."""
        return _RPC_CODE_NAMES.get(self.code, f"ServerError({self.code})")

    def __str__(self) -> str:
        data = "None" if self.data is None else f"Some({json.dumps(self.data)})"
        return (
            f"RPC error: Error {{ code: {self.code_name}, "
            f"message: {json.dumps(self.message)}, data: {data} }}"
        )


class IoError(Web3Error):
    """An operating-system level input/output failure."""

    def __init__(self, error: OSError) -> None:
        super().__init__(error)
        self.error = error

    def _key(self) -> tuple:
        return (type(self.error), self.error.errno)

    def __str__(self) -> str:
        return f"IO error: {self.error}"


class InternalError(Web3Error):
    """An internal inconsistency, such as a dropped pending request."""

    def __str__(self) -> str:
        return "Internal Web3 error"


class ContractError(Web3Error):
    """Base class of errors raised by contract helpers."""


class InvalidOutputTypeError(ContractError, _MessageError):
    """The caller asked for an output type the tokens do not match."""

    _prefix = "Invalid output type: "


class AbiError(ContractError, _MessageError):
    """ABI encoding, decoding or lookup failed."""

    _prefix = "Abi error: "


class DeploymentFailedError(ContractError):
    """A contract deployment transaction did not create a contract."""

    def __init__(self, transaction_hash: bytes | str) -> None:
        super().__init__(transaction_hash)
        self.transaction_hash = transaction_hash

    def __str__(self) -> str:
        tx_hash = self.transaction_hash
        if isinstance(tx_hash, (bytes, bytearray)):
            tx_hash = "0x" + bytes(tx_hash).hex()
        return f"Failure during deployment.Tx hash: {tx_hash}"