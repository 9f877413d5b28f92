"""Waiting for transactions to be confirmed by a number of blocks."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping

from .errors import DecoderError, InvalidResponseError, Web3Error
from .transport import Transport

_U64_MASK = (1 << 64) - 1

ConfirmationCheck = Callable[[], Awaitable["int | None"]]


def _seconds(poll_interval: float | timedelta) -> float:
    if isinstance(poll_interval, timedelta):
        return poll_interval.total_seconds()
    return float(poll_interval)


def _quantity(value: Any) -> int:
    """Decode a JSON-RPC hex quantity such as ``"0x1a"``."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value[:2] in ("0x", "0X") and len(value) > 2:
        try:
            return int(value[2:], 16)
        except ValueError:
            pass
    raise DecoderError(f"invalid quantity: {value!r}")


def _hex_data(data: bytes | bytearray | str) -> str:
    if isinstance(data, str):
        return data if data.startswith("0x") else "0x" + data
    return "0x" + bytes(data).hex()


def _transaction_params(tx: Mapping[str, Any]) -> dict:
    return {key: value for key, value in tx.items() if value is not None}


async def _block_stream(
    transport: Transport, filter_id: str, poll_interval: float
) -> AsyncIterator[Any]:
    """Yield new block hashes from a block filter; failed polls are yielded as errors."""
    while True:
        try:
            changes = await transport.execute("eth_getFilterChanges", [filter_id])
            if not isinstance(changes, list):
                raise DecoderError(f"expected a list of block hashes, got {changes!r}")
        except Web3Error as exc:
            yield exc
        else:
            for block_hash in changes:
                yield block_hash
        await asyncio.sleep(poll_interval)


async def wait_for_confirmations(
    transport: Transport,
    poll_interval: float | timedelta,
    confirmations: int,
    check: ConfirmationCheck,
) -> None:
    """Wait until ``check`` reports a block at least ``confirmations`` blocks deep.

    ``check`` is called after every new block past the first ``confirmations``
    ones and returns the block number of the event, or None while unknown.
    """
    filter_id = await transport.execute("eth_newBlockFilter", [])
    if not isinstance(filter_id, str):
        raise DecoderError(f"invalid filter id: {filter_id!r}")
    stream = _block_stream(transport, filter_id, _seconds(poll_interval))
    try:
        for _ in range(confirmations):
            await anext(stream)
        while True:
            await anext(stream)
            confirmed_at = await check()
            if confirmed_at is None:
                continue
            current = _quantity(await transport.execute("eth_blockNumber", []))
            if (confirmed_at & _U64_MASK) + confirmations <= current & _U64_MASK:
                return
    finally:
        await stream.aclose()


async def _receipt(transport: Transport, tx_hash: str) -> dict | None:
    receipt = await transport.execute("eth_getTransactionReceipt", [tx_hash])
    if receipt is not None and not isinstance(receipt, dict):
        raise DecoderError(f"invalid transaction receipt: {receipt!r}")
    return receipt


async def _receipt_block_number(transport: Transport, tx_hash: str) -> int | None:
    receipt = await _receipt(transport, tx_hash)
    if receipt is None or receipt.get("blockNumber") is None:
        return None
    return _quantity(receipt["blockNumber"])


async def _confirm(
    tx_hash: Any, transport: Transport, poll_interval: float | timedelta, confirmations: int
) -> dict:
    if not isinstance(tx_hash, str):
        raise DecoderError(f"invalid transaction hash: {tx_hash!r}")
    if confirmations > 0:
        await wait_for_confirmations(
            transport,
            poll_interval,
            confirmations,
            lambda: _receipt_block_number(transport, tx_hash),
        )
    receipt = await _receipt(transport, tx_hash)
    if receipt is None:
        raise InvalidResponseError("receipt can't be null after wait for confirmations")
    return receipt


async def send_transaction_with_confirmation(
    transport: Transport,
    tx: Mapping[str, Any],
    poll_interval: float | timedelta,
    confirmations: int,
) -> dict:
    """Send a transaction and return its receipt once it is confirmed."""
    tx_hash = await transport.execute("eth_sendTransaction", [_transaction_params(tx)])
    return await _confirm(tx_hash, transport, poll_interval, confirmations)


async def send_raw_transaction_with_confirmation(
    transport: Transport,
    tx: bytes | bytearray | str,
    poll_interval: float | timedelta,
    confirmations: int,
) -> dict:
    """Send a signed raw transaction and return its receipt once it is confirmed."""
    tx_hash = await transport.execute("eth_sendRawTransaction", [_hex_data(tx)])
    return await _confirm(tx_hash, transport, poll_interval, confirmations)