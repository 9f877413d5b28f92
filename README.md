# ethwire

An asyncio toolkit for talking to Ethereum nodes over JSON-RPC 2.0.

## What it provides

- **Transports** (`ethwire.transport`): the abstract `Transport`,
  `BatchTransport` and `DuplexTransport` classes. `send` registers a call
  at once and returns an awaitable for its result; `execute` prepares and
  sends in one step.
- **`ethwire.http.Http`**: sends each call, or each batch, as one HTTP POST
  request. Pass your own `httpx.AsyncClient` or let it create one; close it
  with `aclose()` or use the transport as an async context manager.
  `handle_batch_response` puts batch results back into request order.
- **`ethwire.ws.WebSocket`**: `await WebSocket.connect("ws://...")` (or
  `wss://`). Supports single calls, batches and subscriptions.
- **`ethwire.ipc.Ipc`**: `await Ipc.connect(path)` for a Unix domain socket,
  or `Ipc.from_streams(reader, writer)` for streams you already have.
  Supports single calls, batches and subscriptions.
- **`ethwire.batch.Batch`**: wraps a batch-capable transport, queues calls
  made through it and sends them together on `submit_batch()`.
- **`ethwire.either.Either`**: holds one of two transports
  (`Either.left(...)` / `Either.right(...)`) and forwards every call to it.
- **`ethwire.mock.MockTransport`**: answers from a queue of canned
  responses (`set_response`, `add_response`) and records calls, which you
  check with `assert_request` and `assert_no_more_requests`. With no
  response queued a call fails with `UnreachableError`.
- **`ethwire.rpc`**: `build_request`, `to_string`, and parsers for
  responses and notifications (`to_response_from_slice`,
  `to_notification_from_slice`, `to_result_from_output`,
  `to_results_from_outputs`).
- **`ethwire.confirm`**: `send_transaction_with_confirmation` and
  `send_raw_transaction_with_confirmation` send a transaction, poll a
  block filter, and return the receipt once the transaction's block has the
  requested number of blocks on top of it. `wait_for_confirmations` waits on
  a check of your own.
- **`ethwire.signing`**: `SecretKey` signs 32-byte message hashes
  (`sign` with EIP-155 replay protection when a chain id is given, otherwise
  V in Electrum notation; `sign_message` with V as the bare recovery id) and
  gives its `address()`. `recover` returns the signer's address from a hash,
  a 64-byte compact signature and a recovery id. `keccak256` hashes bytes.
- **`ethwire.tokens`**: `into_token` / `into_tokens` turn Python values into
  ABI `Token`s; `from_token` / `from_tokens` decode tokens into values
  described by a spec such as `str`, `bytes`, `bool`, `int`, an `IntType`
  (`I8` … `I128`, `U8` … `U256`), `ArrayOf`, `FixedArrayOf`, `FixedBytesOf`,
  `ADDRESS` or `H256`. Negative integers are sign-extended to 256 bits.

## Installation

```
pip install ethwire
```

## Making a call

```python
import asyncio
from ethwire.http import Http

async def main():
    async with Http("http://localhost:8545") as transport:
        print(await transport.execute("eth_blockNumber", []))

asyncio.run(main())
```

## Batching

```python
from ethwire.batch import Batch
from ethwire.http import Http

batch = Batch(Http("http://localhost:8545"))
first = batch.execute("eth_blockNumber", [])
second = batch.execute("eth_chainId", [])
await batch.submit_batch()
print(await first, await second)
```

In the list that `submit_batch()` and `send_batch()` return, a call that
failed appears as the `Web3Error` describing the failure.

## Subscriptions

```python
from ethwire.ws import WebSocket

ws = await WebSocket.connect("ws://localhost:8546")
sub_id = await ws.execute("eth_subscribe", ["newHeads"])
async for header in ws.subscribe(sub_id):
    print(header)
```

Notifications are only delivered to ids registered with `subscribe`; the
iterator ends on `unsubscribe` or when the connection closes.

## Waiting for confirmations

```python
from ethwire.confirm import send_transaction_with_confirmation

receipt = await send_transaction_with_confirmation(
    transport, {"from": "0x...", "to": "0x...", "value": "0x1"}, 1.0, 3
)
```

## Signing

```python
from ethwire.signing import SecretKey, keccak256, recover

key = SecretKey(bytes(range(1, 33)))
digest = keccak256(b"hello")
signature = key.sign_message(digest)
assert recover(digest, signature.r + signature.s, signature.v) == key.address()
```

## Errors

Failures are raised as subclasses of `ethwire.errors.Web3Error`:
`UnreachableError`, `DecoderError`, `InvalidResponseError`,
`TransportError`, `RpcError`, `IoError` and `InternalError`. Token
decoding failures raise `InvalidOutputTypeError`; signing and recovery
raise `SigningError` and `RecoveryError`.

## What it does not do

There are no typed wrappers for `eth_*` methods: calls are made by method
name with JSON parameters, and results come back as decoded JSON. There is
no contract interface (ABI loading, function encoding, deployment) and no
building or encoding of signed transactions; `tokens` only converts between
values and tokens. There is no command-line tool.

## Tests

The test suite uses pytest and pytest-asyncio, available through the `test`
extra.