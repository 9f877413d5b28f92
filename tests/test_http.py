import json

import httpx
import pytest

from ethwire.errors import InvalidResponseError, RpcError, TransportError
from ethwire.http import Http, handle_batch_response
from ethwire.rpc import Output


def make_http(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return Http("http://127.0.0.1:3001", client=client)


@pytest.mark.asyncio
async def test_should_make_a_request():
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path, request.content.decode()))
        return httpx.Response(200, content=b'{"jsonrpc":"2.0","id":0,"result":"x"}')

    http = make_http(handler)
    response = await http.execute("eth_getAccounts", [])

    assert response == "x"
    assert seen == [
        ("POST", "/", '{"jsonrpc":"2.0","method":"eth_getAccounts","params":[],"id":0}')
    ]


def test_prepare_assigns_increasing_ids_from_zero():
    http = Http("http://localhost:8545")
    first_id, first = http.prepare("eth_a", [])
    second_id, second = http.prepare("eth_b", [])
    assert (first_id, second_id) == (0, 1)
    assert first["id"] == 0 and second["id"] == 1


@pytest.mark.asyncio
async def test_unsuccessful_status_is_a_transport_error():
    http = make_http(lambda request: httpx.Response(500, content=b"oops"))
    with pytest.raises(TransportError) as raised:
        await http.execute("eth_a", [])
    assert raised.value.message.startswith("response status code is not success")


@pytest.mark.asyncio
async def test_malformed_body_is_a_transport_error():
    http = make_http(lambda request: httpx.Response(200, content=b"not json"))
    with pytest.raises(TransportError) as raised:
        await http.execute("eth_a", [])
    assert raised.value.message.startswith("failed to deserialize response")


@pytest.mark.asyncio
async def test_connection_failure_is_a_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    http = make_http(handler)
    with pytest.raises(TransportError) as raised:
        await http.execute("eth_a", [])
    assert raised.value.message.startswith("failed to send request")


@pytest.mark.asyncio
async def test_rpc_failure_is_raised():
    body = {"jsonrpc": "2.0", "id": 0, "error": {"code": -32601, "message": "Method not found"}}
    http = make_http(lambda request: httpx.Response(200, content=json.dumps(body).encode()))
    with pytest.raises(RpcError) as raised:
        await http.execute("eth_nothing", [])
    assert raised.value.code == -32601
    assert raised.value.message == "Method not found"


@pytest.mark.asyncio
async def test_batch_results_follow_request_order():
    def handler(request):
        calls = json.loads(request.content)
        outputs = [{"jsonrpc": "2.0", "id": call["id"], "result": call["method"]} for call in reversed(calls)]
        return httpx.Response(200, content=json.dumps(outputs).encode())

    http = make_http(handler)
    calls = [http.prepare("eth_a", []), http.prepare("eth_b", []), http.prepare("eth_c", [])]
    assert await http.send_batch(calls) == ["eth_a", "eth_b", "eth_c"]


def test_handles_batch_response_being_in_different_order_than_input():
    ids = [0, 1, 2]
    outputs = [Output(id=i, result=i) for i in [1, 0, 2]]
    assert handle_batch_response(ids, outputs) == ids


def test_batch_failure_entries_are_errors():
    failure = RpcError(-32000, "execution reverted")
    outputs = [Output(id=1, error=failure), Output(id=0, result="ok")]
    assert handle_batch_response([0, 1], outputs) == ["ok", failure]


def test_batch_with_wrong_number_of_responses():
    with pytest.raises(InvalidResponseError) as raised:
        handle_batch_response([0, 1], [Output(id=0, result=None)])
    assert raised.value.message == "unexpected number of responses"


def test_batch_missing_an_id():
    outputs = [Output(id=0, result=None), Output(id=0, result=None)]
    with pytest.raises(InvalidResponseError) as raised:
        handle_batch_response([0, 2], outputs)
    assert raised.value.message == "batch response is missing id 2"


def test_batch_with_string_id():
    with pytest.raises(InvalidResponseError) as raised:
        handle_batch_response([0], [Output(id="0", result=None)])
    assert raised.value.message == "response id is not u64"


def test_invalid_url_is_rejected():
    with pytest.raises(TransportError) as raised:
        Http("not a url")
    assert raised.value.message.startswith("failed to parse url")


@pytest.mark.asyncio
async def test_aclose_closes_owned_client():
    http = Http("http://localhost:8545")
    await http.aclose()
    assert http.client.is_closed