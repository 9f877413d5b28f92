import json

import pytest

from ethwire.errors import InvalidResponseError, RpcError
from ethwire.rpc import (
    Notification,
    Output,
    build_request,
    to_notification_from_slice,
    to_response_from_slice,
    to_result_from_output,
    to_results_from_outputs,
    to_string,
)


def test_build_request_serialises_in_wire_order():
    request = build_request(0, "eth_getAccounts", [])
    assert to_string(request) == '{"jsonrpc":"2.0","method":"eth_getAccounts","params":[],"id":0}'


def test_build_request_with_params_round_trips():
    request = build_request(1, "eth_accounts", ["1"])
    assert to_string(request) == '{"jsonrpc":"2.0","method":"eth_accounts","params":["1"],"id":1}'
    assert json.loads(to_string(request)) == request


def test_single_success_response():
    output = to_response_from_slice(b'{"jsonrpc":"2.0","id":0,"result":"x"}')
    assert output == Output(id=0, result="x")
    assert output.is_success
    assert to_result_from_output(output) == "x"


def test_null_result_is_success():
    output = to_response_from_slice('{"jsonrpc":"2.0","id":3,"result":null}')
    assert output.is_success
    assert to_result_from_output(output) is None


def test_failure_response_raises_rpc_error():
    output = to_response_from_slice(
        '{"jsonrpc":"2.0","id":1,"error":{"code":15,"message":"string1","data":"string2"}}'
    )
    assert not output.is_success
    with pytest.raises(RpcError) as info:
        to_result_from_output(output)
    assert info.value == RpcError(15, "string1", "string2")


def test_batch_response_keeps_order_and_ids():
    data = json.dumps(
        [
            {"jsonrpc": "2.0", "id": 1, "result": {"test": 0}},
            {"jsonrpc": "2.0", "id": "2", "result": {"test": 2}},
            {"jsonrpc": "2.0", "id": 3, "result": {"test": 2}},
        ]
    )
    outputs = to_response_from_slice(data)
    assert [o.id for o in outputs] == [1, "2", 3]
    assert [o.result for o in outputs] == [{"test": 0}, {"test": 2}, {"test": 2}]


def test_results_from_outputs_mix_values_and_errors():
    failure = RpcError(15, "string1")
    outputs = [Output(id=1, result={"test": 1}), Output(id=2, error=failure)]
    assert to_results_from_outputs(outputs) == [{"test": 1}, failure]


@pytest.mark.parametrize(
    "data",
    [
        b"not json",
        b"42",
        b'{"jsonrpc":"2.0","result":"x"}',
        b'{"jsonrpc":"2.0","id":1}',
        b'{"jsonrpc":"2.0","id":1,"result":1,"error":{"code":1,"message":""}}',
        b'{"jsonrpc":"2.0","id":1,"error":{"code":"red","message":""}}',
        b'{"jsonrpc":"1.0","id":1,"result":1}',
        b'{"jsonrpc":"2.0","id":-1,"result":1}',
    ],
)
def test_malformed_responses_raise(data):
    with pytest.raises(InvalidResponseError):
        to_response_from_slice(data)


def test_notification_parsed():
    data = b'{"jsonrpc":"2.0","method":"eth_subscription","params":{"subscription":"0x1","result":{"test":1}}}'
    notification = to_notification_from_slice(data)
    assert notification == Notification(
        method="eth_subscription", params={"subscription": "0x1", "result": {"test": 1}}
    )


def test_response_is_not_a_notification():
    with pytest.raises(InvalidResponseError):
        to_notification_from_slice(b'{"jsonrpc":"2.0","id":0,"result":"x"}')


def test_notification_is_not_a_response():
    with pytest.raises(InvalidResponseError):
        to_response_from_slice(b'{"jsonrpc":"2.0","method":"eth_subscription","params":[]}')