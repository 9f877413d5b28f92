import pytest

from ethwire.either import Either
from ethwire.mock import MockTransport
from ethwire.rpc import build_request
from ethwire.transport import BatchTransport, DuplexTransport


class FakeBatch(BatchTransport):
    def __init__(self):
        self.sent = []

    def prepare(self, method, params):
        return 9, build_request(9, method, params)

    def send(self, id, request):
        async def answer():
            return request["method"]

        return answer()

    def send_batch(self, requests):
        requests = list(requests)
        self.sent.append(requests)

        async def answer():
            return [request["method"] for _, request in requests]

        return answer()


class FakeDuplex(DuplexTransport):
    def __init__(self, notifications):
        self.notifications = notifications
        self.unsubscribed = []

    def prepare(self, method, params):
        return 1, build_request(1, method, params)

    def send(self, id, request):
        async def answer():
            return None

        return answer()

    def subscribe(self, id):
        async def stream():
            for item in self.notifications[id]:
                yield item

        return stream()

    def unsubscribe(self, id):
        self.unsubscribed.append(id)


@pytest.mark.asyncio
async def test_left_forwards_to_wrapped_transport():
    mock = MockTransport()
    mock.set_response("0x1")
    either = Either.left(mock)

    assert await either.execute("eth_blockNumber", []) == "0x1"
    mock.assert_request("eth_blockNumber", [])
    mock.assert_no_more_requests()
    assert either.is_left and not either.is_right


@pytest.mark.asyncio
async def test_right_forwards_prepare_and_send():
    inner = FakeBatch()
    either = Either.right(inner)
    request_id, request = either.prepare("eth_chainId", [])
    assert request_id == 9
    assert await either.send(request_id, request) == "eth_chainId"
    assert either.is_right


@pytest.mark.asyncio
async def test_send_batch_goes_to_batch_transport():
    inner = FakeBatch()
    either = Either.left(inner)
    calls = [inner.prepare("eth_a", []), inner.prepare("eth_b", [])]
    assert await either.send_batch(calls) == ["eth_a", "eth_b"]
    assert inner.sent == [calls]


def test_send_batch_needs_batch_support():
    either = Either.right(MockTransport())
    with pytest.raises(TypeError):
        either.send_batch([])


@pytest.mark.asyncio
async def test_subscriptions_go_to_duplex_transport():
    inner = FakeDuplex({"0xab": [1, 2]})
    either = Either.right(inner)
    received = [item async for item in either.subscribe("0xab")]
    either.unsubscribe("0xab")
    assert received == [1, 2]
    assert inner.unsubscribed == ["0xab"]


def test_subscriptions_need_duplex_support():
    either = Either.left(MockTransport())
    with pytest.raises(TypeError):
        either.subscribe("0x1")
    with pytest.raises(TypeError):
        either.unsubscribe("0x1")


def test_equality_depends_on_side_and_transport():
    mock = MockTransport()
    assert Either.left(mock) == Either.left(mock)
    assert Either.left(mock) != Either.right(mock)