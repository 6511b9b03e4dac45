import threading

import pytest

from ethrpc.exceptions import (
    ExecutionRevertedError,
    InvalidResponseError,
    MethodNotFoundError,
    RpcError,
    TransportError,
    TransportTimeoutError,
)
from ethrpc.managers.requests import RequestManager


@pytest.fixture
def requests(transport):
    manager = RequestManager(transport, max_workers=4)
    yield manager
    manager.close()


def test_request(requests, transport):
    transport.respond("eth_blockNumber", "0x10")
    assert requests.request("eth_blockNumber") == "0x10"
    assert transport.calls == [
        {"jsonrpc": "2.0", "id": 1, "method": "eth_blockNumber", "params": []}
    ]


def test_request_ids_are_unique(requests, transport):
    transport.respond("eth_gasPrice", "0x1")
    for _ in range(3):
        requests.request("eth_gasPrice")

    assert [c["id"] for c in transport.calls] == [1, 2, 3]


def test_request_ids_unique_across_threads(requests, transport):
    transport.respond("eth_gasPrice", "0x1")
    threads = [
        threading.Thread(target=lambda: [requests.request("eth_gasPrice") for _ in range(25)])
        for _ in range(4)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    ids = [c["id"] for c in transport.calls]
    assert len(ids) == 100
    assert len(set(ids)) == 100


def test_request_params(requests, transport):
    transport.respond("eth_getBalance", "0x0")
    requests.request("eth_getBalance", ("0xabc", "latest"))
    assert transport.calls_to("eth_getBalance") == [["0xabc", "latest"]]


def test_response_id_mismatch(requests, transport):
    transport.respond_raw("eth_blockNumber", {"jsonrpc": "2.0", "id": 999, "result": "0x1"})
    with pytest.raises(InvalidResponseError, match="does not match"):
        requests.request("eth_blockNumber")


@pytest.mark.parametrize(
    "response",
    [
        None,
        "0x1",
        [{"jsonrpc": "2.0", "id": 1, "result": "0x1"}],
        {"jsonrpc": "2.0", "id": 1},
    ],
)
def test_malformed_response(requests, transport, response):
    transport.respond_raw("eth_blockNumber", response)
    with pytest.raises(InvalidResponseError):
        requests.request("eth_blockNumber")


def test_rpc_error(requests, transport):
    transport.fail("eth_sendTransaction", -32000, "insufficient funds for gas * price + value")
    with pytest.raises(RpcError) as err:
        requests.request("eth_sendTransaction", [{}])

    assert err.value.code == -32000
    assert err.value.message == "insufficient funds for gas * price + value"
    assert str(err.value) == "insufficient funds for gas * price + value (code=-32000)"
    assert not isinstance(err.value, TransportError)


def test_method_not_found(requests):
    # Unknown to the fake node.
    with pytest.raises(MethodNotFoundError) as err:
        requests.request("eth_doesNotExist")

    assert err.value.code == -32601


def test_method_not_found_by_message(requests, transport):
    transport.fail("debug_traceCall", -32000, "Method debug_traceCall not found")
    with pytest.raises(MethodNotFoundError):
        requests.request("debug_traceCall")


def test_execution_reverted(requests, transport):
    revert_data = "0x08c379a0"
    transport.fail("eth_call", 3, "execution reverted: not owner", data=revert_data)
    with pytest.raises(ExecutionRevertedError) as err:
        requests.request("eth_call", [{}, "latest"])

    assert err.value.revert_data == revert_data


def test_transport_error_not_retried(requests, transport):
    transport.raise_error("eth_chainId", TransportTimeoutError(timeout=1.0))
    with pytest.raises(TransportTimeoutError, match=r"\(1.0s\)"):
        requests.request("eth_chainId")

    assert len(transport.calls) == 1


def test_defer(requests, transport):
    transport.respond("eth_blockNumber", "0x5")
    outcomes = []
    future = requests.defer(
        requests.request, "eth_blockNumber", callback=lambda err, res: outcomes.append((err, res))
    )
    assert future.result(timeout=5) == "0x5"
    assert outcomes == [(None, "0x5")]


def test_defer_error(requests, transport):
    transport.fail("eth_blockNumber", -32000, "boom")
    outcomes = []
    future = requests.defer(
        requests.request, "eth_blockNumber", callback=lambda err, res: outcomes.append((err, res))
    )
    err = future.exception(timeout=5)
    assert isinstance(err, RpcError)
    assert len(outcomes) == 1
    assert outcomes[0][0] is err
    assert outcomes[0][1] is None


def test_defer_callback_error_does_not_change_outcome(requests, transport):
    transport.respond("eth_blockNumber", "0x5")
    calls = []

    def callback(err, result):
        calls.append((err, result))
        raise ValueError("listener bug")

    future = requests.defer(requests.request, "eth_blockNumber", callback=callback)
    assert future.result(timeout=5) == "0x5"
    # Called once, never again with its own error.
    assert calls == [(None, "0x5")]


def test_concurrent_error_isolation(client, transport):
    barrier = threading.Barrier(2, timeout=5)

    def failing(payload):
        barrier.wait()
        return {"error": {"code": -32000, "message": "header not found"}}

    def succeeding(payload):
        barrier.wait()
        return {"result": "0x2a"}

    transport.respond_with("eth_getBalance", failing)
    transport.respond_with("eth_blockNumber", succeeding)
    owner = "0x1e59ce931b4cfea3fe4b875411e280e173cb7a9c"
    failed = client.eth.get_balance_async(owner)
    succeeded = client.eth.get_block_number_async()

    assert succeeded.result(timeout=5) == 42
    err = failed.exception(timeout=5)
    assert isinstance(err, RpcError)
    assert err.message == "header not found"


def test_concurrent_responses_go_to_their_callers(client, transport):
    transport.respond_with(
        "eth_getTransactionCount", lambda payload: {"result": payload["params"][1]}
    )
    futures = {
        number: client.eth.get_transaction_count_async(
            "0x1e59ce931b4cfea3fe4b875411e280e173cb7a9c", number
        )
        for number in range(1, 30)
    }
    assert {n: f.result(timeout=5) for n, f in futures.items()} == {n: n for n in futures}


def test_close_closes_transport(transport, mocker):
    close = mocker.patch.object(type(transport), "close")
    manager = RequestManager(transport)
    manager.defer(lambda: None).result(timeout=5)
    manager.close()
    close.assert_called_once_with()
