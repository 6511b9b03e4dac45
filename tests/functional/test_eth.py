from decimal import Decimal

import pytest
from eth_utils import keccak, to_hex
from hexbytes import HexBytes

from ethrpc import Client
from ethrpc.exceptions import ConfigError, TransactionTimeoutError
from ethrpc.types.blocks import Block, SyncingStatus
from ethrpc.types.transactions import Transaction, TransactionReceipt, TransactionRequest
from tests.functional.conftest import OWNER, RECEIVER, TOKEN_ADDRESS, FakeTransport, make_log

TX_HASH = to_hex(keccak(text="tx 436 0"))


@pytest.fixture
def transaction_data():
    return {
        "hash": TX_HASH,
        "nonce": "0x15",
        "blockHash": to_hex(keccak(text="block 436")),
        "blockNumber": "0x1b4",
        "transactionIndex": "0x0",
        "from": OWNER.lower(),
        "to": RECEIVER.lower(),
        "value": "0xde0b6b3a7640000",
        "gasPrice": "0x4a817c800",
        "gas": "0x5208",
        "input": "0x",
        "type": "0x0",
    }


@pytest.fixture
def receipt_data():
    return {
        "transactionHash": TX_HASH,
        "transactionIndex": "0x0",
        "blockHash": to_hex(keccak(text="block 436")),
        "blockNumber": "0x1b4",
        "from": OWNER.lower(),
        "to": None,
        "cumulativeGasUsed": "0x33bc",
        "gasUsed": "0x4dc",
        "contractAddress": TOKEN_ADDRESS.lower(),
        "logs": [make_log(block_number=436)],
        "status": "0x1",
    }


@pytest.mark.parametrize(
    "method,rpc_method,result,expected",
    [
        ("get_block_number", "eth_blockNumber", "0x1b4", 436),
        ("get_gas_price", "eth_gasPrice", "0x4a817c800", 20_000_000_000),
        ("get_chain_id", "eth_chainId", "0x539", 1337),
        ("get_hashrate", "eth_hashrate", "0x0", 0),
        ("get_mining", "eth_mining", False, False),
        ("get_protocol_version", "eth_protocolVersion", "0x41", "0x41"),
        ("get_coinbase", "eth_coinbase", OWNER.lower(), OWNER),
        ("get_accounts", "eth_accounts", [OWNER.lower(), RECEIVER.lower()], [OWNER, RECEIVER]),
    ],
)
def test_simple_methods(client, transport, method, rpc_method, result, expected):
    transport.respond(rpc_method, result)
    assert getattr(client.eth, method)() == expected
    assert transport.calls_to(rpc_method) == [[]]


def test_properties(client, transport):
    transport.respond("eth_blockNumber", "0x2")
    transport.respond("eth_chainId", "0x1")
    assert client.eth.block_number == 2
    assert client.eth.chain_id == 1


def test_get_syncing(client, transport):
    transport.respond(
        "eth_syncing",
        False,
        {"startingBlock": "0x0", "currentBlock": "0x1", "highestBlock": "0x2"},
    )
    assert client.eth.get_syncing() is False
    assert client.eth.get_syncing() == SyncingStatus(
        starting_block=0, current_block=1, highest_block=2
    )


def test_get_balance(client, transport):
    transport.respond("eth_getBalance", "0xde0b6b3a7640000")
    assert client.eth.get_balance(OWNER.lower()) == 10**18
    assert transport.calls_to("eth_getBalance") == [[OWNER, "latest"]]


@pytest.mark.parametrize(
    "block_id,expected",
    [(0, "0x0"), (436, "0x1b4"), ("0x1b4", "0x1b4"), ("pending", "pending"), ("safe", "safe")],
)
def test_block_identifier(client, transport, block_id, expected):
    transport.respond("eth_getBalance", "0x0")
    client.eth.get_balance(OWNER, block_id)
    assert transport.calls_to("eth_getBalance") == [[OWNER, expected]]


def test_default_block(client, transport):
    transport.respond("eth_getTransactionCount", "0x3")
    at_block = client.with_config(default_block=100)
    assert at_block.eth.default_block == 100
    assert at_block.eth.get_transaction_count(OWNER) == 3
    assert client.eth.get_transaction_count(OWNER) == 3
    assert transport.calls_to("eth_getTransactionCount") == [[OWNER, "0x64"], [OWNER, "latest"]]


def test_invalid_default_block(client):
    with pytest.raises(ConfigError):
        client.with_config(default_block="newest")


def test_get_code_and_storage(client, transport):
    transport.respond("eth_getCode", "0x6080")
    transport.respond("eth_getStorageAt", "0x" + "00" * 31 + "01")
    assert client.eth.get_code(TOKEN_ADDRESS) == HexBytes("0x6080")
    assert client.eth.get_storage_at(TOKEN_ADDRESS, 10) == HexBytes(1).rjust(32, b"\x00")
    assert transport.calls_to("eth_getStorageAt") == [[TOKEN_ADDRESS, "0xa", "latest"]]


def test_get_block_by_number(client, transport, block_data):
    transport.respond("eth_getBlockByNumber", block_data)
    block = client.eth.get_block(436)
    assert isinstance(block, Block)
    assert block.number == 436
    assert block.gas_limit == 5000
    assert block.miner == OWNER
    assert block.total_difficulty == 0x78ED983323D
    assert block.transactions == [HexBytes(block_data["transactions"][0])]
    assert transport.calls_to("eth_getBlockByNumber") == [["0x1b4", False]]


def test_get_block_by_hash(client, transport, block_data):
    transport.respond("eth_getBlockByHash", block_data)
    block_hash = HexBytes(block_data["hash"])
    assert client.eth.get_block(block_hash).hash == block_hash
    assert client.eth.get_block(block_data["hash"]).hash == block_hash
    assert transport.calls_to("eth_getBlockByHash") == [[block_data["hash"], False]] * 2


def test_get_block_full_transactions(client, transport, block_data, transaction_data):
    transport.respond("eth_getBlockByNumber", {**block_data, "transactions": [transaction_data]})
    block = client.eth.get_block("latest", full_transactions=True)
    assert isinstance(block.transactions[0], Transaction)
    assert transport.calls_to("eth_getBlockByNumber") == [["latest", True]]


def test_get_pending_block(client, transport, block_data):
    transport.respond("eth_getBlockByNumber", {**block_data, "number": None, "hash": None})
    block = client.eth.get_block("pending")
    assert block.is_pending
    assert repr(block) == "<Block pending>"


def test_get_unknown_block(client, transport):
    transport.respond("eth_getBlockByNumber", None)
    assert client.eth.get_block(10**9) is None


def test_block_counts(client, transport, block_data):
    transport.respond("eth_getBlockTransactionCountByNumber", "0x2")
    transport.respond("eth_getUncleCountByBlockHash", "0x1")
    assert client.eth.get_block_transaction_count(436) == 2
    assert client.eth.get_block_uncle_count(block_data["hash"]) == 1


def test_get_uncle(client, transport, block_data):
    transport.respond("eth_getUncleByBlockNumberAndIndex", block_data)
    assert client.eth.get_uncle(437, 0).number == 436
    assert transport.calls_to("eth_getUncleByBlockNumberAndIndex") == [["0x1b5", "0x0"]]


def test_get_transaction(client, transport, transaction_data):
    transport.respond("eth_getTransactionByHash", transaction_data)
    txn = client.eth.get_transaction(HexBytes(TX_HASH))
    assert txn.sender == OWNER
    assert txn.receiver == RECEIVER
    assert txn.value == 10**18
    assert txn.gas == 21000
    assert not txn.is_pending
    assert repr(txn) == f"<Transaction {TX_HASH}>"


def test_get_pending_transaction(client, transport, transaction_data):
    pending = {**transaction_data, "blockHash": None, "blockNumber": None, "transactionIndex": None}
    transport.respond("eth_getTransactionByHash", pending)
    assert client.eth.get_transaction(TX_HASH).is_pending


def test_get_transaction_from_block(client, transport, transaction_data):
    transport.respond("eth_getTransactionByBlockHashAndIndex", transaction_data)
    block_hash = transaction_data["blockHash"]
    assert client.eth.get_transaction_from_block(block_hash, 0).hash == HexBytes(TX_HASH)
    assert transport.calls_to("eth_getTransactionByBlockHashAndIndex") == [[block_hash, "0x0"]]


def test_get_transaction_receipt(client, transport, receipt_data):
    transport.respond("eth_getTransactionReceipt", receipt_data)
    receipt = client.eth.get_transaction_receipt(TX_HASH)
    assert isinstance(receipt, TransactionReceipt)
    assert receipt.contract_address == TOKEN_ADDRESS
    assert receipt.logs[0].block_number == 436
    assert not receipt.failed


def test_get_transaction_receipt_pending(client, transport):
    transport.respond("eth_getTransactionReceipt", None)
    assert client.eth.get_transaction_receipt(TX_HASH) is None


def test_wait_for_transaction_receipt(client, transport, receipt_data):
    transport.respond("eth_getTransactionReceipt", None, None, receipt_data)
    receipt = client.eth.wait_for_transaction_receipt(TX_HASH, poll_interval=0.001)
    assert receipt.transaction_hash == HexBytes(TX_HASH)
    assert len(transport.calls_to("eth_getTransactionReceipt")) == 3


def test_wait_for_transaction_receipt_timeout(client, transport):
    transport.respond("eth_getTransactionReceipt", None)
    with pytest.raises(TransactionTimeoutError) as err:
        client.eth.wait_for_transaction_receipt(TX_HASH, timeout=0.05, poll_interval=0.01)

    assert err.value.transaction_hash == TX_HASH
    assert err.value.timeout == 0.05


def test_send_transaction(client, transport):
    transport.respond("eth_sendTransaction", TX_HASH)
    tx_hash = client.eth.send_transaction(sender=OWNER, receiver=RECEIVER, value="1 ether")
    assert tx_hash == HexBytes(TX_HASH)
    assert transport.calls_to("eth_sendTransaction") == [
        [{"from": OWNER, "to": RECEIVER, "value": "0xde0b6b3a7640000"}]
    ]


def test_send_transaction_wire_names(client, transport):
    transport.respond("eth_sendTransaction", TX_HASH)
    client.eth.send_transaction(
        {"from": OWNER.lower(), "to": RECEIVER, "gas": 21000, "maxFeePerGas": "2 gwei"}
    )
    assert transport.calls_to("eth_sendTransaction") == [
        [{"from": OWNER, "to": RECEIVER, "gas": "0x5208", "maxFeePerGas": "0x77359400"}]
    ]


def test_send_transaction_default_account(client, transport):
    transport.respond("eth_sendTransaction", TX_HASH)
    alice = client.with_config(default_account=OWNER)
    assert alice.eth.default_account == OWNER
    assert client.eth.default_account is None

    request = TransactionRequest(receiver=RECEIVER, value=1)
    alice.eth.send_transaction(request)
    client.eth.send_transaction(request, sender=RECEIVER)
    assert transport.calls_to("eth_sendTransaction") == [
        [{"from": OWNER, "to": RECEIVER, "value": "0x1"}],
        [{"from": RECEIVER, "to": RECEIVER, "value": "0x1"}],
    ]


def test_call(client, transport):
    transport.respond("eth_call", "0x" + "00" * 31 + "2a")
    result = client.eth.call(receiver=TOKEN_ADDRESS, data="0x18160ddd", block_identifier=5)
    assert result == HexBytes(42).rjust(32, b"\x00")
    assert transport.calls_to("eth_call") == [[{"to": TOKEN_ADDRESS, "data": "0x18160ddd"}, "0x5"]]


def test_estimate_gas(client, transport):
    transport.respond("eth_estimateGas", "0x5208")
    assert client.eth.estimate_gas({"to": RECEIVER, "value": 1}) == 21000


def test_send_raw_transaction_and_sign(client, transport):
    transport.respond("eth_sendRawTransaction", TX_HASH)
    transport.respond("eth_sign", "0x" + "ab" * 65)
    assert client.eth.send_raw_transaction(b"\xf8\x6b") == HexBytes(TX_HASH)
    assert transport.calls_to("eth_sendRawTransaction") == [["0xf86b"]]
    assert len(client.eth.sign(OWNER, "0xdeadbeef")) == 65


def test_get_logs(client, transport):
    transport.respond("eth_getLogs", [make_log(), make_log(log_index=1)])
    logs = client.eth.get_logs(from_block=1, to_block="latest", address=TOKEN_ADDRESS)
    assert [log.log_index for log in logs] == [0, 1]
    assert transport.calls_to("eth_getLogs") == [
        [{"fromBlock": "0x1", "toBlock": "latest", "address": TOKEN_ADDRESS}]
    ]


def test_get_logs_topics(client, transport):
    topic = to_hex(keccak(text="Transfer(address,address,uint256)"))
    transport.respond("eth_getLogs", [])
    client.eth.get_logs({"topics": [topic, None, [topic, None]], "address": [TOKEN_ADDRESS]})
    assert transport.calls_to("eth_getLogs") == [
        [{"address": [TOKEN_ADDRESS], "topics": [topic, None, [topic, None]]}]
    ]


def test_deferred_twin(client, transport):
    transport.respond("eth_getBalance", "0x10")
    outcomes = []
    future = client.eth.get_balance_async(OWNER, callback=lambda e, r: outcomes.append((e, r)))
    assert future.result(timeout=5) == 16
    assert outcomes == [(None, 16)]
    assert client.eth.get_balance_async.__name__ == "get_balance_async"


def test_deferred_twin_error(client, transport):
    with pytest.raises(ValueError):
        client.eth.get_balance_async("not an address").result(timeout=5)


def test_net_and_version(client, transport):
    transport.respond("net_listening", True)
    transport.respond("net_peerCount", "0x19")
    transport.respond("net_version", "1")
    transport.respond("web3_clientVersion", "Geth/v1.13.14-stable")
    assert client.net.listening is True
    assert client.net.peer_count == 25
    assert client.version.network == "1"
    assert client.version.get_node_async().result(timeout=5) == "Geth/v1.13.14-stable"


def test_is_connected(client, transport):
    assert client.is_connected()
    transport.connected = False
    assert not client.is_connected()


def test_set_transport(client, transport):
    other = FakeTransport().respond("eth_chainId", "0x5")
    client.set_transport(other)
    assert client.transport is other
    assert client.eth.chain_id == 5
    assert transport.calls == []


def test_helpers():
    assert Client.sha3("") == HexBytes(
        "0xc5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    )
    assert Client.sha3("0x", encoding="hex") == Client.sha3(b"")
    assert Client.to_hex("hi") == "0x6869"
    assert Client.to_hex(255) == "0xff"
    assert Client.to_text("0x6869") == "hi"
    assert Client.from_text("hi", padding=4) == "0x68690000"
    assert Client.to_int("0x1b4") == 436
    assert Client.from_int(436) == "0x1b4"
    assert Client.to_wei("1") == 10**18
    assert Client.from_wei(10**9, "gwei") == Decimal(1)
    assert Client.is_address(OWNER.lower())
    assert Client.to_checksum_address(OWNER.lower()) == OWNER
    assert Client.is_checksum_address(OWNER)
    assert not Client.is_checksum_address("0x1234")
