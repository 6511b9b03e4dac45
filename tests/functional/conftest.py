import threading
import time
from collections import defaultdict, deque
from collections.abc import Callable
from typing import Any

import pytest
from eth_abi import encode
from eth_utils import keccak, to_checksum_address, to_hex
from pydantic import PrivateAttr

from ethrpc import Client, ClientConfig
from ethrpc.api.transport import TransportAPI

OWNER = to_checksum_address("0x1e59ce931b4cfea3fe4b875411e280e173cb7a9c")
RECEIVER = to_checksum_address("0xc89d42189f0450c2b2c3c61f58ec5d628176a1e7")
TOKEN_ADDRESS = to_checksum_address("0x274b028b03a250ca03644e6c578d81f019ee1323")

TOKEN_ABI = [
    {
        "type": "constructor",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "supply", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "transfer",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "receiver", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "mint",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "amount", "type": "uint256"}],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "mint",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "receiver", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "info",
        "stateMutability": "pure",
        "inputs": [],
        "outputs": [
            {"name": "name", "type": "string"},
            {"name": "decimals", "type": "uint8"},
        ],
    },
    {
        "type": "event",
        "name": "Transfer",
        "anonymous": False,
        "inputs": [
            {"name": "sender", "type": "address", "indexed": True},
            {"name": "receiver", "type": "address", "indexed": True},
            {"name": "amount", "type": "uint256", "indexed": False},
        ],
    },
    {
        "type": "event",
        "name": "Memo",
        "anonymous": False,
        "inputs": [
            {"name": "amount", "type": "uint256", "indexed": False},
            {"name": "author", "type": "address", "indexed": True},
            {"name": "text", "type": "string", "indexed": False},
            {"name": "kind", "type": "uint8", "indexed": True},
        ],
    },
]
TOKEN_BYTECODE = "0x6080604052"

TRANSFER_TOPIC = keccak(text="Transfer(address,address,uint256)")


class FakeTransport(TransportAPI):
    """
    A scripted node. Responses are queued per method; the last queued
    response of a method keeps being returned once the others are used up.
    """

    name: str = "fake"
    connected: bool = True

    _responses: dict = PrivateAttr(default_factory=lambda: defaultdict(deque))
    _calls: list = PrivateAttr(default_factory=list)
    _lock: Any = PrivateAttr(default_factory=threading.Lock)

    @property
    def connection_str(self) -> str:
        return "fake://node"

    def respond(self, method: str, *results: Any) -> "FakeTransport":
        for result in results:
            self._queue(method, ("result", result))

        return self

    def fail(self, method: str, code: int, message: str, data: Any = None) -> "FakeTransport":
        error = {"code": code, "message": message}
        if data is not None:
            error["data"] = data

        self._queue(method, ("error", error))
        return self

    def raise_error(self, method: str, err: Exception) -> "FakeTransport":
        self._queue(method, ("raise", err))
        return self

    def respond_raw(self, method: str, response: Any) -> "FakeTransport":
        self._queue(method, ("raw", response))
        return self

    def respond_with(self, method: str, handler: Callable[[dict], dict]) -> "FakeTransport":
        """
        ``handler`` gets the request payload and returns the body of the response,
        i.e. a ``result`` or an ``error`` member.
        """
        self._queue(method, ("handler", handler))
        return self

    def _queue(self, method: str, entry: tuple):
        with self._lock:
            self._responses[method].append(entry)

    @property
    def calls(self) -> list[dict]:
        with self._lock:
            return list(self._calls)

    def calls_to(self, method: str) -> list[list]:
        return [c["params"] for c in self.calls if c["method"] == method]

    def send(self, payload: dict) -> Any:
        with self._lock:
            self._calls.append(payload)
            queue = self._responses.get(payload["method"])
            if not queue:
                message = f"the method {payload['method']} does not exist/is not available"
                entry: tuple = ("error", {"code": -32601, "message": message})
            else:
                entry = queue.popleft() if len(queue) > 1 else queue[0]

        kind, value = entry
        envelope = {"jsonrpc": "2.0", "id": payload["id"]}
        if kind == "result":
            return {**envelope, "result": value}
        elif kind == "error":
            return {**envelope, "error": value}
        elif kind == "raise":
            raise value
        elif kind == "handler":
            return {**envelope, **value(payload)}

        return value

    def is_connected(self) -> bool:
        return self.connected


def wait_for(condition: Callable[[], bool], timeout: float = 5.0, interval: float = 0.005) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True

        time.sleep(interval)

    return condition()


def make_log(
    address: str = TOKEN_ADDRESS,
    topics: Any = None,
    data: bytes = b"",
    block_number: int = 1,
    log_index: int = 0,
) -> dict:
    return {
        "address": address.lower(),
        "topics": [to_hex(t) for t in topics or []],
        "data": to_hex(data),
        "blockHash": to_hex(keccak(text=f"block {block_number}")),
        "blockNumber": hex(block_number),
        "logIndex": hex(log_index),
        "transactionHash": to_hex(keccak(text=f"tx {block_number} {log_index}")),
        "transactionIndex": "0x0",
        "removed": False,
    }


def make_transfer_log(sender: str, receiver: str, amount: int, **kwargs) -> dict:
    topics = [
        TRANSFER_TOPIC,
        encode(["address"], [sender]),
        encode(["address"], [receiver]),
    ]
    return make_log(topics=topics, data=encode(["uint256"], [amount]), **kwargs)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def config():
    return ClientConfig.load(poll_interval=0.01, transaction_acceptance_timeout=1)


@pytest.fixture
def client(transport, config):
    with Client(transport, config=config) as client:
        yield client


@pytest.fixture
def owner():
    return OWNER


@pytest.fixture
def receiver():
    return RECEIVER


@pytest.fixture
def token_abi():
    return TOKEN_ABI


@pytest.fixture
def token_factory(client, token_abi):
    return client.eth.contract(token_abi, bytecode=TOKEN_BYTECODE)


@pytest.fixture
def token(token_factory):
    return token_factory.at(TOKEN_ADDRESS)


@pytest.fixture
def block_data():
    return {
        "number": "0x1b4",
        "hash": to_hex(keccak(text="block 436")),
        "parentHash": to_hex(keccak(text="block 435")),
        "nonce": "0x0000000000000042",
        "miner": OWNER.lower(),
        "difficulty": "0x4ea3f27bc",
        "totalDifficulty": "0x78ed983323d",
        "extraData": "0x476574682f4c5649562f76312e302e302f6c696e75782f676f312e342e32",
        "size": "0x220",
        "gasLimit": "0x1388",
        "gasUsed": "0x0",
        "timestamp": "0x55ba467c",
        "transactions": [to_hex(keccak(text="tx 436 0"))],
        "uncles": [],
    }
