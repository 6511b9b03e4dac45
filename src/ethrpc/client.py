from decimal import Decimal
from typing import Any, Optional, Union

from eth_typing import ChecksumAddress, HexStr
from eth_utils import is_address as _is_address
from eth_utils import is_checksum_address as _is_checksum_address
from eth_utils import keccak
from eth_utils import to_checksum_address as _to_checksum_address
from eth_utils import to_hex as _to_hex
from eth_utils import to_text as _to_text
from hexbytes import HexBytes

from ethrpc.api.transport import TransportAPI
from ethrpc.config import ClientConfig
from ethrpc.logging import logger
from ethrpc.managers.filters import FilterManager
from ethrpc.managers.requests import RequestManager
from ethrpc.modules.eth import EthModule
from ethrpc.modules.net import NetModule
from ethrpc.modules.version import VersionModule
from ethrpc.units import Amount
from ethrpc.units import from_wei as _from_wei
from ethrpc.units import to_wei as _to_wei
from ethrpc.utils.misc import to_int as _to_int


class Client:
    """
    A JSON-RPC client of an Ethereum node.

    Usage example::

        from ethrpc import Client
        from ethrpc_http import HTTPTransport

        with Client(HTTPTransport(uri="http://127.0.0.1:8545")) as client:
            balance = client.eth.get_balance(address)
            print(client.from_wei(balance, "ether"))

    Args:
        transport (:class:`~ethrpc.api.transport.TransportAPI`): How to reach the node.
        config (Optional[:class:`~ethrpc.config.ClientConfig`]): Defaults to the
          configuration from the environment.
    """

    eth: EthModule
    net: NetModule
    version: VersionModule

    def __init__(self, transport: TransportAPI, config: Optional[ClientConfig] = None):
        config = config or ClientConfig.load()
        _apply_request_timeout(transport, config)
        requests = RequestManager(transport, max_workers=config.max_workers)
        filters = FilterManager(
            requests,
            poll_interval=config.poll_interval,
            notify_empty_changes=config.notify_empty_changes,
        )
        self._setup(config, requests, filters)
        logger.debug(f"Created client for {transport!r}.")

    def _setup(self, config: ClientConfig, requests: RequestManager, filters: FilterManager):
        self.config = config
        self.requests = requests
        self.filters = filters
        self.eth = EthModule(self)
        self.net = NetModule(self)
        self.version = VersionModule(self)

    def __repr__(self) -> str:
        return f"<Client {self.transport!r}>"

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def transport(self) -> TransportAPI:
        return self.requests.transport

    def set_transport(self, transport: TransportAPI):
        """
        Send all further requests through the given transport.
        Installed filters live on the previous node, so reset them first.
        """
        _apply_request_timeout(transport, self.config)
        self.requests.transport = transport

    def is_connected(self) -> bool:
        return self.transport.is_connected()

    def with_config(self, **overrides: Any) -> "Client":
        """
        A client with some configuration changed. It shares the transport, the
        request dispatcher and the filter scheduler with this client.

        Usage example::

            alice = client.with_config(default_account=alice_address)
            alice.eth.send_transaction(receiver=bob_address, value="1 ether")

        Raises:
            :class:`~ethrpc.exceptions.ConfigError`: When a value is invalid.
        """
        view = object.__new__(type(self))
        view._setup(self.config.merge(**overrides), self.requests, self.filters)
        return view

    def reset(self, keep_syncing: bool = False):
        """
        Stop watching every filter and uninstall them.

        Args:
            keep_syncing (bool): Set to ``True`` to keep
              :meth:`~ethrpc.modules.eth.EthModule.is_syncing` watchers running.
        """
        self.filters.reset(keep_syncing=keep_syncing)

    def close(self):
        """
        Stop every filter, the scheduler and the worker pool, and close the transport.
        """
        self.filters.close()
        self.requests.close()

    @staticmethod
    def sha3(value: Union[str, bytes], encoding: Optional[str] = None) -> HexBytes:
        """
        The keccak-256 hash of the given value.

        Args:
            value (Union[str, bytes]): Text, or bytes.
            encoding (Optional[str]): ``"hex"`` when ``value`` is a hex-str to hash
              as bytes.

        Returns:
            HexBytes
        """
        if isinstance(value, bytes):
            return HexBytes(keccak(value))

        elif encoding == "hex":
            return HexBytes(keccak(hexstr=value))

        return HexBytes(keccak(text=value))

    @staticmethod
    def to_hex(value: Any) -> HexStr:
        """
        Hex-encode a value. Text is encoded as UTF-8.
        """
        if isinstance(value, str):
            return _to_hex(text=value)

        return _to_hex(value)

    @staticmethod
    def to_text(value: Union[str, bytes]) -> str:
        """
        Decode a UTF-8 value, given as a hex-str or bytes.
        """
        if isinstance(value, str):
            return _to_text(hexstr=value)

        return _to_text(value)

    @staticmethod
    def from_text(value: str, padding: int = 0) -> HexStr:
        """
        Hex-encode text as UTF-8, right-padded with zero bytes to ``padding`` bytes.
        """
        return _to_hex(value.encode("utf8").ljust(padding, b"\x00"))

    @staticmethod
    def to_int(value: Any) -> int:
        return _to_int(value)

    @staticmethod
    def from_int(value: int) -> HexStr:
        return HexStr(hex(value))

    @staticmethod
    def to_wei(amount: Amount, unit: str = "ether") -> int:
        return _to_wei(amount, unit)

    @staticmethod
    def from_wei(amount: Union[int, str], unit: str = "ether") -> Decimal:
        return _from_wei(amount, unit)

    @staticmethod
    def is_address(value: Any) -> bool:
        return _is_address(value)

    @staticmethod
    def is_checksum_address(value: Any) -> bool:
        return _is_checksum_address(value)

    @staticmethod
    def to_checksum_address(value: Union[str, bytes]) -> ChecksumAddress:
        return _to_checksum_address(value)


def _apply_request_timeout(transport: TransportAPI, config: ClientConfig):
    # Only an explicitly configured timeout overrides the transport's own.
    if "request_timeout" in config.model_fields_set:
        transport.timeout = config.request_timeout


__all__ = ["Client"]
