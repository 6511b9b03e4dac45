import time
from typing import TYPE_CHECKING, Any, Optional, Union

from eth_utils import is_hex, to_hex
from hexbytes import HexBytes

from ethrpc.exceptions import TransactionTimeoutError
from ethrpc.logging import logger
from ethrpc.managers.filters import Filter, FilterSpec, Formatter, Listener, SyncingWatcher
from ethrpc.modules.base import ModuleAPI, deferrable
from ethrpc.types.address import AddressType, RawAddress
from ethrpc.types.blocks import Block, SyncingStatus
from ethrpc.types.events import FilterOptions, Log
from ethrpc.types.transactions import Transaction, TransactionReceipt, TransactionRequest
from ethrpc.types.vm import BlockID, ContractCode
from ethrpc.utils.misc import is_block_tag, to_address, to_hex_data, to_int, to_quantity

if TYPE_CHECKING:
    from ethrpc.contracts.base import ContractFactory

TransactionLike = Union[TransactionRequest, dict]


def _is_block_hash(block_id: Any) -> bool:
    if isinstance(block_id, bytes):
        return len(block_id) == 32

    return isinstance(block_id, str) and is_hex(block_id) and len(block_id) == 66


class EthModule(ModuleAPI):
    """
    The ``eth`` RPC namespace: chain state, transactions, contracts and filters.
    Every ``get_*`` method has a deferred ``get_*_async`` twin.
    """

    def _block_param(self, block_id: Optional[BlockID]) -> str:
        block_id = self.config.default_block if block_id is None else block_id
        if is_block_tag(block_id):
            return str(block_id)

        elif _is_block_hash(block_id):
            return to_hex_data(block_id)

        return to_quantity(block_id)

    def _by_block(self, by_number: str, by_hash: str, block_id: BlockID, *params) -> Any:
        # Hashes use the ``ByHash`` variant of the RPC.
        if _is_block_hash(block_id):
            return self._request(by_hash, [to_hex_data(block_id), *params])

        return self._request(by_number, [self._block_param(block_id), *params])

    def _prepare_transaction(
        self, txn: Optional[TransactionLike] = None, **kwargs
    ) -> TransactionRequest:
        data = (
            txn.model_dump(exclude_none=True)
            if isinstance(txn, TransactionRequest)
            else dict(txn or {})
        )
        request = TransactionRequest.from_kwargs(**{**data, **kwargs})
        if request.sender is None and self.config.default_account is not None:
            request = request.model_copy(update={"sender": self.config.default_account})

        return request

    @deferrable
    def get_protocol_version(self) -> str:
        return self._request("eth_protocolVersion")

    @deferrable
    def get_syncing(self) -> Union[bool, SyncingStatus]:
        """
        ``False`` when the node is not syncing, its progress otherwise.
        """
        result = self._request("eth_syncing")
        return SyncingStatus.model_validate(result) if result else False

    @deferrable
    def get_coinbase(self) -> AddressType:
        return to_address(self._request("eth_coinbase"))

    @deferrable
    def get_mining(self) -> bool:
        return bool(self._request("eth_mining"))

    @deferrable
    def get_hashrate(self) -> int:
        return to_int(self._request("eth_hashrate"))

    @deferrable
    def get_gas_price(self) -> int:
        return to_int(self._request("eth_gasPrice"))

    @deferrable
    def get_chain_id(self) -> int:
        return to_int(self._request("eth_chainId"))

    @deferrable
    def get_accounts(self) -> list[AddressType]:
        return [to_address(a) for a in self._request("eth_accounts") or []]

    @deferrable
    def get_block_number(self) -> int:
        return to_int(self._request("eth_blockNumber"))

    @deferrable
    def get_balance(self, address: RawAddress, block_identifier: Optional[BlockID] = None) -> int:
        """
        Get the balance of an account, in wei.

        Args:
            address (RawAddress): The account.
            block_identifier (Optional[BlockID]): The block. Defaults to the
              configured default block.

        Returns:
            int
        """
        params = [to_address(address), self._block_param(block_identifier)]
        return to_int(self._request("eth_getBalance", params))

    @deferrable
    def get_storage_at(
        self, address: RawAddress, position: int, block_identifier: Optional[BlockID] = None
    ) -> HexBytes:
        params = [to_address(address), to_quantity(position), self._block_param(block_identifier)]
        return HexBytes(self._request("eth_getStorageAt", params))

    @deferrable
    def get_code(self, address: RawAddress, block_identifier: Optional[BlockID] = None) -> HexBytes:
        params = [to_address(address), self._block_param(block_identifier)]
        return HexBytes(self._request("eth_getCode", params))

    @deferrable
    def get_block(
        self, block_identifier: Optional[BlockID] = None, full_transactions: bool = False
    ) -> Optional[Block]:
        """
        Get a block by number, hash or tag.

        Args:
            block_identifier (Optional[BlockID]): The block. Defaults to the
              configured default block.
            full_transactions (bool): ``True`` to include full transactions
              instead of their hashes.

        Returns:
            Optional[:class:`~ethrpc.types.blocks.Block`]: ``None`` when the node
            does not know the block.
        """
        result = self._by_block(
            "eth_getBlockByNumber", "eth_getBlockByHash", block_identifier, full_transactions
        )
        return Block.model_validate(result) if result else None

    @deferrable
    def get_block_transaction_count(self, block_identifier: BlockID) -> int:
        result = self._by_block(
            "eth_getBlockTransactionCountByNumber",
            "eth_getBlockTransactionCountByHash",
            block_identifier,
        )
        return to_int(result or 0)

    @deferrable
    def get_block_uncle_count(self, block_identifier: BlockID) -> int:
        result = self._by_block(
            "eth_getUncleCountByBlockNumber", "eth_getUncleCountByBlockHash", block_identifier
        )
        return to_int(result or 0)

    @deferrable
    def get_uncle(self, block_identifier: BlockID, index: int) -> Optional[Block]:
        result = self._by_block(
            "eth_getUncleByBlockNumberAndIndex",
            "eth_getUncleByBlockHashAndIndex",
            block_identifier,
            to_quantity(index),
        )
        return Block.model_validate(result) if result else None

    @deferrable
    def get_transaction(self, transaction_hash: Union[str, bytes]) -> Optional[Transaction]:
        result = self._request("eth_getTransactionByHash", [to_hex_data(transaction_hash)])
        return Transaction.model_validate(result) if result else None

    @deferrable
    def get_transaction_from_block(
        self, block_identifier: BlockID, index: int
    ) -> Optional[Transaction]:
        result = self._by_block(
            "eth_getTransactionByBlockNumberAndIndex",
            "eth_getTransactionByBlockHashAndIndex",
            block_identifier,
            to_quantity(index),
        )
        return Transaction.model_validate(result) if result else None

    @deferrable
    def get_transaction_receipt(
        self, transaction_hash: Union[str, bytes]
    ) -> Optional[TransactionReceipt]:
        """
        Get the receipt of a transaction, or ``None`` while it is pending.
        """
        result = self._request("eth_getTransactionReceipt", [to_hex_data(transaction_hash)])
        return TransactionReceipt.model_validate(result) if result else None

    @deferrable
    def get_transaction_count(
        self, address: RawAddress, block_identifier: Optional[BlockID] = None
    ) -> int:
        params = [to_address(address), self._block_param(block_identifier)]
        return to_int(self._request("eth_getTransactionCount", params))

    @deferrable
    def send_transaction(self, txn: Optional[TransactionLike] = None, **kwargs) -> HexBytes:
        """
        Ask the node to sign and send a transaction from one of its accounts.

        Usage example::

            client.eth.send_transaction(receiver=receiver, value="1 ether")

        Args:
            txn (Optional[Union[TransactionRequest, dict]]): The transaction.
            **kwargs: Transaction fields, overriding the ones in ``txn``.
              The sender defaults to the configured default account.

        Returns:
            HexBytes: The transaction hash.
        """
        request = self._prepare_transaction(txn, **kwargs)
        return HexBytes(self._request("eth_sendTransaction", [request.to_rpc()]))

    @deferrable
    def send_raw_transaction(self, signed_transaction: Union[str, bytes]) -> HexBytes:
        return HexBytes(
            self._request("eth_sendRawTransaction", [to_hex_data(signed_transaction)])
        )

    @deferrable
    def sign(self, address: RawAddress, data: Union[str, bytes]) -> HexBytes:
        return HexBytes(self._request("eth_sign", [to_address(address), to_hex_data(data)]))

    @deferrable
    def call(
        self,
        txn: Optional[TransactionLike] = None,
        block_identifier: Optional[BlockID] = None,
        **kwargs,
    ) -> HexBytes:
        """
        Execute a message call without creating a transaction.

        Returns:
            HexBytes: The return data.
        """
        request = self._prepare_transaction(txn, **kwargs)
        params = [request.to_rpc(), self._block_param(block_identifier)]
        return HexBytes(self._request("eth_call", params))

    @deferrable
    def estimate_gas(self, txn: Optional[TransactionLike] = None, **kwargs) -> int:
        request = self._prepare_transaction(txn, **kwargs)
        return to_int(self._request("eth_estimateGas", [request.to_rpc()]))

    @deferrable
    def get_logs(self, options: Union[FilterOptions, dict, None] = None, **kwargs) -> list[Log]:
        """
        Get the logs matching the given filter options, such as
        ``from_block``, ``to_block``, ``address`` and ``topics``.
        """
        data = (
            options.model_dump(exclude_none=True)
            if isinstance(options, FilterOptions)
            else dict(options or {})
        )
        filter_options = FilterOptions.model_validate({**data, **kwargs})
        return [
            Log.model_validate(log)
            for log in self._request("eth_getLogs", [filter_options.to_rpc()]) or []
        ]

    @deferrable
    def wait_for_transaction_receipt(
        self,
        transaction_hash: Union[str, bytes],
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> TransactionReceipt:
        """
        Wait for a transaction to be mined.

        Raises:
            :class:`~ethrpc.exceptions.TransactionTimeoutError`: When no receipt shows
              up within the timeout.
        """
        timeout = self.config.transaction_acceptance_timeout if timeout is None else timeout
        poll_interval = self.config.poll_interval if poll_interval is None else poll_interval
        deadline = time.monotonic() + timeout
        tx_hash = to_hex(HexBytes(transaction_hash))
        while True:
            if receipt := self.get_transaction_receipt(tx_hash):
                return receipt

            elif time.monotonic() >= deadline:
                raise TransactionTimeoutError(tx_hash, timeout)

            logger.debug(f"Waiting for receipt of '{tx_hash}'.")
            time.sleep(poll_interval)

    @property
    def protocol_version(self) -> str:
        return self.get_protocol_version()

    @property
    def syncing(self) -> Union[bool, SyncingStatus]:
        return self.get_syncing()

    @property
    def coinbase(self) -> AddressType:
        return self.get_coinbase()

    @property
    def mining(self) -> bool:
        return self.get_mining()

    @property
    def hashrate(self) -> int:
        return self.get_hashrate()

    @property
    def gas_price(self) -> int:
        return self.get_gas_price()

    @property
    def chain_id(self) -> int:
        return self.get_chain_id()

    @property
    def accounts(self) -> list[AddressType]:
        return self.get_accounts()

    @property
    def block_number(self) -> int:
        return self.get_block_number()

    @property
    def default_account(self) -> Optional[AddressType]:
        return self.config.default_account

    @property
    def default_block(self) -> Union[int, str]:
        return self.config.default_block

    def filter(
        self,
        options: FilterSpec,
        listener: Optional[Listener] = None,
        formatter: Optional[Formatter] = None,
    ) -> Filter:
        """
        Install a filter: ``"latest"`` for new blocks, ``"pending"`` for pending
        transactions, or log filter options. Watching starts right away when a
        listener is given.

        Usage example::

            def on_blocks(err, block_hashes):
                ...

            block_filter = client.eth.filter("latest", on_blocks)
            ...
            block_filter.stop_watching()

        Returns:
            :class:`~ethrpc.managers.filters.Filter`
        """
        new_filter = self.client.filters.new_filter(
            options,
            formatter=formatter,
            poll_interval=self.config.poll_interval,
            notify_empty=self.config.notify_empty_changes,
        )
        if listener is not None:
            new_filter.watch(listener)

        return new_filter

    def is_syncing(self, listener: Optional[Listener] = None) -> SyncingWatcher:
        """
        Watch the syncing state of the node. Listeners are called when syncing starts
        (with ``True``, then the status), progresses and stops (with ``False``).
        """
        watcher = self.client.filters.new_syncing_watcher(poll_interval=self.config.poll_interval)
        watcher.watch(listener)
        return watcher

    def contract(self, abi: Any, bytecode: Optional[ContractCode] = None) -> "ContractFactory":
        """
        Create a factory for contracts with the given ABI.

        Args:
            abi: The ABI, as JSON or as a list of items.
            bytecode (Optional[Union[str, bytes]]): The deployment bytecode, for
              :meth:`~ethrpc.contracts.base.ContractFactory.deploy`.

        Returns:
            :class:`~ethrpc.contracts.base.ContractFactory`
        """
        from ethrpc.contracts.base import ContractFactory

        return ContractFactory(self.client, abi, bytecode=bytecode)
