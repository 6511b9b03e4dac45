from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional, Union

from eth_utils import to_hex
from hexbytes import HexBytes

from ethrpc.exceptions import (
    ABIDecodeError,
    ArgumentsLengthError,
    ContractDataError,
    EthRPCAttributeError,
)
from ethrpc.logging import logger
from ethrpc.managers.filters import Filter, Listener
from ethrpc.modules.base import DeferrableMixin, deferrable
from ethrpc.types.abi import ConstructorABI, EventABI, FunctionABI
from ethrpc.types.address import AddressType, RawAddress
from ethrpc.types.events import ContractLog, FilterOptions, Log
from ethrpc.types.transactions import TransactionReceipt
from ethrpc.types.vm import BlockID, ContractCode
from ethrpc.utils.abi import (
    LogInputABICollection,
    decode_log,
    decode_result,
    encode_arguments,
    encode_call,
    encode_topic,
    get_event_topic,
    parse_abi,
)
from ethrpc.utils.misc import log_instead_of_fail, to_address

if TYPE_CHECKING:
    from ethrpc.client import Client
    from ethrpc.managers.requests import RequestManager


def _select_function_abi(abis: list[FunctionABI], args: Union[tuple, list]) -> FunctionABI:
    args = args or []
    selected_abi = None
    for abi in abis:
        inputs = abi.inputs or []
        if len(args) == len(inputs):
            selected_abi = abi

    if not selected_abi:
        raise ArgumentsLengthError(len(args), inputs=abis)

    return selected_abi


def _to_return_value(abi: FunctionABI, values: tuple) -> Any:
    if not abi.outputs:
        return None

    elif len(abi.outputs) == 1:
        return values[0]

    return values


class ContractMethodHandler(DeferrableMixin):
    """
    A function of a :class:`~ethrpc.contracts.base.ContractInstance`, covering all its
    overloads. The overload is chosen by the number of arguments.

    Usage example::

        token.balanceOf.call(owner)
        token.transfer.send_transaction(receiver, "1 ether", sender=owner)
        token.transfer(receiver, 100)  # Transacts, as transfer() is not constant.
    """

    def __init__(self, contract: "ContractInstance", abis: list[FunctionABI]):
        self.contract = contract
        self.abis = abis

    @log_instead_of_fail(default="<ContractMethodHandler>")
    def __repr__(self) -> str:
        return f"{self.contract!r}.{self.abis[-1].name}"

    def __str__(self) -> str:
        # `method_name(type1 arg1, ...) -> return_type`
        abis = sorted(self.abis, key=lambda abi: len(abi.inputs or []))
        return abis[-1].signature

    @property
    def requests(self) -> "RequestManager":
        return self.contract.client.requests

    @property
    def name(self) -> str:
        return self.abis[-1].name

    def get_data(self, *args) -> HexBytes:
        """
        The calldata of a call with the given arguments.
        """
        abi = _select_function_abi(self.abis, args)
        return encode_call(abi, args)

    def _create_transaction(self, args: tuple, txn: dict) -> tuple[FunctionABI, dict]:
        abi = _select_function_abi(self.abis, args)
        return abi, {**txn, "to": self.contract.address, "data": encode_call(abi, args)}

    @deferrable
    def call(self, *args, block_identifier: Optional[BlockID] = None, **txn) -> Any:
        """
        Execute the function without a transaction and decode what it returns.

        Args:
            *args: The function arguments.
            block_identifier (Optional[BlockID]): The block to call at. Defaults to
              the configured default block.
            **txn: Transaction fields, such as ``sender`` or ``value``.

        Returns:
            Any: ``None`` for no outputs, the value for one output, a tuple otherwise.
        """
        abi, txn = self._create_transaction(args, txn)
        raw_data = self.contract.client.eth.call(txn, block_identifier=block_identifier)
        return _to_return_value(abi, decode_result(abi, raw_data))

    @deferrable
    def send_transaction(self, *args, **txn) -> HexBytes:
        """
        Send a transaction calling the function. The sender defaults to the
        configured default account.

        Returns:
            HexBytes: The transaction hash.
        """
        _, txn = self._create_transaction(args, txn)
        return self.contract.client.eth.send_transaction(txn)

    @deferrable
    def estimate_gas(self, *args, **txn) -> int:
        _, txn = self._create_transaction(args, txn)
        return self.contract.client.eth.estimate_gas(txn)

    def __call__(self, *args, **kwargs) -> Any:
        abi = _select_function_abi(self.abis, args)
        if abi.is_stateful:
            return self.send_transaction(*args, **kwargs)

        return self.call(*args, **kwargs)


class ContractEvent(DeferrableMixin):
    """
    An event of a :class:`~ethrpc.contracts.base.ContractInstance`.
    Indexed arguments can be used to narrow filters down.

    Usage example::

        def on_transfers(err, logs):
            ...

        token.Transfer.watch(on_transfers, sender=owner)
    """

    def __init__(self, contract: "ContractInstance", abi: EventABI):
        self.contract = contract
        self.abi = abi

    @log_instead_of_fail(default="<ContractEvent>")
    def __repr__(self) -> str:
        return self.abi.signature

    @property
    def requests(self) -> "RequestManager":
        return self.contract.client.requests

    @property
    def name(self) -> str:
        return self.abi.name

    @property
    def topic(self) -> HexBytes:
        return get_event_topic(self.abi)

    def decode(self, log: Union[Log, dict]) -> ContractLog:
        """
        Decode a log emitted by this event.

        Raises:
            :class:`~ethrpc.exceptions.ABIDecodeError`: When the log is not this event.
        """
        log = log if isinstance(log, Log) else Log.model_validate(log)
        event_arguments = decode_log(self.abi, log)
        return ContractLog.model_validate(
            {
                **log.model_dump(),
                "event_name": self.abi.name,
                "event_arguments": event_arguments,
            }
        )

    def filter_options(
        self,
        from_block: Optional[BlockID] = None,
        to_block: Optional[BlockID] = None,
        **search_topics,
    ) -> FilterOptions:
        """
        The filter options matching this event on the contract, narrowed down by
        the given indexed argument values. A list of values matches any of them.
        """
        abi_inputs = LogInputABICollection(self.abi)
        topic_names = [i.name for i in abi_inputs.topic_abi_types if i.name]
        invalid_topics = set(search_topics) - set(topic_names)
        if invalid_topics:
            raise ValueError(
                f"{self.abi.name} defines {', '.join(topic_names)} as indexed topics, "
                f"but you provided {', '.join(sorted(invalid_topics))}"
            )

        topic_filter: list = [] if self.abi.anonymous else [self.topic]
        for topic in abi_inputs.topic_abi_types:
            topic_filter.append(encode_topic(topic.type, search_topics.get(topic.name)))

        return FilterOptions(
            from_block=from_block,
            to_block=to_block,
            address=self.contract.address,
            topics=topic_filter,
        )

    def create_filter(
        self,
        from_block: Optional[BlockID] = None,
        to_block: Optional[BlockID] = None,
        **search_topics,
    ) -> Filter:
        """
        Install a filter for this event. Listeners receive decoded
        :class:`~ethrpc.types.events.ContractLog` batches once it is watched.
        """
        options = self.filter_options(from_block, to_block, **search_topics)
        return self.contract.client.eth.filter(options, formatter=self.decode)

    def watch(
        self,
        listener: Listener,
        from_block: Optional[BlockID] = None,
        to_block: Optional[BlockID] = None,
        **search_topics,
    ) -> Filter:
        """
        Install a filter for this event and start watching it.
        """
        event_filter = self.create_filter(from_block, to_block, **search_topics)
        event_filter.watch(listener)
        return event_filter

    @deferrable
    def get_logs(
        self,
        from_block: Optional[BlockID] = None,
        to_block: Optional[BlockID] = None,
        **search_topics,
    ) -> list[ContractLog]:
        """
        Get the decoded logs of this event, with ``eth_getLogs``.
        """
        options = self.filter_options(from_block, to_block, **search_topics)
        return [self.decode(log) for log in self.contract.client.eth.get_logs(options)]


class ContractInstance:
    """
    A contract at an address. Functions and events of its ABI are available with
    ``.`` access.
    """

    def __init__(
        self,
        factory: "ContractFactory",
        address: RawAddress,
        transaction_hash: Optional[Union[str, bytes]] = None,
    ):
        self.factory = factory
        self.address: AddressType = to_address(address)
        # The hash of the deploying transaction, when known.
        self.transaction_hash = HexBytes(transaction_hash) if transaction_hash else None
        self._functions: dict[str, list[FunctionABI]] = {}
        self._events: dict[str, list[EventABI]] = {}
        for abi in factory.abi:
            if isinstance(abi, FunctionABI):
                self._functions.setdefault(abi.name, []).append(abi)
            elif isinstance(abi, EventABI):
                self._events.setdefault(abi.name, []).append(abi)

    @log_instead_of_fail(default="<ContractInstance>")
    def __repr__(self) -> str:
        return f"<Contract {self.address}>"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ContractInstance):
            return NotImplemented

        return self.address == other.address and self.factory.abi == other.factory.abi

    def __hash__(self) -> int:
        return hash(self.address)

    def __dir__(self) -> list[str]:
        return sorted({*super().__dir__(), *self._functions, *self._events})

    @property
    def client(self) -> "Client":
        return self.factory.client

    @property
    def events(self) -> list[ContractEvent]:
        return [ContractEvent(self, abi) for abis in self._events.values() for abi in abis]

    def __getattr__(self, attr_name: str) -> Any:
        """
        Access a function or event on the contract using ``.`` access.

        Usage example::

            result = contract.vote.call()  # Implies a function named "vote" exists.

        Args:
            attr_name (str): The name of the function or event.

        Returns:
            Union[:class:`ContractMethodHandler`, :class:`ContractEvent`]
        """
        functions = self.__dict__.get("_functions", {})
        events = self.__dict__.get("_events", {})
        if attr_name in functions and attr_name in events:
            # NOTE: `__getattr__` *must* raise `AttributeError`
            raise EthRPCAttributeError(f"Contract has corrupted ABI: '{attr_name}' is ambiguous.")

        elif attr_name in functions:
            return ContractMethodHandler(self, functions[attr_name])

        elif attr_name in events:
            if len(events[attr_name]) > 1:
                raise EthRPCAttributeError(
                    f"Multiple events named '{attr_name}' in '{self.address}'. "
                    "Use 'get_event_by_signature' look-up."
                )

            return ContractEvent(self, events[attr_name][0])

        raise EthRPCAttributeError(f"Contract has no attribute '{attr_name}'.")

    def get_event_by_signature(self, signature: str) -> ContractEvent:
        """
        Get an event by its canonical signature, such as ``Transfer(address,address,uint256)``.
        Useful when several events share a name.
        """
        name = signature.split("(")[0].strip()
        for abi in self._events.get(name, []):
            if abi.selector == signature.replace(" ", ""):
                return ContractEvent(self, abi)

        raise ContractDataError(f"No event with signature '{signature}'.")

    def decode_log(self, log: Union[Log, dict]) -> Union[ContractLog, Log]:
        """
        Decode a log with the event that emitted it, matched by its first topic.
        Logs that match no (non-anonymous) event, or whose layout does not fit
        the matching event, come back undecoded.
        """
        log = log if isinstance(log, Log) else Log.model_validate(log)
        if log.topics:
            for event in self.events:
                if event.abi.anonymous or event.topic != log.topics[0]:
                    continue

                try:
                    return event.decode(log)
                except ABIDecodeError as err:
                    logger.debug(f"Unable to decode log {log.log_index} as {event!r}: {err}")
                    return log

        logger.debug(f"Log at index {log.log_index} matches no event of {self!r}.")
        return log

    def all_events(
        self,
        options: Union[FilterOptions, dict, None] = None,
        listener: Optional[Listener] = None,
    ) -> Filter:
        """
        Install a filter for every log of the contract. Logs are decoded with the
        matching event; logs of unknown events are delivered undecoded.

        Args:
            options (Union[FilterOptions, dict, None]): Block range and topics.
              The address is always the contract's.
            listener (Optional[Listener]): Start watching with this listener.

        Returns:
            :class:`~ethrpc.managers.filters.Filter`
        """
        data = (
            options.model_dump(exclude_none=True)
            if isinstance(options, FilterOptions)
            else dict(options or {})
        )
        filter_options = FilterOptions.model_validate({**data, "address": self.address})
        return self.client.eth.filter(filter_options, listener=listener, formatter=self.decode_log)


class ContractFactory(DeferrableMixin):
    """
    Deploys contracts with a given ABI and creates instances of existing ones.

    Usage example::

        factory = client.eth.contract(abi, bytecode=bytecode)
        tx_hash = factory.deploy(1_000, sender=owner)
        token = factory.from_receipt(client.eth.wait_for_transaction_receipt(tx_hash))
    """

    def __init__(
        self,
        client: "Client",
        abi: Union[str, Sequence[Any]],
        bytecode: Optional[ContractCode] = None,
    ):
        self.client = client
        self.abi = parse_abi(abi)
        self.bytecode = HexBytes(bytecode) if bytecode else None

    def __repr__(self) -> str:
        return f"<ContractFactory {len(self.abi)} ABI items>"

    @property
    def requests(self) -> "RequestManager":
        return self.client.requests

    @property
    def constructor(self) -> ConstructorABI:
        for abi in self.abi:
            if isinstance(abi, ConstructorABI):
                return abi

        # Contracts without one get a default constructor.
        return ConstructorABI()

    def at(
        self, address: RawAddress, transaction_hash: Optional[Union[str, bytes]] = None
    ) -> ContractInstance:
        """
        The contract with this ABI at the given address.
        """
        return ContractInstance(self, address, transaction_hash=transaction_hash)

    def from_receipt(self, receipt: TransactionReceipt) -> ContractInstance:
        """
        The contract created by the transaction of the given receipt.

        Raises:
            :class:`~ethrpc.exceptions.ContractDataError`: When the transaction
              did not create a contract.
        """
        if receipt.contract_address is None:
            raise ContractDataError(
                f"Transaction '{to_hex(receipt.transaction_hash)}' did not create a contract."
            )

        return self.at(receipt.contract_address, transaction_hash=receipt.transaction_hash)

    def get_deploy_data(self, *args, bytecode: Optional[ContractCode] = None) -> HexBytes:
        """
        The deployment bytecode followed by the encoded constructor arguments.
        """
        code = HexBytes(bytecode) if bytecode else self.bytecode
        if not code:
            raise ContractDataError("Deploying requires bytecode.")

        return HexBytes(code + encode_arguments(self.constructor, args))

    @deferrable
    def deploy(self, *args, bytecode: Optional[ContractCode] = None, **txn) -> HexBytes:
        """
        Send the transaction deploying a new contract.

        Returns:
            HexBytes: The transaction hash.
        """
        data = self.get_deploy_data(*args, bytecode=bytecode)
        return self.client.eth.send_transaction({**txn, "data": data})

    @deferrable
    def deploy_and_wait(
        self,
        *args,
        bytecode: Optional[ContractCode] = None,
        timeout: Optional[float] = None,
        **txn,
    ) -> ContractInstance:
        """
        Deploy a new contract and wait for it to be mined.
        """
        tx_hash = self.deploy(*args, bytecode=bytecode, **txn)
        receipt = self.client.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        return self.from_receipt(receipt)


__all__ = [
    "ContractEvent",
    "ContractFactory",
    "ContractInstance",
    "ContractMethodHandler",
]
