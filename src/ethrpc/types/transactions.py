from typing import Annotated, Any, Optional

from eth_utils import to_hex
from hexbytes import HexBytes
from pydantic import BeforeValidator, Field, PlainSerializer

from ethrpc.types.address import AddressType
from ethrpc.types.basic import HexBytesType, HexInt
from ethrpc.types.events import Log
from ethrpc.units import is_currency_value, parse_currency_value
from ethrpc.utils.basemodel import BaseModel
from ethrpc.utils.misc import log_instead_of_fail, to_int


def _value_validator(value: Any) -> int:
    if is_currency_value(value):
        return parse_currency_value(value)

    return to_int(value)


CurrencyValue = Annotated[
    int,
    BeforeValidator(_value_validator),
    PlainSerializer(lambda v: hex(v), when_used="json"),
]
"""
An integer amount that also accepts hex-strs and ``"<amount> <unit>"`` strings.
"""


class Transaction(BaseModel):
    """
    A transaction, as returned by ``eth_getTransactionByHash`` and friends.
    """

    hash: HexBytesType
    nonce: HexInt = 0

    # NOTE: These are null while the transaction is pending.
    block_hash: Optional[HexBytesType] = Field(default=None, alias="blockHash")
    block_number: Optional[HexInt] = Field(default=None, alias="blockNumber")
    transaction_index: Optional[HexInt] = Field(default=None, alias="transactionIndex")

    sender: AddressType = Field(alias="from")

    # NOTE: Contract-creations have no receiver.
    receiver: Optional[AddressType] = Field(default=None, alias="to")

    value: HexInt = 0
    gas_price: Optional[HexInt] = Field(default=None, alias="gasPrice")
    gas: HexInt = 0
    input: HexBytesType = HexBytes(b"")
    max_fee: Optional[HexInt] = Field(default=None, alias="maxFeePerGas")
    max_priority_fee: Optional[HexInt] = Field(default=None, alias="maxPriorityFeePerGas")
    chain_id: Optional[HexInt] = Field(default=None, alias="chainId")
    type: Optional[HexInt] = None

    @log_instead_of_fail(default="<Transaction>")
    def __repr__(self) -> str:
        return f"<Transaction {to_hex(self.hash)}>"

    @property
    def is_pending(self) -> bool:
        return self.block_number is None


class TransactionReceipt(BaseModel):
    """
    The receipt of a mined transaction.
    """

    transaction_hash: HexBytesType = Field(alias="transactionHash")
    transaction_index: HexInt = Field(alias="transactionIndex")
    block_hash: HexBytesType = Field(alias="blockHash")
    block_number: HexInt = Field(alias="blockNumber")
    sender: Optional[AddressType] = Field(default=None, alias="from")
    receiver: Optional[AddressType] = Field(default=None, alias="to")
    cumulative_gas_used: HexInt = Field(alias="cumulativeGasUsed")
    gas_used: HexInt = Field(alias="gasUsed")
    effective_gas_price: Optional[HexInt] = Field(default=None, alias="effectiveGasPrice")

    # NOTE: Only set when the transaction created a contract.
    contract_address: Optional[AddressType] = Field(default=None, alias="contractAddress")

    logs: list[Log] = []
    logs_bloom: Optional[HexBytesType] = Field(default=None, alias="logsBloom")

    # NOTE: Pre-byzantium receipts carry a state root instead.
    status: Optional[HexInt] = None

    @log_instead_of_fail(default="<TransactionReceipt>")
    def __repr__(self) -> str:
        return f"<TransactionReceipt {to_hex(self.transaction_hash)}>"

    @property
    def failed(self) -> bool:
        return self.status == 0


class TransactionRequest(BaseModel):
    """
    The parameters of ``eth_sendTransaction``, ``eth_call`` and ``eth_estimateGas``.
    Amounts accept ints, hex-strs or currency strings such as ``"1 ether"``.
    """

    sender: Optional[AddressType] = Field(default=None, alias="from")
    receiver: Optional[AddressType] = Field(default=None, alias="to")
    value: Optional[CurrencyValue] = None
    gas_limit: Optional[HexInt] = Field(default=None, alias="gas")
    gas_price: Optional[CurrencyValue] = Field(default=None, alias="gasPrice")
    max_fee: Optional[CurrencyValue] = Field(default=None, alias="maxFeePerGas")
    max_priority_fee: Optional[CurrencyValue] = Field(
        default=None, alias="maxPriorityFeePerGas"
    )
    data: Optional[HexBytesType] = None
    nonce: Optional[HexInt] = None

    @classmethod
    def from_kwargs(cls, **kwargs) -> "TransactionRequest":
        """
        Create a request from Python names or wire names alike, such as
        ``sender=`` or ``from_=``.
        """
        if "from_" in kwargs:
            kwargs["from"] = kwargs.pop("from_")

        return cls.model_validate(kwargs)


__all__ = ["CurrencyValue", "Transaction", "TransactionReceipt", "TransactionRequest"]
