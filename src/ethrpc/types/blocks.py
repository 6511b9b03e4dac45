import datetime
from typing import Optional, Union

from pydantic import Field

from ethrpc.types.address import AddressType
from ethrpc.types.basic import HexBytesType, HexInt
from ethrpc.types.transactions import Transaction
from ethrpc.utils.basemodel import BaseModel
from ethrpc.utils.misc import EMPTY_BYTES32, log_instead_of_fail


class Block(BaseModel):
    """
    A block, as returned by ``eth_getBlockByNumber`` and ``eth_getBlockByHash``.
    """

    # NOTE: The pending block has neither a number nor a hash.
    number: Optional[HexInt] = None
    hash: Optional[HexBytesType] = None

    # NOTE: Genesis block has no parent hash.
    parent_hash: HexBytesType = Field(default=EMPTY_BYTES32, alias="parentHash")
    nonce: Optional[HexBytesType] = None
    sha3_uncles: Optional[HexBytesType] = Field(default=None, alias="sha3Uncles")
    logs_bloom: Optional[HexBytesType] = Field(default=None, alias="logsBloom")
    transactions_root: Optional[HexBytesType] = Field(default=None, alias="transactionsRoot")
    state_root: Optional[HexBytesType] = Field(default=None, alias="stateRoot")
    receipts_root: Optional[HexBytesType] = Field(default=None, alias="receiptsRoot")
    miner: Optional[AddressType] = None
    difficulty: HexInt = 0

    # NOTE: Post-merge nodes may leave this out.
    total_difficulty: Optional[HexInt] = Field(default=None, alias="totalDifficulty")

    extra_data: HexBytesType = Field(default=b"", alias="extraData")
    size: Optional[HexInt] = None
    gas_limit: HexInt = Field(alias="gasLimit")
    gas_used: HexInt = Field(alias="gasUsed")
    base_fee_per_gas: Optional[HexInt] = Field(default=None, alias="baseFeePerGas")
    timestamp: HexInt
    transactions: list[Union[Transaction, HexBytesType]] = []
    """
    Transaction hashes, or full transactions when requested.
    """

    uncles: list[HexBytesType] = []

    @log_instead_of_fail(default="<Block>")
    def __repr__(self) -> str:
        number = "pending" if self.number is None else self.number
        return f"<Block {number}>"

    @property
    def datetime(self) -> datetime.datetime:
        """
        The block timestamp as a datetime object.
        """
        return datetime.datetime.fromtimestamp(self.timestamp, tz=datetime.timezone.utc)

    @property
    def is_pending(self) -> bool:
        return self.number is None


class SyncingStatus(BaseModel):
    """
    The result of ``eth_syncing`` while the node is syncing.
    """

    starting_block: HexInt = Field(alias="startingBlock")
    current_block: HexInt = Field(alias="currentBlock")
    highest_block: HexInt = Field(alias="highestBlock")


__all__ = ["Block", "SyncingStatus"]
