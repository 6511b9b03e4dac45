from typing import Any, Optional, Union

from eth_utils import to_hex
from hexbytes import HexBytes
from pydantic import Field, field_serializer, field_validator

from ethrpc.types.address import AddressType
from ethrpc.types.basic import HexBytesType, HexInt
from ethrpc.types.vm import BlockTag
from ethrpc.utils.basemodel import BaseModel
from ethrpc.utils.misc import is_block_tag, log_instead_of_fail, to_int


def _validate_block(value: Any) -> Union[int, str, None]:
    if value is None or is_block_tag(value):
        return value

    return to_int(value)


def _serialize_block(value: Union[int, str, None]) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value

    return hex(value)


def _serialize_topic(topic: Any) -> Any:
    if topic is None:
        return None

    elif isinstance(topic, (list, tuple)):
        return [_serialize_topic(t) for t in topic]

    return to_hex(topic)


class FilterOptions(BaseModel):
    """
    The criteria of a log filter, used by ``eth_newFilter`` and ``eth_getLogs``.
    """

    from_block: Optional[Union[int, BlockTag]] = Field(default=None, alias="fromBlock")
    to_block: Optional[Union[int, BlockTag]] = Field(default=None, alias="toBlock")
    address: Optional[Union[AddressType, list[AddressType]]] = None
    topics: list[Union[None, HexBytesType, list[Optional[HexBytesType]]]] = []

    @field_validator("from_block", "to_block", mode="before")
    @classmethod
    def validate_block(cls, value):
        return _validate_block(value)

    @field_validator("topics", mode="before")
    @classmethod
    def validate_topics(cls, value):
        if value is None:
            return []

        # Trailing wildcards have no effect.
        topics = list(value)
        while topics and topics[-1] is None:
            topics.pop()

        return topics

    @field_serializer("from_block", "to_block")
    def serialize_block(self, value, info):
        return _serialize_block(value) if info.mode == "json" else value

    @field_serializer("topics")
    def serialize_topics(self, value, info):
        return [_serialize_topic(t) for t in value] if info.mode == "json" else value

    @property
    def addresses(self) -> list[AddressType]:
        if self.address is None:
            return []

        return self.address if isinstance(self.address, list) else [self.address]

    def to_rpc(self) -> dict:
        data = super().to_rpc()
        if not self.topics:
            data.pop("topics", None)

        return data


class Log(BaseModel):
    """
    A raw log entry, as returned by ``eth_getLogs`` or a log filter.
    """

    address: AddressType
    topics: list[HexBytesType] = []
    data: HexBytesType = HexBytes(b"")

    # NOTE: These are null while the log is pending.
    block_hash: Optional[HexBytesType] = Field(default=None, alias="blockHash")
    block_number: Optional[HexInt] = Field(default=None, alias="blockNumber")
    log_index: Optional[HexInt] = Field(default=None, alias="logIndex")
    transaction_hash: Optional[HexBytesType] = Field(default=None, alias="transactionHash")
    transaction_index: Optional[HexInt] = Field(default=None, alias="transactionIndex")

    removed: bool = False

    @property
    def is_pending(self) -> bool:
        return self.block_number is None


class ContractLog(Log):
    """
    A log decoded with the ABI of the event that emitted it.
    Event arguments are also available as attributes.
    """

    event_name: str
    """The name of the event."""

    event_arguments: dict[str, Any] = {}
    """
    The arguments to the event, including both indexed and non-indexed data,
    in the order the event declares them.
    """

    @log_instead_of_fail(default="<ContractLog>")
    def __repr__(self) -> str:
        arguments = " ".join(f"{k}={v}" for k, v in self.event_arguments.items())
        return f"<{self.event_name} {arguments}>" if arguments else f"<{self.event_name}>"

    def __getattr__(self, item: str) -> Any:
        try:
            return super().__getattr__(item)  # type: ignore[misc]
        except AttributeError:
            event_arguments = self.__dict__.get("event_arguments") or {}
            if item in event_arguments:
                return event_arguments[item]

            raise

    def __getitem__(self, item: str) -> Any:
        return self.event_arguments[item]

    def __contains__(self, item: str) -> bool:
        return item in self.event_arguments


__all__ = ["ContractLog", "FilterOptions", "Log"]
