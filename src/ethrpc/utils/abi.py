import json
import re
from collections.abc import Sequence
from typing import Any, Optional, Union

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError
from eth_abi.packed import encode_packed
from eth_utils import is_0x_prefixed, keccak, to_checksum_address
from hexbytes import HexBytes
from pydantic import TypeAdapter, ValidationError

from ethrpc.exceptions import (
    ABIDecodeError,
    ABIEncodeError,
    ArgumentsLengthError,
    ContractDataError,
)
from ethrpc.types.abi import (
    ABIArgument,
    ABIItem,
    ConstructorABI,
    EventABI,
    FunctionABI,
    canonicalize_type,
    get_array_item_type,
    is_array_type,
)
from ethrpc.units import is_currency_value, parse_currency_value
from ethrpc.utils.misc import to_address, to_int

SIGNATURE_PATTERN = re.compile(r"^\s*(?P<name>[A-Za-z_$][\w$]*)\s*\((?P<types>[^()]*)\)\s*$")

_ABI_LIST_ADAPTER: TypeAdapter = TypeAdapter(list[ABIItem])

OutputsLike = Union[FunctionABI, Sequence[Union[ABIArgument, str]]]


def parse_signature(signature: str) -> FunctionABI:
    """
    Create a function ABI from a signature such as ``transfer(address,uint256)``.
    The function is assumed to be non-payable and to have no outputs.

    Raises:
        :class:`~ethrpc.exceptions.ContractDataError`: When the signature is invalid.
    """
    match = SIGNATURE_PATTERN.match(signature)
    if not match:
        raise ContractDataError(f"Invalid function signature '{signature}'.")

    types = [t.strip() for t in match.group("types").split(",") if t.strip()]
    try:
        return FunctionABI(name=match.group("name"), inputs=[{"type": t} for t in types])
    except ValidationError as err:
        raise ContractDataError(f"Invalid function signature '{signature}'.") from err


def parse_abi(abi: Union[str, Sequence[dict], dict]) -> list[ABIItem]:
    """
    Parse a contract ABI definition, as JSON or as already-loaded data.
    Items without a ``type`` are functions.

    Args:
        abi (Union[str, Sequence[dict], dict]): The ABI. A dict with an ``"abi"``
          key, such as a compiler artifact, is also accepted.

    Raises:
        :class:`~ethrpc.exceptions.ContractDataError`: When the ABI is malformed
          or uses an unsupported type.

    Returns:
        list[ABIItem]
    """
    if isinstance(abi, str):
        try:
            abi = json.loads(abi)
        except json.JSONDecodeError as err:
            raise ContractDataError(f"ABI is not valid JSON: {err}") from err

    if isinstance(abi, dict):
        if "abi" not in abi:
            raise ContractDataError("ABI must be a list of items.")

        abi = abi["abi"]

    if not isinstance(abi, (list, tuple)):
        raise ContractDataError("ABI must be a list of items.")

    items = []
    for item in abi:
        if isinstance(item, dict):
            item = {"type": "function", **item}

        items.append(item)

    try:
        return _ABI_LIST_ADAPTER.validate_python(items)
    except ValidationError as err:
        raise ContractDataError(f"Invalid ABI: {err}") from err


def get_method_selector(abi: Union[FunctionABI, str]) -> HexBytes:
    """
    The first 4 bytes of the keccak-256 hash of the function's canonical signature.
    """
    if isinstance(abi, str):
        abi = parse_signature(abi)

    return HexBytes(keccak(text=abi.selector)[:4])


def get_event_topic(abi: EventABI) -> HexBytes:
    """
    The keccak-256 hash of the event's canonical signature, which non-anonymous
    events emit as their first topic.
    """
    return HexBytes(keccak(text=abi.selector))


def _normalize_input(abi_type: str, value: Any) -> Any:
    if is_array_type(abi_type):
        if not isinstance(value, (list, tuple)):
            raise ABIEncodeError(f"Expected a list for type '{abi_type}', got {value!r}.")

        item_type = get_array_item_type(abi_type)
        return [_normalize_input(item_type, v) for v in value]

    elif abi_type.startswith(("uint", "int")) and isinstance(value, (str, bytes)):
        if is_currency_value(value):
            return parse_currency_value(value)

        return to_int(value)

    elif abi_type == "address" and isinstance(value, (str, bytes)):
        return to_address(value)

    elif abi_type.startswith("bytes") and isinstance(value, str):
        if not is_0x_prefixed(value):
            raise ABIEncodeError(f"Expected hex for type '{abi_type}', got '{value}'.")

        return HexBytes(value)

    return value


def _normalize_output(abi_type: str, value: Any) -> Any:
    if is_array_type(abi_type):
        item_type = get_array_item_type(abi_type)
        return [_normalize_output(item_type, v) for v in value]

    elif abi_type == "address":
        return to_checksum_address(value)

    elif isinstance(value, bytes):
        return HexBytes(value)

    return value


def _get_types(arguments: Sequence[Union[ABIArgument, str]]) -> list[str]:
    return [a if isinstance(a, str) else a.canonical_type for a in arguments]


def encode_arguments(
    abi: Union[FunctionABI, ConstructorABI], args: Sequence[Any]
) -> HexBytes:
    """
    ABI-encode the arguments for the given function or constructor, without a selector.

    Raises:
        :class:`~ethrpc.exceptions.ArgumentsLengthError`: When the number of
          arguments is wrong.
        :class:`~ethrpc.exceptions.ABIEncodeError`: When a value cannot be encoded
          as its type.

    Returns:
        HexBytes
    """
    args = list(args)
    if len(args) != len(abi.inputs):
        raise ArgumentsLengthError(len(args), inputs=abi)

    if not abi.inputs:
        return HexBytes(b"")

    input_types = _get_types(abi.inputs)
    try:
        arguments = [_normalize_input(t, v) for t, v in zip(input_types, args)]
        return HexBytes(encode(input_types, arguments))
    except ABIEncodeError:
        raise
    except (EncodingError, OverflowError, TypeError, ValueError) as err:
        raise ABIEncodeError(f"Unable to encode arguments for '{abi.selector}': {err}") from err


def encode_call(function: Union[FunctionABI, str], args: Sequence[Any]) -> HexBytes:
    """
    Create the calldata for a function call: the 4 byte selector followed by the
    ABI-encoded arguments.

    Usage example::

        encode_call("transfer(address,uint256)", [receiver, "1 ether"])

    Args:
        function (Union[FunctionABI, str]): The function or its canonical signature.
        args (Sequence[Any]): The arguments, in order.

    Returns:
        HexBytes
    """
    abi = parse_signature(function) if isinstance(function, str) else function
    return HexBytes(get_method_selector(abi) + encode_arguments(abi, args))


def decode_result(outputs: OutputsLike, data: Union[bytes, str]) -> tuple:
    """
    Strictly decode return data.

    Args:
        outputs (Union[FunctionABI, Sequence[Union[ABIArgument, str]]]): A function
          (its outputs are used) or the output types.
        data (Union[bytes, str]): The return data.

    Raises:
        :class:`~ethrpc.exceptions.ABIDecodeError`: When the data is empty, truncated
          or otherwise does not match the outputs.

    Returns:
        tuple: One value per output.
    """
    arguments = outputs.outputs if isinstance(outputs, FunctionABI) else outputs
    output_types = _get_types(arguments)
    raw_data = HexBytes(data)
    if not output_types:
        return ()

    elif not raw_data:
        raise ABIDecodeError(
            f"Empty return data for outputs ({', '.join(output_types)}). "
            "Is there a contract at this address?"
        )

    try:
        values = decode(output_types, raw_data)
    except (DecodingError, OverflowError, ValueError) as err:
        raise ABIDecodeError(str(err)) from err

    return tuple(_normalize_output(t, v) for t, v in zip(output_types, values))


def is_hashed_topic_type(abi_type: str) -> bool:
    """
    Returns ``True`` when an indexed argument of this type is logged as the
    keccak-256 hash of its value, as is the case for reference types.
    """
    return abi_type in ("bytes", "string") or is_array_type(abi_type)


def encode_topic(abi_type: str, value: Any) -> Optional[Union[HexBytes, list]]:
    """
    Encode a value as a topic, for filtering logs by an indexed argument.
    Reference-type values are hashed. A list (or a list of lists, for array
    types) encodes each alternative; ``None`` is a wildcard.
    """
    if value is None:
        return None

    abi_type = canonicalize_type(abi_type)
    if _list_depth(value) > abi_type.count("["):
        return [encode_topic(abi_type, v) for v in value]

    try:
        normalized = _normalize_input(abi_type, value)
        if is_array_type(abi_type):
            return HexBytes(keccak(_encode_array_topic(abi_type, normalized)))
        elif is_hashed_topic_type(abi_type):
            return HexBytes(keccak(encode_packed([abi_type], [normalized])))

        return HexBytes(encode([abi_type], [normalized]))
    except ABIEncodeError:
        raise
    except (EncodingError, OverflowError, TypeError, ValueError) as err:
        raise ABIEncodeError(f"Unable to encode topic of type '{abi_type}': {err}") from err


def _encode_array_topic(abi_type: str, value: Sequence) -> bytes:
    # Elements are padded to 32 bytes each, without length prefixes.
    item_type = get_array_item_type(abi_type)
    if is_array_type(item_type):
        return b"".join(_encode_array_topic(item_type, item) for item in value)
    elif item_type in ("bytes", "string"):
        return b"".join(_pad_right(encode_packed([item_type], [item])) for item in value)

    return b"".join(encode([item_type], [item]) for item in value)


def _pad_right(data: bytes) -> bytes:
    return data.ljust(-(-len(data) // 32) * 32, b"\x00")


def _list_depth(value: Any) -> int:
    depth = 0
    while isinstance(value, (list, tuple)):
        depth += 1
        if not value:
            break

        value = value[0]

    return depth


class LogInputABICollection:
    """
    Splits an event's inputs into the ones logged as topics and the ones logged
    in the data, and decodes logs back into arguments in declaration order.
    """

    def __init__(self, abi: EventABI):
        self.abi = abi
        self.keys = [i.name or f"{idx}" for idx, i in enumerate(abi.inputs)]
        self.topic_abi_types = [i for i in abi.inputs if i.indexed]
        self.data_abi_types = [i for i in abi.inputs if not i.indexed]

        if len(set(self.keys)) < len(self.keys):
            raise ContractDataError(f"Duplicate names found in inputs of event '{abi.name}'.")

    @property
    def event_name(self) -> str:
        return self.abi.name

    @property
    def topic_count(self) -> int:
        return len(self.topic_abi_types) + (0 if self.abi.anonymous else 1)

    def decode(self, topics: Sequence[Union[bytes, str]], data: Union[bytes, str]) -> dict:
        topics = [HexBytes(t) for t in topics]
        if len(topics) != self.topic_count:
            raise ABIDecodeError(
                f"Expected {self.topic_count} topics for event '{self.event_name}', "
                f"got {len(topics)}."
            )

        if not self.abi.anonymous:
            if topics[0] != get_event_topic(self.abi):
                raise ABIDecodeError(f"Log is not a '{self.event_name}' event.")

            topics = topics[1:]

        indexed_values = []
        for abi, topic_value in zip(self.topic_abi_types, topics):
            # Reference types as indexed arguments are written as a hash.
            if is_hashed_topic_type(abi.type):
                indexed_values.append(HexBytes(topic_value))
                continue

            try:
                value = decode([abi.canonical_type], topic_value)[0]
            except (DecodingError, OverflowError, ValueError) as err:
                raise ABIDecodeError(
                    f"Failed to decode topic '{abi.name}' of event '{self.event_name}': {err}"
                ) from err

            indexed_values.append(_normalize_output(abi.canonical_type, value))

        data_types = _get_types(self.data_abi_types)
        try:
            raw_data_values = decode(data_types, HexBytes(data)) if data_types else ()
        except (DecodingError, OverflowError, ValueError) as err:
            raise ABIDecodeError(
                f"Failed to decode data of event '{self.event_name}': {err}"
            ) from err

        data_values = [_normalize_output(t, v) for t, v in zip(data_types, raw_data_values)]

        # Interleave back into declaration order.
        indexed_iter = iter(indexed_values)
        data_iter = iter(data_values)
        return {
            key: next(indexed_iter) if abi.indexed else next(data_iter)
            for key, abi in zip(self.keys, self.abi.inputs)
        }


def decode_log(event: EventABI, log: Any) -> dict:
    """
    Decode the arguments of a log emitted by the given event.

    Args:
        event (EventABI): The event.
        log: A :class:`~ethrpc.types.events.Log` or a raw log dict.

    Raises:
        :class:`~ethrpc.exceptions.ABIDecodeError`: When the topics do not belong
          to the event or the data does not decode.

    Returns:
        dict: Argument name (or position, for unnamed arguments) to value, in the
        order the event declares them.
    """
    if isinstance(log, dict):
        topics, data = log.get("topics", []), log.get("data", b"")
    else:
        topics, data = log.topics, log.data

    return LogInputABICollection(event).decode(topics, data)


__all__ = [
    "LogInputABICollection",
    "decode_log",
    "decode_result",
    "encode_arguments",
    "encode_call",
    "encode_topic",
    "get_event_topic",
    "get_method_selector",
    "is_hashed_topic_type",
    "parse_abi",
    "parse_signature",
]
