from typing import Annotated, Any

from eth_utils import to_hex
from hexbytes import HexBytes
from pydantic import AfterValidator, BeforeValidator, PlainSerializer

from ethrpc.utils.misc import to_int


def _hex_int_validator(value: Any) -> int:
    try:
        return to_int(value)
    except TypeError as err:
        # Pydantic only reports ValueError and AssertionError.
        raise ValueError(str(err)) from err


def _hex_bytes_validator(value: Any) -> HexBytes:
    if isinstance(value, (str, bytes, bytearray)) and not isinstance(value, bool):
        return HexBytes(value)

    raise ValueError(f"cannot convert {value!r} to bytes")


HexInt = Annotated[
    int,
    BeforeValidator(_hex_int_validator),
    PlainSerializer(lambda v: hex(v), when_used="json"),
]
"""
Validate any hex-str or bytes into an integer.
Serializes back to a JSON-RPC quantity.
To be used on pydantic-fields.
"""

HexBytesType = Annotated[
    bytes,
    BeforeValidator(_hex_bytes_validator),
    AfterValidator(HexBytes),
    PlainSerializer(lambda v: to_hex(v), when_used="json"),
]
"""
Validate hex-str or bytes into :class:`~hexbytes.HexBytes`.
Serializes back to ``0x``-prefixed hex.
"""


__all__ = ["HexBytesType", "HexInt"]
