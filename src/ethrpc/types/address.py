from typing import Annotated, Union

from eth_typing import ChecksumAddress
from pydantic import BeforeValidator

from ethrpc.utils.misc import to_address

RawAddress = Union[str, bytes]
"""
A raw data-type representation of an address.
"""

AddressType = Annotated[ChecksumAddress, BeforeValidator(to_address)]
"""
A checksum address. Lowercase hex-strs and 20-byte values are checksummed
on validation; mixed-case strings must carry a valid checksum.
"""


__all__ = [
    "AddressType",
    "RawAddress",
]
