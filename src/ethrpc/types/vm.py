from typing import Literal, Union

from eth_typing import HexStr
from hexbytes import HexBytes

BlockTag = Literal["earliest", "latest", "pending", "safe", "finalized"]
"""
A named block.
"""

BlockID = Union[int, HexStr, HexBytes, BlockTag]
"""
An ID that can match a block, such as the literals ``"earliest"``, ``"latest"``, or ``"pending"``
as well as a block number or hash (HexBytes).
"""

ContractCode = Union[str, bytes, HexBytes]
"""
A type that represents contract code, which can be represented in string, bytes, or HexBytes.
"""


__all__ = ["BlockID", "BlockTag", "ContractCode"]
