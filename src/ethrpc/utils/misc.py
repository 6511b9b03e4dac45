import functools
import json
import os
from pathlib import Path
from typing import Any, Optional, Union, cast

import yaml
from eth_typing import ChecksumAddress, HexStr
from eth_utils import is_0x_prefixed, is_address, to_checksum_address, to_hex
from hexbytes import HexBytes

from ethrpc.logging import logger

EMPTY_BYTES32 = HexBytes("0x0000000000000000000000000000000000000000000000000000000000000000")
ZERO_ADDRESS = cast(ChecksumAddress, "0x0000000000000000000000000000000000000000")
BLOCK_TAGS = ("earliest", "latest", "pending", "safe", "finalized")


def to_int(value: Any) -> int:
    """
    Convert the given value, such as hex-strs or hex-bytes, to an integer.
    """

    if isinstance(value, bool):
        raise ValueError(f"cannot convert {repr(value)} to int")
    elif isinstance(value, int):
        return value
    elif isinstance(value, str):
        return int(value, 16) if is_0x_prefixed(value) else int(value)
    elif isinstance(value, bytes):
        return int.from_bytes(value, "big")

    raise ValueError(f"cannot convert {repr(value)} to int")


def to_quantity(value: Any) -> HexStr:
    """
    Encode an integer-like value as a JSON-RPC quantity (``0x``-prefixed hex,
    no leading zeroes).
    """
    return cast(HexStr, hex(to_int(value)))


def to_hex_data(value: Union[bytes, str]) -> HexStr:
    """
    Encode bytes or a hex-str as JSON-RPC data.
    """
    if isinstance(value, str):
        return cast(HexStr, value if is_0x_prefixed(value) else f"0x{value}")

    return to_hex(value)


def to_address(value: Any) -> ChecksumAddress:
    """
    Validate the given value as a 20-byte address and checksum it.
    """
    if isinstance(value, bytes) and len(value) == 20:
        return to_checksum_address(value)

    elif isinstance(value, str) and is_address(value):
        return to_checksum_address(value)

    raise ValueError(f"'{value!r}' is not a valid address.")


def is_block_tag(value: Any) -> bool:
    return isinstance(value, str) and value in BLOCK_TAGS


def load_config(path: Path, expand_envars: bool = True, must_exist: bool = False) -> dict:
    """
    Load a configuration file into memory.
    The configuration file must be a `.json` or `.yaml` or else it will throw ``TypeError``.

    Args:
        path (Path): The path to the file.
        expand_envars (bool): ``True`` to expand environment variables, such as
          ``$ETH_NODE_USER``, in the contents.
        must_exist (bool): ``True`` to raise ``OSError`` when the file is missing.

    Returns:
        dict: Configured settings parsed from a config file.
    """
    path = Path(path)
    if path.is_file():
        contents = path.read_text()
        if expand_envars:
            contents = os.path.expandvars(contents)

        if path.suffix in (".json",):
            config = json.loads(contents)
        elif path.suffix in (".yml", ".yaml"):
            config = yaml.safe_load(contents)
        else:
            raise TypeError(f"Cannot parse '{path.suffix}' files!")

        return config or {}

    elif must_exist:
        raise OSError(f"{path} does not exist!")

    return {}


def log_instead_of_fail(default: Optional[Any] = None):
    """
    A decorator for logging errors instead of raising.
    This is useful for methods like __repr__ which shouldn't fail.
    """

    def wrapper(fn):
        @functools.wraps(fn)
        def wrapped(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except Exception as err:
                logger.error(str(err))
                return default

        return wrapped

    return wrapper


__all__ = [
    "BLOCK_TAGS",
    "EMPTY_BYTES32",
    "ZERO_ADDRESS",
    "is_block_tag",
    "load_config",
    "log_instead_of_fail",
    "to_address",
    "to_hex_data",
    "to_int",
    "to_quantity",
]
