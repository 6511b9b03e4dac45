"""
Models for contract ABI definitions. Every kind of ABI item carries only the
fields that make sense for it; a list of mixed items validates through
:data:`ABIItem`, which dispatches on the ``type`` field.
"""

import re
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, field_validator, model_validator

from ethrpc.utils.basemodel import BaseModel

StateMutability = Literal["pure", "view", "nonpayable", "payable"]

ABI_TYPE_PATTERN = re.compile(
    r"^(?P<base>uint|int|address|bool|bytes|string)(?P<size>\d*)(?P<dims>(?:\[\d*\])*)$"
)
ARRAY_DIMENSION_PATTERN = re.compile(r"\[(\d*)\]")


def canonicalize_type(abi_type: str) -> str:
    """
    Validate an ABI type against the supported set and return its canonical form.
    Bare ``uint`` and ``int`` become ``uint256`` and ``int256``.

    Raises:
        ValueError: When the type is not supported.
    """
    match = ABI_TYPE_PATTERN.match(abi_type.strip()) if isinstance(abi_type, str) else None
    if not match:
        raise ValueError(f"Unsupported ABI type '{abi_type}'.")

    base, size, dims = match.group("base"), match.group("size"), match.group("dims")
    if base in ("uint", "int"):
        bits = int(size) if size else 256
        if bits % 8 or not 8 <= bits <= 256:
            raise ValueError(f"Invalid integer size in ABI type '{abi_type}'.")

        size = str(bits)

    elif base == "bytes":
        if size and not 1 <= int(size) <= 32:
            raise ValueError(f"Invalid fixed bytes size in ABI type '{abi_type}'.")

    elif size:
        raise ValueError(f"ABI type '{base}' does not take a size.")

    for length in ARRAY_DIMENSION_PATTERN.findall(dims):
        if length and int(length) == 0:
            raise ValueError(f"Zero-length array in ABI type '{abi_type}'.")

    return f"{base}{size}{dims}"


def is_array_type(abi_type: str) -> bool:
    return abi_type.endswith("]")


def get_array_item_type(abi_type: str) -> str:
    """
    Strip the outermost (last) array dimension.
    """
    return abi_type[: abi_type.rindex("[")]


def is_dynamic_sized_type(abi_type: str) -> bool:
    """
    Returns ``True`` for types whose encoding lives in the tail, such as
    ``bytes``, ``string``, dynamic arrays and fixed arrays of those.
    """
    if abi_type in ("bytes", "string") or abi_type.endswith("[]"):
        return True

    elif is_array_type(abi_type):
        return is_dynamic_sized_type(get_array_item_type(abi_type))

    return False


class ABIArgument(BaseModel):
    """
    A single input or output of an ABI item.
    """

    name: str = ""
    type: str
    internal_type: Optional[str] = Field(default=None, alias="internalType")

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, value):
        return canonicalize_type(value)

    @property
    def canonical_type(self) -> str:
        return self.type

    @property
    def signature(self) -> str:
        return f"{self.type} {self.name}" if self.name else self.type


class EventArgument(ABIArgument):
    indexed: bool = False

    @property
    def signature(self) -> str:
        parts = [self.type, "indexed" if self.indexed else "", self.name]
        return " ".join(p for p in parts if p)


def _reconcile_mutability(values: dict, default: StateMutability) -> dict:
    if not isinstance(values, dict):
        return values

    mutability = values.get("stateMutability", values.get("state_mutability"))
    if mutability is None:
        if values.get("payable"):
            mutability = "payable"
        elif values.get("constant"):
            mutability = "view"
        else:
            mutability = default

    values = {**values, "stateMutability": mutability, "payable": mutability == "payable"}
    values.pop("state_mutability", None)
    return values


class FunctionABI(BaseModel):
    type: Literal["function"] = "function"
    name: str
    inputs: list[ABIArgument] = []
    outputs: list[ABIArgument] = []
    state_mutability: StateMutability = Field(default="nonpayable", alias="stateMutability")
    constant: bool = False
    payable: bool = False

    @model_validator(mode="before")
    @classmethod
    def reconcile_state_mutability(cls, values):
        values = _reconcile_mutability(values, "nonpayable")
        if isinstance(values, dict):
            values["constant"] = values["stateMutability"] in ("pure", "view")

        return values

    @property
    def selector(self) -> str:
        """
        The canonical signature, such as ``transfer(address,uint256)``.
        """
        input_types = ",".join(i.type for i in self.inputs)
        return f"{self.name}({input_types})"

    @property
    def signature(self) -> str:
        """
        A human-readable signature, including names and outputs.
        """
        inputs = ", ".join(i.signature for i in self.inputs)
        signature = f"{self.name}({inputs})"
        if self.outputs:
            outputs = ", ".join(o.signature for o in self.outputs)
            signature = f"{signature} -> ({outputs})"

        return signature

    @property
    def is_stateful(self) -> bool:
        return not self.constant


class ConstructorABI(BaseModel):
    type: Literal["constructor"] = "constructor"
    inputs: list[ABIArgument] = []
    state_mutability: StateMutability = Field(default="nonpayable", alias="stateMutability")
    payable: bool = False

    @model_validator(mode="before")
    @classmethod
    def reconcile_state_mutability(cls, values):
        return _reconcile_mutability(values, "nonpayable")

    @property
    def selector(self) -> str:
        input_types = ",".join(i.type for i in self.inputs)
        return f"constructor({input_types})"

    @property
    def signature(self) -> str:
        inputs = ", ".join(i.signature for i in self.inputs)
        return f"constructor({inputs})"


class EventABI(BaseModel):
    type: Literal["event"] = "event"
    name: str
    inputs: list[EventArgument] = []
    anonymous: bool = False

    @property
    def selector(self) -> str:
        input_types = ",".join(i.type for i in self.inputs)
        return f"{self.name}({input_types})"

    @property
    def signature(self) -> str:
        inputs = ", ".join(i.signature for i in self.inputs)
        return f"{self.name}({inputs})"


class FallbackABI(BaseModel):
    type: Literal["fallback", "receive"] = "fallback"
    state_mutability: StateMutability = Field(default="nonpayable", alias="stateMutability")
    payable: bool = False

    @model_validator(mode="before")
    @classmethod
    def reconcile_state_mutability(cls, values):
        return _reconcile_mutability(values, "nonpayable")


class ErrorABI(BaseModel):
    type: Literal["error"] = "error"
    name: str
    inputs: list[ABIArgument] = []

    @property
    def selector(self) -> str:
        input_types = ",".join(i.type for i in self.inputs)
        return f"{self.name}({input_types})"

    @property
    def signature(self) -> str:
        inputs = ", ".join(i.signature for i in self.inputs)
        return f"{self.name}({inputs})"


ABIItem = Annotated[
    Union[FunctionABI, ConstructorABI, EventABI, FallbackABI, ErrorABI],
    Field(discriminator="type"),
]
"""
Any item of a contract ABI, discriminated by its ``type``.
"""

ABIList = list[ABIItem]


__all__ = [
    "ABIArgument",
    "ABIItem",
    "ABIList",
    "ConstructorABI",
    "ErrorABI",
    "EventABI",
    "EventArgument",
    "FallbackABI",
    "FunctionABI",
    "StateMutability",
    "canonicalize_type",
    "get_array_item_type",
    "is_array_type",
    "is_dynamic_sized_type",
]
