"""
Exact conversions between wei (the smallest indivisible unit of ether)
and its named denominations.
"""

import re
from decimal import Context, Decimal, InvalidOperation, localcontext
from typing import Union

from ethrpc.exceptions import InvalidUnit

UNIT_EXPONENTS: dict[str, int] = {
    "wei": 0,
    "kwei": 3,
    "ada": 3,
    "babbage": 3,
    "femtoether": 3,
    "mwei": 6,
    "lovelace": 6,
    "picoether": 6,
    "gwei": 9,
    "shannon": 9,
    "nanoether": 9,
    "nano": 9,
    "szabo": 12,
    "microether": 12,
    "micro": 12,
    "finney": 15,
    "milliether": 15,
    "milli": 15,
    "ether": 18,
    "eth": 18,
    "kether": 21,
    "grand": 21,
    "einstein": 21,
    "mether": 24,
    "gether": 27,
    "tether": 30,
}
UNITS: dict[str, int] = {name: 10**exponent for name, exponent in UNIT_EXPONENTS.items()}

# 2**256 has 78 digits; leave room for 30 decimal places either side.
_CONTEXT = Context(prec=160)

NUMBER_PATTERN = re.compile(r"^-?\d{1,3}(?:[,_]?\d{3})*(?:\.\d+)?(?:[eE][+-]?\d+)?$")
CURRENCY_VALUE_PATTERN = re.compile(r"^\s*(\S+)\s+([A-Za-z]+)\s*$")

Amount = Union[int, str, Decimal]


def get_unit_exponent(unit: str) -> int:
    """
    Get the power-of-ten scale of the given denomination, relative to wei.

    Raises:
        :class:`~ethrpc.exceptions.InvalidUnit`: When the unit is not known.
    """
    if not isinstance(unit, str) or unit.lower() not in UNIT_EXPONENTS:
        raise InvalidUnit(str(unit))

    return UNIT_EXPONENTS[unit.lower()]


def _to_decimal(amount: Amount) -> Decimal:
    if isinstance(amount, bool) or isinstance(amount, float):
        # Floats are never exact enough for 18 decimal places.
        raise TypeError(f"Unsupported amount type '{type(amount).__name__}'.")

    elif isinstance(amount, Decimal):
        value = amount

    elif isinstance(amount, int):
        value = Decimal(amount)

    elif isinstance(amount, str):
        cleaned = amount.strip()
        if not NUMBER_PATTERN.match(cleaned):
            raise ValueError(f"'{amount}' is not a number.")

        value = Decimal(cleaned.replace("_", "").replace(",", ""))

    else:
        raise TypeError(f"Unsupported amount type '{type(amount).__name__}'.")

    if not value.is_finite():
        raise ValueError(f"'{amount}' is not a finite number.")

    return value


def to_wei(amount: Amount, unit: str) -> int:
    """
    Convert an amount in the given denomination to wei.

    Usage example::

        to_wei("1.5", "gwei")  # 1500000000

    Args:
        amount (Union[int, str, Decimal]): The amount. Floats are not accepted.
        unit (str): The denomination, such as ``"ether"`` or ``"gwei"``.

    Raises:
        :class:`~ethrpc.exceptions.InvalidUnit`: When the unit is not known.
        ValueError: When the amount has a fractional wei part.

    Returns:
        int
    """
    exponent = get_unit_exponent(unit)
    value = _to_decimal(amount)
    with localcontext(_CONTEXT):
        try:
            wei_value = value.scaleb(exponent)
            integral = wei_value.to_integral_value()
        except InvalidOperation as err:
            raise ValueError(f"Unable to convert '{amount}' {unit}.") from err

        if wei_value != integral:
            raise ValueError(f"'{amount} {unit}' is not a whole amount of wei.")

        return int(integral)


def from_wei(amount: Union[int, str], unit: str) -> Decimal:
    """
    Convert an amount of wei to the given denomination, exactly.

    Args:
        amount (Union[int, str]): The amount of wei.
        unit (str): The denomination to convert to.

    Raises:
        :class:`~ethrpc.exceptions.InvalidUnit`: When the unit is not known.

    Returns:
        Decimal
    """
    exponent = get_unit_exponent(unit)
    value = _to_decimal(amount)
    if value != value.to_integral_value():
        raise ValueError(f"'{amount}' is not a whole amount of wei.")

    with localcontext(_CONTEXT):
        result = value.scaleb(-exponent)

        # Strip trailing zeroes while keeping integers out of scientific notation.
        if result == result.to_integral_value():
            return result.quantize(Decimal(1))

        return result.normalize()


def is_currency_value(value: str) -> bool:
    """
    Returns ``True`` when the value looks like ``"<number> <unit>"``,
    such as ``"1 ether"`` or ``"2_000 gwei"``.
    """
    if not isinstance(value, str):
        return False

    match = CURRENCY_VALUE_PATTERN.match(value)
    return (
        match is not None
        and match.group(2).lower() in UNITS
        and bool(NUMBER_PATTERN.match(match.group(1)))
    )


def parse_currency_value(value: str) -> int:
    """
    Convert a string such as ``"1.5 gwei"`` to wei.
    """
    match = CURRENCY_VALUE_PATTERN.match(value)
    if not match:
        raise ValueError(f"'{value}' is not a currency value.")

    amount, unit = match.groups()
    return to_wei(amount, unit)


__all__ = [
    "UNITS",
    "UNIT_EXPONENTS",
    "from_wei",
    "get_unit_exponent",
    "is_currency_value",
    "parse_currency_value",
    "to_wei",
]
