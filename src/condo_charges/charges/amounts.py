"""Parsing and formatting of Brazilian-formatted money amounts."""

import re
from decimal import Decimal, InvalidOperation
from typing import Union

_CURRENCY_PREFIX_RE = re.compile(r"^R\$\s*")

Amount = Union[Decimal, int, float, str]


def parse_amount(value: Amount) -> Decimal:
    """Convert an amount to ``Decimal``.

    Strings follow the portal's storage format: ``"350,00"``,
    ``"1.234,56"`` or ``"R$ 1.234,56"``. Plain dotted decimals such as
    ``"350.00"`` are accepted too.

    Raises:
        ValueError: If the value cannot be interpreted as an amount.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    cleaned = _CURRENCY_PREFIX_RE.sub("", str(value).strip()).replace(" ", "")
    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    try:
        amount = Decimal(cleaned)
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return amount


def format_brl(amount: Decimal) -> str:
    """Format an amount as ``R$ 1.234,56``."""
    quantized = amount.quantize(Decimal("0.01"))
    sign = "-" if quantized < 0 else ""
    integer, _, cents = f"{abs(quantized):.2f}".partition(".")
    groups = []
    while len(integer) > 3:
        groups.insert(0, integer[-3:])
        integer = integer[:-3]
    groups.insert(0, integer)
    return f"{sign}R$ {'.'.join(groups)},{cents}"
