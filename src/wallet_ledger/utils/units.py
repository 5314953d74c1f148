"""Exact conversion between display amounts and smallest indivisible units.

All scaling goes through :class:`decimal.Decimal` under a wide local context
with the ``Inexact`` trap enabled, so transferable value is never rounded.
"""

from __future__ import annotations

import re
from decimal import Decimal, DecimalException, Inexact, InvalidOperation, localcontext

DEFAULT_DECIMALS = 18

# Enough digits for any uint256 value plus the decimal scale
_PRECISION = 96

_INTEGER_RE = re.compile(r"^-?\d+$")


def parse_amount(value: str | int | float | Decimal) -> Decimal:
    """Parse a user-entered amount into a finite ``Decimal``.

    Floats are parsed through their shortest ``str`` form so ``0.1`` stays
    ``Decimal("0.1")``.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, bool):
        msg = f"Not a numeric amount: {value!r}"
        raise ValueError(msg)
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as exc:
            msg = f"Not a numeric amount: {value!r}"
            raise ValueError(msg) from exc
    if not amount.is_finite():
        msg = f"Amount must be finite: {value!r}"
        raise ValueError(msg)
    return amount


def to_smallest_unit(amount: str | int | float | Decimal, decimals: int = DEFAULT_DECIMALS) -> int:
    """Scale a display amount up to an integer count of smallest units.

    Args:
        amount: Display amount (e.g. ``"1.25"`` ETH).
        decimals: Number of decimal places of the asset.

    Returns:
        The exact integer amount (e.g. ``1250000000000000000`` wei).

    Raises:
        ValueError: If the amount is not numeric or carries more fractional
            digits than the asset supports.
    """
    value = parse_amount(amount)
    try:
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            ctx.traps[Inexact] = True
            scaled = value.scaleb(decimals)
            if scaled != scaled.to_integral_value():
                msg = f"Amount {value} has more than {decimals} decimal places"
                raise ValueError(msg)
            return int(scaled)
    except DecimalException as exc:
        msg = f"Amount {value} cannot be represented exactly"
        raise ValueError(msg) from exc


def from_smallest_unit(raw: str | int, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """Scale an integer count of smallest units down to a display amount.

    Args:
        raw: Integer amount, as ``int`` or integer string (e.g. ``"1500"``).
        decimals: Number of decimal places of the asset.

    Raises:
        ValueError: If *raw* is not an integer.
    """
    if isinstance(raw, bool):
        msg = f"Not an integer amount: {raw!r}"
        raise ValueError(msg)
    if isinstance(raw, str):
        text = raw.strip()
        if not _INTEGER_RE.match(text):
            msg = f"Not an integer amount: {raw!r}"
            raise ValueError(msg)
        raw = int(text)
    if not isinstance(raw, int):
        msg = f"Not an integer amount: {raw!r}"
        raise ValueError(msg)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(raw).scaleb(-decimals)


def format_amount(amount: Decimal) -> str:
    """Render a Decimal without exponent or trailing zeros (``"1.5"``, ``"100"``)."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        normalized = amount.normalize()
    return format(normalized, "f")
