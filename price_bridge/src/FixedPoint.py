"""FixedPoint: Decimal to on-chain fixed-point conversion.

Feed values are stored on-chain as unsigned 128-bit integers scaled by
10^18. The integer and fractional parts are scaled separately and the
fractional product is truncated, never rounded:

.. code-block:: python

    >>> to_scaled(Decimal("2345.6789"))
    2345678900000000000000
    >>> to_scaled(3.5)
    3500000000000000000
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

# Number of decimals stored on-chain.
NUM_DECIMALS = 18

SCALE = 10**NUM_DECIMALS
U128_MAX = 2**128 - 1


class PriceOutOfRangeError(ValueError):
    """Raised when a price cannot be represented as an unsigned 128-bit value."""

    pass


def _to_decimal(price: Decimal | int | float | str) -> Decimal:
    if isinstance(price, Decimal):
        return price
    if isinstance(price, float):
        # repr() gives the shortest string that round-trips, so 2345.6789
        # stays 2345.6789 instead of its binary expansion.
        return Decimal(repr(price))
    try:
        return Decimal(price)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise PriceOutOfRangeError(f"Not a decimal price: {price!r}") from e


def to_scaled(price: Decimal | int | float | str) -> int:
    """Convert a decimal price to its scaled integer representation.

    :param price: Price in whole units (e.g. USD).
    :returns: ``floor(price) * 10**18 + floor(frac(price) * 10**18)``.
    :raises PriceOutOfRangeError: If the price is negative, not finite,
        or does not fit into an unsigned 128-bit integer once scaled.
    """
    value = _to_decimal(price)
    if not value.is_finite():
        raise PriceOutOfRangeError(f"Price must be finite, got {value}")
    if value < 0:
        raise PriceOutOfRangeError(f"Price must not be negative, got {value}")

    with localcontext() as ctx:
        # Enough digits for the input and its 18 scaled decimals to stay exact.
        ctx.prec = max(80, len(value.as_tuple().digits) + NUM_DECIMALS + 2)
        ctx.rounding = ROUND_DOWN
        integer_part = int(value)
        fractional_part = value - integer_part
        scaled = integer_part * SCALE + int(fractional_part * SCALE)

    if scaled > U128_MAX:
        raise PriceOutOfRangeError(f"Scaled price {scaled} overflows u128")
    return scaled


def from_scaled(value: int) -> Decimal:
    """Convert a scaled integer back to a decimal (for display only).

    :param value: Scaled on-chain value.
    :returns: Decimal with up to 18 fractional digits.
    """
    with localcontext() as ctx:
        ctx.prec = 80
        return Decimal(value) / SCALE
