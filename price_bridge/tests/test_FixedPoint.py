"""Unit tests for FixedPoint."""

from decimal import Decimal

import pytest

from price_bridge.src.FixedPoint import (
    SCALE,
    U128_MAX,
    PriceOutOfRangeError,
    from_scaled,
    to_scaled,
)


class TestToScaled:
    """Test decimal to fixed-point conversion."""

    def test_half(self) -> None:
        """3.5 should scale to 3.5 * 10^18."""
        assert to_scaled(Decimal("3.5")) == 3_500_000_000_000_000_000

    def test_zero(self) -> None:
        """Zero should stay zero."""
        assert to_scaled(Decimal("0")) == 0
        assert to_scaled(0) == 0

    def test_integer_and_fraction_summed(self) -> None:
        """Integer and fractional parts are scaled separately and summed."""
        assert to_scaled(Decimal("2345.6789")) == 2_345_678_900_000_000_000_000

    def test_float_input(self) -> None:
        """Floats should convert through their shortest representation."""
        assert to_scaled(3.5) == 3_500_000_000_000_000_000
        assert to_scaled(2345.6789) == 2_345_678_900_000_000_000_000

    def test_int_and_str_input(self) -> None:
        """Ints and numeric strings should be accepted."""
        assert to_scaled(64000) == 64000 * SCALE
        assert to_scaled("0.000000000000000001") == 1

    def test_truncates_beyond_18_decimals(self) -> None:
        """Digits past the 18th decimal are truncated, not rounded."""
        assert to_scaled(Decimal("1.9999999999999999999")) == 1_999_999_999_999_999_999
        assert to_scaled(Decimal("0.0000000000000000009")) == 0

    def test_truncates_long_inputs(self) -> None:
        """Quotes with more digits than the working precision still truncate."""
        assert to_scaled(Decimal("0." + "9" * 100)) == 999_999_999_999_999_999
        assert to_scaled(Decimal("12." + "9" * 90)) == 12_999_999_999_999_999_999
        assert to_scaled("64000." + "5" * 120) == 64_000_555_555_555_555_555_555

    def test_u128_max_boundary(self) -> None:
        """The largest representable value should convert exactly."""
        price = Decimal("340282366920938463463.374607431768211455")
        assert to_scaled(price) == U128_MAX

    def test_overflow_rejected(self) -> None:
        """Prices overflowing u128 after scaling should raise."""
        with pytest.raises(PriceOutOfRangeError, match="overflows u128"):
            to_scaled(Decimal(U128_MAX))

    def test_negative_rejected(self) -> None:
        """Negative prices are out of domain."""
        with pytest.raises(PriceOutOfRangeError, match="must not be negative"):
            to_scaled(Decimal("-1.5"))

    def test_non_finite_rejected(self) -> None:
        """NaN and infinity should raise."""
        with pytest.raises(PriceOutOfRangeError, match="finite"):
            to_scaled(Decimal("NaN"))
        with pytest.raises(PriceOutOfRangeError, match="finite"):
            to_scaled(float("inf"))

    def test_garbage_rejected(self) -> None:
        """Non-numeric strings should raise."""
        with pytest.raises(PriceOutOfRangeError, match="Not a decimal price"):
            to_scaled("twelve")

    def test_price_out_of_range_is_value_error(self) -> None:
        """PriceOutOfRangeError should be catchable as ValueError."""
        assert issubclass(PriceOutOfRangeError, ValueError)


class TestFromScaled:
    """Test fixed-point to decimal conversion."""

    def test_from_scaled(self) -> None:
        """Scaled values should convert back for display."""
        assert from_scaled(3_500_000_000_000_000_000) == Decimal("3.5")
        assert from_scaled(1) == Decimal("1E-18")
