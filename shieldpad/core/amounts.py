# shieldpad/core/amounts.py
"""
ShieldPad Core: AmountCodec

Converts between human-entered decimal strings and unsigned integers in a
token's minor units, and back.

Rules:
    parse("10.5")  -> 10500000     (decimals=6)
    format(10500000) -> "10.5"
    format(1000000)  -> "1"

Parsing is exact: no float conversion, no rounding. Input with more
significant fractional digits than the token supports is rejected rather
than truncated.

Usage:
    codec = AmountCodec(decimals=6)
    units = codec.parse(" 2.25 ")
    text = codec.format(units)

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

import re
from typing import Optional

from .errors import InvalidAmountError


# =============================================================================
# Constants
# =============================================================================

DEFAULT_DECIMALS = 6

# Encrypted inputs carry the amount as a euint64
UINT64_MAX = 2**64 - 1

_NUMERAL = re.compile(r"^-?([0-9]+(\.[0-9]*)?|\.[0-9]+)$")


# =============================================================================
# AmountCodec
# =============================================================================

class AmountCodec:
    """
    Fixed-precision codec for token amounts.

    Attributes:
        decimals: Number of fractional digits of the token's minor unit
        max_units: Largest accepted parsed value
    """

    def __init__(self, decimals: int = DEFAULT_DECIMALS, max_units: int = UINT64_MAX):
        if decimals < 0:
            raise ValueError(f"decimals must be >= 0, got {decimals}")
        self.decimals = decimals
        self.max_units = max_units
        self._scale = 10 ** decimals

    def parse(self, text: Optional[str]) -> int:
        """
        Parse a decimal string into minor units.

        Args:
            text: User input, surrounding whitespace allowed

        Returns:
            Strictly positive integer amount in minor units

        Raises:
            InvalidAmountError: Empty, malformed, too precise, non-positive
                or out-of-range input
        """
        normalized = (text or "").strip()
        if not normalized:
            raise InvalidAmountError("Enter an amount first.")

        if not _NUMERAL.match(normalized):
            raise InvalidAmountError(f"Invalid amount: {normalized!r}")

        negative = normalized.startswith("-")
        body = normalized.lstrip("-")
        whole, _, fraction = body.partition(".")
        fraction = fraction.rstrip("0")

        if len(fraction) > self.decimals:
            raise InvalidAmountError(
                f"Too many decimal places (max {self.decimals})."
            )

        units = int(whole or "0") * self._scale
        if fraction:
            units += int(fraction.ljust(self.decimals, "0"))
        if negative:
            units = -units

        if units <= 0:
            raise InvalidAmountError("Amount must be greater than zero.")
        if units > self.max_units:
            raise InvalidAmountError("Amount is too large.")

        return units

    def format(self, value: int) -> str:
        """
        Render minor units as a trimmed decimal string.

        Raises:
            ValueError: If value is negative
        """
        value = int(value)
        if value < 0:
            raise ValueError(f"Amount must be unsigned, got {value}")

        whole, fraction = divmod(value, self._scale)
        if fraction == 0:
            return str(whole)
        digits = str(fraction).rjust(self.decimals, "0").rstrip("0")
        return f"{whole}.{digits}"


# =============================================================================
# Test
# =============================================================================

def run_tests() -> bool:
    """Quick self-check of the codec."""
    print("=" * 70)
    print("ShieldPad Core: AmountCodec Test")
    print("=" * 70)

    codec = AmountCodec(decimals=6)
    results = {}

    results["parse"] = codec.parse("10.5") == 10_500_000
    results["format"] = codec.format(10_500_000) == "10.5"
    results["whole"] = codec.format(3_000_000) == "3"
    results["small"] = codec.format(1) == "0.000001"
    results["roundtrip"] = all(
        codec.format(codec.parse(s)) == s
        for s in ["1", "0.1", "123.456789", "42.000001"]
    )

    rejected = 0
    for bad in ["", "0", "-1", "abc", "1e5", "0.0000001"]:
        try:
            codec.parse(bad)
        except InvalidAmountError:
            rejected += 1
    results["reject"] = rejected == 6

    for name, ok in results.items():
        print(f"  {name:<10} {'PASS ✓' if ok else 'FAIL ✗'}")

    all_pass = all(results.values())
    print(f"Result: {sum(results.values())}/{len(results)} tests passed")
    return all_pass


if __name__ == "__main__":
    run_tests()
