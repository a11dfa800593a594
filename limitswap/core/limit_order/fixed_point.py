"""
Fixed-point arithmetic for limit orders.

Amounts are plain ints scaled by ``10**decimals`` of the asset they
denominate; rates are ints at 18 decimals. Division truncates toward zero
and every helper returns ``None`` instead of raising when an operand is
missing or a divisor is zero.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, ROUND_DOWN, localcontext
from typing import Optional

from .constants import RATE_DECIMALS, SIGNIFICANT_DIGITS, WAD

_DECIMAL_RE = re.compile(r"^(-?)(\d*)(?:\.(\d*))?$")


def div(numerator: int, denominator: int) -> Optional[int]:
    """Integer division truncating toward zero; ``None`` for a zero divisor."""
    if denominator == 0:
        return None
    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


def parse_number(text: Optional[str]) -> Optional[Decimal]:
    """Loose numeric reading of user text; blank reads as zero, junk as ``None``."""
    if text is None:
        return None
    stripped = text.strip()
    if not stripped:
        return Decimal(0)
    try:
        value = Decimal(stripped)
    except InvalidOperation:
        return None
    if value.is_nan():
        return None
    return value


def parse_units(value: str, decimals: int) -> int:
    """Parse a decimal string into an integer scaled by ``10**decimals``.

    Raises:
        ValueError: malformed text, negative decimals, or more significant
            fractional digits than ``decimals`` can hold.
    """
    if not isinstance(value, str):
        raise ValueError(f"invalid decimal value {value!r}")
    if decimals < 0:
        raise ValueError(f"invalid decimals {decimals}")
    match = _DECIMAL_RE.match(value)
    if not match:
        raise ValueError(f"invalid decimal value {value!r}")
    sign, whole, raw_fraction = match.groups()
    raw_fraction = raw_fraction or ""
    if not whole and not raw_fraction:
        raise ValueError(f"invalid decimal value {value!r}")
    fraction = raw_fraction.rstrip("0")
    if len(fraction) > decimals:
        raise ValueError(f"fractional component exceeds {decimals} decimals")
    scaled = int(whole or "0") * 10 ** decimals + int(fraction.ljust(decimals, "0") or "0")
    return -scaled if sign else scaled


def try_parse_units(value: Optional[str], decimals: Optional[int]) -> Optional[int]:
    if not value or decimals is None:
        return None
    try:
        return parse_units(value, decimals)
    except ValueError:
        return None


def safe_parse_units(value: Optional[str], decimals: int = RATE_DECIMALS) -> Optional[int]:
    """Like :func:`parse_units` but tolerates excess precision.

    Text with more fractional digits than ``decimals`` is parsed at a wider
    intermediate scale and truncated back down.
    """
    if not value:
        return None
    try:
        return parse_units(value, decimals)
    except ValueError:
        margin = decimals * 8
        try:
            wide = parse_units(value, margin)
        except ValueError:
            return None
        return div(wide, 10 ** (margin - decimals))


def format_units(amount: int, decimals: int) -> str:
    """Exact decimal rendering, e.g. ``format_units(15 * 10**17, 18) == "1.5"``."""
    sign = "-" if amount < 0 else ""
    whole, fraction = divmod(abs(amount), 10 ** decimals)
    if decimals == 0:
        return f"{sign}{whole}"
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{fraction_text}"


def amount_formatter(
    amount: Optional[int],
    base_decimals: Optional[int] = RATE_DECIMALS,
    display_decimals: int = 3,
    use_less_than: bool = True,
) -> Optional[str]:
    """Truncate a fixed-point amount to ``display_decimals`` for display.

    Amounts below the smallest displayable unit render as ``"<0.001"`` (or
    exactly, when ``use_less_than`` is off). Negative amounts render their
    magnitude with a leading ``-``.
    """
    if amount is None or base_decimals is None:
        return None
    if amount == 0:
        return "0"
    if amount < 0:
        return "-" + amount_formatter(-amount, base_decimals, display_decimals, use_less_than)

    display_decimals = min(display_decimals, base_decimals)
    minimum_display_amount = 10 ** base_decimals // 10 ** display_decimals
    if amount < minimum_display_amount:
        if use_less_than:
            return f"<{format_units(minimum_display_amount, base_decimals)}"
        return format_units(amount, base_decimals)

    text = format_units(amount, base_decimals)
    if "." not in text:
        return text
    whole, fraction = text.split(".")
    rounded = fraction.ljust(base_decimals, "0")[:display_decimals]
    if rounded == "0" * display_decimals:
        return whole
    return f"{whole}.{rounded.rstrip('0')}"


def to_significant(
    amount: Optional[int],
    decimals: Optional[int],
    significant: int = SIGNIFICANT_DIGITS,
) -> Optional[str]:
    """Render with exactly ``significant`` digits, rounding down.

    ``to_significant(2000 * 10**6, 6) == "2000.00"``
    """
    if amount is None or decimals is None:
        return None
    with localcontext() as ctx:
        ctx.prec = len(str(abs(amount))) + decimals + significant
        value = Decimal(amount).scaleb(-decimals)
        if value == 0:
            return "0"
        exponent = value.adjusted() - (significant - 1)
        quantized = value.quantize(Decimal(1).scaleb(exponent), rounding=ROUND_DOWN)
        return format(quantized, "f")


def to_wad(amount: int, decimals: int) -> Optional[int]:
    """Rescale an amount from ``decimals`` to 18 decimals."""
    return div(amount * WAD, 10 ** decimals)


def get_exchange_rate(
    input_value: Optional[int],
    input_decimals: Optional[int],
    output_value: Optional[int],
    output_decimals: Optional[int],
    invert: bool = False,
) -> Optional[int]:
    """Rate implied by two amounts, at 18 decimals.

    Output per input by default; input per output when ``invert``.
    """
    if input_value is None or output_value is None:
        return None
    if input_decimals is None or output_decimals is None:
        return None
    if invert:
        scaled = div(input_value * WAD, output_value)
        if scaled is None:
            return None
        return div(scaled * 10 ** output_decimals, 10 ** input_decimals)
    scaled = div(output_value * WAD, input_value)
    if scaled is None:
        return None
    return div(scaled * 10 ** input_decimals, 10 ** output_decimals)


def apply_exchange_rate(
    amount: Optional[int],
    rate: Optional[int],
    input_decimals: Optional[int],
    output_decimals: Optional[int],
    invert: bool = False,
) -> Optional[int]:
    """Convert ``amount`` of the input asset into output units at ``rate``."""
    if amount is None or rate is None:
        return None
    if input_decimals is None or output_decimals is None:
        return None
    if invert:
        scaled = div(amount * WAD, rate)
    else:
        scaled = div(rate * amount, WAD)
    if scaled is None:
        return None
    return div(scaled * 10 ** output_decimals, 10 ** input_decimals)


def exchange_rate_diff(rate_a: Optional[int], rate_b: Optional[int]) -> Optional[int]:
    """Signed relative difference ``a / b - 1`` at 18 decimals."""
    if rate_a is None or rate_b is None:
        return None
    ratio = div(WAD * rate_a, rate_b)
    if ratio is None:
        return None
    return ratio - WAD


def flip_rate(rate: Optional[int]) -> Optional[int]:
    """Multiplicative inverse of an 18-decimal rate."""
    if rate is None:
        return None
    return div(WAD * WAD, rate)
