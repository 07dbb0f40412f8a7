"""
Threshold Evaluator
Exact fixed-point normalization of raw on-chain integers.

Token amounts routinely exceed 64 bits (10^30+ raw units), so every
conversion goes through decimal.Decimal with a precision wide enough to be
exact, and Inexact/Overflow are trapped instead of silently rounded.
"""

import decimal
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from infrastructure.errors import NormalizationError

MAX_DECIMALS = 255  # ERC-20 decimals() is a uint8

RawAmount = Union[int, str]


class Comparison(str, Enum):
    ABOVE = "above"
    AT_OR_ABOVE = "at_or_above"
    BELOW = "below"
    AT_OR_BELOW = "at_or_below"

    def holds(self, value: Decimal, threshold: Decimal) -> bool:
        if self is Comparison.ABOVE:
            return value > threshold
        if self is Comparison.AT_OR_ABOVE:
            return value >= threshold
        if self is Comparison.BELOW:
            return value < threshold
        return value <= threshold


@dataclass(frozen=True)
class ThresholdResult:
    matched: bool
    normalized: Decimal
    threshold: Decimal


def to_raw_int(amount: RawAmount) -> int:
    """Accept ints and base-10 integer strings; reject everything lossy"""
    # bool is an int subclass; a True "amount" is always a bug
    if isinstance(amount, bool):
        raise NormalizationError("Boolean is not a token amount", value=amount)
    if isinstance(amount, int):
        return amount
    if isinstance(amount, str):
        text = amount.strip()
        digits = text[1:] if text[:1] in "+-" else text
        if not digits.isdigit() or not digits.isascii():
            raise NormalizationError("Amount string is not a base-10 integer", value=amount)
        return int(text)
    raise NormalizationError(f"Unsupported amount type {type(amount).__name__}", value=amount)


def normalize_amount(amount: RawAmount, decimals: int) -> Decimal:
    """amount / 10**decimals, exact"""
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise NormalizationError("Decimals must be an integer", value=amount, decimals=decimals)
    if not 0 <= decimals <= MAX_DECIMALS:
        raise NormalizationError(f"Decimals must be within 0..{MAX_DECIMALS}", value=amount, decimals=decimals)

    raw = to_raw_int(amount)
    digits = len(str(abs(raw)))

    with decimal.localcontext() as ctx:
        ctx.prec = digits + decimals + 2
        ctx.Emax = decimal.MAX_EMAX
        ctx.Emin = decimal.MIN_EMIN
        ctx.traps[decimal.Inexact] = True
        ctx.traps[decimal.Overflow] = True
        try:
            return Decimal(raw).scaleb(-decimals)
        except decimal.DecimalException as e:
            raise NormalizationError(f"Cannot normalize amount exactly: {e}", value=amount, decimals=decimals)


def to_decimal(value: Union[Decimal, int, str]) -> Decimal:
    if isinstance(value, bool) or isinstance(value, float):
        raise NormalizationError("Thresholds must be exact (int, str or Decimal)", value=value)
    try:
        result = Decimal(value)
    except decimal.InvalidOperation:
        raise NormalizationError("Threshold is not a number", value=value)
    if not result.is_finite():
        raise NormalizationError("Threshold must be finite", value=value)
    return result


def evaluate_threshold(
    amount: RawAmount,
    decimals: int,
    threshold: Union[Decimal, int, str],
    comparison: Comparison = Comparison.ABOVE,
) -> ThresholdResult:
    normalized = normalize_amount(amount, decimals)
    limit = to_decimal(threshold)
    return ThresholdResult(
        matched=comparison.holds(normalized, limit),
        normalized=normalized,
        threshold=limit,
    )


def format_amount(value: Decimal, places: Optional[int] = None) -> str:
    """Plain notation: 20000, 0.5, 1234.57 - never 2E+4"""
    if places is not None:
        with decimal.localcontext() as ctx:
            ctx.prec = max(len(value.as_tuple().digits) + places + 2, 28)
            ctx.rounding = decimal.ROUND_HALF_UP
            return f"{value.quantize(Decimal(1).scaleb(-places)):f}"
    text = f"{value:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
