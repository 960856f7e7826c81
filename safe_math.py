"""
Zero-safe arithmetic for market data.

Guards for the ratios used by indicators, scoring and exit rules.
Candidate data arrives with zero sells, zero volume or missing fields
all the time; none of that may crash a discovery or monitoring cycle.
"""
from typing import Union

Number = Union[int, float, None]


def safe_div(numerator: Number, denominator: Number, default: float = 0.0) -> float:
    """
    ``numerator / denominator``, or ``default`` when either side is missing,
    non-numeric or the denominator is zero.

        >>> safe_div(3000, 1500)
        2.0
        >>> safe_div(50000, 0)
        0.0
    """
    if numerator is None or denominator is None:
        return default
    if denominator == 0:
        return default
    try:
        return float(numerator) / float(denominator)
    except (TypeError, ValueError, ZeroDivisionError):
        return default


def safe_div_percentage(current: Number, previous: Number, default: float = 0.0) -> float:
    """Percent change from ``previous`` to ``current`` (holder counts, prices)."""
    if current is None or previous is None or previous == 0:
        return default
    try:
        return (float(current) - float(previous)) / float(previous) * 100
    except (TypeError, ValueError, ZeroDivisionError):
        return default


def buy_sell_ratio(buys: Number, sells: Number) -> float:
    """
    Buy/sell ratio where zero sells count as one sell.

    A token with 40 buys and no sells reads as 40.0, not infinity.
    """
    return safe_div(buys or 0, sells or 1)


def buy_fraction(buys: Number, sells: Number) -> float:
    """Share of buys in all transactions, 0.0 when there were none."""
    buys = buys or 0
    sells = sells or 0
    return safe_div(buys, buys + sells)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def to_float(value, default: float = 0.0) -> float:
    """Coerce API strings / None to float."""
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
