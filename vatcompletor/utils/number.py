"""
number.py

Tolerance-aware comparisons for currency amounts and vat rates.

Amounts that were entered in a shop are exact up to a cent, amounts we compute
ourselves (vat over a unit price, sums of those) carry rounding errors. All
equality tests go through floats_are_equal() so that the allowed difference is
chosen explicitly by the caller.
"""

from typing import Tuple

# Half a cent.
DEFAULT_EPSILON = 0.005

# The accounting API uses -1 as the "vat free" rate.
VAT_FREE = -1.0


def floats_are_equal(f1: float, f2: float, max_diff: float = DEFAULT_EPSILON) -> bool:
    """
    Returns True if the two floats do not differ more than max_diff.

    Args:
        f1 (float): The first amount.
        f2 (float): The second amount.
        max_diff (float): The maximum (exclusive) absolute difference.

    Returns:
        bool: Whether the amounts are to be considered equal.
    """
    return abs(float(f2) - float(f1)) < max_diff


def is_zero(f1: float, max_diff: float = DEFAULT_EPSILON) -> bool:
    """Wrapper around floats_are_equal() for the often used check against 0.0."""
    return floats_are_equal(f1, 0.0, max_diff)


def is_no_vat(vat_rate: float) -> bool:
    """Returns whether the rate means that no vat is due (0% or vat free)."""
    return is_zero(vat_rate) or floats_are_equal(vat_rate, VAT_FREE)


def vat_over_amount(vat_rate: float, amount: float) -> float:
    """Vat due on an amount excluding vat."""
    if is_no_vat(vat_rate):
        return 0.0
    return vat_rate / 100.0 * amount


def vat_in_amount(vat_rate: float, amount_inc: float) -> float:
    """Vat contained in an amount including vat."""
    if is_no_vat(vat_rate):
        return 0.0
    return vat_rate / (100.0 + vat_rate) * amount_inc


def split_amount_over_2_vat_rates(
    amount: float, vat_amount: float, low_vat_rate: float, high_vat_rate: float
) -> Tuple[float, float]:
    """
    Splits an amount (ex vat) into a low and a high part, such that taxing the
    low part with low_vat_rate and the high part with high_vat_rate results in
    vat_amount.

    Example: 15.00 with 2.40 vat over 21% and 6% gives 5.00 at 6% and 10.00 at 21%.

    1) high_amount + low_amount = amount
    2) high_rate * high_amount + low_rate * low_amount = vat_amount
    =>
    high_amount = (vat_amount - amount * low_rate) / (high_rate - low_rate)
    low_amount = amount - high_amount

    The caller must make sure that the rates differ.

    Returns:
        Tuple[float, float]: (low_amount, high_amount)
    """
    low_rate = low_vat_rate / 100.0
    high_rate = high_vat_rate / 100.0
    high_amount = (vat_amount - amount * low_rate) / (high_rate - low_rate)
    low_amount = amount - high_amount
    return low_amount, high_amount


def have_same_sign(
    amount: float, *parts: float, max_diff: float = DEFAULT_EPSILON
) -> bool:
    """
    Returns whether amount and all parts are either all clearly positive or all
    clearly negative, i.e. none of them is within max_diff of 0.
    """
    values = (amount,) + parts
    return all(v > max_diff for v in values) or all(v < -max_diff for v in values)


def format_rate(vat_rate: float) -> str:
    """Formats a vat rate for descriptions: 21.0 -> '21', 5.5 -> '5.5'."""
    return f"{float(vat_rate):g}"


def format_amount(amount: float) -> str:
    return f"{float(amount):.2f}"


def rate_key(vat_rate: float) -> str:
    """Key under which a vat rate is grouped, e.g. in a vat breakdown."""
    return "%.3f" % float(vat_rate)
