"""Closed-form personal-finance formulas.

Rates are fractions (0.07 for 7 %). Every function returns None instead of
raising when an input is not strictly positive, or when the result would not
be a finite float; the dashboard simply shows nothing in that case.
"""

from __future__ import annotations

import math
from typing import Dict, Optional


def _positive(*values: float) -> bool:
    try:
        return all(float(v) > 0 for v in values)
    except (TypeError, ValueError):
        return False


def _finite(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def compound_growth(principal: float, rate: float, years: float) -> Optional[float]:
    if not _positive(principal, rate, years):
        return None
    try:
        return _finite(principal * (1 + rate) ** years)
    except OverflowError:
        return None


def amortized_payment(principal: float, rate: float, periods: int) -> Optional[float]:
    """Level payment per period for a loan at `rate` per period over `periods` periods."""
    if not _positive(principal, rate, periods):
        return None
    try:
        growth = (1 + rate) ** periods
    except OverflowError:
        return None
    if not math.isfinite(growth):
        return None
    # rate below float precision: (1 + rate) rounds to 1.0
    if growth - 1 == 0:
        return principal / periods
    return _finite(principal * rate * growth / (growth - 1))


def mortgage(principal: float, annual_rate: float, years: float) -> Optional[Dict[str, float]]:
    if not _positive(principal, annual_rate, years):
        return None
    periods = int(round(years * 12))
    monthly = amortized_payment(principal, annual_rate / 12, periods)
    if monthly is None:
        return None
    total = monthly * periods
    return {
        "monthly_payment": monthly,
        "periods": periods,
        "total_paid": total,
        "total_interest": total - principal,
    }


def roi(initial: float, final: float) -> Optional[float]:
    if not _positive(initial, final):
        return None
    return _finite((final - initial) / initial)


def cagr(initial: float, final: float, years: float) -> Optional[float]:
    if not _positive(initial, final, years):
        return None
    try:
        return _finite((final / initial) ** (1 / years) - 1)
    except OverflowError:
        return None


def retirement_target(monthly_expense: float, withdrawal_rate: float = 0.04) -> Optional[float]:
    """Nest egg that sustains `monthly_expense` at a safe withdrawal rate (25x yearly spend at 4 %)."""
    if not _positive(monthly_expense, withdrawal_rate):
        return None
    return _finite(monthly_expense * 12 / withdrawal_rate)
