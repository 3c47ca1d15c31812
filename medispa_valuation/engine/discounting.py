"""
Time-value-of-money helpers.

Pure numeric functions, no pandas and no I/O. Periods are 1-based: the first
forecast year is discounted by one full period.
"""

from collections.abc import Sequence
from math import isfinite

from medispa_valuation.errors import InvalidRateError


def _check_rate(rate: float) -> None:
  if not isfinite(rate) or rate <= -1.0:
    raise InvalidRateError(f'Discount rate must be > -100%, got {rate!r}',
                           context={'rate': rate})


def present_value(cash_flow: float, rate: float, period: float) -> float:
  """
  Discount a single cash flow back to today.

  Args:
    cash_flow: Amount received at the end of `period`
    rate: Discount rate per period
    period: Number of periods to discount

  Returns:
    cash_flow / (1 + rate) ** period

  Raises:
    InvalidRateError: If rate <= -1
  """
  _check_rate(rate)
  return cash_flow / ((1.0 + rate)**period)


def discount_factors(rate: float, periods: int) -> list[float]:
  """Discount factors [1/(1+r), 1/(1+r)^2, ..., 1/(1+r)^periods]."""
  _check_rate(rate)
  return [1.0 / ((1.0 + rate)**t) for t in range(1, periods + 1)]


def present_value_series(cash_flows: Sequence[float], rate: float) -> float:
  """
  Sum of present values for an ordered cash-flow series.

  The i-th element (0-based) is discounted by i + 1 periods.

  Raises:
    InvalidRateError: If rate <= -1
  """
  _check_rate(rate)
  pv = 0.0
  for t, cf in enumerate(cash_flows, start=1):
    pv += cf / ((1.0 + rate)**t)
  return pv
