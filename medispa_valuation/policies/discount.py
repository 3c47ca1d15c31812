"""
Market-data policies.

These policies turn an immutable MarketSnapshot into plain numeric
overrides for the valuation assumptions: a build-up discount rate (WACC)
and a calibrated industry EV/EBITDA multiple. Snapshot fields that are
missing produce no override.
"""

from abc import ABC
from abc import abstractmethod
from typing import Any, Dict, Optional

from medispa_valuation.domain.types import MarketSnapshot
from medispa_valuation.domain.types import PolicyOutput
from medispa_valuation.domain.types import ValuationAssumptions


class SnapshotPolicy(ABC):
  """
  Base class for snapshot-driven policies.

  compute() returns None as its value when the snapshot lacks the fields
  the policy needs.
  """

  @abstractmethod
  def compute(
      self,
      snapshot: MarketSnapshot,
      assumptions: ValuationAssumptions,
  ) -> PolicyOutput[Optional[float]]:
    """
    Compute a value from the snapshot.

    Args:
      snapshot: Market data supplied by the caller
      assumptions: Assumptions being valued (for size-based premiums)

    Returns:
      PolicyOutput with the computed value (or None) and diagnostics
    """


class BuildUpWacc(SnapshotPolicy):
  """
  Build-up discount rate for a small private clinic.

  wacc = risk_free + market_risk_premium + size_premium + economic_adjustment,
  clipped to [floor, cap].
  """

  def __init__(
      self,
      floor: float = 0.08,
      cap: float = 0.18,
      small_revenue: float = 5_000_000.0,
      large_revenue: float = 15_000_000.0,
  ):
    """
    Initialize build-up WACC policy.

    Args:
      floor: Minimum discount rate (default: 8%)
      cap: Maximum discount rate (default: 18%)
      small_revenue: Revenue below which the small-company premium applies
      large_revenue: Revenue above which the large-company premium applies
    """
    self.floor = floor
    self.cap = cap
    self.small_revenue = small_revenue
    self.large_revenue = large_revenue

  def size_premium(self, revenue: float,
                   unemployment_rate: Optional[float]) -> float:
    """Size premium by revenue bracket."""
    if revenue < self.small_revenue:
      stressed = unemployment_rate is not None and unemployment_rate > 0.05
      return 0.025 + (0.005 if stressed else 0.0)
    if revenue > self.large_revenue:
      return 0.005
    return 0.015

  def compute(
      self,
      snapshot: MarketSnapshot,
      assumptions: ValuationAssumptions,
  ) -> PolicyOutput[Optional[float]]:
    if snapshot.risk_free_rate is None or snapshot.market_risk_premium is None:
      return PolicyOutput(value=None, diag={'wacc_method': 'unchanged'})

    base = snapshot.risk_free_rate + snapshot.market_risk_premium
    size_premium = self.size_premium(assumptions.base_revenue,
                                     snapshot.unemployment_rate)

    economic_adjustment = 0.0
    if snapshot.unemployment_rate is not None and snapshot.unemployment_rate > 0.06:
      economic_adjustment = 0.01
    elif (snapshot.consumer_confidence is not None and
          snapshot.consumer_confidence < 90):
      economic_adjustment = 0.005

    wacc = min(max(base + size_premium + economic_adjustment, self.floor),
               self.cap)
    return PolicyOutput(value=wacc,
                        diag={
                            'wacc_method': 'build_up',
                            'wacc_base': base,
                            'wacc_size_premium': size_premium,
                            'wacc_economic_adjustment': economic_adjustment,
                            'wacc': wacc,
                        })


class CalibratedMarketMultiple(SnapshotPolicy):
  """
  Industry EV/EBITDA multiple adjusted for deal activity and conditions.

  The quoted industry multiple is blended toward the recent transaction
  median in proportion to deal count (full weight at `full_activity` deals),
  then scaled for consumer confidence and the rate environment, and clipped
  to [min_multiple, max_multiple].
  """

  def __init__(
      self,
      full_activity: int = 10,
      min_multiple: float = 6.0,
      max_multiple: float = 15.0,
  ):
    self.full_activity = full_activity
    self.min_multiple = min_multiple
    self.max_multiple = max_multiple

  def compute(
      self,
      snapshot: MarketSnapshot,
      assumptions: ValuationAssumptions,
  ) -> PolicyOutput[Optional[float]]:
    if snapshot.industry_multiple is None:
      return PolicyOutput(value=None, diag={'market_multiple_method': 'unchanged'})

    multiple = snapshot.industry_multiple
    activity_weight = 0.0
    if (snapshot.transaction_median_multiple is not None and
        snapshot.transaction_count is not None):
      activity_weight = min(1.0, snapshot.transaction_count / self.full_activity)
      multiple = (multiple * (1.0 - activity_weight) +
                  snapshot.transaction_median_multiple * activity_weight)

    confidence_factor = 1.0
    if snapshot.consumer_confidence is not None:
      if snapshot.consumer_confidence > 100:
        confidence_factor = 1.05
      elif snapshot.consumer_confidence < 85:
        confidence_factor = 0.95

    rate_factor = 1.0
    if snapshot.risk_free_rate is not None:
      if snapshot.risk_free_rate > 0.05:
        rate_factor = 0.90
      elif snapshot.risk_free_rate < 0.03:
        rate_factor = 1.10

    final = multiple * confidence_factor * rate_factor
    final = min(max(final, self.min_multiple), self.max_multiple)
    return PolicyOutput(value=final,
                        diag={
                            'market_multiple_method': 'calibrated',
                            'market_multiple_activity_weight': activity_weight,
                            'market_multiple_confidence_factor':
                                confidence_factor,
                            'market_multiple_rate_factor': rate_factor,
                            'market_multiple': final,
                        })


def snapshot_overrides(
    snapshot: MarketSnapshot,
    assumptions: ValuationAssumptions,
    wacc_policy: Optional[SnapshotPolicy] = None,
    multiple_policy: Optional[SnapshotPolicy] = None,
) -> PolicyOutput[Dict[str, Any]]:
  """
  Assumption overrides implied by a market snapshot.

  Returns:
    PolicyOutput whose value maps assumption field names (discount_rate,
    exit_multiple) to new values, with merged policy diagnostics
  """
  wacc_result = (wacc_policy or BuildUpWacc()).compute(snapshot, assumptions)
  multiple_result = (multiple_policy or CalibratedMarketMultiple()).compute(
      snapshot, assumptions)

  overrides: Dict[str, Any] = {}
  if wacc_result.value is not None:
    overrides['discount_rate'] = wacc_result.value
  if multiple_result.value is not None:
    overrides['exit_multiple'] = multiple_result.value

  diag: Dict[str, Any] = {'snapshot_as_of': snapshot.as_of}
  diag.update(wacc_result.diag)
  diag.update(multiple_result.diag)
  return PolicyOutput(value=overrides, diag=diag)
