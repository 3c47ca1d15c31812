"""
Depreciation policies.

The core engine models depreciation as a fixed percentage of revenue. This is
a deliberate simplification for deriving free cash flow: depreciation only
matters through its tax shield, and capex is modeled separately.

StraightLineSchedule is the optional extension for clinics that supply an
explicit asset register (equipment cost and useful life).
"""

from abc import ABC
from abc import abstractmethod
from collections.abc import Sequence

from medispa_valuation.domain.types import PolicyOutput


class DepreciationPolicy(ABC):
  """
  Base class for depreciation policies.

  Subclasses implement compute() to return one depreciation charge per
  forecast year.
  """

  @abstractmethod
  def compute(self, revenues: Sequence[float]) -> PolicyOutput[list[float]]:
    """
    Compute depreciation for each forecast year.

    Args:
      revenues: Projected revenue for years 1..N

    Returns:
      PolicyOutput with list of depreciation charges [d1, ..., dN]
    """


class PercentOfRevenue(DepreciationPolicy):
  """Depreciation as a fixed share of same-year revenue."""

  def __init__(self, percent: float = 0.05):
    """
    Initialize percent-of-revenue policy.

    Args:
      percent: Depreciation / revenue (default: 5%)
    """
    self.percent = percent

  def compute(self, revenues: Sequence[float]) -> PolicyOutput[list[float]]:
    return PolicyOutput(value=[self.percent * r for r in revenues],
                        diag={
                            'depreciation_method': 'percent_of_revenue',
                            'depreciation_percent': self.percent,
                        })


class StraightLineSchedule(DepreciationPolicy):
  """
  Straight-line depreciation of an existing asset register.

  Each asset depreciates cost / life per year for `life` years starting in
  forecast year 1. Revenue is ignored.
  """

  def __init__(self, assets: Sequence[tuple[float, int]]):
    """
    Initialize straight-line schedule.

    Args:
      assets: (asset_cost, useful_life_years) pairs
    """
    self.assets = list(assets)

  def compute(self, revenues: Sequence[float]) -> PolicyOutput[list[float]]:
    charges = []
    for year in range(1, len(revenues) + 1):
      charge = sum(cost / life for cost, life in self.assets if year <= life)
      charges.append(charge)

    return PolicyOutput(value=charges,
                        diag={
                            'depreciation_method': 'straight_line',
                            'depreciation_assets': len(self.assets),
                        })
