"""
Valuation policies for building DCF and multiple inputs.

Each policy estimates one component of the valuation (margin path,
depreciation, terminal value, market multiple, discount rate) and returns
both a value and diagnostic information.

To add a new policy:
1. Create a new class inheriting from the appropriate base (e.g., MarginPolicy)
2. Implement the compute() method returning PolicyOutput
3. Wire it in where the engine picks policies (e.g., margin_policy_for)

Example:
  class StepUpMargin(MarginPolicy):
    def compute(self, base_margin, n_years) -> PolicyOutput[list[float]]:
      margins = ...  # your calculation
      return PolicyOutput(value=margins, diag={'margin_method': 'step_up'})
"""

from medispa_valuation.policies.depreciation import DepreciationPolicy
from medispa_valuation.policies.depreciation import PercentOfRevenue
from medispa_valuation.policies.depreciation import StraightLineSchedule
from medispa_valuation.policies.discount import BuildUpWacc
from medispa_valuation.policies.discount import CalibratedMarketMultiple
from medispa_valuation.policies.discount import SnapshotPolicy
from medispa_valuation.policies.margin import ConstantMargin
from medispa_valuation.policies.margin import LinearMarginTrend
from medispa_valuation.policies.margin import MarginPolicy
from medispa_valuation.policies.multiples import MarketMultipleAdjustment
from medispa_valuation.policies.multiples import MultipleCalibration
from medispa_valuation.policies.terminal import ExitMultipleTerminal
from medispa_valuation.policies.terminal import GordonTerminal
from medispa_valuation.policies.terminal import TerminalPolicy

__all__ = [
  'MarginPolicy', 'ConstantMargin', 'LinearMarginTrend',
  'DepreciationPolicy', 'PercentOfRevenue', 'StraightLineSchedule',
  'TerminalPolicy', 'GordonTerminal', 'ExitMultipleTerminal',
  'MultipleCalibration', 'MarketMultipleAdjustment',
  'SnapshotPolicy', 'BuildUpWacc', 'CalibratedMarketMultiple',
]
