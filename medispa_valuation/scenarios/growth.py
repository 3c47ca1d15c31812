"""
Upside growth scenarios for medispa clinics.

Each scenario describes a growth strategy by its operating drivers:

  patient_growth: Annual growth in new patients
  pricing_growth: Annual price increases
  service_expansion: New services; half of it shows up as visit frequency
  market_expansion: Geographic and demographic reach

Drivers map onto the valuation inputs as
  growth_rate = (1 + patients) * (1 + pricing) * (1 + service / 2) - 1
  exit_multiple = base exit multiple + 2 * (patients + service + market)

Every scenario, including 'base', is compared against the caller's own
assumptions.

Usage:
  from medispa_valuation.scenarios.growth import run_growth_scenarios

  analysis = run_growth_scenarios(assumptions)
  print(analysis.to_frame())
"""

from collections.abc import Sequence
from dataclasses import dataclass
import logging
from typing import Dict, Optional, Tuple

import pandas as pd

from medispa_valuation.analysis.sensitivity import ValuationFn
from medispa_valuation.domain.types import ValuationAssumptions
from medispa_valuation.engine.valuation import valuate
from medispa_valuation.errors import ValuationError

logger = logging.getLogger(__name__)

MULTIPLE_PREMIUM_PER_GROWTH = 2.0
FREQUENCY_SHARE_OF_SERVICE_EXPANSION = 0.5


@dataclass(frozen=True)
class GrowthScenario:
  """A named growth strategy and its operating drivers."""
  id: str
  name: str
  description: str
  patient_growth: float
  pricing_growth: float
  service_expansion: float
  market_expansion: float

  @property
  def revenue_growth(self) -> float:
    """Annual revenue growth from patients, pricing and visit frequency."""
    frequency = self.service_expansion * FREQUENCY_SHARE_OF_SERVICE_EXPANSION
    return ((1.0 + self.patient_growth) * (1.0 + self.pricing_growth) *
            (1.0 + frequency) - 1.0)

  @property
  def multiple_premium(self) -> float:
    """Turns of EBITDA added to the exit multiple."""
    return MULTIPLE_PREMIUM_PER_GROWTH * (
        self.patient_growth + self.service_expansion + self.market_expansion)


GROWTH_SCENARIOS: Dict[str, GrowthScenario] = {
    s.id: s for s in (
        GrowthScenario(
            id='conservative',
            name='Conservative Growth',
            description='Minimal market expansion, steady operations',
            patient_growth=0.05,
            pricing_growth=0.02,
            service_expansion=0.02,
            market_expansion=0.01,
        ),
        GrowthScenario(
            id='base',
            name='Base Case Growth',
            description='Steady growth following industry averages',
            patient_growth=0.08,
            pricing_growth=0.04,
            service_expansion=0.06,
            market_expansion=0.04,
        ),
        GrowthScenario(
            id='aggressive',
            name='Aggressive Growth',
            description='High-growth expansion strategy',
            patient_growth=0.15,
            pricing_growth=0.06,
            service_expansion=0.12,
            market_expansion=0.10,
        ),
        GrowthScenario(
            id='hypergrowth',
            name='Hyper-Growth',
            description='Top-decile performers with rapid expansion',
            patient_growth=0.25,
            pricing_growth=0.08,
            service_expansion=0.20,
            market_expansion=0.18,
        ),
    )
}


def get_growth_scenario(scenario_id: str) -> GrowthScenario:
  """
  Look up a growth scenario by id.

  Raises:
    KeyError: If the id is not registered
  """
  try:
    return GROWTH_SCENARIOS[scenario_id]
  except KeyError as e:
    raise KeyError(f"Unknown growth scenario: '{scenario_id}'. "
                   f'Available: {list(GROWTH_SCENARIOS.keys())}') from e


def apply_growth_scenario(
    assumptions: ValuationAssumptions,
    scenario_id: str,
) -> ValuationAssumptions:
  """
  Return assumptions with a growth scenario's drivers applied.

  The scenario's revenue growth replaces the whole growth path and its
  premium is added to the exit multiple.

  Raises:
    KeyError: If the scenario id is unknown
  """
  scenario = get_growth_scenario(scenario_id)
  return assumptions.with_overrides(
      growth_rate=scenario.revenue_growth,
      exit_multiple=assumptions.exit_multiple + scenario.multiple_premium,
  )


@dataclass(frozen=True)
class GrowthOutcome:
  """Valuation of one growth scenario against the unadjusted case."""
  scenario: GrowthScenario
  growth_rate: float
  exit_multiple: float
  enterprise_value: float
  ev_change: float
  ev_change_pct: float
  implied_multiple: float


@dataclass(frozen=True)
class GrowthAnalysis:
  """
  Unadjusted case plus every growth scenario.

  Attributes:
    base_enterprise_value: EV of the caller's assumptions
    base_implied_multiple: EV / final-year EBITDA of the caller's assumptions
    outcomes: One GrowthOutcome per scenario, in request order
  """
  base_enterprise_value: float
  base_implied_multiple: float
  outcomes: Tuple[GrowthOutcome, ...]

  def outcome(self, scenario_id: str) -> GrowthOutcome:
    for o in self.outcomes:
      if o.scenario.id == scenario_id:
        return o
    raise KeyError(f"No outcome for growth scenario: '{scenario_id}'. "
                   f'Available: {[o.scenario.id for o in self.outcomes]}')

  def to_frame(self) -> pd.DataFrame:
    """One row per scenario, indexed by scenario id."""
    return pd.DataFrame(
        [{
            'scenario': o.scenario.id,
            'name': o.scenario.name,
            'growth_rate': o.growth_rate,
            'exit_multiple': o.exit_multiple,
            'enterprise_value': o.enterprise_value,
            'ev_change': o.ev_change,
            'ev_change_pct': o.ev_change_pct,
            'implied_multiple': o.implied_multiple,
        } for o in self.outcomes],
        columns=[
            'scenario', 'name', 'growth_rate', 'exit_multiple',
            'enterprise_value', 'ev_change', 'ev_change_pct', 'implied_multiple'
        ],
    ).set_index('scenario')


def run_growth_scenarios(
    assumptions: ValuationAssumptions,
    scenario_ids: Optional[Sequence[str]] = None,
    valuation_fn: ValuationFn = valuate,
) -> GrowthAnalysis:
  """
  Value the unadjusted case and each growth scenario.

  Args:
    assumptions: Unadjusted assumptions
    scenario_ids: Scenarios to run (default: all registered, in order)
    valuation_fn: Engine entry point (default: valuate)

  Returns:
    GrowthAnalysis with EV, change against the unadjusted case and implied
    multiple per scenario

  Raises:
    KeyError: If a scenario id is unknown
    ValuationError: From a scenario valuation, with the scenario id in its
      context
  """
  if scenario_ids is None:
    scenario_ids = list(GROWTH_SCENARIOS.keys())

  base = valuation_fn(assumptions)
  base_ev = base.enterprise_value
  outcomes = []
  for scenario_id in scenario_ids:
    scenario = get_growth_scenario(scenario_id)
    try:
      adjusted = apply_growth_scenario(assumptions, scenario_id)
      result = valuation_fn(adjusted)
    except ValuationError as e:
      raise e.with_context(scenario=scenario_id) from e

    change = result.enterprise_value - base_ev
    outcomes.append(
        GrowthOutcome(
            scenario=scenario,
            growth_rate=scenario.revenue_growth,
            exit_multiple=adjusted.exit_multiple,
            enterprise_value=result.enterprise_value,
            ev_change=change,
            ev_change_pct=change / base_ev if base_ev else float('nan'),
            implied_multiple=result.implied_multiple,
        ))

  logger.info('Growth scenarios: %s',
              ', '.join(f'{o.scenario.id}={o.ev_change_pct:+.1%}'
                        for o in outcomes))
  return GrowthAnalysis(base_enterprise_value=base_ev,
                        base_implied_multiple=base.implied_multiple,
                        outcomes=tuple(outcomes))
