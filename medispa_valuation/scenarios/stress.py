"""
Edge-case stress scenarios for medispa clinics.

Each scenario describes a real-world disruption (pandemic closure, loss of
a lead injector, regulatory restriction, ...) with an annual probability
and a set of adjustments to the valuation assumptions:

  revenue_impact: Year-by-year revenue multipliers relative to the
    unstressed projection. The last multiplier holds for any later years.
  discount_rate_increase: Risk premium added to the discount rate
  multiple_reduction: Fractional haircut to the exit multiple
  capex_increase_pct: Percentage points added to capex as a share of
    revenue over the forecast

Severity scales every adjustment linearly: a revenue multiplier m becomes
1 - (1 - m) * severity; the other adjustments are multiplied by severity.

Usage:
  from medispa_valuation.scenarios.stress import run_stress_analysis

  analysis = run_stress_analysis(assumptions)
  print(analysis.to_frame())
  print(analysis.probability_weighted_ev)
"""

from collections.abc import Sequence
from dataclasses import dataclass
import logging
from typing import Dict, Optional, Tuple

import pandas as pd

from medispa_valuation.analysis.sensitivity import ValuationFn
from medispa_valuation.domain.types import ValuationAssumptions
from medispa_valuation.engine.valuation import valuate
from medispa_valuation.errors import InvalidAssumptionError
from medispa_valuation.errors import ValuationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StressScenario:
  """
  A named disruption and its effect on valuation inputs.

  Attributes:
    id: Registry key
    name: Display name
    category: pandemic, regulatory, competitive, economic, operational or
      technology
    probability: Annual probability of the event, in [0, 1]
    revenue_impact: Year-by-year revenue multipliers (empty = no impact)
    discount_rate_increase: Added to the discount rate
    multiple_reduction: Fractional exit multiple haircut
    capex_increase_pct: Added to capex_percent_of_revenue
  """
  id: str
  name: str
  category: str
  probability: float
  revenue_impact: Tuple[float, ...] = ()
  discount_rate_increase: float = 0.0
  multiple_reduction: float = 0.0
  capex_increase_pct: float = 0.0


STRESS_SCENARIOS: Dict[str, StressScenario] = {
    s.id: s for s in (
        StressScenario(
            id='covid_style_pandemic',
            name='Pandemic Closure',
            category='pandemic',
            probability=0.02,
            revenue_impact=(0.25, 0.65, 0.90, 1.0, 1.0),
            discount_rate_increase=0.02,
            multiple_reduction=0.15,
        ),
        StressScenario(
            id='key_injector_departure',
            name='Star Injector Departure',
            category='operational',
            probability=0.08,
            revenue_impact=(0.75, 0.85, 0.95, 1.0, 1.0),
            capex_increase_pct=0.004,
        ),
        StressScenario(
            id='fda_botox_restriction',
            name='Neurotoxin Regulatory Restriction',
            category='regulatory',
            probability=0.05,
            revenue_impact=(0.85, 0.88, 0.90, 0.90, 0.90),
            multiple_reduction=0.10,
        ),
        StressScenario(
            id='economic_recession',
            name='Economic Recession',
            category='economic',
            probability=0.15,
            revenue_impact=(0.70, 0.75, 0.85, 0.95, 1.0),
            discount_rate_increase=0.015,
            multiple_reduction=0.08,
        ),
        StressScenario(
            id='major_competitor_entry',
            name='Major Chain Competitor Entry',
            category='competitive',
            probability=0.12,
            revenue_impact=(0.85, 0.88, 0.92, 0.95, 0.98),
        ),
        StressScenario(
            id='technology_disruption',
            name='Equipment Obsolescence',
            category='technology',
            probability=0.06,
            revenue_impact=(0.90, 0.95, 1.0, 1.0, 1.0),
            capex_increase_pct=0.03,
        ),
        StressScenario(
            id='malpractice_lawsuit',
            name='Significant Malpractice Event',
            category='operational',
            probability=0.03,
            revenue_impact=(0.60, 0.75, 0.90, 0.95, 1.0),
            discount_rate_increase=0.025,
            multiple_reduction=0.20,
        ),
        StressScenario(
            id='state_licensing_change',
            name='State Licensing Requirements Change',
            category='regulatory',
            probability=0.10,
            capex_increase_pct=0.0015,
        ),
    )
}


def get_stress_scenario(scenario_id: str) -> StressScenario:
  """
  Look up a stress scenario by id.

  Raises:
    KeyError: If the id is not registered
  """
  try:
    return STRESS_SCENARIOS[scenario_id]
  except KeyError as e:
    raise KeyError(f"Unknown stress scenario: '{scenario_id}'. "
                   f'Available: {list(STRESS_SCENARIOS.keys())}') from e


def _revenue_multipliers(impact: Sequence[float], n_years: int,
                         severity: float) -> list[float]:
  if not impact:
    return [1.0] * n_years
  padded = [impact[min(t, len(impact) - 1)] for t in range(n_years)]
  return [1.0 - (1.0 - m) * severity for m in padded]


def stressed_growth_path(
    growth_path: Sequence[float],
    multipliers: Sequence[float],
) -> Tuple[float, ...]:
  """
  Growth path whose revenue equals the unstressed revenue times multipliers.

  With m_0 = 1, year t growth becomes (1 + g_t) * m_t / m_(t-1) - 1.

  Raises:
    InvalidAssumptionError: If a multiplier is not positive
  """
  if any(m <= 0 for m in multipliers):
    raise InvalidAssumptionError('revenue multipliers must be positive',
                                 context={'multipliers': list(multipliers)})
  path = []
  prior = 1.0
  for g, m in zip(growth_path, multipliers):
    path.append((1.0 + g) * m / prior - 1.0)
    prior = m
  return tuple(path)


def apply_stress_scenario(
    assumptions: ValuationAssumptions,
    scenario_id: str,
    severity: float = 1.0,
) -> ValuationAssumptions:
  """
  Return assumptions with a stress scenario applied.

  Args:
    assumptions: Unstressed assumptions
    scenario_id: Key into STRESS_SCENARIOS
    severity: Scale of every adjustment (1.0 = as defined, 0 = none)

  Returns:
    New validated ValuationAssumptions

  Raises:
    KeyError: If the scenario id is unknown
    InvalidAssumptionError: If severity is negative or the scaled
      adjustments leave the valid domain
  """
  scenario = get_stress_scenario(scenario_id)
  if severity < 0:
    raise InvalidAssumptionError('severity must be >= 0',
                                 context={'severity': severity})

  overrides: Dict[str, object] = {}
  if scenario.revenue_impact:
    multipliers = _revenue_multipliers(scenario.revenue_impact,
                                       assumptions.forecast_years, severity)
    overrides['growth_rate'] = stressed_growth_path(assumptions.growth_path,
                                                    multipliers)
  if scenario.discount_rate_increase:
    overrides['discount_rate'] = (assumptions.discount_rate +
                                  scenario.discount_rate_increase * severity)
  if scenario.multiple_reduction:
    overrides['exit_multiple'] = assumptions.exit_multiple * (
        1.0 - scenario.multiple_reduction * severity)
  if scenario.capex_increase_pct:
    overrides['capex_percent_of_revenue'] = (
        assumptions.capex_percent_of_revenue +
        scenario.capex_increase_pct * severity)

  logger.debug('Stress %s (severity %.2f): %s', scenario_id, severity,
               overrides)
  return assumptions.with_overrides(**overrides)


@dataclass(frozen=True)
class StressOutcome:
  """Valuation of one stressed case against the base case."""
  scenario: StressScenario
  enterprise_value: float
  ev_impact: float
  ev_impact_pct: float
  probability_weighted_impact: float


@dataclass(frozen=True)
class StressAnalysis:
  """
  Base case plus every stressed case.

  Attributes:
    base_enterprise_value: Unstressed EV
    outcomes: One StressOutcome per scenario, in request order
  """
  base_enterprise_value: float
  outcomes: Tuple[StressOutcome, ...]

  @property
  def expected_value_at_risk(self) -> float:
    """Sum of probability-weighted EV impacts (usually negative)."""
    return sum(o.probability_weighted_impact for o in self.outcomes)

  @property
  def probability_weighted_ev(self) -> float:
    return self.base_enterprise_value + self.expected_value_at_risk

  @property
  def worst_case_ev(self) -> float:
    return min([self.base_enterprise_value] +
               [o.enterprise_value for o in self.outcomes])

  @property
  def best_case_ev(self) -> float:
    return max([self.base_enterprise_value] +
               [o.enterprise_value for o in self.outcomes])

  def summary(self) -> Dict[str, float]:
    return {
        'base_enterprise_value': self.base_enterprise_value,
        'expected_value_at_risk': self.expected_value_at_risk,
        'probability_weighted_ev': self.probability_weighted_ev,
        'worst_case_ev': self.worst_case_ev,
        'best_case_ev': self.best_case_ev,
    }

  def to_frame(self) -> pd.DataFrame:
    """One row per scenario, indexed by scenario id."""
    return pd.DataFrame(
        [{
            'scenario': o.scenario.id,
            'name': o.scenario.name,
            'probability': o.scenario.probability,
            'enterprise_value': o.enterprise_value,
            'ev_impact': o.ev_impact,
            'ev_impact_pct': o.ev_impact_pct,
            'probability_weighted_impact': o.probability_weighted_impact,
        } for o in self.outcomes],
        columns=[
            'scenario', 'name', 'probability', 'enterprise_value', 'ev_impact',
            'ev_impact_pct', 'probability_weighted_impact'
        ],
    ).set_index('scenario')


def run_stress_analysis(
    assumptions: ValuationAssumptions,
    scenario_ids: Optional[Sequence[str]] = None,
    severity: float = 1.0,
    valuation_fn: ValuationFn = valuate,
) -> StressAnalysis:
  """
  Value the base case and each stressed case.

  Args:
    assumptions: Unstressed assumptions
    scenario_ids: Scenarios to run (default: all registered, in order)
    severity: Passed to apply_stress_scenario
    valuation_fn: Engine entry point (default: valuate)

  Returns:
    StressAnalysis with per-scenario EV impact and summary statistics

  Raises:
    KeyError: If a scenario id is unknown
    ValuationError: From a stressed valuation, with the scenario id in its
      context
  """
  if scenario_ids is None:
    scenario_ids = list(STRESS_SCENARIOS.keys())

  base_ev = valuation_fn(assumptions).enterprise_value
  outcomes = []
  for scenario_id in scenario_ids:
    scenario = get_stress_scenario(scenario_id)
    try:
      stressed = apply_stress_scenario(assumptions, scenario_id, severity)
      ev = valuation_fn(stressed).enterprise_value
    except ValuationError as e:
      raise e.with_context(scenario=scenario_id) from e

    impact = ev - base_ev
    outcomes.append(
        StressOutcome(
            scenario=scenario,
            enterprise_value=ev,
            ev_impact=impact,
            ev_impact_pct=impact / base_ev if base_ev else float('nan'),
            probability_weighted_impact=impact * scenario.probability,
        ))

  analysis = StressAnalysis(base_enterprise_value=base_ev,
                            outcomes=tuple(outcomes))
  logger.info('Stress analysis over %d scenarios: weighted EV=%.0f worst=%.0f',
              len(outcomes), analysis.probability_weighted_ev,
              analysis.worst_case_ev)
  return analysis
