"""
Operating projection builder.

Turns base-year revenue and margin assumptions into a yearly series of
revenue, EBITDA, depreciation, NOPAT, capex, working-capital investment and
unlevered free cash flow for years 1..N.

Working capital policy: only incremental revenue consumes working capital.
A year of shrinking revenue has a zero working-capital delta; it never
releases cash.
"""

import logging
from typing import Tuple

from medispa_valuation.domain.types import PolicyOutput
from medispa_valuation.domain.types import ValuationAssumptions
from medispa_valuation.domain.types import YearProjection
from medispa_valuation.errors import InvalidAssumptionError
from medispa_valuation.policies.depreciation import DepreciationPolicy
from medispa_valuation.policies.depreciation import PercentOfRevenue
from medispa_valuation.policies.depreciation import StraightLineSchedule
from medispa_valuation.policies.margin import margin_policy_for

logger = logging.getLogger(__name__)


def depreciation_policy_for(
    assumptions: ValuationAssumptions) -> DepreciationPolicy:
  """Asset schedule when one is supplied, else percent of revenue."""
  if assumptions.depreciation_schedule:
    return StraightLineSchedule(assumptions.depreciation_schedule)
  return PercentOfRevenue(assumptions.depreciation_percent_of_revenue)


def project_revenues(base_revenue: float,
                     growth_path: Tuple[float, ...]) -> list[float]:
  """Compound base revenue by each year's growth rate."""
  revenues = []
  revenue = base_revenue
  for g in growth_path:
    revenue *= (1.0 + g)
    revenues.append(revenue)
  return revenues


def build_projections_with_diag(
    assumptions: ValuationAssumptions
) -> PolicyOutput[Tuple[YearProjection, ...]]:
  """
  Build yearly projections and collect policy diagnostics.

  Args:
    assumptions: Validated valuation assumptions

  Returns:
    PolicyOutput with the tuple of YearProjection (years 1..N) and merged
    margin/depreciation diagnostics

  Raises:
    InvalidAssumptionError: If base revenue is not positive or the horizon
      is shorter than one year
  """
  if assumptions.base_revenue <= 0:
    raise InvalidAssumptionError('base_revenue must be positive',
                                 context={'base_revenue': assumptions.base_revenue})
  if assumptions.forecast_years < 1:
    raise InvalidAssumptionError(
        'forecast_years must be >= 1',
        context={'forecast_years': assumptions.forecast_years})

  n_years = assumptions.forecast_years
  revenues = project_revenues(assumptions.base_revenue, assumptions.growth_path)

  margin_result = margin_policy_for(assumptions.target_ebitda_margin).compute(
      assumptions.base_ebitda_margin, n_years)
  depreciation_result = depreciation_policy_for(assumptions).compute(revenues)

  tax = assumptions.tax_rate
  projections = []
  prior_revenue = assumptions.base_revenue

  for t, (revenue, margin, depreciation) in enumerate(zip(
      revenues, margin_result.value, depreciation_result.value),
                                                     start=1):
    ebitda = revenue * margin
    ebit = ebitda - depreciation
    nopat = ebit * (1.0 - tax)
    capex = assumptions.capex_percent_of_revenue * revenue
    delta_wc = (assumptions.working_capital_percent_of_revenue_delta *
                max(0.0, revenue - prior_revenue))
    fcf = nopat + depreciation - capex - delta_wc

    projections.append(
        YearProjection(
            year=t,
            revenue=revenue,
            ebitda_margin=margin,
            ebitda=ebitda,
            depreciation=depreciation,
            ebit=ebit,
            nopat=nopat,
            capex=capex,
            delta_working_capital=delta_wc,
            free_cash_flow=fcf,
        ))
    prior_revenue = revenue

  logger.debug('Projected %d years: revenue %.0f -> %.0f, final FCF %.0f',
               n_years, assumptions.base_revenue, revenues[-1],
               projections[-1].free_cash_flow)

  diag = {}
  diag.update(margin_result.diag)
  diag.update(depreciation_result.diag)
  return PolicyOutput(value=tuple(projections), diag=diag)


def build_projections(
    assumptions: ValuationAssumptions) -> Tuple[YearProjection, ...]:
  """Yearly projections for years 1..forecast_years."""
  return build_projections_with_diag(assumptions).value
