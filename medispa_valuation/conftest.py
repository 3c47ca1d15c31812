import pytest

from medispa_valuation.domain.types import TerminalMethod
from medispa_valuation.domain.types import ValuationAssumptions


@pytest.fixture
def base_assumptions() -> ValuationAssumptions:
  """Established clinic: 3.5M revenue, 25% margin, 8.5% growth, 8.2x exit."""
  return ValuationAssumptions(
      base_revenue=3_500_000.0,
      base_ebitda_margin=0.25,
      growth_rate=0.085,
      forecast_years=5,
      discount_rate=0.12,
      tax_rate=0.26,
      capex_percent_of_revenue=0.03,
      working_capital_percent_of_revenue_delta=0.01,
      depreciation_percent_of_revenue=0.05,
      terminal_method=TerminalMethod.EXIT_MULTIPLE,
      exit_multiple=8.2,
      net_debt=0.0,
  )


@pytest.fixture
def perpetuity_assumptions(base_assumptions) -> ValuationAssumptions:
  """Base clinic valued with a 3% perpetuity growth terminal value."""
  return base_assumptions.with_overrides(
      terminal_method=TerminalMethod.PERPETUITY_GROWTH,
      terminal_growth_rate=0.03,
  )


@pytest.fixture
def simple_assumptions() -> ValuationAssumptions:
  """Round numbers for hand-checkable projections.

  Revenue 1000, 20% margin, 10% growth, no tax, no depreciation, no capex,
  no working capital: FCF equals EBITDA.
  """
  return ValuationAssumptions(
      base_revenue=1000.0,
      base_ebitda_margin=0.20,
      growth_rate=0.10,
      forecast_years=3,
      discount_rate=0.10,
      tax_rate=0.0,
      capex_percent_of_revenue=0.0,
      working_capital_percent_of_revenue_delta=0.0,
      depreciation_percent_of_revenue=0.0,
      exit_multiple=5.0,
  )
