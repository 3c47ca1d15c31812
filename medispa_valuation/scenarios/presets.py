"""
Named assumption presets.

Presets are factories so every call returns a fresh, validated
ValuationAssumptions that callers can vary with with_overrides().

  base: Established single-location clinic (3.5M revenue, 25% margin)
  growth: Expanding clinic with higher margin and double-digit growth
  lean: Cost-constrained clinic with thin margins and slow growth
  premium: Top-tier market location with premium pricing

To add a preset:
  def _my_preset() -> ValuationAssumptions:
    return _base().with_overrides(growth_rate=0.10)

  PRESETS['my_preset'] = _my_preset
"""

from collections.abc import Callable

from medispa_valuation.domain.types import MarketFactors
from medispa_valuation.domain.types import TerminalMethod
from medispa_valuation.domain.types import ValuationAssumptions


def _base() -> ValuationAssumptions:
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


def _growth() -> ValuationAssumptions:
  return _base().with_overrides(
      base_ebitda_margin=0.275,
      growth_rate=0.128,
      target_ebitda_margin=0.29,
  )


def _lean() -> ValuationAssumptions:
  return _base().with_overrides(
      base_ebitda_margin=0.228,
      growth_rate=0.062,
      capex_percent_of_revenue=0.02,
      discount_rate=0.13,
  )


def _premium() -> ValuationAssumptions:
  return _base().with_overrides(
      base_ebitda_margin=0.262,
      growth_rate=0.098,
      market_factors=MarketFactors(location='beverly_hills'),
  )


PRESETS: dict[str, Callable[[], ValuationAssumptions]] = {
    'base': _base,
    'growth': _growth,
    'lean': _lean,
    'premium': _premium,
}


def get_preset(name: str) -> ValuationAssumptions:
  """
  Build the named preset.

  Raises:
    KeyError: If the preset name is not registered
  """
  try:
    factory = PRESETS[name]
  except KeyError as e:
    raise KeyError(f"Unknown preset: '{name}'. "
                   f'Available: {list(PRESETS.keys())}') from e
  return factory()


def list_presets() -> list[str]:
  """Names of all registered presets."""
  return list(PRESETS.keys())
