'''
Comparable-multiple calibration.

A calibration is plain data: a base EV/EBITDA multiple, multiplicative
adjustment tables keyed by location, size, margin and growth bracket, the
thresholds that assign a clinic to a bracket, and the range the adjusted
multiple is clipped to.

The numbers below are illustrative calibrations for medispa transactions,
not authoritative market data. Callers with current comparables should
build their own MultipleCalibration and register it.
'''

from collections.abc import Callable
from dataclasses import dataclass, field
from math import inf
from typing import Dict, Optional, Tuple

from medispa_valuation.domain.types import MarketFactors, PolicyOutput
from medispa_valuation.domain.types import ValuationAssumptions
from medispa_valuation.errors import InvalidAssumptionError

Brackets = Tuple[Tuple[float, str], ...]


@dataclass(frozen=True)
class MultipleCalibration:
  '''
  Lookup tables for the comparable-multiple path.

  Bracket thresholds are (inclusive upper bound, bracket name) pairs in
  ascending order; a value belongs to the first bracket whose bound it does
  not exceed.

  Attributes:
    name: Calibration name
    base_multiple: Market EV/EBITDA multiple before adjustments
    min_multiple: Lower clip for the adjusted multiple
    max_multiple: Upper clip for the adjusted multiple
    location_factors: Market name -> factor
    size_brackets: Base revenue thresholds
    size_factors: Size bracket -> factor
    margin_brackets: Base EBITDA margin thresholds
    margin_factors: Margin bracket -> factor
    growth_brackets: Average revenue growth thresholds
    growth_factors: Growth bracket -> factor
  '''
  name: str = 'default'
  base_multiple: float = 8.2
  min_multiple: float = 6.0
  max_multiple: float = 15.0
  location_factors: Dict[str, float] = field(default_factory=lambda: {
      'manhattan': 1.15,
      'beverly_hills': 1.32,
      'san_francisco': 1.20,
      'miami': 1.08,
      'boston': 1.12,
      'dallas': 1.05,
      'atlanta': 0.95,
      'phoenix': 0.85,
      'suburban_standard': 1.00,
  })
  size_brackets: Brackets = (
      (2_000_000.0, 'micro'),
      (5_000_000.0, 'small'),
      (10_000_000.0, 'mid'),
      (inf, 'large'),
  )
  size_factors: Dict[str, float] = field(default_factory=lambda: {
      'micro': 0.85,
      'small': 1.00,
      'mid': 1.10,
      'large': 1.20,
  })
  margin_brackets: Brackets = (
      (0.15, 'low'),
      (0.25, 'standard'),
      (inf, 'high'),
  )
  margin_factors: Dict[str, float] = field(default_factory=lambda: {
      'low': 0.90,
      'standard': 1.00,
      'high': 1.15,
  })
  growth_brackets: Brackets = (
      (0.03, 'low'),
      (0.08, 'standard'),
      (0.15, 'high'),
      (inf, 'hyper'),
  )
  growth_factors: Dict[str, float] = field(default_factory=lambda: {
      'low': 0.95,
      'standard': 1.00,
      'high': 1.03,
      'hyper': 1.06,
  })


def _bracket_for(value: float, brackets: Brackets) -> str:
  for upper, name in brackets:
    if value <= upper:
      return name
  return brackets[-1][1]


def _lookup(table: Dict[str, float], key: str, kind: str) -> float:
  try:
    return table[key]
  except KeyError as e:
    raise InvalidAssumptionError(
        f"Unknown {kind}: '{key}'. Available: {sorted(table)}",
        context={kind: key}) from e


class MarketMultipleAdjustment:
  '''
  Adjust a base market multiple for a clinic's segment.

  adjusted = clip(base * location * size * margin * growth,
                  min_multiple, max_multiple)
  '''

  def __init__(self, calibration: Optional[MultipleCalibration] = None):
    '''
    Initialize adjustment policy.

    Args:
      calibration: Lookup tables (default: MultipleCalibration())
    '''
    self.calibration = calibration or MultipleCalibration()

  def resolve_factors(self, assumptions: ValuationAssumptions,
                      factors: Optional[MarketFactors]) -> MarketFactors:
    '''Fill in brackets left unset from the assumptions.'''
    factors = factors or assumptions.market_factors or MarketFactors()
    cal = self.calibration
    growth_path = assumptions.growth_path
    avg_growth = sum(growth_path) / len(growth_path)

    return MarketFactors(
        location=factors.location,
        size_bracket=factors.size_bracket or
        _bracket_for(assumptions.base_revenue, cal.size_brackets),
        margin_bracket=factors.margin_bracket or
        _bracket_for(assumptions.base_ebitda_margin, cal.margin_brackets),
        growth_bracket=factors.growth_bracket or
        _bracket_for(avg_growth, cal.growth_brackets),
    )

  def compute(
      self,
      assumptions: ValuationAssumptions,
      factors: Optional[MarketFactors] = None,
      base_multiple: Optional[float] = None,
  ) -> PolicyOutput[float]:
    '''
    Compute the adjusted EV/EBITDA multiple.

    Args:
      assumptions: Valuation assumptions (used to derive unset brackets)
      factors: Segment descriptors; falls back to assumptions.market_factors
      base_multiple: Override for the calibration's base multiple (e.g. from
        a market snapshot)

    Returns:
      PolicyOutput with the clipped multiple and each factor in diagnostics

    Raises:
      InvalidAssumptionError: If a location or bracket is not in the tables
    '''
    cal = self.calibration
    resolved = self.resolve_factors(assumptions, factors)
    base = cal.base_multiple if base_multiple is None else base_multiple

    location_factor = _lookup(cal.location_factors, resolved.location,
                              'location')
    size_factor = _lookup(cal.size_factors, resolved.size_bracket,
                          'size_bracket')
    margin_factor = _lookup(cal.margin_factors, resolved.margin_bracket,
                            'margin_bracket')
    growth_factor = _lookup(cal.growth_factors, resolved.growth_bracket,
                            'growth_bracket')

    raw = base * location_factor * size_factor * margin_factor * growth_factor
    clipped = min(max(raw, cal.min_multiple), cal.max_multiple)

    return PolicyOutput(value=clipped,
                        diag={
                            'multiple_calibration': cal.name,
                            'multiple_base': base,
                            'multiple_location': resolved.location,
                            'multiple_location_factor': location_factor,
                            'multiple_size_bracket': resolved.size_bracket,
                            'multiple_size_factor': size_factor,
                            'multiple_margin_bracket': resolved.margin_bracket,
                            'multiple_margin_factor': margin_factor,
                            'multiple_growth_bracket': resolved.growth_bracket,
                            'multiple_growth_factor': growth_factor,
                            'multiple_unclipped': raw,
                            'multiple_adjusted': clipped,
                            'multiple_clipped': clipped != raw,
                        })


CALIBRATIONS: dict[str, Callable[[], MultipleCalibration]] = {
    'default':
        MultipleCalibration,
    'transaction_calibrated':
        lambda: MultipleCalibration(
            name='transaction_calibrated',
            location_factors={
                'manhattan': 1.2075,
                'beverly_hills': 1.386,
                'san_francisco': 1.20,
                'miami': 1.08,
                'boston': 1.12,
                'dallas': 1.00,
                'atlanta': 0.95,
                'phoenix': 0.85,
                'suburban_standard': 1.00,
            },
            size_factors={
                'micro': 0.95,
                'small': 0.95,
                'mid': 1.15,
                'large': 1.25,
            },
            margin_brackets=(
                (0.15, 'low'),
                (0.18, 'standard'),
                (0.22, 'solid'),
                (0.28, 'strong'),
                (inf, 'high'),
            ),
            margin_factors={
                'low': 0.95,
                'standard': 1.00,
                'solid': 1.02,
                'strong': 1.06,
                'high': 1.12,
            },
        ),
    'conservative':
        lambda: MultipleCalibration(
            name='conservative',
            min_multiple=6.5,
            max_multiple=12.0,
        ),
}


def get_calibration(name: str) -> MultipleCalibration:
  '''
  Look up a registered calibration by name.

  Raises:
    KeyError: If the name is not registered
  '''
  try:
    factory = CALIBRATIONS[name]
  except KeyError as e:
    raise KeyError(f"Unknown multiple calibration: '{name}'. "
                   f'Available: {list(CALIBRATIONS.keys())}') from e
  return factory()
