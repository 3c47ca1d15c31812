'''
Domain types for the medispa valuation engine.

These frozen dataclasses are the typed interfaces between components:
assumptions flow into the projection builder and valuation engine,
projections and results flow out. Nothing here is mutated after
construction; overrides always produce a new instance.
'''

from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
import json
from math import isfinite
from numbers import Integral, Real
from typing import Any, Dict, Generic, Optional, Sequence, Tuple, TypeVar, Union

from medispa_valuation.errors import InvalidAssumptionError
from medispa_valuation.errors import InvalidRateError

T = TypeVar('T')

GrowthRate = Union[float, Tuple[float, ...]]


class TerminalMethod(str, Enum):
  '''How continuing value at the forecast horizon is computed.'''
  PERPETUITY_GROWTH = 'perpetuity_growth'
  EXIT_MULTIPLE = 'exit_multiple'


class ValuationMethod(str, Enum):
  '''Which engine entry point produced a ValuationResult.'''
  DCF = 'dcf'
  MULTIPLE = 'multiple'
  BLENDED = 'blended'


@dataclass
class PolicyOutput(Generic[T]):
  '''
  Standard output from any policy.

  Every policy returns both a computed value and diagnostic information
  explaining how the value was computed.

  Attributes:
    value: The computed value (type depends on policy)
    diag: Dictionary of diagnostic information
  '''
  value: T
  diag: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MarketFactors:
  '''
  Segment descriptors used by the comparable-multiple path.

  Each descriptor is a key into a calibration table. Brackets left as None
  are derived from the assumptions (revenue, margin, growth) using the
  calibration's thresholds.

  Attributes:
    location: Market name (e.g. 'manhattan', 'suburban_standard')
    size_bracket: Revenue bracket ('micro', 'small', 'mid', 'large')
    margin_bracket: EBITDA margin bracket ('low', 'standard', 'high')
    growth_bracket: Revenue growth bracket ('low', 'standard', 'high', 'hyper')
  '''
  location: str = 'suburban_standard'
  size_bracket: Optional[str] = None
  margin_bracket: Optional[str] = None
  growth_bracket: Optional[str] = None


@dataclass(frozen=True)
class MarketSnapshot:
  '''
  Point-in-time market data supplied by the caller.

  The engine never fetches or refreshes this; callers re-fetch and pass a
  fresh snapshot. Every field is optional and only fields that are present
  produce overrides.

  Attributes:
    risk_free_rate: Risk-free rate (e.g. 10y treasury)
    market_risk_premium: Equity market risk premium
    industry_multiple: Medispa EV/EBITDA multiple from comparables
    transaction_median_multiple: Median multiple of recent medispa deals
    transaction_count: Number of recent medispa deals
    consumer_confidence: Consumer confidence index (100 = neutral)
    unemployment_rate: Unemployment rate
    as_of: Free-form label for when the snapshot was taken
  '''
  risk_free_rate: Optional[float] = None
  market_risk_premium: Optional[float] = None
  industry_multiple: Optional[float] = None
  transaction_median_multiple: Optional[float] = None
  transaction_count: Optional[int] = None
  consumer_confidence: Optional[float] = None
  unemployment_rate: Optional[float] = None
  as_of: Optional[str] = None


def _require(condition: bool, message: str, **context: Any) -> None:
  if not condition:
    raise InvalidAssumptionError(message, context=context)


def _is_number(value: Any) -> bool:
  return (isinstance(value, Real) and not isinstance(value, bool) and
          isfinite(value))


def _is_integer(value: Any) -> bool:
  return isinstance(value, Integral) and not isinstance(value, bool)


@dataclass(frozen=True)
class ValuationAssumptions:
  '''
  Normalized inputs for one valuation run.

  Validated at construction so invalid states cannot reach the engine.
  Use with_overrides() to derive variants for sensitivity and simulation.

  Attributes:
    base_revenue: Trailing (year 0) revenue
    base_ebitda_margin: Year 1 EBITDA margin, in (0, 1)
    growth_rate: Annual revenue growth, constant or one rate per year
    forecast_years: Explicit forecast horizon in years
    discount_rate: WACC applied to unlevered free cash flow
    tax_rate: Cash tax rate on EBIT, in [0, 1)
    capex_percent_of_revenue: Capex as a share of same-year revenue
    working_capital_percent_of_revenue_delta: Working capital consumed per
      unit of incremental revenue
    depreciation_percent_of_revenue: Depreciation as a share of revenue
    target_ebitda_margin: Optional final-year margin for a linear margin trend
    terminal_method: Perpetuity growth or exit multiple
    terminal_growth_rate: Perpetual growth for the Gordon terminal value
    exit_multiple: EV/EBITDA multiple applied to final-year EBITDA
    net_debt: Debt less cash, subtracted when bridging to equity
    non_operating_assets: Excess assets added when bridging to equity
    market_factors: Optional segment descriptors for the multiple path
    depreciation_schedule: Optional (asset_cost, useful_life_years) pairs;
      replaces the percent-of-revenue depreciation when present
  '''
  base_revenue: float
  base_ebitda_margin: float
  growth_rate: GrowthRate
  forecast_years: int = 5
  discount_rate: float = 0.12
  tax_rate: float = 0.26
  capex_percent_of_revenue: float = 0.03
  working_capital_percent_of_revenue_delta: float = 0.01
  depreciation_percent_of_revenue: float = 0.05
  target_ebitda_margin: Optional[float] = None
  terminal_method: TerminalMethod = TerminalMethod.EXIT_MULTIPLE
  terminal_growth_rate: float = 0.03
  exit_multiple: float = 8.2
  net_debt: float = 0.0
  non_operating_assets: float = 0.0
  market_factors: Optional[MarketFactors] = None
  depreciation_schedule: Optional[Tuple[Tuple[float, int], ...]] = None

  def __post_init__(self) -> None:
    if not isinstance(self.terminal_method, TerminalMethod):
      try:
        object.__setattr__(self, 'terminal_method',
                           TerminalMethod(self.terminal_method))
      except ValueError as e:
        raise InvalidAssumptionError(
            f'Unknown terminal method: {self.terminal_method!r}',
            context={'terminal_method': self.terminal_method}) from e

    if _is_integer(self.forecast_years):
      object.__setattr__(self, 'forecast_years', int(self.forecast_years))
    if isinstance(self.growth_rate, (list, tuple)):
      object.__setattr__(self, 'growth_rate', tuple(self.growth_rate))
    if self.depreciation_schedule is not None:
      object.__setattr__(
          self, 'depreciation_schedule',
          tuple((cost, life) for cost, life in self.depreciation_schedule))
    if isinstance(self.market_factors, dict):
      object.__setattr__(self, 'market_factors',
                         MarketFactors(**self.market_factors))

    self._validate()

  def _validate(self) -> None:
    _require(
        _is_integer(self.forecast_years) and self.forecast_years >= 1,
        'forecast_years must be an integer >= 1',
        forecast_years=self.forecast_years)
    _require(
        _is_number(self.base_revenue) and self.base_revenue > 0,
        'base_revenue must be positive',
        base_revenue=self.base_revenue)
    _require(
        _is_number(self.base_ebitda_margin) and
        0.0 < self.base_ebitda_margin < 1.0,
        'base_ebitda_margin must be in (0, 1)',
        base_ebitda_margin=self.base_ebitda_margin)
    if self.target_ebitda_margin is not None:
      _require(
          _is_number(self.target_ebitda_margin) and
          0.0 < self.target_ebitda_margin < 1.0,
          'target_ebitda_margin must be in (0, 1)',
          target_ebitda_margin=self.target_ebitda_margin)

    if isinstance(self.growth_rate, tuple):
      _require(
          len(self.growth_rate) == self.forecast_years,
          'growth_rate sequence must have one rate per forecast year',
          growth_rate=self.growth_rate,
          forecast_years=self.forecast_years)
      rates: Sequence[Any] = self.growth_rate
    else:
      rates = [self.growth_rate]
    _require(
        all(_is_number(g) and g > -1.0 for g in rates),
        'growth rates must be finite and greater than -100%',
        growth_rate=self.growth_rate)

    if _is_number(self.discount_rate) and self.discount_rate <= -1.0:
      raise InvalidRateError('discount_rate must be greater than -100%',
                             context={'discount_rate': self.discount_rate})
    _require(
        _is_number(self.discount_rate) and self.discount_rate > 0,
        'discount_rate must be positive',
        discount_rate=self.discount_rate)
    _require(
        _is_number(self.tax_rate) and 0.0 <= self.tax_rate < 1.0,
        'tax_rate must be in [0, 1)',
        tax_rate=self.tax_rate)

    for name in ('capex_percent_of_revenue',
                 'working_capital_percent_of_revenue_delta',
                 'depreciation_percent_of_revenue'):
      value = getattr(self, name)
      _require(
          _is_number(value) and value >= 0,
          f'{name} must be non-negative',
          **{name: value})

    _require(
        _is_number(self.terminal_growth_rate),
        'terminal_growth_rate must be finite',
        terminal_growth_rate=self.terminal_growth_rate)
    if self.terminal_method is TerminalMethod.EXIT_MULTIPLE:
      _require(
          _is_number(self.exit_multiple) and self.exit_multiple > 0,
          'exit_multiple must be positive',
          exit_multiple=self.exit_multiple)

    _require(_is_number(self.net_debt), 'net_debt must be finite',
             net_debt=self.net_debt)
    _require(
        _is_number(self.non_operating_assets) and
        self.non_operating_assets >= 0,
        'non_operating_assets must be non-negative',
        non_operating_assets=self.non_operating_assets)

    if self.depreciation_schedule is not None:
      _require(
          all(
              _is_number(cost) and cost >= 0 and _is_integer(life) and
              life >= 1 for cost, life in self.depreciation_schedule),
          'depreciation_schedule entries must be (cost >= 0, life >= 1)',
          depreciation_schedule=self.depreciation_schedule)

  @property
  def growth_path(self) -> Tuple[float, ...]:
    '''Yearly growth rates [g1, g2, ..., gN].'''
    if isinstance(self.growth_rate, tuple):
      return self.growth_rate
    return (float(self.growth_rate),) * self.forecast_years

  def with_overrides(self, **overrides: Any) -> 'ValuationAssumptions':
    '''
    Return a new validated instance with the given fields replaced.

    Raises:
      InvalidAssumptionError: If a field name is unknown or a new value
        is out of domain
    '''
    known = {f.name for f in fields(self)}
    unknown = sorted(set(overrides) - known)
    if unknown:
      raise InvalidAssumptionError(f'Unknown assumption fields: {unknown}',
                                   context={'unknown': unknown})
    return replace(self, **overrides)

  def to_dict(self) -> Dict[str, Any]:
    '''Convert to a JSON-friendly dictionary.'''
    data = asdict(self)
    data['terminal_method'] = self.terminal_method.value
    return data

  def to_json(self) -> str:
    '''Serialize to JSON string.'''
    return json.dumps(self.to_dict(), indent=2)

  @classmethod
  def from_dict(cls, data: Dict[str, Any]) -> 'ValuationAssumptions':
    '''Create from dictionary (inverse of to_dict).'''
    return cls(**data)

  @classmethod
  def from_json(cls, json_str: str) -> 'ValuationAssumptions':
    '''Create from JSON string.'''
    return cls.from_dict(json.loads(json_str))


@dataclass(frozen=True)
class YearProjection:
  '''
  One forecast year of the operating model.

  Attributes:
    year: 1-based forecast year
    revenue: Revenue for the year
    ebitda_margin: EBITDA margin applied this year
    ebitda: Revenue * margin
    depreciation: Depreciation charge
    ebit: EBITDA - depreciation
    nopat: EBIT * (1 - tax)
    capex: Capital expenditure
    delta_working_capital: Working capital consumed by revenue growth
    free_cash_flow: NOPAT + depreciation - capex - delta working capital
  '''
  year: int
  revenue: float
  ebitda_margin: float
  ebitda: float
  depreciation: float
  ebit: float
  nopat: float
  capex: float
  delta_working_capital: float
  free_cash_flow: float


@dataclass(frozen=True)
class ValuationResult:
  '''
  Valuation output with diagnostics.

  For method == DCF, enterprise_value is exactly the sum of the two
  present values. The multiple path reports zeros for the DCF breakdown;
  the blended path reports the DCF leg's breakdown.

  Attributes:
    method: Entry point that produced the result
    present_value_of_cash_flows: PV of explicit-period free cash flow
    terminal_value: Undiscounted terminal value at the horizon
    present_value_of_terminal: Terminal value discounted to today
    enterprise_value: Value of operations
    equity_value: EV - net debt + non-operating assets
    implied_multiple: EV / final-year EBITDA
    final_year_ebitda: EBITDA in the last forecast year
    projections: Yearly operating projections
    diag: Merged diagnostics from all policies
  '''
  method: ValuationMethod
  present_value_of_cash_flows: float
  terminal_value: float
  present_value_of_terminal: float
  enterprise_value: float
  equity_value: float
  implied_multiple: float
  final_year_ebitda: float
  projections: Tuple[YearProjection, ...] = ()
  diag: Dict[str, Any] = field(default_factory=dict)

  def metric(self, name: str) -> float:
    '''Return a scalar result field by name (e.g. 'equity_value').'''
    if name not in _RESULT_METRICS:
      raise KeyError(f"Unknown result metric: '{name}'. "
                     f'Available: {sorted(_RESULT_METRICS)}')
    return float(getattr(self, name))

  def to_dict(self) -> Dict[str, Any]:
    '''Convert to dictionary for DataFrame creation.'''
    result: Dict[str, Any] = {
        'method': self.method.value,
        'present_value_of_cash_flows': self.present_value_of_cash_flows,
        'terminal_value': self.terminal_value,
        'present_value_of_terminal': self.present_value_of_terminal,
        'enterprise_value': self.enterprise_value,
        'equity_value': self.equity_value,
        'implied_multiple': self.implied_multiple,
        'final_year_ebitda': self.final_year_ebitda,
    }
    result.update(self.diag)
    return result


_RESULT_METRICS = frozenset({
    'present_value_of_cash_flows',
    'terminal_value',
    'present_value_of_terminal',
    'enterprise_value',
    'equity_value',
    'implied_multiple',
    'final_year_ebitda',
})
