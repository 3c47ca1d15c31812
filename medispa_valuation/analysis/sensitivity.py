"""
Sensitivity analysis for medispa valuation.

Two tools:
  run_sensitivity: 2-D (or 1-D) grid of a valuation metric across the
    Cartesian product of two assumption fields
  run_tornado: one-way shocks per driver, ranked by high-side impact

Both are deterministic: the same base assumptions and value lists always
produce the same numbers.

Usage:
  from medispa_valuation.analysis.sensitivity import SensitivityAxis
  from medispa_valuation.analysis.sensitivity import run_sensitivity

  grid = run_sensitivity(
      base,
      SensitivityAxis('discount_rate', (0.10, 0.12, 0.14)),
      SensitivityAxis('exit_multiple', (6.0, 8.2, 10.0)),
  )
  print(grid.to_frame())
"""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
import logging
from typing import Any, Optional

import numpy as np
import pandas as pd

from medispa_valuation.analysis.parallel import map_chunks
from medispa_valuation.domain.types import ValuationAssumptions
from medispa_valuation.domain.types import ValuationResult
from medispa_valuation.engine.valuation import valuate
from medispa_valuation.errors import InvalidAssumptionError
from medispa_valuation.errors import ValuationError

logger = logging.getLogger(__name__)

ValuationFn = Callable[[ValuationAssumptions], ValuationResult]


@dataclass(frozen=True)
class SensitivityAxis:
  """
  One varied assumption field and its ordered sample values.

  Attributes:
    name: ValuationAssumptions field name (e.g. 'discount_rate')
    values: Ordered values to substitute
  """
  name: str
  values: tuple

  def __post_init__(self) -> None:
    object.__setattr__(self, 'values', tuple(self.values))
    if not self.values:
      raise InvalidAssumptionError(f'{self.name} values cannot be empty',
                                   context={'axis': self.name})

  def labels(self) -> list[str]:
    """Display labels for the axis values."""
    return [_format_label(v) for v in self.values]


def _format_label(value: Any) -> str:
  if isinstance(value, float) and abs(value) < 1:
    return f'{value:.1%}'
  return str(value)


@dataclass(frozen=True, eq=False)
class SensitivityGrid:
  """
  Valuation metric across one or two varied assumptions.

  Attributes:
    axis_a: Row axis (outer loop)
    axis_b: Column axis (inner loop), or None for a one-way grid
    metric: ValuationResult field recorded in each cell
    values: Array of shape (len(axis_a), len(axis_b) or 1)
  """
  axis_a: SensitivityAxis
  axis_b: Optional[SensitivityAxis]
  metric: str
  values: np.ndarray

  @property
  def shape(self) -> tuple[int, int]:
    return self.values.shape[0], self.values.shape[1]

  def value_at(self, a_value: Any, b_value: Any = None) -> float:
    """Cell value for the given axis values."""
    row = self.axis_a.values.index(a_value)
    col = 0 if self.axis_b is None else self.axis_b.values.index(b_value)
    return float(self.values[row, col])

  def to_frame(self) -> pd.DataFrame:
    """
    DataFrame with axis A values as index and axis B values as columns.
    """
    columns = self.axis_b.labels() if self.axis_b else [self.metric]
    df = pd.DataFrame(self.values, index=self.axis_a.labels(), columns=columns)
    df.index.name = self.axis_a.name
    df.columns.name = self.axis_b.name if self.axis_b else None
    return df


class _GridEvaluator:
  """Evaluates grid cells by flat index (row-major); picklable."""

  def __init__(
      self,
      base: ValuationAssumptions,
      axis_a: SensitivityAxis,
      axis_b: Optional[SensitivityAxis],
      metric: str,
      valuation_fn: ValuationFn,
  ):
    self.base = base
    self.axis_a = axis_a
    self.axis_b = axis_b
    self.metric = metric
    self.valuation_fn = valuation_fn
    self.n_cols = len(axis_b.values) if axis_b else 1

  def overrides_for(self, index: int) -> tuple[int, int, dict[str, Any]]:
    row, col = divmod(index, self.n_cols)
    overrides = {self.axis_a.name: self.axis_a.values[row]}
    if self.axis_b is not None:
      overrides[self.axis_b.name] = self.axis_b.values[col]
    return row, col, overrides

  def __call__(self, start: int, stop: int) -> list[float]:
    out = []
    for index in range(start, stop):
      row, col, overrides = self.overrides_for(index)
      try:
        result = self.valuation_fn(self.base.with_overrides(**overrides))
      except ValuationError as e:
        raise e.with_context(row=row, col=col, overrides=overrides) from e
      out.append(result.metric(self.metric))
    return out


def run_sensitivity(
    base: ValuationAssumptions,
    param_a: SensitivityAxis,
    param_b: Optional[SensitivityAxis] = None,
    metric: str = 'equity_value',
    valuation_fn: ValuationFn = valuate,
    max_workers: Optional[int] = None,
    use_processes: bool = False,
) -> SensitivityGrid:
  """
  Build a sensitivity grid.

  Cells are evaluated in row-major order: outer loop over param_a, inner
  loop over param_b. Each cell overrides the named fields on a copy of
  `base` and re-runs the valuation.

  Args:
    base: Base-case assumptions
    param_a: Row axis
    param_b: Optional column axis
    metric: ValuationResult field to record ('equity_value',
      'enterprise_value', ...)
    valuation_fn: Engine entry point (default: valuate)
    max_workers: Worker cap for large grids (see analysis.parallel)
    use_processes: Use processes instead of threads for large grids

  Returns:
    SensitivityGrid of shape (len(param_a.values), len(param_b.values) or 1)

  Raises:
    InvalidAssumptionError: If both axes name the same field
    ValuationError: First failing cell, with row, col and overrides in
      its context
  """
  if param_b is not None and param_b.name == param_a.name:
    raise InvalidAssumptionError('Sensitivity axes must vary different fields',
                                 context={'axis': param_a.name})

  evaluator = _GridEvaluator(base, param_a, param_b, metric, valuation_fn)
  n_rows = len(param_a.values)
  n_cells = n_rows * evaluator.n_cols

  logger.info('Building sensitivity grid: %s x %s (%d cells)', param_a.name,
              param_b.name if param_b else '-', n_cells)

  flat = map_chunks(evaluator,
                    n_cells,
                    max_workers=max_workers,
                    use_processes=use_processes)
  values = flat.reshape(n_rows, evaluator.n_cols)
  values.setflags(write=False)

  return SensitivityGrid(axis_a=param_a,
                         axis_b=param_b,
                         metric=metric,
                         values=values)


@dataclass(frozen=True)
class TornadoBar:
  """
  One driver's one-way sensitivity.

  Attributes:
    name: Assumption field that was shocked
    base_input: Unshocked input value
    low_input: Input after the low-side shock
    high_input: Input after the high-side shock
    base_value: Metric at the base case
    low_value: Metric with the low-side shock
    high_value: Metric with the high-side shock
    low_delta: low_value - base_value
    high_delta: high_value - base_value
  """
  name: str
  base_input: Any
  low_input: Any
  high_input: Any
  base_value: float
  low_value: float
  high_value: float
  low_delta: float
  high_delta: float

  @property
  def swing(self) -> float:
    """Total range between the two shocked values."""
    return abs(self.high_value - self.low_value)


def _scale(value: Any, factor: float) -> Any:
  if isinstance(value, Sequence) and not isinstance(value, str):
    return tuple(v * factor for v in value)
  # Integer drivers (forecast_years) stay integers.
  if isinstance(value, int) and not isinstance(value, bool):
    return int(round(value * factor))
  return value * factor


def run_tornado(
    assumptions: ValuationAssumptions,
    driver_shocks: Mapping[str, tuple[float, float]],
    metric: str = 'equity_value',
    valuation_fn: ValuationFn = valuate,
) -> list[TornadoBar]:
  """
  One-way sensitivity ranking of value drivers.

  Each driver is shocked relative to its base value: shocked input =
  base * (1 + pct). Per-year growth sequences are scaled element-wise.

  Args:
    assumptions: Base-case assumptions
    driver_shocks: Field name -> (low_pct, high_pct), e.g.
      {'discount_rate': (-0.2, 0.2)}
    metric: ValuationResult field to compare
    valuation_fn: Engine entry point (default: valuate)

  Returns:
    TornadoBar list sorted by absolute high-side delta, largest first

  Raises:
    ValuationError: First failing shock, with driver and side in context
  """
  base_value = valuation_fn(assumptions).metric(metric)
  bars = []

  for name, (low_pct, high_pct) in driver_shocks.items():
    if not hasattr(assumptions, name):
      raise InvalidAssumptionError(f'Unknown assumption field: {name!r}',
                                   context={'driver': name})
    base_input = getattr(assumptions, name)
    shocked = {}
    for side, pct in (('low', low_pct), ('high', high_pct)):
      shocked_input = _scale(base_input, 1.0 + pct)
      try:
        value = valuation_fn(assumptions.with_overrides(
            **{name: shocked_input})).metric(metric)
      except ValuationError as e:
        raise e.with_context(driver=name, side=side,
                             overrides={name: shocked_input}) from e
      shocked[side] = (shocked_input, value)

    bars.append(
        TornadoBar(
            name=name,
            base_input=base_input,
            low_input=shocked['low'][0],
            high_input=shocked['high'][0],
            base_value=base_value,
            low_value=shocked['low'][1],
            high_value=shocked['high'][1],
            low_delta=shocked['low'][1] - base_value,
            high_delta=shocked['high'][1] - base_value,
        ))

  bars.sort(key=lambda bar: abs(bar.high_delta), reverse=True)
  logger.debug('Tornado ranking: %s', [bar.name for bar in bars])
  return bars


def tornado_frame(bars: Sequence[TornadoBar]) -> pd.DataFrame:
  """Tornado bars as a DataFrame, one row per driver in ranked order."""
  return pd.DataFrame(
      [{
          'driver': bar.name,
          'low_delta': bar.low_delta,
          'high_delta': bar.high_delta,
          'low_value': bar.low_value,
          'high_value': bar.high_value,
          'swing': bar.swing,
      } for bar in bars],
      columns=[
          'driver', 'low_delta', 'high_delta', 'low_value', 'high_value',
          'swing'
      ],
  ).set_index('driver')


def frange(start: float, stop: float, step: float) -> list[float]:
  """
  Inclusive float range with rounding.

  Args:
      start: Start value
      stop: Stop value (inclusive)
      step: Step size

  Returns:
      List of floats from start to stop (inclusive)
  """
  if step <= 0:
    raise ValueError('step must be > 0')
  n = int(round((stop - start) / step))
  if n < 0:
    return []
  return [round(start + k * step, 12) for k in range(n + 1)]
