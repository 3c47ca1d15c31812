"""
Monte Carlo simulation of medispa valuation outcomes.

Samples uncertain assumptions from their distributions, re-values the clinic
for each draw and summarizes the resulting distribution of a metric.

Reproducibility:
  All samples are drawn up front in the calling process from
  numpy.random.default_rng(seed), one parameter at a time in mapping order.
  Workers only evaluate pre-drawn samples, so a given seed produces the same
  outcomes whether the run is inline, threaded or multi-process.

Usage:
  from medispa_valuation.analysis.distributions import TriangularDistribution
  from medispa_valuation.analysis.monte_carlo import run_monte_carlo

  run = run_monte_carlo(
      base,
      {'discount_rate': TriangularDistribution(0.10, 0.12, 0.16)},
      iterations=5000,
      seed=42,
  )
  print(run.percentiles[50], run.probability_below(0.0))
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
import logging
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd

from medispa_valuation.analysis.distributions import Distribution
from medispa_valuation.analysis.parallel import map_chunks
from medispa_valuation.analysis.sensitivity import ValuationFn
from medispa_valuation.domain.types import ValuationAssumptions
from medispa_valuation.engine.valuation import valuate
from medispa_valuation.errors import InvalidAssumptionError
from medispa_valuation.errors import ValuationError

logger = logging.getLogger(__name__)

PERCENTILES = (5, 10, 25, 50, 75, 90, 95)


@dataclass(frozen=True, eq=False)
class MonteCarloRun:
  """
  Outcome distribution of one simulation run.

  Attributes:
    iterations: Number of draws
    distributions: Field name -> distribution that was sampled
    seed: Seed passed to numpy.random.default_rng (None = fresh entropy)
    metric: ValuationResult field that was recorded
    sample_outcomes: Metric per iteration, in iteration order
    bins: Histogram bucket count
  """
  iterations: int
  distributions: Dict[str, Distribution]
  seed: Optional[int]
  metric: str
  sample_outcomes: np.ndarray
  bins: int = 20
  sampled_inputs: Dict[str, np.ndarray] = field(default_factory=dict)

  @property
  def percentiles(self) -> Dict[int, float]:
    values = np.percentile(self.sample_outcomes, PERCENTILES)
    return {p: float(v) for p, v in zip(PERCENTILES, values)}

  @property
  def mean(self) -> float:
    return float(np.mean(self.sample_outcomes))

  @property
  def std(self) -> float:
    """Population standard deviation of the outcomes."""
    return float(np.std(self.sample_outcomes))

  @property
  def min(self) -> float:
    return float(np.min(self.sample_outcomes))

  @property
  def max(self) -> float:
    return float(np.max(self.sample_outcomes))

  @property
  def histogram(self) -> Tuple[np.ndarray, np.ndarray]:
    """(counts, bin_edges) over `bins` equal-width buckets."""
    return np.histogram(self.sample_outcomes, bins=self.bins)

  def probability_below(self, threshold: float) -> float:
    """Share of outcomes strictly below threshold."""
    return float(np.mean(self.sample_outcomes < threshold))

  def summary(self) -> Dict[str, Any]:
    """Summary statistics as a flat dict."""
    result: Dict[str, Any] = {
        'metric': self.metric,
        'iterations': self.iterations,
        'seed': self.seed,
        'mean': self.mean,
        'std': self.std,
        'min': self.min,
        'max': self.max,
    }
    for p, value in self.percentiles.items():
      result[f'p{p}'] = value
    return result

  def to_frame(self) -> pd.DataFrame:
    """One row per iteration: sampled inputs and the recorded metric."""
    data: Dict[str, Any] = dict(self.sampled_inputs)
    data[self.metric] = self.sample_outcomes
    df = pd.DataFrame(data)
    df.index.name = 'iteration'
    return df

  def histogram_frame(self) -> pd.DataFrame:
    counts, edges = self.histogram
    return pd.DataFrame({
        'bin_start': edges[:-1],
        'bin_end': edges[1:],
        'count': counts,
    })


class _SampleEvaluator:
  """Values pre-drawn samples by iteration index; picklable."""

  def __init__(
      self,
      base: ValuationAssumptions,
      names: Tuple[str, ...],
      samples: np.ndarray,
      metric: str,
      valuation_fn: ValuationFn,
  ):
    self.base = base
    self.names = names
    self.samples = samples
    self.metric = metric
    self.valuation_fn = valuation_fn

  def __call__(self, start: int, stop: int) -> list[float]:
    out = []
    for i in range(start, stop):
      overrides = {
          name: float(self.samples[j, i]) for j, name in enumerate(self.names)
      }
      try:
        result = self.valuation_fn(self.base.with_overrides(**overrides))
      except ValuationError as e:
        raise e.with_context(iteration=i, overrides=overrides) from e
      out.append(result.metric(self.metric))
    return out


def draw_samples(
    distributions: Mapping[str, Distribution],
    iterations: int,
    seed: Optional[int] = None,
) -> np.ndarray:
  """
  Draw all inputs for a run.

  Returns:
    Array of shape (len(distributions), iterations); row j holds the
    samples of the j-th distribution in mapping order.
  """
  rng = np.random.default_rng(seed)
  if not distributions:
    return np.empty((0, iterations), dtype=float)
  return np.vstack(
      [dist.sample(rng, iterations) for dist in distributions.values()])


def run_monte_carlo(
    base: ValuationAssumptions,
    distributions: Mapping[str, Distribution],
    iterations: int,
    seed: Optional[int] = None,
    metric: str = 'equity_value',
    bins: int = 20,
    valuation_fn: ValuationFn = valuate,
    max_workers: Optional[int] = None,
    use_processes: bool = False,
) -> MonteCarloRun:
  """
  Simulate the valuation metric under uncertain assumptions.

  Args:
    base: Base-case assumptions; fields without a distribution stay fixed
    distributions: Assumption field name -> Distribution. Only float
      fields can be sampled.
    iterations: Number of draws (> 0)
    seed: Seed for numpy.random.default_rng
    metric: ValuationResult field to record
    bins: Histogram bucket count
    valuation_fn: Engine entry point (default: valuate)
    max_workers: Worker cap for large runs (see analysis.parallel)
    use_processes: Use processes instead of threads for large runs

  Returns:
    MonteCarloRun with outcomes in iteration order

  Raises:
    InvalidAssumptionError: If iterations or bins are not positive, or a
      distribution names an unknown field
    ValuationError: First failing iteration, with iteration and overrides
      in its context
  """
  if (isinstance(iterations, bool) or not isinstance(iterations, int) or
      iterations <= 0):
    raise InvalidAssumptionError('iterations must be a positive integer',
                                 context={'iterations': iterations})
  if bins < 1:
    raise InvalidAssumptionError('bins must be >= 1', context={'bins': bins})
  unknown = sorted(name for name in distributions if not hasattr(base, name))
  if unknown:
    raise InvalidAssumptionError(f'Unknown assumption fields: {unknown}',
                                 context={'unknown': unknown})

  names = tuple(distributions)
  samples = draw_samples(distributions, iterations, seed)
  samples.setflags(write=False)

  logger.info('Running Monte Carlo: %d iterations over %s (seed=%s)',
              iterations, list(names), seed)

  evaluator = _SampleEvaluator(base, names, samples, metric, valuation_fn)
  outcomes = map_chunks(evaluator,
                        iterations,
                        max_workers=max_workers,
                        use_processes=use_processes)
  outcomes.setflags(write=False)

  run = MonteCarloRun(
      iterations=iterations,
      distributions=dict(distributions),
      seed=seed,
      metric=metric,
      sample_outcomes=outcomes,
      bins=bins,
      sampled_inputs={name: samples[j] for j, name in enumerate(names)},
  )
  logger.info('Monte Carlo %s: mean=%.0f p5=%.0f p95=%.0f', metric, run.mean,
              run.percentiles[5], run.percentiles[95])
  return run
