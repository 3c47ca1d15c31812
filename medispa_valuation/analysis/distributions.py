"""
Input distributions for Monte Carlo simulation.

Each distribution validates its parameters at construction and draws a
vector of samples from a caller-supplied numpy Generator, so the caller
owns the seed and the draw order.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from math import isfinite
from typing import Any, Dict, Optional

import numpy as np

from medispa_valuation.errors import DistributionSamplingError


def _check_finite(name: str, **params: Optional[float]) -> None:
  for key, value in params.items():
    if value is not None and not isfinite(value):
      raise DistributionSamplingError(f'{name}: {key} must be finite',
                                      context={key: value})


class Distribution(ABC):
  """Base class for sampled Monte Carlo inputs."""

  @abstractmethod
  def sample(self, rng: np.random.Generator, size: int) -> np.ndarray:
    """
    Draw `size` samples.

    Args:
      rng: numpy Generator owned by the caller
      size: Number of samples

    Returns:
      1-D float array of length size
    """
    pass

  @abstractmethod
  def describe(self) -> Dict[str, Any]:
    """Parameters as a plain dict (for diagnostics and tables)."""
    pass


@dataclass(frozen=True)
class NormalDistribution(Distribution):
  """
  Normal distribution, optionally clamped to [lower, upper].

  Clamping keeps sampled inputs in the valid domain (e.g. a margin that
  must stay below 100%). Samples outside the bounds are set to the bound.
  """
  mean: float
  std: float
  lower: Optional[float] = None
  upper: Optional[float] = None

  def __post_init__(self) -> None:
    _check_finite('normal', mean=self.mean, std=self.std, lower=self.lower,
                  upper=self.upper)
    if self.std < 0:
      raise DistributionSamplingError('normal: std must be >= 0',
                                      context={'std': self.std})
    if (self.lower is not None and self.upper is not None and
        self.lower > self.upper):
      raise DistributionSamplingError(
          'normal: lower bound exceeds upper bound',
          context={'lower': self.lower, 'upper': self.upper})

  def sample(self, rng: np.random.Generator, size: int) -> np.ndarray:
    draws = rng.normal(self.mean, self.std, size)
    if self.lower is not None or self.upper is not None:
      draws = np.clip(draws, self.lower, self.upper)
    return draws

  def describe(self) -> Dict[str, Any]:
    return {
        'kind': 'normal',
        'mean': self.mean,
        'std': self.std,
        'lower': self.lower,
        'upper': self.upper,
    }


@dataclass(frozen=True)
class TriangularDistribution(Distribution):
  """
  Triangular distribution sampled by inverse CDF.

  For u ~ U[0, 1) and c = (mode - low) / (high - low):
    u < c:  low + sqrt(u * (high - low) * (mode - low))
    else:   high - sqrt((1 - u) * (high - low) * (high - mode))
  """
  low: float
  mode: float
  high: float

  def __post_init__(self) -> None:
    _check_finite('triangular', low=self.low, mode=self.mode, high=self.high)
    if self.low > self.high:
      raise DistributionSamplingError(
          'triangular: low exceeds high',
          context={'low': self.low, 'high': self.high})
    if not self.low <= self.mode <= self.high:
      raise DistributionSamplingError(
          'triangular: mode must lie within [low, high]',
          context={'low': self.low, 'mode': self.mode, 'high': self.high})

  def sample(self, rng: np.random.Generator, size: int) -> np.ndarray:
    u = rng.random(size)
    span = self.high - self.low
    if span == 0:
      return np.full(size, self.low, dtype=float)
    c = (self.mode - self.low) / span
    lower_branch = self.low + np.sqrt(u * span * (self.mode - self.low))
    upper_branch = self.high - np.sqrt((1.0 - u) * span * (self.high - self.mode))
    return np.where(u < c, lower_branch, upper_branch)

  def describe(self) -> Dict[str, Any]:
    return {
        'kind': 'triangular',
        'low': self.low,
        'mode': self.mode,
        'high': self.high,
    }


@dataclass(frozen=True)
class UniformDistribution(Distribution):
  """Uniform distribution on [low, high)."""
  low: float
  high: float

  def __post_init__(self) -> None:
    _check_finite('uniform', low=self.low, high=self.high)
    if self.low > self.high:
      raise DistributionSamplingError(
          'uniform: low exceeds high',
          context={'low': self.low, 'high': self.high})

  def sample(self, rng: np.random.Generator, size: int) -> np.ndarray:
    return rng.uniform(self.low, self.high, size)

  def describe(self) -> Dict[str, Any]:
    return {'kind': 'uniform', 'low': self.low, 'high': self.high}
