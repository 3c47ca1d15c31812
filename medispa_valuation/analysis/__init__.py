"""Sensitivity, tornado and Monte Carlo analysis on top of the engine."""

from medispa_valuation.analysis.distributions import Distribution
from medispa_valuation.analysis.distributions import NormalDistribution
from medispa_valuation.analysis.distributions import TriangularDistribution
from medispa_valuation.analysis.distributions import UniformDistribution
from medispa_valuation.analysis.monte_carlo import MonteCarloRun
from medispa_valuation.analysis.monte_carlo import run_monte_carlo
from medispa_valuation.analysis.sensitivity import SensitivityAxis
from medispa_valuation.analysis.sensitivity import SensitivityGrid
from medispa_valuation.analysis.sensitivity import TornadoBar
from medispa_valuation.analysis.sensitivity import run_sensitivity
from medispa_valuation.analysis.sensitivity import run_tornado
from medispa_valuation.analysis.sensitivity import tornado_frame

__all__ = [
    'Distribution',
    'MonteCarloRun',
    'NormalDistribution',
    'SensitivityAxis',
    'SensitivityGrid',
    'TornadoBar',
    'TriangularDistribution',
    'UniformDistribution',
    'run_monte_carlo',
    'run_sensitivity',
    'run_tornado',
    'tornado_frame',
]
