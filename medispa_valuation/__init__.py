'''
Medispa valuation engine with policy-based architecture.

Values medical-aesthetics clinics by discounted cash flow and by adjusted
comparable multiples, then stresses the result through sensitivity grids,
tornado rankings, Monte Carlo simulation, growth scenarios and edge-case
stress scenarios. Each
component (margin path, depreciation, terminal value, market multiple,
discount rate) is an independent policy that can be swapped.

Usage:
  from medispa_valuation import get_preset, valuate, run_tornado

  assumptions = get_preset('base')
  result = valuate(assumptions)
  print(f'EV: ${result.enterprise_value:,.0f}')

  bars = run_tornado(assumptions, {'discount_rate': (-0.2, 0.2)})
'''

from medispa_valuation.analysis.distributions import NormalDistribution
from medispa_valuation.analysis.distributions import TriangularDistribution
from medispa_valuation.analysis.distributions import UniformDistribution
from medispa_valuation.analysis.monte_carlo import run_monte_carlo
from medispa_valuation.analysis.sensitivity import run_sensitivity
from medispa_valuation.analysis.sensitivity import run_tornado
from medispa_valuation.analysis.sensitivity import SensitivityAxis
from medispa_valuation.domain.types import MarketFactors
from medispa_valuation.domain.types import MarketSnapshot
from medispa_valuation.domain.types import TerminalMethod
from medispa_valuation.domain.types import ValuationAssumptions
from medispa_valuation.domain.types import ValuationResult
from medispa_valuation.engine.valuation import valuate
from medispa_valuation.engine.valuation import valuate_blended
from medispa_valuation.engine.valuation import valuate_by_multiple
from medispa_valuation.errors import DistributionSamplingError
from medispa_valuation.errors import InvalidAssumptionError
from medispa_valuation.errors import InvalidRateError
from medispa_valuation.errors import InvalidTerminalAssumptionError
from medispa_valuation.errors import ValuationError
from medispa_valuation.scenarios.growth import run_growth_scenarios
from medispa_valuation.scenarios.presets import get_preset
from medispa_valuation.scenarios.stress import apply_stress_scenario
from medispa_valuation.scenarios.stress import run_stress_analysis

__all__ = [
    'DistributionSamplingError',
    'InvalidAssumptionError',
    'InvalidRateError',
    'InvalidTerminalAssumptionError',
    'MarketFactors',
    'MarketSnapshot',
    'NormalDistribution',
    'SensitivityAxis',
    'TerminalMethod',
    'TriangularDistribution',
    'UniformDistribution',
    'ValuationAssumptions',
    'ValuationError',
    'ValuationResult',
    'apply_stress_scenario',
    'get_preset',
    'run_growth_scenarios',
    'run_monte_carlo',
    'run_sensitivity',
    'run_stress_analysis',
    'run_tornado',
    'valuate',
    'valuate_blended',
    'valuate_by_multiple',
]
