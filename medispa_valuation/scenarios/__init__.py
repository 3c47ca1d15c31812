"""Named assumption presets, growth scenarios and edge-case stress scenarios."""

from medispa_valuation.scenarios.growth import apply_growth_scenario
from medispa_valuation.scenarios.growth import GROWTH_SCENARIOS
from medispa_valuation.scenarios.growth import GrowthScenario
from medispa_valuation.scenarios.growth import run_growth_scenarios
from medispa_valuation.scenarios.presets import get_preset
from medispa_valuation.scenarios.presets import list_presets
from medispa_valuation.scenarios.presets import PRESETS
from medispa_valuation.scenarios.stress import apply_stress_scenario
from medispa_valuation.scenarios.stress import run_stress_analysis
from medispa_valuation.scenarios.stress import STRESS_SCENARIOS
from medispa_valuation.scenarios.stress import StressScenario

__all__ = [
  'GROWTH_SCENARIOS',
  'GrowthScenario',
  'PRESETS',
  'STRESS_SCENARIOS',
  'StressScenario',
  'apply_growth_scenario',
  'apply_stress_scenario',
  'get_preset',
  'list_presets',
  'run_growth_scenarios',
  'run_stress_analysis',
]
