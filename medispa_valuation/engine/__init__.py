'''DCF calculation engine with pure math functions.

The composed entry points (valuate, valuate_by_multiple, valuate_blended)
live in medispa_valuation.engine.valuation and are re-exported from the
package root.
'''

from medispa_valuation.engine.discounting import discount_factors
from medispa_valuation.engine.discounting import present_value
from medispa_valuation.engine.discounting import present_value_series
from medispa_valuation.engine.terminal import discount_terminal_value
from medispa_valuation.engine.terminal import exit_multiple_value
from medispa_valuation.engine.terminal import perpetuity_growth_value

__all__ = [
    'discount_factors',
    'discount_terminal_value',
    'exit_multiple_value',
    'perpetuity_growth_value',
    'present_value',
    'present_value_series',
]
