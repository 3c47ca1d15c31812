"""Domain types for the medispa valuation engine."""

from medispa_valuation.domain.types import MarketFactors
from medispa_valuation.domain.types import MarketSnapshot
from medispa_valuation.domain.types import PolicyOutput
from medispa_valuation.domain.types import TerminalMethod
from medispa_valuation.domain.types import ValuationAssumptions
from medispa_valuation.domain.types import ValuationMethod
from medispa_valuation.domain.types import ValuationResult
from medispa_valuation.domain.types import YearProjection

__all__ = [
    'MarketFactors',
    'MarketSnapshot',
    'PolicyOutput',
    'TerminalMethod',
    'ValuationAssumptions',
    'ValuationMethod',
    'ValuationResult',
    'YearProjection',
]
