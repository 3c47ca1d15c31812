"""
Terminal value policies.

These policies determine the continuing value at the end of the explicit
forecast, either from a perpetual growth rate (Gordon Growth Model) or from
an exit EV/EBITDA multiple.
"""

from abc import ABC
from abc import abstractmethod

from medispa_valuation.domain.types import PolicyOutput
from medispa_valuation.domain.types import TerminalMethod
from medispa_valuation.domain.types import ValuationAssumptions
from medispa_valuation.domain.types import YearProjection
from medispa_valuation.engine.terminal import exit_multiple_value
from medispa_valuation.engine.terminal import perpetuity_growth_value


class TerminalPolicy(ABC):
  """
  Base class for terminal value policies.

  Subclasses implement compute() to return the undiscounted terminal value.
  """

  @abstractmethod
  def compute(
      self,
      final_year: YearProjection,
      discount_rate: float,
  ) -> PolicyOutput[float]:
    """
    Compute terminal value at the forecast horizon.

    Args:
      final_year: Projection for the last explicit forecast year
      discount_rate: WACC

    Returns:
      PolicyOutput with terminal value and diagnostics
    """


class GordonTerminal(TerminalPolicy):
  """
  Perpetuity growth terminal value.

  Typically set to long-term GDP growth rate or inflation rate.
  """

  def __init__(self, g_terminal: float = 0.03):
    """
    Initialize Gordon terminal policy.

    Args:
      g_terminal: Terminal growth rate (default: 3%)
    """
    self.g_terminal = g_terminal

  def compute(
      self,
      final_year: YearProjection,
      discount_rate: float,
  ) -> PolicyOutput[float]:
    """Grow final-year FCF in perpetuity."""
    tv = perpetuity_growth_value(final_year.free_cash_flow, self.g_terminal,
                                 discount_rate)
    return PolicyOutput(value=tv,
                        diag={
                            'terminal_method': 'perpetuity_growth',
                            'g_terminal': self.g_terminal,
                        })


class ExitMultipleTerminal(TerminalPolicy):
  """Exit at an EV/EBITDA multiple of final-year EBITDA."""

  def __init__(self, exit_multiple: float = 8.2):
    """
    Initialize exit multiple policy.

    Args:
      exit_multiple: EV/EBITDA multiple (default: 8.2x)
    """
    self.exit_multiple = exit_multiple

  def compute(
      self,
      final_year: YearProjection,
      discount_rate: float,
  ) -> PolicyOutput[float]:
    """Capitalize final-year EBITDA at the exit multiple."""
    tv = exit_multiple_value(final_year.ebitda, self.exit_multiple)
    return PolicyOutput(value=tv,
                        diag={
                            'terminal_method': 'exit_multiple',
                            'exit_multiple': self.exit_multiple,
                        })


def terminal_policy_for(assumptions: ValuationAssumptions) -> TerminalPolicy:
  """Build the terminal policy selected by the assumptions."""
  if assumptions.terminal_method is TerminalMethod.PERPETUITY_GROWTH:
    return GordonTerminal(g_terminal=assumptions.terminal_growth_rate)
  return ExitMultipleTerminal(exit_multiple=assumptions.exit_multiple)
