"""
Terminal value math.

Continuing value at the forecast horizon, by perpetuity growth (Gordon) or
by exit multiple, and its present value.
"""

from medispa_valuation.engine.discounting import present_value
from medispa_valuation.errors import InvalidTerminalAssumptionError


def perpetuity_growth_value(
    final_fcf: float,
    g_terminal: float,
    discount_rate: float,
) -> float:
  """
  Gordon growth terminal value at the end of the final forecast year.

  Args:
    final_fcf: Free cash flow in the final explicit year
    g_terminal: Perpetual growth rate
    discount_rate: WACC

  Returns:
    final_fcf * (1 + g) / (r - g)

  Raises:
    InvalidTerminalAssumptionError: If discount_rate <= g_terminal
  """
  if discount_rate <= g_terminal:
    raise InvalidTerminalAssumptionError(
        f'Discount rate ({discount_rate:.4f}) must exceed terminal growth '
        f'({g_terminal:.4f}) under the perpetuity-growth method',
        context={
            'discount_rate': discount_rate,
            'terminal_growth_rate': g_terminal,
        })
  return final_fcf * (1.0 + g_terminal) / (discount_rate - g_terminal)


def exit_multiple_value(final_ebitda: float, exit_multiple: float) -> float:
  """Terminal value as final-year EBITDA times an EV/EBITDA multiple."""
  return final_ebitda * exit_multiple


def discount_terminal_value(
    terminal_value: float,
    discount_rate: float,
    final_year: int,
) -> float:
  """Present value of a terminal value received at the end of final_year."""
  return present_value(terminal_value, discount_rate, final_year)
