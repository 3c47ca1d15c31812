'''
EBITDA margin path policies.

These policies determine the EBITDA margin for each year of the explicit
forecast. The policy returns a sequence of margins [m1, m2, ..., mN].
'''

from abc import ABC, abstractmethod
from typing import List, Optional

from medispa_valuation.domain.types import PolicyOutput


class MarginPolicy(ABC):
  '''
  Base class for EBITDA margin policies.

  Subclasses implement compute() to return the full sequence of margins
  for the explicit forecast period.
  '''

  @abstractmethod
  def compute(self, base_margin: float,
              n_years: int) -> PolicyOutput[List[float]]:
    '''
    Compute margin sequence for explicit forecast period.

    Args:
      base_margin: Year 1 EBITDA margin
      n_years: Number of explicit forecast years

    Returns:
      PolicyOutput with list of margins [m_year1, ..., m_yearN]
    '''


class ConstantMargin(MarginPolicy):
  '''Hold the base margin flat across the horizon.'''

  def compute(self, base_margin: float,
              n_years: int) -> PolicyOutput[List[float]]:
    return PolicyOutput(value=[base_margin] * max(n_years, 0),
                        diag={'margin_method': 'constant'})


class LinearMarginTrend(MarginPolicy):
  '''
  Linear drift from the base margin to a target margin.

  Year 1 uses the base margin, year N the target; years in between
  interpolate linearly.
  '''

  def __init__(self, target_margin: float):
    '''
    Initialize linear margin trend.

    Args:
      target_margin: EBITDA margin reached in the final forecast year
    '''
    self.target_margin = target_margin

  def compute(self, base_margin: float,
              n_years: int) -> PolicyOutput[List[float]]:
    '''Compute linearly trending margins.'''
    diag = {
        'margin_method': 'linear_trend',
        'target_margin': self.target_margin,
    }

    if n_years < 1:
      return PolicyOutput(value=[], diag=diag)

    if n_years == 1:
      return PolicyOutput(value=[base_margin], diag=diag)

    margins = []
    for t in range(n_years):
      m = base_margin + (self.target_margin - base_margin) * (t /
                                                              (n_years - 1))
      margins.append(m)

    return PolicyOutput(value=margins, diag=diag)


def margin_policy_for(target_margin: Optional[float]) -> MarginPolicy:
  '''Pick the margin policy implied by an optional target margin.'''
  if target_margin is None:
    return ConstantMargin()
  return LinearMarginTrend(target_margin=target_margin)
