"""
Valuation engine.

The single source of truth for medispa enterprise and equity value:

  valuate: DCF of projected free cash flow plus discounted terminal value
  valuate_by_multiple: final-year EBITDA times an adjusted market multiple
  valuate_blended: explicit weighted average of the two

All three are pure functions of their inputs. Invalid assumptions raise
typed errors from medispa_valuation.errors; nothing is caught here.
"""

import logging
from typing import Any, Dict, Optional

from medispa_valuation.domain.types import MarketFactors
from medispa_valuation.domain.types import MarketSnapshot
from medispa_valuation.domain.types import ValuationAssumptions
from medispa_valuation.domain.types import ValuationMethod
from medispa_valuation.domain.types import ValuationResult
from medispa_valuation.engine.discounting import present_value_series
from medispa_valuation.engine.projection import build_projections_with_diag
from medispa_valuation.engine.terminal import discount_terminal_value
from medispa_valuation.errors import InvalidAssumptionError
from medispa_valuation.policies.discount import CalibratedMarketMultiple
from medispa_valuation.policies.discount import snapshot_overrides
from medispa_valuation.policies.multiples import MarketMultipleAdjustment
from medispa_valuation.policies.multiples import MultipleCalibration
from medispa_valuation.policies.terminal import terminal_policy_for

logger = logging.getLogger(__name__)


def equity_bridge(enterprise_value: float,
                  assumptions: ValuationAssumptions) -> float:
  """Enterprise value less net debt plus non-operating assets."""
  return (enterprise_value - assumptions.net_debt +
          assumptions.non_operating_assets)


def _apply_snapshot(
    assumptions: ValuationAssumptions,
    snapshot: Optional[MarketSnapshot],
) -> tuple[ValuationAssumptions, Dict[str, Any]]:
  if snapshot is None:
    return assumptions, {}
  result = snapshot_overrides(snapshot, assumptions)
  logger.debug('Applying market snapshot overrides: %s', result.value)
  return assumptions.with_overrides(**result.value), result.diag


def valuate(
    assumptions: ValuationAssumptions,
    snapshot: Optional[MarketSnapshot] = None,
) -> ValuationResult:
  """
  Value a clinic by discounted cash flow.

  Steps:
    1. Build yearly projections
    2. PV of free cash flow (periods 1..N)
    3. Terminal value (perpetuity growth or exit multiple) and its PV
    4. EV = PV flows + PV terminal; equity = EV - net debt + non-op assets

  Args:
    assumptions: Validated valuation assumptions
    snapshot: Optional market data; its overrides (discount rate, exit
      multiple) replace the assumption values before valuing

  Returns:
    ValuationResult with method DCF

  Raises:
    InvalidAssumptionError: If the projection inputs are invalid
    InvalidTerminalAssumptionError: If discount rate <= terminal growth
      under the perpetuity-growth method
    InvalidRateError: If the discount rate is <= -100%
  """
  assumptions, snapshot_diag = _apply_snapshot(assumptions, snapshot)

  projection_result = build_projections_with_diag(assumptions)
  projections = projection_result.value
  final_year = projections[-1]
  r = assumptions.discount_rate

  pv_flows = present_value_series([p.free_cash_flow for p in projections], r)

  terminal_result = terminal_policy_for(assumptions).compute(final_year, r)
  terminal_value = terminal_result.value
  pv_terminal = discount_terminal_value(terminal_value, r,
                                        assumptions.forecast_years)

  enterprise_value = pv_flows + pv_terminal
  equity_value = equity_bridge(enterprise_value, assumptions)
  implied_multiple = (enterprise_value / final_year.ebitda
                      if final_year.ebitda else float('nan'))

  diag: Dict[str, Any] = {
      'discount_rate': r,
      'forecast_years': assumptions.forecast_years,
      'terminal_share_of_ev':
          pv_terminal / enterprise_value if enterprise_value else float('nan'),
  }
  diag.update(projection_result.diag)
  diag.update(terminal_result.diag)
  diag.update(snapshot_diag)

  logger.debug('DCF: pv_flows=%.0f pv_terminal=%.0f ev=%.0f', pv_flows,
               pv_terminal, enterprise_value)

  return ValuationResult(
      method=ValuationMethod.DCF,
      present_value_of_cash_flows=pv_flows,
      terminal_value=terminal_value,
      present_value_of_terminal=pv_terminal,
      enterprise_value=enterprise_value,
      equity_value=equity_value,
      implied_multiple=implied_multiple,
      final_year_ebitda=final_year.ebitda,
      projections=projections,
      diag=diag,
  )


def valuate_by_multiple(
    assumptions: ValuationAssumptions,
    market_factors: Optional[MarketFactors] = None,
    calibration: Optional[MultipleCalibration] = None,
    snapshot: Optional[MarketSnapshot] = None,
) -> ValuationResult:
  """
  Value a clinic by comparable EV/EBITDA multiple.

  EV = final-year EBITDA * clip(base * location * size * margin * growth).

  Args:
    assumptions: Validated valuation assumptions
    market_factors: Segment descriptors (default: assumptions.market_factors,
      then suburban standard with derived brackets)
    calibration: Lookup tables (default: MultipleCalibration())
    snapshot: Optional market data; a calibrated industry multiple from the
      snapshot replaces the calibration's base multiple

  Returns:
    ValuationResult with method MULTIPLE. The DCF breakdown fields are zero.

  Raises:
    InvalidAssumptionError: If a factor key is missing from the tables
  """
  projection_result = build_projections_with_diag(assumptions)
  final_year = projection_result.value[-1]

  base_multiple = None
  diag: Dict[str, Any] = {}
  if snapshot is not None:
    market_result = CalibratedMarketMultiple().compute(snapshot, assumptions)
    base_multiple = market_result.value
    diag.update(market_result.diag)

  multiple_result = MarketMultipleAdjustment(calibration).compute(
      assumptions, market_factors, base_multiple=base_multiple)
  enterprise_value = final_year.ebitda * multiple_result.value
  diag.update(projection_result.diag)
  diag.update(multiple_result.diag)

  logger.debug('Multiple: ebitda=%.0f multiple=%.2fx ev=%.0f',
               final_year.ebitda, multiple_result.value, enterprise_value)

  return ValuationResult(
      method=ValuationMethod.MULTIPLE,
      present_value_of_cash_flows=0.0,
      terminal_value=0.0,
      present_value_of_terminal=0.0,
      enterprise_value=enterprise_value,
      equity_value=equity_bridge(enterprise_value, assumptions),
      implied_multiple=multiple_result.value,
      final_year_ebitda=final_year.ebitda,
      projections=projection_result.value,
      diag=diag,
  )


def valuate_blended(
    assumptions: ValuationAssumptions,
    dcf_weight: float = 0.5,
    market_factors: Optional[MarketFactors] = None,
    calibration: Optional[MultipleCalibration] = None,
    snapshot: Optional[MarketSnapshot] = None,
) -> ValuationResult:
  """
  Weighted average of the DCF and comparable-multiple valuations.

  Args:
    assumptions: Validated valuation assumptions
    dcf_weight: Weight on the DCF value in [0, 1]; the multiple value gets
      1 - dcf_weight
    market_factors: Passed to valuate_by_multiple
    calibration: Passed to valuate_by_multiple
    snapshot: Passed to both legs

  Returns:
    ValuationResult with method BLENDED. The DCF breakdown fields are the
    DCF leg's, unweighted; both legs' values are in diag.

  Raises:
    InvalidAssumptionError: If dcf_weight is outside [0, 1]
  """
  if not 0.0 <= dcf_weight <= 1.0:
    raise InvalidAssumptionError('dcf_weight must be in [0, 1]',
                                 context={'dcf_weight': dcf_weight})

  dcf = valuate(assumptions, snapshot=snapshot)
  multiple = valuate_by_multiple(assumptions,
                                 market_factors=market_factors,
                                 calibration=calibration,
                                 snapshot=snapshot)

  w = dcf_weight
  enterprise_value = w * dcf.enterprise_value + (1.0 - w) * multiple.enterprise_value
  equity_value = w * dcf.equity_value + (1.0 - w) * multiple.equity_value

  diag: Dict[str, Any] = {}
  diag.update(multiple.diag)
  diag.update(dcf.diag)
  diag.update({
      'blend_dcf_weight': w,
      'blend_dcf_enterprise_value': dcf.enterprise_value,
      'blend_multiple_enterprise_value': multiple.enterprise_value,
  })

  return ValuationResult(
      method=ValuationMethod.BLENDED,
      present_value_of_cash_flows=dcf.present_value_of_cash_flows,
      terminal_value=dcf.terminal_value,
      present_value_of_terminal=dcf.present_value_of_terminal,
      enterprise_value=enterprise_value,
      equity_value=equity_value,
      implied_multiple=enterprise_value / dcf.final_year_ebitda,
      final_year_ebitda=dcf.final_year_ebitda,
      projections=dcf.projections,
      diag=diag,
  )
