'''
Single-clinic valuation entrypoint.

This module provides the command-line entry point for running valuations. It:
1. Builds assumptions from a named preset or a JSON file
2. Applies optional overrides (location)
3. Runs the DCF, multiple or blended engine
4. Optionally runs sensitivity, tornado, growth, stress and Monte Carlo
   analyses
5. Logs a summary of each

Usage:
  python -m medispa_valuation.run --preset base
  python -m medispa_valuation.run --preset premium --method blended
  python -m medispa_valuation.run --preset base --location manhattan \
      --sensitivity --tornado --monte-carlo 5000 --seed 42
'''

import argparse
import logging
from pathlib import Path
from typing import Optional

from medispa_valuation.analysis.distributions import NormalDistribution
from medispa_valuation.analysis.distributions import TriangularDistribution
from medispa_valuation.analysis.monte_carlo import MonteCarloRun
from medispa_valuation.analysis.monte_carlo import run_monte_carlo
from medispa_valuation.analysis.sensitivity import frange
from medispa_valuation.analysis.sensitivity import run_sensitivity
from medispa_valuation.analysis.sensitivity import run_tornado
from medispa_valuation.analysis.sensitivity import SensitivityAxis
from medispa_valuation.analysis.sensitivity import tornado_frame
from medispa_valuation.domain.types import MarketFactors
from medispa_valuation.domain.types import ValuationAssumptions
from medispa_valuation.domain.types import ValuationMethod
from medispa_valuation.domain.types import ValuationResult
from medispa_valuation.engine.valuation import valuate
from medispa_valuation.engine.valuation import valuate_blended
from medispa_valuation.engine.valuation import valuate_by_multiple
from medispa_valuation.scenarios.growth import run_growth_scenarios
from medispa_valuation.scenarios.presets import get_preset
from medispa_valuation.scenarios.presets import list_presets
from medispa_valuation.scenarios.stress import run_stress_analysis

logger = logging.getLogger(__name__)

DEFAULT_TORNADO_SHOCKS = {
    'discount_rate': (-0.2, 0.2),
    'exit_multiple': (-0.2, 0.2),
    'base_ebitda_margin': (-0.2, 0.2),
    'growth_rate': (-0.2, 0.2),
    'tax_rate': (-0.2, 0.2),
    'capex_percent_of_revenue': (-0.2, 0.2),
}


def load_assumptions(
    preset: str = 'base',
    config_path: Optional[Path] = None,
    location: Optional[str] = None,
) -> ValuationAssumptions:
  '''
  Build assumptions from a JSON file or a named preset.

  Args:
    preset: Preset name, used when config_path is None
    config_path: JSON file produced by ValuationAssumptions.to_json()
    location: Market location override for the multiple path

  Returns:
    Validated ValuationAssumptions
  '''
  if config_path is not None:
    if not config_path.exists():
      raise FileNotFoundError(f'Assumptions file not found: {config_path}')
    assumptions = ValuationAssumptions.from_json(config_path.read_text())
  else:
    assumptions = get_preset(preset)

  if location is not None:
    factors = assumptions.market_factors or MarketFactors()
    assumptions = assumptions.with_overrides(market_factors=MarketFactors(
        location=location,
        size_bracket=factors.size_bracket,
        margin_bracket=factors.margin_bracket,
        growth_bracket=factors.growth_bracket,
    ))
  return assumptions


def run_valuation(
    assumptions: ValuationAssumptions,
    method: str = 'dcf',
    dcf_weight: float = 0.5,
) -> ValuationResult:
  '''
  Value a clinic with the requested engine entry point.

  Args:
    assumptions: Validated assumptions
    method: 'dcf', 'multiple' or 'blended'
    dcf_weight: DCF weight for the blended method

  Returns:
    ValuationResult from the selected method
  '''
  method = ValuationMethod(method)
  if method is ValuationMethod.MULTIPLE:
    return valuate_by_multiple(assumptions)
  if method is ValuationMethod.BLENDED:
    return valuate_blended(assumptions, dcf_weight=dcf_weight)
  return valuate(assumptions)


def default_distributions(assumptions: ValuationAssumptions) -> dict:
  '''Uncertainty around the main value drivers of a clinic.'''
  margin = assumptions.base_ebitda_margin
  r = assumptions.discount_rate
  multiple = assumptions.exit_multiple
  return {
      'base_ebitda_margin':
          NormalDistribution(mean=margin, std=0.03, lower=0.05, upper=0.60),
      'discount_rate':
          TriangularDistribution(low=max(r - 0.02, 0.01), mode=r,
                                 high=r + 0.04),
      'exit_multiple':
          TriangularDistribution(low=min(6.0, multiple), mode=multiple,
                                 high=max(11.0, multiple)),
  }


def log_result(result: ValuationResult) -> None:
  logger.info('\nValuation Result (%s):', result.method.value)
  logger.info('  PV Cash Flows: $%s', f'{result.present_value_of_cash_flows:,.0f}')
  logger.info('  Terminal Value: $%s', f'{result.terminal_value:,.0f}')
  logger.info('  PV Terminal: $%s', f'{result.present_value_of_terminal:,.0f}')
  logger.info('  Enterprise Value: $%s', f'{result.enterprise_value:,.0f}')
  logger.info('  Equity Value: $%s', f'{result.equity_value:,.0f}')
  logger.info('  Implied EV/EBITDA: %.2fx', result.implied_multiple)
  if result.projections:
    year1 = result.projections[0]
    logger.info('  Y1 EBITDA Margin: %.1f%%', year1.ebitda_margin * 100)


def log_monte_carlo(run: MonteCarloRun) -> None:
  logger.info('\nMonte Carlo (%d iterations, seed=%s):', run.iterations,
              run.seed)
  for p in (5, 50, 95):
    logger.info('  %s p%d: $%s', run.metric, p, f'{run.percentiles[p]:,.0f}')
  logger.info('  Prob %s < 0: %.1f%%', run.metric,
              run.probability_below(0.0) * 100)


def main() -> None:
  '''CLI entrypoint.'''
  parser = argparse.ArgumentParser(description='Run medispa valuation')
  parser.add_argument('--preset',
                      type=str,
                      default='base',
                      choices=list_presets(),
                      help='Assumption preset')
  parser.add_argument('--config',
                      type=Path,
                      default=None,
                      help='Assumptions JSON file (overrides --preset)')
  parser.add_argument('--location',
                      type=str,
                      default=None,
                      help='Market location (e.g. manhattan, miami)')
  parser.add_argument('--method',
                      type=str,
                      default='dcf',
                      choices=[m.value for m in ValuationMethod],
                      help='Valuation method')
  parser.add_argument('--dcf-weight',
                      type=float,
                      default=0.5,
                      help='DCF weight for the blended method')
  parser.add_argument('--sensitivity',
                      action='store_true',
                      help='Log discount rate x exit multiple grid')
  parser.add_argument('--tornado',
                      action='store_true',
                      help='Log one-way driver ranking (+/-20%%)')
  parser.add_argument('--growth',
                      action='store_true',
                      help='Log growth scenarios against the base case')
  parser.add_argument('--stress',
                      action='store_true',
                      help='Log edge-case stress scenarios')
  parser.add_argument('--monte-carlo',
                      type=int,
                      default=0,
                      metavar='N',
                      help='Monte Carlo iterations (0 = skip)')
  parser.add_argument('--seed', type=int, default=None, help='Random seed')
  parser.add_argument('--workers',
                      type=int,
                      default=None,
                      help='Max workers for large grids and simulations')
  parser.add_argument('--processes',
                      action='store_true',
                      help='Use worker processes instead of threads')
  args = parser.parse_args()

  assumptions = load_assumptions(args.preset, args.config, args.location)
  result = run_valuation(assumptions, args.method, args.dcf_weight)

  separator = '=' * 70
  logger.info('\n%s', separator)
  logger.info('Medispa Valuation - %s',
              args.config if args.config else f'preset {args.preset}')
  logger.info(separator)
  log_result(result)

  if args.sensitivity:
    r = assumptions.discount_rate
    grid = run_sensitivity(
        assumptions,
        SensitivityAxis('discount_rate', frange(r - 0.04, r + 0.04, 0.02)),
        SensitivityAxis('exit_multiple', (6.0, 7.0, 8.2, 9.0, 10.0)),
        metric='enterprise_value',
        max_workers=args.workers,
        use_processes=args.processes,
    )
    logger.info('\nSensitivity (enterprise value):\n%s',
                grid.to_frame().round(0).to_string())

  if args.tornado:
    bars = run_tornado(assumptions, DEFAULT_TORNADO_SHOCKS)
    logger.info('\nTornado (equity value):\n%s',
                tornado_frame(bars).round(0).to_string())

  if args.growth:
    growth = run_growth_scenarios(assumptions)
    logger.info('\nGrowth Scenarios:\n%s',
                growth.to_frame().round(3).to_string())

  if args.stress:
    analysis = run_stress_analysis(assumptions)
    logger.info('\nStress Scenarios:\n%s',
                analysis.to_frame().round(3).to_string())
    logger.info('  Probability-weighted EV: $%s',
                f'{analysis.probability_weighted_ev:,.0f}')

  if args.monte_carlo > 0:
    run = run_monte_carlo(
        assumptions,
        default_distributions(assumptions),
        iterations=args.monte_carlo,
        seed=args.seed,
        max_workers=args.workers,
        use_processes=args.processes,
    )
    log_monte_carlo(run)

  logger.info('%s\n', separator)


if __name__ == '__main__':
  logging.basicConfig(
      level=logging.INFO,
      format='%(message)s',
  )
  main()
