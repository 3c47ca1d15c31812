import pytest

from medispa_valuation.domain.types import MarketFactors
from medispa_valuation.domain.types import MarketSnapshot
from medispa_valuation.domain.types import ValuationMethod
from medispa_valuation.engine.valuation import equity_bridge
from medispa_valuation.engine.valuation import valuate
from medispa_valuation.engine.valuation import valuate_blended
from medispa_valuation.engine.valuation import valuate_by_multiple
from medispa_valuation.errors import InvalidAssumptionError
from medispa_valuation.errors import InvalidRateError
from medispa_valuation.errors import InvalidTerminalAssumptionError
from medispa_valuation.policies.multiples import get_calibration


class TestValuate:
  """Tests for the DCF entry point."""

  def test_concrete_scenario(self, base_assumptions):
    """Base clinic, 8.2x exit.

    Manual calculation:
    FCF years 1-5: 635,005 / 688,980 / 747,544 / 811,085 / 880,027
    PV of FCF at 12%: 2,663,111
    Final EBITDA: 5,262,798 * 25% = 1,315,700
    TV = 1,315,700 * 8.2 = 10,788,737; PV = 6,121,817
    EV = 8,784,928
    """
    result = valuate(base_assumptions)

    assert result.method is ValuationMethod.DCF
    assert result.present_value_of_cash_flows == pytest.approx(2_663_111,
                                                               rel=1e-3)
    assert result.terminal_value == pytest.approx(10_788_737, rel=1e-3)
    assert result.present_value_of_terminal == pytest.approx(6_121_817,
                                                             rel=1e-3)
    assert result.enterprise_value == pytest.approx(8.785e6, rel=0.01)
    assert 8_000_000 <= result.enterprise_value <= 9_500_000

  def test_ev_is_sum_of_components(self, base_assumptions,
                                   perpetuity_assumptions):
    for assumptions in (base_assumptions, perpetuity_assumptions):
      result = valuate(assumptions)
      assert result.enterprise_value == pytest.approx(
          result.present_value_of_cash_flows +
          result.present_value_of_terminal,
          rel=1e-6)

  def test_equity_equals_ev_without_debt(self, base_assumptions):
    result = valuate(base_assumptions)
    assert result.equity_value == result.enterprise_value

  def test_equity_bridge(self, base_assumptions):
    a = base_assumptions.with_overrides(net_debt=1_000_000.0,
                                        non_operating_assets=200_000.0)
    result = valuate(a)
    assert result.equity_value == pytest.approx(result.enterprise_value -
                                                800_000.0)
    assert equity_bridge(100.0, a) == pytest.approx(100.0 - 800_000.0)

  def test_implied_multiple(self, base_assumptions):
    result = valuate(base_assumptions)
    assert result.implied_multiple == pytest.approx(
        result.enterprise_value / result.final_year_ebitda)

  def test_simple_exit_multiple(self, simple_assumptions):
    """Manual calculation:
    PV FCF = 220/1.1 + 242/1.21 + 266.2/1.331 = 200 + 200 + 200 = 600
    TV = 266.2 * 5 = 1331; PV = 1000
    EV = 1600
    """
    result = valuate(simple_assumptions)
    assert result.present_value_of_cash_flows == pytest.approx(600.0)
    assert result.present_value_of_terminal == pytest.approx(1000.0)
    assert result.enterprise_value == pytest.approx(1600.0)

  def test_simple_perpetuity(self, simple_assumptions):
    """Manual calculation:
    TV = 266.2 * 1.02 / (0.10 - 0.02) = 3394.05; PV = 2550.0
    """
    a = simple_assumptions.with_overrides(terminal_method='perpetuity_growth',
                                          terminal_growth_rate=0.02)
    result = valuate(a)
    assert result.terminal_value == pytest.approx(3394.05)
    assert result.present_value_of_terminal == pytest.approx(2550.0)
    assert result.enterprise_value == pytest.approx(3150.0)

  @pytest.mark.parametrize('g', [0.12, 0.15])
  def test_rate_not_above_terminal_growth(self, perpetuity_assumptions, g):
    a = perpetuity_assumptions.with_overrides(terminal_growth_rate=g)
    with pytest.raises(InvalidTerminalAssumptionError):
      valuate(a)

  def test_rate_below_minus_one(self, base_assumptions):
    with pytest.raises(InvalidRateError):
      valuate(base_assumptions.with_overrides(discount_rate=-1.5))

  @pytest.mark.parametrize('fixture_name',
                           ['base_assumptions', 'perpetuity_assumptions'])
  def test_monotonic_in_discount_rate(self, request, fixture_name):
    """EV strictly decreases as the discount rate rises from 5% to 25%."""
    assumptions = request.getfixturevalue(fixture_name)
    rates = [0.05 + 0.01 * k for k in range(21)]
    values = [
        valuate(assumptions.with_overrides(discount_rate=r)).enterprise_value
        for r in rates
    ]
    assert all(a > b for a, b in zip(values, values[1:]))

  def test_diag(self, base_assumptions):
    diag = valuate(base_assumptions).diag
    assert diag['discount_rate'] == 0.12
    assert diag['terminal_method'] == 'exit_multiple'
    assert 0 < diag['terminal_share_of_ev'] < 1

  def test_deterministic(self, base_assumptions):
    assert valuate(base_assumptions) == valuate(base_assumptions)


class TestValuateWithSnapshot:
  """Market snapshot overrides."""

  def test_snapshot_overrides_rate_and_multiple(self, base_assumptions):
    """Manual calculation:
    WACC = 4.5% + 6% + 2.5% size premium = 13%
    Multiple = 0.5 * 9.0 + 0.5 * 8.0 = 8.5 (5 of 10 deals)
    """
    snapshot = MarketSnapshot(
        risk_free_rate=0.045,
        market_risk_premium=0.06,
        industry_multiple=9.0,
        transaction_median_multiple=8.0,
        transaction_count=5,
        consumer_confidence=95.0,
        unemployment_rate=0.04,
    )
    result = valuate(base_assumptions, snapshot=snapshot)
    expected = valuate(
        base_assumptions.with_overrides(discount_rate=0.13, exit_multiple=8.5))

    assert result.diag['discount_rate'] == pytest.approx(0.13)
    assert result.enterprise_value == pytest.approx(expected.enterprise_value)

  def test_empty_snapshot_changes_nothing(self, base_assumptions):
    result = valuate(base_assumptions, snapshot=MarketSnapshot())
    assert result.enterprise_value == pytest.approx(
        valuate(base_assumptions).enterprise_value)


class TestValuateByMultiple:
  """Tests for the comparable-multiple entry point."""

  def test_base_clinic(self, base_assumptions):
    """Small, standard margin, high growth (8.5%): 8.2 * 1.03 = 8.446x"""
    result = valuate_by_multiple(base_assumptions)

    assert result.method is ValuationMethod.MULTIPLE
    assert result.implied_multiple == pytest.approx(8.446)
    assert result.enterprise_value == pytest.approx(
        result.final_year_ebitda * 8.446)
    assert result.present_value_of_cash_flows == 0.0
    assert result.present_value_of_terminal == 0.0

  def test_location(self, base_assumptions):
    """Manhattan: 8.2 * 1.15 * 1.03 = 9.7129x"""
    result = valuate_by_multiple(base_assumptions,
                                 market_factors=MarketFactors('manhattan'))
    assert result.implied_multiple == pytest.approx(9.7129)

  def test_location_from_assumptions(self, base_assumptions):
    a = base_assumptions.with_overrides(
        market_factors=MarketFactors(location='phoenix'))
    result = valuate_by_multiple(a)
    assert result.diag['multiple_location'] == 'phoenix'

  def test_clipped_to_max(self, base_assumptions):
    a = base_assumptions.with_overrides(base_revenue=12_000_000.0,
                                        base_ebitda_margin=0.30,
                                        growth_rate=0.20)
    result = valuate_by_multiple(a,
                                 market_factors=MarketFactors('beverly_hills'))
    assert result.implied_multiple == 15.0
    assert result.diag['multiple_clipped'] is True

  def test_unknown_location(self, base_assumptions):
    with pytest.raises(InvalidAssumptionError, match='Available'):
      valuate_by_multiple(base_assumptions,
                          market_factors=MarketFactors('atlantis'))

  def test_calibration(self, base_assumptions):
    a = base_assumptions.with_overrides(base_revenue=1_000_000.0)
    default = valuate_by_multiple(a)
    conservative = valuate_by_multiple(
        a, calibration=get_calibration('conservative'))
    # 8.2 * 0.85 * 1.03 = 7.18 is inside both ranges
    assert conservative.implied_multiple == pytest.approx(
        default.implied_multiple)

  def test_snapshot_base_multiple(self, base_assumptions):
    snapshot = MarketSnapshot(industry_multiple=10.0)
    result = valuate_by_multiple(base_assumptions, snapshot=snapshot)
    assert result.diag['multiple_base'] == pytest.approx(10.0)
    assert result.implied_multiple == pytest.approx(10.0 * 1.03)


class TestValuateBlended:
  """Tests for the blended entry point."""

  def test_weighted_average(self, base_assumptions):
    dcf = valuate(base_assumptions)
    multiple = valuate_by_multiple(base_assumptions)
    result = valuate_blended(base_assumptions, dcf_weight=0.6)

    assert result.method is ValuationMethod.BLENDED
    assert result.enterprise_value == pytest.approx(
        0.6 * dcf.enterprise_value + 0.4 * multiple.enterprise_value)
    assert result.present_value_of_cash_flows == pytest.approx(
        dcf.present_value_of_cash_flows)
    assert result.diag['blend_dcf_weight'] == 0.6

  @pytest.mark.parametrize('weight,method_ev', [(1.0, 'dcf'),
                                                (0.0, 'multiple')])
  def test_extreme_weights(self, base_assumptions, weight, method_ev):
    result = valuate_blended(base_assumptions, dcf_weight=weight)
    leg = (valuate(base_assumptions) if method_ev == 'dcf' else
           valuate_by_multiple(base_assumptions))
    assert result.enterprise_value == pytest.approx(leg.enterprise_value)

  @pytest.mark.parametrize('weight', [-0.1, 1.5])
  def test_invalid_weight(self, base_assumptions, weight):
    with pytest.raises(InvalidAssumptionError):
      valuate_blended(base_assumptions, dcf_weight=weight)
