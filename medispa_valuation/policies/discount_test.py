import pytest

from medispa_valuation.domain.types import MarketSnapshot
from medispa_valuation.policies.discount import BuildUpWacc
from medispa_valuation.policies.discount import CalibratedMarketMultiple
from medispa_valuation.policies.discount import snapshot_overrides


class TestBuildUpWacc:
  """Tests for BuildUpWacc policy."""

  def test_small_clinic(self, base_assumptions):
    """4.5% + 6% + 2.5% small-company premium = 13%"""
    snapshot = MarketSnapshot(risk_free_rate=0.045, market_risk_premium=0.06)
    result = BuildUpWacc().compute(snapshot, base_assumptions)

    assert result.value == pytest.approx(0.13)
    assert result.diag['wacc_size_premium'] == 0.025
    assert result.diag['wacc_economic_adjustment'] == 0.0

  def test_high_unemployment(self, base_assumptions):
    """Unemployment 6.5%: +0.5% size stress, +1% economic = 14.5%"""
    snapshot = MarketSnapshot(risk_free_rate=0.045,
                              market_risk_premium=0.06,
                              unemployment_rate=0.065)
    result = BuildUpWacc().compute(snapshot, base_assumptions)
    assert result.value == pytest.approx(0.145)

  def test_low_confidence(self, base_assumptions):
    snapshot = MarketSnapshot(risk_free_rate=0.045,
                              market_risk_premium=0.06,
                              consumer_confidence=85.0)
    result = BuildUpWacc().compute(snapshot, base_assumptions)
    assert result.diag['wacc_economic_adjustment'] == 0.005

  @pytest.mark.parametrize('revenue,premium', [
      (3_000_000.0, 0.025),
      (8_000_000.0, 0.015),
      (20_000_000.0, 0.005),
  ])
  def test_size_premium(self, revenue, premium):
    assert BuildUpWacc().size_premium(revenue, None) == premium

  def test_clipped(self, base_assumptions):
    low = MarketSnapshot(risk_free_rate=0.01, market_risk_premium=0.03)
    high = MarketSnapshot(risk_free_rate=0.08, market_risk_premium=0.12)
    assert BuildUpWacc().compute(low, base_assumptions).value == 0.08
    assert BuildUpWacc().compute(high, base_assumptions).value == 0.18

  def test_missing_fields(self, base_assumptions):
    result = BuildUpWacc().compute(MarketSnapshot(risk_free_rate=0.04),
                                   base_assumptions)
    assert result.value is None


class TestCalibratedMarketMultiple:
  """Tests for CalibratedMarketMultiple policy."""

  def test_activity_blend(self, base_assumptions):
    """Three deals: 0.7 * 9.0 + 0.3 * 7.0 = 8.4"""
    snapshot = MarketSnapshot(industry_multiple=9.0,
                              transaction_median_multiple=7.0,
                              transaction_count=3)
    result = CalibratedMarketMultiple().compute(snapshot, base_assumptions)

    assert result.value == pytest.approx(8.4)
    assert result.diag['market_multiple_activity_weight'] == pytest.approx(0.3)

  def test_full_activity(self, base_assumptions):
    snapshot = MarketSnapshot(industry_multiple=9.0,
                              transaction_median_multiple=7.0,
                              transaction_count=25)
    result = CalibratedMarketMultiple().compute(snapshot, base_assumptions)
    assert result.value == pytest.approx(7.0)

  def test_conditions(self, base_assumptions):
    """Strong confidence and low rates: 8.0 * 1.05 * 1.10 = 9.24"""
    snapshot = MarketSnapshot(industry_multiple=8.0,
                              consumer_confidence=105.0,
                              risk_free_rate=0.025)
    result = CalibratedMarketMultiple().compute(snapshot, base_assumptions)
    assert result.value == pytest.approx(9.24)

  def test_weak_conditions(self, base_assumptions):
    """Weak confidence and high rates: 8.0 * 0.95 * 0.90 = 6.84"""
    snapshot = MarketSnapshot(industry_multiple=8.0,
                              consumer_confidence=80.0,
                              risk_free_rate=0.055)
    result = CalibratedMarketMultiple().compute(snapshot, base_assumptions)
    assert result.value == pytest.approx(6.84)

  def test_clipped(self, base_assumptions):
    snapshot = MarketSnapshot(industry_multiple=20.0)
    result = CalibratedMarketMultiple().compute(snapshot, base_assumptions)
    assert result.value == 15.0

  def test_missing_industry_multiple(self, base_assumptions):
    result = CalibratedMarketMultiple().compute(MarketSnapshot(),
                                                base_assumptions)
    assert result.value is None


class TestSnapshotOverrides:
  """Tests for snapshot_overrides function."""

  def test_only_present_fields(self, base_assumptions):
    result = snapshot_overrides(MarketSnapshot(industry_multiple=9.0),
                                base_assumptions)
    assert result.value == pytest.approx({'exit_multiple': 9.0})

  def test_both(self, base_assumptions):
    snapshot = MarketSnapshot(risk_free_rate=0.04,
                              market_risk_premium=0.06,
                              industry_multiple=9.0,
                              as_of='2024-06-30')
    result = snapshot_overrides(snapshot, base_assumptions)

    assert set(result.value) == {'discount_rate', 'exit_multiple'}
    assert result.diag['snapshot_as_of'] == '2024-06-30'
