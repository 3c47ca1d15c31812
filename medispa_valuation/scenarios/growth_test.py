import pytest

from medispa_valuation.engine.valuation import valuate
from medispa_valuation.errors import InvalidAssumptionError
from medispa_valuation.scenarios.growth import apply_growth_scenario
from medispa_valuation.scenarios.growth import get_growth_scenario
from medispa_valuation.scenarios.growth import GROWTH_SCENARIOS
from medispa_valuation.scenarios.growth import run_growth_scenarios


class TestGrowthScenario:
  """Driver-to-input mapping."""

  @pytest.mark.parametrize('scenario_id,growth,premium', [
      ('conservative', 0.0817110, 0.16),
      ('base', 0.1568960, 0.36),
      ('aggressive', 0.2921360, 0.74),
      ('hypergrowth', 0.4850000, 1.26),
  ])
  def test_mapping(self, scenario_id, growth, premium):
    """Manual calculation (aggressive):
    growth = 1.15 * 1.06 * 1.06 - 1 = 29.2136%
    premium = 2 * (0.15 + 0.12 + 0.10) = 0.74 turns
    """
    scenario = get_growth_scenario(scenario_id)
    assert scenario.revenue_growth == pytest.approx(growth)
    assert scenario.multiple_premium == pytest.approx(premium)

  def test_unknown(self):
    with pytest.raises(KeyError, match='Available'):
      get_growth_scenario('moonshot')


class TestApplyGrowthScenario:
  """Tests for apply_growth_scenario function."""

  def test_aggressive(self, base_assumptions):
    adjusted = apply_growth_scenario(base_assumptions, 'aggressive')
    assert adjusted.growth_rate == pytest.approx(0.292136)
    assert adjusted.exit_multiple == pytest.approx(8.2 + 0.74)
    assert adjusted.discount_rate == base_assumptions.discount_rate

  def test_replaces_growth_path(self, base_assumptions):
    a = base_assumptions.with_overrides(
        growth_rate=(0.10, 0.09, 0.08, 0.07, 0.06))
    adjusted = apply_growth_scenario(a, 'base')
    assert adjusted.growth_path == pytest.approx((0.156896,) * 5)

  def test_input_not_modified(self, base_assumptions):
    apply_growth_scenario(base_assumptions, 'hypergrowth')
    assert base_assumptions.growth_rate == 0.085


class TestRunGrowthScenarios:
  """Tests for run_growth_scenarios function."""

  def test_all_scenarios(self, base_assumptions):
    analysis = run_growth_scenarios(base_assumptions)

    assert [o.scenario.id for o in analysis.outcomes] == list(GROWTH_SCENARIOS)
    assert analysis.base_enterprise_value == pytest.approx(
        valuate(base_assumptions).enterprise_value)

  def test_outcome_fields(self, base_assumptions):
    analysis = run_growth_scenarios(base_assumptions, ['aggressive'])
    outcome = analysis.outcome('aggressive')
    expected = valuate(apply_growth_scenario(base_assumptions, 'aggressive'))
    base_ev = analysis.base_enterprise_value

    assert outcome.enterprise_value == pytest.approx(expected.enterprise_value)
    assert outcome.ev_change == pytest.approx(expected.enterprise_value -
                                              base_ev)
    assert outcome.ev_change_pct == pytest.approx(outcome.ev_change / base_ev)
    assert outcome.implied_multiple == pytest.approx(expected.implied_multiple)
    assert outcome.exit_multiple == pytest.approx(8.94)

  def test_ev_rises_with_growth(self, base_assumptions):
    """Each step up adds both revenue growth and exit multiple premium."""
    analysis = run_growth_scenarios(base_assumptions)
    values = [o.enterprise_value for o in analysis.outcomes]
    assert all(a < b for a, b in zip(values, values[1:]))
    assert analysis.outcome('base').ev_change_pct > 0

  def test_frame(self, base_assumptions):
    df = run_growth_scenarios(base_assumptions).to_frame()
    assert list(df.index) == list(GROWTH_SCENARIOS)
    assert df.loc['hypergrowth', 'growth_rate'] == pytest.approx(0.485)
    assert 'implied_multiple' in df.columns

  def test_missing_outcome(self, base_assumptions):
    analysis = run_growth_scenarios(base_assumptions, ['base'])
    with pytest.raises(KeyError, match='Available'):
      analysis.outcome('hypergrowth')

  def test_unknown_scenario(self, base_assumptions):
    with pytest.raises(KeyError):
      run_growth_scenarios(base_assumptions, ['moonshot'])

  def test_failing_scenario_context(self, base_assumptions):
    """Only hypergrowth (9.46x exit) trips the capped engine."""

    def capped_valuate(assumptions):
      if assumptions.exit_multiple > 9.0:
        raise InvalidAssumptionError('exit multiple above cap')
      return valuate(assumptions)

    with pytest.raises(InvalidAssumptionError) as exc_info:
      run_growth_scenarios(base_assumptions, ['aggressive', 'hypergrowth'],
                           valuation_fn=capped_valuate)
    assert exc_info.value.context == {'scenario': 'hypergrowth'}
