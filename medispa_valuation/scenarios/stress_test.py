import pytest

from medispa_valuation.engine.projection import build_projections
from medispa_valuation.engine.valuation import valuate
from medispa_valuation.errors import InvalidAssumptionError
from medispa_valuation.scenarios.stress import apply_stress_scenario
from medispa_valuation.scenarios.stress import get_stress_scenario
from medispa_valuation.scenarios.stress import run_stress_analysis
from medispa_valuation.scenarios.stress import STRESS_SCENARIOS
from medispa_valuation.scenarios.stress import stressed_growth_path


class TestStressedGrowthPath:
  """Tests for stressed_growth_path function."""

  def test_revenue_scaled_by_multipliers(self):
    """Manual calculation (base revenue 100, 10% growth):
    unstressed: 110, 121
    stressed:   55 (x0.5), 121 (x1.0)
    growth:     -45%, +120%
    """
    path = stressed_growth_path((0.10, 0.10), (0.5, 1.0))
    assert path == pytest.approx((-0.45, 1.2))

  def test_unit_multipliers(self):
    assert stressed_growth_path((0.05, 0.07), (1.0, 1.0)) == pytest.approx(
        (0.05, 0.07))

  def test_non_positive_multiplier(self):
    with pytest.raises(InvalidAssumptionError):
      stressed_growth_path((0.05, 0.05), (0.5, 0.0))


class TestApplyStressScenario:
  """Tests for apply_stress_scenario function."""

  def test_pandemic(self, base_assumptions):
    """Revenue x0.25 in year 1, r + 2%, exit multiple x0.85."""
    stressed = apply_stress_scenario(base_assumptions, 'covid_style_pandemic')
    base_rev = [p.revenue for p in build_projections(base_assumptions)]
    stressed_rev = [p.revenue for p in build_projections(stressed)]

    assert stressed_rev == pytest.approx(
        [r * m for r, m in zip(base_rev, (0.25, 0.65, 0.90, 1.0, 1.0))])
    assert stressed.discount_rate == pytest.approx(0.14)
    assert stressed.exit_multiple == pytest.approx(8.2 * 0.85)
    assert stressed.capex_percent_of_revenue == 0.03

  def test_half_severity(self, base_assumptions):
    """Multiplier 0.25 at half severity becomes 1 - 0.75 * 0.5 = 0.625."""
    stressed = apply_stress_scenario(base_assumptions, 'covid_style_pandemic',
                                     severity=0.5)
    y1 = build_projections(stressed)[0]

    assert y1.revenue == pytest.approx(3_797_500.0 * 0.625)
    assert stressed.discount_rate == pytest.approx(0.13)

  def test_zero_severity_is_identity(self, base_assumptions):
    stressed = apply_stress_scenario(base_assumptions, 'economic_recession',
                                     severity=0.0)
    assert valuate(stressed).enterprise_value == pytest.approx(
        valuate(base_assumptions).enterprise_value)

  def test_capex_only(self, base_assumptions):
    stressed = apply_stress_scenario(base_assumptions,
                                     'state_licensing_change')
    assert stressed.capex_percent_of_revenue == pytest.approx(0.0315)
    assert stressed.growth_rate == base_assumptions.growth_rate

  def test_last_multiplier_holds(self, base_assumptions):
    a = base_assumptions.with_overrides(forecast_years=7)
    stressed = apply_stress_scenario(a, 'fda_botox_restriction')
    base_rev = [p.revenue for p in build_projections(a)]
    stressed_rev = [p.revenue for p in build_projections(stressed)]

    assert stressed_rev[-1] == pytest.approx(base_rev[-1] * 0.90)
    assert stressed_rev[-2] == pytest.approx(base_rev[-2] * 0.90)

  def test_input_not_modified(self, base_assumptions):
    apply_stress_scenario(base_assumptions, 'malpractice_lawsuit')
    assert base_assumptions.discount_rate == 0.12
    assert base_assumptions.growth_rate == 0.085

  def test_negative_severity(self, base_assumptions):
    with pytest.raises(InvalidAssumptionError):
      apply_stress_scenario(base_assumptions, 'economic_recession',
                            severity=-1.0)

  def test_excessive_severity(self, base_assumptions):
    """Severity 1.5 turns the 0.25 pandemic multiplier negative."""
    with pytest.raises(InvalidAssumptionError):
      apply_stress_scenario(base_assumptions, 'covid_style_pandemic',
                            severity=1.5)

  def test_unknown(self, base_assumptions):
    with pytest.raises(KeyError, match='Available'):
      apply_stress_scenario(base_assumptions, 'alien_invasion')


class TestRunStressAnalysis:
  """Tests for run_stress_analysis function."""

  def test_all_scenarios(self, base_assumptions):
    analysis = run_stress_analysis(base_assumptions)
    base_ev = valuate(base_assumptions).enterprise_value

    assert analysis.base_enterprise_value == pytest.approx(base_ev)
    assert [o.scenario.id for o in analysis.outcomes] == list(STRESS_SCENARIOS)
    for outcome in analysis.outcomes:
      assert outcome.ev_impact < 0
      assert outcome.ev_impact == pytest.approx(outcome.enterprise_value -
                                                base_ev)
      assert outcome.probability_weighted_impact == pytest.approx(
          outcome.ev_impact * outcome.scenario.probability)

  def test_summary(self, base_assumptions):
    analysis = run_stress_analysis(base_assumptions)
    outcomes = analysis.outcomes

    assert analysis.expected_value_at_risk == pytest.approx(
        sum(o.probability_weighted_impact for o in outcomes))
    assert analysis.probability_weighted_ev == pytest.approx(
        analysis.base_enterprise_value + analysis.expected_value_at_risk)
    assert analysis.worst_case_ev == pytest.approx(
        min(o.enterprise_value for o in outcomes))
    assert analysis.best_case_ev == pytest.approx(
        analysis.base_enterprise_value)
    assert set(analysis.summary()) == {
        'base_enterprise_value', 'expected_value_at_risk',
        'probability_weighted_ev', 'worst_case_ev', 'best_case_ev'
    }

  def test_subset(self, base_assumptions):
    analysis = run_stress_analysis(
        base_assumptions, ['major_competitor_entry', 'economic_recession'])
    df = analysis.to_frame()

    assert list(df.index) == ['major_competitor_entry', 'economic_recession']
    assert df.loc['economic_recession', 'probability'] == 0.15

  def test_failing_scenario_context(self, base_assumptions):
    with pytest.raises(InvalidAssumptionError) as exc_info:
      run_stress_analysis(base_assumptions, ['malpractice_lawsuit'],
                          severity=6.0)
    assert exc_info.value.context['scenario'] == 'malpractice_lawsuit'


class TestRegistry:
  """Tests for the stress scenario registry."""

  def test_probabilities(self):
    for scenario in STRESS_SCENARIOS.values():
      assert 0.0 < scenario.probability <= 1.0

  def test_lookup(self):
    assert get_stress_scenario('economic_recession').probability == 0.15
