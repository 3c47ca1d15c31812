import pytest

from medispa_valuation.engine.terminal import discount_terminal_value
from medispa_valuation.engine.terminal import exit_multiple_value
from medispa_valuation.engine.terminal import perpetuity_growth_value
from medispa_valuation.errors import InvalidTerminalAssumptionError


class TestPerpetuityGrowthValue:
  """Tests for perpetuity_growth_value function."""

  def test_normal_case(self):
    """Manual calculation: 100 * 1.03 / (0.10 - 0.03) = 1471.43"""
    assert perpetuity_growth_value(100.0, 0.03, 0.10) == pytest.approx(
        1471.4286, abs=1e-3)

  def test_zero_growth(self):
    assert perpetuity_growth_value(100.0, 0.0, 0.10) == pytest.approx(1000.0)

  def test_rate_equal_growth(self):
    with pytest.raises(InvalidTerminalAssumptionError) as exc_info:
      perpetuity_growth_value(100.0, 0.10, 0.10)
    assert exc_info.value.context == {
        'discount_rate': 0.10,
        'terminal_growth_rate': 0.10,
    }

  def test_rate_below_growth(self):
    with pytest.raises(InvalidTerminalAssumptionError):
      perpetuity_growth_value(100.0, 0.12, 0.08)


class TestExitMultipleValue:
  """Tests for exit_multiple_value function."""

  def test_basic(self):
    assert exit_multiple_value(1_000_000.0, 8.2) == pytest.approx(8_200_000.0)


class TestDiscountTerminalValue:
  """Tests for discount_terminal_value function."""

  def test_five_years(self):
    """Manual calculation: 1000 / 1.12^5 = 567.43"""
    assert discount_terminal_value(1000.0, 0.12, 5) == pytest.approx(
        567.4269, abs=1e-3)
