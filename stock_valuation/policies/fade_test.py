import pytest

from stock_valuation.config import ValuationConfig
from stock_valuation.domain.types import PolicyOutput
from stock_valuation.errors import DomainError
from stock_valuation.policies.fade import ThreePhaseFade


class TestThreePhaseFade:
  """Tests for ThreePhaseFade policy."""

  def test_default_20year_schedule(self):
    """5 years at g0, 10 years of decay, 5 years at terminal."""
    policy = ThreePhaseFade()
    result = policy.compute(g0=0.10, g_terminal=0.025, n_years=20)

    assert isinstance(result, PolicyOutput)
    assert len(result.value) == 20
    assert result.value[:5] == [0.10] * 5
    assert result.value[5] == pytest.approx(0.0925)
    assert result.value[14] == pytest.approx(0.025)
    assert result.value[15:] == [0.025] * 5
    assert result.diag['fade_method'] == 'three_phase'
    assert result.diag['phase2_years'] == 10

  def test_decay_is_non_increasing(self):
    result = ThreePhaseFade().compute(g0=0.30, g_terminal=0.03, n_years=20)
    decay = result.value[4:16]
    assert all(a >= b for a, b in zip(decay, decay[1:]))

  def test_floored_at_terminal(self):
    """Initial growth below terminal: the decay phase holds terminal."""
    result = ThreePhaseFade().compute(g0=-0.05, g_terminal=0.025, n_years=20)

    assert result.value[:5] == [-0.05] * 5
    assert result.value[5:] == pytest.approx([0.025] * 15)

  def test_custom_phases(self):
    """2 + 2 + 1: [g0, g0, midpoint, terminal, terminal]."""
    policy = ThreePhaseFade(phase1_years=2, phase2_years=2, phase3_years=1)
    result = policy.compute(g0=0.08, g_terminal=0.02, n_years=5)

    assert result.value == pytest.approx([0.08, 0.08, 0.05, 0.02, 0.02])

  def test_from_config(self):
    config = ValuationConfig(phase1_years=3, phase2_years=4, phase3_years=3)
    policy = ThreePhaseFade.from_config(config)

    assert policy.n_years == 10
    assert len(policy.compute(0.1, 0.02, 10).value) == 10

  def test_mismatched_years_raise(self):
    with pytest.raises(DomainError, match='phase sum'):
      ThreePhaseFade().compute(g0=0.10, g_terminal=0.025, n_years=10)
