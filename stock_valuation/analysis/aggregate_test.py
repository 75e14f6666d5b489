import dataclasses

import pytest

from stock_valuation.analysis.aggregate import calculate_buy_zone
from stock_valuation.analysis.aggregate import calculate_confidence
from stock_valuation.analysis.aggregate import calculate_weighted_fair_value
from stock_valuation.analysis.aggregate import determine_recommendation
from stock_valuation.analysis.aggregate import generate_summary
from stock_valuation.analysis.aggregate import identify_risk_factors
from stock_valuation.config import ValuationConfig
from stock_valuation.domain.types import FinancialStatements
from stock_valuation.domain.types import Recommendation
from stock_valuation.domain.types import RiskCategory
from stock_valuation.domain.types import RiskSeverity


def _with_latest_balance(financials, **changes):
  balance = financials.balance
  latest = dataclasses.replace(balance[0], **changes)
  return dataclasses.replace(financials, balance=(latest,) + balance[1:])


class TestWeightedFairValue:
  """Tests for calculate_weighted_fair_value."""

  def test_both_models(self):
    """100 x 0.6 + 90 x 0.4 = 96."""
    assert calculate_weighted_fair_value(100.0, 90.0) == pytest.approx(96.0)

  def test_single_model(self):
    assert calculate_weighted_fair_value(100.0, 0.0) == pytest.approx(100.0)
    assert calculate_weighted_fair_value(-10.0, 90.0) == pytest.approx(90.0)

  def test_no_model(self):
    assert calculate_weighted_fair_value(0.0, -5.0) == 0.0

  def test_custom_weights(self):
    config = ValuationConfig(model_weights={'dcf': 0.5, 'earnings': 0.5})
    assert calculate_weighted_fair_value(100.0, 90.0,
                                         config) == pytest.approx(95.0)


class TestBuyZone:
  """Tests for calculate_buy_zone."""

  def test_default_margin(self):
    zone = calculate_buy_zone(100.0)

    assert zone.high == pytest.approx(75.0)
    assert zone.low == pytest.approx(65.0)


class TestCalculateConfidence:
  """Tests for calculate_confidence."""

  def test_agreeing_models(self, sample_financials):
    """
    4 years -> 40, fundamental 74 -> 80, diff 10% -> 90, MoS 30% -> 90,
    volatility 60: 10 + 16 + 18 + 18 + 9 = 71
    """
    four_years = FinancialStatements(income=sample_financials.income[:4],
                                     balance=sample_financials.balance[:4],
                                     cash_flow=sample_financials.cash_flow[:4])
    result = calculate_confidence(four_years, 0.30, 100.0, 90.0, 74)

    assert result.score == 71
    reasons = {f.name: f.reason for f in result.factors}
    assert reasons['Data Completeness'] == (
        '4 years of financial data available')
    assert reasons['Earnings Stability'] == 'Stable earnings history'
    assert reasons['Model Convergence'] == 'Valuation models agree'
    assert reasons['Margin of Safety'] == '30.0% margin of safety'

  def test_missing_model(self, sample_financials):
    """
    4 years -> 40, fundamental 45 -> 50, no earnings value -> 50,
    MoS -5% -> 30, volatility 60: 10 + 10 + 10 + 6 + 9 = 45
    """
    four_years = FinancialStatements(income=sample_financials.income[:4],
                                     balance=sample_financials.balance[:4],
                                     cash_flow=sample_financials.cash_flow[:4])
    result = calculate_confidence(four_years, -0.05, 100.0, 0.0, 45)

    assert result.score == 45
    convergence = next(
        f for f in result.factors if f.name == 'Model Convergence')
    assert convergence.score == 50
    assert convergence.reason == 'Valuation models diverge'

  @pytest.mark.parametrize('earnings,expected', [(80.0, 70), (60.0, 40),
                                                 (40.0, 20)])
  def test_convergence_tiers(self, sample_financials, earnings, expected):
    result = calculate_confidence(sample_financials, 0.0, 100.0, earnings, 50)
    convergence = next(
        f for f in result.factors if f.name == 'Model Convergence')
    assert convergence.score == expected

  def test_completeness_capped(self):
    assert calculate_confidence(FinancialStatements(), 0.0, 0.0, 0.0,
                                0).factors[0].score == 0


class TestIdentifyRiskFactors:
  """Tests for identify_risk_factors."""

  def test_healthy_company(self, sample_financials):
    assert identify_risk_factors(sample_financials, 0.10, 74) == ()

  def test_overvalued_and_weak(self, sample_financials):
    risks = identify_risk_factors(sample_financials, -0.30, 30)

    assert [(r.category, r.severity) for r in risks] == [
        (RiskCategory.VALUATION, RiskSeverity.HIGH),
        (RiskCategory.OPERATIONAL, RiskSeverity.MEDIUM),
    ]

  def test_very_high_leverage(self, sample_financials):
    financials = _with_latest_balance(sample_financials, total_equity=100.0)
    risks = identify_risk_factors(financials, 0.10, 74)

    assert len(risks) == 1
    assert risks[0].severity == RiskSeverity.HIGH
    assert risks[0].description == 'Very high debt-to-equity ratio'

  def test_elevated_leverage(self, sample_financials):
    financials = _with_latest_balance(sample_financials, total_equity=200.0)
    risks = identify_risk_factors(financials, 0.10, 74)

    assert [r.description for r in risks] == ['Elevated debt levels']

  def test_negative_equity_with_debt_is_high_risk(self, sample_financials):
    financials = _with_latest_balance(sample_financials, total_equity=-50.0)
    risks = identify_risk_factors(financials, 0.10, 74)

    assert risks[0].severity == RiskSeverity.HIGH

  def test_no_debt_skips_leverage(self, sample_financials):
    financials = _with_latest_balance(sample_financials,
                                      total_debt=0.0,
                                      total_equity=0.0)
    assert identify_risk_factors(financials, 0.10, 74) == ()

  def test_revenue_decline_and_negative_fcf(self, sample_financials):
    income = sample_financials.income
    latest_income = dataclasses.replace(income[0], revenue=1300.0)
    cash_flow = sample_financials.cash_flow
    latest_cash = dataclasses.replace(cash_flow[0], free_cash_flow=-20.0)
    financials = dataclasses.replace(sample_financials,
                                     income=(latest_income,) + income[1:],
                                     cash_flow=(latest_cash,) + cash_flow[1:])
    risks = identify_risk_factors(financials, 0.10, 74)

    assert [r.description for r in risks] == [
        'Revenue declined year-over-year',
        'Negative free cash flow',
    ]


class TestDetermineRecommendation:
  """Tests for the recommendation precedence."""

  @pytest.mark.parametrize('mos,fundamental,expected', [
      (0.40, 70, Recommendation.STRONG_BUY),
      (0.35, 60, Recommendation.STRONG_BUY),
      (0.40, 55, Recommendation.BUY),
      (0.25, 50, Recommendation.BUY),
      (0.30, 45, Recommendation.HOLD),
      (0.10, 90, Recommendation.HOLD),
      (0.0, 10, Recommendation.HOLD),
      (-0.25, 30, Recommendation.STRONG_AVOID),
      (-0.25, 50, Recommendation.AVOID),
      (-0.05, 10, Recommendation.AVOID),
  ])
  def test_precedence(self, mos, fundamental, expected):
    assert determine_recommendation(mos, fundamental) == expected

  def test_technical_and_confidence_do_not_override(self):
    """Strong buy stands whatever the other scores are."""
    for technical, confidence in [(0, 0), (100, 100), (10, 90)]:
      assert determine_recommendation(0.40, 70, technical,
                                      confidence) == Recommendation.STRONG_BUY


class TestGenerateSummary:
  """Tests for generate_summary."""

  def test_undervalued_quality(self):
    summary = generate_summary('TEST', 'Test Corp', Recommendation.STRONG_BUY,
                               150.0, 100.0, 0.50, 75, 70)

    assert summary.startswith('Test Corp (TEST) appears significantly '
                              'undervalued with 50.0% upside potential.')
    assert 'excellent fundamental quality' in summary
    assert 'Technical indicators are bullish' in summary
    assert summary.endswith('Analysis Result: Significantly Undervalued - '
                            'Current valuation appears attractive based on '
                            'analysis.')

  def test_fairly_valued_mixed(self):
    summary = generate_summary('TEST', 'Test Corp', Recommendation.HOLD,
                               110.0, 100.0, 0.10, 55, 50)

    assert 'reasonable valuation with modest upside' in summary
    assert 'Fundamentals are solid' in summary
    assert 'Technical picture is mixed' in summary
    assert 'Fairly Valued' in summary

  def test_overvalued_weak(self):
    summary = generate_summary('TEST', 'Test Corp',
                               Recommendation.STRONG_AVOID, 70.0, 100.0, -0.30,
                               30, 20)

    assert 'appears overvalued at current prices' in summary
    assert 'Fundamental quality is a concern' in summary
    assert 'bearish momentum' in summary
    assert 'Significantly Overvalued' in summary
