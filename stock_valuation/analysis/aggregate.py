"""
Aggregation of model outputs into the final verdict.

Combines the DCF and earnings-multiple values into one fair value, scores
the confidence of the analysis, flags risks, classifies the recommendation
and writes a plain-language summary. All functions are pure.
"""

from typing import List, Optional

from stock_valuation.config import ValuationConfig
from stock_valuation.domain.types import BuyZone
from stock_valuation.domain.types import ConfidenceFactor
from stock_valuation.domain.types import ConfidenceScore
from stock_valuation.domain.types import FinancialStatements
from stock_valuation.domain.types import Recommendation
from stock_valuation.domain.types import RiskCategory
from stock_valuation.domain.types import RiskFactor
from stock_valuation.domain.types import RiskSeverity
from stock_valuation.engine.numeric import ladder_score
from stock_valuation.engine.numeric import weighted_score

RECOMMENDATION_TEXT = {
    Recommendation.STRONG_BUY:
        'Significantly Undervalued - Current valuation appears attractive '
        'based on analysis.',
    Recommendation.BUY:
        'Undervalued - Analysis suggests potential upside from current levels.',
    Recommendation.HOLD:
        'Fairly Valued - Current price appears to reflect intrinsic value.',
    Recommendation.AVOID:
        'Overvalued - Analysis suggests limited upside from current price.',
    Recommendation.STRONG_AVOID:
        'Significantly Overvalued - Current valuation appears stretched.',
}


def calculate_weighted_fair_value(
    dcf_value: float,
    earnings_value: float,
    config: Optional[ValuationConfig] = None,
) -> float:
  """
  Weighted mean of the model values that are positive.

  Returns:
    Fair value, or 0 when neither model produced a positive value
  """
  config = config or ValuationConfig.default()
  weights = config.model_weights
  values = [(v, w)
            for v, w in ((dcf_value, weights['dcf']),
                         (earnings_value, weights['earnings']))
            if v > 0]
  total_weight = sum(w for _, w in values)
  if total_weight <= 0:
    return 0.0
  return sum(v * w for v, w in values) / total_weight


def calculate_buy_zone(
    fair_value: float,
    config: Optional[ValuationConfig] = None,
) -> BuyZone:
  """Buy below `high`; the extra band down to `low` is the strong-buy tier."""
  config = config or ValuationConfig.default()
  margin = config.margin_of_safety_buy
  return BuyZone(low=fair_value * (1 - margin - config.strong_buy_band),
                 high=fair_value * (1 - margin))


def calculate_confidence(
    financials: FinancialStatements,
    dcf_margin_of_safety: float,
    dcf_value: float,
    earnings_value: float,
    fundamental_score: int,
    config: Optional[ValuationConfig] = None,
) -> ConfidenceScore:
  """
  Confidence in the analysis from five weighted factors.

  Args:
    financials: Statements, for data completeness
    dcf_margin_of_safety: Margin of safety of the DCF model alone
    dcf_value: DCF intrinsic price
    earnings_value: Earnings-multiple fair value
    fundamental_score: 0-100 fundamental score
    config: Valuation config (default: ValuationConfig.default())
  """
  config = config or ValuationConfig.default()
  weights = config.confidence_weights

  years = financials.years_of_data
  completeness = min(100, years * config.completeness_points_per_year)

  stability, stability_reason = ladder_score(
      fundamental_score, config.earnings_stability_ladder,
      config.earnings_stability_fallback)

  if dcf_value > 0 and earnings_value > 0:
    difference = abs(dcf_value - earnings_value) / max(dcf_value,
                                                       earnings_value)
    convergence, convergence_reason = ladder_score(difference,
                                                   config.convergence_ladder,
                                                   config.convergence_fallback,
                                                   mode='below')
  else:
    convergence, convergence_reason = config.convergence_unavailable

  mos_score, _ = ladder_score(dcf_margin_of_safety,
                              config.margin_of_safety_ladder,
                              config.margin_of_safety_fallback)

  factors = (
      ConfidenceFactor('Data Completeness', completeness,
                       weights['data_completeness'],
                       f'{years} years of financial data available'),
      ConfidenceFactor('Earnings Stability', stability,
                       weights['earnings_stability'], stability_reason),
      ConfidenceFactor('Model Convergence', convergence,
                       weights['model_convergence'], convergence_reason),
      ConfidenceFactor('Margin of Safety', mos_score,
                       weights['margin_of_safety'],
                       f'{dcf_margin_of_safety * 100:.1f}% margin of safety'),
      ConfidenceFactor('Volatility Assessment', config.volatility_score,
                       weights['volatility'], 'Moderate volatility expected'),
  )

  score = weighted_score((f.score, f.weight) for f in factors)
  return ConfidenceScore(score=score, factors=factors)


def identify_risk_factors(
    financials: FinancialStatements,
    dcf_margin_of_safety: float,
    fundamental_score: int,
    config: Optional[ValuationConfig] = None,
) -> tuple[RiskFactor, ...]:
  """
  Independent rule checks, each firing at most once.

  Rules in order: leverage (debt/equity), revenue decline, negative FCF,
  overvaluation, weak fundamentals.
  """
  config = config or ValuationConfig.default()
  risks: List[RiskFactor] = []

  balance = financials.latest_balance
  if balance is not None and balance.total_debt > 0:
    if balance.total_equity > 0:
      debt_to_equity = balance.total_debt / balance.total_equity
    else:
      debt_to_equity = float('inf')

    if debt_to_equity > config.debt_to_equity_high:
      risks.append(
          RiskFactor(RiskCategory.FINANCIAL, RiskSeverity.HIGH,
                     'Very high debt-to-equity ratio'))
    elif debt_to_equity > config.debt_to_equity_elevated:
      risks.append(
          RiskFactor(RiskCategory.FINANCIAL, RiskSeverity.MEDIUM,
                     'Elevated debt levels'))

  income = financials.income
  if len(income) >= 2 and income[0].revenue < income[1].revenue:
    risks.append(
        RiskFactor(RiskCategory.OPERATIONAL, RiskSeverity.MEDIUM,
                   'Revenue declined year-over-year'))

  cash_flow = financials.latest_cash_flow
  if cash_flow is not None and cash_flow.free_cash_flow < 0:
    risks.append(
        RiskFactor(RiskCategory.FINANCIAL, RiskSeverity.HIGH,
                   'Negative free cash flow'))

  if dcf_margin_of_safety < -config.premium_threshold_avoid:
    risks.append(
        RiskFactor(RiskCategory.VALUATION, RiskSeverity.HIGH,
                   'Stock appears significantly overvalued'))

  if fundamental_score < config.weak_fundamental_score:
    risks.append(
        RiskFactor(RiskCategory.OPERATIONAL, RiskSeverity.MEDIUM,
                   'Weak fundamental metrics'))

  return tuple(risks)


def determine_recommendation(
    margin_of_safety: float,
    fundamental_score: int,
    technical_score: int = 0,
    confidence_score: int = 0,
    config: Optional[ValuationConfig] = None,
) -> Recommendation:
  """
  Classify the verdict; the first matching rule wins.

  Technical and confidence scores are accepted for reporting symmetry but do
  not affect the outcome.
  """
  config = config or ValuationConfig.default()
  buy = config.margin_of_safety_buy

  if (margin_of_safety >= config.margin_of_safety_strong_buy and
      fundamental_score >= config.strong_buy_fundamental):
    return Recommendation.STRONG_BUY
  if margin_of_safety >= buy and fundamental_score >= config.buy_fundamental:
    return Recommendation.BUY
  if 0 <= margin_of_safety < buy:
    return Recommendation.HOLD
  if (margin_of_safety < -config.premium_threshold_avoid and
      fundamental_score < config.strong_avoid_fundamental):
    return Recommendation.STRONG_AVOID
  if margin_of_safety < 0:
    return Recommendation.AVOID
  return Recommendation.HOLD


def generate_summary(
    symbol: str,
    name: str,
    recommendation: Recommendation,
    fair_value: float,
    current_price: float,
    margin_of_safety: float,
    fundamental_score: int,
    technical_score: int,
    config: Optional[ValuationConfig] = None,
) -> str:
  """Analyst-style paragraph: valuation, fundamentals, technicals, verdict."""
  config = config or ValuationConfig.default()
  upside = ((fair_value - current_price) / current_price *
            100 if current_price > 0 else 0.0)
  subject = f'{name} ({symbol})'

  if margin_of_safety >= config.margin_of_safety_buy:
    parts = [
        f'{subject} appears significantly undervalued with {upside:.1f}% '
        'upside potential.'
    ]
  elif margin_of_safety >= 0:
    parts = [
        f'{subject} is trading at a reasonable valuation with modest upside.'
    ]
  else:
    parts = [f'{subject} appears overvalued at current prices.']

  if fundamental_score >= 70:
    parts.append('The company demonstrates excellent fundamental quality '
                 'with strong cash flows and returns on capital.')
  elif fundamental_score >= 50:
    parts.append(
        'Fundamentals are solid with room for improvement in some areas.')
  else:
    parts.append('Fundamental quality is a concern with weak metrics across '
                 'several categories.')

  if technical_score >= 65:
    parts.append('Technical indicators are bullish with positive momentum.')
  elif technical_score >= 40:
    parts.append(
        'Technical picture is mixed with no strong directional signals.')
  else:
    parts.append('Technical indicators suggest bearish momentum.')

  parts.append(f'Analysis Result: {RECOMMENDATION_TEXT[recommendation]}')
  return ' '.join(parts)
