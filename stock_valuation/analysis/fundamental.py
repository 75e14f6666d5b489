"""
Fundamental quality metrics and the weighted fundamental score.

Metrics are read from FinancialStatements, which already holds every
statement most recent first. With fewer than two years of any statement
all metrics are 0.
"""

import logging
from typing import Optional

from stock_valuation.config import ValuationConfig
from stock_valuation.domain.types import FinancialStatements
from stock_valuation.domain.types import FundamentalFactor
from stock_valuation.domain.types import FundamentalMetrics
from stock_valuation.domain.types import FundamentalScore
from stock_valuation.engine.numeric import cagr
from stock_valuation.engine.numeric import clamp
from stock_valuation.engine.numeric import growth_consistency
from stock_valuation.engine.numeric import ladder_score
from stock_valuation.engine.numeric import mean
from stock_valuation.engine.numeric import weighted_score

logger = logging.getLogger(__name__)


def calculate_roic(
    operating_income: float,
    tax_rate: float,
    total_equity: float,
    total_debt: float,
    cash: float,
) -> float:
  """
  Return on invested capital.

  ROIC = operating income x (1 - tax) / (equity + debt - cash)

  Returns:
    ROIC, or 0 when invested capital is not positive
  """
  invested_capital = total_equity + total_debt - cash
  if invested_capital <= 0:
    return 0.0
  return operating_income * (1.0 - tax_rate) / invested_capital


def extract_fundamental_metrics(
    financials: FinancialStatements,
    config: Optional[ValuationConfig] = None,
) -> FundamentalMetrics:
  """
  Derive quality metrics from multi-year statements.

  Growth windows cover the most recent config.growth_window_years periods.

  Args:
    financials: Statements, most recent first
    config: Valuation config (default: ValuationConfig.default())

  Returns:
    FundamentalMetrics; all zeros with fewer than 2 years of any statement
  """
  config = config or ValuationConfig.default()
  income = financials.income
  balance = financials.balance
  cash_flow = financials.cash_flow

  if min(len(income), len(balance), len(cash_flow)) < 2:
    logger.debug('Fewer than 2 years of statements, metrics are zero')
    return FundamentalMetrics()

  tax = config.tax_rate
  window = config.growth_window_years
  latest_income = income[0]
  latest_balance = balance[0]

  roic = calculate_roic(latest_income.operating_income, tax,
                        latest_balance.total_equity, latest_balance.total_debt,
                        latest_balance.cash)

  roic_trend = 0.0
  if len(income) >= 3 and len(balance) >= 3:
    old_roic = calculate_roic(income[2].operating_income, tax,
                              balance[2].total_equity, balance[2].total_debt,
                              balance[2].cash)
    roic_trend = roic - old_roic

  # oldest first
  revenues = [p.revenue for p in reversed(income[:window])]
  revenue_growth = cagr(revenues[0], revenues[-1], len(revenues) - 1)

  fcfs = [p.free_cash_flow for p in reversed(cash_flow[:window])]
  fcf_growth = cagr(fcfs[0], fcfs[-1], len(fcfs) - 1)
  fcf_consistency = growth_consistency([f for f in fcfs if f > 0])

  avg_fcf = mean(fcfs)
  debt_to_fcf = (latest_balance.total_debt /
                 avg_fcf if avg_fcf > 0 else config.debt_to_fcf_sentinel)

  operating_leverage = 1.0
  revenue_change = latest_income.revenue - income[1].revenue
  if revenue_change != 0:
    operating_income_change = (latest_income.operating_income -
                               income[1].operating_income)
    operating_leverage = operating_income_change / revenue_change

  shares = [p.shares_outstanding for p in income[:window]]
  dilution = 0.0
  if shares[-1] > 0:
    dilution = (shares[0] - shares[-1]) / shares[-1]

  return FundamentalMetrics(
      roic=roic,
      roic_trend=roic_trend,
      revenue_growth_5y=revenue_growth,
      revenue_growth_stability=growth_consistency(revenues),
      fcf_growth_5y=fcf_growth,
      fcf_consistency=fcf_consistency,
      debt_to_fcf=debt_to_fcf,
      operating_leverage=operating_leverage,
      net_margin=latest_income.net_margin,
      gross_margin=latest_income.gross_margin,
      share_dilution_5y=dilution,
  )


def calculate_fundamental_score(
    metrics: FundamentalMetrics,
    config: Optional[ValuationConfig] = None,
) -> FundamentalScore:
  """
  Weighted 0-100 fundamental score.

  Operating leverage is reported in the metrics but carries no weight.

  Args:
    metrics: Output of extract_fundamental_metrics
    config: Valuation config (default: ValuationConfig.default())

  Returns:
    FundamentalScore with one factor per weighted metric
  """
  config = config or ValuationConfig.default()
  weights = config.fundamental_weights
  consistent = config.consistency_threshold

  roic_score, roic_label = ladder_score(metrics.roic, config.roic_ladder,
                                        config.roic_fallback)
  revenue_score, revenue_label = ladder_score(metrics.revenue_growth_5y,
                                              config.growth_ladder,
                                              config.growth_fallback)
  fcf_score, fcf_label = ladder_score(metrics.fcf_growth_5y,
                                      config.growth_ladder,
                                      config.growth_fallback)
  debt_score, debt_label = ladder_score(metrics.debt_to_fcf,
                                        config.debt_to_fcf_ladder,
                                        config.debt_to_fcf_fallback,
                                        mode='at_most')
  dilution_score, dilution_label = ladder_score(metrics.share_dilution_5y,
                                                config.dilution_ladder,
                                                config.dilution_fallback,
                                                mode='at_most')
  margin_score = clamp(metrics.net_margin * config.margin_score_multiplier, 0.0,
                       100.0)

  factors = (
      FundamentalFactor('Return on Invested Capital', metrics.roic, roic_score,
                        weights['roic'], roic_label),
      FundamentalFactor('Revenue Growth (5Y)', metrics.revenue_growth_5y,
                        revenue_score, weights['revenue_growth'],
                        revenue_label),
      FundamentalFactor(
          'Revenue Stability', metrics.revenue_growth_stability,
          metrics.revenue_growth_stability, weights['revenue_stability'],
          'Consistent'
          if metrics.revenue_growth_stability >= consistent else 'Variable'),
      FundamentalFactor('FCF Growth (5Y)', metrics.fcf_growth_5y, fcf_score,
                        weights['fcf_growth'], fcf_label),
      FundamentalFactor(
          'FCF Consistency', metrics.fcf_consistency, metrics.fcf_consistency,
          weights['fcf_consistency'], 'Reliable cash flows'
          if metrics.fcf_consistency >= consistent else 'Variable cash flows'),
      FundamentalFactor('Debt Management', metrics.debt_to_fcf, debt_score,
                        weights['debt_management'], debt_label),
      FundamentalFactor(
          'Profit Margins', metrics.net_margin, margin_score,
          weights['margins'], 'Excellent margins'
          if metrics.net_margin >= config.excellent_net_margin else
          'Fair margins'),
      FundamentalFactor('Share Dilution', metrics.share_dilution_5y,
                        dilution_score, weights['dilution'], dilution_label),
  )

  score = weighted_score((f.score, f.weight) for f in factors)
  return FundamentalScore(score=score, factors=factors)
