'''
Single-company analysis entrypoint.

This module wires the pure engines together. It:
1. Derives DCF inputs from the quote and statements
2. Runs forward DCF, reverse DCF, earnings multiple and Graham number
3. Scores technicals and fundamentals
4. Aggregates into a StockAnalysis with recommendation and summary

Usage:
  from stock_valuation.run import analyze_stock

  analysis = analyze_stock(quote, financials, prices)
  print(f"Fair value: ${analysis.fair_value:.2f}")

CLI:
  python -m stock_valuation.run --input payload.json [--output result.json]
'''

import argparse
import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Optional

from stock_valuation.analysis.aggregate import calculate_buy_zone
from stock_valuation.analysis.aggregate import calculate_confidence
from stock_valuation.analysis.aggregate import calculate_weighted_fair_value
from stock_valuation.analysis.aggregate import determine_recommendation
from stock_valuation.analysis.aggregate import generate_summary
from stock_valuation.analysis.aggregate import identify_risk_factors
from stock_valuation.analysis.fundamental import calculate_fundamental_score
from stock_valuation.analysis.fundamental import extract_fundamental_metrics
from stock_valuation.analysis.technical import calculate_technical_indicators
from stock_valuation.analysis.technical import calculate_technical_score
from stock_valuation.config import ValuationConfig
from stock_valuation.domain.normalize import normalize_financials
from stock_valuation.domain.normalize import normalize_prices
from stock_valuation.domain.normalize import normalize_quote
from stock_valuation.domain.types import DCFInputs
from stock_valuation.domain.types import FinancialStatements
from stock_valuation.domain.types import Quote
from stock_valuation.domain.types import StockAnalysis
from stock_valuation.engine.dcf import calculate_dcf
from stock_valuation.engine.dcf import calculate_reverse_dcf
from stock_valuation.engine.dcf import calculate_wacc
from stock_valuation.engine.earnings import analyze_historical_pe
from stock_valuation.engine.earnings import calculate_earnings_multiple_value
from stock_valuation.engine.earnings import calculate_graham_number
from stock_valuation.engine.numeric import clamp

logger = logging.getLogger(__name__)


def estimate_growth_rate(
    financials: FinancialStatements,
    config: Optional[ValuationConfig] = None,
) -> float:
  '''
  Rough annual growth from revenue.

  Compares the latest revenue with the one two periods back (or the oldest
  available), halves the change and clamps it to
  config.analyst_growth_bounds.

  Returns:
    Growth rate, or config.default_analyst_growth without two usable years
  '''
  config = config or ValuationConfig.default()
  income = financials.income
  if len(income) < 2:
    return config.default_analyst_growth

  recent = income[0].revenue
  older = income[min(2, len(income) - 1)].revenue
  if older <= 0:
    return config.default_analyst_growth

  low, high = config.analyst_growth_bounds
  return clamp((recent - older) / older / 2, low, high)


def build_dcf_inputs(
    quote: Quote,
    financials: FinancialStatements,
    growth_rate: float,
    config: Optional[ValuationConfig] = None,
) -> DCFInputs:
  '''
  Derive DCF inputs from the quote and latest statements.

  Starting FCF is the latest reported free cash flow, estimated as
  eps x shares x config.fcf_from_earnings_ratio when none is reported.
  Shares fall back to the latest income statement when the quote has none.
  '''
  config = config or ValuationConfig.default()
  balance = financials.latest_balance
  cash_flow = financials.latest_cash_flow

  shares = quote.shares_outstanding
  if shares <= 0 and financials.latest_income is not None:
    shares = financials.latest_income.shares_outstanding

  starting_fcf = cash_flow.free_cash_flow if cash_flow is not None else 0.0
  if not starting_fcf:
    starting_fcf = quote.eps * shares * config.fcf_from_earnings_ratio

  return DCFInputs(
      starting_fcf=starting_fcf,
      shares_outstanding=shares,
      total_debt=balance.total_debt if balance is not None else 0.0,
      cash=balance.cash if balance is not None else 0.0,
      beta=quote.beta or 1.0,
      analyst_growth_rate=growth_rate,
      risk_free_rate=config.risk_free_rate,
      market_return=config.market_return,
      terminal_growth_rate=config.terminal_growth_rate,
      projection_years=config.projection_years,
  )


def analyze_stock(
    quote: Quote,
    financials: FinancialStatements,
    prices: Sequence[float],
    config: Optional[ValuationConfig] = None,
) -> StockAnalysis:
  '''
  Run the complete analysis for one company.

  Args:
    quote: Normalized market quote
    financials: Normalized statements, most recent first
    prices: Closing prices, most recent first
    config: ValuationConfig (default: ValuationConfig.default())

  Returns:
    StockAnalysis with every intermediate result

  Raises:
    DomainError: If the DCF preconditions fail (no shares, non-positive
      price, invalid terminal spread)
  '''
  if config is None:
    config = ValuationConfig.default()

  growth_rate = estimate_growth_rate(financials, config)
  inputs = build_dcf_inputs(quote, financials, growth_rate, config)
  logger.debug('%s: growth %.4f, starting FCF %.0f, shares %.0f', quote.symbol,
               growth_rate, inputs.starting_fcf, inputs.shares_outstanding)

  dcf = calculate_dcf(inputs, quote.price, config)

  wacc = calculate_wacc(inputs.beta, config.risk_free_rate,
                        config.market_return, config)
  reverse_dcf = calculate_reverse_dcf(quote.price, inputs.starting_fcf,
                                      inputs.shares_outstanding,
                                      inputs.total_debt, inputs.cash, wacc,
                                      config.terminal_growth_rate, config)

  eps_history = [p.eps for p in financials.income]
  historical_pe = analyze_historical_pe(prices[:len(eps_history)],
                                        eps_history)
  default_low, default_high, default_median = config.default_pe_range
  earnings_multiple = calculate_earnings_multiple_value(
      quote.eps,
      quote.forward_eps or quote.eps * (1 + growth_rate),
      historical_pe.low or default_low,
      historical_pe.high or default_high,
      historical_pe.median or default_median,
      growth_rate,
      quote.price,
      config,
  )

  balance = financials.latest_balance
  book_value_per_share = 0.0
  if balance is not None and balance.total_equity:
    book_value_per_share = balance.total_equity / inputs.shares_outstanding
  graham_number = calculate_graham_number(quote.eps, book_value_per_share,
                                          quote.price, config)

  indicators = calculate_technical_indicators(prices, quote.price, config)
  technical_score = calculate_technical_score(indicators, config)

  metrics = extract_fundamental_metrics(financials, config)
  fundamental_score = calculate_fundamental_score(metrics, config)

  confidence = calculate_confidence(financials, dcf.margin_of_safety,
                                    dcf.intrinsic_price,
                                    earnings_multiple.fair_value,
                                    fundamental_score.score, config)

  fair_value = calculate_weighted_fair_value(dcf.intrinsic_price,
                                             earnings_multiple.fair_value,
                                             config)
  upside = (fair_value - quote.price) / quote.price
  margin_of_safety = upside

  risk_factors = identify_risk_factors(financials, dcf.margin_of_safety,
                                       fundamental_score.score, config)
  recommendation = determine_recommendation(margin_of_safety,
                                            fundamental_score.score,
                                            technical_score.score,
                                            confidence.score, config)
  summary = generate_summary(quote.symbol, quote.name, recommendation,
                             fair_value, quote.price, margin_of_safety,
                             fundamental_score.score, technical_score.score,
                             config)

  return StockAnalysis(
      quote=quote,
      financials=financials,
      dcf=dcf,
      earnings_multiple=earnings_multiple,
      reverse_dcf=reverse_dcf,
      graham_number=graham_number,
      technical_indicators=indicators,
      technical_score=technical_score,
      fundamental_metrics=metrics,
      fundamental_score=fundamental_score,
      confidence_score=confidence,
      fair_value=fair_value,
      current_price=quote.price,
      upside=upside,
      margin_of_safety=margin_of_safety,
      buy_zone=calculate_buy_zone(fair_value, config),
      risk_factors=risk_factors,
      recommendation=recommendation,
      summary=summary,
  )


def analyze_payload(
    payload: Mapping[str, Any],
    config: Optional[ValuationConfig] = None,
) -> StockAnalysis:
  '''
  Normalize a raw provider payload and analyze it.

  Args:
    payload: Mapping with 'quote', 'financials' and 'prices' (records of
      {date, close}); an optional 'config' mapping overrides defaults
    config: Explicit config, takes precedence over payload['config']

  Raises:
    KeyError: If the payload has no quote
  '''
  if config is None:
    config = ValuationConfig.from_dict(payload.get('config') or {})

  quote = normalize_quote(payload['quote'])
  financials = normalize_financials(payload.get('financials') or {})
  prices = normalize_prices(payload.get('prices') or [])
  logger.debug('%s: %d years of statements, %d prices', quote.symbol,
               financials.years_of_data, len(prices))
  return analyze_stock(quote, financials, prices, config)


def _log_report(analysis: StockAnalysis) -> None:
  separator = '=' * 70
  quote = analysis.quote
  logger.info('\n%s', separator)
  logger.info('Stock Analysis - %s (%s)', quote.name, quote.symbol)
  logger.info(separator)

  logger.info('\nDCF:')
  logger.info('  WACC: %.2f%%', analysis.dcf.wacc * 100)
  logger.info('  Intrinsic Price: $%.2f', analysis.dcf.intrinsic_price)
  logger.info('  Implied Growth: %.2f%% (%s)',
              analysis.reverse_dcf.implied_growth_rate * 100,
              analysis.reverse_dcf.tier)
  logger.info('  Earnings Multiple Value: $%.2f',
              analysis.earnings_multiple.fair_value)
  logger.info('  Graham Number: $%.2f', analysis.graham_number.graham_number)

  logger.info('\nScores:')
  logger.info('  Technical: %d', analysis.technical_score.score)
  logger.info('  Fundamental: %d', analysis.fundamental_score.score)
  logger.info('  Confidence: %d', analysis.confidence_score.score)

  logger.info('\nVerdict:')
  logger.info('  Price: $%.2f', analysis.current_price)
  logger.info('  Fair Value: $%.2f', analysis.fair_value)
  logger.info('  Margin of Safety: %.2f%%', analysis.margin_of_safety * 100)
  logger.info('  Buy Zone: $%.2f - $%.2f', analysis.buy_zone.low,
              analysis.buy_zone.high)
  for risk in analysis.risk_factors:
    logger.info('  Risk [%s/%s]: %s', risk.category.value, risk.severity.value,
                risk.description)
  logger.info('  Recommendation: %s', analysis.recommendation.value)
  logger.info('\n%s', analysis.summary)
  logger.info('%s\n', separator)


def main() -> None:
  '''CLI entrypoint.'''
  parser = argparse.ArgumentParser(description='Run stock analysis')
  parser.add_argument('--input',
                      type=Path,
                      required=True,
                      help='JSON payload with quote, financials and prices')
  parser.add_argument('--config',
                      type=Path,
                      default=None,
                      help='JSON file overriding ValuationConfig defaults')
  parser.add_argument('--output',
                      type=Path,
                      default=None,
                      help='Write the full analysis as JSON')
  args = parser.parse_args()

  payload = json.loads(args.input.read_text())
  config = None
  if args.config is not None:
    config = ValuationConfig.from_json(args.config.read_text())

  analysis = analyze_payload(payload, config)
  _log_report(analysis)

  if args.output is not None:
    args.output.write_text(json.dumps(analysis.to_dict(), indent=2))
    logger.info('Saved analysis to %s', args.output)


if __name__ == '__main__':
  logging.basicConfig(
      level=logging.INFO,
      format='%(message)s',
  )
  main()
