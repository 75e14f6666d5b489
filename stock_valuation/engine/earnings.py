"""
Earnings-based valuation models.

  calculate_earnings_multiple_value: EPS x conservative P/E
  analyze_historical_pe: Trimmed low/high/median/average of past P/E
  calculate_lynch_fair_value: PEG = 1 fair value
  calculate_graham_number: sqrt(22.5 x EPS x BVPS)
"""

from collections.abc import Sequence
import math
from typing import NamedTuple, Optional

from stock_valuation.config import ValuationConfig
from stock_valuation.domain.types import EarningsMultipleResult
from stock_valuation.domain.types import GrahamNumberResult
from stock_valuation.engine.numeric import clamp
from stock_valuation.engine.numeric import mean


class HistoricalPE(NamedTuple):
  low: float
  high: float
  median: float
  average: float


def select_conservative_pe(
    pe_low: float,
    pe_high: float,
    pe_median: float,
    growth_rate: float,
    config: Optional[ValuationConfig] = None,
) -> float:
  """
  Pick a P/E below the historical median.

  Takes the smallest positive candidate among the 25th percentile of the
  historical range, the PEG-implied P/E (growth x 100 x PEG) and the
  historical median, then clamps to config.pe_bounds.

  Returns:
    Selected P/E; the lower bound when no candidate is positive
  """
  config = config or ValuationConfig.default()
  pe_floor, pe_cap = config.pe_bounds

  percentile25 = pe_low + (pe_high - pe_low) * 0.25
  growth_adjusted = growth_rate * 100 * config.conservative_peg
  candidates = [
      pe for pe in (percentile25, growth_adjusted, pe_median) if pe > 0
  ]
  if not candidates:
    return pe_floor
  return clamp(min(candidates), pe_floor, pe_cap)


def calculate_earnings_multiple_value(
    eps: float,
    forward_eps: float,
    pe_low: float,
    pe_high: float,
    pe_median: float,
    growth_rate: float,
    current_price: float,
    config: Optional[ValuationConfig] = None,
) -> EarningsMultipleResult:
  """
  Fair value as EPS times a conservative P/E.

  Forward EPS is used when positive, otherwise trailing EPS. With neither
  positive the model does not apply and fair value is 0.

  Args:
    eps: Trailing EPS
    forward_eps: Forward EPS estimate
    pe_low: Historical low P/E
    pe_high: Historical high P/E
    pe_median: Historical median P/E
    growth_rate: Expected earnings growth (decimal)
    current_price: Market price per share
    config: Valuation config (default: ValuationConfig.default())
  """
  if eps <= 0 and forward_eps <= 0:
    return EarningsMultipleResult(eps=eps,
                                  forward_eps=forward_eps,
                                  historical_pe_low=pe_low,
                                  historical_pe_high=pe_high,
                                  historical_pe_median=pe_median,
                                  selected_pe=0.0,
                                  fair_value=0.0,
                                  current_price=current_price,
                                  upside=0.0)

  selected_pe = select_conservative_pe(pe_low, pe_high, pe_median,
                                       growth_rate, config)
  eps_to_use = forward_eps if forward_eps > 0 else eps
  fair_value = eps_to_use * selected_pe
  upside = ((fair_value - current_price) /
            current_price if current_price > 0 else 0.0)

  return EarningsMultipleResult(eps=eps,
                                forward_eps=forward_eps,
                                historical_pe_low=pe_low,
                                historical_pe_high=pe_high,
                                historical_pe_median=pe_median,
                                selected_pe=selected_pe,
                                fair_value=fair_value,
                                current_price=current_price,
                                upside=upside)


def analyze_historical_pe(
    price_history: Sequence[float],
    eps_history: Sequence[float],
) -> HistoricalPE:
  """
  Historical P/E statistics with the top and bottom 10% trimmed.

  P/E is computed pairwise for periods with positive EPS.

  Returns:
    HistoricalPE; all zeros when no P/E can be computed
  """
  pe_ratios = sorted(
      price / eps for price, eps in zip(price_history, eps_history) if eps > 0)
  n = len(pe_ratios)
  trimmed = pe_ratios[math.floor(n * 0.1):math.ceil(n * 0.9)]
  if not trimmed:
    return HistoricalPE(0.0, 0.0, 0.0, 0.0)

  return HistoricalPE(low=trimmed[0],
                      high=trimmed[-1],
                      median=trimmed[len(trimmed) // 2],
                      average=mean(trimmed))


def calculate_lynch_fair_value(
    eps: float,
    growth_rate: float,
    config: Optional[ValuationConfig] = None,
) -> float:
  """EPS x min(growth x 100, cap); 0 for non-positive EPS or growth."""
  config = config or ValuationConfig.default()
  if eps <= 0 or growth_rate <= 0:
    return 0.0
  return eps * min(growth_rate * 100, config.lynch_pe_cap)


def calculate_graham_number(
    eps: float,
    book_value_per_share: float,
    current_price: float,
    config: Optional[ValuationConfig] = None,
) -> GrahamNumberResult:
  """
  Benjamin Graham's value ceiling sqrt(22.5 x EPS x BVPS).

  22.5 is Graham's maximum P/E of 15 times P/B of 1.5. Only defined for
  positive EPS and book value; otherwise the number is 0.
  """
  config = config or ValuationConfig.default()
  if eps <= 0 or book_value_per_share <= 0:
    return GrahamNumberResult(eps=eps,
                              book_value_per_share=book_value_per_share,
                              graham_number=0.0,
                              current_price=current_price,
                              upside=0.0,
                              is_below_graham=False)

  graham_number = math.sqrt(config.graham_multiplier * eps *
                            book_value_per_share)
  upside = ((graham_number - current_price) /
            current_price if current_price > 0 else 0.0)
  return GrahamNumberResult(eps=eps,
                            book_value_per_share=book_value_per_share,
                            graham_number=graham_number,
                            current_price=current_price,
                            upside=upside,
                            is_below_graham=current_price < graham_number)
