"""
Technical indicators and the weighted technical score.

Every function takes a price series ordered most recent first. Indicators
that need more history than is available return a neutral sentinel (0 for
averages and levels, 50 for RSI) instead of raising.
"""

from collections.abc import Sequence
from typing import Optional

import pandas as pd

from stock_valuation.config import ValuationConfig
from stock_valuation.domain.types import MACD
from stock_valuation.domain.types import Signal
from stock_valuation.domain.types import TechnicalIndicators
from stock_valuation.domain.types import TechnicalScore
from stock_valuation.domain.types import TechnicalSignal
from stock_valuation.engine.numeric import ladder_score
from stock_valuation.engine.numeric import mean
from stock_valuation.engine.numeric import weighted_score


def calculate_sma(prices: Sequence[float], period: int) -> float:
  """Mean of the `period` most recent prices, 0 with fewer points."""
  if period <= 0 or len(prices) < period:
    return 0.0
  return float(pd.Series(prices[:period], dtype=float).mean())


def _oldest_first(prices: Sequence[float]) -> pd.Series:
  return pd.Series(list(prices)[::-1], dtype=float)


def calculate_ema(prices: Sequence[float], period: int) -> float:
  """
  Exponential moving average with smoothing 2 / (period + 1).

  Uses the most recent 2 x period prices: seeded from the oldest of them and
  walked forward to the newest.

  Returns:
    EMA value, 0 with fewer than `period` points
  """
  if period <= 0 or len(prices) < period:
    return 0.0

  window = _oldest_first(prices[:period * 2])
  return float(window.ewm(span=period, adjust=False).mean().iloc[-1])


def calculate_rsi(prices: Sequence[float], period: int = 14) -> float:
  """
  Relative Strength Index over the `period` most recent changes.

  RSI = 100 - 100 / (1 + avg_gain / avg_loss).

  Returns:
    RSI in [0, 100]; 50 with fewer than period + 1 points or a flat window,
    100 when there are gains and no losses
  """
  if len(prices) < period + 1:
    return 50.0

  changes = _oldest_first(prices[:period + 1]).diff().dropna()
  avg_gain = float(changes.clip(lower=0).mean())
  avg_loss = float(-changes.clip(upper=0).mean())

  if avg_loss == 0:
    return 100.0 if avg_gain > 0 else 50.0

  rs = avg_gain / avg_loss
  return 100.0 - 100.0 / (1.0 + rs)


def calculate_macd(
    prices: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MACD:
  """
  MACD line, signal and histogram.

  The signal line is the mean of the MACD line recomputed at the current
  bar and up to signal_period - 1 bars back, as far as history allows.

  Returns:
    MACD; all zeros with fewer than slow_period points
  """
  if len(prices) < slow_period:
    return MACD()

  def line(offset: int) -> float:
    window = prices[offset:]
    return (calculate_ema(window, fast_period) -
            calculate_ema(window, slow_period))

  macd = line(0)
  offsets = range(min(len(prices) - slow_period + 1, signal_period))
  signal = mean([line(i) for i in offsets])
  return MACD(macd=macd, signal=signal, histogram=macd - signal)


def find_support_resistance(
    prices: Sequence[float],
    lookback: int = 50,
) -> tuple[float, float]:
  """
  Support and resistance from local extrema.

  A local minimum (maximum) is a price strictly below (above) its two
  neighbours on each side within the lookback window.

  Returns:
    (support, resistance): means of the local minima and maxima, falling
    back to the window min/max when none are found; (0, 0) with fewer than
    5 points
  """
  if len(prices) < 5:
    return 0.0, 0.0

  window = prices[:lookback]
  local_mins = []
  local_maxs = []
  for i in range(2, len(window) - 2):
    price = window[i]
    neighbours = (window[i - 2], window[i - 1], window[i + 1], window[i + 2])
    if all(price < n for n in neighbours):
      local_mins.append(price)
    if all(price > n for n in neighbours):
      local_maxs.append(price)

  support = mean(local_mins) if local_mins else min(window)
  resistance = mean(local_maxs) if local_maxs else max(window)
  return support, resistance


def determine_trend(current_price: float, sma50: float,
                    sma200: float) -> Signal:
  above_long = sma50 > sma200
  above_sma50 = current_price > sma50
  above_sma200 = current_price > sma200

  if above_long and above_sma50 and above_sma200:
    return Signal.BULLISH
  if not (above_long or above_sma50 or above_sma200):
    return Signal.BEARISH
  return Signal.NEUTRAL


def _relative_to(price: float, average: float) -> float:
  if average <= 0:
    return 0.0
  return (price - average) / average


def calculate_technical_indicators(
    prices: Sequence[float],
    current_price: float,
    config: Optional[ValuationConfig] = None,
) -> TechnicalIndicators:
  """
  Compute every indicator from a most-recent-first price series.

  Args:
    prices: Closing prices, newest first
    current_price: Latest market price
    config: Valuation config (default: ValuationConfig.default())
  """
  config = config or ValuationConfig.default()
  sma50 = calculate_sma(prices, config.sma_short_period)
  sma200 = calculate_sma(prices, config.sma_long_period)
  support, resistance = find_support_resistance(prices,
                                                config.support_lookback)

  return TechnicalIndicators(
      sma50=sma50,
      sma200=sma200,
      rsi=calculate_rsi(prices, config.rsi_period),
      macd=calculate_macd(prices, config.macd_fast_period,
                          config.macd_slow_period, config.macd_signal_period),
      support_level=support,
      resistance_level=resistance,
      trend_direction=determine_trend(current_price, sma50, sma200),
      price_vs_sma50=_relative_to(current_price, sma50),
      price_vs_sma200=_relative_to(current_price, sma200),
  )


def _score_rsi(rsi: float, config: ValuationConfig) -> tuple:
  if rsi <= config.rsi_oversold:
    return config.rsi_scores['oversold']
  if rsi >= config.rsi_overbought:
    return config.rsi_scores['overbought']
  return config.rsi_scores['neutral']


def _score_macd(macd: MACD, config: ValuationConfig) -> tuple:
  if macd.histogram > 0:
    return config.macd_scores['positive']
  if macd.histogram < 0:
    return config.macd_scores['negative']
  return config.macd_scores['flat']


def calculate_technical_score(
    indicators: TechnicalIndicators,
    config: Optional[ValuationConfig] = None,
) -> TechnicalScore:
  """
  Weighted 0-100 technical score.

  Each of trend, RSI, MACD histogram and price vs SMA50/SMA200 maps through
  a fixed table to a (score, signal) pair; the final score is their weighted
  average rounded half up.
  """
  config = config or ValuationConfig.default()
  weights = config.technical_weights
  trend = Signal(indicators.trend_direction)

  readings = [
      ('Trend Direction', 'trend', trend.value,
       config.trend_scores[trend.value]),
      ('RSI', 'rsi', f'{indicators.rsi:.1f}',
       _score_rsi(indicators.rsi, config)),
      ('MACD', 'macd', f'{indicators.macd.histogram:.2f}',
       _score_macd(indicators.macd, config)),
      ('Price vs SMA50', 'sma50', f'{indicators.price_vs_sma50 * 100:.1f}%',
       ladder_score(indicators.price_vs_sma50, config.price_vs_sma_ladder,
                    config.price_vs_sma_fallback, mode='above')),
      ('Price vs SMA200', 'sma200', f'{indicators.price_vs_sma200 * 100:.1f}%',
       ladder_score(indicators.price_vs_sma200, config.price_vs_sma_ladder,
                    config.price_vs_sma_fallback, mode='above')),
  ]

  signals = tuple(
      TechnicalSignal(name=name,
                      value=value,
                      signal=Signal(label),
                      score=score,
                      weight=weights[key])
      for name, key, value, (score, label) in readings)

  score = weighted_score((s.score, s.weight) for s in signals)
  return TechnicalScore(score=score, signals=signals)
