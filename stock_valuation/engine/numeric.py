"""
Numeric primitives shared by every engine.

Pure functions, no pandas, no I/O. Undefined inputs map to documented
sentinels (usually 0) rather than raising, so that partial data still
produces an analysis.
"""

from collections.abc import Iterable, Sequence
import math


def cagr(start_value: float, end_value: float, years: float) -> float:
  """
  Compound annual growth rate.

  Returns:
    (end/start)^(1/years) - 1, or 0 when start <= 0, end <= 0 or years <= 0
  """
  if start_value <= 0 or end_value <= 0 or years <= 0:
    return 0.0
  return (end_value / start_value)**(1.0 / years) - 1.0


def mean(values: Sequence[float]) -> float:
  """Arithmetic mean, 0 for an empty sequence."""
  if not values:
    return 0.0
  return sum(values) / len(values)


def std_dev(values: Sequence[float]) -> float:
  """Population standard deviation, 0 for fewer than two values."""
  if len(values) < 2:
    return 0.0
  avg = mean(values)
  return math.sqrt(sum((v - avg)**2 for v in values) / len(values))


def yoy_growth_rates(values: Sequence[float]) -> list[float]:
  """
  Year-over-year growth rates of an oldest-first series.

  Periods whose predecessor is not positive are skipped.
  """
  rates = []
  for prev, curr in zip(values, values[1:]):
    if prev > 0:
      rates.append((curr - prev) / prev)
  return rates


def growth_consistency(values: Sequence[float]) -> float:
  """
  Consistency score of growth in an oldest-first series.

  Score = max(0, 100 - 100 * |stdev / mean|) of the YoY growth rates, so a
  lower coefficient of variation scores higher.

  Returns:
    Score in [0, 100]; 0 with fewer than 3 values, no computable growth
    rates, or a zero mean growth rate
  """
  if len(values) < 3:
    return 0.0

  rates = yoy_growth_rates(values)
  if not rates:
    return 0.0

  avg = mean(rates)
  if avg == 0:
    return 0.0

  cv = abs(std_dev(rates) / avg)
  return max(0.0, 100.0 - cv * 100.0)


def discount_factor(year: float, discount_rate: float) -> float:
  """1 / (1 + r)^t."""
  return 1.0 / ((1.0 + discount_rate)**year)


def present_value(future_value: float, year: float,
                  discount_rate: float) -> float:
  """Future value discounted back t years at rate r."""
  return future_value * discount_factor(year, discount_rate)


def clamp(value: float, low: float, high: float) -> float:
  return max(low, min(value, high))


def round_half_up(value: float) -> int:
  """Round .5 away from zero for positive scores (0.5 -> 1, 2.5 -> 3)."""
  return int(math.floor(value + 0.5))


def weighted_score(pairs: Iterable[tuple[float, float]]) -> int:
  """
  Weighted average of (score, weight) pairs, rounded half up.

  Returns:
    Integer score, or 0 when the total weight is not positive
  """
  pairs = list(pairs)
  total_weight = sum(w for _, w in pairs)
  if total_weight <= 0:
    return 0
  return round_half_up(sum(s * w for s, w in pairs) / total_weight)


def ladder_score(
    value: float,
    ladder: Sequence[tuple],
    fallback: tuple,
    mode: str = 'at_least',
) -> tuple:
  """
  Walk a threshold ladder and return the first matching (score, label).

  Args:
    value: Metric to classify
    ladder: Rows of (threshold, score, label) in evaluation order
    fallback: (score, label) used when no row matches
    mode: Comparison of value against each threshold: 'at_least' (>=),
      'above' (>), 'at_most' (<=) or 'below' (<)

  Returns:
    (score, label) tuple
  """
  compare = {
      'at_least': lambda v, t: v >= t,
      'above': lambda v, t: v > t,
      'at_most': lambda v, t: v <= t,
      'below': lambda v, t: v < t,
  }[mode]

  for threshold, score, label in ladder:
    if compare(value, threshold):
      return score, label
  return tuple(fallback)
