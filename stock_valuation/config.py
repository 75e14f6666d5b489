"""
Valuation configuration.

All rates, weights and thresholds the engine reads live here. The module
level constants are the documented defaults; ValuationConfig bundles them
into one serializable (JSON-friendly) object so that a caller or a test can
override any value without touching engine code.

Ladders are tuples of (threshold, score, label) rows evaluated top to bottom;
the first row whose threshold is met wins, otherwise the paired fallback
(score, label) applies.
"""

from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
from dataclasses import fields
import json
from typing import Any

# Market assumptions
MARKET_RETURN = 0.10
DEFAULT_RISK_FREE_RATE = 0.045
TERMINAL_GROWTH_RATE = 0.025

# DCF model
DCF_PHASE1_YEARS = 5
DCF_PHASE2_YEARS = 10
DCF_PHASE3_YEARS = 5
DCF_PROJECTION_YEARS = DCF_PHASE1_YEARS + DCF_PHASE2_YEARS + DCF_PHASE3_YEARS
BETA_BOUNDS = (0.5, 3.0)
WACC_BOUNDS = (0.05, 0.20)

# Reverse DCF
REVERSE_DCF_GROWTH_BOUNDS = (-0.20, 0.50)
REVERSE_DCF_MAX_ITERATIONS = 50
REVERSE_DCF_TOLERANCE = 1e-4
# (growth strictly above, tier, is_reasonable); pessimistic otherwise
REVERSE_DCF_TIERS = (
    (0.30, 'extremely aggressive', False),
    (0.20, 'very optimistic', False),
    (0.10, 'reasonably optimistic', True),
    (0.0, 'conservative', True),
)
REVERSE_DCF_FALLBACK_TIER = ('pessimistic', True)
SUSTAINABLE_YEARS = 10

# Growth estimate used when seeding the DCF from financial statements
DEFAULT_ANALYST_GROWTH = 0.08
ANALYST_GROWTH_BOUNDS = (-0.10, 0.30)
FCF_FROM_EARNINGS_RATIO = 0.8

# Earnings multiple
PE_BOUNDS = (5.0, 40.0)
CONSERVATIVE_PEG = 1.0
DEFAULT_PE_RANGE = (10.0, 25.0, 15.0)  # low, high, median
LYNCH_PE_CAP = 50.0
GRAHAM_MULTIPLIER = 22.5

# Margin of safety
MARGIN_OF_SAFETY_BUY = 0.25
MARGIN_OF_SAFETY_STRONG_BUY = 0.35
STRONG_BUY_BAND = 0.10
PREMIUM_THRESHOLD_AVOID = 0.20

# Scoring weights
FUNDAMENTAL_WEIGHTS = {
    'roic': 0.20,
    'revenue_growth': 0.15,
    'revenue_stability': 0.10,
    'fcf_growth': 0.15,
    'fcf_consistency': 0.10,
    'debt_management': 0.10,
    'operating_leverage': 0.05,
    'margins': 0.10,
    'dilution': 0.05,
}

TECHNICAL_WEIGHTS = {
    'trend': 0.25,
    'rsi': 0.20,
    'macd': 0.20,
    'sma50': 0.15,
    'sma200': 0.20,
}

CONFIDENCE_WEIGHTS = {
    'data_completeness': 0.25,
    'volatility': 0.15,
    'margin_of_safety': 0.20,
    'earnings_stability': 0.20,
    'model_convergence': 0.20,
}

MODEL_WEIGHTS = {
    'dcf': 0.6,
    'earnings': 0.4,
}

# Technical ladders
RSI_OVERSOLD = 30.0
RSI_OVERBOUGHT = 70.0
RSI_SCORES = {
    'oversold': (85, 'bullish'),
    'overbought': (25, 'bearish'),
    'neutral': (50, 'neutral'),
}
MACD_SCORES = {
    'positive': (75, 'bullish'),
    'negative': (25, 'bearish'),
    'flat': (50, 'neutral'),
}
TREND_SCORES = {
    'bullish': (80, 'bullish'),
    'bearish': (20, 'bearish'),
    'neutral': (50, 'neutral'),
}
# price vs SMA strictly above threshold
PRICE_VS_SMA_LADDER = (
    (0.10, 70, 'bullish'),
    (0.0, 60, 'bullish'),
    (-0.05, 45, 'neutral'),
    (-0.10, 35, 'bearish'),
)
PRICE_VS_SMA_FALLBACK = (20, 'bearish')

# Fundamental ladders (value >= threshold)
ROIC_LADDER = (
    (0.25, 100, 'Exceptional ROIC'),
    (0.20, 85, 'Excellent ROIC'),
    (0.15, 70, 'Good ROIC'),
    (0.10, 50, 'Fair ROIC'),
    (0.05, 30, 'Below average ROIC'),
)
ROIC_FALLBACK = (10, 'Poor ROIC')

GROWTH_LADDER = (
    (0.25, 100, 'Exceptional growth'),
    (0.15, 85, 'Strong growth'),
    (0.10, 70, 'Good growth'),
    (0.05, 50, 'Moderate growth'),
    (0.0, 30, 'Slow growth'),
)
GROWTH_FALLBACK = (10, 'Declining revenue')

# Fundamental ladders (value <= threshold)
DEBT_TO_FCF_LADDER = (
    (1.0, 100, 'Minimal debt'),
    (2.0, 85, 'Low debt'),
    (4.0, 65, 'Moderate debt'),
    (6.0, 40, 'High debt'),
)
DEBT_TO_FCF_FALLBACK = (15, 'Very high debt')

DILUTION_LADDER = (
    (-0.05, 100, 'Significant buybacks'),
    (0.0, 80, 'Share buybacks'),
    (0.02, 60, 'Minimal dilution'),
    (0.05, 40, 'Moderate dilution'),
)
DILUTION_FALLBACK = (20, 'High dilution')

TAX_RATE = 0.25
DEBT_TO_FCF_SENTINEL = 99.0
MARGIN_SCORE_MULTIPLIER = 500.0

# Confidence ladders
EARNINGS_STABILITY_LADDER = ((60, 80, 'Stable earnings history'),
                             (40, 50, 'Variable earnings'))
EARNINGS_STABILITY_FALLBACK = (20, 'Variable earnings')
# relative model difference strictly below threshold
CONVERGENCE_LADDER = (
    (0.15, 90, 'Valuation models agree'),
    (0.30, 70, 'Valuation models agree'),
    (0.50, 40, 'Valuation models diverge'),
)
CONVERGENCE_FALLBACK = (20, 'Valuation models diverge')
CONVERGENCE_UNAVAILABLE = (50, 'Valuation models diverge')
MARGIN_OF_SAFETY_LADDER = ((0.25, 90, ''), (0.10, 70, ''), (0.0, 50, ''))
MARGIN_OF_SAFETY_FALLBACK = (30, '')
VOLATILITY_SCORE = 60
COMPLETENESS_POINTS_PER_YEAR = 10

# Risk rules
DEBT_TO_EQUITY_HIGH = 2.0
DEBT_TO_EQUITY_ELEVATED = 1.0
WEAK_FUNDAMENTAL_SCORE = 40


def _as_tuples(value: Any) -> Any:
  '''Recursively turn JSON lists back into tuples.'''
  if isinstance(value, list):
    return tuple(_as_tuples(v) for v in value)
  return value


@dataclass
class ValuationConfig:
  """
  Every tunable of the valuation engine.

  Defaults reproduce the module constants above. Override individual fields
  with dataclasses.replace() or build from a dict/JSON payload.
  """
  risk_free_rate: float = DEFAULT_RISK_FREE_RATE
  market_return: float = MARKET_RETURN
  terminal_growth_rate: float = TERMINAL_GROWTH_RATE
  phase1_years: int = DCF_PHASE1_YEARS
  phase2_years: int = DCF_PHASE2_YEARS
  phase3_years: int = DCF_PHASE3_YEARS
  beta_bounds: tuple = BETA_BOUNDS
  wacc_bounds: tuple = WACC_BOUNDS

  reverse_growth_bounds: tuple = REVERSE_DCF_GROWTH_BOUNDS
  reverse_max_iterations: int = REVERSE_DCF_MAX_ITERATIONS
  reverse_tolerance: float = REVERSE_DCF_TOLERANCE
  reverse_tiers: tuple = REVERSE_DCF_TIERS
  reverse_fallback_tier: tuple = REVERSE_DCF_FALLBACK_TIER
  sustainable_years: int = SUSTAINABLE_YEARS

  default_analyst_growth: float = DEFAULT_ANALYST_GROWTH
  analyst_growth_bounds: tuple = ANALYST_GROWTH_BOUNDS
  fcf_from_earnings_ratio: float = FCF_FROM_EARNINGS_RATIO

  pe_bounds: tuple = PE_BOUNDS
  conservative_peg: float = CONSERVATIVE_PEG
  default_pe_range: tuple = DEFAULT_PE_RANGE
  lynch_pe_cap: float = LYNCH_PE_CAP
  graham_multiplier: float = GRAHAM_MULTIPLIER

  margin_of_safety_buy: float = MARGIN_OF_SAFETY_BUY
  margin_of_safety_strong_buy: float = MARGIN_OF_SAFETY_STRONG_BUY
  strong_buy_band: float = STRONG_BUY_BAND
  premium_threshold_avoid: float = PREMIUM_THRESHOLD_AVOID
  strong_buy_fundamental: int = 60
  buy_fundamental: int = 50
  strong_avoid_fundamental: int = 40

  fundamental_weights: dict[str, float] = field(
      default_factory=lambda: dict(FUNDAMENTAL_WEIGHTS))
  technical_weights: dict[str, float] = field(
      default_factory=lambda: dict(TECHNICAL_WEIGHTS))
  confidence_weights: dict[str, float] = field(
      default_factory=lambda: dict(CONFIDENCE_WEIGHTS))
  model_weights: dict[str, float] = field(
      default_factory=lambda: dict(MODEL_WEIGHTS))

  sma_short_period: int = 50
  sma_long_period: int = 200
  rsi_period: int = 14
  rsi_oversold: float = RSI_OVERSOLD
  rsi_overbought: float = RSI_OVERBOUGHT
  macd_fast_period: int = 12
  macd_slow_period: int = 26
  macd_signal_period: int = 9
  support_lookback: int = 50
  rsi_scores: dict[str, tuple] = field(default_factory=lambda: dict(RSI_SCORES))
  macd_scores: dict[str, tuple] = field(
      default_factory=lambda: dict(MACD_SCORES))
  trend_scores: dict[str, tuple] = field(
      default_factory=lambda: dict(TREND_SCORES))
  price_vs_sma_ladder: tuple = PRICE_VS_SMA_LADDER
  price_vs_sma_fallback: tuple = PRICE_VS_SMA_FALLBACK

  tax_rate: float = TAX_RATE
  growth_window_years: int = 5
  debt_to_fcf_sentinel: float = DEBT_TO_FCF_SENTINEL
  margin_score_multiplier: float = MARGIN_SCORE_MULTIPLIER
  consistency_threshold: float = 70.0
  excellent_net_margin: float = 0.15
  roic_ladder: tuple = ROIC_LADDER
  roic_fallback: tuple = ROIC_FALLBACK
  growth_ladder: tuple = GROWTH_LADDER
  growth_fallback: tuple = GROWTH_FALLBACK
  debt_to_fcf_ladder: tuple = DEBT_TO_FCF_LADDER
  debt_to_fcf_fallback: tuple = DEBT_TO_FCF_FALLBACK
  dilution_ladder: tuple = DILUTION_LADDER
  dilution_fallback: tuple = DILUTION_FALLBACK

  earnings_stability_ladder: tuple = EARNINGS_STABILITY_LADDER
  earnings_stability_fallback: tuple = EARNINGS_STABILITY_FALLBACK
  convergence_ladder: tuple = CONVERGENCE_LADDER
  convergence_fallback: tuple = CONVERGENCE_FALLBACK
  convergence_unavailable: tuple = CONVERGENCE_UNAVAILABLE
  margin_of_safety_ladder: tuple = MARGIN_OF_SAFETY_LADDER
  margin_of_safety_fallback: tuple = MARGIN_OF_SAFETY_FALLBACK
  volatility_score: int = VOLATILITY_SCORE
  completeness_points_per_year: int = COMPLETENESS_POINTS_PER_YEAR

  debt_to_equity_high: float = DEBT_TO_EQUITY_HIGH
  debt_to_equity_elevated: float = DEBT_TO_EQUITY_ELEVATED
  weak_fundamental_score: int = WEAK_FUNDAMENTAL_SCORE

  @property
  def projection_years(self) -> int:
    """Total explicit forecast horizon (sum of the three phases)."""
    return self.phase1_years + self.phase2_years + self.phase3_years

  @classmethod
  def default(cls) -> 'ValuationConfig':
    """Configuration built from the module defaults."""
    return cls()

  def to_dict(self) -> dict[str, Any]:
    """Convert to dictionary."""
    return asdict(self)

  def to_json(self) -> str:
    """Serialize to JSON string."""
    return json.dumps(self.to_dict(), indent=2)

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> 'ValuationConfig':
    """
    Create from dictionary.

    Unknown keys raise TypeError. Lists coming from JSON are restored to
    tuples so that a round trip compares equal. A mapping field (weights,
    score tables) is merged key by key onto its default, so a partial
    override keeps the remaining entries.
    """
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
      raise TypeError(f'Unknown config fields: {unknown}')

    defaults = cls()
    restored: dict[str, Any] = {}
    for key, value in data.items():
      if isinstance(value, dict):
        base = getattr(defaults, key)
        unknown_entries = sorted(set(value) - set(base))
        if unknown_entries:
          raise TypeError(f'Unknown {key} entries: {unknown_entries}')
        restored[key] = {
            **base,
            **{k: _as_tuples(v) for k, v in value.items()}
        }
      else:
        restored[key] = _as_tuples(value)
    return cls(**restored)

  @classmethod
  def from_json(cls, json_str: str) -> 'ValuationConfig':
    """Create from JSON string."""
    return cls.from_dict(json.loads(json_str))
