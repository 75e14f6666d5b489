'''
Domain types for the valuation engine.

These dataclasses provide typed interfaces between components so that the
engines never touch raw provider payloads. Statement and result types are
frozen: they are produced once per analysis and consumed read-only.
'''

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

import pandas as pd

from stock_valuation.config import DCF_PROJECTION_YEARS
from stock_valuation.config import DEFAULT_RISK_FREE_RATE
from stock_valuation.config import MARKET_RETURN
from stock_valuation.config import SUSTAINABLE_YEARS
from stock_valuation.config import TERMINAL_GROWTH_RATE

T = TypeVar('T')


@dataclass
class PolicyOutput(Generic[T]):
  '''
  Standard output from any policy.

  Every policy returns both a computed value and diagnostic information
  explaining how the value was computed.

  Attributes:
    value: The computed value (type depends on policy)
    diag: Dictionary of diagnostic information
  '''
  value: T
  diag: Dict[str, Any] = field(default_factory=dict)


class Recommendation(str, Enum):
  '''Closed set of valuation verdicts.'''
  STRONG_BUY = 'STRONG_BUY'
  BUY = 'BUY'
  HOLD = 'HOLD'
  AVOID = 'AVOID'
  STRONG_AVOID = 'STRONG_AVOID'


class Signal(str, Enum):
  '''Direction of a technical reading or of the overall trend.'''
  BULLISH = 'bullish'
  BEARISH = 'bearish'
  NEUTRAL = 'neutral'


class RiskCategory(str, Enum):
  FINANCIAL = 'financial'
  MARKET = 'market'
  OPERATIONAL = 'operational'
  VALUATION = 'valuation'


class RiskSeverity(str, Enum):
  LOW = 'low'
  MEDIUM = 'medium'
  HIGH = 'high'


# ----------------------------
# Market data
# ----------------------------


@dataclass(frozen=True)
class Quote:
  '''
  Market quote snapshot.

  Attributes:
    symbol: Ticker symbol
    name: Company name
    price: Current market price per share
    beta: Systematic risk relative to the market (1.0 when unknown)
    eps: Trailing twelve month earnings per share
    forward_eps: Next-year EPS estimate (0 when unavailable)
    sma50: Provider 50-day average (0 when unavailable)
    sma200: Provider 200-day average (0 when unavailable)
    shares_outstanding: Shares outstanding
    market_cap: Market capitalization
  '''
  symbol: str
  price: float
  shares_outstanding: float
  name: str = ''
  beta: float = 1.0
  eps: float = 0.0
  forward_eps: float = 0.0
  sma50: float = 0.0
  sma200: float = 0.0
  market_cap: float = 0.0


@dataclass(frozen=True)
class IncomeStatement:
  '''One fiscal year of income statement line items.'''
  date: pd.Timestamp
  revenue: float = 0.0
  gross_profit: float = 0.0
  operating_income: float = 0.0
  net_income: float = 0.0
  eps: float = 0.0
  shares_outstanding: float = 0.0

  @property
  def net_margin(self) -> float:
    '''Net income / revenue, 0 without revenue.'''
    if self.revenue == 0:
      return 0.0
    return self.net_income / self.revenue

  @property
  def gross_margin(self) -> float:
    '''Gross profit / revenue, 0 without revenue.'''
    if self.revenue == 0:
      return 0.0
    return self.gross_profit / self.revenue


@dataclass(frozen=True)
class BalanceSheet:
  '''One fiscal year of balance sheet line items.'''
  date: pd.Timestamp
  cash: float = 0.0
  total_debt: float = 0.0
  total_equity: float = 0.0


@dataclass(frozen=True)
class CashFlowStatement:
  '''
  One fiscal year of cash flow line items.

  capital_expenditures is stored as a positive outflow;
  free_cash_flow = operating_cash_flow - capital_expenditures.
  '''
  date: pd.Timestamp
  operating_cash_flow: float = 0.0
  capital_expenditures: float = 0.0
  free_cash_flow: float = 0.0


@dataclass(frozen=True)
class FinancialStatements:
  '''
  Multi-year statements, most recent period first.

  Construction sorts each statement list by date descending. This is the
  only place ordering is established; every metric relies on index 0 being
  the latest fiscal year.
  '''
  income: Tuple[IncomeStatement, ...] = ()
  balance: Tuple[BalanceSheet, ...] = ()
  cash_flow: Tuple[CashFlowStatement, ...] = ()

  def __post_init__(self):
    for name in ('income', 'balance', 'cash_flow'):
      periods = sorted(getattr(self, name), key=lambda p: p.date, reverse=True)
      object.__setattr__(self, name, tuple(periods))

  @property
  def years_of_data(self) -> int:
    '''Number of fiscal years covered by all three statements.'''
    return min(len(self.income), len(self.balance), len(self.cash_flow))

  @property
  def latest_income(self) -> Optional[IncomeStatement]:
    return self.income[0] if self.income else None

  @property
  def latest_balance(self) -> Optional[BalanceSheet]:
    return self.balance[0] if self.balance else None

  @property
  def latest_cash_flow(self) -> Optional[CashFlowStatement]:
    return self.cash_flow[0] if self.cash_flow else None


# ----------------------------
# DCF
# ----------------------------


@dataclass(frozen=True)
class DCFInputs:
  '''
  Inputs for the multi-phase DCF model.

  Attributes:
    starting_fcf: Most recent annual free cash flow
    shares_outstanding: Current shares outstanding
    total_debt: Total debt
    cash: Cash and equivalents
    beta: Stock beta (clamped inside the discount policy)
    risk_free_rate: Risk-free rate for CAPM
    market_return: Expected market return for CAPM
    analyst_growth_rate: Phase 1 growth rate
    terminal_growth_rate: Perpetual growth rate (Gordon model)
    projection_years: Explicit forecast years; must equal the phase sum
  '''
  starting_fcf: float
  shares_outstanding: float
  total_debt: float
  cash: float
  beta: float
  analyst_growth_rate: float
  risk_free_rate: float = DEFAULT_RISK_FREE_RATE
  market_return: float = MARKET_RETURN
  terminal_growth_rate: float = TERMINAL_GROWTH_RATE
  projection_years: int = DCF_PROJECTION_YEARS


@dataclass(frozen=True)
class DCFProjection:
  '''One explicit forecast year.'''
  year: int
  fcf: float
  growth_rate: float
  discount_factor: float
  present_value: float


@dataclass(frozen=True)
class DCFResult:
  '''
  Complete forward DCF valuation.

  Attributes:
    projections: Explicit forecast rows, year 1..N
    wacc: Discount rate used
    pv_of_cash_flows: Sum of explicit present values
    terminal_value: Undiscounted Gordon terminal value
    terminal_value_pv: Terminal value discounted from year N
    enterprise_value: pv_of_cash_flows + terminal_value_pv
    equity_value: enterprise_value - debt + cash
    intrinsic_price: equity_value / shares
    current_price: Market price compared against
    upside: (intrinsic - price) / price
    margin_of_safety: Same as upside (positive = undervalued)
    diag: Diagnostics merged from the discount and fade policies
  '''
  projections: Tuple[DCFProjection, ...]
  wacc: float
  pv_of_cash_flows: float
  terminal_value: float
  terminal_value_pv: float
  enterprise_value: float
  equity_value: float
  intrinsic_price: float
  current_price: float
  upside: float
  margin_of_safety: float
  diag: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ReverseDCFResult:
  '''
  Growth rate implied by the market price.

  Attributes:
    implied_growth_rate: Phase 1 growth that reproduces market EV
    tier: Classification label (e.g. 'conservative')
    assessment: Human-readable sentence
    is_reasonable: False for optimistic/aggressive tiers
    sustainable_years: Horizon the implied growth must be sustained
    iterations: Bisection iterations performed
    converged: Whether the tolerance was met before the iteration cap
  '''
  implied_growth_rate: float
  tier: str
  assessment: str
  is_reasonable: bool
  sustainable_years: int = SUSTAINABLE_YEARS
  iterations: int = 0
  converged: bool = False


@dataclass(frozen=True)
class EarningsMultipleResult:
  eps: float
  forward_eps: float
  historical_pe_low: float
  historical_pe_high: float
  historical_pe_median: float
  selected_pe: float
  fair_value: float
  current_price: float
  upside: float


@dataclass(frozen=True)
class GrahamNumberResult:
  eps: float
  book_value_per_share: float
  graham_number: float
  current_price: float
  upside: float
  is_below_graham: bool


# ----------------------------
# Technical analysis
# ----------------------------


@dataclass(frozen=True)
class MACD:
  macd: float = 0.0
  signal: float = 0.0
  histogram: float = 0.0


@dataclass(frozen=True)
class TechnicalIndicators:
  '''
  Indicators computed from a most-recent-first price series.

  Zero values are the "unavailable" sentinel for averages and levels.
  '''
  sma50: float
  sma200: float
  rsi: float
  macd: MACD
  support_level: float
  resistance_level: float
  trend_direction: Signal
  price_vs_sma50: float
  price_vs_sma200: float


@dataclass(frozen=True)
class TechnicalSignal:
  name: str
  value: str
  signal: Signal
  score: int
  weight: float


@dataclass(frozen=True)
class TechnicalScore:
  score: int
  signals: Tuple[TechnicalSignal, ...] = ()


# ----------------------------
# Fundamental analysis
# ----------------------------


@dataclass(frozen=True)
class FundamentalMetrics:
  '''
  Quality metrics derived from multi-year statements.

  All fields are 0 when fewer than two years of each statement exist.
  '''
  roic: float = 0.0
  roic_trend: float = 0.0
  revenue_growth_5y: float = 0.0
  revenue_growth_stability: float = 0.0
  fcf_growth_5y: float = 0.0
  fcf_consistency: float = 0.0
  debt_to_fcf: float = 0.0
  operating_leverage: float = 0.0
  net_margin: float = 0.0
  gross_margin: float = 0.0
  share_dilution_5y: float = 0.0


@dataclass(frozen=True)
class FundamentalFactor:
  name: str
  value: float
  score: float
  weight: float
  assessment: str


@dataclass(frozen=True)
class FundamentalScore:
  score: int
  factors: Tuple[FundamentalFactor, ...] = ()


# ----------------------------
# Aggregation
# ----------------------------


@dataclass(frozen=True)
class ConfidenceFactor:
  name: str
  score: int
  weight: float
  reason: str


@dataclass(frozen=True)
class ConfidenceScore:
  score: int
  factors: Tuple[ConfidenceFactor, ...] = ()


@dataclass(frozen=True)
class RiskFactor:
  category: RiskCategory
  severity: RiskSeverity
  description: str


@dataclass(frozen=True)
class BuyZone:
  '''Price band: below low is the strong-buy tier, below high is buy.'''
  low: float
  high: float


def _plain(value: Any) -> Any:
  '''Convert enums and timestamps into JSON-friendly values.'''
  if isinstance(value, Enum):
    return value.value
  if isinstance(value, pd.Timestamp):
    return value.date().isoformat()
  if isinstance(value, dict):
    return {k: _plain(v) for k, v in value.items()}
  if isinstance(value, (list, tuple)):
    return [_plain(v) for v in value]
  return value


@dataclass(frozen=True)
class StockAnalysis:
  '''
  Terminal aggregate of one analysis request.

  Created fresh per call; persistence and caching are the caller's concern.
  '''
  quote: Quote
  financials: FinancialStatements
  dcf: DCFResult
  earnings_multiple: EarningsMultipleResult
  reverse_dcf: ReverseDCFResult
  graham_number: GrahamNumberResult
  technical_indicators: TechnicalIndicators
  technical_score: TechnicalScore
  fundamental_metrics: FundamentalMetrics
  fundamental_score: FundamentalScore
  confidence_score: ConfidenceScore
  fair_value: float
  current_price: float
  upside: float
  margin_of_safety: float
  buy_zone: BuyZone
  risk_factors: Tuple[RiskFactor, ...]
  recommendation: Recommendation
  summary: str

  def to_dict(self) -> Dict[str, Any]:
    '''Convert to plain data (enums as values, dates as ISO strings).'''
    return _plain(asdict(self))
