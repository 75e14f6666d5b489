"""
Discount rate policies.

A discount policy yields the rate applied to projected cash flows and to
the terminal value, together with how it was derived.
"""

from abc import ABC
from abc import abstractmethod

from stock_valuation.config import ValuationConfig
from stock_valuation.domain.types import PolicyOutput


class DiscountPolicy(ABC):
  """
  Base class for discount rate policies.

  Subclasses implement compute() to return a discount rate.
  """

  @abstractmethod
  def compute(self) -> PolicyOutput[float]:
    """
    Compute discount rate.

    Returns:
      PolicyOutput with discount rate and diagnostics
    """


class CapmRate(DiscountPolicy):
  """
  CAPM cost of equity used as WACC.

  wacc = rf + clamp(beta) * (rm - rf), clamped to a plausible macro range.
  Clamping beta keeps negative or extreme inputs from producing nonsensical
  rates.
  """

  def __init__(
      self,
      beta: float,
      risk_free_rate: float = 0.045,
      market_return: float = 0.10,
      beta_bounds: tuple = (0.5, 3.0),
      rate_bounds: tuple = (0.05, 0.20),
  ):
    """
    Initialize CAPM policy.

    Args:
      beta: Stock beta
      risk_free_rate: Risk-free rate (default: 4.5%)
      market_return: Expected market return (default: 10%)
      beta_bounds: (min, max) beta after clamping
      rate_bounds: (min, max) discount rate after clamping
    """
    self.beta = beta
    self.risk_free_rate = risk_free_rate
    self.market_return = market_return
    self.beta_bounds = beta_bounds
    self.rate_bounds = rate_bounds

  @classmethod
  def from_config(
      cls,
      beta: float,
      risk_free_rate: float,
      market_return: float,
      config: ValuationConfig,
  ) -> 'CapmRate':
    return cls(
        beta=beta,
        risk_free_rate=risk_free_rate,
        market_return=market_return,
        beta_bounds=config.beta_bounds,
        rate_bounds=config.wacc_bounds,
    )

  def compute(self) -> PolicyOutput[float]:
    """Return the clamped CAPM rate."""
    beta_min, beta_max = self.beta_bounds
    adjusted_beta = max(beta_min, min(self.beta, beta_max))
    market_risk_premium = self.market_return - self.risk_free_rate
    raw_rate = self.risk_free_rate + adjusted_beta * market_risk_premium
    rate_min, rate_max = self.rate_bounds
    rate = max(rate_min, min(raw_rate, rate_max))

    return PolicyOutput(
      value=rate,
      diag={
        'discount_method': 'capm',
        'beta': self.beta,
        'adjusted_beta': adjusted_beta,
        'market_risk_premium': market_risk_premium,
        'raw_rate': raw_rate,
        'discount_rate': rate,
      }
    )
