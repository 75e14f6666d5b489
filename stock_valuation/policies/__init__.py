"""
Valuation policies for estimating DCF inputs.

Each policy estimates one component of the DCF model (discount rate, growth
fade schedule) and returns both a value and diagnostic information.

To add a new policy:
1. Create a new class inheriting from the appropriate base (e.g., FadePolicy)
2. Implement the compute() method returning PolicyOutput

Example:
  class FlatFade(FadePolicy):
    def compute(self, g0, g_terminal, n_years) -> PolicyOutput[list[float]]:
      return PolicyOutput(value=[g0] * n_years, diag={'fade_method': 'flat'})
"""

from stock_valuation.policies.discount import CapmRate
from stock_valuation.policies.discount import DiscountPolicy
from stock_valuation.policies.fade import FadePolicy
from stock_valuation.policies.fade import ThreePhaseFade

__all__ = [
  'DiscountPolicy', 'CapmRate',
  'FadePolicy', 'ThreePhaseFade',
]
