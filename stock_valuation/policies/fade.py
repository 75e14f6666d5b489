'''
Growth schedules for the explicit DCF horizon.

A fade policy maps the analyst estimate (g0) and the terminal rate to one
growth rate per projection year, [g1, g2, ..., gN].
'''

from abc import ABC, abstractmethod
from typing import List

from stock_valuation.config import ValuationConfig
from stock_valuation.domain.types import PolicyOutput
from stock_valuation.errors import DomainError


class FadePolicy(ABC):
  '''
  Base class for growth fade policies.

  Subclasses implement compute() to return the full sequence of growth rates
  for the explicit forecast period.
  '''

  @abstractmethod
  def compute(
      self,
      g0: float,
      g_terminal: float,
      n_years: int,
  ) -> PolicyOutput[List[float]]:
    '''
    Compute growth rate sequence for explicit forecast period.

    Args:
      g0: Initial (analyst) growth rate
      g_terminal: Terminal (perpetual) growth rate
      n_years: Number of explicit forecast years

    Returns:
      PolicyOutput with list of growth rates [g_year1, g_year2, ..., g_yearN]
    '''


class ThreePhaseFade(FadePolicy):
  '''
  High growth, linear decay, then terminal growth.

  Phase 1 keeps g0 flat, phase 2 decays linearly toward g_terminal (never
  below it), phase 3 holds g_terminal. With the default 5/10/5 split:
  years 1-5 grow at g0, years 6-15 decay, years 16-20 grow at g_terminal.
  '''

  def __init__(
      self,
      phase1_years: int = 5,
      phase2_years: int = 10,
      phase3_years: int = 5,
  ):
    '''
    Initialize three-phase fade policy.

    Args:
      phase1_years: Years at the analyst growth rate (default: 5)
      phase2_years: Years of linear decay (default: 10)
      phase3_years: Years at the terminal rate (default: 5)
    '''
    self.phase1_years = phase1_years
    self.phase2_years = phase2_years
    self.phase3_years = phase3_years

  @classmethod
  def from_config(cls, config: ValuationConfig) -> 'ThreePhaseFade':
    return cls(
        phase1_years=config.phase1_years,
        phase2_years=config.phase2_years,
        phase3_years=config.phase3_years,
    )

  @property
  def n_years(self) -> int:
    return self.phase1_years + self.phase2_years + self.phase3_years

  def growth_rate(self, year: int, g0: float, g_terminal: float) -> float:
    '''Growth rate applied in projection year `year` (1-based).'''
    if year <= self.phase1_years:
      return g0

    if year > self.phase1_years + self.phase2_years:
      return g_terminal

    progress = (year - self.phase1_years) / self.phase2_years
    decayed = g0 - (g0 - g_terminal) * progress
    return max(decayed, g_terminal)

  def compute(
      self,
      g0: float,
      g_terminal: float,
      n_years: int,
  ) -> PolicyOutput[List[float]]:
    '''
    Compute three-phase growth rates.

    Raises:
      DomainError: If n_years does not equal the sum of the phases
    '''
    if n_years != self.n_years:
      raise DomainError(
          f'projection years {n_years} must equal phase sum {self.n_years} '
          f'({self.phase1_years}+{self.phase2_years}+{self.phase3_years})')

    growth_rates = [
        self.growth_rate(year, g0, g_terminal)
        for year in range(1, n_years + 1)
    ]

    return PolicyOutput(value=growth_rates,
                        diag={
                            'fade_method': 'three_phase',
                            'phase1_years': self.phase1_years,
                            'phase2_years': self.phase2_years,
                            'phase3_years': self.phase3_years,
                            'g0': g0,
                            'g_terminal': g_terminal,
                        })
