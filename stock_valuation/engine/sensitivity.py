"""
Intrinsic price sensitivity to the DCF discount rate and initial growth.

Generates 2D tables showing how intrinsic price per share varies across
discount rates and phase 1 growth rates, holding every other DCF input
fixed.
"""

import logging
from collections.abc import Sequence
from math import nan
from typing import Optional

import pandas as pd

from stock_valuation.config import ValuationConfig
from stock_valuation.domain.types import DCFInputs
from stock_valuation.engine.dcf import calculate_wacc
from stock_valuation.engine.dcf import compute_enterprise_value
from stock_valuation.errors import DomainError
from stock_valuation.policies.fade import ThreePhaseFade

logger = logging.getLogger(__name__)

WACC_DELTAS = (-0.02, -0.01, 0.0, 0.01, 0.02)
GROWTH_DELTAS = (-0.05, -0.025, 0.0, 0.025, 0.05)


class SensitivityTableBuilder:
  """
  Build 2D sensitivity tables for intrinsic price.

  Varies discount rate and initial growth rate while keeping FCF, shares,
  debt, cash and terminal growth fixed at the DCF inputs.
  """

  def __init__(
      self,
      inputs: DCFInputs,
      config: Optional[ValuationConfig] = None,
  ):
    """
    Args:
        inputs: Base DCF inputs
        config: Valuation config providing the phase schedule
    """
    if inputs.shares_outstanding <= 0:
      raise DomainError(
          f'shares outstanding must be positive: {inputs.shares_outstanding}')
    self.inputs = inputs
    self.config = config or ValuationConfig.default()
    self.fade = ThreePhaseFade.from_config(self.config)
    self.base_wacc = calculate_wacc(inputs.beta, inputs.risk_free_rate,
                                    inputs.market_return, self.config)

  def intrinsic_price(self, discount_rate: float, g0: float) -> float:
    """Intrinsic price at one (discount rate, growth) point."""
    growth_path = self.fade.compute(g0=g0,
                                    g_terminal=self.inputs.terminal_growth_rate,
                                    n_years=self.inputs.projection_years).value
    ev = compute_enterprise_value(self.inputs.starting_fcf, growth_path,
                                  self.inputs.terminal_growth_rate,
                                  discount_rate)[4]
    equity = ev - self.inputs.total_debt + self.inputs.cash
    return equity / self.inputs.shares_outstanding

  def build(
      self,
      discount_rates: Sequence[float],
      initial_growth_rates: Sequence[float],
  ) -> pd.DataFrame:
    """
    Build 2D sensitivity table.

    Cells whose discount rate does not exceed terminal growth hold NaN.

    Args:
        discount_rates: Discount rates (e.g., [0.08, 0.10, 0.12])
        initial_growth_rates: Phase 1 growth rates (e.g., [0.06, 0.08])

    Returns:
        DataFrame with discount rates as index, growth rates as columns,
        and intrinsic prices per share as cell values
    """
    if not discount_rates:
      raise ValueError('discount_rates cannot be empty')
    if not initial_growth_rates:
      raise ValueError('initial_growth_rates cannot be empty')

    logger.debug('Building sensitivity table: %d x %d', len(discount_rates),
                 len(initial_growth_rates))

    data_rows = []
    for r in discount_rates:
      row_data = []
      for g0 in initial_growth_rates:
        try:
          row_data.append(self.intrinsic_price(r, g0))
        except DomainError as e:
          logger.warning('Sensitivity cell r=%.4f g0=%.4f skipped: %s', r, g0,
                         e)
          row_data.append(nan)
      data_rows.append(row_data)

    r_labels = [f'{r:.1%}' for r in discount_rates]
    g_labels = [f'{g:.1%}' for g in initial_growth_rates]

    df = pd.DataFrame(data_rows, index=r_labels, columns=g_labels)
    df.index.name = 'Discount Rate'
    df.columns.name = 'Initial Growth'
    return df


def build_sensitivity_table(
    inputs: DCFInputs,
    wacc_deltas: Sequence[float] = WACC_DELTAS,
    growth_deltas: Sequence[float] = GROWTH_DELTAS,
    config: Optional[ValuationConfig] = None,
) -> pd.DataFrame:
  """
  Sensitivity table centred on the base WACC and analyst growth rate.

  Args:
    inputs: Base DCF inputs
    wacc_deltas: Offsets added to the CAPM discount rate (rows)
    growth_deltas: Offsets added to the analyst growth rate (columns)
    config: Valuation config (default: ValuationConfig.default())

  Returns:
    DataFrame of intrinsic prices, see SensitivityTableBuilder.build
  """
  builder = SensitivityTableBuilder(inputs, config)
  discount_rates = [round(builder.base_wacc + d, 12) for d in wacc_deltas]
  growth_rates = [
      round(inputs.analyst_growth_rate + d, 12) for d in growth_deltas
  ]
  return builder.build(discount_rates, growth_rates)
