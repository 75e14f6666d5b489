"""
Pure DCF math engine.

This module contains pure functions for multi-phase DCF calculations. No
pandas, no I/O, just numeric computations. All inputs must be prepared
before calling these.

Key functions:
  calculate_dcf: Main entry point, forward DCF to intrinsic price per share
  calculate_reverse_dcf: Growth rate implied by the market price
  compute_enterprise_value: PV of explicit cash flows plus terminal value
  calculate_terminal_value: Gordon growth terminal value
"""

import logging
from collections.abc import Sequence
from math import isfinite
from typing import Optional

from stock_valuation.config import ValuationConfig
from stock_valuation.domain.types import DCFInputs
from stock_valuation.domain.types import DCFProjection
from stock_valuation.domain.types import DCFResult
from stock_valuation.domain.types import ReverseDCFResult
from stock_valuation.engine.numeric import discount_factor
from stock_valuation.engine.numeric import ladder_score
from stock_valuation.engine.numeric import present_value
from stock_valuation.errors import DomainError
from stock_valuation.policies.discount import CapmRate
from stock_valuation.policies.fade import ThreePhaseFade

logger = logging.getLogger(__name__)


def calculate_wacc(
    beta: float,
    risk_free_rate: float,
    market_return: float,
    config: Optional[ValuationConfig] = None,
) -> float:
  """
  Discount rate from CAPM with beta and rate clamping.

  Args:
    beta: Stock beta, clamped to config.beta_bounds
    risk_free_rate: Risk-free rate
    market_return: Expected market return
    config: Valuation config (default: ValuationConfig.default())

  Returns:
    Discount rate clamped to config.wacc_bounds
  """
  config = config or ValuationConfig.default()
  policy = CapmRate.from_config(beta, risk_free_rate, market_return, config)
  return policy.compute().value


def calculate_growth_rate(
    year: int,
    analyst_growth_rate: float,
    terminal_growth_rate: float,
    config: Optional[ValuationConfig] = None,
) -> float:
  """Growth rate for projection year `year` under the three-phase schedule."""
  config = config or ValuationConfig.default()
  return ThreePhaseFade.from_config(config).growth_rate(
      year, analyst_growth_rate, terminal_growth_rate)


def project_fcf(
    starting_fcf: float,
    growth_path: Sequence[float],
) -> list[tuple[int, float, float]]:
  """
  Project free cash flow with fcf[t] = fcf[t-1] * (1 + g[t]).

  Args:
    starting_fcf: Most recent annual FCF (seed, year 0)
    growth_path: Yearly growth rates [g1, g2, ..., gN]

  Returns:
    List of (year, fcf, growth_rate) rows for years 1..N
  """
  rows = []
  fcf = starting_fcf
  for year, g in enumerate(growth_path, start=1):
    fcf *= (1.0 + g)
    rows.append((year, fcf, g))
  return rows


def calculate_terminal_value(
    final_fcf: float,
    terminal_growth_rate: float,
    discount_rate: float,
) -> float:
  """
  Undiscounted terminal value using the Gordon Growth Model.

  TV = FCF_N * (1 + g) / (r - g)

  Raises:
    DomainError: If discount_rate <= terminal_growth_rate (model undefined)
  """
  if discount_rate <= terminal_growth_rate:
    raise DomainError('invalid terminal spread')
  return (final_fcf *
          (1.0 + terminal_growth_rate)) / (discount_rate - terminal_growth_rate)


def compute_enterprise_value(
    starting_fcf: float,
    growth_path: Sequence[float],
    terminal_growth_rate: float,
    discount_rate: float,
) -> tuple[tuple[DCFProjection, ...], float, float, float, float]:
  """
  Compute enterprise value from projected FCF and terminal value.

  Args:
    starting_fcf: Most recent annual FCF
    growth_path: Yearly growth rates [g1, g2, ..., gN]
    terminal_growth_rate: Perpetual growth rate
    discount_rate: WACC

  Returns:
    Tuple of (projections, pv_explicit, terminal_value, terminal_value_pv,
    enterprise_value) where enterprise_value = pv_explicit + terminal_value_pv

  Raises:
    DomainError: On an empty growth path, an invalid terminal spread or a
      non-finite result
  """
  if not growth_path:
    raise DomainError('growth path is empty')

  projections = []
  pv_explicit = 0.0
  for year, fcf, g in project_fcf(starting_fcf, growth_path):
    df = discount_factor(year, discount_rate)
    pv = fcf * df
    projections.append(
        DCFProjection(year=year,
                      fcf=fcf,
                      growth_rate=g,
                      discount_factor=df,
                      present_value=pv))
    pv_explicit += pv

  n_years = len(projections)
  terminal_value = calculate_terminal_value(projections[-1].fcf,
                                            terminal_growth_rate,
                                            discount_rate)
  terminal_value_pv = present_value(terminal_value, n_years, discount_rate)
  enterprise_value = pv_explicit + terminal_value_pv

  if not isfinite(enterprise_value):
    raise DomainError('enterprise value is not finite')

  return (tuple(projections), pv_explicit, terminal_value, terminal_value_pv,
          enterprise_value)


def _require_finite(**values: float) -> None:
  for name, value in values.items():
    if not isfinite(value):
      raise DomainError(f'{name} is not finite: {value}')


def calculate_dcf(
    inputs: DCFInputs,
    current_price: float,
    config: Optional[ValuationConfig] = None,
) -> DCFResult:
  """
  Perform a complete multi-phase DCF valuation.

  Steps: CAPM discount rate, three-phase growth path, FCF projection,
  per-year present values, Gordon terminal value, EV -> equity -> price.

  Args:
    inputs: DCF model inputs
    current_price: Market price for upside / margin of safety
    config: Valuation config (default: ValuationConfig.default())

  Returns:
    DCFResult with projections, valuation roll-up and policy diagnostics

  Raises:
    DomainError: On non-positive shares or price, non-finite inputs,
      projection years that do not match the phases, or an invalid
      terminal spread
  """
  config = config or ValuationConfig.default()

  _require_finite(starting_fcf=inputs.starting_fcf,
                  shares_outstanding=inputs.shares_outstanding,
                  total_debt=inputs.total_debt,
                  cash=inputs.cash,
                  beta=inputs.beta,
                  analyst_growth_rate=inputs.analyst_growth_rate,
                  terminal_growth_rate=inputs.terminal_growth_rate,
                  current_price=current_price)

  if inputs.shares_outstanding <= 0:
    raise DomainError(
        f'shares outstanding must be positive: {inputs.shares_outstanding}')
  if current_price <= 0:
    raise DomainError(f'current price must be positive: {current_price}')

  discount_result = CapmRate.from_config(inputs.beta, inputs.risk_free_rate,
                                         inputs.market_return,
                                         config).compute()
  wacc = discount_result.value

  fade_result = ThreePhaseFade.from_config(config).compute(
      g0=inputs.analyst_growth_rate,
      g_terminal=inputs.terminal_growth_rate,
      n_years=inputs.projection_years,
  )

  projections, pv_explicit, terminal_value, terminal_value_pv, ev = (
      compute_enterprise_value(inputs.starting_fcf, fade_result.value,
                               inputs.terminal_growth_rate, wacc))

  equity_value = ev - inputs.total_debt + inputs.cash
  intrinsic_price = equity_value / inputs.shares_outstanding
  upside = (intrinsic_price - current_price) / current_price

  diag = {f'discount_{k}': v for k, v in discount_result.diag.items()}
  diag.update({f'fade_{k}': v for k, v in fade_result.diag.items()})

  return DCFResult(
      projections=projections,
      wacc=wacc,
      pv_of_cash_flows=pv_explicit,
      terminal_value=terminal_value,
      terminal_value_pv=terminal_value_pv,
      enterprise_value=ev,
      equity_value=equity_value,
      intrinsic_price=intrinsic_price,
      current_price=current_price,
      upside=upside,
      margin_of_safety=upside,
      diag=diag,
  )


def assess_implied_growth(
    implied_growth_rate: float,
    config: Optional[ValuationConfig] = None,
) -> tuple[str, str, bool]:
  """
  Classify an implied growth rate.

  Returns:
    Tuple of (tier, assessment, is_reasonable)
  """
  config = config or ValuationConfig.default()
  tier, is_reasonable = ladder_score(implied_growth_rate,
                                     config.reverse_tiers,
                                     config.reverse_fallback_tier,
                                     mode='above')
  pct = implied_growth_rate * 100
  if implied_growth_rate > 0:
    assessment = f'Market expects {pct:.1f}% annual growth - {tier}'
  else:
    assessment = f'Market expects negative growth ({pct:.1f}%) - {tier}'
  return tier, assessment, is_reasonable


def calculate_reverse_dcf(
    current_price: float,
    starting_fcf: float,
    shares_outstanding: float,
    total_debt: float,
    cash: float,
    wacc: float,
    terminal_growth_rate: Optional[float] = None,
    config: Optional[ValuationConfig] = None,
) -> ReverseDCFResult:
  """
  Solve for the phase 1 growth rate the market price implies.

  Bisection over config.reverse_growth_bounds: each iteration runs the full
  forward machinery at the midpoint growth and compares the resulting EV
  with the market-implied EV (price * shares + debt - cash). Stops when the
  relative gap drops below config.reverse_tolerance or after
  config.reverse_max_iterations; both bounds and count are fixed, so the
  result is deterministic.

  Args:
    current_price: Market price per share
    starting_fcf: Most recent annual FCF
    shares_outstanding: Shares outstanding
    total_debt: Total debt
    cash: Cash and equivalents
    wacc: Discount rate, used as-is
    terminal_growth_rate: Perpetual growth (default: config value)
    config: Valuation config (default: ValuationConfig.default())

  Returns:
    ReverseDCFResult with implied growth and its classification

  Raises:
    DomainError: On non-positive price or shares, or wacc <= terminal growth
  """
  config = config or ValuationConfig.default()
  if terminal_growth_rate is None:
    terminal_growth_rate = config.terminal_growth_rate

  _require_finite(current_price=current_price,
                  starting_fcf=starting_fcf,
                  shares_outstanding=shares_outstanding,
                  wacc=wacc)
  if current_price <= 0:
    raise DomainError(f'current price must be positive: {current_price}')
  if shares_outstanding <= 0:
    raise DomainError(
        f'shares outstanding must be positive: {shares_outstanding}')
  if wacc <= terminal_growth_rate:
    raise DomainError('invalid terminal spread')

  target_ev = current_price * shares_outstanding + total_debt - cash
  tolerance = config.reverse_tolerance * abs(target_ev)
  fade = ThreePhaseFade.from_config(config)

  low, high = config.reverse_growth_bounds
  implied = 0.0
  iterations = 0
  converged = False

  for iterations in range(1, config.reverse_max_iterations + 1):
    implied = (low + high) / 2.0
    growth_path = fade.compute(implied, terminal_growth_rate,
                               config.projection_years).value
    ev = compute_enterprise_value(starting_fcf, growth_path,
                                  terminal_growth_rate, wacc)[4]

    if abs(ev - target_ev) < tolerance:
      converged = True
      break

    if ev < target_ev:
      low = implied
    else:
      high = implied

  logger.debug('Reverse DCF: implied growth %.4f after %d iterations '
               '(converged=%s)', implied, iterations, converged)

  tier, assessment, is_reasonable = assess_implied_growth(implied, config)
  return ReverseDCFResult(
      implied_growth_rate=implied,
      tier=tier,
      assessment=assessment,
      is_reasonable=is_reasonable,
      sustainable_years=config.sustainable_years,
      iterations=iterations,
      converged=converged,
  )
