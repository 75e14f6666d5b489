import pandas as pd
import pytest

from stock_valuation.domain.types import BalanceSheet
from stock_valuation.domain.types import CashFlowStatement
from stock_valuation.domain.types import DCFInputs
from stock_valuation.domain.types import FinancialStatements
from stock_valuation.domain.types import IncomeStatement
from stock_valuation.domain.types import Quote

YEARS = [2019, 2020, 2021, 2022, 2023]
REVENUE = [1000, 1100, 1250, 1400, 1600]
GROSS_PROFIT = [400, 440, 500, 560, 640]
OPERATING_INCOME = [200, 230, 260, 300, 340]
NET_INCOME = [150, 170, 190, 220, 256]
EPS = [1.5, 1.7, 1.94, 2.27, 2.69]
SHARES = [100, 100, 98, 97, 95]
CASH = [100, 120, 150, 180, 200]
DEBT = [300, 300, 300, 300, 300]
EQUITY = [800, 900, 1000, 1100, 1200]
FCF = [120, 130, 150, 160, 180]
CAPEX = 60


def _date(year: int) -> pd.Timestamp:
  return pd.Timestamp(year=year, month=12, day=31)


def make_financials(years: list[int]) -> FinancialStatements:
  """Helper to build statements for a subset of YEARS, oldest first."""
  idx = [YEARS.index(y) for y in years]
  return FinancialStatements(
      income=tuple(
          IncomeStatement(date=_date(YEARS[i]),
                          revenue=REVENUE[i],
                          gross_profit=GROSS_PROFIT[i],
                          operating_income=OPERATING_INCOME[i],
                          net_income=NET_INCOME[i],
                          eps=EPS[i],
                          shares_outstanding=SHARES[i]) for i in idx),
      balance=tuple(
          BalanceSheet(date=_date(YEARS[i]),
                       cash=CASH[i],
                       total_debt=DEBT[i],
                       total_equity=EQUITY[i]) for i in idx),
      cash_flow=tuple(
          CashFlowStatement(date=_date(YEARS[i]),
                            operating_cash_flow=FCF[i] + CAPEX,
                            capital_expenditures=CAPEX,
                            free_cash_flow=FCF[i]) for i in idx),
  )


@pytest.fixture
def sample_financials() -> FinancialStatements:
  """Five fiscal years (2019-2023), supplied oldest first."""
  return make_financials(YEARS)


@pytest.fixture
def two_year_financials() -> FinancialStatements:
  """Minimal history: 2022 and 2023 only."""
  return make_financials([2022, 2023])


@pytest.fixture
def sample_quote() -> Quote:
  return Quote(symbol='TEST',
               name='Test Corp',
               price=40.0,
               shares_outstanding=95.0,
               beta=1.0,
               eps=2.69,
               forward_eps=3.0)


@pytest.fixture
def rising_prices() -> tuple[float, ...]:
  """250 closes falling by 0.5 per step back in time (newest first)."""
  return tuple(200.0 - 0.5 * i for i in range(250))


@pytest.fixture
def regression_inputs() -> DCFInputs:
  """Inputs whose CAPM rate is exactly 9% (rf 4%, rm 9%, beta 1)."""
  return DCFInputs(
      starting_fcf=100.0,
      shares_outstanding=100.0,
      total_debt=50.0,
      cash=20.0,
      beta=1.0,
      analyst_growth_rate=0.10,
      risk_free_rate=0.04,
      market_return=0.09,
      terminal_growth_rate=0.025,
      projection_years=20,
  )


@pytest.fixture
def sample_payload() -> dict:
  """Raw provider payload for the sample company (camelCase, unsorted)."""
  income = [{
      'date': f'{YEARS[i]}-12-31',
      'revenue': REVENUE[i],
      'grossProfit': GROSS_PROFIT[i],
      'operatingIncome': OPERATING_INCOME[i],
      'netIncome': NET_INCOME[i],
      'eps': EPS[i],
      'sharesOutstanding': SHARES[i],
  } for i in (2, 0, 4, 1, 3)]
  balance = [{
      'date': f'{YEARS[i]}-12-31',
      'cash': CASH[i],
      'totalDebt': DEBT[i],
      'totalEquity': EQUITY[i],
  } for i in range(5)]
  cash_flow = [{
      'date': f'{YEARS[i]}-12-31',
      'operatingCashFlow': FCF[i] + CAPEX,
      'capitalExpenditures': -CAPEX,
  } for i in range(5)]
  dates = pd.bdate_range(end='2024-03-28', periods=250)
  prices = [{
      'date': d.strftime('%Y-%m-%d'),
      'close': 100.0 + 0.2 * k
  } for k, d in enumerate(dates)]
  return {
      'quote': {
          'symbol': 'test',
          'name': 'Test Corp',
          'price': 40.0,
          'beta': 1.0,
          'eps': 2.69,
          'forwardEps': 3.0,
          'sharesOutstanding': 95,
      },
      'financials': {
          'income': income,
          'balance': balance,
          'cashFlow': cash_flow,
      },
      'prices': prices,
  }
