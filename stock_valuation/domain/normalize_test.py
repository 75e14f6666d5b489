import pandas as pd
import pytest

from stock_valuation.domain.normalize import normalize_financials
from stock_valuation.domain.normalize import normalize_prices
from stock_valuation.domain.normalize import normalize_quote
from stock_valuation.domain.normalize import normalize_statements


class TestNormalizeQuote:
  """Tests for normalize_quote."""

  def test_camel_case_record(self):
    quote = normalize_quote({
        'symbol': 'aapl',
        'name': 'Apple Inc.',
        'price': '187.5',
        'beta': 1.3,
        'eps': 6.1,
        'forwardEps': 6.6,
        'sharesOutstanding': 15500,
    })

    assert quote.symbol == 'AAPL'
    assert quote.name == 'Apple Inc.'
    assert quote.price == 187.5
    assert quote.forward_eps == 6.6
    assert quote.shares_outstanding == 15500.0

  def test_defaults(self):
    """Missing beta defaults to 1, name to the symbol, the rest to 0."""
    quote = normalize_quote({'symbol': 'X', 'price': 10, 'beta': None})

    assert quote.beta == 1.0
    assert quote.name == 'X'
    assert quote.eps == 0.0
    assert quote.sma200 == 0.0

  def test_snake_case_keys_accepted(self):
    quote = normalize_quote({
        'symbol': 'X',
        'price': 10,
        'forward_eps': 2.5,
        'shares_outstanding': 7
    })

    assert quote.forward_eps == 2.5
    assert quote.shares_outstanding == 7.0

  def test_missing_symbol(self):
    with pytest.raises(KeyError):
      normalize_quote({'price': 10})

  @pytest.mark.parametrize('price', [None, 'n/a'])
  def test_non_numeric_price(self, price):
    with pytest.raises(ValueError, match='no numeric price'):
      normalize_quote({'symbol': 'X', 'price': price})


class TestNormalizeStatements:
  """Tests for normalize_statements and normalize_financials."""

  def test_sorted_most_recent_first(self):
    financials = normalize_statements(income=[
        {
            'date': '2021-12-31',
            'revenue': 100
        },
        {
            'date': '2023-12-31',
            'revenue': 300
        },
        {
            'date': '2022-12-31',
            'revenue': 200
        },
    ])

    assert [p.revenue for p in financials.income] == [300, 200, 100]
    assert financials.latest_income.date == pd.Timestamp('2023-12-31')

  def test_capex_sign_and_derived_fcf(self):
    financials = normalize_statements(cash_flow=[
        {
            'date': '2023-12-31',
            'operatingCashFlow': 250,
            'capitalExpenditures': -70
        },
        {
            'date': '2022-12-31',
            'operatingCashFlow': 200,
            'capitalExpenditures': 50,
            'freeCashFlow': 140
        },
    ])
    latest, previous = financials.cash_flow

    assert latest.capital_expenditures == 70
    assert latest.free_cash_flow == 180
    assert previous.free_cash_flow == 140

  def test_missing_and_garbage_fields_are_zero(self):
    financials = normalize_statements(balance=[{
        'date': '2023-12-31',
        'cash': 'unknown',
        'totalEquity': 500
    }])
    balance = financials.latest_balance

    assert balance.cash == 0.0
    assert balance.total_debt == 0.0
    assert balance.total_equity == 500.0

  def test_duplicate_and_invalid_dates_dropped(self):
    financials = normalize_statements(income=[
        {
            'date': '2023-12-31',
            'revenue': 300
        },
        {
            'date': '2023-12-31',
            'revenue': 999
        },
        {
            'date': 'not a date',
            'revenue': 5
        },
    ])

    assert [p.revenue for p in financials.income] == [300]

  def test_records_without_dates(self):
    with pytest.raises(KeyError, match='carry no date'):
      normalize_statements(income=[{'revenue': 1}])

  def test_empty(self):
    financials = normalize_financials({})

    assert financials.years_of_data == 0
    assert financials.latest_cash_flow is None

  def test_financials_payload(self, sample_payload):
    financials = normalize_financials(sample_payload['financials'])

    assert financials.years_of_data == 5
    assert [p.revenue for p in financials.income
           ] == [1600, 1400, 1250, 1100, 1000]
    assert financials.latest_cash_flow.free_cash_flow == 180


class TestNormalizePrices:
  """Tests for normalize_prices."""

  def test_records_newest_first(self):
    prices = normalize_prices([
        {
            'date': '2024-01-02',
            'close': 10.0
        },
        {
            'date': '2024-01-04',
            'close': 12.0
        },
        {
            'date': '2024-01-03',
            'close': None
        },
        {
            'date': '2024-01-01',
            'close': 9.0
        },
    ])

    assert prices == (12.0, 10.0, 9.0)

  def test_series(self):
    series = pd.Series([1.0, 2.0, 3.0],
                       index=['2024-01-01', '2024-01-02', '2024-01-03'])

    assert normalize_prices(series) == (3.0, 2.0, 1.0)

  def test_empty(self):
    assert normalize_prices([]) == ()

  def test_plain_closes_keep_order(self):
    """A bare close list is taken as already ordered newest first."""
    assert normalize_prices([12.0, '11.5', None, 10]) == (12.0, 11.5, 10.0)

  def test_plain_payload_closes(self, sample_payload):
    closes = [r['close'] for r in reversed(sample_payload['prices'])]

    assert normalize_prices(closes) == normalize_prices(
        sample_payload['prices'])

  def test_payload_prices(self, sample_payload):
    prices = normalize_prices(sample_payload['prices'])

    assert len(prices) == 250
    assert prices[0] == pytest.approx(100.0 + 0.2 * 249)
    assert prices[-1] == pytest.approx(100.0)
