'''
Normalization boundary for provider payloads.

Market-data providers return loosely typed records (camelCase keys, missing
fields, numbers as strings, nulls). The functions here validate and convert
those records into the strict value objects of domain.types before anything
reaches the engine:

  normalize_quote: quote mapping -> Quote
  normalize_statements: income/balance/cash flow records -> FinancialStatements
  normalize_prices: dated closes or a plain close list -> most-recent-first
    price tuple
'''

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Dict, List, Tuple

import pandas as pd

from stock_valuation.domain.types import BalanceSheet
from stock_valuation.domain.types import CashFlowStatement
from stock_valuation.domain.types import FinancialStatements
from stock_valuation.domain.types import IncomeStatement
from stock_valuation.domain.types import Quote

logger = logging.getLogger(__name__)

INCOME_FIELDS = {
    'revenue': 'revenue',
    'grossProfit': 'gross_profit',
    'operatingIncome': 'operating_income',
    'netIncome': 'net_income',
    'eps': 'eps',
    'sharesOutstanding': 'shares_outstanding',
}

BALANCE_FIELDS = {
    'cash': 'cash',
    'totalDebt': 'total_debt',
    'totalEquity': 'total_equity',
}

CASH_FLOW_FIELDS = {
    'operatingCashFlow': 'operating_cash_flow',
    'capitalExpenditures': 'capital_expenditures',
    'freeCashFlow': 'free_cash_flow',
}

QUOTE_FIELDS = {
    'name': 'name',
    'price': 'price',
    'beta': 'beta',
    'eps': 'eps',
    'forwardEps': 'forward_eps',
    'sma50': 'sma50',
    'sma200': 'sma200',
    'sharesOutstanding': 'shares_outstanding',
    'marketCap': 'market_cap',
}


def _to_float(value: Any, default: float = 0.0) -> float:
  '''Coerce a scalar to float, mapping None/NaN/garbage to default.'''
  number = pd.to_numeric(value, errors='coerce')
  if pd.isna(number):
    return default
  return float(number)


def _lookup(record: Mapping, camel: str, snake: str) -> Any:
  if camel in record:
    return record[camel]
  return record.get(snake)


def _records_frame(
    records: Iterable[Mapping],
    field_map: Dict[str, str],
    kind: str,
) -> pd.DataFrame:
  '''
  Build a typed, date-sorted frame from provider records.

  Args:
    records: Provider records, each carrying a 'date'
    field_map: camelCase provider key -> attribute name
    kind: Statement name for messages

  Returns:
    DataFrame with 'date' plus every mapped attribute, most recent first.
    Missing numeric fields are 0; rows with unparseable dates are dropped.

  Raises:
    KeyError: If records are present but none carries a date
  '''
  rows: List[Dict[str, Any]] = []
  for record in records:
    row = {'date': record.get('date')}
    for camel, snake in field_map.items():
      row[snake] = _lookup(record, camel, snake)
    rows.append(row)

  columns = ['date', *field_map.values()]
  if not rows:
    return pd.DataFrame(columns=columns)

  frame = pd.DataFrame(rows, columns=columns)
  if frame['date'].isna().all():
    raise KeyError(f'{kind} records carry no date field')

  frame['date'] = pd.to_datetime(frame['date'], errors='coerce')
  invalid = frame['date'].isna()
  if invalid.any():
    logger.debug('Dropping %d %s records with invalid dates', invalid.sum(),
                 kind)
    frame = frame[~invalid].copy()

  for col in field_map.values():
    frame[col] = pd.to_numeric(frame[col], errors='coerce')

  duplicated = frame['date'].duplicated(keep='first')
  if duplicated.any():
    logger.debug('Dropping %d duplicate %s periods', duplicated.sum(), kind)
    frame = frame[~duplicated].copy()

  return frame.sort_values('date', ascending=False).reset_index(drop=True)


def normalize_quote(record: Mapping) -> Quote:
  '''
  Convert a provider quote record into a Quote.

  Args:
    record: Mapping with at least 'symbol' and 'price'

  Returns:
    Quote with optional fields defaulted (beta 1.0, everything else 0)

  Raises:
    KeyError: If symbol is missing
    ValueError: If price is missing or not numeric
  '''
  if not record.get('symbol'):
    raise KeyError('Quote record missing symbol')

  values = {
      snake: _lookup(record, camel, snake)
      for camel, snake in QUOTE_FIELDS.items()
  }
  price = _to_float(values['price'], default=float('nan'))
  if pd.isna(price):
    raise ValueError(f"Quote for {record['symbol']} has no numeric price")

  beta = _to_float(values['beta'])
  return Quote(
      symbol=str(record['symbol']).upper(),
      name=str(values['name'] or record['symbol']),
      price=price,
      beta=beta if beta != 0 else 1.0,
      eps=_to_float(values['eps']),
      forward_eps=_to_float(values['forward_eps']),
      sma50=_to_float(values['sma50']),
      sma200=_to_float(values['sma200']),
      shares_outstanding=_to_float(values['shares_outstanding']),
      market_cap=_to_float(values['market_cap']),
  )


def normalize_statements(
    income: Iterable[Mapping] = (),
    balance: Iterable[Mapping] = (),
    cash_flow: Iterable[Mapping] = (),
) -> FinancialStatements:
  '''
  Convert provider statement records into FinancialStatements.

  Capital expenditures are stored as a positive outflow whatever sign the
  provider used. A missing free cash flow is derived as
  operating cash flow - capital expenditures.
  '''
  income_df = _records_frame(income, INCOME_FIELDS, 'income')
  balance_df = _records_frame(balance, BALANCE_FIELDS, 'balance')
  cash_df = _records_frame(cash_flow, CASH_FLOW_FIELDS, 'cash flow')

  income_df = income_df.fillna({c: 0.0 for c in INCOME_FIELDS.values()})
  balance_df = balance_df.fillna({c: 0.0 for c in BALANCE_FIELDS.values()})

  if not cash_df.empty:
    cash_df['operating_cash_flow'] = cash_df['operating_cash_flow'].fillna(0.0)
    cash_df['capital_expenditures'] = (
        cash_df['capital_expenditures'].fillna(0.0).abs())
    derived_fcf = (cash_df['operating_cash_flow'] -
                   cash_df['capital_expenditures'])
    cash_df['free_cash_flow'] = cash_df['free_cash_flow'].fillna(derived_fcf)

  return FinancialStatements(
      income=tuple(
          IncomeStatement(**row) for row in income_df.to_dict('records')),
      balance=tuple(
          BalanceSheet(**row) for row in balance_df.to_dict('records')),
      cash_flow=tuple(
          CashFlowStatement(**row) for row in cash_df.to_dict('records')),
  )


def normalize_financials(payload: Mapping) -> FinancialStatements:
  '''Normalize a {income, balance, cashFlow} payload.'''
  return normalize_statements(
      income=payload.get('income') or (),
      balance=payload.get('balance') or (),
      cash_flow=_lookup(payload, 'cashFlow', 'cash_flow') or (),
  )


def normalize_prices(history: Any) -> Tuple[float, ...]:
  '''
  Convert a price history into closes ordered most recent first.

  Args:
    history: A pandas Series of closes indexed by date, an iterable of
      {'date': ..., 'close': ...} records, or a plain sequence of closes
      already ordered most recent first

  Returns:
    Tuple of closing prices, newest first, with null closes removed
  '''
  if isinstance(history, pd.Series):
    series = history.copy()
    series.index = pd.to_datetime(series.index, errors='coerce')
  else:
    records = list(history)
    if not records:
      return ()
    if not isinstance(records[0], Mapping):
      closes = pd.to_numeric(pd.Series(records, dtype=object),
                             errors='coerce').dropna()
      return tuple(float(p) for p in closes)

    frame = pd.DataFrame(records, columns=['date', 'close'])
    series = pd.Series(frame['close'].values,
                       index=pd.to_datetime(frame['date'], errors='coerce'))

  series = pd.to_numeric(series, errors='coerce')
  series = series[series.index.notna()].dropna()
  series = series[~series.index.duplicated(keep='first')]
  return tuple(float(p) for p in series.sort_index(ascending=False))
