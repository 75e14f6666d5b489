"""Domain types and the provider normalization boundary."""

from stock_valuation.domain.types import DCFInputs
from stock_valuation.domain.types import DCFResult
from stock_valuation.domain.types import FinancialStatements
from stock_valuation.domain.types import PolicyOutput
from stock_valuation.domain.types import Quote
from stock_valuation.domain.types import Recommendation
from stock_valuation.domain.types import StockAnalysis

__all__ = [
    'DCFInputs',
    'DCFResult',
    'FinancialStatements',
    'PolicyOutput',
    'Quote',
    'Recommendation',
    'StockAnalysis',
]
