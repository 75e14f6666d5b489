'''
Scoring and aggregation on top of the valuation engine.

  from stock_valuation.analysis.technical import calculate_technical_score
  from stock_valuation.analysis.fundamental import calculate_fundamental_score
  from stock_valuation.analysis.aggregate import determine_recommendation
'''

__all__ = [
    'calculate_confidence',
    'calculate_fundamental_score',
    'calculate_technical_score',
    'determine_recommendation',
]

from stock_valuation.analysis.aggregate import calculate_confidence
from stock_valuation.analysis.aggregate import determine_recommendation
from stock_valuation.analysis.fundamental import calculate_fundamental_score
from stock_valuation.analysis.technical import calculate_technical_score
