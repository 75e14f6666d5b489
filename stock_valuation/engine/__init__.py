'''Valuation engines: pure DCF, reverse DCF and earnings-based models.'''

from stock_valuation.engine.dcf import (
    calculate_dcf,
    calculate_reverse_dcf,
    calculate_terminal_value,
    calculate_wacc,
    compute_enterprise_value,
)
from stock_valuation.engine.earnings import (
    calculate_earnings_multiple_value,
    calculate_graham_number,
)

__all__ = [
    'calculate_dcf',
    'calculate_reverse_dcf',
    'calculate_terminal_value',
    'calculate_wacc',
    'compute_enterprise_value',
    'calculate_earnings_multiple_value',
    'calculate_graham_number',
]
