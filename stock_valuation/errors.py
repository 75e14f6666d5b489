"""Exceptions raised by the valuation engine."""


class DomainError(ValueError):
  """
  Mathematical precondition violated for a specific computation.

  Raised instead of returning a disguised zero or NaN, e.g. when the
  discount rate does not exceed the terminal growth rate or when shares
  outstanding is not positive. Callers decide how to recover.
  """
