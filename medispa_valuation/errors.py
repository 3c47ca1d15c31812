"""
Typed errors raised by the valuation engine.

All errors derive from ValuationError, which is a ValueError so callers that
already guard numeric input with `except ValueError` keep working. Every
error carries a `context` dict; sensitivity and simulation wrappers use
with_context() to attach the cell or iteration that failed.
"""

from typing import Any, Dict, Optional


class ValuationError(ValueError):
  """
  Base class for all valuation errors.

  Attributes:
    context: Extra information about where the error was raised
      (e.g. grid indices, iteration number, overridden values)
  """

  def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
    super().__init__(message)
    self.message = message
    self.context: Dict[str, Any] = dict(context or {})

  def with_context(self, **context: Any) -> 'ValuationError':
    """
    Return a copy of this error (same class) with extra context merged in.

    The new error's message lists the added context so it shows up in
    tracebacks without further formatting by the caller.
    """
    merged = dict(self.context)
    merged.update(context)
    details = ', '.join(f'{k}={v!r}' for k, v in context.items())
    message = f'{self.message} [{details}]' if details else self.message
    return type(self)(message, context=merged)

  def __reduce__(self):
    return (type(self), (self.message, self.context))


class InvalidAssumptionError(ValuationError):
  """Malformed or out-of-domain valuation input."""


class InvalidTerminalAssumptionError(ValuationError):
  """Discount rate does not exceed terminal growth under perpetuity growth."""


class InvalidRateError(ValuationError):
  """Discount rate at or below -100%."""


class DistributionSamplingError(ValuationError):
  """Malformed Monte Carlo input distribution."""
