"""Exceptions raised by the calculation engines.

Both validation errors subclass ``ValueError`` so that callers which already
treat bad numeric input as a ``ValueError`` keep working unchanged.
"""


class FinsimError(Exception):
    """Base class for all errors raised by ``finsim``."""


class InvalidScenario(FinsimError, ValueError):
    """A scenario holds a malformed or out-of-range value."""


class InvalidExtraPayment(FinsimError, ValueError):
    """An extra payment does not fit the loan it is attached to."""
