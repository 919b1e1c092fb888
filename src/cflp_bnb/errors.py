"""Exceptions raised by the branch-and-bound solver."""


class CFLPError(Exception):
    """Base class for all solver errors."""


class ArithmeticOverflow(CFLPError, OverflowError):
    """A cost computation left the signed 64-bit range.

    This is fatal: the instance is too large for the cost model and the
    current solve is aborted.
    """


class InvariantViolation(CFLPError, RuntimeError):
    """Internal bookkeeping was used out of order (a driver bug)."""
