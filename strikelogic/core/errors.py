"""
Error types raised by the pricing and strategy core.

Both subclass ValueError so callers that already guard with
``except ValueError`` keep working.
"""


class InvalidInputError(ValueError):
    """Caller contract violation (non-positive time, volatility, price or strike, expired chain)."""


class EmptyChainError(ValueError):
    """No option contracts left to build strategies from."""
