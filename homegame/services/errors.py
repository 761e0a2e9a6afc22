"""Input errors raised by the pure service functions."""


class SettlementInputError(ValueError):
    """Raised when balances or the write-off threshold are unusable."""


class ChipSolverInputError(ValueError):
    """Raised when the chip search is given impossible parameters."""


class TallyError(ValueError):
    """Raised when a tally operation references an unknown player or bad amount."""
