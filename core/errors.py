"""
Domain exceptions for the trading side of the bot.

Data-fetch problems are not exceptions here: API clients degrade to
None / empty lists and the funnel treats that as "no data".
"""


class TradingError(Exception):
    """Base class for trading failures."""


class SwapExecutionError(TradingError):
    """The swap collaborator rejected or failed the swap."""


class ConfirmationTimeoutError(SwapExecutionError):
    """No definitive chain status even after the extended wait."""

    def __init__(self, message: str, signature: str = ""):
        super().__init__(message)
        self.signature = signature


class InsufficientBalanceError(TradingError):
    """Wallet cannot fund the requested buy."""


class PositionSlotOccupiedError(TradingError):
    """A position is already open; only one is allowed."""


class TierAlreadyExecutedError(TradingError):
    """A take-profit tier was asked to fire a second time."""
