"""
Exception taxonomy for RechargePanel.

InvalidRangeError and LedgerUnavailableError are the two errors a statistics
caller can see. StaleRequestDiscarded never leaves the panel that raised it.
"""


class RechargePanelError(Exception):
    """Base class for all application errors."""


class InvalidRangeError(RechargePanelError, ValueError):
    """A custom range is missing a bound or does not satisfy start < end."""


class LedgerUnavailableError(RechargePanelError):
    """The order ledger could not be reached or returned an unusable response."""

    def __init__(self, message: str, *, operation: str = "ledger_read"):
        super().__init__(message)
        self.operation = operation


class StaleRequestDiscarded(RechargePanelError):
    """A statistics result arrived after a newer request superseded it."""


class ConfigurationError(RechargePanelError):
    """Startup configuration is incomplete or inconsistent."""


class NotFoundError(RechargePanelError):
    """A requested record does not exist."""


class OrderTransitionError(RechargePanelError):
    """An order status change would move the order backwards or out of a terminal state."""


class InsufficientBalanceError(RechargePanelError):
    """A wallet adjustment would leave a negative balance."""
