"""Ledger domain exceptions."""

from creditline.core.exceptions import CreditlineException, InvalidStateError, NotFoundException


class LedgerReferenceError(NotFoundException):
    """Raised when a command references a subscription or account that cannot be resolved."""

    def __init__(self, message: str = "Ledger reference not found"):
        """Initialize with default message."""
        super().__init__(message)


class LedgerInvariantError(InvalidStateError):
    """Raised when a command would break a ledger invariant."""

    def __init__(self, message: str = "Ledger invariant violated"):
        """Initialize with default message."""
        super().__init__(message)


class UnsupportedLedgerCommandError(CreditlineException):
    """Raised for a command type with no handler. Always a programming error."""

    def __init__(self, command_type: object):
        """Initialize with the offending command type."""
        self.command_type = command_type
        super().__init__(f"No ledger handler for command type {command_type!r}")
