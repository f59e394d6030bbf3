"""
Exception handling utilities.

Defines the ledger exception hierarchy. Batch jobs catch LedgerError
per item; LedgerUnavailableError aborts a whole run.
"""


class LedgerError(Exception):
    """Base class for all ledger errors."""
    pass


class ConfigurationError(LedgerError):
    """Raised when a product, level or rate table is missing or invalid."""
    pass


class InvalidWalletAddressError(LedgerError):
    """Raised when a wallet address has an invalid format."""

    def __init__(self, address: str | None, reason: str | None = None) -> None:
        self.address = address
        self.reason = reason
        super().__init__(f"Invalid wallet address {address!r}: {reason}")


class PositionNotFoundError(LedgerError):
    """Raised when a robot purchase does not exist."""

    def __init__(self, position_id: int) -> None:
        self.position_id = position_id
        super().__init__(f"Robot purchase {position_id} not found")


class InvalidStateTransitionError(LedgerError):
    """Raised when a position cannot move to the requested status."""

    def __init__(self, position_id: int, current: str, target: str) -> None:
        self.position_id = position_id
        self.current = current
        self.target = target
        super().__init__(
            f"Robot purchase {position_id} cannot go from {current} to {target}"
        )


class InsufficientBalanceError(LedgerError):
    """Raised when a debit would take a balance below zero."""
    pass


class BannedWalletError(LedgerError):
    """Raised when a banned wallet attempts a balance-changing action."""
    pass


class LedgerUnavailableError(LedgerError):
    """Raised when the ledger store cannot be reached before a batch starts."""
    pass

