"""
Unified exception hierarchy for the envelope budget project.

BudgetAppError is the base exception. The calculation engine itself never
raises for invalid budget input (it returns validation results as data);
these exceptions cover the boundaries around it: configuration, persistence,
and display-amount conversion.
"""

from typing import Optional


class BudgetAppError(Exception):
    """
    Base exception class for all envelope budget errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
        original_error: Optional original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ) -> None:
        """
        Initialize BudgetAppError.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        msg = self.message
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            msg = f"{msg} ({detail_str})"
        return msg


class ConfigError(BudgetAppError):
    """Raised when configuration loading or validation fails."""
    pass


class DatabaseError(BudgetAppError):
    """Raised when database operations fail."""
    pass


class MilliunitError(BudgetAppError, ValueError):
    """Raised when a display amount cannot be converted to milliunits."""
    pass


class AccountError(BudgetAppError):
    """Raised when account operations fail."""
    pass


class TransactionError(BudgetAppError):
    """Raised when a transaction cannot be stored or changed."""
    pass


class ReconciliationError(TransactionError):
    """Raised when an account's cleared balance does not match the statement."""
    pass


class BudgetError(BudgetAppError):
    """Raised when budget month operations fail."""
    pass


class MoveMoneyFailedError(BudgetError):
    """Raised when a validated move could not be written; nothing was persisted."""
    pass
