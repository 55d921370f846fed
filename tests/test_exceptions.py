"""
Unit tests for the unified exception hierarchy.
"""

import pytest

from exceptions import (
    AccountError,
    BudgetAppError,
    BudgetError,
    ConfigError,
    DatabaseError,
    MilliunitError,
    MoveMoneyFailedError,
    ReconciliationError,
    TransactionError,
)


class TestBudgetAppError:
    """Test base BudgetAppError class."""

    def test_basic_exception_creation(self):
        error = BudgetAppError("Test error message")
        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.details == {}
        assert error.original_error is None

    def test_exception_with_details(self):
        error = BudgetAppError("Move failed", details={"source": 1, "target": 2})
        assert str(error) == "Move failed (source=1, target=2)"

    def test_exception_keeps_original_error(self):
        original = ValueError("bad value")
        error = BudgetAppError("Wrapped", original_error=original)
        assert error.original_error is original


class TestHierarchy:
    """Test that every error can be caught as BudgetAppError."""

    @pytest.mark.parametrize("error_cls", [
        ConfigError, DatabaseError, MilliunitError, AccountError,
        TransactionError, ReconciliationError, BudgetError, MoveMoneyFailedError,
    ])
    def test_subclasses_base(self, error_cls):
        with pytest.raises(BudgetAppError):
            raise error_cls("boom")

    def test_subclass_relationships(self):
        assert issubclass(MoveMoneyFailedError, BudgetError)
        assert issubclass(ReconciliationError, TransactionError)
        assert issubclass(MilliunitError, ValueError)
