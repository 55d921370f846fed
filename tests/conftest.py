from datetime import date
from types import SimpleNamespace

import pytest

from budget_engine import FixedClock
from budgeting import BudgetManager
from database_ops import AccountType, DatabaseManager

# Tests run as if today were mid-June 2024.
TODAY = date(2024, 6, 15)
MONTH = "2024-06"


@pytest.fixture
def clock():
    """Clock pinned to TODAY."""
    return FixedClock(TODAY)


@pytest.fixture
def db_manager():
    """Provide an in-memory SQLite database with all tables created."""
    manager = DatabaseManager("sqlite:///:memory:")
    manager.create_tables()
    try:
        yield manager
    finally:
        manager.engine.dispose()


@pytest.fixture
def budget_manager(db_manager, clock):
    """BudgetManager where any month with a budget row counts as complete."""
    return BudgetManager(db_manager, clock=clock, config={"budget": {"complete_month_threshold": 1}})


@pytest.fixture
def seeded_budget(db_manager, budget_manager):
    """
    A checking account, a credit card with its payment category, an income
    category and two spending categories (Rent, Groceries).
    """
    checking = db_manager.create_account("Checking", AccountType.CHECKING)
    card = db_manager.create_account("Visa", AccountType.CREDIT)
    income_group = db_manager.create_category_group("Income", is_income=True)
    bills = db_manager.create_category_group("Bills")
    income = db_manager.create_category("Inflow", income_group.id)
    rent = db_manager.create_category("Rent", bills.id)
    groceries = db_manager.create_category("Groceries", bills.id)
    payment = budget_manager.ensure_credit_card_payment_category(card.id)
    return SimpleNamespace(
        checking=checking,
        card=card,
        income=income,
        rent=rent,
        groceries=groceries,
        payment=payment,
    )


def add_transaction(db_manager, account, day, category=None, inflow=0, outflow=0, **extra):
    """Insert one transaction and return its id."""
    payload = {
        "account_id": account.id,
        "date": day,
        "category_id": category.id if category is not None else None,
        "inflow": inflow,
        "outflow": outflow,
    }
    payload.update(extra)
    return db_manager.insert_transactions([payload])[0]


def budget_by_category(budget_manager, month):
    """Map category_id -> CategoryBudget for a month."""
    return {b.category_id: b for b in budget_manager.get_budget_for_month(month)}
