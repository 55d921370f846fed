"""
Database operations module for envelope budget storage.

Defines the SQLAlchemy ORM schema (accounts, category groups, categories,
budget months, transactions) and a DatabaseManager that owns the engine,
hands out sessions and performs account/category/transaction writes.
Monetary columns store milliunit integers. SQLite is the default backend.
"""

import enum
import logging
from datetime import UTC, datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    func,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from budget_engine.primitives import ZERO, Milliunit, milliunit
from exceptions import AccountError, BudgetError, DatabaseError, MilliunitError, ReconciliationError, TransactionError

# Configure logging
logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone awareness.

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(UTC)


# Base class for declarative models
Base = declarative_base()


class AccountType(enum.Enum):
    """Enumeration of account types. Only CREDIT accounts are credit accounts."""
    CHECKING = "checking"
    SAVINGS = "savings"
    CASH = "cash"
    CREDIT = "credit"
    INVESTMENT = "investment"
    OTHER = "other"


class ClearedStatus(enum.Enum):
    """
    Cleared state of a transaction.

    UNCLEARED <-> CLEARED -> RECONCILED. RECONCILED is terminal.
    """
    UNCLEARED = "uncleared"
    CLEARED = "cleared"
    RECONCILED = "reconciled"


_CLEARED_TRANSITIONS = {
    ClearedStatus.UNCLEARED: {ClearedStatus.CLEARED},
    ClearedStatus.CLEARED: {ClearedStatus.UNCLEARED, ClearedStatus.RECONCILED},
    ClearedStatus.RECONCILED: set(),
}


class Account(Base):
    """
    SQLAlchemy model representing a budget account.

    Attributes:
        id: Auto-incrementing primary key
        name: Account name (e.g., "Chase Checking"), unique
        type: Account type
        closed: Closed accounts stay in balance sums but accept no new activity
        created_at: Timestamp when account was created
    """

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(256), nullable=False, unique=True)
    type = Column(Enum(AccountType), nullable=False, index=True)
    closed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    transactions = relationship("Transaction", foreign_keys="[Transaction.account_id]", back_populates="account")

    @property
    def is_credit(self) -> bool:
        return self.type == AccountType.CREDIT

    def __repr__(self) -> str:
        """String representation of the account."""
        return f"<Account(id={self.id}, name='{self.name}', type={self.type.value})>"


class CategoryGroup(Base):
    """SQLAlchemy model representing a group of budget categories."""

    __tablename__ = "category_groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    hidden = Column(Boolean, default=False, nullable=False)
    is_income = Column(Boolean, default=False, nullable=False)

    categories = relationship("Category", back_populates="group")

    def __repr__(self) -> str:
        return f"<CategoryGroup(id={self.id}, name='{self.name}', is_income={self.is_income})>"


class Category(Base):
    """
    SQLAlchemy model representing a budget category.

    Attributes:
        linked_account_id: Set only for credit card payment categories,
            one per credit account
    """

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_group_id = Column(Integer, ForeignKey("category_groups.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    linked_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True, unique=True)

    group = relationship("CategoryGroup", back_populates="categories")
    linked_account = relationship("Account")

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}', linked_account_id={self.linked_account_id})>"


class BudgetMonth(Base):
    """
    SQLAlchemy model for one category's budget in one month.

    Rows are sparse: a missing row means nothing assigned, no activity and
    ``available`` equal to the carryforward.
    """

    __tablename__ = "budget_months"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    month = Column(String(7), nullable=False, index=True)
    assigned = Column(BigInteger, default=0, nullable=False)
    activity = Column(BigInteger, default=0, nullable=False)
    available = Column(BigInteger, default=0, nullable=False)

    category = relationship("Category")

    __table_args__ = (
        UniqueConstraint('category_id', 'month', name='uq_budget_months_category_month'),
    )

    def __repr__(self) -> str:
        return (
            f"<BudgetMonth(category_id={self.category_id}, month='{self.month}', "
            f"assigned={self.assigned}, activity={self.activity}, available={self.available})>"
        )


class Transaction(Base):
    """
    SQLAlchemy model representing a transaction.

    Attributes:
        account_id: Account the transaction belongs to
        date: Transaction date
        inflow: Money in, milliunits >= 0
        outflow: Money out, milliunits >= 0
        category_id: Budget category; NULL for transfers and card payments
        cleared: Cleared status (see ClearedStatus)
        transfer_account_id: Counterpart account for transfers
    """

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    payee = Column(String(200), nullable=True)
    memo = Column(String(500), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    inflow = Column(BigInteger, default=0, nullable=False)
    outflow = Column(BigInteger, default=0, nullable=False)
    cleared = Column(Enum(ClearedStatus), default=ClearedStatus.UNCLEARED, nullable=False)
    transfer_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    account = relationship("Account", foreign_keys=[account_id], back_populates="transactions")
    transfer_account = relationship("Account", foreign_keys=[transfer_account_id])

    __table_args__ = (
        Index('idx_account_date', 'account_id', 'date'),
        Index('idx_category_date', 'category_id', 'date'),
    )

    def __repr__(self) -> str:
        return (
            f"<Transaction(id={self.id}, account_id={self.account_id}, date={self.date}, "
            f"inflow={self.inflow}, outflow={self.outflow}, cleared={self.cleared.value})>"
        )


_UPDATABLE_TRANSACTION_FIELDS = {"date", "payee", "memo", "category_id", "inflow", "outflow"}


class DatabaseManager:
    """
    Manages database connections and basic write operations.

    Budget-month reads and writes live in ``budgeting.BudgetManager``; this
    class owns the engine and the account/category/transaction tables.
    """

    def __init__(self, connection_string: str):
        """
        Initialize the database manager.

        Args:
            connection_string: SQLAlchemy connection string (e.g., 'sqlite:///data/budget.db')

        Raises:
            DatabaseError: If the engine cannot be created
        """
        try:
            engine_kwargs: Dict[str, Any] = {"echo": False}
            url = make_url(connection_string)
            if url.drivername.startswith("sqlite") and url.database in (None, "", ":memory:"):
                # every session must see the same in-memory database
                engine_kwargs["poolclass"] = StaticPool
                engine_kwargs["connect_args"] = {"check_same_thread": False}
            self.engine = create_engine(connection_string, **engine_kwargs)
            self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
            logger.info(f"Database manager initialized with connection: {url.render_as_string(hide_password=True)}")
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database: {e}")
            raise DatabaseError("Failed to initialize database", original_error=e) from e

    def create_tables(self) -> None:
        """
        Create all database tables if they don't exist.

        Raises:
            DatabaseError: If table creation fails
        """
        try:
            Base.metadata.create_all(self.engine)
            logger.info("Database tables created/verified successfully")
        except SQLAlchemyError as e:
            logger.error(f"Failed to create database tables: {e}")
            raise DatabaseError("Failed to create database tables", original_error=e) from e

    def get_session(self) -> Session:
        """
        Get a new database session.

        Note:
            Caller is responsible for closing the session.
        """
        return self.SessionLocal()

    def _add(self, instance, error_cls, action: str):
        session = self.get_session()
        try:
            session.add(instance)
            session.commit()
            session.refresh(instance)
            session.expunge(instance)
            return instance
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise error_cls(f"Failed to {action}", original_error=e) from e
        finally:
            session.close()

    def create_account(self, name: str, account_type: AccountType) -> Account:
        """
        Create a new account.

        Credit accounts also need a payment category; call
        ``BudgetManager.ensure_credit_card_payment_category`` afterwards.

        Args:
            name: Account name (must be unique)
            account_type: Account type

        Returns:
            Created Account (detached)

        Raises:
            AccountError: If the name is empty, already used, or the insert fails
        """
        name = (name or "").strip()
        if not name:
            raise AccountError("Account name cannot be empty")
        try:
            account = self._add(Account(name=name, type=account_type), AccountError, "create account")
        except AccountError as e:
            if isinstance(e.original_error, IntegrityError):
                raise AccountError("Account name already exists", details={"name": name}) from e
            raise
        logger.info(f"Created account: {name} ({account_type.value})")
        return account

    def get_account(self, account_id: int, session: Optional[Session] = None) -> Optional[Account]:
        """Get an account by ID, or None if not found."""
        close_session = False
        if session is None:
            session = self.get_session()
            close_session = True

        try:
            return session.get(Account, account_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to get account: {e}")
            raise DatabaseError("Failed to get account", details={"account_id": account_id}, original_error=e) from e
        finally:
            if close_session:
                session.close()

    def create_category_group(
        self,
        name: str,
        is_income: bool = False,
        hidden: bool = False,
        sort_order: Optional[int] = None,
        session: Optional[Session] = None
    ) -> CategoryGroup:
        """
        Create a category group.

        When ``session`` is given the group is added and flushed in that
        session and the caller commits; otherwise it is committed at once.
        """
        if sort_order is None:
            sort_order = self._next_sort_order(CategoryGroup.sort_order, session=session)
        group = CategoryGroup(name=name, is_income=is_income, hidden=hidden, sort_order=sort_order)
        if session is not None:
            session.add(group)
            session.flush()
            return group
        group = self._add(group, BudgetError, "create category group")
        logger.info(f"Created category group '{name}' (income={is_income})")
        return group

    def create_category(
        self,
        name: str,
        category_group_id: int,
        linked_account_id: Optional[int] = None,
        sort_order: Optional[int] = None,
        session: Optional[Session] = None
    ) -> Category:
        """Create a category; see create_category_group for ``session`` semantics."""
        if sort_order is None:
            sort_order = self._next_sort_order(
                Category.sort_order, Category.category_group_id == category_group_id, session=session
            )
        category = Category(
            name=name,
            category_group_id=category_group_id,
            linked_account_id=linked_account_id,
            sort_order=sort_order,
        )
        if session is not None:
            session.add(category)
            session.flush()
            return category
        category = self._add(category, BudgetError, "create category")
        logger.info(f"Created category '{name}' in group {category_group_id}")
        return category

    def _next_sort_order(self, column, *criteria, session: Optional[Session] = None) -> int:
        own_session = session is None
        session = session or self.get_session()
        try:
            current = session.query(func.max(column)).filter(*criteria).scalar()
            return (current or 0) + 1
        finally:
            if own_session:
                session.close()

    @staticmethod
    def _coerce_amount(value: Any, field: str) -> Milliunit:
        if value is None:
            return ZERO
        try:
            amount = milliunit(value)
        except MilliunitError as e:
            raise TransactionError(f"Invalid {field}", details={field: value}, original_error=e) from e
        if amount < 0:
            raise TransactionError(f"{field} cannot be negative", details={field: value})
        return amount

    def _build_transaction(self, trans_dict: Dict[str, Any]) -> Transaction:
        try:
            return Transaction(
                account_id=trans_dict["account_id"],
                date=trans_dict["date"],
                inflow=self._coerce_amount(trans_dict.get("inflow"), "inflow"),
                outflow=self._coerce_amount(trans_dict.get("outflow"), "outflow"),
                category_id=trans_dict.get("category_id"),
                payee=trans_dict.get("payee"),
                memo=trans_dict.get("memo"),
                cleared=trans_dict.get("cleared", ClearedStatus.UNCLEARED),
                transfer_account_id=trans_dict.get("transfer_account_id"),
            )
        except KeyError as e:
            raise TransactionError("Missing required transaction field", details={"field": str(e)}) from e

    def insert_transactions(
        self,
        transactions: Iterable[Dict[str, Any]],
        session: Optional[Session] = None
    ) -> List[int]:
        """
        Insert transactions in a single database transaction.

        Args:
            transactions: Dictionaries with keys:
                - account_id: int (required)
                - date: date (required)
                - inflow / outflow: milliunits (default 0)
                - category_id, payee, memo, transfer_account_id: optional
                - cleared: ClearedStatus (default UNCLEARED)
            session: Optional open session; the rows are flushed into it
                and the caller commits

        Returns:
            IDs of the inserted transactions

        Raises:
            TransactionError: If any row is invalid; nothing is inserted
        """
        if session is not None:
            rows = [self._build_transaction(trans_dict) for trans_dict in transactions]
            session.add_all(rows)
            session.flush()
            return [row.id for row in rows]

        session = self.get_session()
        try:
            rows = [self._build_transaction(trans_dict) for trans_dict in transactions]
            session.add_all(rows)
            session.commit()
            ids = [row.id for row in rows]
            logger.info(f"Inserted {len(ids)} transactions")
            return ids
        except TransactionError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to insert transactions: {e}")
            raise TransactionError("Failed to insert transactions", original_error=e) from e
        finally:
            session.close()

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get a transaction by ID (detached), or None if not found."""
        session = self.get_session()
        try:
            transaction = session.get(Transaction, transaction_id)
            if transaction is not None:
                session.expunge(transaction)
            return transaction
        finally:
            session.close()

    def _load_mutable_transaction(self, session: Session, transaction_id: int) -> Transaction:
        transaction = session.get(Transaction, transaction_id)
        if transaction is None:
            raise TransactionError("Transaction not found", details={"transaction_id": transaction_id})
        if transaction.cleared == ClearedStatus.RECONCILED:
            raise TransactionError("Reconciled transactions cannot be changed", details={"transaction_id": transaction_id})
        return transaction

    def update_transaction(
        self,
        transaction_id: int,
        changes: Dict[str, Any],
        session: Optional[Session] = None
    ) -> Transaction:
        """
        Update fields of a transaction that is not reconciled.

        Args:
            transaction_id: Transaction ID
            changes: Field -> new value; allowed fields are date, payee, memo,
                category_id, inflow and outflow
            session: Optional open session; the change is flushed into it and
                the caller commits

        Returns:
            The updated Transaction (detached unless ``session`` was given)

        Raises:
            TransactionError: If the transaction is missing, reconciled, or a field is invalid
        """
        unknown = set(changes) - _UPDATABLE_TRANSACTION_FIELDS
        if unknown:
            raise TransactionError("Unsupported transaction fields", details={"fields": sorted(unknown)})

        if session is not None:
            transaction = self._apply_transaction_changes(session, transaction_id, changes)
            session.flush()
            return transaction

        session = self.get_session()
        try:
            transaction = self._apply_transaction_changes(session, transaction_id, changes)
            session.commit()
            session.expunge(transaction)
            return transaction
        except TransactionError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to update transaction {transaction_id}: {e}")
            raise TransactionError("Failed to update transaction", original_error=e) from e
        finally:
            session.close()

    def _apply_transaction_changes(self, session: Session, transaction_id: int, changes: Dict[str, Any]) -> Transaction:
        transaction = self._load_mutable_transaction(session, transaction_id)
        for field, value in changes.items():
            if field in ("inflow", "outflow"):
                value = self._coerce_amount(value, field)
            setattr(transaction, field, value)
        return transaction

    def set_cleared_status(self, transaction_id: int, status: ClearedStatus) -> Transaction:
        """
        Move a transaction through the cleared-status state machine.

        Raises:
            TransactionError: For unknown transactions and disallowed transitions
        """
        session = self.get_session()
        try:
            transaction = session.get(Transaction, transaction_id)
            if transaction is None:
                raise TransactionError("Transaction not found", details={"transaction_id": transaction_id})
            if transaction.cleared != status:
                if status not in _CLEARED_TRANSITIONS[transaction.cleared]:
                    raise TransactionError(
                        "Invalid cleared status transition",
                        details={"from": transaction.cleared.value, "to": status.value}
                    )
                transaction.cleared = status
                session.commit()
            session.expunge(transaction)
            return transaction
        except TransactionError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to set cleared status: {e}")
            raise TransactionError("Failed to set cleared status", original_error=e) from e
        finally:
            session.close()

    def get_cleared_balance(self, account_id: int, session: Optional[Session] = None) -> Milliunit:
        """Balance of cleared and reconciled transactions on an account."""
        close_session = False
        if session is None:
            session = self.get_session()
            close_session = True
        try:
            total = session.query(
                func.coalesce(func.sum(Transaction.inflow - Transaction.outflow), 0)
            ).filter(
                Transaction.account_id == account_id,
                Transaction.cleared.in_([ClearedStatus.CLEARED, ClearedStatus.RECONCILED]),
            ).scalar()
            return milliunit(total or 0)
        finally:
            if close_session:
                session.close()

    def reconcile_account(self, account_id: int, statement_balance: Milliunit, tolerance: Milliunit = Milliunit(10)) -> int:
        """
        Reconcile an account against a bank statement balance.

        When the cleared balance is within ``tolerance`` of the statement,
        every cleared transaction becomes reconciled in one database
        transaction. Otherwise nothing changes.

        Args:
            account_id: Account to reconcile
            statement_balance: Balance shown on the statement, in milliunits
            tolerance: Allowed absolute difference (default 0.01 units)

        Returns:
            Number of transactions marked reconciled

        Raises:
            ReconciliationError: If the balances differ by more than the tolerance
        """
        session = self.get_session()
        try:
            cleared_balance = self.get_cleared_balance(account_id, session=session)
            difference = statement_balance - cleared_balance
            if abs(difference) > tolerance:
                raise ReconciliationError(
                    "Cleared balance does not match statement",
                    details={
                        "account_id": account_id,
                        "cleared_balance": cleared_balance,
                        "statement_balance": statement_balance,
                        "difference": difference,
                    }
                )
            to_reconcile = session.query(Transaction).filter(
                Transaction.account_id == account_id,
                Transaction.cleared == ClearedStatus.CLEARED,
            ).all()
            for transaction in to_reconcile:
                transaction.cleared = ClearedStatus.RECONCILED
            session.commit()
            logger.info(f"Reconciled {len(to_reconcile)} transactions on account {account_id}")
            return len(to_reconcile)
        except ReconciliationError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to reconcile account {account_id}: {e}")
            raise ReconciliationError("Failed to reconcile account", original_error=e) from e
        finally:
            session.close()
