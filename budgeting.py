"""
Budgeting module for YNAB-like envelope budget management.

BudgetManager is the persistence side of the budget engine: it queries the
aggregates the pure ``budget_engine`` functions need, calls them inside a
single database session, and writes their results back to ``budget_months``.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from budget_engine import (
    ZERO,
    AssignmentInput,
    AssignmentResult,
    CategoryBudget,
    CategorySpending,
    CCPaymentInput,
    CCPaymentResult,
    Clock,
    ExistingAssignment,
    Milliunit,
    MoveMoneyInput,
    MoveMoneyResult,
    Number,
    OverspendingInput,
    OverspendingType,
    RTABreakdown,
    RTABreakdownInputs,
    RTAInputs,
    SystemClock,
    calculate_assignment,
    calculate_budget_available,
    calculate_cash_overspending,
    calculate_cc_payment_available,
    calculate_rta,
    calculate_rta_breakdown,
    classify_overspending,
    compute_carryforward,
    format_month,
    month_bounds,
    parse_month,
    previous_month,
    validate_assignment,
    validate_move_money,
)
from config_manager import get_budget_setting
from database_ops import (
    Account,
    AccountType,
    BudgetMonth,
    Category,
    CategoryGroup,
    DatabaseManager,
    Transaction,
)
from exceptions import AccountError, BudgetError, DatabaseError, MoveMoneyFailedError, TransactionError

# Configure logging
logger = logging.getLogger(__name__)


class BudgetManager:
    """
    Manages budget months (YNAB-style envelopes).

    Every public method opens its own session. Write operations commit once
    at the end, so all rows they touch change together or not at all.
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        clock: Optional[Clock] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize the budget manager.

        Args:
            db_manager: DatabaseManager instance
            clock: Source of "today" (defaults to the system clock)
            config: Loaded configuration; only the ``budget`` section is read
        """
        self.db_manager = db_manager
        self.clock = clock or SystemClock()
        self.complete_month_threshold = int(get_budget_setting(config, 'complete_month_threshold'))
        self.cc_payment_group_name = get_budget_setting(config, 'cc_payment_group_name')
        logger.info("Budget manager initialized")

    @staticmethod
    def _validate_month(month: str) -> str:
        try:
            parse_month(month)
        except ValueError as e:
            raise BudgetError("Invalid month", details={"month": month}, original_error=e) from e
        return month

    def _month_range(self, month: str) -> Tuple[date, date]:
        """Date range of ``month`` that has already happened (dated <= today)."""
        start, end = month_bounds(month)
        return start, min(end, self.clock.today())

    # ------------------------------------------------------------------
    # Row helpers (operate inside a caller-provided session)
    # ------------------------------------------------------------------

    @staticmethod
    def _get_row(session: Session, category_id: int, month: str) -> Optional[BudgetMonth]:
        return session.query(BudgetMonth).filter(
            BudgetMonth.category_id == category_id,
            BudgetMonth.month == month
        ).one_or_none()

    @staticmethod
    def _get_category(session: Session, category_id: int) -> Category:
        category = session.get(Category, category_id)
        if category is None:
            raise BudgetError("Category not found", details={"category_id": category_id})
        return category

    def _carryforward(self, session: Session, category: Category, month: str) -> Milliunit:
        previous = session.query(BudgetMonth.available).filter(
            BudgetMonth.category_id == category.id,
            BudgetMonth.month < month
        ).order_by(BudgetMonth.month.desc()).first()
        prev_available = previous[0] if previous else None
        return compute_carryforward(prev_available, category.linked_account_id is not None)

    def _current_state(self, session: Session, category: Category, month: str) -> Tuple[Milliunit, Milliunit]:
        """(assigned, available) for a category, using the carryforward when no row exists."""
        row = self._get_row(session, category.id, month)
        if row is not None:
            return Milliunit(row.assigned), Milliunit(row.available)
        return ZERO, self._carryforward(session, category, month)

    @staticmethod
    def _is_empty(row: BudgetMonth) -> bool:
        return row.assigned == 0 and row.activity == 0 and row.available == 0

    def _recompute_later_months(self, session: Session, category: Category, month: str) -> None:
        """
        Rebuild ``available`` of every row after ``month`` from its carryforward.

        Rows are walked in month order so each carryforward sees the row
        before it already corrected. Rows left empty are dropped.
        """
        session.flush()
        is_cc = category.linked_account_id is not None
        previous = session.query(BudgetMonth.available).filter(
            BudgetMonth.category_id == category.id,
            BudgetMonth.month <= month
        ).order_by(BudgetMonth.month.desc()).first()
        prev_available = previous[0] if previous else None

        later_rows = session.query(BudgetMonth).filter(
            BudgetMonth.category_id == category.id,
            BudgetMonth.month > month
        ).order_by(BudgetMonth.month).all()
        for row in later_rows:
            carryforward = compute_carryforward(prev_available, is_cc)
            row.available = calculate_budget_available(carryforward, Milliunit(row.assigned), Milliunit(row.activity))
            if self._is_empty(row):
                session.delete(row)
            else:
                prev_available = row.available
        if later_rows:
            logger.debug(f"Recomputed {len(later_rows)} later months of category {category.id} after {month}")

    def _apply_assignment(self, session: Session, category_id: int, month: str, new_assigned: Milliunit) -> AssignmentResult:
        """Set ``assigned`` for one category/month and propagate the change. Does not commit."""
        category = self._get_category(session, category_id)
        row = self._get_row(session, category_id, month)
        carryforward = self._carryforward(session, category, month)
        existing = ExistingAssignment(assigned=row.assigned, available=row.available) if row is not None else None

        result = calculate_assignment(AssignmentInput(
            existing=existing,
            carryforward=carryforward,
            new_assigned=new_assigned,
        ))
        if result.should_skip:
            return result

        if result.should_delete:
            session.delete(row)
        elif result.should_create:
            session.add(BudgetMonth(
                category_id=category_id,
                month=month,
                assigned=new_assigned,
                activity=0,
                available=result.new_available,
            ))
        else:
            row.assigned = new_assigned
            row.available = result.new_available

        if result.delta:
            self._recompute_later_months(session, category, month)
        session.flush()
        return result

    def _to_category_budget(self, row: BudgetMonth, category: Category) -> CategoryBudget:
        return CategoryBudget(
            category_id=category.id,
            month=row.month,
            assigned=Milliunit(row.assigned),
            activity=Milliunit(row.activity),
            available=Milliunit(row.available),
            linked_account_id=category.linked_account_id,
        )

    # ------------------------------------------------------------------
    # Budget months
    # ------------------------------------------------------------------

    def compute_carryforward(self, category_id: int, month: str) -> Milliunit:
        """
        Amount a category carries into ``month`` from its latest earlier row.

        Raises:
            BudgetError: If the month is malformed or the category does not exist
        """
        self._validate_month(month)
        session = self.db_manager.get_session()
        try:
            category = self._get_category(session, category_id)
            return self._carryforward(session, category, month)
        except SQLAlchemyError as e:
            logger.error(f"Error computing carryforward: {e}")
            raise DatabaseError("Failed to compute carryforward", original_error=e) from e
        finally:
            session.close()

    def _budget_for_month(self, session: Session, month: str) -> List[CategoryBudget]:
        categories = session.query(Category).join(CategoryGroup).filter(
            CategoryGroup.is_income.is_(False)
        ).order_by(CategoryGroup.sort_order, Category.sort_order, Category.id).all()
        if not categories:
            return []

        rows = {
            row.category_id: row
            for row in session.query(BudgetMonth).filter(BudgetMonth.month == month).all()
        }
        # latest earlier row per category, for months without their own row
        latest_previous: Dict[int, int] = {}
        for category_id, available in session.query(BudgetMonth.category_id, BudgetMonth.available).filter(
            BudgetMonth.month < month
        ).order_by(BudgetMonth.month):
            latest_previous[category_id] = available

        budgets = []
        for category in categories:
            row = rows.get(category.id)
            if row is not None:
                budgets.append(self._to_category_budget(row, category))
                continue
            carryforward = compute_carryforward(
                latest_previous.get(category.id), category.linked_account_id is not None
            )
            budgets.append(CategoryBudget(
                category_id=category.id,
                month=month,
                assigned=ZERO,
                activity=ZERO,
                available=carryforward,
                linked_account_id=category.linked_account_id,
            ))
        return budgets

    def get_budget_for_month(self, month: str) -> List[CategoryBudget]:
        """
        Get the budget of every non-income category for a month.

        Categories without a row for the month report their carryforward as
        ``available``.

        Args:
            month: Month in YYYY-MM format

        Returns:
            List of CategoryBudget in display order
        """
        self._validate_month(month)
        session = self.db_manager.get_session()
        try:
            return self._budget_for_month(session, month)
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving budget for {month}: {e}")
            raise DatabaseError("Failed to retrieve budget", details={"month": month}, original_error=e) from e
        finally:
            session.close()

    def update_budget_assignment(self, category_id: int, month: str, assigned: Number) -> AssignmentResult:
        """
        Set the amount assigned to a category for a month.

        The row is created, updated or deleted as ``calculate_assignment``
        decides, and the change in assigned is carried into the ``available``
        of every later month, all in one database transaction.

        Args:
            category_id: Category to assign to
            month: Month in YYYY-MM format
            assigned: New assigned value in milliunits

        Returns:
            AssignmentResult. A non-finite value writes nothing and returns a
            skip result with zero delta.

        Raises:
            BudgetError: If the month or category is invalid, or the write fails
        """
        self._validate_month(month)
        validation = validate_assignment(assigned)

        session = self.db_manager.get_session()
        try:
            if not validation.valid:
                category = self._get_category(session, category_id)
                logger.warning(f"Rejected non-finite assignment for category {category_id} in {month}")
                return AssignmentResult(
                    delta=ZERO,
                    new_available=self._current_state(session, category, month)[1],
                    should_skip=True,
                )

            result = self._apply_assignment(session, category_id, month, validation.clamped)
            session.commit()
            if not result.should_skip:
                logger.info(f"Assigned {validation.clamped} to category {category_id} for {month} (delta {result.delta})")
            return result
        except BudgetError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error updating assignment: {e}")
            raise BudgetError(
                "Failed to update assignment",
                details={"category_id": category_id, "month": month},
                original_error=e
            ) from e
        finally:
            session.close()

    def move_money(self, source_category_id: int, target_category_id: int, month: str, amount: Number) -> MoveMoneyResult:
        """
        Move assigned money from one category to another.

        Both assignments (and their future-month propagation) are written in
        one database transaction.

        Args:
            source_category_id: Category to take money from
            target_category_id: Category to give money to
            month: Month in YYYY-MM format
            amount: Amount in milliunits

        Returns:
            MoveMoneyResult from validate_move_money. Invalid requests write nothing.

        Raises:
            BudgetError: If the month or either category is invalid
            MoveMoneyFailedError: If the write fails; neither category changed
        """
        self._validate_month(month)
        session = self.db_manager.get_session()
        try:
            source = self._get_category(session, source_category_id)
            source_assigned, source_available = self._current_state(session, source, month)
            result = validate_move_money(MoveMoneyInput(
                amount=amount,
                source_available=source_available,
                source_category_id=source_category_id,
                target_category_id=target_category_id,
            ))
            if not result.valid:
                logger.info(f"Move money rejected: {result.error.value}")
                return result

            target = self._get_category(session, target_category_id)
            target_assigned, _ = self._current_state(session, target, month)
            moved = result.clamped_amount

            self._apply_assignment(session, source.id, month, Milliunit(source_assigned - moved))
            self._apply_assignment(session, target.id, month, Milliunit(target_assigned + moved))
            session.commit()

            logger.info(f"Moved {moved} from category {source.id} to {target.id} for {month}")
            return result
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error moving money: {e}")
            raise MoveMoneyFailedError(
                "Failed to move money",
                details={"source": source_category_id, "target": target_category_id, "month": month},
                original_error=e
            ) from e
        except BudgetError:
            session.rollback()
            raise
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Activity
    # ------------------------------------------------------------------

    def _category_activity(self, session: Session, category_id: int, month: str) -> Milliunit:
        start, end = self._month_range(month)
        total = session.query(
            func.coalesce(func.sum(Transaction.inflow - Transaction.outflow), 0)
        ).filter(
            Transaction.category_id == category_id,
            Transaction.date >= start,
            Transaction.date <= end
        ).scalar()
        return Milliunit(total or 0)

    def _update_activity(self, session: Session, category: Category, month: str) -> Optional[BudgetMonth]:
        """Rewrite one month's activity and carry the new available into later months."""
        activity = self._category_activity(session, category.id, month)
        row = self._get_row(session, category.id, month)
        carryforward = self._carryforward(session, category, month)

        if row is None:
            if activity == 0:
                return None
            row = BudgetMonth(
                category_id=category.id,
                month=month,
                assigned=0,
                activity=activity,
                available=calculate_budget_available(carryforward, ZERO, activity),
            )
            session.add(row)
        else:
            row.activity = activity
            row.available = calculate_budget_available(carryforward, Milliunit(row.assigned), activity)
            if self._is_empty(row):
                session.delete(row)
                row = None

        self._recompute_later_months(session, category, month)
        return row

    def update_budget_activity(self, category_id: int, month: str) -> Optional[CategoryBudget]:
        """
        Recompute one category's activity for a month from its transactions.

        Returns:
            The updated CategoryBudget, or None when the month has no row left
        """
        self._validate_month(month)
        session = self.db_manager.get_session()
        try:
            category = self._get_category(session, category_id)
            row = self._update_activity(session, category, month)
            session.commit()
            return self._to_category_budget(row, category) if row is not None else None
        except BudgetError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error updating activity: {e}")
            raise BudgetError("Failed to update activity", details={"category_id": category_id}, original_error=e) from e
        finally:
            session.close()

    def refresh_all_budget_activity(self, month: str) -> int:
        """
        Recompute activity for every spending category, then every CC payment category.

        Returns:
            Number of categories refreshed
        """
        self._validate_month(month)
        session = self.db_manager.get_session()
        try:
            categories = session.query(Category).join(CategoryGroup).filter(
                CategoryGroup.is_income.is_(False),
                Category.linked_account_id.is_(None)
            ).all()
            for category in categories:
                self._update_activity(session, category, month)
            session.flush()

            credit_accounts = session.query(Account.id).filter(Account.type == AccountType.CREDIT).all()
            for (account_id,) in credit_accounts:
                self._update_cc_payment(session, account_id, month)
            session.commit()

            logger.info(f"Refreshed activity for {len(categories)} categories and {len(credit_accounts)} cards in {month}")
            return len(categories) + len(credit_accounts)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error refreshing budget activity: {e}")
            raise BudgetError("Failed to refresh budget activity", details={"month": month}, original_error=e) from e
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @staticmethod
    def _budget_key(transaction: Transaction) -> Tuple[int, Optional[int], str]:
        return transaction.account_id, transaction.category_id, format_month(transaction.date)

    def _refresh_after_transactions(self, session: Session, keys: Iterable[Tuple[int, Optional[int], str]]) -> None:
        """Recompute activity, then card payment budgets, for every (account, category, month) touched."""
        keys = set(keys)
        category_months = sorted({(month, category_id) for _, category_id, month in keys if category_id is not None})
        account_months = sorted({(month, account_id) for account_id, _, month in keys})

        category_ids = {category_id for _, category_id in category_months}
        spending_categories = {
            category.id: category
            for category in session.query(Category).join(CategoryGroup).filter(
                Category.id.in_(sorted(category_ids)),
                CategoryGroup.is_income.is_(False),
                Category.linked_account_id.is_(None)
            )
        } if category_ids else {}
        for month, category_id in category_months:
            if category_id in spending_categories:
                self._update_activity(session, spending_categories[category_id], month)
        session.flush()

        account_ids = {account_id for _, account_id in account_months}
        credit_ids = {
            account_id for (account_id,) in session.query(Account.id).filter(
                Account.id.in_(sorted(account_ids)),
                Account.type == AccountType.CREDIT
            )
        }
        for month, account_id in account_months:
            if account_id in credit_ids:
                self._update_cc_payment(session, account_id, month)

    def record_transactions(self, transactions: Iterable[Dict[str, Any]]) -> List[int]:
        """
        Insert transactions and update the budget months they fall in.

        The inserts, the activity of every affected category and the payment
        category of every affected credit account are written together.

        Returns:
            IDs of the inserted transactions

        Raises:
            TransactionError: If any row is invalid or the write fails; nothing changes
        """
        session = self.db_manager.get_session()
        try:
            ids = self.db_manager.insert_transactions(list(transactions), session=session)
            keys = [self._budget_key(session.get(Transaction, transaction_id)) for transaction_id in ids]
            self._refresh_after_transactions(session, keys)
            session.commit()
            logger.info(f"Recorded {len(ids)} transactions")
            return ids
        except (TransactionError, BudgetError):
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error recording transactions: {e}")
            raise TransactionError("Failed to record transactions", original_error=e) from e
        finally:
            session.close()

    def update_transaction(self, transaction_id: int, changes: Dict[str, Any]) -> Transaction:
        """
        Edit a transaction and bring the budget in line with it.

        Activity is recomputed for both the old and the new category/month,
        followed by the payment category when the account is a credit card.
        Everything is written in one database transaction.

        Args:
            transaction_id: Transaction ID
            changes: Field -> new value (see DatabaseManager.update_transaction)

        Returns:
            The updated Transaction (detached)

        Raises:
            TransactionError: If the edit is rejected or the write fails; nothing changes
        """
        session = self.db_manager.get_session()
        try:
            existing = session.get(Transaction, transaction_id)
            before = self._budget_key(existing) if existing is not None else None
            transaction = self.db_manager.update_transaction(transaction_id, changes, session=session)
            keys = [self._budget_key(transaction)]
            if before is not None:
                keys.append(before)
            self._refresh_after_transactions(session, keys)
            session.commit()
            session.expunge(transaction)
            logger.info(f"Updated transaction {transaction_id}")
            return transaction
        except (TransactionError, BudgetError):
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error updating transaction {transaction_id}: {e}")
            raise TransactionError("Failed to update transaction", original_error=e) from e
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Credit card payment categories
    # ------------------------------------------------------------------

    def get_credit_card_payment_category(self, account_id: int) -> Optional[Category]:
        """Get the payment category linked to a credit account, or None."""
        session = self.db_manager.get_session()
        try:
            category = session.query(Category).filter(Category.linked_account_id == account_id).one_or_none()
            if category is not None:
                session.expunge(category)
            return category
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving payment category: {e}")
            raise DatabaseError("Failed to retrieve payment category", original_error=e) from e
        finally:
            session.close()

    def ensure_credit_card_payment_category(self, account_id: int) -> Category:
        """
        Get or create the payment category of a credit account.

        Payment categories live in the configured "Credit Card Payments"
        group, which is created on first use.

        Raises:
            AccountError: If the account does not exist or is not a credit account
        """
        session = self.db_manager.get_session()
        try:
            account = session.get(Account, account_id)
            if account is None or not account.is_credit:
                raise AccountError("Not a credit account", details={"account_id": account_id})

            category = session.query(Category).filter(Category.linked_account_id == account_id).one_or_none()
            if category is None:
                group = session.query(CategoryGroup).filter(
                    CategoryGroup.name == self.cc_payment_group_name
                ).first()
                if group is None:
                    group = self.db_manager.create_category_group(
                        self.cc_payment_group_name, sort_order=0, session=session
                    )
                category = self.db_manager.create_category(
                    account.name, group.id, linked_account_id=account_id, session=session
                )
                session.commit()
                logger.info(f"Created payment category for credit account {account.name}")
            session.expunge(category)
            return category
        except AccountError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error creating payment category: {e}")
            raise BudgetError("Failed to create payment category", details={"account_id": account_id}, original_error=e) from e
        finally:
            session.close()

    def _update_cc_payment(self, session: Session, account_id: int, month: str) -> Optional[CCPaymentResult]:
        payment_category = session.query(Category).filter(Category.linked_account_id == account_id).one_or_none()
        if payment_category is None:
            logger.warning(f"Credit account {account_id} has no payment category")
            return None

        start, end = self._month_range(month)
        in_month = (Transaction.account_id == account_id, Transaction.date >= start, Transaction.date <= end)

        spending_rows = session.query(
            Transaction.category_id,
            func.coalesce(func.sum(Transaction.outflow), 0),
            func.coalesce(func.sum(Transaction.inflow), 0)
        ).filter(
            *in_month,
            Transaction.category_id.isnot(None),
            Transaction.category_id != payment_category.id
        ).group_by(Transaction.category_id).all()
        spending = [
            CategorySpending(category_id=category_id, outflow=Milliunit(outflow), inflow=Milliunit(inflow))
            for category_id, outflow, inflow in spending_rows
        ]

        category_availables = {}
        for item in spending:
            category = self._get_category(session, item.category_id)
            category_availables[item.category_id] = self._current_state(session, category, month)[1]

        payments = session.query(func.coalesce(func.sum(Transaction.inflow), 0)).filter(
            *in_month,
            Transaction.category_id.is_(None)
        ).scalar()

        row = self._get_row(session, payment_category.id, month)
        result = calculate_cc_payment_available(CCPaymentInput(
            spending=spending,
            category_availables=category_availables,
            carryforward=self._carryforward(session, payment_category, month),
            assigned=Milliunit(row.assigned) if row is not None else ZERO,
            payments=Milliunit(payments or 0),
        ))

        if row is not None:
            row.activity = result.activity
            row.available = result.available
        elif result.activity != 0:
            session.add(BudgetMonth(
                category_id=payment_category.id,
                month=month,
                assigned=0,
                activity=result.activity,
                available=result.available,
            ))
        self._recompute_later_months(session, payment_category, month)
        return result

    def update_credit_card_payment_budget(self, account_id: int, month: str) -> Optional[CCPaymentResult]:
        """
        Recompute a credit account's payment category for a month.

        Category availables must already reflect this month's spending (see
        refresh_all_budget_activity).

        Returns:
            CCPaymentResult, or None when the account has no payment category
        """
        self._validate_month(month)
        session = self.db_manager.get_session()
        try:
            result = self._update_cc_payment(session, account_id, month)
            session.commit()
            return result
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error updating credit card payment budget: {e}")
            raise BudgetError(
                "Failed to update credit card payment budget",
                details={"account_id": account_id, "month": month},
                original_error=e
            ) from e
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Overspending
    # ------------------------------------------------------------------

    def _overspending_inputs(self, session: Session, month: str) -> List[OverspendingInput]:
        overspent = [b for b in self._budget_for_month(session, month) if b.available < 0]
        if not overspent:
            return []

        start, end = self._month_range(month)
        cash_rows = session.query(
            Transaction.category_id,
            func.coalesce(func.sum(Transaction.outflow - Transaction.inflow), 0)
        ).select_from(Transaction).join(Account, Transaction.account_id == Account.id).filter(
            Account.type != AccountType.CREDIT,
            Transaction.category_id.in_([b.category_id for b in overspent]),
            Transaction.date >= start,
            Transaction.date <= end
        ).group_by(Transaction.category_id).all()
        cash_spending = {category_id: max(0, net) for category_id, net in cash_rows}

        return [
            OverspendingInput(
                category_id=b.category_id,
                available=b.available,
                linked_account_id=b.linked_account_id,
                cash_spending=Milliunit(cash_spending.get(b.category_id, 0)),
            )
            for b in overspent
        ]

    def _cash_overspending(self, session: Session, month: str) -> Milliunit:
        return calculate_cash_overspending(self._overspending_inputs(session, month))

    def get_cash_overspending_for_month(self, month: str) -> Milliunit:
        """Cash portion of all regular-category overspending in a month."""
        self._validate_month(month)
        session = self.db_manager.get_session()
        try:
            return self._cash_overspending(session, month)
        except SQLAlchemyError as e:
            logger.error(f"Error computing cash overspending: {e}")
            raise DatabaseError("Failed to compute cash overspending", details={"month": month}, original_error=e) from e
        finally:
            session.close()

    def get_overspending_types(self, month: str) -> Dict[int, OverspendingType]:
        """
        Classify every overspent category in a month.

        Returns:
            Mapping of category_id to OverspendingType for overspent categories only
        """
        self._validate_month(month)
        session = self.db_manager.get_session()
        try:
            return {
                item.category_id: classify_overspending(item)
                for item in self._overspending_inputs(session, month)
            }
        except SQLAlchemyError as e:
            logger.error(f"Error classifying overspending: {e}")
            raise DatabaseError("Failed to classify overspending", details={"month": month}, original_error=e) from e
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Ready to Assign
    # ------------------------------------------------------------------

    def _account_balances(self, session: Session, credit: bool) -> List[Milliunit]:
        type_filter = Account.type == AccountType.CREDIT if credit else Account.type != AccountType.CREDIT
        rows = session.query(
            func.coalesce(func.sum(Transaction.inflow - Transaction.outflow), 0)
        ).select_from(Transaction).join(Account, Transaction.account_id == Account.id).filter(
            type_filter,
            Transaction.date <= self.clock.today()
        ).group_by(Transaction.account_id).all()
        return [Milliunit(balance) for (balance,) in rows]

    def _positive_cc_balances(self, session: Session) -> Milliunit:
        return Milliunit(sum(max(0, balance) for balance in self._account_balances(session, credit=True)))

    def _sum_assigned(self, session: Session, *criteria) -> Milliunit:
        total = session.query(func.coalesce(func.sum(BudgetMonth.assigned), 0)).select_from(BudgetMonth).join(
            Category, BudgetMonth.category_id == Category.id
        ).join(CategoryGroup).filter(
            CategoryGroup.is_income.is_(False),
            *criteria
        ).scalar()
        return Milliunit(total or 0)

    def _latest_complete_month(self, session: Session, month: str) -> Optional[str]:
        row = session.query(BudgetMonth.month).filter(
            BudgetMonth.month <= month
        ).group_by(BudgetMonth.month).having(
            func.count(BudgetMonth.id) >= self.complete_month_threshold
        ).order_by(BudgetMonth.month.desc()).first()
        return row[0] if row else None

    def _ready_to_assign(self, session: Session, month: str) -> Milliunit:
        cash_balance = Milliunit(sum(self._account_balances(session, credit=False)))
        positive_cc_balances = self._positive_cc_balances(session)
        current_month = self.clock.current_month()

        latest = self._latest_complete_month(session, month)
        if latest is None:
            logger.debug(f"No complete budget month up to {month}; RTA is cash plus positive card balances")
            return calculate_rta(RTAInputs(
                cash_balance=cash_balance,
                positive_cc_balances=positive_cc_balances,
                total_available=ZERO,
                future_assigned=ZERO,
                cash_overspending=ZERO,
                current_month=current_month,
                viewed_month=month,
            ))

        budgets = self._budget_for_month(session, latest)
        total_available = sum(b.available for b in budgets)
        total_overspending = sum(-b.available for b in budgets if b.available < 0 and not b.is_cc_payment)

        return calculate_rta(RTAInputs(
            cash_balance=cash_balance,
            positive_cc_balances=positive_cc_balances,
            total_available=Milliunit(total_available),
            future_assigned=self._sum_assigned(session, BudgetMonth.month > latest, BudgetMonth.month <= month),
            cash_overspending=self._cash_overspending(session, latest),
            current_month=current_month,
            viewed_month=month,
            total_overspending=Milliunit(total_overspending),
        ))

    def get_ready_to_assign(self, month: str) -> Milliunit:
        """
        Calculate Ready to Assign for a viewed month.

        Totals come from the latest "complete" month (one with at least
        ``complete_month_threshold`` rows) at or before the viewed month;
        assignments made after it, up to the viewed month, are subtracted.

        Args:
            month: Viewed month in YYYY-MM format

        Returns:
            Ready to Assign in milliunits (ZERO for past months)
        """
        self._validate_month(month)
        session = self.db_manager.get_session()
        try:
            return self._ready_to_assign(session, month)
        except SQLAlchemyError as e:
            logger.error(f"Error calculating ready to assign: {e}")
            raise DatabaseError("Failed to calculate ready to assign", details={"month": month}, original_error=e) from e
        finally:
            session.close()

    def get_ready_to_assign_breakdown(self, month: str) -> RTABreakdown:
        """Ready to Assign for a month together with the components that explain it."""
        self._validate_month(month)
        session = self.db_manager.get_session()
        try:
            start, end = self._month_range(month)
            inflow = session.query(
                func.coalesce(func.sum(Transaction.inflow - Transaction.outflow), 0)
            ).select_from(Transaction).join(
                Account, Transaction.account_id == Account.id
            ).join(
                Category, Transaction.category_id == Category.id
            ).join(CategoryGroup).filter(
                CategoryGroup.is_income.is_(True),
                Account.type != AccountType.CREDIT,
                Transaction.date >= start,
                Transaction.date <= end
            ).scalar()

            return calculate_rta_breakdown(RTABreakdownInputs(
                rta=self._ready_to_assign(session, month),
                inflow_this_month=Milliunit(inflow or 0),
                positive_cc_balances=self._positive_cc_balances(session),
                assigned_this_month=self._sum_assigned(session, BudgetMonth.month == month),
                cash_overspending_previous_month=self._cash_overspending(session, previous_month(month)),
                assigned_in_future=self._sum_assigned(session, BudgetMonth.month > month),
            ))
        except SQLAlchemyError as e:
            logger.error(f"Error calculating ready to assign breakdown: {e}")
            raise DatabaseError("Failed to calculate breakdown", details={"month": month}, original_error=e) from e
        finally:
            session.close()
