"""Borrowing engine: the borrow/return/payment rules.

Borrowing is refused, in this order, when the borrower is not logged in, owes
any fine, holds an overdue item, or the item is not available. A successful
borrow marks the item unavailable and opens a borrow record due after the
kind's borrow period. A return closes the record, makes the item available
again and posts ``overdue days x daily rate`` to the fine ledger.

Each borrow and each return is one SQLite transaction. The in-memory Media
and Borrower objects are only touched after that transaction commits, so a
storage failure leaves them describing what is actually stored.
"""

from __future__ import annotations

import logging
import math
import sqlite3
from datetime import date, datetime
from typing import Callable, List, Optional

from lending.borrow_records import BorrowRecordStore
from lending.borrower import Borrower
from lending.catalog import Catalog
from lending.database import initialize_database, transaction
from lending.fines import FineLedger
from lending.media import Media
from lending.policy import DEFAULT_POLICY, PolicyTable
from lending.records import BorrowRecord, UserWithOverdueBooks
from lending.results import Outcome
from lending.users import User

logger = logging.getLogger(__name__)


class BorrowingEngine:
    def __init__(
        self,
        db_file: Optional[str] = None,
        policy: PolicyTable = DEFAULT_POLICY,
        today: Callable[[], date] = date.today,
        catalog: Optional[Catalog] = None,
        records: Optional[BorrowRecordStore] = None,
        ledger: Optional[FineLedger] = None,
    ) -> None:
        initialize_database(db_file)
        self.db_file = db_file
        self.policy = policy
        self._today = today
        self.catalog = catalog or Catalog(db_file, initialize=False)
        self.records = records or BorrowRecordStore(db_file, initialize=False)
        self.ledger = ledger or FineLedger(db_file, initialize=False)

    def today(self) -> date:
        return self._today()

    # ------------------------- Session state ------------------------- #
    def open_session(self, user: User) -> Borrower:
        """Start a logged-in session for an authenticated user."""
        borrower = Borrower.from_user(user, logged_in=True)
        return self.load_borrower_state(borrower)

    def load_borrower_state(self, borrower: Borrower) -> Borrower:
        """Refresh the borrower's active records and fine balance from storage."""
        borrower.active_records = self.records.find_active_by_user(borrower.user_id)
        borrower.fine_balance = self.ledger.get_balance(borrower.user_id)
        borrower.loaded_at = datetime.now()
        logger.info("Loaded %d borrowed items for %s", len(borrower.active_records), borrower.username)
        return borrower

    # ------------------------- Borrow / return ------------------------- #
    def borrow(self, borrower: Borrower, media: Media) -> Outcome:
        today = self.today()

        if not borrower.logged_in:
            return self._reject("You must be logged in to borrow media.")
        if borrower.fine_balance > 0:
            return self._reject(f"Please pay your fine ({borrower.fine_balance:.2f}) first.")
        if borrower.overdue_records(today):
            return self._reject("You must return overdue media first.")
        if not media.available:
            return self._reject(f"Media '{media.title}' is not available.")

        due_date = self.policy.due_date(media.kind, today)
        try:
            with transaction(self.db_file) as conn:
                if not self.catalog.set_availability(media.id, False, expected=True, conn=conn):
                    conn.rollback()
                    return self._reject(f"Media '{media.title}' is not available.")
                record_id = self.records.insert(
                    borrower.user_id, media.id, media.kind.value, media.title, today, due_date, conn=conn
                )
                if record_id == -1:
                    conn.rollback()
                    return self._reject(f"Could not record the loan of '{media.title}'. Nothing was borrowed.")
        except sqlite3.Error as e:
            logger.error("Borrow of media %s by user %s failed: %s", media.id, borrower.user_id, e)
            return Outcome.failure("Storage is unavailable. Nothing was borrowed.")

        media.available = False
        borrower.active_records.append(BorrowRecord(
            record_id=record_id,
            user_id=borrower.user_id,
            media_id=media.id,
            media_kind=media.kind.value,
            title=media.title,
            borrow_date=today,
            due_date=due_date,
        ))
        logger.info("User %s borrowed media %s, due %s", borrower.user_id, media.id, due_date)
        return Outcome.success(f"Successfully borrowed '{media.title}'. Due date: {due_date.isoformat()}")

    def return_media(self, borrower: Borrower, media: Media) -> Outcome:
        record = borrower.find_active(media.id)
        if record is None:
            return self._reject("This media is not borrowed by you.")

        today = self.today()
        overdue_days = record.overdue_days(today)
        fine = self.policy.fine_for(record.media_kind, overdue_days)

        try:
            with transaction(self.db_file) as conn:
                if not self.catalog.set_availability(media.id, True, conn=conn):
                    conn.rollback()
                    return self._reject(f"Could not update availability of '{media.title}'. Return not recorded.")
                if not self.records.mark_returned(record.record_id, today, fine, conn=conn):
                    conn.rollback()
                    return self._reject(f"Could not record the return of '{media.title}'. Please try again.")
                if fine > 0 and not self.ledger.add(borrower.user_id, fine, conn=conn):
                    conn.rollback()
                    return self._reject(f"Could not post the fine for '{media.title}'. Return not recorded.")
        except sqlite3.Error as e:
            logger.error("Return of media %s by user %s failed: %s", media.id, borrower.user_id, e)
            return Outcome.failure("Storage is unavailable. Return not recorded.")

        media.available = True
        record.returned = True
        record.return_date = today
        record.fine = fine
        borrower.active_records = [r for r in borrower.active_records if r.record_id != record.record_id]

        message = f"Successfully returned '{media.title}'."
        if fine > 0:
            borrower.fine_balance = self.ledger.get_balance(borrower.user_id)
            logger.info("Fine of %.2f posted to user %s (%d days overdue)", fine, borrower.user_id, overdue_days)
            message += f" Media was {overdue_days} days overdue. Fine: {fine:.2f}."
        message += f" Total fine balance: {borrower.fine_balance:.2f}"
        return Outcome.success(message)

    # ------------------------- Fines ------------------------- #
    def pay_fine(self, borrower: Borrower, amount: float) -> Outcome:
        if not math.isfinite(amount) or amount <= 0 or amount > borrower.fine_balance:
            return self._reject("Invalid payment amount.")
        if not self.ledger.pay(borrower.user_id, amount):
            # The cached balance may be stale; resync before reporting.
            borrower.fine_balance = self.ledger.get_balance(borrower.user_id)
            return self._reject("Payment could not be processed.")

        borrower.fine_balance = self.ledger.get_balance(borrower.user_id)
        logger.info("User %s paid %.2f", borrower.user_id, amount)
        return Outcome.success(f"Payment of {amount:.2f} successful. New balance: {borrower.fine_balance:.2f}")

    def clear_fine(self, user_id: int) -> Outcome:
        if not self.ledger.clear(user_id):
            return Outcome.failure(f"Could not clear the fine of user {user_id}.")
        logger.info("Fine of user %s cleared", user_id)
        return Outcome.success(f"Fine of user {user_id} cleared.")

    # ------------------------- Queries ------------------------- #
    def users_with_overdue_books(self) -> List[UserWithOverdueBooks]:
        return self.records.users_with_overdue_books(self.today())

    @staticmethod
    def _reject(message: str) -> Outcome:
        logger.info("Rejected: %s", message)
        return Outcome.failure(message)
