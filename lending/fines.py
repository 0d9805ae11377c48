import logging
import math
import sqlite3
from typing import Optional

from lending.database import connection_scope, initialize_database

logger = logging.getLogger(__name__)


class FineLedger:
    """Per-user running balance of unpaid fines (one ``user_fines`` row per user).

    Balances are finite and never go below zero. Rows are created lazily:
    reading the balance of a user without a row creates one at 0.0.
    """

    def __init__(self, db_file: Optional[str] = None, initialize: bool = True) -> None:
        self.db_file = db_file
        if initialize:
            initialize_database(db_file)

    def get_balance(self, user_id: int, *, conn: Optional[sqlite3.Connection] = None) -> float:
        try:
            balance = self._read_balance(user_id, conn=conn)
        except sqlite3.Error as e:
            logger.error("Failed to read fine balance for user %s: %s", user_id, e)
            return 0.0
        if balance is None:
            self._initialize(user_id, conn=conn)
            return 0.0
        return balance

    def set_balance(self, user_id: int, amount: float, *, conn: Optional[sqlite3.Connection] = None) -> bool:
        """Overwrite the balance, creating the row if the user has none yet."""
        if not math.isfinite(amount) or amount < 0:
            logger.warning("Refusing fine balance %s for user %s", amount, user_id)
            return False
        amount = round(amount, 2)
        try:
            with connection_scope(self.db_file, conn) as c:
                cursor = c.execute("UPDATE user_fines SET total_fine = ? WHERE user_id = ?", (amount, user_id))
                if cursor.rowcount == 0:
                    c.execute("INSERT INTO user_fines (user_id, total_fine) VALUES (?, ?)", (user_id, amount))
                return True
        except sqlite3.Error as e:
            logger.error("Failed to set fine balance for user %s: %s", user_id, e)
            return False

    def add(self, user_id: int, amount: float, *, conn: Optional[sqlite3.Connection] = None) -> bool:
        current = self._current_balance(user_id, conn=conn)
        if current is None:
            return False
        return self.set_balance(user_id, current + amount, conn=conn)

    def pay(self, user_id: int, amount: float, *, conn: Optional[sqlite3.Connection] = None) -> bool:
        current = self._current_balance(user_id, conn=conn)
        if current is None:
            return False
        if not math.isfinite(amount) or amount <= 0 or amount > current:
            logger.warning("Invalid payment amount %s for user %s (balance %.2f)", amount, user_id, current)
            return False
        return self.set_balance(user_id, current - amount, conn=conn)

    def clear(self, user_id: int, *, conn: Optional[sqlite3.Connection] = None) -> bool:
        return self.set_balance(user_id, 0.0, conn=conn)

    def _current_balance(self, user_id: int, *, conn: Optional[sqlite3.Connection] = None) -> Optional[float]:
        # Writes must not start from the fail-open 0.0 of get_balance.
        try:
            balance = self._read_balance(user_id, conn=conn)
        except sqlite3.Error as e:
            logger.error("Failed to read fine balance for user %s: %s", user_id, e)
            return None
        return 0.0 if balance is None else balance

    def _read_balance(self, user_id: int, *, conn: Optional[sqlite3.Connection] = None) -> Optional[float]:
        with connection_scope(self.db_file, conn) as c:
            row = c.execute("SELECT total_fine FROM user_fines WHERE user_id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return float(row["total_fine"] or 0.0)

    def _initialize(self, user_id: int, *, conn: Optional[sqlite3.Connection] = None) -> bool:
        try:
            with connection_scope(self.db_file, conn) as c:
                c.execute("INSERT OR IGNORE INTO user_fines (user_id, total_fine) VALUES (?, 0.0)", (user_id,))
                return True
        except sqlite3.Error as e:
            logger.error("Failed to initialize fine record for user %s: %s", user_id, e)
            return False
