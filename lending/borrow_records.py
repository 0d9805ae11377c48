import logging
import sqlite3
from datetime import date
from typing import List, Optional

from lending.database import connection_scope, initialize_database
from lending.records import BorrowRecord, UserWithOverdueBooks

logger = logging.getLogger(__name__)


class BorrowRecordStore:
    """Persistence for borrow records (who holds what, until when, and the fine at return)."""

    def __init__(self, db_file: Optional[str] = None, initialize: bool = True) -> None:
        self.db_file = db_file
        if initialize:
            initialize_database(db_file)

    def insert(self, user_id: int, media_id: int, media_kind: str, media_title: str,
               borrow_date: date, due_date: date, *, conn: Optional[sqlite3.Connection] = None) -> int:
        """Insert a new active record. Returns its id, or -1 if the insert failed."""
        try:
            with connection_scope(self.db_file, conn) as c:
                cursor = c.execute(
                    "INSERT INTO borrow_records (user_id, media_id, media_type, media_title, borrow_date, due_date) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (user_id, media_id, media_kind, media_title, borrow_date.isoformat(), due_date.isoformat()),
                )
                return int(cursor.lastrowid)
        except sqlite3.Error as e:
            logger.error("Failed to insert borrow record for user %s, media %s: %s", user_id, media_id, e)
            return -1

    def mark_returned(self, record_id: int, return_date: date, fine: float, *,
                      conn: Optional[sqlite3.Connection] = None) -> bool:
        """Close an active record. Already returned records are left untouched."""
        try:
            with connection_scope(self.db_file, conn) as c:
                cursor = c.execute(
                    "UPDATE borrow_records SET returned = 1, return_date = ?, fine = ? "
                    "WHERE id = ? AND returned = 0",
                    (return_date.isoformat(), fine, record_id),
                )
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error("Failed to mark borrow record %s as returned: %s", record_id, e)
            return False

    def find_by_id(self, record_id: int) -> Optional[BorrowRecord]:
        try:
            with connection_scope(self.db_file) as conn:
                row = conn.execute("SELECT * FROM borrow_records WHERE id = ?", (record_id,)).fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to load borrow record %s: %s", record_id, e)
            return None
        return BorrowRecord.from_row(row) if row else None

    def find_active_by_user(self, user_id: int) -> List[BorrowRecord]:
        try:
            with connection_scope(self.db_file) as conn:
                rows = conn.execute(
                    "SELECT * FROM borrow_records WHERE user_id = ? AND returned = 0 ORDER BY due_date, id",
                    (user_id,),
                ).fetchall()
        except sqlite3.Error as e:
            logger.error("Error loading borrowed media for user %s: %s", user_id, e)
            return []
        return [BorrowRecord.from_row(row) for row in rows]

    def count_active_by_user(self, user_id: int) -> int:
        try:
            with connection_scope(self.db_file) as conn:
                row = conn.execute(
                    "SELECT COUNT(*) FROM borrow_records WHERE user_id = ? AND returned = 0", (user_id,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to count borrow records for user %s: %s", user_id, e)
            return 0
        return int(row[0])

    def count_active_by_media(self, media_id: int) -> int:
        try:
            with connection_scope(self.db_file) as conn:
                row = conn.execute(
                    "SELECT COUNT(*) FROM borrow_records WHERE media_id = ? AND returned = 0", (media_id,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to count borrow records for media %s: %s", media_id, e)
            return 0
        return int(row[0])

    def users_with_overdue_books(self, today: Optional[date] = None) -> List[UserWithOverdueBooks]:
        """Users holding at least one unreturned item past its due date, with the count."""
        today = today or date.today()
        try:
            with connection_scope(self.db_file) as conn:
                rows = conn.execute(
                    "SELECT u.id, u.username, COUNT(br.id) AS overdue_count "
                    "FROM users u JOIN borrow_records br ON u.id = br.user_id "
                    "WHERE br.returned = 0 AND br.due_date < ? "
                    "GROUP BY u.id, u.username ORDER BY u.username",
                    (today.isoformat(),),
                ).fetchall()
        except sqlite3.Error as e:
            logger.error("Failed to load users with overdue items: %s", e)
            return []
        return [
            UserWithOverdueBooks(user_id=row["id"], username=row["username"], overdue_count=row["overdue_count"])
            for row in rows
        ]
