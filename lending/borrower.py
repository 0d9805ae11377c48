from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from lending.records import BorrowRecord
from lending.users import User


@dataclass
class Borrower:
    """Session view of a borrower.

    ``active_records`` and ``fine_balance`` are a snapshot of storage taken by
    ``BorrowingEngine.load_borrower_state`` (``loaded_at``). The engine updates
    them after its own borrow/return/payment calls; changes made by anyone
    else are only seen after the next load.
    """

    user_id: int
    username: str
    logged_in: bool = False
    active_records: List[BorrowRecord] = field(default_factory=list)
    fine_balance: float = 0.0
    loaded_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User, logged_in: bool = True) -> "Borrower":
        return cls(user_id=user.id, username=user.username, logged_in=logged_in)

    def overdue_records(self, today: Optional[date] = None) -> List[BorrowRecord]:
        return [r for r in self.active_records if r.is_overdue(today)]

    def find_active(self, media_id: int) -> Optional[BorrowRecord]:
        for record in self.active_records:
            if record.media_id == media_id:
                return record
        return None

    def logout(self) -> None:
        self.logged_in = False
