from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Mapping, Optional


@dataclass
class BorrowRecord:
    """One loan of one media item to one borrower."""

    record_id: int
    user_id: int
    media_id: int
    media_kind: str
    title: str
    borrow_date: date
    due_date: date
    returned: bool = False
    return_date: Optional[date] = None
    fine: float = 0.0

    def is_overdue(self, today: Optional[date] = None) -> bool:
        """True when ``today`` is strictly after the due date."""
        today = today or date.today()
        return today > self.due_date

    def overdue_days(self, today: Optional[date] = None) -> int:
        """Whole calendar days past the due date, 0 if not overdue."""
        today = today or date.today()
        if not self.is_overdue(today):
            return 0
        return (today - self.due_date).days

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "user_id": self.user_id,
            "media_id": self.media_id,
            "media_kind": self.media_kind,
            "title": self.title,
            "borrow_date": self.borrow_date.isoformat(),
            "due_date": self.due_date.isoformat(),
            "returned": self.returned,
            "return_date": self.return_date.isoformat() if self.return_date else None,
            "fine": self.fine,
        }

    @staticmethod
    def from_row(row: Mapping[str, Any]) -> "BorrowRecord":
        return_date = row["return_date"]
        return BorrowRecord(
            record_id=int(row["id"]),
            user_id=int(row["user_id"]),
            media_id=int(row["media_id"]),
            media_kind=row["media_type"],
            title=row["media_title"],
            borrow_date=date.fromisoformat(row["borrow_date"]),
            due_date=date.fromisoformat(row["due_date"]),
            returned=bool(row["returned"]),
            return_date=date.fromisoformat(return_date) if return_date else None,
            fine=float(row["fine"] or 0.0),
        )


@dataclass(frozen=True)
class UserWithOverdueBooks:
    user_id: int
    username: str
    overdue_count: int
