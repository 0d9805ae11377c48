"""Read-only overdue views.

The fines shown here are a live projection (overdue days so far x daily
rate). They are not the fines posted to the ledger, which are only computed
at return time, and nothing in this module writes to storage.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from lending.borrow_records import BorrowRecordStore
from lending.borrower import Borrower
from lending.media import MediaKind
from lending.policy import DEFAULT_POLICY, PolicyTable
from lending.records import BorrowRecord, UserWithOverdueBooks

NO_OVERDUE_MESSAGE = "You have no overdue items."
NO_BORROWED_MESSAGE = "You have no borrowed items."


@dataclass(frozen=True)
class OverdueLine:
    title: str
    kind: str
    overdue_days: int
    fine: float

    def render(self) -> str:
        return f"- Title: '{self.title}', Type: {self.kind}, Overdue Days: {self.overdue_days}, Fine: {self.fine:.2f}"


@dataclass(frozen=True)
class OverdueReport:
    lines: List[OverdueLine]
    total_fine: float

    def render(self) -> str:
        if not self.lines:
            return NO_OVERDUE_MESSAGE
        out = ["=== Overdue Items Report ==="]
        out.extend(line.render() for line in self.lines)
        out.append("-----------------------------")
        out.append(f"Total Overdue Fines: {self.total_fine:.2f}")
        out.append("=============================")
        return "\n".join(out)


def _kind_label(raw: str) -> str:
    kind = MediaKind.parse(raw)
    return kind.label if kind else raw


def overdue_items(borrower: Borrower, today: Optional[date] = None) -> List[BorrowRecord]:
    return borrower.overdue_records(today)


def build_overdue_report(borrower: Borrower, policy: PolicyTable = DEFAULT_POLICY,
                         today: Optional[date] = None) -> OverdueReport:
    lines: List[OverdueLine] = []
    total = 0.0
    for record in overdue_items(borrower, today):
        days = record.overdue_days(today)
        fine = policy.fine_for(record.media_kind, days)
        total += fine
        lines.append(OverdueLine(title=record.title, kind=_kind_label(record.media_kind), overdue_days=days, fine=fine))
    return OverdueReport(lines=lines, total_fine=total)


def generate_overdue_report(borrower: Borrower, policy: PolicyTable = DEFAULT_POLICY,
                            today: Optional[date] = None) -> str:
    return build_overdue_report(borrower, policy, today).render()


def borrowed_items_view(borrower: Borrower, today: Optional[date] = None) -> str:
    """Plain-text listing of the borrower's active loans with due dates."""
    if not borrower.active_records:
        return NO_BORROWED_MESSAGE
    out = ["=== Your Borrowed Items ==="]
    for record in borrower.active_records:
        out.append(f"ID: {record.media_id}, Title: '{record.title}', Type: {record.media_kind}")
        out.append(f"Due Date: {record.due_date.isoformat()}")
        if record.is_overdue(today):
            out.append(f"WARNING: OVERDUE by {record.overdue_days(today)} days")
        out.append("---")
    out.append("===========================")
    return "\n".join(out)


def users_with_overdue_books(store: BorrowRecordStore, today: Optional[date] = None) -> List[UserWithOverdueBooks]:
    return store.users_with_overdue_books(today)
