"""Loan policy per media kind: how long an item may be kept and what a late day costs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from types import MappingProxyType
from typing import Mapping, Optional, Union

from lending.media import MediaKind


@dataclass(frozen=True)
class LoanPolicy:
    borrow_period_days: int
    fine_per_day: float


@dataclass(frozen=True)
class PolicyTable:
    """Read-only lookup from media kind to its LoanPolicy.

    Unknown kinds are not an error: they get a zero borrow period and a zero
    daily fine.
    """

    policies: Mapping[str, LoanPolicy]

    @classmethod
    def default(cls) -> "PolicyTable":
        return cls(MappingProxyType({
            MediaKind.BOOK.value: LoanPolicy(borrow_period_days=28, fine_per_day=10.0),
            MediaKind.CD.value: LoanPolicy(borrow_period_days=7, fine_per_day=20.0),
        }))

    def lookup(self, kind: Union[MediaKind, str, None]) -> Optional[LoanPolicy]:
        if isinstance(kind, MediaKind):
            key = kind.value
        else:
            key = (kind or "").strip().lower()
        return self.policies.get(key)

    def borrow_period_days(self, kind: Union[MediaKind, str, None]) -> int:
        policy = self.lookup(kind)
        return policy.borrow_period_days if policy else 0

    def fine_per_day(self, kind: Union[MediaKind, str, None]) -> float:
        policy = self.lookup(kind)
        return policy.fine_per_day if policy else 0.0

    def due_date(self, kind: Union[MediaKind, str, None], borrow_date: date) -> date:
        return borrow_date + timedelta(days=self.borrow_period_days(kind))

    def fine_for(self, kind: Union[MediaKind, str, None], overdue_days: int) -> float:
        if overdue_days <= 0:
            return 0.0
        return overdue_days * self.fine_per_day(kind)


DEFAULT_POLICY = PolicyTable.default()
