from datetime import date

import pytest

from lending.media import MediaKind
from lending.policy import DEFAULT_POLICY, LoanPolicy, PolicyTable


def test_default_book_policy():
    assert DEFAULT_POLICY.borrow_period_days("book") == 28
    assert DEFAULT_POLICY.fine_per_day("book") == 10.0


def test_default_cd_policy():
    assert DEFAULT_POLICY.borrow_period_days(MediaKind.CD) == 7
    assert DEFAULT_POLICY.fine_per_day(MediaKind.CD) == 20.0


def test_lookup_ignores_case_and_whitespace():
    assert DEFAULT_POLICY.borrow_period_days(" Book ") == 28
    assert DEFAULT_POLICY.fine_per_day("CD") == 20.0


@pytest.mark.parametrize("kind", ["dvd", "", None])
def test_unknown_kind_falls_back_to_zero(kind):
    assert DEFAULT_POLICY.borrow_period_days(kind) == 0
    assert DEFAULT_POLICY.fine_per_day(kind) == 0.0
    assert DEFAULT_POLICY.lookup(kind) is None


def test_due_date_adds_borrow_period():
    borrowed = date(2024, 1, 30)
    assert DEFAULT_POLICY.due_date(MediaKind.BOOK, borrowed) == date(2024, 2, 27)
    assert DEFAULT_POLICY.due_date(MediaKind.CD, borrowed) == date(2024, 2, 6)


def test_fine_for_overdue_days():
    assert DEFAULT_POLICY.fine_for("cd", 5) == 100.0
    assert DEFAULT_POLICY.fine_for("book", 3) == 30.0
    assert DEFAULT_POLICY.fine_for("book", 0) == 0.0
    assert DEFAULT_POLICY.fine_for("book", -2) == 0.0


def test_policy_table_is_read_only():
    with pytest.raises(TypeError):
        DEFAULT_POLICY.policies["book"] = LoanPolicy(1, 1.0)


def test_custom_policy_can_be_injected():
    table = PolicyTable({"book": LoanPolicy(borrow_period_days=14, fine_per_day=1.5)})
    assert table.borrow_period_days("book") == 14
    assert table.fine_for("book", 2) == 3.0
    assert table.borrow_period_days("cd") == 0
