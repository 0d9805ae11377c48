from datetime import date

from lending.records import BorrowRecord


def make_record(due: date, kind: str = "book") -> BorrowRecord:
    return BorrowRecord(
        record_id=1,
        user_id=1,
        media_id=7,
        media_kind=kind,
        title="Dune",
        borrow_date=date(2024, 1, 1),
        due_date=due,
    )


def test_not_overdue_on_due_date():
    record = make_record(date(2024, 2, 1))
    assert record.is_overdue(date(2024, 2, 1)) is False
    assert record.overdue_days(date(2024, 2, 1)) == 0


def test_overdue_the_day_after_due_date():
    record = make_record(date(2024, 2, 1))
    assert record.is_overdue(date(2024, 2, 2)) is True
    assert record.overdue_days(date(2024, 2, 2)) == 1


def test_overdue_days_counts_calendar_days():
    record = make_record(date(2024, 2, 27))
    # 2024 is a leap year
    assert record.overdue_days(date(2024, 3, 2)) == 4


def test_not_overdue_before_due_date():
    record = make_record(date(2024, 2, 1))
    assert record.overdue_days(date(2024, 1, 15)) == 0


def test_defaults_to_wall_clock():
    record = make_record(date(2000, 1, 1))
    assert record.is_overdue() is True
    assert record.overdue_days() > 0


def test_new_record_has_no_fine():
    record = make_record(date(2024, 2, 1))
    assert record.returned is False
    assert record.return_date is None
    assert record.fine == 0.0
    assert record.to_dict()["return_date"] is None
