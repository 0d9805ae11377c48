import sqlite3

import pytest

from lending.database import get_db_connection
from lending.fines import FineLedger


@pytest.fixture
def ledger(db_file):
    return FineLedger(db_file)


def _row_exists(db_file, user_id):
    conn = get_db_connection(db_file)
    try:
        return conn.execute("SELECT 1 FROM user_fines WHERE user_id = ?", (user_id,)).fetchone() is not None
    finally:
        conn.close()


def test_balance_is_created_lazily(ledger, db_file, alice):
    assert not _row_exists(db_file, alice.id)
    assert ledger.get_balance(alice.id) == 0.0
    assert _row_exists(db_file, alice.id)
    assert ledger.get_balance(alice.id) == 0.0


def test_add_accumulates(ledger, alice):
    assert ledger.add(alice.id, 30.0) is True
    assert ledger.add(alice.id, 40.0) is True
    assert ledger.get_balance(alice.id) == 70.0


def test_set_balance_creates_missing_row(ledger, db_file, alice):
    assert ledger.set_balance(alice.id, 12.5) is True
    assert _row_exists(db_file, alice.id)
    assert ledger.get_balance(alice.id) == 12.5


def test_overpayment_is_rejected(ledger, alice):
    ledger.set_balance(alice.id, 20.0)
    assert ledger.pay(alice.id, 25.0) is False
    assert ledger.get_balance(alice.id) == 20.0
    assert ledger.pay(alice.id, 20.0) is True
    assert ledger.get_balance(alice.id) == 0.0


@pytest.mark.parametrize("amount", [0.0, -5.0])
def test_non_positive_payment_is_rejected(ledger, alice, amount):
    ledger.set_balance(alice.id, 20.0)
    assert ledger.pay(alice.id, amount) is False
    assert ledger.get_balance(alice.id) == 20.0


def test_partial_payment(ledger, alice):
    ledger.add(alice.id, 100.0)
    assert ledger.pay(alice.id, 35.5) is True
    assert ledger.get_balance(alice.id) == 64.5


def test_clear(ledger, alice):
    ledger.add(alice.id, 100.0)
    assert ledger.clear(alice.id) is True
    assert ledger.get_balance(alice.id) == 0.0


def test_balance_never_goes_negative(ledger, alice):
    ledger.add(alice.id, 10.0)
    assert ledger.set_balance(alice.id, -1.0) is False
    assert ledger.add(alice.id, -50.0) is False
    ledger.pay(alice.id, 10.0)
    ledger.pay(alice.id, 0.01)
    ledger.clear(alice.id)
    assert ledger.get_balance(alice.id) >= 0.0


def test_amounts_are_rounded_to_cents(ledger, alice):
    ledger.add(alice.id, 0.1)
    ledger.add(alice.id, 0.2)
    assert ledger.get_balance(alice.id) == 0.3


def test_storage_failure_on_lazy_create_reads_as_zero(ledger, db_file):
    # No such user: the foreign key makes the lazy insert fail.
    assert ledger.get_balance(9999) == 0.0
    assert not _row_exists(db_file, 9999)


def test_unreachable_database_reads_as_zero(tmp_path):
    ledger = FineLedger(str(tmp_path / "missing" / "library.db"), initialize=False)
    assert ledger.get_balance(1) == 0.0
    assert ledger.set_balance(1, 5.0) is False
    assert ledger.pay(1, 5.0) is False


def test_check_constraint_guards_storage(db_file, alice):
    conn = get_db_connection(db_file)
    try:
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute("INSERT INTO user_fines (user_id, total_fine) VALUES (?, -1)", (alice.id,))
    finally:
        conn.close()


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_payment_is_rejected(ledger, alice, amount):
    ledger.set_balance(alice.id, 20.0)
    assert ledger.pay(alice.id, amount) is False
    assert ledger.get_balance(alice.id) == 20.0


@pytest.mark.parametrize("amount", [float("nan"), float("inf")])
def test_non_finite_balance_is_rejected(ledger, alice, amount):
    ledger.set_balance(alice.id, 20.0)
    assert ledger.set_balance(alice.id, amount) is False
    assert ledger.add(alice.id, amount) is False
    assert ledger.get_balance(alice.id) == 20.0


def test_add_does_not_overwrite_debt_when_read_fails(ledger, alice, monkeypatch):
    ledger.set_balance(alice.id, 50.0)

    def locked(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(ledger, "_read_balance", locked)
    assert ledger.add(alice.id, 10.0) is False
    assert ledger.pay(alice.id, 10.0) is False
    monkeypatch.undo()

    assert ledger.get_balance(alice.id) == 50.0
