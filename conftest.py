import os
from datetime import date, timedelta

import pytest

from lending.borrowing import BorrowingEngine
from lending.database import initialize_database
from lending.users import UserStore

START_DATE = date(2024, 3, 1)


class FakeClock:
    """Callable returning a controllable "today"."""

    def __init__(self, start: date) -> None:
        self.current = start

    def __call__(self) -> date:
        return self.current

    def advance(self, days: int) -> None:
        self.current += timedelta(days=days)


@pytest.fixture
def db_file(tmp_path, request):
    # Unique database file for each test
    db_file = str(tmp_path / f"test_{request.node.name}.db")
    initialize_database(db_file)
    yield db_file
    if os.path.exists(db_file):
        os.remove(db_file)


@pytest.fixture
def clock():
    return FakeClock(START_DATE)


@pytest.fixture
def engine(db_file, clock):
    return BorrowingEngine(db_file, today=clock)


@pytest.fixture
def users(db_file):
    return UserStore(db_file)


@pytest.fixture
def alice(users):
    return users.register("alice", "secret")


@pytest.fixture
def bob(users):
    return users.register("bob", "hunter2")


@pytest.fixture
def borrower(engine, alice):
    return engine.open_session(alice)


@pytest.fixture
def book(engine):
    return engine.catalog.add_book("Ulysses", "James Joyce", "9780199535675")


@pytest.fixture
def cd(engine):
    return engine.catalog.add_cd("Kind of Blue", "Miles Davis", "Jazz", 46)
