import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from dotenv import load_dotenv

from lending.config import settings

# Make sure .env is loaded before the database file is resolved, whatever the
# import order of config/database turns out to be.
load_dotenv()

logger = logging.getLogger(__name__)

# Default database file.
# Priority:
# 1) explicit db_file argument passed by the caller
# 2) LIBRARY_DB_FILE environment variable
# 3) settings.database_file
DATABASE_FILE = os.environ.get("LIBRARY_DB_FILE") or settings.database_file


def resolve_db_file(db_file: Optional[str] = None) -> str:
    return db_file or DATABASE_FILE


def get_db_connection(db_file: Optional[str] = None) -> sqlite3.Connection:
    """Open a connection to the SQLite database with row access by column name."""
    conn = sqlite3.connect(resolve_db_file(db_file))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def connection_scope(db_file: Optional[str] = None,
                     conn: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
    """Yield a usable connection.

    When ``conn`` is given it belongs to an outer transaction: it is yielded
    as-is and neither committed nor closed here. Otherwise a fresh connection
    is opened, committed on success and always closed.
    """
    if conn is not None:
        yield conn
        return
    own = get_db_connection(db_file)
    try:
        yield own
        own.commit()
    finally:
        own.close()


@contextmanager
def transaction(db_file: Optional[str] = None) -> Iterator[sqlite3.Connection]:
    """Run several statements atomically.

    Commits when the block exits normally. Rolls back when it raises. A block
    may also call ``conn.rollback()`` itself and return; the final commit is
    then a no-op.
    """
    conn = get_db_connection(db_file)
    try:
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()


def create_tables(db_file: Optional[str] = None) -> None:
    """Create the required tables if they do not exist yet."""
    conn = get_db_connection(db_file)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL,
                salt TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS media (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                media_type TEXT NOT NULL,
                available INTEGER NOT NULL DEFAULT 1
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id INTEGER PRIMARY KEY,
                author TEXT NOT NULL,
                isbn TEXT NOT NULL UNIQUE,
                FOREIGN KEY (id) REFERENCES media(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS cds (
                id INTEGER PRIMARY KEY,
                artist TEXT NOT NULL,
                genre TEXT,
                duration INTEGER,
                FOREIGN KEY (id) REFERENCES media(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS borrow_records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                media_id INTEGER NOT NULL,
                media_type TEXT NOT NULL,
                media_title TEXT NOT NULL,
                borrow_date TEXT NOT NULL,
                due_date TEXT NOT NULL,
                returned INTEGER DEFAULT 0,
                return_date TEXT,
                fine REAL DEFAULT 0.0,
                FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
                FOREIGN KEY (media_id) REFERENCES media(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS user_fines (
                user_id INTEGER PRIMARY KEY,
                total_fine REAL DEFAULT 0.0 CHECK(total_fine >= 0),
                FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
            )
        """)

        # Databases created before admin accounts existed have no role column.
        cursor.execute("PRAGMA table_info(users)")
        columns = [column[1] for column in cursor.fetchall()]
        if "role" not in columns:
            cursor.execute("ALTER TABLE users ADD COLUMN role TEXT NOT NULL DEFAULT 'user'")

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_media_type ON media(media_type)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_borrow_records_user_returned ON borrow_records(user_id, returned)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_borrow_records_media_returned ON borrow_records(media_id, returned)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_borrow_records_due_date ON borrow_records(due_date)")

        conn.commit()
    finally:
        conn.close()


def initialize_database(db_file: Optional[str] = None) -> None:
    """Initialize the database, creating tables when needed."""
    create_tables(db_file)
    logger.debug("Database ready at %s", resolve_db_file(db_file))
