import logging
from typing import Optional

import typer

from lending.borrowing import BorrowingEngine
from lending.borrower import Borrower
from lending.config import settings
from lending.database import initialize_database, resolve_db_file
from lending.media import Media, MediaKind
from lending.notifications import EmailNotifier, default_email_server, send_overdue_reminders
from lending.reporting import borrowed_items_view, generate_overdue_report
from lending.results import Outcome
from lending.ui_helpers import print_media_list, print_overdue_users, print_status, set_output_mode
from lending.users import ROLE_ADMIN, ROLE_USER, User, UserStore

APP_NAME = "Library Lending CLI"

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


class LendingManager:
    """Holds the engine and user store for the database selected with --db."""

    _engine: Optional[BorrowingEngine] = None
    _users: Optional[UserStore] = None
    _db_file: Optional[str] = None

    @classmethod
    def use_database(cls, db_file: Optional[str]) -> None:
        if db_file != cls._db_file:
            cls._engine = None
            cls._users = None
            cls._db_file = db_file

    @classmethod
    def db_file(cls) -> Optional[str]:
        return cls._db_file

    @classmethod
    def engine(cls) -> BorrowingEngine:
        if cls._engine is None:
            cls._engine = BorrowingEngine(cls._db_file)
        return cls._engine

    @classmethod
    def users(cls) -> UserStore:
        if cls._users is None:
            cls._users = UserStore(cls._db_file)
        return cls._users


def _finish(outcome: Outcome) -> None:
    print(outcome.message)
    if not outcome:
        raise typer.Exit(code=1)


def _fail(message: str) -> None:
    print(message)
    raise typer.Exit(code=1)


def _login(username: str, password: str) -> User:
    user = LendingManager.users().authenticate(username, password)
    if user is None:
        _fail("Invalid username or password.")
    return user


def _session(username: str, password: str) -> Borrower:
    return LendingManager.engine().open_session(_login(username, password))


def _require_admin(username: str, password: str) -> User:
    user = _login(username, password)
    if not user.is_admin:
        _fail("Administrator account required.")
    return user


def _media(media_id: int) -> Media:
    media = LendingManager.engine().catalog.find_media(media_id)
    if media is None:
        _fail(f"Media with ID {media_id} not found.")
    return media


# --- Typer CLI application ---
app = typer.Typer(help=APP_NAME)

UsernameOption = typer.Option(..., "--username", "-u", help="Account username")
PasswordOption = typer.Option(..., "--password", "-p", prompt=True, hide_input=True, help="Account password")


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Output format: plain | json | rich (default: plain)"
    ),
    db: Optional[str] = typer.Option(None, "--db", help="SQLite database file (default: LIBRARY_DB_FILE)"),
):
    """Global options (output mode, database file)."""
    if output:
        set_output_mode(output)
    LendingManager.use_database(db)


@app.command("init-db")
def cli_init_db():
    """Create the database tables if they do not exist."""
    initialize_database(LendingManager.db_file())
    print(f"Database initialized at {resolve_db_file(LendingManager.db_file())}")


@app.command("register")
def cli_register(
    username: str = typer.Argument(..., help="New username"),
    password: str = PasswordOption,
    admin: bool = typer.Option(False, "--admin", help="Create an administrator account"),
):
    """Register a borrower (or administrator) account."""
    try:
        user = LendingManager.users().register(username, password, ROLE_ADMIN if admin else ROLE_USER)
    except ValueError as e:
        _fail(f"Error: {e}")
    print(f"Registered {user.role} {user.username} (ID {user.id})")


@app.command("add-book")
def cli_add_book(
    title: str,
    author: str,
    isbn: str,
    username: str = UsernameOption,
    password: str = PasswordOption,
):
    """Add a book to the catalog (administrators only)."""
    _require_admin(username, password)
    try:
        media = LendingManager.engine().catalog.add_book(title, author, isbn)
    except ValueError as e:
        _fail(f"Error: {e}")
    if media is None:
        _fail("Error: Failed to create media record.")
    print(f"Book added successfully: {media.title} (ID {media.id})")


@app.command("add-cd")
def cli_add_cd(
    title: str,
    artist: str,
    duration: int = typer.Option(..., "--duration", "-d", help="Duration in minutes"),
    genre: str = typer.Option("", "--genre", "-g", help="Genre"),
    username: str = UsernameOption,
    password: str = PasswordOption,
):
    """Add a CD to the catalog (administrators only)."""
    _require_admin(username, password)
    try:
        media = LendingManager.engine().catalog.add_cd(title, artist, genre, duration)
    except ValueError as e:
        _fail(f"Error: {e}")
    if media is None:
        _fail("Error: Failed to create media record.")
    print(f"CD added successfully: {media.title} (ID {media.id})")


@app.command("list")
def cli_list(kind: Optional[str] = typer.Option(None, "--kind", "-k", help="book | cd")):
    """List catalog items."""
    media_kind = None
    if kind:
        media_kind = MediaKind.parse(kind)
        if media_kind is None:
            _fail(f"Unknown media kind: {kind}. Use book or cd.")
    print_media_list(LendingManager.engine().catalog.list_media(media_kind))


@app.command("search")
def cli_search(
    term: str = typer.Argument(..., help="Search term"),
    kind: str = typer.Option("book", "--kind", "-k", help="book | cd"),
    by: str = typer.Option("title", "--by", "-b", help="book: title|author|isbn, cd: title|artist|genre"),
):
    """Search books or CDs."""
    catalog = LendingManager.engine().catalog
    media_kind = MediaKind.parse(kind)
    if media_kind is None:
        _fail(f"Unknown media kind: {kind}. Use book or cd.")
    results = catalog.search_cds(term, by) if media_kind is MediaKind.CD else catalog.search_books(term, by)
    print_media_list(results)


@app.command("borrow")
def cli_borrow(media_id: int, username: str = UsernameOption, password: str = PasswordOption):
    """Borrow a media item."""
    borrower = _session(username, password)
    _finish(LendingManager.engine().borrow(borrower, _media(media_id)))


@app.command("return")
def cli_return(media_id: int, username: str = UsernameOption, password: str = PasswordOption):
    """Return a borrowed media item."""
    borrower = _session(username, password)
    _finish(LendingManager.engine().return_media(borrower, _media(media_id)))


@app.command("pay")
def cli_pay(amount: float, username: str = UsernameOption, password: str = PasswordOption):
    """Pay towards your fine balance."""
    borrower = _session(username, password)
    _finish(LendingManager.engine().pay_fine(borrower, amount))


@app.command("status")
def cli_status(username: str = UsernameOption, password: str = PasswordOption):
    """Show your borrowed items and fine balance."""
    borrower = _session(username, password)
    print_status(borrower, borrowed_items_view(borrower, LendingManager.engine().today()))


@app.command("report")
def cli_report(username: str = UsernameOption, password: str = PasswordOption):
    """Show your overdue items with the fines they would incur today."""
    engine = LendingManager.engine()
    borrower = _session(username, password)
    print(generate_overdue_report(borrower, engine.policy, engine.today()))


@app.command("overdue-users")
def cli_overdue_users(username: str = UsernameOption, password: str = PasswordOption):
    """List users with overdue items (administrators only)."""
    _require_admin(username, password)
    print_overdue_users(LendingManager.engine().users_with_overdue_books())


@app.command("clear-fine")
def cli_clear_fine(
    target: str = typer.Argument(..., help="Username whose fine is cleared"),
    username: str = UsernameOption,
    password: str = PasswordOption,
):
    """Clear a user's fine balance (administrators only)."""
    _require_admin(username, password)
    user = LendingManager.users().find_by_username(target)
    if user is None:
        _fail(f"User {target} not found.")
    _finish(LendingManager.engine().clear_fine(user.id))


@app.command("remind")
def cli_remind(username: str = UsernameOption, password: str = PasswordOption):
    """Email overdue reminders to every user holding overdue items (administrators only)."""
    _require_admin(username, password)
    engine = LendingManager.engine()
    notifier = EmailNotifier(default_email_server(settings))
    summary = send_overdue_reminders(engine.records, notifier, engine.today())
    print(f"Sent {summary.sent} overdue reminder(s).")
    if summary.failed:
        _fail(f"{summary.failed} reminder(s) could not be sent.")


if __name__ == "__main__":
    app()
