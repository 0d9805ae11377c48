import json
import os
from typing import List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from lending.borrower import Borrower
from lending.media import Media
from lending.records import UserWithOverdueBooks

# Environment variable controlling CLI output mode.
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LENDING_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_media_list(items: List[Media]) -> None:
    """Print catalog items in the current output mode.
    - plain: one ``str(media)`` line per item, or 'No media in library.'
    - json: JSON array of Media.to_dict()
    - rich: Rich table
    """
    mode = get_output_mode()

    if not items:
        print("No media in library.")
        return

    if mode == "json":
        print(json.dumps([m.to_dict() for m in items], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Catalog", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Type", style="white")
        table.add_column("Available", style="white")
        for m in items:
            table.add_row(str(m.id), m.title, m.kind.label, "Yes" if m.available else "No")
        _console.print(table)
    else:
        for m in items:
            print(str(m))


def print_status(borrower: Borrower, borrowed_view: str) -> None:
    mode = get_output_mode()

    if mode == "json":
        payload = {
            "user_id": borrower.user_id,
            "username": borrower.username,
            "fine_balance": borrower.fine_balance,
            "active_records": [r.to_dict() for r in borrower.active_records],
        }
        print(json.dumps(payload, ensure_ascii=False))
    elif mode == "rich":
        content = f"[bold]Fine Balance:[/] {borrower.fine_balance:.2f}\n\n{borrowed_view}"
        _console.print(Panel.fit(content, title=f"👤 {borrower.username}", border_style="blue"))
    else:
        print(f"Fine Balance: {borrower.fine_balance:.2f}")
        print(borrowed_view)


def print_overdue_users(entries: List[UserWithOverdueBooks]) -> None:
    mode = get_output_mode()

    if not entries:
        print("No users with overdue items.")
        return

    if mode == "json":
        payload = [
            {"user_id": e.user_id, "username": e.username, "overdue_count": e.overdue_count}
            for e in entries
        ]
        print(json.dumps(payload, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="⏰ Overdue", show_lines=True, header_style="bold cyan")
        table.add_column("User ID", style="magenta", no_wrap=True)
        table.add_column("Username", style="white")
        table.add_column("Overdue Items", style="white")
        for e in entries:
            table.add_row(str(e.user_id), e.username, str(e.overdue_count))
        _console.print(table)
    else:
        for e in entries:
            print(f"{e.user_id} - {e.username}: {e.overdue_count} overdue")
