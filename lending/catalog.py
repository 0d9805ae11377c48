import logging
import sqlite3
from typing import List, Optional

from lending.database import connection_scope, initialize_database
from lending.media import BookDetails, CDDetails, Media, MediaKind

logger = logging.getLogger(__name__)

_SELECT_MEDIA = """
    SELECT m.id, m.title, m.media_type, m.available,
           b.author, b.isbn, c.artist, c.genre, c.duration
    FROM media m
    LEFT JOIN books b ON b.id = m.id
    LEFT JOIN cds c ON c.id = m.id
"""

_BOOK_SEARCH_COLUMNS = {"title": "m.title", "author": "b.author", "isbn": "b.isbn"}
_CD_SEARCH_COLUMNS = {"title": "m.title", "artist": "c.artist", "genre": "c.genre"}


class Catalog:
    """Manages the media collection (books and CDs) and its availability flags."""

    def __init__(self, db_file: Optional[str] = None, initialize: bool = True) -> None:
        self.db_file = db_file
        if initialize:
            initialize_database(db_file)

    # ------------------------- Core operations ------------------------- #
    def add_book(self, title: str, author: str, isbn: str) -> Optional[Media]:
        """Add a book. Raises ValueError on empty fields or a duplicate ISBN."""
        title, author, isbn = (title or "").strip(), (author or "").strip(), self._normalize_isbn(isbn)
        if not title or not author or not isbn:
            raise ValueError("Title, author and ISBN must be non-empty.")
        if self.find_book_by_isbn(isbn):
            raise ValueError(f"Book with ISBN {isbn} already exists.")

        try:
            with connection_scope(self.db_file) as conn:
                cursor = conn.execute(
                    "INSERT INTO media (title, media_type, available) VALUES (?, ?, 1)",
                    (title, MediaKind.BOOK.value),
                )
                media_id = cursor.lastrowid
                conn.execute(
                    "INSERT INTO books (id, author, isbn) VALUES (?, ?, ?)",
                    (media_id, author, isbn),
                )
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Book with ISBN {isbn} already exists.") from e
        except sqlite3.Error as e:
            logger.error("Failed to add book %r: %s", title, e)
            return None

        logger.info("Book added: %s (ISBN %s)", title, isbn)
        return Media(id=media_id, title=title, details=BookDetails(author=author, isbn=isbn))

    def add_cd(self, title: str, artist: str, genre: Optional[str], duration_minutes: int) -> Optional[Media]:
        """Add a CD. Raises ValueError on an empty title/artist or a non-positive duration."""
        title, artist, genre = (title or "").strip(), (artist or "").strip(), (genre or "").strip()
        if not title or not artist:
            raise ValueError("Title and artist cannot be empty.")
        if duration_minutes <= 0:
            raise ValueError("Duration must be positive.")

        try:
            with connection_scope(self.db_file) as conn:
                cursor = conn.execute(
                    "INSERT INTO media (title, media_type, available) VALUES (?, ?, 1)",
                    (title, MediaKind.CD.value),
                )
                media_id = cursor.lastrowid
                conn.execute(
                    "INSERT INTO cds (id, artist, genre, duration) VALUES (?, ?, ?, ?)",
                    (media_id, artist, genre, duration_minutes),
                )
        except sqlite3.Error as e:
            logger.error("Failed to add CD %r: %s", title, e)
            return None

        logger.info("CD added: %s by %s", title, artist)
        return Media(
            id=media_id,
            title=title,
            details=CDDetails(artist=artist, genre=genre, duration_minutes=duration_minutes),
        )

    def find_media(self, media_id: int) -> Optional[Media]:
        try:
            with connection_scope(self.db_file) as conn:
                row = conn.execute(_SELECT_MEDIA + " WHERE m.id = ?", (media_id,)).fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to load media %s: %s", media_id, e)
            return None
        return Media.from_row(row) if row else None

    def find_book_by_isbn(self, isbn: str) -> Optional[Media]:
        norm = self._normalize_isbn(isbn)
        try:
            with connection_scope(self.db_file) as conn:
                row = conn.execute(_SELECT_MEDIA + " WHERE b.isbn = ?", (norm,)).fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to look up ISBN %s: %s", norm, e)
            return None
        return Media.from_row(row) if row else None

    def list_media(self, kind: Optional[MediaKind] = None) -> List[Media]:
        query = _SELECT_MEDIA
        params: tuple = ()
        if kind is not None:
            query += " WHERE m.media_type = ?"
            params = (kind.value,)
        query += " ORDER BY m.title"
        try:
            with connection_scope(self.db_file) as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            logger.error("Failed to list media: %s", e)
            return []
        return [Media.from_row(row) for row in rows]

    def set_availability(self, media_id: int, available: bool, *, expected: Optional[bool] = None,
                         conn: Optional[sqlite3.Connection] = None) -> bool:
        """Write the availability flag for one media item.

        With ``expected`` the update only applies while the stored flag still
        has that value, which makes "check available, then mark borrowed" a
        single conditional statement. Returns True when a row was changed.
        """
        query = "UPDATE media SET available = ? WHERE id = ?"
        params: tuple = (int(available), media_id)
        if expected is not None:
            query += " AND available = ?"
            params += (int(expected),)
        try:
            with connection_scope(self.db_file, conn) as c:
                cursor = c.execute(query, params)
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error("Failed to set availability of media %s to %s: %s", media_id, available, e)
            return False

    # ------------------------- Search ------------------------- #
    def search_books(self, term: str, by: str = "title") -> List[Media]:
        """Search books by title, author or ISBN (substring, case-insensitive)."""
        column = _BOOK_SEARCH_COLUMNS.get((by or "").lower())
        if column is None:
            logger.info("Invalid book search type %r, using title search", by)
            column = _BOOK_SEARCH_COLUMNS["title"]
        return self._search(MediaKind.BOOK, column, term)

    def search_cds(self, term: str, by: str = "title") -> List[Media]:
        """Search CDs by title, artist or genre (substring, case-insensitive)."""
        column = _CD_SEARCH_COLUMNS.get((by or "").lower())
        if column is None:
            logger.info("Invalid CD search type %r, using title search", by)
            column = _CD_SEARCH_COLUMNS["title"]
        return self._search(MediaKind.CD, column, term)

    def _search(self, kind: MediaKind, column: str, term: str) -> List[Media]:
        term = (term or "").strip()
        if not term:
            return []
        try:
            with connection_scope(self.db_file) as conn:
                rows = conn.execute(
                    _SELECT_MEDIA + f" WHERE m.media_type = ? AND {column} LIKE ? ORDER BY m.title",
                    (kind.value, f"%{term}%"),
                ).fetchall()
        except sqlite3.Error as e:
            logger.error("Search for %r failed: %s", term, e)
            return []
        return [Media.from_row(row) for row in rows]

    # ------------------------- Utilities ------------------------- #
    @staticmethod
    def _normalize_isbn(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        cleaned = "".join(ch for ch in raw if ch.isalnum())
        return cleaned.upper()
