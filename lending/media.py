from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union


class MediaKind(str, Enum):
    BOOK = "book"
    CD = "cd"

    @property
    def label(self) -> str:
        return "Book" if self is MediaKind.BOOK else "CD"

    @classmethod
    def parse(cls, raw: Union[str, "MediaKind"]) -> Optional["MediaKind"]:
        """Return the kind for ``raw`` ("book", "CD", ...) or None if unknown."""
        if isinstance(raw, MediaKind):
            return raw
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class BookDetails:
    author: str
    isbn: str


@dataclass(frozen=True)
class CDDetails:
    artist: str
    genre: str
    duration_minutes: int


MediaDetails = Union[BookDetails, CDDetails]


@dataclass
class Media:
    """A single catalog item, either a book or a CD.

    Lending only looks at ``id``, ``title``, ``kind`` and ``available``; the
    kind-specific attributes live in ``details``.
    """

    id: int
    title: str
    details: MediaDetails
    available: bool = True

    @property
    def kind(self) -> MediaKind:
        return MediaKind.BOOK if isinstance(self.details, BookDetails) else MediaKind.CD

    def __str__(self) -> str:
        available = "Yes" if self.available else "No"
        return f"ID: {self.id}, Title: '{self.title}', Type: {self.kind.value}, Available: {available}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "kind": self.kind.value,
            "available": self.available,
        }
        if isinstance(self.details, BookDetails):
            data.update(author=self.details.author, isbn=self.details.isbn)
        else:
            data.update(
                artist=self.details.artist,
                genre=self.details.genre,
                duration_minutes=self.details.duration_minutes,
            )
        return data

    @staticmethod
    def from_row(row: Mapping[str, Any]) -> "Media":
        """Build a Media from a joined media/books/cds row."""
        kind = MediaKind.parse(row["media_type"])
        details: MediaDetails
        if kind is MediaKind.CD:
            details = CDDetails(
                artist=row["artist"] or "",
                genre=row["genre"] or "",
                duration_minutes=int(row["duration"] or 0),
            )
        else:
            details = BookDetails(author=row["author"] or "", isbn=row["isbn"] or "")
        return Media(
            id=int(row["id"]),
            title=row["title"],
            details=details,
            available=bool(row["available"]),
        )
