import pytest

from lending.catalog import Catalog
from lending.media import BookDetails, CDDetails, MediaKind


@pytest.fixture
def catalog(db_file):
    return Catalog(db_file)


def test_add_and_find_book(catalog):
    book = catalog.add_book("Ulysses", "James Joyce", "978-0199535675")
    assert book.kind is MediaKind.BOOK
    assert book.available is True

    found = catalog.find_media(book.id)
    assert found is not None
    assert found.title == "Ulysses"
    assert found.details == BookDetails(author="James Joyce", isbn="9780199535675")


def test_add_and_find_cd(catalog):
    cd = catalog.add_cd("Kind of Blue", "Miles Davis", "Jazz", 46)
    found = catalog.find_media(cd.id)
    assert found.kind is MediaKind.CD
    assert found.details == CDDetails(artist="Miles Davis", genre="Jazz", duration_minutes=46)
    assert str(found) == f"ID: {cd.id}, Title: 'Kind of Blue', Type: cd, Available: Yes"


def test_duplicate_isbn_is_rejected(catalog):
    catalog.add_book("Test Book", "Test Author", "1234567890")
    with pytest.raises(ValueError, match="Book with ISBN 1234567890 already exists."):
        catalog.add_book("Other", "Someone", "1234567890")
    assert len(catalog.list_media()) == 1


@pytest.mark.parametrize("title,author,isbn", [("", "A", "1"), ("T", " ", "1"), ("T", "A", "")])
def test_book_fields_must_be_non_empty(catalog, title, author, isbn):
    with pytest.raises(ValueError):
        catalog.add_book(title, author, isbn)


def test_cd_validation(catalog):
    with pytest.raises(ValueError, match="Duration must be positive"):
        catalog.add_cd("Album", "Artist", "Rock", 0)
    with pytest.raises(ValueError):
        catalog.add_cd("", "Artist", "Rock", 40)


def test_find_missing_media(catalog):
    assert catalog.find_media(12345) is None


def test_list_filters_by_kind(catalog):
    catalog.add_book("Sapiens", "Yuval Noah Harari", "9780099590088")
    catalog.add_cd("Abbey Road", "The Beatles", "Rock", 47)
    assert [m.title for m in catalog.list_media()] == ["Abbey Road", "Sapiens"]
    assert [m.title for m in catalog.list_media(MediaKind.CD)] == ["Abbey Road"]


def test_search_books_by_field(catalog):
    catalog.add_book("Clean Code", "Robert Martin", "9780132350884")
    catalog.add_book("The Clean Coder", "Robert Martin", "9780137081073")
    catalog.add_book("Refactoring", "Martin Fowler", "9780134757599")

    assert len(catalog.search_books("clean")) == 2
    assert len(catalog.search_books("martin", by="author")) == 3
    assert [m.title for m in catalog.search_books("757599", by="isbn")] == ["Refactoring"]


def test_search_unknown_field_uses_title(catalog):
    catalog.add_book("Clean Code", "Robert Martin", "9780132350884")
    assert [m.title for m in catalog.search_books("Clean", by="publisher")] == ["Clean Code"]


def test_search_cds(catalog):
    catalog.add_cd("Kind of Blue", "Miles Davis", "Jazz", 46)
    catalog.add_cd("Blue Train", "John Coltrane", "Jazz", 42)
    assert len(catalog.search_cds("jazz", by="genre")) == 2
    assert [m.title for m in catalog.search_cds("Davis", by="artist")] == ["Kind of Blue"]


def test_empty_search_term_returns_nothing(catalog):
    catalog.add_book("Clean Code", "Robert Martin", "9780132350884")
    assert catalog.search_books("   ") == []


def test_conditional_availability_update(catalog):
    book = catalog.add_book("Ulysses", "James Joyce", "9780199535675")
    assert catalog.set_availability(book.id, False, expected=True) is True
    # Already unavailable: the conditional update matches nothing.
    assert catalog.set_availability(book.id, False, expected=True) is False
    assert catalog.find_media(book.id).available is False
    assert catalog.set_availability(book.id, True) is True
    assert catalog.find_media(book.id).available is True


def test_availability_of_missing_media(catalog):
    assert catalog.set_availability(999, False) is False
