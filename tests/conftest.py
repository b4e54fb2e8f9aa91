import pytest

from recordkit import MemoryStore

from models import LibraryModel


@pytest.fixture
def store():
    """Fresh in-memory store bound to the library models."""
    store = MemoryStore()
    LibraryModel.bind(store)
    yield store
    LibraryModel.bind(None)
    store.close()


@pytest.fixture
def library(store):
    """A small catalogue: two books, their authors, reviews and publisher."""
    store.table("publishers").insert({"id": 1, "name": "Chilton"})
    store.table("publishers").insert({"id": 2, "name": "Ace"})
    store.table("books").insert(
        {
            "id": 1,
            "title": "Dune",
            "pages": 412,
            "publisher_id": 1,
            "published_at": "1965-08-01T00:00:00",
            "secret_note": "spice",
        }
    )
    store.table("books").insert(
        {"id": 2, "title": "Neuromancer", "pages": 271, "publisher_id": 2}
    )
    store.table("authors").insert({"id": 7, "name": "Herbert"})
    store.table("authors").insert({"id": 8, "name": "Gibson"})
    store.table("author_book").insert({"book_id": 1, "author_id": 7})
    store.table("author_book").insert({"book_id": 2, "author_id": 8})
    store.table("reviews").insert({"id": 1, "book_id": 1, "stars": 5})
    store.table("reviews").insert({"id": 2, "book_id": 1, "stars": 2})
    store.table("reviews").insert({"id": 3, "book_id": 2, "stars": 3})
    store.table("covers").insert({"id": 1, "book_id": 1, "artist": "John Schoenherr"})
    return store
