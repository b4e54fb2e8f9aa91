"""save(), delete() and refresh() against the in-memory store."""

from datetime import datetime

import pytest

from recordkit import (
    DeletedMutation,
    MemoryStore,
    Model,
    PersistenceError,
    UnpersistedDeletion,
)

from models import Book, Review


def test_save_inserts_new_entity(store):
    book = Book(title="Dune", pages=412)
    assert not book.is_persisted

    book.save()

    assert book.is_persisted
    assert book.key == 1
    assert not book.is_dirty()
    assert book["title"] == "Dune"
    assert store.table("books").count() == 1


def test_creation_timestamp_only_when_enabled(store):
    book = Book(title="Dune").save()
    assert "creation_date" not in book.original
    assert book["creation_date"] is None

    review = Review(book_id=book.key, stars=4).save()
    assert isinstance(review["creation_date"], datetime)
    assert "last_update" not in review.original


def test_save_updates_persisted_entity(library):
    book = Book.find(2)
    book["title"] = "Count Zero"
    book.save()

    assert not book.is_dirty()
    assert book.original["title"] == "Count Zero"
    assert Book.find(2)["title"] == "Count Zero"
    # other rows untouched
    assert Book.find(1)["title"] == "Dune"


def test_update_sets_update_timestamp(library):
    review = Review.find(3)
    review["stars"] = 4
    review.save()

    assert review["stars"] == 4
    assert isinstance(review["last_update"], datetime)


def test_dirty_after_save_then_mutation(library):
    book = Book.find(1)
    book["pages"] = 500
    book.save()
    assert not book.is_dirty()

    book["pages"] = 501
    assert book.is_dirty()
    assert book.is_dirty("pages")


def test_save_refreshes_from_store(library):
    book = Book.find(1)
    # someone else changes a column behind our back
    library.table("books").where("id", 1).update({"pages": 999})

    book["title"] = "Dune (Deluxe)"
    book.save()
    assert book["pages"] == 999


def test_save_without_changes_still_refreshes(library):
    book = Book.find(1)
    library.table("books").where("id", 1).update({"title": "Dune!"})
    book.save()
    assert book["title"] == "Dune!"


def test_save_of_vanished_row_fails(library):
    book = Book.find(1)
    library.table("books").where("id", 1).delete()
    with pytest.raises(PersistenceError):
        book.save()


class Ledger(Model):
    TABLE_NAME = "ledger"
    TIMESTAMPS = False


def test_insert_without_identity_fails():
    store = MemoryStore(auto_increment=False)
    Ledger.bind(store)
    try:
        entry = Ledger(amount=10)
        with pytest.raises(PersistenceError):
            entry.save()
        # the caller may retry, pending changes are kept
        assert entry.is_dirty("amount")
        assert not entry.is_persisted
    finally:
        Ledger.bind(None)


class Country(Model):
    TABLE_NAME = "countries"
    PRIMARY_KEY = "code"
    KEY_TYPE = "str"
    INCREMENTING = False
    TIMESTAMPS = False


def test_non_incrementing_key_must_be_set():
    store = MemoryStore(primary_keys={"countries": "code"}, auto_increment=False)
    Country.bind(store)
    try:
        with pytest.raises(ValueError):
            Country(name="Arrakis").save()

        Country(code="AR", name="Arrakis").save()
        assert Country.find("AR")["name"] == "Arrakis"
    finally:
        Country.bind(None)


def test_delete_unpersisted_fails(store):
    with pytest.raises(UnpersistedDeletion):
        Book(title="Dune").delete()


def test_delete_persisted(library):
    book = Book.find(1)
    book.delete()

    assert book.is_deleted
    assert Book.find(1) is None
    assert book["title"] == "Dune"

    with pytest.raises(DeletedMutation):
        book["title"] = "Dune"
    with pytest.raises(DeletedMutation):
        book.save()
    with pytest.raises(DeletedMutation):
        book.delete()


def test_refresh(library):
    book = Book.find(2)
    library.table("books").where("id", 2).update({"pages": 300})
    assert book.refresh()["pages"] == 300
