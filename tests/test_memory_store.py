import pytest

from recordkit import MemoryStore


@pytest.fixture
def people():
    store = MemoryStore(primary_keys={"badges": "code"})
    people = store.table("people")
    people.insert({"name": "Ada", "age": 36})
    people.insert({"name": "Alan", "age": 41})
    people.insert({"name": "Grace", "age": None})
    return store


def test_insert_assigns_increasing_keys(people):
    assert [r["id"] for r in people.table("people")] == [1, 2, 3]
    row = people.table("people").insert({"id": 10, "name": "Edsger"})
    assert row["id"] == 10
    assert people.table("people").insert({"name": "Barbara"})["id"] == 11


def test_custom_primary_key(people):
    row = people.table("badges").insert({"label": "gold"})
    assert row["code"] == 1
    assert "id" not in row


def test_selections_are_immutable(people):
    base = people.table("people")
    older = base.where("age >", 40)
    assert base.count() == 3
    assert older.count() == 1


def test_null_comparisons_never_match(people):
    assert people.table("people").where("age <", 100).count() == 2
    assert people.table("people").where("age IS", None).count() == 1
    assert people.table("people").where("age IS NOT", None).count() == 2
    assert people.table("people").where("age NOT IN", [36]).count() == 1


def test_ordering_puts_nulls_last(people):
    ages = [r["age"] for r in people.table("people").order("age")]
    assert ages == [36, 41, None]
    ages = [r["age"] for r in people.table("people").order("age DESC")]
    assert ages == [None, 41, 36]


def test_select_projection(people):
    row = people.table("people").select("name").where("id", 1).fetch()
    assert dict(row) == {"name": "Ada"}


def test_update_and_delete_report_counts(people):
    assert people.table("people").where("name LIKE", "A%").update({"age": 50}) == 2
    assert people.table("people").where("age", 50).delete() == 2
    assert people.table("people").count() == 1


def test_unknown_table_reads_empty(people):
    assert list(people.table("ghosts")) == []
    assert people.table("ghosts").fetch() is None


def test_row_ref(people):
    people.table("pets").insert({"name": "Rex", "owner_id": 2})
    pet = people.table("pets").fetch()
    assert pet.ref("people", "owner_id")["name"] == "Alan"
    assert pet.ref("people", "missing_column") is None


def test_close_drops_tables(people):
    people.close()
    assert people.table("people").count() == 0
