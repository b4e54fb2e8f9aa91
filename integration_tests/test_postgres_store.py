"""Exercise models against a real PostgreSQL database.

Skipped unless POSTGRES_DSN points at a server the tests may create a
scratch schema in.
"""

import os
from datetime import datetime
from urllib.parse import quote

import pytest

from recordkit import (
    Model,
    PersistenceError,
    PostgresStore,
    PostgresStoreConfig,
    create_store,
    relationship,
)
from recordkit.data.postgres.manager import DatabaseManager

pytestmark = pytest.mark.skipif(
    "POSTGRES_DSN" not in os.environ, reason="POSTGRES_DSN not set"
)

TEST_SCHEMA = "test_recordkit_temp"


def get_test_dsn():
    """Get DSN with test schema."""
    base_dsn = os.environ["POSTGRES_DSN"]
    options = quote(f"-csearch_path={TEST_SCHEMA}")
    if "?" in base_dsn:
        return f"{base_dsn}&options={options}"
    return f"{base_dsn}?options={options}"


class ClubModel(Model):
    pass


class Member(ClubModel):
    TABLE_NAME = "members"
    CASTS = {"age": "int"}
    DATES = ["creation_date"]
    DATE_FORMAT = "%Y"

    @relationship
    def clubs(self):
        return self.belongs_to_many(Club, "club_member", "member_id", "club_id")

    @relationship
    def posts(self):
        return self.has_many(Post, "author_id")


class Club(ClubModel):
    TABLE_NAME = "clubs"
    TIMESTAMPS = False


class Post(ClubModel):
    TABLE_NAME = "posts"
    TIMESTAMPS = False

    @relationship
    def author(self):
        return self.belongs_to(Member, local_key="author_id")


def setup_test_schema():
    """Create a fresh test schema and its tables."""
    db = DatabaseManager(os.environ["POSTGRES_DSN"], max_size=1)
    try:
        with db.get_cursor() as cur:
            cur.execute(f"DROP SCHEMA IF EXISTS {TEST_SCHEMA} CASCADE")
            cur.execute(f"CREATE SCHEMA {TEST_SCHEMA}")
    finally:
        db.close()

    db = DatabaseManager(get_test_dsn(), max_size=1)
    try:
        with db.get_cursor() as cur:
            cur.execute(
                """
                CREATE TABLE members (
                    id SERIAL PRIMARY KEY,
                    name VARCHAR(255) NOT NULL,
                    age INTEGER,
                    profile JSONB,
                    creation_date TIMESTAMP,
                    last_update TIMESTAMP
                )
            """
            )
            cur.execute(
                """
                CREATE TABLE clubs (
                    id SERIAL PRIMARY KEY,
                    name VARCHAR(255) NOT NULL
                )
            """
            )
            cur.execute(
                """
                CREATE TABLE club_member (
                    member_id INTEGER REFERENCES members(id) ON DELETE CASCADE,
                    club_id INTEGER REFERENCES clubs(id) ON DELETE CASCADE,
                    role VARCHAR(64)
                )
            """
            )
            cur.execute(
                """
                CREATE TABLE posts (
                    id SERIAL PRIMARY KEY,
                    author_id INTEGER REFERENCES members(id) ON DELETE CASCADE,
                    title VARCHAR(255) NOT NULL
                )
            """
            )
            cur.execute(
                """
                CREATE TABLE tags (
                    label VARCHAR(64) NOT NULL
                )
            """
            )
    finally:
        db.close()


def cleanup_test_schema():
    """Drop the test schema."""
    db = DatabaseManager(os.environ["POSTGRES_DSN"], max_size=1)
    try:
        with db.get_cursor() as cur:
            cur.execute(f"DROP SCHEMA IF EXISTS {TEST_SCHEMA} CASCADE")
    finally:
        db.close()


@pytest.fixture
def store():
    setup_test_schema()
    store = create_store(PostgresStoreConfig(dsn=get_test_dsn(), max_size=2))
    ClubModel.bind(store)
    yield store
    ClubModel.bind(None)
    store.close()
    cleanup_test_schema()


def test_crud_operations(store):
    member = Member(name="Ada", age="36", profile={"langs": ["en"]})
    member.save()
    assert member.key is not None
    assert isinstance(member.original["creation_date"], datetime)
    assert member["creation_date"] == str(datetime.now().year)

    fetched = Member.find(member.key)
    assert fetched["name"] == "Ada"
    assert fetched["age"] == 36
    assert fetched["profile"] == {"langs": ["en"]}

    fetched["name"] = "Ada Lovelace"
    fetched.save()
    assert fetched.original["last_update"] is not None
    assert Member.find(member.key)["name"] == "Ada Lovelace"

    fetched.delete()
    assert Member.find(member.key) is None


def test_query_builder(store):
    for name, age in [("Ada", 36), ("Alan", 41), ("Grace", None)]:
        Member(name=name, age=age).save()

    assert [m["name"] for m in Member.where("age >", 40).get()] == ["Alan"]
    assert [m["name"] for m in Member.where("name LIKE", "A%").order("name DESC")] == [
        "Alan",
        "Ada",
    ]
    assert Member.where("age", None).count() == 1
    assert Member.where("name", ["Ada", "Grace"]).count() == 2
    assert Member.where_or({"name": "Ada", "age": 41}).count() == 2
    assert [m["name"] for m in Member.order("id").page(2, 2)] == ["Grace"]

    query = Member.where("name", "Ada")
    assert len(query.get()) == 1
    assert len(query.get()) == 3


def test_join_where_and_relations(store):
    ada = Member(name="Ada").save()
    alan = Member(name="Alan").save()
    Post(author_id=ada.key, title="Notes").save()

    posts = Post.join_where("members", "author_id", "name", "Ada").get()
    assert [p["title"] for p in posts] == ["Notes"]
    assert posts[0]["author"]["name"] == "Ada"
    assert [p["title"] for p in ada["posts"]] == ["Notes"]
    assert list(alan["posts"]) == []


def test_pivoted_relations(store):
    ada = Member(name="Ada").save()
    analysts = Club(name="Analysts").save()
    Club(name="Poets").save()

    ada.clubs().attach(analysts.key, {"role": "founder"})
    [club] = list(ada["clubs"])
    assert club["name"] == "Analysts"
    assert club["role"] == "founder"
    assert club.pivot["member_id"] == ada.key

    assert ada.clubs().detach(analysts.key) == 1
    assert list(ada["clubs"]) == []


def test_insert_without_primary_key_fails(store):
    class Tag(ClubModel):
        TABLE_NAME = "tags"
        TIMESTAMPS = False

    with pytest.raises(PersistenceError):
        Tag(label="math").save()


def test_connect_shortcut():
    setup_test_schema()
    store = PostgresStore.connect(get_test_dsn(), max_size=1)
    try:
        assert store.table("members").count() == 0
    finally:
        store.close()
        cleanup_test_schema()
