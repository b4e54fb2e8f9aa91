"""
Example demonstrating models on a PostgreSQL store with cleanup.

Creates its own tables, runs a few queries through the fluent builder and
drops the tables again. Set POSTGRES_DSN to point it at your database.
"""

from recordkit import Model, PostgresStoreConfig, create_store, relationship
from recordkit.data.postgres.manager import DatabaseManager


class Person(Model):
    TABLE_NAME = "people"
    CASTS = {"age": "int"}

    @relationship
    def skills(self):
        return self.has_many("Skill", "person_id")


class Skill(Model):
    TABLE_NAME = "skills"
    TIMESTAMPS = False


def create_tables(db: DatabaseManager):
    with db.get_cursor() as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS people (
                id SERIAL PRIMARY KEY,
                name VARCHAR(255) NOT NULL,
                age INTEGER,
                creation_date TIMESTAMP,
                last_update TIMESTAMP
            )
        """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS skills (
                id SERIAL PRIMARY KEY,
                person_id INTEGER REFERENCES people(id) ON DELETE CASCADE,
                name VARCHAR(255) NOT NULL
            )
        """
        )


def cleanup_tables(db: DatabaseManager):
    """
    Clean up by dropping the tables used in this example.

    In a real application, you might not want to do this, but for an example
    it's good to clean up after ourselves.
    """
    with db.get_cursor() as cur:
        cur.execute("DROP TABLE IF EXISTS skills")
        cur.execute("DROP TABLE IF EXISTS people")
    print("PostgreSQL tables 'people' and 'skills' dropped.")


def main():
    """Run the example."""
    print("\n=== PostgreSQL Store Example ===\n")

    store = create_store(PostgresStoreConfig())
    Model.bind(store)
    create_tables(store.db)

    try:
        john = Person(name="John", age="35").save()
        maria = Person(name="Maria", age=28).save()
        for name in ("Python", "JavaScript"):
            Skill(person_id=john.key, name=name).save()
        Skill(person_id=maria.key, name="machine learning").save()

        print("People under 30:")
        for person in Person.where("age <", 30):
            print(f"- {person['name']}, {person['age']}")

        print("\nSkills:")
        for person in Person.order("name"):
            skills = ", ".join(skill["name"] for skill in person["skills"])
            print(f"- {person['name']}: {skills}")
    finally:
        print("\nCleaning up...")
        cleanup_tables(store.db)
        store.close()

    print("\nExample completed!")


if __name__ == "__main__":
    main()
