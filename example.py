"""
Example demonstrating models on the in-memory store.

This example shows how to declare models with casts, dates, accessors and
relationships, then save, query and relate them without a database.
"""

from recordkit import MemoryStoreConfig, Model, accessor, create_store, relationship


class LibraryModel(Model):
    pass


class Author(LibraryModel):
    TABLE_NAME = "authors"
    TIMESTAMPS = False

    @relationship
    def books(self):
        return self.has_many("Book")


class Book(LibraryModel):
    TABLE_NAME = "books"
    CASTS = {"pages": "int"}
    DATES = ["creation_date"]
    HIDDEN = ["last_update"]

    @relationship
    def author(self):
        return self.belongs_to(Author)

    @relationship
    def tags(self):
        return self.belongs_to_many("Tag")

    @accessor("title")
    def titled(self, value):
        return value.title() if value else value


class Tag(LibraryModel):
    TABLE_NAME = "tags"
    TIMESTAMPS = False


def main():
    """Run the example."""
    print("\n=== In-memory Store Example ===\n")

    store = create_store(MemoryStoreConfig())
    LibraryModel.bind(store)

    herbert = Author(name="Frank Herbert").save()
    dune = Book(title="dune", pages="412", author_id=herbert.key).save()
    Book(title="children of dune", pages=444, author_id=herbert.key).save()

    classic = Tag(label="classic").save()
    dune.tags().attach(classic.key)

    print(f"Saved: {dune.to_json()}")
    print(f"Written by: {dune['author']['name']}")
    print(f"Tags: {[tag['label'] for tag in dune['tags']]}")

    print("\nBooks over 420 pages:")
    for book in Book.where("pages >", 420).order("title"):
        print(f"- {book['title']} ({book['pages']} pages)")

    print(f"\n{herbert['name']} wrote {herbert.books().count()} books")

    dune["pages"] = 896
    dune.save()
    print(f"Reprinted: {dune['title']} now has {dune['pages']} pages")

    store.close()
    print("\nExample completed!")


if __name__ == "__main__":
    main()
