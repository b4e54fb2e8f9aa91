"""Library models shared by the unit tests."""

from recordkit import Model, accessor, mutator, relationship


class LibraryModel(Model):
    pass


class Book(LibraryModel):
    TABLE_NAME = "books"
    TIMESTAMPS = False
    DATE_FORMAT = "%Y-%m-%d"
    ATTRIBUTES = {"genre": "unknown"}
    DATES = ["published_at"]
    CASTS = {"pages": "int", "in_print": "bool"}
    HIDDEN = ["secret_note"]

    @relationship
    def authors(self):
        return self.belongs_to_many("Author", "author_book", "book_id", "author_id")

    @relationship
    def shelves(self):
        return self.belongs_to_many("Shelf")

    @relationship
    def reviews(self):
        return self.has_many("Review")

    @relationship
    def cover(self):
        return self.has_one("Cover")

    @relationship
    def publisher(self):
        return self.belongs_to("Publisher")

    @accessor("summary")
    def trimmed_summary(self, value):
        return value.strip() if value else value

    @mutator("isbn")
    def normalized_isbn(self, value):
        return value.replace("-", "") if value else value


class Author(LibraryModel):
    TABLE_NAME = "authors"
    TIMESTAMPS = False

    @relationship
    def books(self):
        return self.belongs_to_many(Book, "author_book", "author_id", "book_id")


class Review(LibraryModel):
    TABLE_NAME = "reviews"
    CASTS = {"stars": "int"}

    @relationship
    def book(self):
        return self.belongs_to(Book)


class Publisher(LibraryModel):
    TABLE_NAME = "publishers"
    TIMESTAMPS = False

    @relationship
    def books(self):
        return self.has_many(Book)


class Cover(LibraryModel):
    TABLE_NAME = "covers"
    TIMESTAMPS = False


class Shelf(LibraryModel):
    TABLE_NAME = "shelves"
    TIMESTAMPS = False
