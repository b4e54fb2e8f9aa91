from recordkit.orm.entity import Entity
from recordkit.orm.repo import Repo


class Model(Entity, Repo):
    """
    Active record base: Entity (row state and relationships) plus Repo
    (table-level queries).

        class Book(Model):
            TABLE_NAME = "books"
            TIMESTAMPS = False

            @relationship
            def authors(self):
                return self.belongs_to_many("Author")

        Model.bind(store)
        Book.find(1)["title"]
    """

    pass
