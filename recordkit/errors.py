class RecordError(Exception):
    """
    Base class for every error raised by recordkit itself.
    Errors coming from the database driver are not wrapped.
    """

    pass


class UnsupportedOperation(RecordError, AttributeError):
    """
    Raised when a query operation outside the fluent set is requested.
    """

    pass


class TypeMismatch(RecordError, TypeError):
    """
    Raised when a row is hydrated into the wrong model type, or when a value
    cannot be coerced to its declared cast.
    """

    pass


class UnpersistedError(RecordError):
    """
    The operation needs a persisted identity that the entity does not have yet.
    """

    pass


class UnpersistedAccess(UnpersistedError):
    pass


class UnpersistedRelation(UnpersistedError):
    pass


class UnpersistedDeletion(UnpersistedError):
    pass


class DeletedMutation(RecordError):
    pass


class PersistenceError(RecordError):
    """
    The store could not confirm the identity of a written row.
    Never retried automatically, a retry could duplicate the row.
    """

    pass


class ConnectionUninitialized(RecordError):
    pass
