"""Domain error taxonomy.

Built-in bases are kept so callers can still catch ``LookupError``,
``ValueError`` or ``PermissionError`` where that reads more naturally.
"""


class NotFoundError(LookupError):
    pass


class UserNotFoundError(NotFoundError):
    pass


class BookNotFoundError(NotFoundError):
    pass


class InvalidPasswordError(ValueError):
    pass


class ValidationError(ValueError):
    pass


class PermissionDeniedError(PermissionError):
    """The caller does not own the resource it tries to change."""


class NotAuthenticatedError(Exception):
    """No session is attached to the request."""


class StorageError(RuntimeError):
    """Any database failure, constraint violations included."""
