class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is missing or malformed."""


class NotFound(DomainError):
    """Raised when a referenced session, teacher, stream or backup does not exist."""


class Conflict(DomainError):
    """Raised when an entry already exists or a stream is busy."""


class UndoExpired(DomainError):
    """Raised when a promotion backup is older than the undo window."""


class StoreError(DomainError):
    """Raised when the document store fails. Reads may be retried by the caller."""


class StoreTimeout(StoreError):
    """Raised when a store operation exceeds its time limit.

    A write that timed out may still have been applied.
    """


class CacheMiss(DomainError):
    """Internal signal from the result cache; never reaches a caller."""
