"""
Error taxonomy for the Library Catalog data layer.

Callers branch on the exception class, never on the message text:

- ``NotFoundError``: the referenced member, book or loan does not exist
- ``InventoryExhaustedError``: no copy of the book is available to lend
- ``AlreadyReturnedError``: the loan has already been returned
- ``TransactionError``: the store failed (lock timeout, lost connection,
  constraint violation, commit failure); safe for the caller to retry
- ``DuplicateError``: a unique catalog field (member email) is taken

None of these are retried by the data layer.
"""


class RepositoryException(Exception):
    """Base exception for repository and lending operations."""


class NotFoundError(RepositoryException):
    """Raised when an entity is not found."""


class DuplicateError(RepositoryException):
    """Raised when attempting to create a duplicate entity."""


class InventoryExhaustedError(RepositoryException):
    """Raised when a borrow finds no available copies."""


class AlreadyReturnedError(RepositoryException):
    """Raised when a loan is returned a second time."""


class TransactionError(RepositoryException):
    """Raised when the store rejects or fails a transaction."""
