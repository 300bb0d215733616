"""
Database package for the Library Catalog server.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and the store's locking contract (session.py)
- The inventory ledger and the lending transaction engine (ledger.py, lending.py)
- Catalog repositories for members and books
- The error taxonomy shared by all of the above (errors.py)
"""

from .book_repository import BookCreateSchema, BookRepository, BookUpdateSchema
from .errors import (
    AlreadyReturnedError,
    DuplicateError,
    InventoryExhaustedError,
    NotFoundError,
    RepositoryException,
    TransactionError,
)
from .ledger import InventoryLedger
from .lending import LendingEngine
from .member_repository import MemberCreateSchema, MemberRepository, MemberUpdateSchema
from .repository import BaseRepository
from .schema import Base, Book, Loan, LoanStatusEnum, Member
from .session import (
    DatabaseManager,
    get_db_manager,
    reset_db_manager,
    safe_commit,
    safe_query,
)

__all__ = [
    "AlreadyReturnedError",
    "Base",
    "BaseRepository",
    "Book",
    "BookCreateSchema",
    "BookRepository",
    "BookUpdateSchema",
    "DatabaseManager",
    "DuplicateError",
    "InventoryExhaustedError",
    "InventoryLedger",
    "LendingEngine",
    "Loan",
    "LoanStatusEnum",
    "Member",
    "MemberCreateSchema",
    "MemberRepository",
    "MemberUpdateSchema",
    "NotFoundError",
    "RepositoryException",
    "TransactionError",
    "get_db_manager",
    "reset_db_manager",
    "safe_commit",
    "safe_query",
]
