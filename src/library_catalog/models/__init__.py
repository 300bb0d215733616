"""
Library Catalog Models.

Pydantic models for the entities the service exposes:
- Member: people who borrow books
- Book: catalog entries with their copy counters
- LoanRecord: one lent copy, from borrowed to returned
"""

from .book import Book
from .loan import LoanRecord, LoanStatus
from .member import Member

__all__ = [
    "Book",
    "LoanRecord",
    "LoanStatus",
    "Member",
]
