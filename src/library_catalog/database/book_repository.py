"""
Book repository implementation for the Library Catalog server.

Catalog CRUD for books. Two rules tie this repository to the lending
engine's invariants:

1. A new book starts with every copy on the shelf
   (``available_copies == total_copies``).
2. Changing ``total_copies`` takes the same row lock as a borrow, shifts
   ``available_copies`` by the same delta, and refuses to drop the total
   below the number of copies currently on loan. This keeps
   ``borrowed loans == total - available`` true, which is what lets a return
   increment the counter without re-checking it.
"""

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func, select

from ..models.book import MAX_PUBLISHED_YEAR
from ..models.book import Book as BookModel
from .errors import NotFoundError, RepositoryException
from .ledger import InventoryLedger
from .repository import BaseRepository
from .schema import Book as BookDB
from .schema import Loan as LoanDB
from .session import safe_query


class BookCreateSchema(BaseModel):
    """Schema for adding a book to the catalog."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=200)
    published_year: int | None = Field(None, le=MAX_PUBLISHED_YEAR)
    total_copies: int = Field(default=1, ge=0)


class BookUpdateSchema(BaseModel):
    """Schema for updating a book - all fields optional."""

    title: str | None = Field(None, min_length=1, max_length=500)
    author: str | None = Field(None, min_length=1, max_length=200)
    published_year: int | None = Field(None, le=MAX_PUBLISHED_YEAR)
    total_copies: int | None = Field(None, ge=0)

    @field_validator("title", "author", "total_copies")
    @classmethod
    def reject_null(cls, v):
        # Omit a field to leave it unchanged; only published_year can be cleared
        if v is None:
            raise ValueError("field cannot be null")
        return v


class BookRepository(BaseRepository[BookDB, BookCreateSchema, BookUpdateSchema, BookModel]):
    """Repository for book data access."""

    def __init__(self, session, ledger: InventoryLedger | None = None):
        super().__init__(session)
        self.ledger = ledger or InventoryLedger()

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def create(self, data: BookCreateSchema) -> BookModel:
        """Add a book with all of its copies available."""
        book = BookDB(
            title=data.title,
            author=data.author,
            published_year=data.published_year,
            total_copies=data.total_copies,
            available_copies=data.total_copies,
        )
        self.session.add(book)
        self._commit("create Book")
        self.session.refresh(book)
        return self._to_response_model(book)

    def update(self, id: int, data: BookUpdateSchema) -> BookModel:
        """
        Update catalog fields and, optionally, the number of copies owned.

        Raises:
            NotFoundError: If the book does not exist
            RepositoryException: If the new total is below the copies on loan
        """
        changes = data.model_dump(exclude_unset=True)
        new_total = changes.pop("total_copies", None)

        if new_total is not None:
            self.ledger.lock_and_get_availability(self.session, id)
            on_loan = self.ledger.count_borrowed(self.session, id)
            if new_total < on_loan:
                self.session.rollback()
                raise RepositoryException(
                    f"Cannot set total copies of book {id} to {new_total}: "
                    f"{on_loan} copies are on loan"
                )
            self.ledger.adjust_total(self.session, id, new_total)

        book = self._get_db_obj(id)
        if book is None:
            raise NotFoundError(f"Book {id} not found")

        for field, value in changes.items():
            setattr(book, field, value)

        self._commit("update Book")
        self.session.refresh(book)
        return self._to_response_model(book)

    def delete(self, id: int) -> BookModel:
        """
        Remove a book from the catalog.

        Loan records are kept forever, so a book that has ever been lent
        cannot be deleted.

        Raises:
            NotFoundError: If the book does not exist
            RepositoryException: If loan records reference the book
        """
        if not self.exists(id):
            raise NotFoundError(f"Book {id} not found")

        loan_count = safe_query(
            self.session,
            lambda s: s.execute(
                select(func.count()).select_from(LoanDB).where(LoanDB.book_id == id)
            ).scalar_one(),
            "Failed to count book loans",
        )
        if loan_count:
            raise RepositoryException(
                f"Book {id} has {loan_count} loan record(s) and cannot be deleted"
            )
        return super().delete(id)
