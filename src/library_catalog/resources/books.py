"""Book Resources - Library Catalog Access

Read-only views of the catalog and its copy counters.

Resources:
- library://books/list - Every book in the catalog
- library://books/{book_id} - One book by identifier
- library://books/{book_id}/availability - Point-in-time copy counts
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..database.book_repository import BookRepository
from ..database.errors import NotFoundError, RepositoryException
from ..database.ledger import InventoryLedger
from ..database.session import get_db_manager
from .uri_utils import parse_id

logger = logging.getLogger(__name__)


async def list_books_handler() -> dict[str, Any]:
    """Returns the whole catalog with copy counts."""
    try:
        logger.debug("MCP Resource Request - books/list")
        with get_db_manager().read_scope() as session:
            books = BookRepository(session).get_all()
            return {
                "books": [book.model_dump(mode="json") for book in books],
                "total": len(books),
            }
    except RepositoryException as e:
        logger.exception("Error in books/list resource")
        raise ResourceError(f"Failed to retrieve book list: {e!s}") from e


async def get_book_handler(book_id: str) -> dict[str, Any]:
    """Returns details for a specific book."""
    book_pk = parse_id(book_id, "book")
    try:
        logger.debug("MCP Resource Request - books/%s", book_pk)
        with get_db_manager().read_scope() as session:
            book = BookRepository(session).get_by_id(book_pk)
    except RepositoryException as e:
        logger.exception("Error in books/{book_id} resource")
        raise ResourceError(f"Failed to retrieve book details: {e!s}") from e

    if book is None:
        raise ResourceError(f"Book not found: {book_pk}")
    return book.model_dump(mode="json")


async def get_book_availability_handler(book_id: str) -> dict[str, Any]:
    """Returns the available-copy count of a book without taking any lock.

    The number can be stale by the time the client acts on it; only a
    borrow decides availability authoritatively.
    """
    book_pk = parse_id(book_id, "book")
    ledger = InventoryLedger()
    try:
        with get_db_manager().read_scope() as session:
            available = ledger.get_availability(session, book_pk)
            on_loan = ledger.count_borrowed(session, book_pk)
    except NotFoundError as e:
        raise ResourceError(str(e)) from e
    except RepositoryException as e:
        logger.exception("Error in books/{book_id}/availability resource")
        raise ResourceError(f"Failed to read availability: {e!s}") from e

    return {"book_id": book_pk, "available_copies": available, "copies_on_loan": on_loan}


book_resources: list[dict[str, Any]] = [
    {
        "uri": "library://books/list",
        "name": "Book Catalog",
        "description": "Every book in the catalog with total and available copies.",
        "mime_type": "application/json",
        "handler": list_books_handler,
    },
    {
        "uri": "library://books/{book_id}",
        "name": "Book Details",
        "description": "Get detailed information about a specific book",
        "mime_type": "application/json",
        "handler": get_book_handler,
    },
    {
        "uri": "library://books/{book_id}/availability",
        "name": "Book Availability",
        "description": "Point-in-time available and on-loan copy counts for a book",
        "mime_type": "application/json",
        "handler": get_book_availability_handler,
    },
]
