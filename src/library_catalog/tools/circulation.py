"""
Circulation tools for the Library Catalog server.

1. borrow_book: lend one copy of a book to a member
2. return_book: close a loan and put the copy back on the shelf

Both tools are thin wrappers over ``LendingEngine``. The engine blocks while
it waits for a row lock, so it runs in a worker thread to keep the event
loop serving other requests. FastMCP validates the arguments against the
handler signatures; every lending failure is raised as a ``ToolError``
whose message starts with the failure kind (``NotFoundError: ...``), so
clients get an MCP error result they can branch on.
"""

import asyncio
import logging
from typing import Annotated, Any

from fastmcp.exceptions import ToolError
from pydantic import Field

from ..database.errors import (
    AlreadyReturnedError,
    InventoryExhaustedError,
    NotFoundError,
    RepositoryException,
    TransactionError,
)
from ..database.lending import LendingEngine
from ..database.session import get_db_manager
from ..models.loan import LoanRecord

logger = logging.getLogger(__name__)

LockTimeout = Annotated[
    float | None,
    Field(
        description="Seconds to wait if another request holds the row; server default if omitted",
        gt=0,
        le=60,
    ),
]


def tool_error(kind: str, message: str) -> ToolError:
    """Build an MCP tool error carrying the failure kind."""
    return ToolError(f"{kind}: {message}")


def loan_data(loan: LoanRecord) -> dict[str, Any]:
    return {
        "id": loan.id,
        "member_id": loan.member_id,
        "book_id": loan.book_id,
        "borrow_date": loan.borrow_date.isoformat(),
        "return_date": loan.return_date.isoformat() if loan.return_date else None,
        "status": loan.status.value,
    }


def get_lending_engine() -> LendingEngine:
    return LendingEngine(get_db_manager())


# =============================================================================
# BORROW TOOL
# =============================================================================


async def borrow_book_handler(
    member_id: Annotated[int, Field(description="Identifier of the member borrowing the book", ge=1)],
    book_id: Annotated[int, Field(description="Identifier of the book to borrow", ge=1)],
    lock_timeout: LockTimeout = None,
) -> dict[str, Any]:
    """
    Handler for the borrow_book tool.

    Returns:
        A summary message and the new loan

    Raises:
        ToolError: NotFoundError, InventoryExhaustedError or TransactionError
    """
    engine = get_lending_engine()
    try:
        loan = await asyncio.to_thread(engine.borrow, member_id, book_id, lock_timeout=lock_timeout)
    except NotFoundError as e:
        raise tool_error("NotFoundError", str(e)) from e
    except InventoryExhaustedError as e:
        raise tool_error("InventoryExhaustedError", str(e)) from e
    except TransactionError as e:
        logger.warning("Borrow transaction failed: %s", e)
        raise tool_error(
            "TransactionError", f"Borrow could not be completed, try again: {e}"
        ) from e
    except RepositoryException as e:
        logger.exception("Unexpected lending failure in borrow_book")
        raise tool_error(type(e).__name__, str(e)) from e

    return {
        "message": (
            f"Book {loan.book_id} lent to member {loan.member_id} "
            f"(loan {loan.id}) on {loan.borrow_date.strftime('%B %d, %Y')}."
        ),
        "loan": loan_data(loan),
    }


# =============================================================================
# RETURN TOOL
# =============================================================================


async def return_book_handler(
    loan_id: Annotated[int, Field(description="Identifier of the loan being returned", ge=1)],
    lock_timeout: LockTimeout = None,
) -> dict[str, Any]:
    """
    Handler for the return_book tool.

    A second return of the same loan is reported as AlreadyReturnedError
    and changes nothing.
    """
    engine = get_lending_engine()
    try:
        loan = await asyncio.to_thread(engine.return_loan, loan_id, lock_timeout=lock_timeout)
    except NotFoundError as e:
        raise tool_error("NotFoundError", str(e)) from e
    except AlreadyReturnedError as e:
        raise tool_error("AlreadyReturnedError", str(e)) from e
    except TransactionError as e:
        logger.warning("Return transaction failed: %s", e)
        raise tool_error(
            "TransactionError", f"Return could not be completed, try again: {e}"
        ) from e
    except RepositoryException as e:
        logger.exception("Unexpected lending failure in return_book")
        raise tool_error(type(e).__name__, str(e)) from e

    return {
        "message": (
            f"Loan {loan.id} closed: book {loan.book_id} returned by member "
            f"{loan.member_id} after {loan.loan_duration_days} day(s)."
        ),
        "loan": loan_data(loan),
    }


borrow_book = {
    "name": "borrow_book",
    "description": (
        "Lend one copy of a book to a member. Fails with InventoryExhaustedError when "
        "no copy is available; never lends more copies than the library owns."
    ),
    "handler": borrow_book_handler,
}

return_book = {
    "name": "return_book",
    "description": (
        "Return the copy lent by a loan and put it back on the shelf. A loan can only "
        "be returned once; repeating the call fails with AlreadyReturnedError."
    ),
    "handler": return_book_handler,
}

circulation_tools = [borrow_book, return_book]
