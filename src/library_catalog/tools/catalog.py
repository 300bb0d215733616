"""
Catalog maintenance tools for the Library Catalog server.

Create, update and delete members and books. These carry no lending hazard
except one: changing a book's ``total_copies`` goes through the book
repository, which takes the same row lock as a borrow before shifting the
available count.

Update tools only change the fields that are passed; omitting a field (or
passing null) leaves it as it is.
"""

import asyncio
import logging
from typing import Annotated, Any

from pydantic import EmailStr, Field, ValidationError

from ..database.book_repository import BookCreateSchema, BookRepository, BookUpdateSchema
from ..database.errors import RepositoryException
from ..database.member_repository import (
    MemberCreateSchema,
    MemberRepository,
    MemberUpdateSchema,
)
from ..database.session import get_db_manager
from ..models.book import MAX_PUBLISHED_YEAR
from .circulation import tool_error

logger = logging.getLogger(__name__)

MemberId = Annotated[int, Field(description="Member identifier", ge=1)]
BookId = Annotated[int, Field(description="Book identifier", ge=1)]
MemberName = Annotated[str, Field(description="Full name of the member", min_length=1, max_length=200)]
BookTitle = Annotated[str, Field(description="Title of the book", min_length=1, max_length=500)]
BookAuthor = Annotated[str, Field(description="Author name", min_length=1, max_length=200)]
PublishedYear = Annotated[
    int | None, Field(description="Year the book was published", le=MAX_PUBLISHED_YEAR)
]
TotalCopies = Annotated[int, Field(description="Copies owned by the library", ge=0)]


def _run_member_operation(operation) -> dict[str, Any]:
    with get_db_manager().session_scope() as session:
        return operation(MemberRepository(session)).model_dump(mode="json")


def _run_book_operation(operation) -> dict[str, Any]:
    with get_db_manager().session_scope() as session:
        return operation(BookRepository(session)).model_dump(mode="json")


def _changes(**fields) -> dict[str, Any]:
    return {name: value for name, value in fields.items() if value is not None}


async def _execute(action: str, runner, operation) -> dict[str, Any]:
    """
    Run one repository operation in a worker thread and shape the MCP result.

    Args:
        action: Human-readable action name, e.g. "create member"
        runner: ``_run_member_operation`` or ``_run_book_operation``
        operation: Callable taking the repository and returning a model
    """
    try:
        result = await asyncio.to_thread(runner, operation)
    except RepositoryException as e:
        logger.info("%s refused: %s", action.capitalize(), e)
        raise tool_error(type(e).__name__, str(e)) from e

    return {"message": f"Completed {action}.", **result}


def _schema(schema, **fields):
    try:
        return schema(**fields)
    except ValidationError as e:
        raise tool_error("ValidationError", str(e)) from e


async def create_member_handler(name: MemberName, email: EmailStr) -> dict[str, Any]:
    data = _schema(MemberCreateSchema, name=name, email=email)
    return await _execute("create member", _run_member_operation, lambda repo: repo.create(data))


async def update_member_handler(
    member_id: MemberId,
    name: MemberName | None = None,
    email: EmailStr | None = None,
) -> dict[str, Any]:
    data = _schema(MemberUpdateSchema, **_changes(name=name, email=email))
    return await _execute(
        "update member", _run_member_operation, lambda repo: repo.update(member_id, data)
    )


async def delete_member_handler(member_id: MemberId) -> dict[str, Any]:
    return await _execute(
        "delete member", _run_member_operation, lambda repo: repo.delete(member_id)
    )


async def create_book_handler(
    title: BookTitle,
    author: BookAuthor,
    published_year: PublishedYear = None,
    total_copies: TotalCopies = 1,
) -> dict[str, Any]:
    data = _schema(
        BookCreateSchema,
        title=title,
        author=author,
        published_year=published_year,
        total_copies=total_copies,
    )
    return await _execute("create book", _run_book_operation, lambda repo: repo.create(data))


async def update_book_handler(
    book_id: BookId,
    title: BookTitle | None = None,
    author: BookAuthor | None = None,
    published_year: PublishedYear = None,
    total_copies: TotalCopies | None = None,
) -> dict[str, Any]:
    """Update a book; a new ``total_copies`` is applied as a locked delta."""
    data = _schema(
        BookUpdateSchema,
        **_changes(
            title=title, author=author, published_year=published_year, total_copies=total_copies
        ),
    )
    return await _execute(
        "update book", _run_book_operation, lambda repo: repo.update(book_id, data)
    )


async def delete_book_handler(book_id: BookId) -> dict[str, Any]:
    return await _execute("delete book", _run_book_operation, lambda repo: repo.delete(book_id))


catalog_tools = [
    {
        "name": "create_member",
        "description": "Register a new library member with a unique email address.",
        "handler": create_member_handler,
    },
    {
        "name": "update_member",
        "description": "Change a member's name or email.",
        "handler": update_member_handler,
    },
    {
        "name": "delete_member",
        "description": "Delete a member who has never borrowed a book.",
        "handler": delete_member_handler,
    },
    {
        "name": "create_book",
        "description": "Add a book to the catalog; all of its copies start on the shelf.",
        "handler": create_book_handler,
    },
    {
        "name": "update_book",
        "description": (
            "Edit a book. Changing total_copies shifts the available count by the same "
            "amount and cannot go below the copies currently on loan."
        ),
        "handler": update_book_handler,
    },
    {
        "name": "delete_book",
        "description": "Remove a book that has never been lent.",
        "handler": delete_book_handler,
    },
]
