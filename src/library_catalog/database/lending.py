"""
Lending transaction engine for the Library Catalog server.

The engine runs borrow and return as isolated, all-or-nothing units of work
against the inventory ledger:

1. **Borrow**: lock the book row, refuse if no copy is left, take one copy
   off the shelf and record a ``borrowed`` loan
2. **Return**: lock the loan row, refuse if it was already returned, mark it
   ``returned`` and put the copy back on the shelf

Serialization is left entirely to the store's row locks, so the guarantees
hold across threads and across server processes sharing one database. The
engine keeps no in-process state, takes at most one row lock per operation
and never retries; the caller decides whether a ``TransactionError`` is worth
another attempt.
"""

import logging

import logfire
from sqlalchemy import select

from ..models.loan import LoanRecord, LoanStatus
from .errors import (
    AlreadyReturnedError,
    InventoryExhaustedError,
    NotFoundError,
    RepositoryException,
)
from .ledger import InventoryLedger
from .schema import Member as MemberDB
from .session import DatabaseManager, get_db_manager, safe_query

logger = logging.getLogger(__name__)


class LendingEngine:
    """
    Borrow and return operations over the inventory ledger.

    Safe to share between any number of concurrent callers.
    """

    def __init__(
        self,
        db_manager: DatabaseManager | None = None,
        ledger: InventoryLedger | None = None,
    ):
        self.db_manager = db_manager or get_db_manager()
        self.ledger = ledger or InventoryLedger()

    def borrow(
        self, member_id: int, book_id: int, *, lock_timeout: float | None = None
    ) -> LoanRecord:
        """
        Lend one copy of a book to a member.

        Args:
            member_id: Borrowing member
            book_id: Book to lend
            lock_timeout: Seconds to wait for the book's row lock

        Returns:
            The new ``borrowed`` loan record

        Raises:
            NotFoundError: If the member or book does not exist
            InventoryExhaustedError: If no copy is available
            TransactionError: If the store fails or the lock wait times out
        """
        with logfire.span("lending.borrow", member_id=member_id, book_id=book_id) as span:
            try:
                with self.db_manager.transaction(lock_timeout=lock_timeout) as session:
                    self._require_member(session, member_id)

                    available = self.ledger.lock_and_get_availability(session, book_id)
                    if available <= 0:
                        raise InventoryExhaustedError(
                            f"Book {book_id} unavailable - no copies left to lend"
                        )

                    self.ledger.decrement_available(session, book_id)
                    loan_id, _ = self.ledger.insert_loan(session, member_id, book_id)
                    loan = self.ledger.get_loan(session, loan_id)
            except RepositoryException as e:
                span.set_attribute("lending.outcome", type(e).__name__)
                logger.info("Borrow rejected: member=%s book=%s: %s", member_id, book_id, e)
                raise

            span.set_attribute("lending.outcome", "ok")
            span.set_attribute("loan_id", loan.id)
            logger.info("Loan %s created: member=%s book=%s", loan.id, member_id, book_id)
            return loan

    def return_loan(self, loan_id: int, *, lock_timeout: float | None = None) -> LoanRecord:
        """
        Take back the copy lent by a loan.

        Args:
            loan_id: Loan to close
            lock_timeout: Seconds to wait for the loan's row lock

        Returns:
            The updated ``returned`` loan record

        Raises:
            NotFoundError: If the loan (or its book) does not exist
            AlreadyReturnedError: If the loan was returned before
            TransactionError: If the store fails or the lock wait times out
        """
        with logfire.span("lending.return", loan_id=loan_id) as span:
            try:
                with self.db_manager.transaction(lock_timeout=lock_timeout) as session:
                    book_id, status = self.ledger.lock_and_get_loan(session, loan_id)
                    if status == LoanStatus.RETURNED:
                        raise AlreadyReturnedError(f"Loan {loan_id} was already returned")

                    self.ledger.mark_returned(session, loan_id)
                    self.ledger.increment_available(session, book_id)
                    loan = self.ledger.get_loan(session, loan_id)
            except RepositoryException as e:
                span.set_attribute("lending.outcome", type(e).__name__)
                logger.info("Return rejected: loan=%s: %s", loan_id, e)
                raise

            span.set_attribute("lending.outcome", "ok")
            logger.info("Loan %s returned: book=%s", loan_id, book_id)
            return loan

    def get_availability(self, book_id: int) -> int:
        """Point-in-time available copies of a book, for display."""
        with self.db_manager.read_scope() as session:
            return self.ledger.get_availability(session, book_id)

    def _require_member(self, session, member_id: int) -> None:
        exists = safe_query(
            session,
            lambda s: s.execute(
                select(MemberDB.id).where(MemberDB.id == member_id)
            ).scalar_one_or_none(),
            "Failed to look up member",
        )
        if exists is None:
            raise NotFoundError(f"Member {member_id} not found")
