"""
Inventory ledger for the Library Catalog server.

The ledger is the only code that reads or writes the copy counters and the
loan status. It is stateless: every method takes the caller's session, which
must already hold an open transaction, so a unit of work can be composed from
several ledger calls and committed or rolled back as one.

Locking reads (``lock_and_get_*``) issue ``SELECT ... FOR UPDATE``. The lock
is held until the caller's transaction ends, which is what keeps two
concurrent borrows from both seeing the last copy.

Reads select columns rather than ORM entities so that a value observed under
lock is never a stale identity-map copy.
"""

from datetime import datetime

from sqlalchemy import and_, func, select, update
from sqlalchemy.orm import Session

from ..models.loan import LoanRecord, LoanStatus
from .errors import NotFoundError
from .schema import Book as BookDB
from .schema import Loan as LoanDB
from .schema import LoanStatusEnum
from .session import safe_query


def loan_to_model(loan: LoanDB) -> LoanRecord:
    """Convert a database loan to its Pydantic model."""
    return LoanRecord(
        id=loan.id,
        member_id=loan.member_id,
        book_id=loan.book_id,
        borrow_date=loan.borrow_date,
        return_date=loan.return_date,
        status=LoanStatus(loan.status.value),
    )


class InventoryLedger:
    """Data access for copy counters and loan records."""

    # Point-in-time reads

    def get_availability(self, session: Session, book_id: int) -> int:
        """
        Read the available copies of a book without locking.

        Raises:
            NotFoundError: If the book does not exist
        """
        available = safe_query(
            session,
            lambda s: s.execute(
                select(BookDB.available_copies).where(BookDB.id == book_id)
            ).scalar_one_or_none(),
            "Failed to read book availability",
        )
        if available is None:
            raise NotFoundError(f"Book {book_id} not found")
        return available

    def get_loan(self, session: Session, loan_id: int) -> LoanRecord:
        """
        Load a loan record as a model.

        Raises:
            NotFoundError: If the loan does not exist
        """
        loan = safe_query(
            session,
            lambda s: s.execute(
                select(LoanDB)
                .where(LoanDB.id == loan_id)
                .execution_options(populate_existing=True)
            ).scalar_one_or_none(),
            "Failed to get loan",
        )
        if loan is None:
            raise NotFoundError(f"Loan {loan_id} not found")
        return loan_to_model(loan)

    def list_loans(
        self,
        session: Session,
        member_id: int | None = None,
        book_id: int | None = None,
        status: LoanStatus | None = None,
    ) -> list[LoanRecord]:
        """List loan records, optionally filtered, oldest first."""
        conditions = []
        if member_id is not None:
            conditions.append(LoanDB.member_id == member_id)
        if book_id is not None:
            conditions.append(LoanDB.book_id == book_id)
        if status is not None:
            conditions.append(LoanDB.status == LoanStatusEnum(status.value))

        query = select(LoanDB).order_by(LoanDB.id)
        if conditions:
            query = query.where(and_(*conditions))

        loans = safe_query(
            session, lambda s: s.execute(query).scalars().all(), "Failed to list loans"
        )
        return [loan_to_model(loan) for loan in loans]

    def count_borrowed(self, session: Session, book_id: int) -> int:
        """Count loans of a book that are still out."""
        return safe_query(
            session,
            lambda s: s.execute(
                select(func.count())
                .select_from(LoanDB)
                .where(
                    and_(
                        LoanDB.book_id == book_id,
                        LoanDB.status == LoanStatusEnum.BORROWED,
                    )
                )
            ).scalar_one(),
            "Failed to count borrowed loans",
        )

    # Locking reads

    def lock_and_get_availability(self, session: Session, book_id: int) -> int:
        """
        Read the available copies of a book, holding an exclusive row lock
        until the session's transaction ends.

        Raises:
            NotFoundError: If the book does not exist
        """
        available = safe_query(
            session,
            lambda s: s.execute(
                select(BookDB.available_copies).where(BookDB.id == book_id).with_for_update()
            ).scalar_one_or_none(),
            "Failed to lock book",
        )
        if available is None:
            raise NotFoundError(f"Book {book_id} not found")
        return available

    def lock_and_get_loan(self, session: Session, loan_id: int) -> tuple[int, LoanStatus]:
        """
        Read a loan's book and status, holding an exclusive row lock until
        the session's transaction ends.

        Raises:
            NotFoundError: If the loan does not exist
        """
        row = safe_query(
            session,
            lambda s: s.execute(
                select(LoanDB.book_id, LoanDB.status).where(LoanDB.id == loan_id).with_for_update()
            ).one_or_none(),
            "Failed to lock loan",
        )
        if row is None:
            raise NotFoundError(f"Loan {loan_id} not found")
        return row.book_id, LoanStatus(row.status.value)

    # Writes

    def decrement_available(self, session: Session, book_id: int) -> None:
        """Take one copy off the shelf."""
        self._adjust_available(session, book_id, -1)

    def increment_available(self, session: Session, book_id: int) -> None:
        """Put one copy back on the shelf."""
        self._adjust_available(session, book_id, 1)

    def adjust_total(self, session: Session, book_id: int, new_total: int) -> None:
        """
        Set a book's total copies and shift the available count by the same
        delta. The caller must hold the book's row lock.
        """
        result = safe_query(
            session,
            lambda s: s.execute(
                update(BookDB)
                .where(BookDB.id == book_id)
                .values(
                    available_copies=BookDB.available_copies + (new_total - BookDB.total_copies),
                    total_copies=new_total,
                )
                .execution_options(synchronize_session=False)
            ),
            "Failed to adjust total copies",
        )
        if result.rowcount == 0:
            raise NotFoundError(f"Book {book_id} not found")

    def _adjust_available(self, session: Session, book_id: int, delta: int) -> None:
        result = safe_query(
            session,
            lambda s: s.execute(
                update(BookDB)
                .where(BookDB.id == book_id)
                .values(available_copies=BookDB.available_copies + delta)
                .execution_options(synchronize_session=False)
            ),
            "Failed to update book availability",
        )
        if result.rowcount == 0:
            raise NotFoundError(f"Book {book_id} not found")

    def insert_loan(self, session: Session, member_id: int, book_id: int) -> tuple[int, datetime]:
        """Create a ``borrowed`` loan and return its id and borrow time."""
        loan = LoanDB(
            member_id=member_id,
            book_id=book_id,
            borrow_date=datetime.now(),
            status=LoanStatusEnum.BORROWED,
        )
        session.add(loan)
        safe_query(session, lambda s: s.flush(), "Failed to insert loan")
        return loan.id, loan.borrow_date

    def mark_returned(self, session: Session, loan_id: int) -> datetime:
        """
        Mark a loan returned and stamp the return time.

        The caller must have checked, under the loan's row lock, that the
        loan was still ``borrowed``.
        """
        returned_at = datetime.now()
        result = safe_query(
            session,
            lambda s: s.execute(
                update(LoanDB)
                .where(LoanDB.id == loan_id)
                .values(status=LoanStatusEnum.RETURNED, return_date=returned_at)
                .execution_options(synchronize_session=False)
            ),
            "Failed to mark loan returned",
        )
        if result.rowcount == 0:
            raise NotFoundError(f"Loan {loan_id} not found")
        return returned_at
