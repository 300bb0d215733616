"""
SQLAlchemy database schema for the Library Catalog server.

Three tables back the service:

1. ``members`` - library members who borrow books
2. ``books`` - the catalog, carrying the per-book copy counters
3. ``loans`` - one row per lent copy, from ``borrowed`` to ``returned``

The copy counters and the loan status are the only shared mutable state in
the system. The CHECK constraints below are the last line of defence for the
ledger invariants; the lending engine keeps them true by row locking, the
constraints make a violation fail loudly instead of committing.
"""

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class LoanStatusEnum(str, enum.Enum):
    """Database enum for loan status."""

    BORROWED = "borrowed"
    RETURNED = "returned"


class Member(Base):
    """
    Members table - people allowed to borrow books.

    MCP Usage:
    - Resource: library://members/list, library://members/{member_id}
    - Tools: create_member, update_member, delete_member
    """

    __tablename__ = "members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    joined_at = Column(DateTime, nullable=False, default=func.now())

    loans = relationship("Loan", back_populates="member")

    __table_args__ = (Index("idx_member_email", "email"),)


class Book(Base):
    """
    Books table - the catalog and its copy counters.

    ``available_copies`` is written only by the lending engine and by
    copy-count edits that hold the same row lock.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(500), nullable=False, index=True)
    author = Column(String(200), nullable=False)
    published_year = Column(Integer, nullable=True)
    total_copies = Column(Integer, nullable=False, default=1)
    available_copies = Column(Integer, nullable=False, default=1)

    loans = relationship("Loan", back_populates="book")

    __table_args__ = (
        Index("idx_book_availability", "available_copies"),
        CheckConstraint("total_copies >= 0", name="check_total_copies_non_negative"),
        CheckConstraint("available_copies >= 0", name="check_available_copies_non_negative"),
        CheckConstraint(
            "available_copies <= total_copies", name="check_available_not_exceed_total"
        ),
    )


class Loan(Base):
    """
    Loans table - tracks every lent copy.

    Rows are created by a successful borrow and updated once by a successful
    return. They are never deleted.
    """

    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False)
    borrow_date = Column(DateTime, nullable=False, default=func.now())
    return_date = Column(DateTime, nullable=True)
    status = Column(
        Enum(
            LoanStatusEnum,
            name="loan_status",
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=LoanStatusEnum.BORROWED,
    )

    member = relationship("Member", back_populates="loans")
    book = relationship("Book", back_populates="loans")

    __table_args__ = (
        Index("idx_loan_member", "member_id"),
        Index("idx_loan_book_status", "book_id", "status"),
        CheckConstraint(
            "(status = 'returned' AND return_date IS NOT NULL)"
            " OR (status = 'borrowed' AND return_date IS NULL)",
            name="check_return_date_matches_status",
        ),
    )
