"""Tests for the Pydantic models exposed to MCP clients."""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from library_catalog.database import BookCreateSchema, BookUpdateSchema
from library_catalog.models import Book, LoanRecord, LoanStatus, Member
from library_catalog.models.book import MAX_PUBLISHED_YEAR


class TestBookModel:
    def test_copy_properties(self):
        book = Book(id=1, title="Dune", author="Frank Herbert", total_copies=3, available_copies=1)
        assert book.is_available is True
        assert book.copies_on_loan == 2

    def test_available_cannot_exceed_total(self):
        with pytest.raises(ValidationError, match="cannot exceed total"):
            Book(id=1, title="Dune", author="Frank Herbert", total_copies=1, available_copies=2)

    def test_negative_counts_rejected(self):
        with pytest.raises(ValidationError):
            Book(id=1, title="Dune", author="Frank Herbert", total_copies=1, available_copies=-1)

    def test_no_copies_left(self):
        book = Book(id=1, title="Dune", author="Frank Herbert", total_copies=1, available_copies=0)
        assert book.is_available is False


class TestLoanRecordModel:
    def test_borrowed_loan(self):
        loan = LoanRecord(id=1, member_id=1, book_id=1, borrow_date=datetime.now())
        assert loan.status == LoanStatus.BORROWED
        assert loan.is_returned is False
        assert loan.loan_duration_days == 0

    def test_returned_loan_needs_return_date(self):
        with pytest.raises(ValidationError, match="must have a return date"):
            LoanRecord(
                id=1, member_id=1, book_id=1, borrow_date=datetime.now(), status=LoanStatus.RETURNED
            )

    def test_borrowed_loan_cannot_have_return_date(self):
        now = datetime.now()
        with pytest.raises(ValidationError):
            LoanRecord(id=1, member_id=1, book_id=1, borrow_date=now, return_date=now)

    def test_clock_stepping_back_is_tolerated(self):
        now = datetime.now()
        loan = LoanRecord(
            id=1,
            member_id=1,
            book_id=1,
            borrow_date=now,
            return_date=now - timedelta(minutes=5),
            status=LoanStatus.RETURNED,
        )
        assert loan.loan_duration_days == 0

    def test_duration_of_returned_loan(self):
        borrowed = datetime(2024, 3, 1, 10, 0)
        loan = LoanRecord(
            id=1,
            member_id=1,
            book_id=1,
            borrow_date=borrowed,
            return_date=borrowed + timedelta(days=9, hours=2),
            status="returned",
        )
        assert loan.is_returned is True
        assert loan.loan_duration_days == 9

    def test_status_serializes_as_value(self):
        loan = LoanRecord(id=1, member_id=1, book_id=1, borrow_date=datetime(2024, 1, 1))
        assert loan.model_dump(mode="json")["status"] == "borrowed"


class TestMemberModel:
    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            Member(id=1, name="Jane", email="jane-at-example")

    def test_id_must_be_positive(self):
        with pytest.raises(ValidationError):
            Member(id=0, name="Jane", email="jane@example.com")


class TestPublishedYearBound:
    def test_input_schemas_share_the_response_bound(self):
        BookCreateSchema(title="Soon", author="Someone", published_year=MAX_PUBLISHED_YEAR)
        with pytest.raises(ValidationError):
            BookCreateSchema(title="Later", author="Someone", published_year=MAX_PUBLISHED_YEAR + 1)
        with pytest.raises(ValidationError):
            BookUpdateSchema(published_year=MAX_PUBLISHED_YEAR + 1)
