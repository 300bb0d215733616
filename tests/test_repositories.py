"""
Tests for the member and book repositories.

Catalog edits that touch copy counts are checked against the same ledger
bookkeeping the lending engine relies on.
"""

import logging

import pytest
from pydantic import ValidationError

from library_catalog.database import (
    BookCreateSchema,
    BookRepository,
    BookUpdateSchema,
    DuplicateError,
    MemberCreateSchema,
    MemberRepository,
    MemberUpdateSchema,
    NotFoundError,
    RepositoryException,
    TransactionError,
)
from tests.helpers import assert_ledger_consistent, book_counters


class TestMemberRepository:
    def test_create_and_get(self, db_manager):
        with db_manager.session_scope() as session:
            repo = MemberRepository(session)
            created = repo.create(MemberCreateSchema(name="Jane Smith", email="jane@example.com"))
            fetched = repo.get_by_id(created.id)

        assert fetched == created
        assert fetched.email == "jane@example.com"

    def test_duplicate_email(self, db_manager, member):
        with db_manager.session_scope() as session, pytest.raises(DuplicateError):
            MemberRepository(session).create(
                MemberCreateSchema(name="Someone Else", email=member.email.upper())
            )

    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError):
            MemberCreateSchema(name="Nobody", email="not-an-email")

    def test_update(self, db_manager, member):
        with db_manager.session_scope() as session:
            updated = MemberRepository(session).update(
                member.id, MemberUpdateSchema(name="Jane Doe")
            )
        assert updated.name == "Jane Doe"
        assert updated.email == member.email

    def test_update_to_taken_email(self, db_manager, make_member):
        first, second = make_member(), make_member()
        with db_manager.session_scope() as session, pytest.raises(DuplicateError):
            MemberRepository(session).update(second.id, MemberUpdateSchema(email=first.email))

    def test_update_missing(self, db_manager):
        with db_manager.session_scope() as session, pytest.raises(NotFoundError):
            MemberRepository(session).update(5, MemberUpdateSchema(name="Ghost"))

    def test_delete(self, db_manager, member):
        with db_manager.session_scope() as session:
            repo = MemberRepository(session)
            deleted = repo.delete(member.id)
            assert deleted.id == member.id
            assert not repo.exists(member.id)

    def test_delete_member_with_loans_refused(self, db_manager, lending_engine, member, make_book):
        book = make_book()
        loan = lending_engine.borrow(member.id, book.id)
        lending_engine.return_loan(loan.id)

        with db_manager.session_scope() as session, pytest.raises(RepositoryException):
            MemberRepository(session).delete(member.id)

    def test_get_all_ordered(self, db_manager, make_member):
        created = [make_member() for _ in range(3)]
        with db_manager.session_scope() as session:
            members = MemberRepository(session).get_all()
        assert [m.id for m in members] == [m.id for m in created]


class TestBookRepository:
    def test_new_book_has_every_copy_available(self, db_manager):
        with db_manager.session_scope() as session:
            book = BookRepository(session).create(
                BookCreateSchema(title="Beloved", author="Toni Morrison", total_copies=4)
            )
        assert book.total_copies == 4
        assert book.available_copies == 4
        assert book.copies_on_loan == 0

    def test_negative_total_rejected(self):
        with pytest.raises(ValidationError):
            BookCreateSchema(title="Beloved", author="Toni Morrison", total_copies=-1)

    def test_update_catalog_fields(self, db_manager, make_book):
        book = make_book(total_copies=2)
        with db_manager.session_scope() as session:
            updated = BookRepository(session).update(book.id, BookUpdateSchema(title="New Title"))
        assert updated.title == "New Title"
        assert (updated.total_copies, updated.available_copies) == (2, 2)

    def test_raise_total_with_copies_on_loan(self, db_manager, lending_engine, member, make_book):
        book = make_book(total_copies=2)
        lending_engine.borrow(member.id, book.id)

        with db_manager.session_scope() as session:
            updated = BookRepository(session).update(book.id, BookUpdateSchema(total_copies=5))

        assert (updated.total_copies, updated.available_copies) == (5, 4)
        assert_ledger_consistent(db_manager, book.id)

    def test_lower_total_to_copies_on_loan(self, db_manager, lending_engine, member, make_book):
        book = make_book(total_copies=3)
        lending_engine.borrow(member.id, book.id)

        with db_manager.session_scope() as session:
            updated = BookRepository(session).update(book.id, BookUpdateSchema(total_copies=1))

        assert (updated.total_copies, updated.available_copies) == (1, 0)
        assert_ledger_consistent(db_manager, book.id)

    def test_lower_total_below_copies_on_loan_refused(
        self, db_manager, lending_engine, make_member, make_book
    ):
        book = make_book(total_copies=3)
        lending_engine.borrow(make_member().id, book.id)
        lending_engine.borrow(make_member().id, book.id)

        with db_manager.session_scope() as session, pytest.raises(RepositoryException):
            BookRepository(session).update(book.id, BookUpdateSchema(total_copies=1))

        assert book_counters(db_manager, book.id) == (3, 1)

    def test_update_missing(self, db_manager):
        with db_manager.session_scope() as session, pytest.raises(NotFoundError):
            BookRepository(session).update(9, BookUpdateSchema(total_copies=2))

    def test_delete_unlent_book(self, db_manager, make_book):
        book = make_book()
        with db_manager.session_scope() as session:
            BookRepository(session).delete(book.id)
            assert BookRepository(session).get_by_id(book.id) is None

    def test_delete_lent_book_refused(self, db_manager, lending_engine, member, make_book):
        book = make_book()
        lending_engine.borrow(member.id, book.id)

        with db_manager.session_scope() as session, pytest.raises(RepositoryException):
            BookRepository(session).delete(book.id)


class TestIntegrityErrors:
    def test_explicit_null_rejected_by_update_schemas(self):
        with pytest.raises(ValidationError):
            MemberUpdateSchema(name=None)
        with pytest.raises(ValidationError):
            MemberUpdateSchema(email=None)
        with pytest.raises(ValidationError):
            BookUpdateSchema(title=None)
        with pytest.raises(ValidationError):
            BookUpdateSchema(total_copies=None)

    def test_published_year_can_be_cleared(self, db_manager, make_book):
        book = make_book()
        with db_manager.session_scope() as session:
            updated = BookRepository(session).update(
                book.id, BookUpdateSchema(published_year=None)
            )
        assert updated.published_year is None

    def test_not_null_violation_is_not_a_duplicate(self, db_manager, member):
        # Bypasses validation to reach the store's NOT NULL constraint
        data = MemberUpdateSchema.model_construct(name=None)

        with db_manager.session_scope() as session, pytest.raises(TransactionError) as excinfo:
            MemberRepository(session).update(member.id, data)

        assert not isinstance(excinfo.value, DuplicateError)

    def test_unique_violation_is_a_duplicate(self, db_manager, make_member):
        first, second = make_member(), make_member()
        # Skips the repository's email pre-check so the unique index decides
        with db_manager.session_scope() as session, pytest.raises(DuplicateError):
            repo = MemberRepository(session)
            db_obj = repo._get_db_obj(second.id)
            db_obj.email = first.email
            repo._commit("update Member")


class TestSessionScopeLogging:
    def test_rejections_are_not_logged_as_errors(self, db_manager, caplog):
        with caplog.at_level(logging.INFO, logger="library_catalog.database.session"):
            with db_manager.session_scope() as session, pytest.raises(NotFoundError):
                MemberRepository(session).delete(404)

        records = [r for r in caplog.records if r.name == "library_catalog.database.session"]
        assert records
        assert all(r.levelno == logging.INFO for r in records)
