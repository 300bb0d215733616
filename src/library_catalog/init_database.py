"""
Initialize the Library Catalog database.

This script:
1. Creates all database tables
2. Optionally loads sample members, books and loans
3. Verifies the database is ready for MCP server use

Usage:
    library-catalog-init [--drop-existing] [--sample-data] [--database-url URL]
"""

import argparse
import logging
import sys

from sqlalchemy import inspect

from .database import (
    BookCreateSchema,
    BookRepository,
    DatabaseManager,
    LendingEngine,
    MemberCreateSchema,
    MemberRepository,
    get_db_manager,
)

logger = logging.getLogger(__name__)

EXPECTED_TABLES = {"members", "books", "loans"}

SAMPLE_MEMBERS = [
    ("Jane Smith", "jane.smith@example.com"),
    ("Omar Haddad", "omar.haddad@example.com"),
    ("Mei Tanaka", "mei.tanaka@example.com"),
]

SAMPLE_BOOKS = [
    ("The Great Gatsby", "F. Scott Fitzgerald", 1925, 3),
    ("To Kill a Mockingbird", "Harper Lee", 1960, 2),
    ("1984", "George Orwell", 1949, 1),
]


def load_sample_data(db_manager: DatabaseManager) -> None:
    """
    Load a small catalog with a few loans already out.

    Loans are made through the lending engine so the copy counters start
    out consistent with the loan records.
    """
    with db_manager.session_scope() as session:
        members = MemberRepository(session)
        books = BookRepository(session)
        member_ids = [
            members.create(MemberCreateSchema(name=name, email=email)).id
            for name, email in SAMPLE_MEMBERS
        ]
        book_ids = [
            books.create(
                BookCreateSchema(
                    title=title, author=author, published_year=year, total_copies=copies
                )
            ).id
            for title, author, year, copies in SAMPLE_BOOKS
        ]

    engine = LendingEngine(db_manager)
    engine.borrow(member_ids[0], book_ids[0])
    engine.borrow(member_ids[1], book_ids[2])
    returned = engine.borrow(member_ids[2], book_ids[1])
    engine.return_loan(returned.id)

    logger.info("Loaded %d members and %d books", len(member_ids), len(book_ids))


def main(argv: list[str] | None = None) -> None:
    """Main entry point for database initialization."""
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    parser = argparse.ArgumentParser(description="Initialize the Library Catalog database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load sample data after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="Override the configured database URL",
    )
    args = parser.parse_args(argv)

    db_manager = get_db_manager(args.database_url)

    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    try:
        db_manager.init_database(drop_existing=args.drop_existing)

        if args.sample_data:
            load_sample_data(db_manager)

        missing = EXPECTED_TABLES - set(inspect(db_manager.engine).get_table_names())
        if missing:
            logger.error("Missing expected tables: %s", ", ".join(sorted(missing)))
            sys.exit(1)

        logger.info("Database initialization complete")
    except Exception:
        logger.exception("Database initialization failed")
        sys.exit(1)
    finally:
        db_manager.close()


if __name__ == "__main__":
    main()
