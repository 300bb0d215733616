"""Test configuration and fixtures for the Library Catalog server.

1. Isolated stores - every test gets its own SQLite file under tmp_path
2. Configuration isolation - the global config and database manager are
   reset around each test
3. Seed data - members and books created through the repositories

File-backed SQLite is used throughout (never ``:memory:``) so that threads
get their own connections and really contend for the write lock.
"""

from collections.abc import Callable, Generator
from pathlib import Path

import logfire
import pytest

from library_catalog.config import reset_config
from library_catalog.database import (
    BookCreateSchema,
    BookRepository,
    DatabaseManager,
    LendingEngine,
    MemberCreateSchema,
    MemberRepository,
    get_db_manager,
    reset_db_manager,
)
from library_catalog.models import Book, Member


@pytest.fixture(scope="session", autouse=True)
def configure_logfire() -> None:
    """Keep spans local during tests."""
    logfire.configure(send_to_logfire=False, console=False)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Point the global configuration at a throwaway store."""
    for key in ("LIBRARY_CATALOG_DATABASE_URL", "LIBRARY_CATALOG_LOCK_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("LIBRARY_CATALOG_DATABASE_PATH", str(tmp_path / "config_default.db"))
    reset_config()
    reset_db_manager()

    yield

    reset_db_manager()
    reset_config()


# === Database Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    return tmp_path / "test_library.db"


@pytest.fixture
def test_database_url(test_db_path: Path) -> str:
    return f"sqlite:///{test_db_path}"


@pytest.fixture
def db_manager(test_database_url: str) -> Generator[DatabaseManager, None, None]:
    """A database manager over a fresh, initialized store."""
    manager = DatabaseManager(test_database_url, lock_timeout=10.0)
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def global_db_manager(test_database_url: str) -> Generator[DatabaseManager, None, None]:
    """Install a fresh store as the global manager used by tools and resources."""
    reset_db_manager()
    manager = get_db_manager(test_database_url)
    manager.init_database()
    yield manager
    reset_db_manager()


@pytest.fixture
def lending_engine(db_manager: DatabaseManager) -> LendingEngine:
    return LendingEngine(db_manager)


# === Seed Data ===


@pytest.fixture
def make_member(db_manager: DatabaseManager) -> Callable[..., Member]:
    """Factory creating members with unique emails."""
    counter = {"n": 0}

    def _make(name: str | None = None) -> Member:
        counter["n"] += 1
        n = counter["n"]
        with db_manager.session_scope() as session:
            return MemberRepository(session).create(
                MemberCreateSchema(name=name or f"Member {n}", email=f"member{n}@example.com")
            )

    return _make


@pytest.fixture
def make_book(db_manager: DatabaseManager) -> Callable[..., Book]:
    def _make(total_copies: int = 1, title: str = "The Left Hand of Darkness") -> Book:
        with db_manager.session_scope() as session:
            return BookRepository(session).create(
                BookCreateSchema(
                    title=title,
                    author="Ursula K. Le Guin",
                    published_year=1969,
                    total_copies=total_copies,
                )
            )

    return _make


@pytest.fixture
def member(make_member) -> Member:
    return make_member("Jane Smith")

