"""Store inspection and thread helpers shared by the lending tests."""

import threading
from collections import Counter

from sqlalchemy import func, select

from library_catalog.database import DatabaseManager
from library_catalog.database.schema import Book as BookDB
from library_catalog.database.schema import Loan as LoanDB
from library_catalog.database.schema import LoanStatusEnum


def book_counters(db_manager: DatabaseManager, book_id: int) -> tuple[int, int]:
    """Return (total_copies, available_copies) straight from the store."""
    with db_manager.read_scope() as session:
        row = session.execute(
            select(BookDB.total_copies, BookDB.available_copies).where(BookDB.id == book_id)
        ).one()
    return row.total_copies, row.available_copies


def borrowed_count(db_manager: DatabaseManager, book_id: int) -> int:
    with db_manager.read_scope() as session:
        return session.execute(
            select(func.count())
            .select_from(LoanDB)
            .where(LoanDB.book_id == book_id, LoanDB.status == LoanStatusEnum.BORROWED)
        ).scalar_one()


def loan_count(db_manager: DatabaseManager) -> int:
    with db_manager.read_scope() as session:
        return session.execute(select(func.count()).select_from(LoanDB)).scalar_one()


def assert_ledger_consistent(db_manager: DatabaseManager, book_id: int) -> None:
    """Counters within bounds and on-loan copies match the borrowed loans."""
    total, available = book_counters(db_manager, book_id)
    assert 0 <= available <= total
    assert borrowed_count(db_manager, book_id) == total - available


def run_concurrently(target, args_list):
    """Run ``target(*args)`` for each args tuple in its own thread; collect outcomes."""
    barrier = threading.Barrier(len(args_list))
    outcomes: list[object] = [None] * len(args_list)

    def worker(index, args):
        barrier.wait()
        try:
            outcomes[index] = target(*args)
        except Exception as e:  # noqa: BLE001 - the outcome is what is asserted
            outcomes[index] = e

    threads = [
        threading.Thread(target=worker, args=(i, args)) for i, args in enumerate(args_list)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return outcomes


def outcome_kinds(outcomes) -> Counter:
    return Counter("ok" if not isinstance(o, Exception) else type(o).__name__ for o in outcomes)
