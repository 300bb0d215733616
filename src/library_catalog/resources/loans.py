"""Loan Resources

Resources:
- library://loans/list - Every loan record, borrowed and returned
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..database.errors import RepositoryException
from ..database.ledger import InventoryLedger
from ..database.session import get_db_manager
from ..models.loan import LoanStatus

logger = logging.getLogger(__name__)


async def list_loans_handler() -> dict[str, Any]:
    try:
        with get_db_manager().read_scope() as session:
            loans = InventoryLedger().list_loans(session)
    except RepositoryException as e:
        logger.exception("Error in loans/list resource")
        raise ResourceError(f"Failed to retrieve loans: {e!s}") from e

    return {
        "loans": [loan.model_dump(mode="json") for loan in loans],
        "total": len(loans),
        "on_loan": sum(1 for loan in loans if loan.status == LoanStatus.BORROWED),
    }


loan_resources: list[dict[str, Any]] = [
    {
        "uri": "library://loans/list",
        "name": "Loan Records",
        "description": "Every loan record with its borrow and return timestamps",
        "mime_type": "application/json",
        "handler": list_loans_handler,
    },
]
