"""Member Resources

Resources:
- library://members/list - All members
- library://members/{member_id} - One member with their loans
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..database.errors import RepositoryException
from ..database.ledger import InventoryLedger
from ..database.member_repository import MemberRepository
from ..database.session import get_db_manager
from .uri_utils import parse_id

logger = logging.getLogger(__name__)


async def list_members_handler() -> dict[str, Any]:
    try:
        with get_db_manager().read_scope() as session:
            members = MemberRepository(session).get_all()
    except RepositoryException as e:
        logger.exception("Error in members/list resource")
        raise ResourceError(f"Failed to retrieve member list: {e!s}") from e

    return {
        "members": [member.model_dump(mode="json") for member in members],
        "total": len(members),
    }


async def get_member_handler(member_id: str) -> dict[str, Any]:
    """Returns a member and their loan history."""
    member_pk = parse_id(member_id, "member")
    try:
        with get_db_manager().read_scope() as session:
            member = MemberRepository(session).get_by_id(member_pk)
            loans = InventoryLedger().list_loans(session, member_id=member_pk) if member else []
    except RepositoryException as e:
        logger.exception("Error in members/{member_id} resource")
        raise ResourceError(f"Failed to retrieve member: {e!s}") from e

    if member is None:
        raise ResourceError(f"Member not found: {member_pk}")

    return {
        **member.model_dump(mode="json"),
        "loans": [loan.model_dump(mode="json") for loan in loans],
    }


member_resources: list[dict[str, Any]] = [
    {
        "uri": "library://members/list",
        "name": "Member Directory",
        "description": "All registered library members",
        "mime_type": "application/json",
        "handler": list_members_handler,
    },
    {
        "uri": "library://members/{member_id}",
        "name": "Member Details",
        "description": "A member and their loan history",
        "mime_type": "application/json",
        "handler": get_member_handler,
    },
]
