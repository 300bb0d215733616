"""Library Catalog MCP Resources Package

Resources are the read-only side of the server: catalog listings, member
details and loan records. None of them take row locks, so a listing can be
stale by the time a client acts on it.
"""

from .books import book_resources
from .loans import loan_resources
from .members import member_resources

all_resources = book_resources + member_resources + loan_resources

__all__ = [
    "all_resources",
    "book_resources",
    "loan_resources",
    "member_resources",
]
