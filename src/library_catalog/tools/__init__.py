"""
MCP Tools for the Library Catalog server.

Tools are the operations with side effects: lending and returning copies,
and editing the catalog. Each tool is a dictionary with a name, a
description, a JSON input schema and an async handler.
"""

from .catalog import catalog_tools
from .circulation import borrow_book, circulation_tools, return_book

all_tools = circulation_tools + catalog_tools

__all__ = [
    "all_tools",
    "borrow_book",
    "catalog_tools",
    "circulation_tools",
    "return_book",
]
