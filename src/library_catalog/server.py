"""Library Catalog MCP Server

Exposes the lending engine and the catalog through FastMCP:

- Tools: borrow_book, return_book and the member/book maintenance tools
- Resources: read-only library:// views of books, members and loans

Every tool call that changes copy counts runs inside one database
transaction holding a row lock, so any number of clients (or server
processes sharing the database) can call borrow_book and return_book at
the same time without over-lending a book.
"""

import logging
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from .config import get_config
from .database.session import get_db_manager
from .observability import initialize_observability
from .resources import all_resources
from .tools import all_tools

# Logs go to stderr so stdout stays clean for the stdio transport
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)

logger = logging.getLogger(__name__)


def create_server() -> FastMCP:
    """Build the FastMCP server with every tool and resource registered."""
    config = get_config()

    mcp = FastMCP(
        name=config.server_name,
        version=config.server_version,
        instructions=(
            "Library Catalog MCP Server - lends copies of books to members. "
            "Use borrow_book and return_book to move copies; they never lend more "
            "copies than the library owns and a loan can only be returned once. "
            "Browse the library:// resources for books, members and loans."
        ),
    )

    for resource in all_resources:
        mcp.resource(
            resource["uri"],
            name=resource["name"],
            description=resource["description"],
            mime_type=resource["mime_type"],
        )(resource["handler"])

    logger.info("Registered %d resources", len(all_resources))

    for tool in all_tools:
        logger.debug("Registering tool: %s", tool["name"])
        mcp.tool(
            name=tool["name"],
            description=tool["description"],
        )(tool["handler"])

    logger.info("Registered %d tools", len(all_tools))
    return mcp


def prepare_database() -> None:
    """Create missing tables and make sure the store is reachable."""
    db_manager = get_db_manager()
    db_manager.init_database()
    if not db_manager.verify_connection():
        raise RuntimeError(f"Cannot connect to database ({db_manager.dialect_name})")
    logger.info("Database ready (%s)", db_manager.dialect_name)


def run_server(mcp: FastMCP) -> None:
    """Run the server on the configured transport until it is stopped."""
    config = get_config()

    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug mode enabled - verbose protocol logging active")
    else:
        logging.getLogger().setLevel(config.log_level)
        logging.getLogger("fastmcp").setLevel(logging.WARNING)

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        get_db_manager().close()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if config.transport == "stdio":
        logger.info("Starting %s v%s on stdio", config.server_name, config.server_version)
        mcp.run(transport="stdio")
    else:
        logger.info(
            "Starting %s v%s on http://%s:%s",
            config.server_name,
            config.server_version,
            config.http_host,
            config.http_port,
        )
        mcp.run(transport="streamable-http", host=config.http_host, port=config.http_port)


def main() -> None:
    """Entry point for the ``library-catalog`` command."""
    config = get_config()
    try:
        logger.info("=" * 60)
        logger.info("Library Catalog MCP Server")
        logger.info("Version: %s", config.server_version)
        logger.info("Transport: %s", config.transport)
        logger.info("Debug Mode: %s", config.debug)
        logger.info("=" * 60)

        initialize_observability(config)
        prepare_database()
        run_server(create_server())

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start MCP server")
        sys.exit(1)
    finally:
        get_db_manager().close()


if __name__ == "__main__":
    main()
