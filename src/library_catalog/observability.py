"""Logfire observability for the Library Catalog server."""

import logging

import logfire

from .config import ServerConfig, get_config

logger = logging.getLogger(__name__)


def initialize_observability(config: ServerConfig | None = None) -> None:
    """Configure logfire from the server configuration.

    Spans are always created by the lending engine; this decides whether
    they are shipped to the logfire backend and whether standard logging
    records are forwarded along with them.
    """
    config = config or get_config()

    if not config.logfire_enabled:
        logger.debug("Observability disabled via configuration")
        logfire.configure(send_to_logfire=False, console=False)
        return

    logfire.configure(
        service_name=config.server_name,
        service_version=config.server_version,
        send_to_logfire=config.logfire_send,
        console=False,
    )
    logging.getLogger().addHandler(logfire.LogfireLoggingHandler())
    logger.info("Logfire observability configured (send=%s)", config.logfire_send)
