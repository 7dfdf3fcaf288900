"""Console entry point for the memory server."""

import structlog

from ..config.settings import get_settings
from ..logging_config import configure_logging
from .app import create_server

logger = structlog.get_logger()


def main() -> None:
    """Load settings, configure logging and serve on the configured transport."""
    settings = get_settings()
    configure_logging(settings.effective_log_level)

    server = create_server(settings)
    logger.info(
        "Starting memory server",
        transport=settings.transport,
        db_path=settings.memory_db_path,
    )

    if settings.transport == "stdio":
        server.run(transport="stdio")
    else:
        server.run(transport=settings.transport, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
