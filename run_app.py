import sys

import uvicorn

from ip_lookup.config import get_settings
from ip_lookup.errors import ConfigurationError
from ip_lookup.logger import log_config, logger


def main() -> None:
    """Run the IP lookup service with uvicorn.

    uvicorn handles SIGINT/SIGTERM: in-flight requests get up to 15 seconds to
    finish before the GeoIP database is closed by the application lifespan.
    """
    settings = get_settings()
    try:
        host, port = settings.listen_host_port
    except ConfigurationError as exc:
        logger.error(f"Configuration error: {exc}")
        sys.exit(1)

    logger.info(f"Server starting on {host}:{port}")
    uvicorn.run(
        "ip_lookup.main:app",
        host=host,
        port=port,
        log_config=log_config,
        lifespan="on",
        timeout_keep_alive=120,
        timeout_graceful_shutdown=15,
    )
    logger.info("Server gracefully stopped.")


if __name__ == "__main__":
    main()
