"""Run the service with uvicorn on the configured host and port."""

from __future__ import annotations

import logging

import uvicorn

from jp_address_api.config import default_config
from jp_address_api.server import app

logger = logging.getLogger(__name__)


def main() -> None:
    logger.info(
        "server_starting host=%s port=%s",
        default_config.host,
        default_config.port,
        extra={"event": "server_starting"},
    )
    # Logging is already configured by the server module.
    uvicorn.run(app, host=default_config.host, port=default_config.port, log_config=None)


if __name__ == "__main__":
    main()
