"""Application entry point for the badge scanner API server."""

import uvicorn

from badge_scanner.api.app import app
from badge_scanner.utils.config import load_config
from badge_scanner.utils.logger import setup_logging


def main() -> None:
    """Start the FastAPI application server."""
    config = load_config()
    setup_logging(config.log_level)
    uvicorn.run(app, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
