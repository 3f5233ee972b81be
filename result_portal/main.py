"""Application entry point for the result portal API server."""

import uvicorn

from result_portal.api.app import app
from result_portal.utils.config import load_config
from result_portal.utils.logger import setup_logging


def serve(host: str = "0.0.0.0", port: int = 8000) -> None:
    uvicorn.run(app, host=host, port=port)


def main() -> None:
    """Start the FastAPI application server."""
    config = load_config()
    setup_logging(config.log_level)
    serve()


if __name__ == "__main__":
    main()
