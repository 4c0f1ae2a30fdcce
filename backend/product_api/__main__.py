"""
Run the Product API with uvicorn.

Usage:
    MONGO_URI=mongodb://localhost:27017 python -m product_api

HOST and PORT come from the environment (see config.py). Ctrl+C / SIGTERM
are handled by uvicorn, which runs the lifespan shutdown and closes the
MongoDB client before exiting.
"""

import uvicorn

from product_api.config import settings


def main() -> None:
    uvicorn.run(
        "product_api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
