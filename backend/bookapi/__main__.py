"""
BookAPI Backend - Server Entrypoint
====================================

    python -m bookapi        (or the `bookapi` console script)

Runs uvicorn on HOST:PORT. On SIGINT/SIGTERM uvicorn stops accepting
connections and gives in-flight requests up to SHUTDOWN_GRACE_PERIOD
seconds to finish before the lifespan shutdown closes the database pool.
"""

import uvicorn

from bookapi.config import settings


def main() -> None:
    uvicorn.run(
        "bookapi.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        timeout_graceful_shutdown=settings.shutdown_grace_period or None,
    )


if __name__ == "__main__":
    main()
