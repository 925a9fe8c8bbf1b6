"""
Process entry point.

Imports server.asgi (which loads .env and builds the app once), then serves
it with uvicorn on the configured host/port.
"""

from __future__ import annotations

import uvicorn

from observability.logger import log_event
from server.asgi import config


def main() -> None:
    log_event({
        "event_type": "SERVER_STARTING",
        "host": config.host,
        "port": config.port,
    })

    uvicorn.run(
        "server.asgi:app",
        host=config.host,
        port=config.port,
        log_level="info",
        reload=config.env == "dev",
    )


if __name__ == "__main__":
    main()
