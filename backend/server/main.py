"""
Command-line entry point.

Loads .env, reads AppConfig and serves the ASGI app with uvicorn on the
configured host and port (default 3001).
"""

from __future__ import annotations

import uvicorn
from dotenv import load_dotenv

from config import AppConfig


def main() -> None:
    """Run the server until interrupted."""
    load_dotenv()
    config = AppConfig.load_from_env()

    uvicorn.run(
        "server.asgi:app",
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower().replace("warn", "warning"),
    )


if __name__ == "__main__":
    main()
