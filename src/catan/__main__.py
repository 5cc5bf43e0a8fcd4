"""Catan server entrypoint.

Run with:
  python -m catan
"""

import os

import uvicorn
from dotenv import load_dotenv

from catan.settings import configure_logging


def main() -> None:
    load_dotenv()
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "3000"))
    reload = os.getenv("RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    uvicorn.run("catan.app:create_app", factory=True, host=host, port=port, reload=reload)


if __name__ == "__main__":
    main()
