"""Run the PayChat command API under uvicorn.

Confirmations and rate-limit windows live in the store, so more than one
worker needs ``REDIS_URL`` (or ``REDIS_HOST``) pointing at a shared server.
"""

import logging
import os

import uvicorn

DEFAULT_PORT = 8080
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def main() -> None:
    log_level = os.getenv("PAYCHAT_LOG_LEVEL", "info").lower()
    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)
    uvicorn.run(
        "paychat.api:app",
        host=os.getenv("PAYCHAT_HOST", "127.0.0.1"),
        port=int(os.getenv("PAYCHAT_PORT", str(DEFAULT_PORT))),
        workers=int(os.getenv("PAYCHAT_WORKERS", "1")),
        log_level=log_level,
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
