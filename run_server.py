#!/usr/bin/env python3

import logging
import os

import uvicorn

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

if __name__ == "__main__":
    from raffle_health.main import app

    host = os.getenv("RAFFLE_HOST", "127.0.0.1")
    port = int(os.getenv("RAFFLE_PORT", "8000"))
    uvicorn.run(app, host=host, port=port, reload=False, access_log=True)
