import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from raffle_health.config import ALLOW_ORIGINS, APP_TITLE, APP_VERSION, CONFIG_PATH
from raffle_health.data.loader import init_model
from raffle_health.routers import calculate, phases, raffles

log = logging.getLogger("raffle.api")

app = FastAPI(title=APP_TITLE, version=APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Routers ---
app.include_router(calculate.router)
app.include_router(raffles.router)
app.include_router(phases.router)


@app.on_event("startup")
def _startup():
    try:
        init_model(CONFIG_PATH)
    except Exception:
        # calculator and phase endpoints need no config file
        log.exception("Failed to load raffle config from %s at startup", CONFIG_PATH)


@app.get("/health")
def health():
    return {"ok": True, "version": APP_VERSION}
