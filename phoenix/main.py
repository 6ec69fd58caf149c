"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from phoenix.api.v1 import router as v1_router
from phoenix.core.config import settings

logger = logging.getLogger(__name__)

# Settings validation (e.g. missing AUTH_SECRET in prod) fails at import, before serving.
if settings.AUTH_SECRET is None:
    logger.warning("AUTH_SECRET is not set; tokens are signed with the dev-only secret.")

app = FastAPI(
    title="Phoenix API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Cookie auth needs explicit origins when allow_credentials is on.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"] if settings.APP_ENV == "dev" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Phoenix API"}
