import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

import httpx
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from manavault.api import (
    cards_router,
    collection_router,
    decks_router,
    folders_router,
    health_router,
    storage_router,
    wishlist_router,
)
from manavault.config import settings
from manavault.db.database import init_db
from manavault.parsers.scryfall import CardParseError
from manavault.services.card_gateway import (
    CardDataError,
    CardGateway,
    CardNotFoundError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()
    app.state.card_gateway = CardGateway()
    yield
    await app.state.card_gateway.aclose()


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("manavault"),
    lifespan=lifespan,
)

app.include_router(cards_router)
app.include_router(collection_router)
app.include_router(decks_router)
app.include_router(folders_router)
app.include_router(health_router)
app.include_router(storage_router)
app.include_router(wishlist_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CardNotFoundError)
async def card_not_found_handler(_request: Request, exc: CardNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})


@app.exception_handler(RateLimitedError)
async def rate_limited_handler(_request: Request, exc: RateLimitedError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Card data service is rate limiting requests, try again shortly"},
        headers={"Retry-After": str(int(settings.scryfall_retry_delay) or 1)},
    )


@app.exception_handler(CardDataError)
async def card_data_handler(_request: Request, exc: CardDataError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": f"Card data service error: {exc.message}"},
    )


@app.exception_handler(CardParseError)
@app.exception_handler(httpx.HTTPError)
async def upstream_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("Card data service unavailable: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": "Card data service unavailable"},
    )
