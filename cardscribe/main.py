"""
CardScribe HTTP service.

Serve with:

    uvicorn cardscribe.main:app --host 0.0.0.0 --port 8000
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cardscribe.api import cards_router, health_router, match_router, prices_router
from cardscribe.config import settings
from cardscribe.models.failure import KnownError
from cardscribe.services.index_builder import load_card_index
from cardscribe.services.name_matcher import NameMatcher
from cardscribe.services.penny_dreadful import LegalListUpdater
from cardscribe.services.price_cache import PriceCache
from cardscribe.services.price_source import ScryfallPriceSource

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Load card data and the price cache on startup; save prices on shutdown."""
    index = load_card_index()
    app.state.card_index = index
    app.state.matcher = (
        NameMatcher(index, show_basic_lands=settings.show_basic_lands) if index else None
    )

    source = ScryfallPriceSource()
    cache = PriceCache(source, enabled=settings.enable_card_price)
    cache.load(settings.price_cache_path)
    app.state.price_cache = cache

    app.state.legal_list = None
    if index is not None and settings.enable_legal_list:
        legal_list = LegalListUpdater(index)
        result = await legal_list.update()
        logger.info("Penny Dreadful legal list: %s", result.value)
        app.state.legal_list = legal_list

    yield

    await cache.close()
    cache.save(settings.price_cache_path)
    await source.aclose()


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("cardscribe"),
    lifespan=lifespan,
)

app.include_router(cards_router)
app.include_router(health_router)
app.include_router(match_router)
app.include_router(prices_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())
