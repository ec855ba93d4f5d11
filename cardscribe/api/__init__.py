from cardscribe.api.cards import router as cards_router
from cardscribe.api.health import router as health_router
from cardscribe.api.match import router as match_router
from cardscribe.api.prices import router as prices_router

__all__ = [
    "cards_router",
    "health_router",
    "match_router",
    "prices_router",
]
