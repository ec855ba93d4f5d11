"""
Request dependencies.

Long-lived objects are built once by the application lifespan and kept on
app.state; routes get them through these functions.
"""

from fastapi import Request

from cardscribe.models.failure import IndexNotLoadedError
from cardscribe.services.card_index import CardIndex
from cardscribe.services.name_matcher import NameMatcher
from cardscribe.services.penny_dreadful import LegalListUpdater
from cardscribe.services.price_cache import PriceCache


def get_card_index(request: Request) -> CardIndex:
    index: CardIndex | None = getattr(request.app.state, "card_index", None)
    if index is None:
        raise IndexNotLoadedError()
    return index


def get_matcher(request: Request) -> NameMatcher:
    matcher: NameMatcher | None = getattr(request.app.state, "matcher", None)
    if matcher is None:
        raise IndexNotLoadedError()
    return matcher


def get_price_cache(request: Request) -> PriceCache | None:
    return getattr(request.app.state, "price_cache", None)


def get_legal_list(request: Request) -> LegalListUpdater | None:
    return getattr(request.app.state, "legal_list", None)
