"""
Price endpoint.

Never waits for Scryfall: a first request answers "pending" and starts a
background fetch; the client polls.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from cardscribe.api.dependencies import get_card_index, get_price_cache
from cardscribe.models.failure import CardNotFoundError
from cardscribe.models.price import PriceState, PriceStateKind
from cardscribe.services.card_index import CardIndex
from cardscribe.services.name_normalizer import normalize_name
from cardscribe.services.price_cache import PriceCache

router = APIRouter(prefix="/prices", tags=["prices"])


class PriceResponse(BaseModel):
    name: str
    state: PriceStateKind
    value: str | None = None


@router.get("/{name}", response_model=PriceResponse)
async def get_price(
    name: str,
    index: Annotated[CardIndex, Depends(get_card_index)],
    cache: Annotated[PriceCache | None, Depends(get_price_cache)],
) -> PriceResponse:
    """Current price state of a card."""
    card = index.get(normalize_name(name))
    if card is None:
        raise CardNotFoundError(name)

    state = cache.get(card) if cache is not None else PriceState.not_applicable()
    return PriceResponse(name=card.name, state=state.kind, value=state.value)
