"""
Scryfall price source.

Looks up the MTGO ticket price of a card with Scryfall's full-text search:

    GET https://api.scryfall.com/cards/search?order=tix&q=<name>

Only a narrow subset of the response is read (total_cards, and name and
prices.tix of each card). Anything missing or malformed means "no price",
not an error. Network failures are the only thing this module raises, so the
cache can tell "try again later" apart from "Scryfall has no price".
"""

import logging
from types import TracebackType

import httpx
from pydantic import BaseModel, ValidationError

from cardscribe.config import settings
from cardscribe.models.price import FETCH_ERROR_PRICE, NO_PRICE
from cardscribe.services.name_normalizer import SPLIT_CARD_SEPARATOR

logger = logging.getLogger(__name__)

# Split card queries join the faces with "+" ("Fire+Ice")
QUERY_FACE_JOINER = "+"


class PriceSourceUnavailable(Exception):
    """Raised when Scryfall could not be reached at all."""


# =============================================================================
# RESPONSE SCHEMA (subset)
# =============================================================================


class ScryfallPrices(BaseModel):
    tix: str | None = None


class ScryfallCard(BaseModel):
    name: str
    prices: ScryfallPrices | None = None


class ScryfallSearchResponse(BaseModel):
    """Subset of a Scryfall list object. Unknown fields are ignored."""

    total_cards: int | None = None
    data: list[ScryfallCard] = []

    def find_card(self, query: str) -> ScryfallCard | None:
        """
        Pick the card the query was for.

        The search is not exact, so several cards can come back; in that case
        only the one whose name equals the query counts.
        """
        if self.total_cards is None or not self.data:
            return None
        if self.total_cards == 1:
            return self.data[0]

        wanted = query.replace(QUERY_FACE_JOINER, SPLIT_CARD_SEPARATOR)
        for card in self.data:
            if card.name == wanted:
                return card
        return None


def format_tix(tix: str) -> str:
    return f"{tix} tix"


def parse_price_response(body: bytes | str, query: str) -> str:
    """
    Extract the display price from a search response body.

    Returns:
        "<tix> tix", or NO_PRICE when the card or its price is missing
    """
    try:
        response = ScryfallSearchResponse.model_validate_json(body)
    except ValidationError as e:
        logger.info("Unreadable Scryfall response for %s: %d errors", query, e.error_count())
        return NO_PRICE

    card = response.find_card(query)
    if card is None or card.prices is None or not card.prices.tix:
        return NO_PRICE
    return format_tix(card.prices.tix)


# =============================================================================
# CLIENT
# =============================================================================


class ScryfallPriceSource:
    """
    Fetches card prices from Scryfall.

    Usage:
        async with ScryfallPriceSource() as source:
            price = await source.fetch_price("Lightning Bolt")
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": settings.user_agent, "Accept": "application/json"},
            timeout=settings.http_timeout,
            follow_redirects=True,
        )
        self._base_url = (base_url or settings.scryfall_api_url).rstrip("/")

    async def fetch_price(self, query: str) -> str:
        """
        Look up one card's ticket price.

        Args:
            query: Card name; split cards as "Left+Right"

        Returns:
            Display price, NO_PRICE if Scryfall has none (or no such card),
            FETCH_ERROR_PRICE if Scryfall answered with an error status

        Raises:
            PriceSourceUnavailable: On network-level failure
        """
        url = f"{self._base_url}/cards/search"
        params = {"order": "tix", "q": query.replace(QUERY_FACE_JOINER, " ")}

        try:
            response = await self._client.get(url, params=params)
        except httpx.RequestError as e:
            raise PriceSourceUnavailable(f"Failed to reach Scryfall for {query}: {e}") from e

        if response.status_code == httpx.codes.NOT_FOUND:
            # Scryfall's answer for "no cards matched"
            return NO_PRICE
        if not response.is_success:
            logger.warning("Scryfall returned HTTP %d for %s", response.status_code, query)
            return FETCH_ERROR_PRICE

        return parse_price_response(response.content, query)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ScryfallPriceSource":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
