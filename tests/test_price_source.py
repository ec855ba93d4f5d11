"""Tests for the Scryfall price source."""

import httpx
import pytest
import respx

from cardscribe.models.price import FETCH_ERROR_PRICE, NO_PRICE
from cardscribe.services.price_source import (
    PriceSourceUnavailable,
    ScryfallPriceSource,
    parse_price_response,
)

SEARCH_URL = "https://api.scryfall.com/cards/search"


def _search_response(*cards: tuple[str, str | None]) -> dict:
    return {
        "object": "list",
        "total_cards": len(cards),
        "has_more": False,
        "data": [
            {"object": "card", "name": name, "prices": {"usd": "1.00", "tix": tix}}
            for name, tix in cards
        ],
    }


class TestParsePriceResponse:
    def test_single_result(self) -> None:
        body = httpx.Response(200, json=_search_response(("Lightning Bolt", "0.02"))).content

        assert parse_price_response(body, "Lightning Bolt") == "0.02 tix"

    def test_picks_exact_name_among_several(self) -> None:
        body = httpx.Response(
            200,
            json=_search_response(("Lightning Bolt", "0.02"), ("Lightning Axe", "0.05")),
        ).content

        assert parse_price_response(body, "Lightning Axe") == "0.05 tix"

    def test_split_card_query(self) -> None:
        body = httpx.Response(
            200,
            json=_search_response(("Fire // Ice", "0.10"), ("Ice Cave", "1.50")),
        ).content

        assert parse_price_response(body, "Fire+Ice") == "0.10 tix"

    def test_no_exact_match_means_no_price(self) -> None:
        body = httpx.Response(
            200,
            json=_search_response(("Lightning Bolt", "0.02"), ("Lightning Axe", "0.05")),
        ).content

        assert parse_price_response(body, "Lightning") == NO_PRICE

    def test_missing_tix(self) -> None:
        body = httpx.Response(200, json=_search_response(("Black Lotus", None))).content

        assert parse_price_response(body, "Black Lotus") == NO_PRICE

    def test_malformed_body(self) -> None:
        assert parse_price_response(b"not json", "Lightning Bolt") == NO_PRICE
        assert parse_price_response(b'{"data": "oops"}', "Lightning Bolt") == NO_PRICE


class TestScryfallPriceSource:
    @respx.mock
    async def test_fetches_price(self) -> None:
        route = respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(200, json=_search_response(("Lightning Bolt", "0.02")))
        )

        async with ScryfallPriceSource() as source:
            price = await source.fetch_price("Lightning Bolt")

        assert price == "0.02 tix"
        request = route.calls.last.request
        assert request.url.params["order"] == "tix"
        assert request.url.params["q"] == "Lightning Bolt"

    @respx.mock
    async def test_split_card_query_uses_spaces(self) -> None:
        route = respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(200, json=_search_response(("Fire // Ice", "0.10")))
        )

        async with ScryfallPriceSource() as source:
            price = await source.fetch_price("Fire+Ice")

        assert price == "0.10 tix"
        assert route.calls.last.request.url.params["q"] == "Fire Ice"

    @respx.mock
    async def test_not_found_means_no_price(self) -> None:
        respx.get(SEARCH_URL).mock(return_value=httpx.Response(404, json={"object": "error"}))

        async with ScryfallPriceSource() as source:
            assert await source.fetch_price("Nonexistent") == NO_PRICE

    @respx.mock
    async def test_server_error_is_fetch_error(self) -> None:
        respx.get(SEARCH_URL).mock(return_value=httpx.Response(503))

        async with ScryfallPriceSource() as source:
            assert await source.fetch_price("Lightning Bolt") == FETCH_ERROR_PRICE

    @respx.mock
    async def test_network_error_raises(self) -> None:
        respx.get(SEARCH_URL).mock(side_effect=httpx.ConnectError("boom"))

        async with ScryfallPriceSource() as source:
            with pytest.raises(PriceSourceUnavailable, match="Lightning Bolt"):
                await source.fetch_price("Lightning Bolt")

    @respx.mock
    async def test_custom_base_url_and_client(self) -> None:
        respx.get("https://mirror.test/cards/search").mock(
            return_value=httpx.Response(200, json=_search_response(("Island", None)))
        )

        async with httpx.AsyncClient() as client:
            source = ScryfallPriceSource(client=client, base_url="https://mirror.test/")
            assert await source.fetch_price("Island") == NO_PRICE
            await source.aclose()
            assert not client.is_closed
