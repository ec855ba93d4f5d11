"""Tests for the Penny Dreadful legal list."""

import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import httpx
import pytest
import respx

from cardscribe.models.card_record import CardRecord
from cardscribe.services.card_index import CardIndex
from cardscribe.services.penny_dreadful import (
    LegalListConflict,
    LegalListResult,
    LegalListUpdater,
    parse_legal_list,
)

LEGAL_LIST_URL = "http://pdmtgo.com/legal_cards.txt"

LEGAL_LIST = """Lightning Bolt
Fire // Ice
Island
Hymn to Tourach
Lim-Dûl's Vault
Lightning Bolt - Sketch
"""

LAST_MODIFIED = "Wed, 14 Oct 2026 07:00:00 GMT"


class FakeNow:
    def __init__(self) -> None:
        self.value = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.value

    def advance(self, delta: timedelta) -> None:
        self.value += delta


@pytest.fixture
def now() -> FakeNow:
    return FakeNow()


@pytest.fixture
def list_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "pd_legal_cards.txt"


@pytest.fixture
def updater(card_index: CardIndex, list_path: Path, now: FakeNow) -> LegalListUpdater:
    return LegalListUpdater(card_index, path=list_path, url=LEGAL_LIST_URL, now=now)


class TestParseLegalList:
    def test_reads_names(self, card_index: CardIndex) -> None:
        legal = parse_legal_list(LEGAL_LIST.splitlines(), card_index)

        assert legal == {
            "Lightning Bolt",
            "Fire",
            "Ice",
            "Island",
            "Hymn to Tourach",
            "Lim-Dul's Vault",
        }

    def test_fixes_known_misspelling(self) -> None:
        names = ["Plains", "Island", "Swamp", "Mountain", "Sol'kanar the Tainted"]
        index = CardIndex.from_records(CardRecord(name=n) for n in names)

        legal = parse_legal_list(["Plains", "Island", "Swamp", "Mountain", "Sol'Kanar the Tainted"], index)

        assert "Sol'kanar the Tainted" in legal

    def test_unknown_card_is_conflict(self, card_index: CardIndex) -> None:
        with pytest.raises(LegalListConflict, match="Black Lotus"):
            parse_legal_list([*LEGAL_LIST.splitlines(), "Black Lotus"], card_index)

    def test_short_list_is_conflict(self, card_index: CardIndex) -> None:
        with pytest.raises(LegalListConflict, match="only 1 cards"):
            parse_legal_list(["Island"], card_index)


class TestLegalListUpdater:
    @respx.mock
    async def test_first_download(self, updater: LegalListUpdater, list_path: Path, card_index: CardIndex) -> None:
        route = respx.get(LEGAL_LIST_URL).mock(
            return_value=httpx.Response(200, text=LEGAL_LIST, headers={"Last-Modified": LAST_MODIFIED})
        )

        result = await updater.update()

        assert result is LegalListResult.NEW
        assert list_path.exists()
        assert "If-Modified-Since" not in route.calls.last.request.headers
        assert updater.is_legal(card_index.get("Lightning Bolt"))
        assert not updater.is_legal(card_index.get("Delver of Secrets"))

        state = updater.load_state()
        assert state.last_checked == datetime(2026, 10, 19, 12, 0, tzinfo=UTC)
        assert state.last_modified == datetime(2026, 10, 14, 7, 0, tzinfo=UTC)

    @respx.mock
    async def test_checked_at_most_daily(self, updater: LegalListUpdater, now: FakeNow) -> None:
        route = respx.get(LEGAL_LIST_URL).mock(return_value=httpx.Response(200, text=LEGAL_LIST))
        await updater.update()

        now.advance(timedelta(hours=23))
        result = await updater.update()

        assert result is LegalListResult.NO_CHECK
        assert route.call_count == 1
        assert updater.legal_cards is not None

    @respx.mock
    async def test_not_modified(self, updater: LegalListUpdater, now: FakeNow) -> None:
        route = respx.get(LEGAL_LIST_URL).mock(
            side_effect=[
                httpx.Response(200, text=LEGAL_LIST, headers={"Last-Modified": LAST_MODIFIED}),
                httpx.Response(304),
            ]
        )
        await updater.update()

        now.advance(timedelta(days=2))
        result = await updater.update()

        assert result is LegalListResult.NOT_MODIFIED
        assert route.calls.last.request.headers["If-Modified-Since"] == LAST_MODIFIED
        assert updater.load_state().last_checked == now.value

    @respx.mock
    async def test_forced_update(self, updater: LegalListUpdater) -> None:
        route = respx.get(LEGAL_LIST_URL).mock(return_value=httpx.Response(200, text=LEGAL_LIST))
        await updater.update()

        result = await updater.update(force=True)

        assert result is LegalListResult.UPDATE
        assert "If-Modified-Since" not in route.calls.last.request.headers

    @respx.mock
    async def test_not_found(self, updater: LegalListUpdater, list_path: Path) -> None:
        respx.get(LEGAL_LIST_URL).mock(return_value=httpx.Response(404))

        assert await updater.update() is LegalListResult.NOT_FOUND
        assert not list_path.exists()
        assert updater.legal_cards is None

    @respx.mock
    async def test_network_error(self, updater: LegalListUpdater) -> None:
        respx.get(LEGAL_LIST_URL).mock(side_effect=httpx.ConnectError("boom"))

        assert await updater.update() is LegalListResult.ERROR

    @respx.mock
    async def test_conflict_keeps_previous_list(self, updater: LegalListUpdater, now: FakeNow) -> None:
        respx.get(LEGAL_LIST_URL).mock(
            side_effect=[
                httpx.Response(200, text=LEGAL_LIST),
                httpx.Response(200, text=LEGAL_LIST + "Black Lotus\n"),
            ]
        )
        await updater.update()
        previous = updater.legal_cards
        checked = updater.load_state().last_checked

        now.advance(timedelta(hours=1))
        result = await updater.update(force=True)

        assert result is LegalListResult.CONFLICT
        assert updater.legal_cards == previous
        assert updater.load_state().last_checked == checked

    @respx.mock
    async def test_undecodable_list_is_error(self, updater: LegalListUpdater, now: FakeNow) -> None:
        respx.get(LEGAL_LIST_URL).mock(
            side_effect=[
                httpx.Response(200, text=LEGAL_LIST),
                httpx.Response(200, content=b"Island\n\xff\xfe bad\n"),
            ]
        )
        await updater.update()
        previous = updater.legal_cards
        checked = updater.load_state().last_checked

        now.advance(timedelta(hours=1))
        result = await updater.update(force=True)

        assert result is LegalListResult.ERROR
        assert updater.legal_cards == previous
        assert updater.load_state().last_checked == checked

    async def test_cached_list_without_state_uses_file_time(
        self, updater: LegalListUpdater, list_path: Path, now: FakeNow
    ) -> None:
        list_path.parent.mkdir(parents=True)
        list_path.write_text(LEGAL_LIST, encoding="utf-8")
        checked = (now.value - timedelta(hours=2)).timestamp()
        os.utime(list_path, (checked, checked))

        result = await updater.update()

        assert result is LegalListResult.NO_CHECK
        assert updater.legal_cards is not None
        assert not updater.state_path.exists()

    def test_clear(self, updater: LegalListUpdater, card_index: CardIndex) -> None:
        updater.clear()

        assert updater.legal_cards is None
        assert not updater.is_legal(card_index.get("Island"))
