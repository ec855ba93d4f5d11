"""
Penny Dreadful legal card list.

Penny Dreadful is a budget Magic Online format whose legal list is published
as plain text, one card per line (split cards as "Left // Right"):

    http://pdmtgo.com/legal_cards.txt

The list is cached on disk and re-checked at most once a day, with
If-Modified-Since so an unchanged list costs no download. Check times are
kept in a small JSON file next to the list.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime, parsedate_to_datetime
from enum import Enum
from pathlib import Path

import httpx
from pydantic import BaseModel, ValidationError

from cardscribe.config import settings
from cardscribe.models.card_record import CardRecord
from cardscribe.services.card_index import CardIndex
from cardscribe.services.name_normalizer import split_card_names

logger = logging.getLogger(__name__)

CHECK_INTERVAL = timedelta(days=1)

# The list always holds at least the five basic lands
MIN_LEGAL_CARDS = 5

# Last-Modified assumed for a list downloaded before check times were kept
DEFAULT_LAST_MODIFIED = datetime(2018, 7, 13, 7, 0, 0, tzinfo=UTC)

# Art-series entries published by mistake
_SKETCH_SUFFIX = " - Sketch"

# Published names that differ from the card's real name
_NAME_FIXES = {
    "sol'kanar the tainted": "Sol'kanar the Tainted",
}


class LegalListResult(str, Enum):
    NO_CHECK = "no_check"  # cached list used, server not asked
    NEW = "new"
    UPDATE = "update"
    NOT_MODIFIED = "not_modified"
    NOT_FOUND = "not_found"
    ERROR = "error"
    CONFLICT = "conflict"  # list names a card the index doesn't know


class LegalListConflict(ValueError):
    """Raised when the legal list doesn't agree with the card index."""


class LegalListState(BaseModel):
    """When the list was last checked, and the server's Last-Modified then."""

    last_checked: datetime | None = None
    last_modified: datetime | None = None


def parse_legal_list(lines: Iterable[str], index: CardIndex) -> set[str]:
    """
    Read legal card names.

    Args:
        lines: Lines of legal_cards.txt
        index: Card index every name must resolve against

    Returns:
        Set of canonical card names (split cards as separate halves)

    Raises:
        LegalListConflict: If a name is unknown or the list is too short
    """
    legal: set[str] = set()

    for line in lines:
        for name in split_card_names(line.strip()):
            if name.endswith(_SKETCH_SUFFIX):
                continue
            name = _NAME_FIXES.get(name.lower(), name)

            if name not in index:
                raise LegalListConflict(f"Unknown card in legal list: {name}")
            legal.add(name)

    if len(legal) < MIN_LEGAL_CARDS:
        raise LegalListConflict(f"Legal list has only {len(legal)} cards")

    return legal


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LegalListUpdater:
    """
    Keeps the Penny Dreadful legal list current.

    Usage:
        updater = LegalListUpdater(index)
        result = await updater.update()
        updater.is_legal(card)
    """

    def __init__(
        self,
        index: CardIndex,
        path: Path | None = None,
        client: httpx.AsyncClient | None = None,
        url: str | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._index = index
        self._path = path or settings.legal_list_path
        self._client = client
        self._url = url or settings.legal_list_url
        self._now = now
        self._legal: set[str] | None = None

    @property
    def state_path(self) -> Path:
        return self._path.with_suffix(".json")

    @property
    def legal_cards(self) -> frozenset[str] | None:
        return frozenset(self._legal) if self._legal is not None else None

    def is_legal(self, card: CardRecord | None) -> bool:
        return self._legal is not None and card is not None and card.name in self._legal

    def clear(self) -> None:
        self._legal = None

    def load_state(self) -> LegalListState:
        """Read check times; missing values fall back to file mtime and a fixed date."""
        state = LegalListState()
        if self.state_path.exists():
            try:
                state = LegalListState.model_validate_json(self.state_path.read_bytes())
            except ValidationError as e:
                logger.warning("Ignoring unreadable %s: %s", self.state_path, e)

        if state.last_checked is None and self._path.exists():
            state.last_checked = datetime.fromtimestamp(self._path.stat().st_mtime, UTC)
        if state.last_modified is None:
            state.last_modified = DEFAULT_LAST_MODIFIED
        return state

    def save_state(self, state: LegalListState) -> None:
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        self.state_path.write_text(state.model_dump_json(indent=2), encoding="utf-8")

    async def update(self, force: bool = False) -> LegalListResult:
        """
        Refresh the list if due, then load it.

        Args:
            force: Ask the server even if checked within the last day,
                without If-Modified-Since

        Returns:
            LegalListResult; on NOT_FOUND, ERROR and CONFLICT the previously
            loaded list is kept
        """
        exists = self._path.exists()
        state = self.load_state() if exists else LegalListState()
        result = LegalListResult.NO_CHECK

        last_checked = state.last_checked
        due = (
            force
            or not exists
            or last_checked is None
            or self._now() - last_checked > CHECK_INTERVAL
        )

        if due:
            headers: dict[str, str] = {}
            if exists and not force and state.last_modified is not None:
                headers["If-Modified-Since"] = format_datetime(
                    state.last_modified.astimezone(UTC), usegmt=True
                )

            try:
                result, last_modified = await self._download(headers, exists)
            except (httpx.HTTPError, OSError) as e:
                logger.warning("Failed to download legal list: %s", e)
                return LegalListResult.ERROR

            if result is LegalListResult.NOT_FOUND:
                return result
            if last_modified is not None:
                state.last_modified = last_modified

        try:
            with open(self._path, encoding="utf-8") as f:
                legal = parse_legal_list(f, self._index)
        except LegalListConflict as e:
            logger.warning("%s", e)
            return LegalListResult.CONFLICT
        except (UnicodeDecodeError, OSError) as e:
            logger.warning("Failed to read legal list %s: %s", self._path, e)
            return LegalListResult.ERROR

        # Only a fully verified list counts as checked; right after a rotation
        # the server file changes often
        if result is not LegalListResult.NO_CHECK:
            state.last_checked = self._now()
            self.save_state(state)

        self._legal = legal
        logger.info("Loaded %d Penny Dreadful legal cards (%s)", len(legal), result.value)
        return result

    async def _download(
        self,
        headers: dict[str, str],
        exists: bool,
    ) -> tuple[LegalListResult, datetime | None]:
        client = self._client or httpx.AsyncClient(
            headers={"User-Agent": settings.user_agent},
            timeout=settings.http_timeout,
            follow_redirects=True,
        )
        try:
            response = await client.get(self._url, headers=headers)
        finally:
            if self._client is None:
                await client.aclose()

        logger.debug("Legal list download: HTTP %d", response.status_code)

        if response.status_code == httpx.codes.NOT_MODIFIED:
            return LegalListResult.NOT_MODIFIED, None
        if not response.is_success:
            return LegalListResult.NOT_FOUND, None

        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_bytes(response.content)

        last_modified = self._now()
        header = response.headers.get("Last-Modified")
        if header:
            try:
                last_modified = parsedate_to_datetime(header).astimezone(UTC)
            except (TypeError, ValueError):
                logger.debug("Bad Last-Modified header: %r", header)

        return (LegalListResult.UPDATE if exists else LegalListResult.NEW), last_modified
