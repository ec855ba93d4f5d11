"""
Concurrent card price cache.

Every card shown in the preview pane asks for its price. Lookups are many and
concurrent; the upstream (Scryfall) is rate-limit sensitive. The cache sits
in between with a per-card state machine:

    Absent  --get-->  Pending  --fetch ok-->  Cached(value, expires_at)
    Cached, expired   --get-->  Pending  (same as Absent)
    Pending           --get-->  Pending  (no second fetch: single-flight)

INVARIANTS:
- get() never blocks on I/O; it returns a state and, at most once per
  Absent/expired -> Pending transition, schedules a background fetch
- The Absent -> Pending transition happens under the entry lock, so exactly
  one caller wins it
- A fetch result is stored only while the key is still Pending, so a late
  answer never overwrites a newer value
- All fetches pass one FetchThrottle: one request in flight, and a minimum
  gap between requests. Attempts that don't get the slot are dropped, not
  queued
- Network failures cache nothing; an upstream answer without a price caches
  a placeholder so the card isn't fetched again on every lookup
"""

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Protocol

from cardscribe.config import (
    PRICE_RETRY_DELAY_SECONDS,
    PRICE_THROTTLE_SECONDS,
    PRICE_TTL_SECONDS,
)
from cardscribe.models.card_record import VANGUARD_TYPE, CardRecord
from cardscribe.models.price import (
    PENDING_ENTRY,
    CacheEntry,
    FetchStatus,
    PriceState,
)
from cardscribe.services.price_source import PriceSourceUnavailable

logger = logging.getLogger(__name__)

# Token, plane, emblem
NON_PRICEABLE_TYPE_PREFIXES = ("トークン", "次元", "紋章")

# Vanguard, phenomenon, dungeon
NON_PRICEABLE_TYPES = frozenset({VANGUARD_TYPE, "現象", "ダンジョン"})

# Digital-only or unpurchasable cards that Scryfall can't price
NON_PRICEABLE_NAMES = frozenset(
    {
        "Gleemox",
        "Everflame, Heroes' Legacy",
        "Legitimate Businessperson",
        "Mileva, the Stalwart",
        "Mishra's Warform",
        "Vitu-Ghazi",
    }
)

# Sticker-sheet wiki links use full-width underscores; they are not split cards
_STICKER_LINK_MARKER = "＿"


class PriceFetcher(Protocol):
    """Anything that can turn a query into a display price."""

    async def fetch_price(self, query: str) -> str: ...


def is_priceable(card: CardRecord | None) -> bool:
    """False for pseudo-cards (tokens, emblems, planes, ...) and empty records."""
    if card is None or not card.name or not card.type_line:
        return False
    if card.name in NON_PRICEABLE_NAMES:
        return False
    if card.type_line.startswith(NON_PRICEABLE_TYPE_PREFIXES):
        return False
    return card.type_line not in NON_PRICEABLE_TYPES


def price_query(card: CardRecord) -> str:
    """
    Search text for a card.

    Split cards carry a "<japanese>/<Left+Right>" wiki link; the part after
    the slash names both halves, which is what the upstream lists.
    """
    link = card.link
    if link and _STICKER_LINK_MARKER not in link:
        slash = link.find("/")
        if slash > 0:
            return link[slash + 1 :]
    return card.name


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FetchThrottle:
    """
    Single-slot gate in front of the upstream.

    try_acquire() succeeds only when no fetch is in flight and at least
    min_interval seconds have passed since the previous fetch finished.
    Thread-safe. Callers that fail to acquire are expected to give up or
    retry later; nothing waits here.
    """

    def __init__(
        self,
        min_interval: float = PRICE_THROTTLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._busy = False
        self._last_finished: float | None = None

    @property
    def busy(self) -> bool:
        return self._busy

    def try_acquire(self) -> bool:
        with self._lock:
            if self._busy:
                return False
            if (
                self._last_finished is not None
                and self._clock() - self._last_finished < self.min_interval
            ):
                return False
            self._busy = True
            return True

    def release(self) -> None:
        with self._lock:
            self._busy = False
            self._last_finished = self._clock()


class PriceCache:
    """
    Price cache shared by every lookup in the process.

    get() may be called from any thread. Fetches run as tasks on one asyncio
    event loop: the one passed in, or else the loop running when get() is
    first called.

    Usage:
        cache = PriceCache(ScryfallPriceSource())
        state = cache.get(card, is_active=lambda: pane.shows(card))
    """

    def __init__(
        self,
        source: PriceFetcher,
        throttle: FetchThrottle | None = None,
        *,
        ttl: timedelta = timedelta(seconds=PRICE_TTL_SECONDS),
        retry_delay: float = PRICE_RETRY_DELAY_SECONDS,
        enabled: bool = True,
        now: Callable[[], datetime] = _utcnow,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._source = source
        self._throttle = throttle or FetchThrottle()
        self._ttl = ttl
        self._retry_delay = retry_delay
        self._enabled = enabled
        self._now = now
        self._loop = loop

        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}
        # Touched only from the loop thread
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def throttle(self) -> FetchThrottle:
        return self._throttle

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def peek(self, name: str) -> CacheEntry | None:
        """Current entry for a name, without side effects."""
        with self._lock:
            return self._entries.get(name)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get(self, card: CardRecord, is_active: Callable[[], bool] | None = None) -> PriceState:
        """
        Look up a card's price without waiting for the network.

        Args:
            card: The resolved card
            is_active: Called before a retry; return False once nobody is
                showing this card anymore, and the pending entry is dropped

        Returns:
            CACHED with the value, PENDING while a fetch is outstanding, or
            NOT_APPLICABLE for cards that have no price
        """
        if not self._enabled or not is_priceable(card):
            return PriceState.not_applicable()

        name = card.name
        now = self._now()

        with self._lock:
            entry = self._entries.get(name)
            if entry is not None:
                if entry.is_pending:
                    return PriceState.pending()
                if not entry.is_expired(now):
                    return PriceState.cached(entry.value or "")
            self._entries[name] = PENDING_ENTRY

        self._schedule(name, price_query(card), is_active)
        return PriceState.pending()

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    async def refresh(self, name: str, query: str | None = None) -> FetchStatus:
        """
        Make one throttled fetch attempt for a pending name.

        Returns:
            STORED on success, DECLINED if the throttle slot was taken,
            UNAVAILABLE on network failure, STALE if the key stopped being
            pending in the meantime
        """
        if not self._throttle.try_acquire():
            logger.debug("Price fetch for %s declined by throttle", name)
            return FetchStatus.DECLINED

        try:
            value = await self._source.fetch_price(query or name)
        except PriceSourceUnavailable as e:
            logger.info("Price of %s unavailable: %s", name, e)
            return FetchStatus.UNAVAILABLE
        finally:
            self._throttle.release()

        return self._store(name, value)

    def _store(self, name: str, value: str) -> FetchStatus:
        entry = CacheEntry(value=value, expires_at=self._now() + self._ttl)
        with self._lock:
            current = self._entries.get(name)
            if current is None or not current.is_pending:
                return FetchStatus.STALE
            self._entries[name] = entry
        logger.debug("Price of %s: %s", name, value)
        return FetchStatus.STORED

    def _drop_pending(self, name: str) -> None:
        with self._lock:
            current = self._entries.get(name)
            if current is not None and current.is_pending:
                del self._entries[name]

    def _schedule(
        self,
        name: str,
        query: str,
        is_active: Callable[[], bool] | None,
    ) -> None:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.warning("No event loop to fetch the price of %s", name)
                self._drop_pending(name)
                return
            self._loop = loop

        loop.call_soon_threadsafe(self._start_task, name, query, is_active)

    def _start_task(
        self,
        name: str,
        query: str,
        is_active: Callable[[], bool] | None,
    ) -> None:
        assert self._loop is not None
        task = self._loop.create_task(self._fetch_with_retry(name, query, is_active))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fetch_with_retry(
        self,
        name: str,
        query: str,
        is_active: Callable[[], bool] | None,
    ) -> None:
        try:
            status = await self.refresh(name, query)
            if status in (FetchStatus.STORED, FetchStatus.STALE):
                return

            # Declined, or the network is slow: try once more shortly
            await asyncio.sleep(self._retry_delay)

            if is_active is not None and not is_active():
                logger.debug("Price of %s no longer wanted", name)
                self._drop_pending(name)
                return

            status = await self.refresh(name, query)
            if status in (FetchStatus.DECLINED, FetchStatus.UNAVAILABLE):
                # Forget the attempt so the next get() starts over
                self._drop_pending(name)
        except Exception:
            logger.exception("Price fetch for %s failed", name)
            self._drop_pending(name)

    async def drain(self) -> None:
        """Wait for every scheduled fetch to finish."""
        # Let callbacks queued by call_soon_threadsafe create their tasks
        await asyncio.sleep(0)
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await asyncio.sleep(0)

    async def close(self) -> None:
        """Cancel outstanding fetches."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    # -------------------------------------------------------------------------
    # Snapshot
    # -------------------------------------------------------------------------

    def save(self, path: Path) -> int:
        """
        Write live prices as name / value / ISO-8601 expiry line triples.

        Pending, empty, error and expired entries are skipped.

        Returns:
            Number of entries written
        """
        now = self._now()
        with self._lock:
            items = list(self._entries.items())

        lines: list[str] = []
        for name, entry in items:
            if not entry.is_persistable(now):
                continue
            assert entry.value is not None and entry.expires_at is not None
            lines.extend((name, entry.value, entry.expires_at.astimezone(UTC).isoformat()))

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        count = len(lines) // 3
        logger.info("Saved %d prices to %s", count, path)
        return count

    def load(self, path: Path) -> int:
        """
        Restore prices saved by save().

        Expired or unreadable triples are discarded; entries already in
        memory are kept. A missing file is not an error.

        Returns:
            Number of entries loaded
        """
        if not path.exists():
            return 0

        lines = path.read_text(encoding="utf-8").splitlines()
        now = self._now()
        loaded = 0

        with self._lock:
            for i in range(0, len(lines) - 2, 3):
                name, value, expiry = lines[i : i + 3]
                try:
                    expires_at = datetime.fromisoformat(expiry)
                except ValueError:
                    logger.warning("Bad expiry %r for %s in %s", expiry, name, path)
                    continue

                if expires_at.tzinfo is None:
                    expires_at = expires_at.replace(tzinfo=UTC)
                if not name or not value or expires_at <= now:
                    continue
                if name in self._entries:
                    continue

                self._entries[name] = CacheEntry(value=value, expires_at=expires_at)
                loaded += 1

        logger.info("Loaded %d prices from %s", loaded, path)
        return loaded
