"""
Price cache value types.

A cache entry is replaced as a whole, never mutated, so a reader always sees
either the previous entry or the new one.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

# Placeholder cached when the upstream answered but had no price for the card.
NO_PRICE = "― tix"

# Placeholder cached when the upstream answered with an error status.
# Never written to the snapshot file.
FETCH_ERROR_PRICE = "取得失敗"


class PriceStateKind(str, Enum):
    """What a price lookup can report."""

    CACHED = "cached"
    PENDING = "pending"
    NOT_APPLICABLE = "not_applicable"


@dataclass(frozen=True, slots=True)
class PriceState:
    """Result of PriceCache.get."""

    kind: PriceStateKind
    value: str | None = None

    @classmethod
    def cached(cls, value: str) -> "PriceState":
        return cls(PriceStateKind.CACHED, value)

    @classmethod
    def pending(cls) -> "PriceState":
        return cls(PriceStateKind.PENDING)

    @classmethod
    def not_applicable(cls) -> "PriceState":
        return cls(PriceStateKind.NOT_APPLICABLE)


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """
    One cached price.

    Attributes:
        value: Price text, or None while a fetch is pending
        expires_at: Absolute UTC expiry; None while pending
    """

    value: str | None
    expires_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.value is None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def is_persistable(self, now: datetime) -> bool:
        """Whether the entry belongs in the snapshot file."""
        if not self.value or self.value == FETCH_ERROR_PRICE:
            return False
        return self.expires_at is not None and not self.is_expired(now)


PENDING_ENTRY = CacheEntry(value=None)


class FetchStatus(str, Enum):
    """Outcome of one fetch attempt."""

    STORED = "stored"
    DECLINED = "declined"  # throttle slot busy or interval not elapsed
    UNAVAILABLE = "unavailable"  # network-level failure, nothing cached
    STALE = "stale"  # key was no longer pending when the answer arrived
