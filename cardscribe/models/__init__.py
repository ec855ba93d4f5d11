from cardscribe.models.card_record import VANGUARD_TYPE, CardRecord
from cardscribe.models.failure import (
    CardNotFoundError,
    FailureDetail,
    FailureKind,
    IndexNotLoadedError,
    KnownError,
)
from cardscribe.models.match import (
    MatchOutcome,
    MatchResult,
    SearchResult,
    SuppressionReason,
)
from cardscribe.models.price import (
    FETCH_ERROR_PRICE,
    NO_PRICE,
    PENDING_ENTRY,
    CacheEntry,
    FetchStatus,
    PriceState,
    PriceStateKind,
)

__all__ = [
    "CacheEntry",
    "CardNotFoundError",
    "CardRecord",
    "FETCH_ERROR_PRICE",
    "FailureDetail",
    "FailureKind",
    "FetchStatus",
    "IndexNotLoadedError",
    "KnownError",
    "MatchOutcome",
    "MatchResult",
    "NO_PRICE",
    "PENDING_ENTRY",
    "PriceState",
    "PriceStateKind",
    "SearchResult",
    "SuppressionReason",
    "VANGUARD_TYPE",
]
