"""
CardScribe services.

Card index, fix-up pass, name matching and price lookup.
"""

from cardscribe.services.card_fixup import (
    FixupDocument,
    FixupDocumentError,
    FixupReport,
    RegexRule,
    apply_fixups,
)
from cardscribe.services.card_index import CardIndex
from cardscribe.services.name_matcher import NameMatcher
from cardscribe.services.name_normalizer import (
    is_avatar_name,
    normalize_name,
    split_card_names,
)
from cardscribe.services.penny_dreadful import (
    LegalListConflict,
    LegalListResult,
    LegalListUpdater,
    parse_legal_list,
)
from cardscribe.services.price_cache import (
    FetchThrottle,
    PriceCache,
    is_priceable,
    price_query,
)
from cardscribe.services.price_source import (
    PriceSourceUnavailable,
    ScryfallPriceSource,
    parse_price_response,
)

__all__ = [
    # Card index
    "CardIndex",
    "FixupDocument",
    "FixupDocumentError",
    "FixupReport",
    "RegexRule",
    "apply_fixups",
    # Name matching
    "NameMatcher",
    "is_avatar_name",
    "normalize_name",
    "split_card_names",
    # Prices
    "FetchThrottle",
    "PriceCache",
    "PriceSourceUnavailable",
    "ScryfallPriceSource",
    "is_priceable",
    "parse_price_response",
    "price_query",
    # Penny Dreadful
    "LegalListConflict",
    "LegalListResult",
    "LegalListUpdater",
    "parse_legal_list",
]
