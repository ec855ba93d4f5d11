"""
Name matcher for preview pane text.

The Magic Online preview pane is read through UI automation, not an API, so
the strings that arrive here are whatever the pane happens to display: card
names, but also stack descriptions, menu labels, token names and the like.
The matcher triages each string with cheap, ordered heuristics:

1. exact card name                        -> RESOLVED
2. "Triggered ability from X"             -> match X
3. split-card syntax "X // Y" or "X/Y"    -> match X ("2/2" is a P/T, not a split)
4. ends with "."                          -> SUPPRESSED (transient text),
                                             except "Face-down card." -> UNRESOLVED
5. "... Cast", "... Play", "Put ...",
   "Attack ..."                           -> SUPPRESSED (menu text)
6. "... Token"                            -> SUPPRESSED (token)
7. "Emblem ..."                           -> SUPPRESSED (emblem)
8. "Avatar - ..."                         -> SUPPRESSED (avatar)
9. Japanese card name                     -> RESOLVED
10. anything else                         -> UNRESOLVED

SUPPRESSED means "show nothing, and don't flicker"; UNRESOLVED means "scan
the sibling text elements" (see search()).
"""

import logging
import re
from collections.abc import Iterable

from cardscribe.models.card_record import CardRecord
from cardscribe.models.match import MatchResult, SearchResult, SuppressionReason
from cardscribe.services.card_index import CardIndex
from cardscribe.services.name_normalizer import is_avatar_name, normalize_name

logger = logging.getLogger(__name__)

TRIGGER_PREFIX = "Triggered ability from "

FACE_DOWN_SENTINEL = "Face-down card."

# Shown for the monarch designation; not a real emblem
BARE_EMBLEM = "Emblem - "

MENU_SUFFIXES = ("Cast", "Play")
MENU_PREFIXES = ("Put ", "Attack ")

TOKEN_SUFFIX = " Token"

BASIC_LANDS = frozenset({"Plains", "Island", "Swamp", "Mountain", "Forest"})

# A slash right after a letter (spaces allowed): "Fire // Ice", "Fire/Ice".
# "2/2" and "*/*" are power/toughness, not split cards.
_SPLIT_SLASH = re.compile(r"(?<=[^\W\d_])\s*/")


class NameMatcher:
    """
    Resolves raw preview pane strings against a CardIndex.

    Usage:
        matcher = NameMatcher(index)
        result = matcher.match("Triggered ability from Hymn to Tourach")
    """

    def __init__(self, index: CardIndex, show_basic_lands: bool = True) -> None:
        self._index = index
        self._show_basic_lands = show_basic_lands

    def match(self, candidate: str) -> MatchResult:
        """
        Classify one candidate string.

        Args:
            candidate: Raw text from the preview pane (not yet normalized)

        Returns:
            MatchResult: RESOLVED with a card, SUPPRESSED with a reason,
            or UNRESOLVED
        """
        return self._match(normalize_name(candidate) if candidate else "")

    def _match(self, name: str) -> MatchResult:
        if not name.strip():
            return MatchResult.suppressed(SuppressionReason.EMPTY)

        card = self._index.get(name)
        if card is not None:
            return MatchResult.resolved(card)

        if name.startswith(TRIGGER_PREFIX):
            source = name[len(TRIGGER_PREFIX) :].strip()
            return self._match(source.removesuffix("."))

        split = _SPLIT_SLASH.search(name)
        if split is not None:
            return self._match(name[: split.start()].strip())

        if name.endswith("."):
            if name == FACE_DOWN_SENTINEL:
                return MatchResult.unresolved(face_down=True)
            return MatchResult.suppressed(SuppressionReason.TRANSIENT_TEXT)

        if name.endswith(MENU_SUFFIXES) or name.startswith(MENU_PREFIXES):
            return MatchResult.suppressed(SuppressionReason.MENU_TEXT)

        if name.endswith(TOKEN_SUFFIX):
            return MatchResult.suppressed(SuppressionReason.TOKEN)

        if name.startswith("Emblem") and name != BARE_EMBLEM:
            return MatchResult.suppressed(SuppressionReason.EMBLEM)

        if is_avatar_name(name):
            return MatchResult.suppressed(SuppressionReason.AVATAR)

        card = self._index.find_by_localized_name(name)
        if card is not None:
            return MatchResult.resolved(card)

        return MatchResult.unresolved()

    def search(self, candidates: Iterable[str]) -> SearchResult:
        """
        Scan every text element of the preview pane for card names.

        Melded and double-faced cards can put several names in one pane, so
        every element is checked. Related faces of each hit are added even
        if the pane only shows one side.

        Args:
            candidates: Text of each element, in pane order

        Returns:
            SearchResult with the cards found (deduplicated, in order) and
            whether a generic "Token" element was seen
        """
        result = SearchResult()

        for candidate in candidates:
            name = normalize_name(candidate) if candidate else ""
            card = self._index.get(name)

            if card is None:
                if not result.saw_token and name.startswith("Token"):
                    result.saw_token = True
                continue

            self._add_unique(result.cards, card)
            for related in self._index.related_cards(card):
                self._add_unique(result.cards, related)

        if (
            not self._show_basic_lands
            and len(result.cards) == 1
            and result.cards[0].name in BASIC_LANDS
        ):
            logger.debug("Hiding lone basic land %s", result.cards[0].name)
            result.cards = []
            result.keep_current = True

        return result

    @staticmethod
    def _add_unique(cards: list[CardRecord], card: CardRecord) -> None:
        if card not in cards:
            cards.append(card)
