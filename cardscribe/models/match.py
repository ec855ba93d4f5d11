"""
Name matching outcomes.

Candidate strings come from the Magic Online preview pane, which mixes card
names with menu labels, stack descriptions and other UI chrome. The matcher
classifies each candidate into one of three outcomes.
"""

from dataclasses import dataclass, field
from enum import Enum

from cardscribe.models.card_record import CardRecord


class MatchOutcome(str, Enum):
    RESOLVED = "resolved"
    SUPPRESSED = "suppressed"  # deliberately show nothing
    UNRESOLVED = "unresolved"  # caller should broaden its search


class SuppressionReason(str, Enum):
    EMPTY = "empty"
    TRANSIENT_TEXT = "transient_text"
    MENU_TEXT = "menu_text"
    TOKEN = "token"
    EMBLEM = "emblem"
    AVATAR = "avatar"


@dataclass(frozen=True, slots=True)
class MatchResult:
    """
    Attributes:
        outcome: Classification of the candidate
        card: Matched record (RESOLVED only)
        reason: Why nothing is shown (SUPPRESSED only)
        face_down: True for the "Face-down card." sentinel (UNRESOLVED only)
    """

    outcome: MatchOutcome
    card: CardRecord | None = None
    reason: SuppressionReason | None = None
    face_down: bool = False

    @classmethod
    def resolved(cls, card: CardRecord) -> "MatchResult":
        return cls(MatchOutcome.RESOLVED, card=card)

    @classmethod
    def suppressed(cls, reason: SuppressionReason) -> "MatchResult":
        return cls(MatchOutcome.SUPPRESSED, reason=reason)

    @classmethod
    def unresolved(cls, face_down: bool = False) -> "MatchResult":
        return cls(MatchOutcome.UNRESOLVED, face_down=face_down)

    @property
    def is_resolved(self) -> bool:
        return self.outcome is MatchOutcome.RESOLVED


@dataclass
class SearchResult:
    """Cards found while scanning every text element of the preview pane."""

    cards: list[CardRecord] = field(default_factory=list)
    saw_token: bool = False
    # A lone basic land was found and the caller asked not to show those
    keep_current: bool = False

    @property
    def is_generic_token(self) -> bool:
        """A token without any card name (not a copy token)."""
        return not self.cards and self.saw_token
