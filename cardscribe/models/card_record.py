"""
Card Record Model.

One entry of the card-text knowledge base, keyed by English card name.

INVARIANTS:
- name is non-empty and unique within a CardIndex
- related_name is a plain key (or "|"-separated keys), resolved lazily
- text never contains the corpus field separator
- Records are mutated only while the parser accumulates body lines and
  during the offline fix-up pass
"""

from dataclasses import dataclass, fields

# Type line used by MTGO Vanguard avatars. Their "Japanese name" is never an
# official translation.
VANGUARD_TYPE = "ヴァンガード"

RELATED_NAME_SEPARATOR = "|"


@dataclass(eq=False, slots=True)
class CardRecord:
    """
    A card parsed from the WHISPER export (or restored from a snapshot).

    Attributes:
        name: Canonical English card name (index key)
        localized_name: Japanese card name; equals name when untranslated
        type_line: Type line as exported (e.g., "クリーチャー --- 壁(Wall)")
        pt: Power/toughness or loyalty, free-form
        text: Rules text, lines joined with "\\n"
        related_name: Name(s) of sibling faces, "|"-separated
        link: Wiki link override; "" disables the link entirely
    """

    name: str
    localized_name: str | None = None
    type_line: str | None = None
    pt: str | None = None
    text: str = ""
    related_name: str | None = None
    link: str | None = None

    @property
    def related_names(self) -> tuple[str, ...]:
        """Sibling card names, in declaration order."""
        if not self.related_name:
            return ()
        return tuple(n for n in self.related_name.split(RELATED_NAME_SEPARATOR) if n)

    @property
    def has_localized_name(self) -> bool:
        """True if the card has an official translation distinct from its name."""
        return (
            self.localized_name is not None
            and self.localized_name != self.name
            and self.type_line != VANGUARD_TYPE
        )

    @property
    def full_name(self) -> str:
        """Display name: "<localized> / <english>" when translated."""
        if self.has_localized_name:
            return f"{self.localized_name} / {self.name}"
        return self.name

    @property
    def text_lines(self) -> list[str]:
        return self.text.split("\n")

    def same_as(self, other: "CardRecord | None") -> bool:
        """Strict comparison of every field."""
        if other is None:
            return False
        return all(getattr(self, f.name) == getattr(other, f.name) for f in fields(self))

    def clone(self) -> "CardRecord":
        return CardRecord(**{f.name: getattr(self, f.name) for f in fields(self)})

    def __eq__(self, other: object) -> bool:
        # Identity is the English name, as everywhere else in the index.
        if not isinstance(other, CardRecord):
            return NotImplemented
        return bool(self.name) and self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return self.name
