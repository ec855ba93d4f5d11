"""
Card index.

Maps English card name -> CardRecord. Built once from parser output (or a
saved snapshot) and then only read. The offline fix-up pass builds a new
index instead of mutating one that readers already hold.

Snapshot format (XML):

    <cards>
      <card name="Fog Bank" jaName="濃霧の層" type="クリーチャー --- 壁(Wall)" pt="0/2">防衛、飛行
    ...</card>
    </cards>

Only "name" is required. Optional attributes: jaName, type, pt, related,
wikilink. The element text is the rules text.
"""

import logging
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Iterator
from pathlib import Path

from cardscribe.models.card_record import CardRecord

logger = logging.getLogger(__name__)

# (attribute, CardRecord field) in document order
_ATTRIBUTES: tuple[tuple[str, str], ...] = (
    ("name", "name"),
    ("jaName", "localized_name"),
    ("type", "type_line"),
    ("pt", "pt"),
    ("related", "related_name"),
    ("wikilink", "link"),
)


def card_to_element(card: CardRecord, tag: str = "card") -> ET.Element:
    """Serialize a record to a <card> element."""
    element = ET.Element(tag)
    for attribute, field_name in _ATTRIBUTES:
        value = getattr(card, field_name)
        if value is not None:
            element.set(attribute, value)
    element.text = card.text
    return element


def card_from_element(element: ET.Element) -> CardRecord:
    """
    Restore a record from a <card> element.

    Raises:
        ValueError: If the element has no name attribute
    """
    name = element.get("name")
    if not name:
        raise ValueError("card element without a name attribute")

    return CardRecord(
        name=name,
        localized_name=element.get("jaName"),
        type_line=element.get("type"),
        pt=element.get("pt"),
        related_name=element.get("related"),
        link=element.get("wikilink"),
        text=element.text or "",
    )


class CardIndex:
    """
    Read-only card lookup keyed by English name.

    Safe for concurrent readers; nothing mutates it after construction.
    """

    def __init__(self, cards: dict[str, CardRecord] | None = None) -> None:
        self._cards: dict[str, CardRecord] = dict(cards) if cards else {}

    @classmethod
    def from_records(cls, records: Iterable[CardRecord]) -> "CardIndex":
        """
        Build an index, keeping the first record for each name.

        Duplicates are logged, not fatal.
        """
        cards: dict[str, CardRecord] = {}
        for record in records:
            if not record.name:
                logger.warning("Skipping card without a name")
                continue
            if record.name in cards:
                logger.warning("Duplicate card %s, keeping the first one", record.name)
                continue
            cards[record.name] = record
        return cls(cards)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get(self, name: str) -> CardRecord | None:
        return self._cards.get(name)

    def contains(self, name: str) -> bool:
        return name in self._cards

    def __contains__(self, name: object) -> bool:
        return name in self._cards

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[CardRecord]:
        return iter(self._cards.values())

    def names(self) -> list[str]:
        return list(self._cards)

    def to_dict(self) -> dict[str, CardRecord]:
        """Shallow copy of the name -> record mapping."""
        return dict(self._cards)

    def find_by_localized_name(self, localized_name: str) -> CardRecord | None:
        """
        Brute-force search by Japanese name.

        Linear in the index size; used only after every cheaper matcher
        heuristic has failed.
        """
        if not localized_name:
            return None
        for card in self._cards.values():
            if card.localized_name == localized_name:
                return card
        return None

    def related_cards(self, card: CardRecord) -> list[CardRecord]:
        """Resolve a record's related names; missing targets are logged and skipped."""
        related: list[CardRecord] = []
        for name in card.related_names:
            target = self._cards.get(name)
            if target is None:
                logger.warning("Related card %s of %s is not in the index", name, card.name)
                continue
            related.append(target)
        return related

    def missing_relations(self) -> list[tuple[str, str]]:
        """All (card, related name) pairs whose target is absent."""
        missing: list[tuple[str, str]] = []
        for card in self._cards.values():
            for name in card.related_names:
                if name not in self._cards:
                    missing.append((card.name, name))
        return missing

    # -------------------------------------------------------------------------
    # Snapshot
    # -------------------------------------------------------------------------

    def to_xml(self) -> ET.ElementTree:
        root = ET.Element("cards")
        for card in self._cards.values():
            root.append(card_to_element(card))
        return ET.ElementTree(root)

    def save_snapshot(self, path: Path) -> Path:
        """
        Write the index as an XML snapshot.

        Returns:
            The path written
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        tree = self.to_xml()
        ET.indent(tree, space="", level=0)
        # Readers never see a half-written snapshot
        tmp_path = path.with_name(path.name + ".tmp")
        tree.write(tmp_path, encoding="utf-8", xml_declaration=True)
        tmp_path.replace(path)
        logger.info("Saved %d cards to %s", len(self), path)
        return path

    @classmethod
    def from_xml(cls, root: ET.Element) -> "CardIndex":
        records: list[CardRecord] = []
        for element in root.iter("card"):
            try:
                records.append(card_from_element(element))
            except ValueError as e:
                logger.warning("Skipping snapshot entry: %s", e)
        return cls.from_records(records)

    @classmethod
    def load_snapshot(cls, path: Path) -> "CardIndex":
        """
        Load an index from an XML snapshot.

        Raises:
            FileNotFoundError: If the snapshot does not exist
            xml.etree.ElementTree.ParseError: If the file is not XML
        """
        if not path.exists():
            raise FileNotFoundError(
                f"Card snapshot not found at {path}. "
                "Run `python -m cardscribe.jobs.build_index` first."
            )
        root = ET.parse(path).getroot()
        index = cls.from_xml(root)
        logger.info("Loaded %d cards from %s", len(index), path)
        return index
