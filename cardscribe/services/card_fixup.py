"""
Card data fix-up pass.

WHISPER lags behind new sets and carries the occasional typo, so a
hand-maintained XML document patches the parsed index before it is
published. The pass runs offline (build job or startup), never while
readers hold the index: it works on cloned records and returns a new
CardIndex.

Document layout:

    <fixup>
      <add>
        <card name=".." jaName=".." type=".." pt="..">text</card>
        <pt name=".." pt=".."/>
        <related name=".." related=".."/>
        <wikilink name=".." wikilink=".."/>
      </add>
      <replace>
        <regex target="name|text" pattern=".." value=".." suppressLog="true"/>
        <!-- why this card is replaced (copied into the audit) -->
        <card name="..">..</card>
        <type name=".." type=".."/>
        <related name=".." related=".."/>
      </replace>
      <remove>
        <card name=".."/>
        <jaName name=".."/>
      </remove>
    </fixup>

Sections are applied in a fixed order: additions, regex rules, explicit
replacements, removals. Every step compares before writing, so replaying a
document on already-corrected data changes nothing; each correction that had
no effect is logged (unless its rule suppresses logging), which shows when
upstream data has caught up with a patch and the patch can be dropped.
"""

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path

from cardscribe.models.card_record import CardRecord
from cardscribe.services.card_index import CardIndex, card_from_element, card_to_element

logger = logging.getLogger(__name__)

# Regex targets -> CardRecord fields
TARGET_FIELDS: dict[str, str] = {
    "name": "name",
    "jaName": "localized_name",
    "type": "type_line",
    "pt": "pt",
    "related": "related_name",
    "link": "link",
    "wikilink": "link",
    "text": "text",
}

ALL_TARGET = "all"
_ALL_FIELDS = ("name", "localized_name", "type_line", "pt", "related_name", "link", "text")

_TRUE_VALUES = frozenset({"true", "1", "yes"})


class FixupDocumentError(ValueError):
    """Raised when a fix-up document cannot be read at all."""


# =============================================================================
# DOCUMENT MODEL
# =============================================================================


@dataclass(frozen=True)
class RegexRule:
    """
    A regex replacement applied to selected fields of every card.

    Attributes:
        fields: CardRecord field names the rule rewrites
        pattern: Compiled pattern
        replacement: Replacement string (Python re syntax, e.g. \\g<1>)
        suppress_log: Don't report the rule's hits or misses
    """

    fields: tuple[str, ...]
    pattern: re.Pattern[str]
    replacement: str
    suppress_log: bool = False

    def apply(self, card: CardRecord) -> list[str]:
        """
        Rewrite the card in place.

        Returns:
            Names of the fields that actually changed
        """
        changed: list[str] = []
        for field_name in self.fields:
            value = getattr(card, field_name)
            if value is None:
                continue
            replaced = self.pattern.sub(self.replacement, value)
            if replaced != value:
                setattr(card, field_name, replaced)
                changed.append(field_name)
        return changed

    def __str__(self) -> str:
        return self.pattern.pattern


@dataclass
class CardReplacement:
    """A whole-card replacement and the comments that explain it."""

    card: CardRecord
    comments: list[str] = field(default_factory=list)


@dataclass
class FixupDocument:
    """Parsed fix-up document. Empty sections are allowed."""

    cards_to_add: list[CardRecord] = field(default_factory=list)
    pt_additions: list[tuple[str, str]] = field(default_factory=list)
    related_additions: list[tuple[str, str]] = field(default_factory=list)
    link_additions: list[tuple[str, str]] = field(default_factory=list)
    rules: list[RegexRule] = field(default_factory=list)
    card_replacements: list[CardReplacement] = field(default_factory=list)
    type_replacements: list[tuple[str, str]] = field(default_factory=list)
    related_replacements: list[tuple[str, str]] = field(default_factory=list)
    removals: list[str] = field(default_factory=list)
    localized_name_removals: list[str] = field(default_factory=list)

    @classmethod
    def from_xml(cls, root: ET.Element) -> "FixupDocument":
        doc = cls()

        add = root.find("add")
        if add is not None:
            for node in add.findall("card"):
                card = _card_or_none(node)
                if card is not None:
                    doc.cards_to_add.append(card)
            doc.pt_additions = _name_value_pairs(add, "pt", "pt")
            doc.related_additions = _name_value_pairs(add, "related", "related")
            doc.link_additions = _name_value_pairs(add, "wikilink", "wikilink")

        replace = root.find("replace")
        if replace is not None:
            for node in replace.findall("regex"):
                rule = _rule_or_none(node)
                if rule is not None:
                    doc.rules.append(rule)

            comments: list[str] = []
            for node in replace:
                if node.tag is ET.Comment:
                    comments.append(node.text or "")
                    continue
                if node.tag == "card":
                    card = _card_or_none(node)
                    if card is not None:
                        doc.card_replacements.append(CardReplacement(card, comments))
                comments = []

            doc.type_replacements = _name_value_pairs(replace, "type", "type")
            doc.related_replacements = _name_value_pairs(replace, "related", "related")

        for remove in root.findall("remove"):
            doc.removals.extend(n.get("name", "") for n in remove.findall("card"))
            doc.localized_name_removals.extend(n.get("name", "") for n in remove.findall("jaName"))

        return doc

    @classmethod
    def from_string(cls, text: str) -> "FixupDocument":
        try:
            root = ET.fromstring(text, parser=_comment_preserving_parser())
        except ET.ParseError as e:
            raise FixupDocumentError(f"Fix-up document is not valid XML: {e}") from e
        return cls.from_xml(root)

    @classmethod
    def load(cls, path: Path) -> "FixupDocument":
        """
        Read a fix-up document from disk.

        Raises:
            FileNotFoundError: If the file does not exist
            FixupDocumentError: If the file is not XML
        """
        try:
            tree = ET.parse(path, parser=_comment_preserving_parser())
        except ET.ParseError as e:
            raise FixupDocumentError(f"Fix-up document {path} is not valid XML: {e}") from e
        return cls.from_xml(tree.getroot())


def _comment_preserving_parser() -> ET.XMLParser:
    return ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))


def _card_or_none(node: ET.Element) -> CardRecord | None:
    try:
        return card_from_element(node)
    except ValueError as e:
        logger.warning("Ignoring fix-up card: %s", e)
        return None


def _name_value_pairs(section: ET.Element, tag: str, attribute: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for node in section.findall(tag):
        name = node.get("name")
        value = node.get(attribute)
        if not name or value is None:
            logger.warning("Ignoring <%s> without name or %s", tag, attribute)
            continue
        pairs.append((name, value))
    return pairs


def _rule_or_none(node: ET.Element) -> RegexRule | None:
    pattern = node.get("pattern")
    targets = node.get("target", "")
    if not pattern or not targets:
        logger.warning("Ignoring <regex> without pattern or target")
        return None

    if ALL_TARGET in targets.split("|"):
        fields: tuple[str, ...] = _ALL_FIELDS
    else:
        names: list[str] = []
        for target in targets.split("|"):
            field_name = TARGET_FIELDS.get(target)
            if field_name is None:
                logger.warning("Unknown regex target %r in rule %s", target, pattern)
            elif field_name not in names:
                names.append(field_name)
        fields = tuple(names)

    try:
        compiled = re.compile(pattern)
    except re.error as e:
        logger.warning("Invalid regex %r: %s", pattern, e)
        return None

    suppress = node.get("suppressLog", node.get("nodebug", "false"))
    return RegexRule(
        fields=fields,
        pattern=compiled,
        replacement=node.get("value", ""),
        suppress_log=suppress.lower() in _TRUE_VALUES,
    )


# =============================================================================
# REPORT
# =============================================================================


@dataclass
class FixupReport:
    """
    Result of a fix-up pass.

    Attributes:
        index: The corrected index
        before: State of each changed record before the change
        after: State of each changed record after the change
        identical: Explicit replacements that were already in effect
        rule_hits: Number of cards each regex rule changed, in rule order
        no_ops: Human-readable list of corrections that had no effect
    """

    index: CardIndex
    before: list[ET.Element] = field(default_factory=list)
    after: list[ET.Element] = field(default_factory=list)
    identical: list[ET.Element] = field(default_factory=list)
    rule_hits: list[int] = field(default_factory=list)
    no_ops: list[str] = field(default_factory=list)

    @property
    def changed_count(self) -> int:
        """Number of card or type changes recorded, comments excluded."""
        return sum(1 for e in self.after if e.tag is not ET.Comment)

    def before_document(self) -> ET.ElementTree:
        root = ET.Element("audit")
        cards = ET.SubElement(root, "cards")
        cards.extend(self.before)
        return ET.ElementTree(root)

    def after_document(self) -> ET.ElementTree:
        root = ET.Element("audit")
        ET.SubElement(root, "replace").extend(self.after)
        ET.SubElement(root, "identical").extend(self.identical)
        return ET.ElementTree(root)

    def write_audit(self, before_path: Path, after_path: Path) -> None:
        """Write the before/after documents so a diff shows every change."""
        for path, tree in (
            (before_path, self.before_document()),
            (after_path, self.after_document()),
        ):
            path.parent.mkdir(parents=True, exist_ok=True)
            ET.indent(tree)
            tree.write(path, encoding="utf-8", xml_declaration=True)

    def record_no_op(self, message: str, *args: object, quiet: bool = False) -> None:
        self.no_ops.append(message % args)
        if not quiet:
            logger.info(message, *args)


# =============================================================================
# PASS
# =============================================================================


def _apply_rules(rules: list[RegexRule], card: CardRecord) -> bool:
    changed = False
    for rule in rules:
        if rule.apply(card):
            changed = True
    return changed


def _warn_missing_related(cards: dict[str, CardRecord], card: CardRecord) -> None:
    for name in card.related_names:
        if name not in cards:
            logger.warning("Related card %s of %s is not in the index", name, card.name)


def _add_field(
    report: FixupReport,
    cards: dict[str, CardRecord],
    name: str,
    field_name: str,
    value: str,
) -> None:
    card = cards.get(name)
    if card is None:
        logger.warning("No card %s to add %s to", name, field_name)
        return

    current = getattr(card, field_name)
    if current == value:
        report.record_no_op("%s already has %s %r", name, field_name, value)
        return
    if current is not None:
        logger.warning("%s already has %s %r, overwriting with %r", name, field_name, current, value)
    setattr(card, field_name, value)


def _add_cards(report: FixupReport, doc: FixupDocument, cards: dict[str, CardRecord]) -> None:
    for card in doc.cards_to_add:
        _warn_missing_related(cards, card)

        existing = cards.get(card.name)
        if existing is not None:
            # The addition is written in corrected form; compare like with like.
            corrected = existing.clone()
            _apply_rules(doc.rules, corrected)
            if card.same_as(corrected):
                report.record_no_op("%s is already in the index", card.name)
            else:
                logger.warning(
                    "%s is already in the index with different data, keeping it", card.name
                )
            continue

        cards[card.name] = card.clone()

        probe = card.clone()
        for rule in doc.rules:
            if rule.apply(probe):
                logger.info("Added card %s still matches rule %s", card.name, rule)

    for name, pt in doc.pt_additions:
        _add_field(report, cards, name, "pt", pt)
    for name, related in doc.related_additions:
        _add_field(report, cards, name, "related_name", related)
        if name in cards:
            _warn_missing_related(cards, cards[name])
    for name, link in doc.link_additions:
        _add_field(report, cards, name, "link", link)


def _rename(cards: dict[str, CardRecord], card: CardRecord, old_name: str) -> bool:
    """Move a renamed card to its new key. Returns False if the rename was reverted."""
    new_name = card.name
    if not new_name or (new_name in cards and cards[new_name] is not card):
        logger.warning("Rename %s -> %r collides or is empty, reverted", old_name, new_name)
        card.name = old_name
        return False
    del cards[old_name]
    cards[new_name] = card
    return True


def _apply_regex_rules(report: FixupReport, doc: FixupDocument, cards: dict[str, CardRecord]) -> None:
    hits = [0] * len(doc.rules)

    # Renames re-key the dict, so walk a snapshot of the records
    for card in list(cards.values()):
        before = card_to_element(card)
        changed = False
        quiet = True

        for i, rule in enumerate(doc.rules):
            old_name = card.name
            changed_fields = rule.apply(card)
            if "name" in changed_fields and not _rename(cards, card, old_name):
                changed_fields.remove("name")

            if changed_fields:
                changed = True
                quiet = quiet and rule.suppress_log
                hits[i] += 1

        if changed and not quiet:
            report.before.append(before)
            report.after.append(card_to_element(card))

    for rule, count in zip(doc.rules, hits):
        if count:
            if not rule.suppress_log:
                logger.info("Rule %s applied to %d cards", rule, count)
        else:
            report.record_no_op("Rule %s matched nothing", rule, quiet=rule.suppress_log)

    report.rule_hits = hits


def _replace_cards(report: FixupReport, doc: FixupDocument, cards: dict[str, CardRecord]) -> None:
    replaced_names: set[str] = set()

    for replacement in doc.card_replacements:
        new_card = replacement.card
        _warn_missing_related(cards, new_card)
        if new_card.name in replaced_names:
            logger.warning("%s is replaced more than once", new_card.name)
        replaced_names.add(new_card.name)

        old_card = cards.get(new_card.name)
        if old_card is None:
            logger.warning("No card %s to replace", new_card.name)
            continue

        if new_card.same_as(old_card):
            report.identical.append(ET.Element("card", name=new_card.name))
            report.record_no_op("%s does not need replacing", new_card.name)
            continue

        for comment in replacement.comments:
            report.before.append(ET.Comment(comment))
            report.after.append(ET.Comment(comment))
        report.before.append(card_to_element(old_card))
        report.after.append(card_to_element(new_card))
        cards[new_card.name] = new_card.clone()

        probe = new_card.clone()
        for rule in doc.rules:
            if rule.apply(probe):
                logger.info("Replacement for %s still matches rule %s", new_card.name, rule)

    for name, type_line in doc.type_replacements:
        card = cards.get(name)
        if card is None:
            logger.warning("No card %s to replace the type of", name)
            continue
        if card.type_line == type_line:
            report.identical.append(ET.Element("type", name=name))
            report.record_no_op("Type of %s does not need replacing", name)
            continue
        report.before.append(ET.Element("type", name=name, type=card.type_line or ""))
        report.after.append(ET.Element("type", name=name, type=type_line))
        card.type_line = type_line

    for name, related in doc.related_replacements:
        card = cards.get(name)
        if card is None:
            logger.warning("No card %s to replace the related card of", name)
            continue
        if card.related_name == related:
            report.record_no_op("Related card of %s does not need replacing", name)
            continue
        card.related_name = related
        _warn_missing_related(cards, card)


def _remove_cards(report: FixupReport, doc: FixupDocument, cards: dict[str, CardRecord]) -> None:
    for name in doc.removals:
        if cards.pop(name, None) is None:
            report.record_no_op("%s is already absent", name)

    for name in doc.localized_name_removals:
        card = cards.get(name)
        if card is None:
            report.record_no_op("%s is already absent", name)
            continue
        if card.localized_name == card.name:
            report.record_no_op("%s has no Japanese name to strip", name)
            continue
        card.localized_name = card.name


def apply_fixups(index: CardIndex, doc: FixupDocument) -> FixupReport:
    """
    Apply a fix-up document to an index.

    The input index is left untouched.

    Args:
        index: Index built by the parser (or loaded from a snapshot)
        doc: Parsed fix-up document

    Returns:
        FixupReport holding the corrected index and the audit trail
    """
    cards = {name: card.clone() for name, card in index.to_dict().items()}
    report = FixupReport(index=index)

    _add_cards(report, doc, cards)
    _apply_regex_rules(report, doc, cards)
    _replace_cards(report, doc, cards)
    _remove_cards(report, doc, cards)

    report.index = CardIndex(cards)
    logger.info(
        "Fix-up pass done: %d cards, %d changed, %d no-op corrections",
        len(cards),
        report.changed_count,
        len(report.no_ops),
    )
    return report
