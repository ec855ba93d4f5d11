"""
WHISPER export parser.

WHISPER search results are exported as plain text, one field per line, with
a full-width colon between the field label and its value:

    　英語名：Fog Bank
    日本語名：濃霧の層（のうむのそう）
    　コスト：(１)(青)
    　タイプ：クリーチャー --- 壁(Wall)
    防衛、飛行
    濃霧の層が与える戦闘ダメージと濃霧の層に与えられるすべての戦闘ダメージを軽減する。
    　Ｐ／Ｔ：0/2
    イラスト：Howard Lyon
    　セット：Magic 2013
    　稀少度：アンコモン

Lines without a label are rules text. Two "英語名" headers with no blank
line between them are the two halves of one physical card (split cards,
double-faced cards) and are linked to each other.

This module is a single forward pass: parse() is a generator and cannot be
restarted once consumed. Malformed lines never abort the parse; they fall
back to being rules text.
"""

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from cardscribe.models.card_record import CardRecord

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "："

# =============================================================================
# FIELD LABELS
# =============================================================================

NAME_TAG = "　英語名"
LOCALIZED_NAME_TAG = "日本語名"
PT_TAGS = frozenset({"　Ｐ／Ｔ", "　忠誠度"})
TYPE_TAG = "　タイプ"

# Last field of a card; a face after it is not part of the same card
RARITY_TAG = "　稀少度"

# Cost, color indicator, illustrator, set
IGNORED_TAGS = frozenset({"　コスト", "　色指標", "イラスト", "　セット"})

# Level up creatures print one P/T box per level band
LEVELING_MARKER = "Ｌｖアップ"

# Plane cards live under "<name> (次元カード)" on the wiki
PLANE_TYPE_PREFIX = "次元"
PLANE_LINK_SUFFIX = " (次元カード)"


def _seal(card: CardRecord, texts: list[str]) -> CardRecord:
    """Finish a record once its last line has been read."""
    card.text = "\n".join(texts)

    if card.type_line is None:
        logger.warning("Card %s has no type line", card.name)
    elif card.type_line.startswith(PLANE_TYPE_PREFIX):
        if card.link is None:
            default_link = (
                f"{card.localized_name}/{card.name}" if card.has_localized_name else card.name
            )
            card.link = default_link + PLANE_LINK_SUFFIX
        else:
            card.link += PLANE_LINK_SUFFIX

    return card


def _as_text_line(line: str) -> str:
    # Keep the separator out of the rules text.
    return line.rstrip().replace(FIELD_SEPARATOR, ":")


class WhisperParser:
    """
    Streaming parser for WHISPER exports.

    Usage:
        parser = WhisperParser()
        for card in parser.parse(lines):
            ...
    """

    def parse(self, lines: Iterable[str]) -> Iterator[CardRecord]:
        """
        Parse export lines into CardRecords.

        Args:
            lines: Text lines, with or without trailing newlines

        Yields:
            One CardRecord per "英語名" header, in export order
        """
        card: CardRecord | None = None
        texts: list[str] = []
        leveling = False
        # Record whose header was the last one seen with no blank line since
        previous: CardRecord | None = None

        for line_number, raw_line in enumerate(lines, start=1):
            line = raw_line.rstrip("\r\n")

            if not line.strip():
                previous = None
                continue

            if line.startswith(LEVELING_MARKER):
                leveling = True

            tag, separator, value = line.partition(FIELD_SEPARATOR)

            if not separator:
                texts.append(line.rstrip())
                continue

            if tag == NAME_TAG:
                new_card = CardRecord(name=value.strip())
                if not new_card.name:
                    logger.warning("Line %d: empty card name, treated as text", line_number)
                    texts.append(_as_text_line(line))
                    continue

                if previous is not None:
                    previous.related_name = new_card.name
                    new_card.related_name = previous.name

                if card is not None:
                    yield _seal(card, texts)

                card = new_card
                texts = []
                leveling = False
                previous = card

            elif card is None:
                logger.debug("Line %d: field before first card header: %r", line_number, line)

            elif tag == LOCALIZED_NAME_TAG:
                card.localized_name = value

            elif tag in PT_TAGS:
                # Back faces of double-faced planeswalkers carry an empty loyalty
                if value.strip():
                    if card.pt is None and not leveling:
                        card.pt = value
                    else:
                        texts.append(value)

            elif tag == TYPE_TAG:
                card.type_line = value

            elif tag == RARITY_TAG:
                previous = None

            elif tag in IGNORED_TAGS:
                pass

            else:
                logger.debug("Line %d: unknown field %r, treated as text", line_number, tag)
                texts.append(_as_text_line(line))

        if card is not None:
            yield _seal(card, texts)


def parse_whisper(lines: Iterable[str]) -> Iterator[CardRecord]:
    """Parse WHISPER export lines. See WhisperParser.parse."""
    return WhisperParser().parse(lines)


def parse_whisper_file(path: Path, encoding: str = "utf-8-sig") -> Iterator[CardRecord]:
    """
    Stream CardRecords from a WHISPER export file.

    Args:
        path: Export file (CRLF or LF line endings)
        encoding: File encoding; old exports are "cp932"

    Raises:
        FileNotFoundError: If the export does not exist
    """
    with open(path, encoding=encoding, newline="") as f:
        yield from parse_whisper(f)
