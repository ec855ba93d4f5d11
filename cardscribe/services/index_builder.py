"""
Card index construction.

Two ways to get an index:

- build: parse the WHISPER corpus, then apply the fix-up document if there
  is one (offline job, or first start without a snapshot)
- load: read the XML snapshot written by a previous build
"""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from cardscribe.config import settings
from cardscribe.parsers.whisper import parse_whisper_file
from cardscribe.services.card_fixup import FixupDocument, FixupReport, apply_fixups
from cardscribe.services.card_index import CardIndex

logger = logging.getLogger(__name__)


def build_card_index(
    corpus_path: Path,
    fixup_path: Path | None = None,
    encoding: str = "utf-8-sig",
) -> tuple[CardIndex, FixupReport | None]:
    """
    Parse the corpus and apply fix-ups.

    Args:
        corpus_path: WHISPER text export
        fixup_path: Corrections document; skipped if None or missing
        encoding: Corpus encoding

    Returns:
        The index, and the fix-up report when fix-ups were applied

    Raises:
        FileNotFoundError: If the corpus doesn't exist
        FixupDocumentError: If the fix-up document is malformed
    """
    if not corpus_path.exists():
        raise FileNotFoundError(f"WHISPER corpus not found at {corpus_path}")

    index = CardIndex.from_records(parse_whisper_file(corpus_path, encoding))
    logger.info("Parsed %d cards from %s", len(index), corpus_path)

    if fixup_path is None or not fixup_path.exists():
        if fixup_path is not None:
            logger.info("No fix-up document at %s", fixup_path)
        return index, None

    report = apply_fixups(index, FixupDocument.load(fixup_path))
    logger.info(
        "Applied fix-ups from %s: %d cards changed, %d no-ops",
        fixup_path,
        report.changed_count,
        len(report.no_ops),
    )
    return report.index, report


def load_card_index(
    snapshot_path: Path | None = None,
    corpus_path: Path | None = None,
    fixup_path: Path | None = None,
    encoding: str | None = None,
) -> CardIndex | None:
    """
    Get an index for the running service.

    Prefers the snapshot; falls back to building from the corpus when the
    snapshot is missing or unreadable. Defaults come from settings.

    Returns:
        The index, or None if neither a snapshot nor a corpus exists
    """
    snapshot_path = snapshot_path or settings.snapshot_path
    corpus_path = corpus_path or settings.corpus_path

    if snapshot_path.exists():
        try:
            return CardIndex.load_snapshot(snapshot_path)
        except ET.ParseError as e:
            logger.warning("Ignoring unreadable snapshot %s: %s", snapshot_path, e)

    if corpus_path.exists():
        index, _ = build_card_index(
            corpus_path,
            fixup_path or settings.fixup_path,
            encoding or settings.corpus_encoding,
        )
        return index

    logger.warning("Neither %s nor %s exists; no card data", snapshot_path, corpus_path)
    return None
