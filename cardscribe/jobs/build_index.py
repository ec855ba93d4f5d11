"""
Build the card index snapshot.

Parses the WHISPER corpus, applies the fix-up document, reports relation
targets that don't exist, and writes the XML snapshot the service loads at
startup. With --audit-dir, also writes before/after documents of every
record the fix-ups changed, for review with a diff tool.

    python -m cardscribe.jobs.build_index --corpus data/whisper.txt \
        --fixup data/appendix.xml --output data/cards.xml --audit-dir audit
"""

import argparse
import logging
import sys
from pathlib import Path

from cardscribe.config import settings
from cardscribe.services.card_fixup import FixupDocumentError
from cardscribe.services.card_index import CardIndex
from cardscribe.services.index_builder import build_card_index

logger = logging.getLogger(__name__)

AUDIT_BEFORE_FILE = "fixup_before.xml"
AUDIT_AFTER_FILE = "fixup_after.xml"


def run_build(
    corpus: Path,
    fixup: Path | None,
    output: Path,
    audit_dir: Path | None = None,
    encoding: str = "utf-8-sig",
) -> CardIndex:
    """
    Build and save the index.

    Args:
        corpus: WHISPER text export
        fixup: Fix-up document, or None to skip fix-ups
        output: Snapshot path
        audit_dir: Where to write the fix-up audit documents
        encoding: Corpus encoding

    Returns:
        The saved index

    Raises:
        FileNotFoundError: If the corpus doesn't exist
        FixupDocumentError: If the fix-up document is malformed
    """
    index, report = build_card_index(corpus, fixup, encoding)

    missing = index.missing_relations()
    for name, target in missing:
        logger.warning("%s refers to missing card %s", name, target)

    index.save_snapshot(output)

    if report is not None and audit_dir is not None:
        report.write_audit(audit_dir / AUDIT_BEFORE_FILE, audit_dir / AUDIT_AFTER_FILE)
        logger.info("Wrote fix-up audit to %s", audit_dir)

    logger.info(
        "Build complete: %d cards, %d missing relations",
        len(index),
        len(missing),
    )
    return index


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the card index snapshot.")
    parser.add_argument("--corpus", type=Path, default=settings.corpus_path)
    parser.add_argument("--fixup", type=Path, default=settings.fixup_path)
    parser.add_argument(
        "--no-fixup",
        action="store_true",
        help="Skip the fix-up document",
    )
    parser.add_argument("--output", type=Path, default=settings.snapshot_path)
    parser.add_argument("--audit-dir", type=Path, default=None)
    parser.add_argument("--encoding", default=settings.corpus_encoding)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = parse_args(argv)

    try:
        run_build(
            corpus=args.corpus,
            fixup=None if args.no_fixup else args.fixup,
            output=args.output,
            audit_dir=args.audit_dir,
            encoding=args.encoding,
        )
    except (FileNotFoundError, FixupDocumentError) as e:
        logger.error("Build failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
