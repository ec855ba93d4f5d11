"""
Card name normalization.

Magic Online, the WHISPER export and third-party lists disagree on accented
Latin letters: some spell "Séance", some "Seance", and some ship the accent
as a separate combining character. Every name looked up in the card index
(preview pane text, legal list entries) passes through normalize_name; the
fix-up document folds the few accented names in the corpus the same way.

Pure functions only. normalize_name(normalize_name(x)) == normalize_name(x).
"""

import unicodedata

# Accented letters found in card names, folded to the spelling MTGO uses.
# Æ is deliberately absent: most Æ became "Ae" in the Kaladesh oracle update,
# but WHISPER still spells a few with Æ and those must stay as they are.
_ACCENT_FOLDS = str.maketrans(
    {
        "á": "a",  # Márton Stromgald
        "â": "a",  # Dandân
        "à": "a",  # Déjà Vu
        "í": "i",  # Ifh-Bíff Efreet
        "ú": "u",  # Junún Efreet
        "û": "u",  # Lim-Dûl the Necromancer
        "é": "e",  # Séance
        "ö": "o",  # Jötun Owl Keeper (Penny Dreadful list)
    }
)

AVATAR_PREFIX = "Avatar - "

SPLIT_CARD_SEPARATOR = " // "


def normalize_name(name: str) -> str:
    """
    Return the canonical lookup key for a card name.

    Composes decomposed accents (NFC), then folds the accented letters that
    appear in card names to plain ASCII. Returns the input unchanged when
    nothing needs folding.
    """
    if not name:
        return name

    composed = unicodedata.normalize("NFC", name)
    folded = composed.translate(_ACCENT_FOLDS)
    return name if folded == name else folded


def is_avatar_name(name: str) -> bool:
    """MTGO shows Vanguard cards as "Avatar - X"; that is never a card key."""
    return name.startswith(AVATAR_PREFIX)


def split_card_names(name: str) -> list[str]:
    """
    Split a compound split-card name into normalized face names.

    "Fire // Ice" -> ["Fire", "Ice"]; single names yield a one-item list.
    """
    return [normalize_name(part) for part in name.split(SPLIT_CARD_SEPARATOR) if part]
