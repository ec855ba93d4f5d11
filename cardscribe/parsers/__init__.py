from cardscribe.parsers.whisper import (
    FIELD_SEPARATOR,
    WhisperParser,
    parse_whisper,
    parse_whisper_file,
)

__all__ = [
    "FIELD_SEPARATOR",
    "WhisperParser",
    "parse_whisper",
    "parse_whisper_file",
]
