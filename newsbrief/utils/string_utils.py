import re

_TRAILING_DASHES = re.compile(r"[\s\-–—]+$")
_SPEECH_REPLACEMENTS = str.maketrans({
    "\n": " ",
    "\r": " ",
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
})

SPEECH_TEXT_MAX_LENGTH = 4000


def clean_text(text: str) -> str:
    return ' '.join((text or "").split())


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def clean_headline(title: str) -> str:
    """Drop trailing dashes/whitespace and collapse inner whitespace."""
    return clean_text(_TRAILING_DASHES.sub("", title or ""))


def snippet(text: str, max_length: int) -> str:
    """Whitespace-collapsed prefix, cut without an ellipsis."""
    return clean_text(text)[:max_length]


def normalize_speech_text(text: str, max_length: int = SPEECH_TEXT_MAX_LENGTH) -> str:
    """Text as it would be sent to speech synthesis; also the basis of audio cache keys."""
    cleaned = clean_text(str(text or "").translate(_SPEECH_REPLACEMENTS))
    return truncate_text(cleaned, max_length)
