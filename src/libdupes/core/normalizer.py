"""Title normalization used as the comparison key for every title matcher."""

from __future__ import annotations

import re
import unicodedata

# Bracketed release tags: [Digital], (Official), {Colored}
_TAG_PATTERN = re.compile(r"\[[^\]]*\]|\([^)]*\)|\{[^}]*\}")
_WHITESPACE = re.compile(r"\s+")
# Kana voicing marks change the word (ハ vs バ vs パ), so they survive accent stripping
_KEPT_MARKS = frozenset("\u3099\u309a")


def _strip_marks(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(
        ch for ch in decomposed if ch in _KEPT_MARKS or not unicodedata.combining(ch)
    )
    return unicodedata.normalize("NFC", stripped)


def _punctuation_to_space(text: str) -> str:
    return "".join(" " if unicodedata.category(ch)[0] in ("P", "S") else ch for ch in text)


def normalize(title: str | None) -> str:
    """Fold a raw title into its comparison key.

    Titles that differ only by case, accents, punctuation, spacing or bracketed
    tags map to the same key. Idempotent; never raises.
    """
    if not title:
        return ""
    text = unicodedata.normalize("NFKC", title).casefold()
    untagged = _TAG_PATTERN.sub(" ", text)
    if _WHITESPACE.sub("", _punctuation_to_space(untagged)):
        text = untagged
    text = _punctuation_to_space(_strip_marks(text))
    return _WHITESPACE.sub(" ", text).strip()
