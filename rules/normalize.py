"""
Text and language normalization shared by the loader and the matcher.
"""

import unicodedata
from typing import Optional


SUPPORTED_LANGUAGES = ("en", "fr")


def strip_accents(text: str) -> str:
    """Decompose to NFD and drop combining marks ("é" -> "e")."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(text: Optional[str]) -> str:
    """
    Canonical comparison form of a pattern or an utterance.

    Accents are stripped, the result is lower-cased and trimmed.
    Never fails; ``None`` and ``""`` both give ``""``.

    >>> normalize_text("  HÔTEL ")
    'hotel'
    """
    if not text:
        return ""
    return strip_accents(str(text)).lower().strip()


def normalize_lang(lang: Optional[str]) -> str:
    """
    Resolve a language hint to ``"fr"`` or ``"en"``.

    Anything starting with "fr" ("fr", "fr-CA", "french") is French,
    everything else, including no hint at all, is English.
    """
    value = str(lang or "").lower().strip()
    return "fr" if value.startswith("fr") else "en"
