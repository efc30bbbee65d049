"""
French query bridging
=====================

Intent patterns are authored in English. For French utterances the
matcher first rewrites common booking requests ("je veux réserver un
hôtel") onto the canonical English commands ("book hotel") so one rule
set serves both languages without French patterns on every rule.
"""

from typing import Tuple

from .normalize import normalize_text


BOOK_HOTEL = "book hotel"
BOOK_TAXI = "book taxi"

RESERVE_VERBS: Tuple[str, ...] = (
    "reserver",
    "réserver",
    "reservation",
    "réservation",
    "book",
    "booking",
)

HOTEL_SIGNALS: Tuple[str, ...] = (
    "reserver un hotel",
    "reserver hotel",
    "reservation hotel",
    "hotel",
    "hôtel",
    "hebergement",
    "hébergement",
    "logement",
)

TAXI_SIGNALS: Tuple[str, ...] = (
    "reserver un taxi",
    "reserver taxi",
    "reservation taxi",
    "taxi",
    "chauffeur",
    "transport",
    "voiture",
)

HOTEL_NOUNS: Tuple[str, ...] = ("hotel", "un hotel", "hôtel", "un hôtel")
TAXI_NOUNS: Tuple[str, ...] = ("taxi", "un taxi")

# Signals are compared against normalized text, so accented spellings
# collapse onto their plain forms.
_VERBS = frozenset(normalize_text(s) for s in RESERVE_VERBS)
_HOTEL = frozenset(normalize_text(s) for s in HOTEL_SIGNALS)
_TAXI = frozenset(normalize_text(s) for s in TAXI_SIGNALS)
_HOTEL_NOUNS = frozenset(normalize_text(s) for s in HOTEL_NOUNS)
_TAXI_NOUNS = frozenset(normalize_text(s) for s in TAXI_NOUNS)


def _mentions(text: str, signals) -> bool:
    return any(signal in text for signal in signals)


def bridge_french_query(message: str) -> str:
    """
    Rewrite a French booking request onto English trigger vocabulary.

    Checks run in a fixed order: verb + hotel, verb + taxi, then bare
    hotel nouns, then bare taxi nouns. Signal detection is substring
    containment, so "réservation" also fires on "réservations".
    When nothing applies the message is returned exactly as given.
    """
    text = normalize_text(message)
    has_verb = _mentions(text, _VERBS)

    if has_verb and _mentions(text, _HOTEL):
        return BOOK_HOTEL
    if has_verb and _mentions(text, _TAXI):
        return BOOK_TAXI

    if text in _HOTEL_NOUNS:
        return BOOK_HOTEL
    if text in _TAXI_NOUNS:
        return BOOK_TAXI

    return message
