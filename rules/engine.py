"""
Intent Engine - Whole-phrase intent matching
============================================

This module implements the matcher that maps a free-text utterance
onto one of the configured intents.

Matching works on normalized text (accents stripped, lower-cased,
trimmed). A pattern only fires as a whole word or phrase, so "hi"
matches "hi there" but not "things". When several patterns fire, the
longest normalized pattern wins; ties go to the pattern seen first in
rule order.

French utterances are bridged onto the English booking commands
before matching (see ``rules.bridge``).
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Optional, List, Dict, Any, Iterable, Iterator, Mapping, Tuple

from .bridge import bridge_french_query
from .normalize import normalize_text, normalize_lang


# Canonical rule field -> accepted column names, first non-empty wins
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "intent": ("intent", "name", "id"),
    "patterns": ("patterns", "keywords", "phrases"),
    "response_en": ("response_en", "response", "reply", "text"),
    "response_fr": ("response_fr", "reponse_fr", "fr"),
}

PATTERN_SEPARATOR = "|"


def resolve_field(data: Mapping[str, Any], name: str) -> Any:
    """Return the first non-empty value among the aliases of ``name``."""
    for alias in FIELD_ALIASES[name]:
        value = data.get(alias)
        if value:
            return value
    return None


def split_patterns(raw: Any) -> Tuple[str, ...]:
    """
    Turn a raw pattern field into a tuple of trigger phrases.

    Strings are split on "|"; lists are taken as-is. Blank entries
    are dropped and anything else yields no patterns.
    """
    if not raw:
        return ()
    if isinstance(raw, str):
        parts = raw.split(PATTERN_SEPARATOR)
    elif isinstance(raw, (list, tuple)):
        parts = [str(p) for p in raw if p is not None]
    else:
        return ()
    return tuple(p.strip() for p in parts if p and p.strip())


@dataclass(frozen=True)
class Rule:
    """
    A single intent with its trigger phrases and canned replies.

    Rules are immutable once built. Loose input is coerced in
    ``__post_init__`` so a malformed rule simply contributes no
    candidates instead of breaking the matcher.

    Attributes:
        intent (str): Intent identifier, e.g. "book_hotel"
        patterns (tuple): Trigger phrases, matched as whole phrases
        responses (mapping): Reply text per language ("en", optional "fr")
    """
    intent: str
    patterns: Tuple[str, ...] = ()
    responses: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "intent", str(self.intent or "").strip())
        object.__setattr__(self, "patterns", split_patterns(self.patterns))

        responses = {}
        for lang, text in dict(self.responses or {}).items():
            text = str(text or "").strip()
            if text:
                responses[lang] = text
        object.__setattr__(self, "responses", MappingProxyType(responses))

    def __hash__(self) -> int:
        # MappingProxyType is unhashable, so hash a sorted snapshot of it
        return hash((self.intent, self.patterns, tuple(sorted(self.responses.items()))))

    def response_for(self, lang: Optional[str]) -> str:
        """
        Pick the reply for a language.

        French is used only when asked for and non-empty; otherwise the
        English text, or "" when the rule has no reply at all.
        """
        if normalize_lang(lang) == "fr" and self.responses.get("fr"):
            return self.responses["fr"]
        return self.responses.get("en", "")

    def to_dict(self) -> Dict[str, Any]:
        """Convert rule to dictionary."""
        return {
            "intent": self.intent,
            "patterns": list(self.patterns),
            "response_en": self.responses.get("en", ""),
            "response_fr": self.responses.get("fr", ""),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Rule":
        """
        Create a rule from a loosely-keyed row.

        Column names are resolved through ``FIELD_ALIASES``, so both
        ``intent,patterns,response`` and
        ``name,keywords,response_en,response_fr`` layouts work.
        """
        responses = {}
        en = resolve_field(data, "response_en")
        fr = resolve_field(data, "response_fr")
        if en:
            responses["en"] = en
        if fr:
            responses["fr"] = fr

        return cls(
            intent=resolve_field(data, "intent") or "",
            patterns=split_patterns(resolve_field(data, "patterns")),
            responses=responses,
        )


@dataclass(frozen=True)
class RuleSet:
    """
    The immutable, ordered collection of rules.

    Built once at startup and passed to every ``match_intent`` call.
    Order is the order rules were defined in, which decides ties.
    """
    rules: Tuple[Rule, ...] = ()
    source: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "rules", tuple(self.rules))

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    @property
    def intents(self) -> List[str]:
        """Distinct intent ids in definition order."""
        seen = []
        for rule in self.rules:
            if rule.intent and rule.intent not in seen:
                seen.append(rule.intent)
        return seen

    def get(self, intent: str) -> List[Rule]:
        """All rules defined for an intent (duplicates are allowed)."""
        return [rule for rule in self.rules if rule.intent == intent]

    def match(self, message: Optional[str], lang: Optional[str] = "en") -> Optional["MatchResult"]:
        """Shortcut for ``match_intent(self, message, lang)``."""
        return match_intent(self, message, lang)

    @classmethod
    def from_dicts(cls, rows: Iterable[Mapping[str, Any]], source: Optional[str] = None) -> "RuleSet":
        """Build a rule set from rows, dropping rows without an intent."""
        rules = []
        for row in rows:
            rule = Rule.from_dict(row)
            if rule.intent:
                rules.append(rule)
        return cls(rules=tuple(rules), source=source)


@dataclass
class MatchCandidate:
    """A pattern that fired during a scan, scored by specificity."""
    intent: str
    response: str
    specificity: int


@dataclass(frozen=True)
class MatchResult:
    """
    The matcher's answer.

    ``response`` may be "" when the matched rule has no reply text;
    no match at all is represented by ``None``, never by a result.
    """
    intent: str
    response: str

    def to_dict(self) -> Dict[str, str]:
        return {"intent": self.intent, "response": self.response}


@lru_cache(maxsize=4096)
def _phrase_regex(pattern: str) -> "re.Pattern":
    return re.compile(r"\b" + re.escape(pattern) + r"\b")


def matches_whole(text: str, pattern: str) -> bool:
    """
    True when ``pattern`` occurs in ``text`` bounded by word boundaries.

    Both arguments are expected to be normalized already.
    """
    if not pattern:
        return False
    return _phrase_regex(pattern).search(text) is not None


def match_intent(
    rule_set: Optional[Iterable[Rule]],
    message: Optional[str],
    lang: Optional[str] = "en",
) -> Optional[MatchResult]:
    """
    Find the most specific intent for a message.

    Args:
        rule_set: Rules to scan, in definition order. Plain mappings are
            read through ``Rule.from_dict``; anything else is skipped.
        message: Raw user utterance
        lang: Language hint, resolved to "en" or "fr"

    Returns:
        MatchResult for the best match, or None when nothing matched.
        Pure and deterministic; never raises.

    Example:
        rules = RuleSet.from_dicts([
            {"intent": "greet", "patterns": "hi|hello", "response": "Hi!"},
        ])
        match_intent(rules, "hi there", "en")   # MatchResult("greet", "Hi!")
        match_intent(rules, "things", "en")     # None
    """
    if not rule_set or not message:
        return None

    resolved = normalize_lang(lang)
    subject = bridge_french_query(message) if resolved == "fr" else message
    text = normalize_text(subject)
    if not text:
        return None

    best: Optional[MatchCandidate] = None

    for rule in rule_set:
        if isinstance(rule, Mapping):
            rule = Rule.from_dict(rule)
        elif not isinstance(rule, Rule):
            continue
        if not rule.intent or not rule.patterns:
            continue

        for pattern in rule.patterns:
            key = normalize_text(pattern)
            if not matches_whole(text, key):
                continue

            # Strictly greater, so the first of equally long patterns stays
            if best is None or len(key) > best.specificity:
                best = MatchCandidate(
                    intent=rule.intent,
                    response=rule.response_for(resolved),
                    specificity=len(key),
                )

    if best is None:
        return None
    return MatchResult(intent=best.intent, response=best.response)
