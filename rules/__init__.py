"""
Rules Module - Bilingual intent matching
========================================

This module provides the rule-based intent matcher used before any
language-model fallback:
- CSV rule loading with column aliases
- Accent/case-insensitive whole-phrase matching
- Longest-pattern tie-break
- French to English booking-command bridging
- Localized (en/fr) canned responses
"""

from .engine import Rule, RuleSet, MatchResult, match_intent
from .loader import load_rules, load_rules_file, parse_rules
from .normalize import normalize_text, normalize_lang
from .bridge import bridge_french_query

__all__ = [
    "Rule",
    "RuleSet",
    "MatchResult",
    "match_intent",
    "load_rules",
    "load_rules_file",
    "parse_rules",
    "normalize_text",
    "normalize_lang",
    "bridge_french_query",
]
