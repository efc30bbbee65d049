"""
Travel Buddy - Bilingual intent matching for a travel booking assistant
======================================================================

Matches English and French chat messages against trigger phrases from
intents.csv and answers with a localized canned reply, falling back to
a language model when no intent matches.

Author: Travel Buddy Team
License: MIT
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Travel Buddy Team"
__license__ = "MIT"
