"""
Shared pytest fixtures.
"""

import os
import sys
from pathlib import Path
from typing import List, Optional

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import LLMConfig
from core.exceptions import LLMError
from llm.base import BaseLLMProvider, LLMResponse, Message
from rules.engine import Rule, RuleSet


SAMPLE_CSV = (
    "intent,patterns,response_en,response_fr\n"
    "greeting,hi|hello|bonjour,Hi!,Bonjour!\n"
    "book_hotel,book hotel|book a hotel|hotel booking,\"Great, let's find you a hotel.\",\"Parfait, trouvons un hôtel.\"\n"
    "book_taxi,book taxi|need a taxi,\"Sure, let's book your taxi.\",\n"
    "thanks,thanks|thank you|merci,You're welcome!,Avec plaisir !\n"
)


class FakeLLM(BaseLLMProvider):
    """In-memory provider recording what it was asked."""

    PROVIDER_NAME = "fake"

    def __init__(self, reply: str = "Grand Baie has lovely beaches.", error: Optional[Exception] = None):
        super().__init__(LLMConfig())
        self.reply = reply
        self.error = error
        self.calls: List[List[Message]] = []

    def chat(self, messages, temperature=None, max_tokens=None, **kwargs) -> LLMResponse:
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.reply, model="fake-1", provider=self.PROVIDER_NAME)

    def is_available(self) -> bool:
        return self.error is None


@pytest.fixture
def rule_set() -> RuleSet:
    """Small bilingual rule set in a fixed order."""
    return RuleSet(rules=(
        Rule("greeting", ("hi", "hello", "bonjour"), {"en": "Hi!", "fr": "Bonjour!"}),
        Rule("book_hotel", ("book hotel", "book a hotel"), {"en": "Let's find a hotel.", "fr": "Trouvons un hôtel."}),
        Rule("book_taxi", ("book taxi",), {"en": "Let's book a taxi."}),
        Rule("thanks", ("thanks", "thank you"), {"en": "You're welcome!"}),
    ))


@pytest.fixture
def sample_csv() -> str:
    return SAMPLE_CSV


@pytest.fixture
def rules_file(tmp_path) -> Path:
    path = tmp_path / "intents.csv"
    path.write_text(SAMPLE_CSV, encoding="utf-8")
    return path


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def failing_llm() -> FakeLLM:
    return FakeLLM(error=LLMError("quota exceeded"))


@pytest.fixture
def empty_llm() -> FakeLLM:
    return FakeLLM(reply="   ")


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """
    Private copy of the environment with the config dir in tmp_path.

    Anything written to os.environ (e.g. from a .env file) is discarded
    after the test.
    """
    env = {
        key: value for key, value in os.environ.items()
        if not key.startswith("TRAVEL_BUDDY_") and key not in ("GEMINI_API_KEY", "GEMINI_MODEL", "PORT")
    }
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    env["TRAVEL_BUDDY_CONFIG_DIR"] = str(config_dir)
    env["TRAVEL_BUDDY_DATA_DIR"] = str(tmp_path / "data")
    monkeypatch.setattr(os, "environ", env)
    return config_dir
