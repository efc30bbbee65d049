"""
Test Gemini Provider
====================

Tests for the Gemini model fallback chain and the provider factory.
HTTP calls are replaced with canned responses.
"""

import http.client
import io
import urllib.error
import urllib.request

import pytest
from pathlib import Path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import Config, LLMConfig
from core.exceptions import ConfigError, LLMError
from llm.base import Message
from llm.factory import create_llm_provider
from llm.gemini import GeminiProvider
from services.conversation import AI_ERROR, ConversationHandler


def ok(text, tokens=12):
    return 200, {
        "candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}],
        "usageMetadata": {"totalTokenCount": tokens},
    }


def error(status, message):
    return status, {"error": {"code": status, "message": message}}


class ScriptedGemini(GeminiProvider):
    """GeminiProvider answering from a list of (status, body) tuples."""

    def __init__(self, config, responses):
        super().__init__(config)
        self.responses = list(responses)
        self.requests = []

    def _post_json(self, url, payload):
        self.requests.append((url, payload))
        return self.responses.pop(0)


@pytest.fixture
def llm_config():
    return LLMConfig(api_key="test-key", model_candidates=["model-a", "model-b", "model-c"])


MESSAGES = [
    Message(role="system", content="You are Travel Buddy."),
    Message(role="user", content="Things to do?"),
]


class TestGeminiProvider:
    """Tests for GeminiProvider.chat."""

    def test_requires_api_key(self):
        with pytest.raises(LLMError):
            GeminiProvider(LLMConfig(api_key=""))

    def test_first_model_answers(self, llm_config):
        provider = ScriptedGemini(llm_config, [ok("Visit Le Morne.")])
        response = provider.chat(MESSAGES)

        assert response.content == "Visit Le Morne."
        assert response.model == "model-a"
        assert response.provider == "gemini"
        assert response.tokens_used == 12
        assert response.is_complete

    def test_unknown_model_tries_next(self, llm_config):
        provider = ScriptedGemini(llm_config, [
            error(404, "models/model-a is not found for API version v1beta"),
            ok("Hello from b"),
        ])
        response = provider.chat(MESSAGES)

        assert response.model == "model-b"
        assert ":generateContent" in provider.requests[1][0]
        assert "/models/model-b:" in provider.requests[1][0]

    def test_empty_reply_tries_next(self, llm_config):
        provider = ScriptedGemini(llm_config, [(200, {"candidates": []}), ok("  "), ok("Finally")])
        assert provider.chat(MESSAGES).model == "model-c"

    def test_other_errors_stop_immediately(self, llm_config):
        provider = ScriptedGemini(llm_config, [error(403, "API key not valid"), ok("never")])

        with pytest.raises(LLMError) as exc_info:
            provider.chat(MESSAGES)

        assert exc_info.value.details["status"] == 403
        assert len(provider.requests) == 1

    def test_all_models_exhausted(self, llm_config):
        provider = ScriptedGemini(llm_config, [
            error(404, "not found"),
            error(400, "model is not supported for generateContent"),
            (200, {}),
        ])

        with pytest.raises(LLMError) as exc_info:
            provider.chat(MESSAGES)

        assert "fallback failed" in exc_info.value.message
        assert len(provider.requests) == 3

    def test_explicit_model_first(self, llm_config):
        llm_config.model = "model-b"
        provider = ScriptedGemini(llm_config, [ok("hi")])
        assert provider.models == ["model-b", "model-a", "model-c"]
        assert provider.chat(MESSAGES).model == "model-b"

    def test_payload(self, llm_config):
        provider = ScriptedGemini(llm_config, [ok("ok")])
        provider.chat(MESSAGES + [Message(role="assistant", content="Sure!")], max_tokens=50)

        url, payload = provider.requests[0]
        assert url.endswith("?key=test-key")
        assert payload["systemInstruction"] == {"parts": [{"text": "You are Travel Buddy."}]}
        assert [c["role"] for c in payload["contents"]] == ["user", "model"]
        assert payload["generationConfig"] == {"temperature": 0.7, "maxOutputTokens": 50}

    def test_generate(self, llm_config):
        provider = ScriptedGemini(llm_config, [ok("pong")])
        assert provider.generate("ping").content == "pong"
        assert "systemInstruction" not in provider.requests[0][1]


class FakeHTTPResponse:
    """Minimal stand-in for the object urlopen returns."""

    def __init__(self, body, status=200):
        self.body = body
        self.status = status

    def read(self):
        return self.body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def urlopen_raising(error):
    def urlopen(request, timeout=None):
        raise error
    return urlopen


class TestTransport:
    """Tests for network failures and malformed bodies."""

    @pytest.mark.parametrize("error", [
        ConnectionResetError("Connection reset by peer"),
        http.client.RemoteDisconnected("Remote end closed connection without response"),
        http.client.IncompleteRead(b'{"cand'),
        TimeoutError("timed out"),
        urllib.error.URLError("Name or service not known"),
    ])
    def test_network_errors_become_llm_errors(self, llm_config, monkeypatch, error):
        monkeypatch.setattr(urllib.request, "urlopen", urlopen_raising(error))
        with pytest.raises(LLMError):
            GeminiProvider(llm_config).chat(MESSAGES)

    @pytest.mark.parametrize("body", [b"[1, 2]", b'"text"', b"not json", b"\xff\xfe"])
    def test_non_object_body(self, llm_config, monkeypatch, body):
        monkeypatch.setattr(urllib.request, "urlopen", lambda request, timeout=None: FakeHTTPResponse(body))
        with pytest.raises(LLMError):
            GeminiProvider(llm_config).chat(MESSAGES)

    def test_error_status_with_array_body(self, llm_config, monkeypatch):
        error = urllib.error.HTTPError(
            "https://example.invalid", 500, "Server Error", None,
            io.BytesIO(b'[{"error": {"message": "boom"}}]')
        )
        monkeypatch.setattr(urllib.request, "urlopen", urlopen_raising(error))

        with pytest.raises(LLMError) as exc_info:
            GeminiProvider(llm_config).chat(MESSAGES)
        assert exc_info.value.details["status"] == 500

    def test_http_error_body_is_used(self, llm_config, monkeypatch):
        error = urllib.error.HTTPError(
            "https://example.invalid", 403, "Forbidden", None,
            io.BytesIO(b'{"error": {"message": "API key not valid"}}')
        )
        monkeypatch.setattr(urllib.request, "urlopen", urlopen_raising(error))

        with pytest.raises(LLMError) as exc_info:
            GeminiProvider(llm_config).chat(MESSAGES)
        assert "API key not valid" in exc_info.value.message

    def test_malformed_candidates_try_next_model(self, llm_config):
        provider = ScriptedGemini(llm_config, [
            (200, {"candidates": ["oops"]}),
            (200, {"candidates": [{"content": {"parts": ["x", {"text": 5}]}}]}),
            (200, {"candidates": [{"content": {"parts": [{"text": "Third time lucky"}]}}], "usageMetadata": []}),
        ])
        response = provider.chat(MESSAGES)
        assert response.model == "model-c"
        assert response.tokens_used == 0

    def test_string_error_field(self, llm_config):
        provider = ScriptedGemini(llm_config, [(429, {"error": "quota exceeded"})])
        with pytest.raises(LLMError) as exc_info:
            provider.chat(MESSAGES)
        assert "quota exceeded" in exc_info.value.message

    def test_dropped_connection_gets_fallback_reply(self, rule_set, monkeypatch):
        """Test a reset connection ends in the localized apology, not an exception."""
        monkeypatch.setattr(
            urllib.request, "urlopen",
            urlopen_raising(ConnectionResetError("Remote end closed connection without response"))
        )
        handler = ConversationHandler(rule_set, llm=GeminiProvider(LLMConfig(api_key="k")))

        reply = handler.respond("u1", "weather?", "en")

        assert reply.type == "fallback"
        assert reply.text == AI_ERROR["en"]


class TestFactory:
    """Tests for create_llm_provider."""

    def test_no_api_key(self):
        assert create_llm_provider(Config()) is None

    def test_disabled(self):
        config = Config()
        config.llm.api_key = "key"
        config.llm.fallback_enabled = False
        assert create_llm_provider(config) is None

    def test_gemini(self):
        config = Config()
        config.llm.api_key = "key"
        assert isinstance(create_llm_provider(config), GeminiProvider)

    def test_unknown_provider(self):
        config = Config()
        config.llm.api_key = "key"
        config.llm.provider = "unknown"
        with pytest.raises(ConfigError):
            create_llm_provider(config)


# Run tests if executed directly
if __name__ == "__main__":
    pytest.main([__file__, "-v"])
