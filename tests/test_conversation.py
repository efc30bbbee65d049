"""
Test Conversation Handler
=========================

Unit tests for intent-first replies and the LLM fallback.
"""

import pytest
from pathlib import Path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import Config
from core.exceptions import ChatError
from services.conversation import (
    ConversationHandler, ChatReply, PromptHistory, build_fallback_messages,
    AI_UNAVAILABLE, AI_ERROR, MESSAGE_REQUIRED,
)


class TestIntentReplies:
    """Tests for messages answered from the rules."""

    def test_booking_intent_is_trigger(self, rule_set, fake_llm):
        handler = ConversationHandler(rule_set, llm=fake_llm)
        reply = handler.respond("u1", "book hotel please", "en")

        assert reply.type == "trigger"
        assert reply.intent == "book_hotel"
        assert reply.text == "Let's find a hotel."
        assert fake_llm.calls == []

    def test_french_booking_is_trigger(self, rule_set):
        reply = ConversationHandler(rule_set).respond("u1", "je veux réserver un hôtel", "fr")

        assert reply.type == "trigger"
        assert reply.intent == "book_hotel"
        assert reply.text == "Trouvons un hôtel."
        assert reply.lang == "fr"

    def test_other_intent(self, rule_set, fake_llm):
        reply = ConversationHandler(rule_set, llm=fake_llm).respond("u1", "Hello!", "en")

        assert reply == ChatReply(type="intent", text="Hi!", intent="greeting", lang="en")
        assert fake_llm.calls == []

    def test_custom_trigger_intents(self, rule_set):
        config = Config()
        config.chat.trigger_intents = ["greeting"]
        handler = ConversationHandler(rule_set, config)

        assert handler.respond("u1", "hi", "en").type == "trigger"
        assert handler.respond("u1", "book hotel", "en").type == "intent"

    def test_default_language(self, rule_set):
        config = Config()
        config.chat.default_lang = "fr"
        reply = ConversationHandler(rule_set, config).respond("u1", "bonjour")
        assert reply.text == "Bonjour!"


class TestEmptyMessage:
    """Tests for the missing-message error."""

    @pytest.mark.parametrize("message", [None, "", "   "])
    def test_english(self, rule_set, message):
        with pytest.raises(ChatError) as exc_info:
            ConversationHandler(rule_set).respond("u1", message, "en")
        assert exc_info.value.message == MESSAGE_REQUIRED["en"]
        assert exc_info.value.lang == "en"

    def test_french(self, rule_set):
        with pytest.raises(ChatError) as exc_info:
            ConversationHandler(rule_set).respond("u1", "", "fr-FR")
        assert exc_info.value.message == "Le message est requis"

    def test_empty_message_not_recorded(self, rule_set):
        handler = ConversationHandler(rule_set)
        with pytest.raises(ChatError):
            handler.respond("u1", "  ", "en")
        assert handler.history.recent("u1") == []


class TestFallback:
    """Tests for unmatched messages."""

    def test_no_llm(self, rule_set):
        reply = ConversationHandler(rule_set).respond("u1", "what about the weather", "en")
        assert reply.type == "fallback"
        assert reply.text == AI_UNAVAILABLE["en"]
        assert "• book hotel" in reply.text

    def test_no_llm_french(self, rule_set):
        reply = ConversationHandler(rule_set).respond("u1", "quel temps fait-il", "fr")
        assert reply.text == AI_UNAVAILABLE["fr"]
        assert "• réserver un hôtel" in reply.text

    def test_llm_reply(self, rule_set, fake_llm):
        handler = ConversationHandler(rule_set, llm=fake_llm)
        reply = handler.respond("u1", "what to do in Grand Baie", "en")

        assert reply.type == "llm"
        assert reply.text == "Grand Baie has lovely beaches."
        assert reply.intent is None
        assert len(fake_llm.calls) == 1

    def test_llm_sees_recent_prompts(self, rule_set, fake_llm):
        handler = ConversationHandler(rule_set, llm=fake_llm)
        handler.respond("u1", "hi", "en")
        handler.respond("u2", "someone else", "en")
        handler.respond("u1", "beaches near the north", "fr")

        system, user = fake_llm.calls[-1]
        assert system.role == "system"
        assert "Reply ONLY in French" in system.content
        assert "- hi\n" in user.content
        assert "someone else" not in user.content
        assert user.content.endswith("User: beaches near the north\nTravel Buddy:")

    def test_llm_error(self, rule_set, failing_llm):
        reply = ConversationHandler(rule_set, llm=failing_llm).respond("u1", "weather?", "fr")
        assert reply.type == "fallback"
        assert reply.text == AI_ERROR["fr"]

    def test_llm_empty_reply(self, rule_set, empty_llm):
        reply = ConversationHandler(rule_set, llm=empty_llm).respond("u1", "weather?", "en")
        assert reply.type == "fallback"
        assert reply.text == AI_UNAVAILABLE["en"]

    @pytest.mark.parametrize("user_id", [None, ""])
    def test_anonymous_messages_share_nothing(self, rule_set, fake_llm, user_id):
        """Test messages without a user id are neither stored nor used as context."""
        handler = ConversationHandler(rule_set, llm=fake_llm)
        handler.respond(user_id, "my passport number is X123", "en")
        handler.respond(user_id, "best beaches?", "en")

        _, user = fake_llm.calls[-1]
        assert user.content == "User: best beaches?\nTravel Buddy:"
        assert "X123" not in user.content
        assert len(handler.history) == 0

    def test_anonymous_message_still_matches(self, rule_set):
        reply = ConversationHandler(rule_set).respond(None, "book taxi", "en")
        assert reply.type == "trigger"

    def test_max_users_from_config(self, rule_set):
        config = Config()
        config.chat.max_users = 2
        handler = ConversationHandler(rule_set, config)
        for user_id in ["u1", "u2", "u3"]:
            handler.respond(user_id, "hello", "en")

        assert len(handler.history) == 2
        assert handler.history.recent("u1") == []

    def test_injected_empty_history_is_kept(self, rule_set):
        history = PromptHistory(max_size=3)
        handler = ConversationHandler(rule_set, history=history)
        handler.respond("u1", "hi", "en")
        assert history.recent("u1") == ["hi"]

    def test_history_size_from_config(self, rule_set):
        config = Config()
        config.chat.history_size = 2
        handler = ConversationHandler(rule_set, config)
        for message in ["one", "two", "three"]:
            handler.respond("u1", message, "en")
        assert handler.history.recent("u1") == ["two", "three"]


class TestPromptHistory:
    """Tests for PromptHistory."""

    def test_keeps_latest(self):
        history = PromptHistory(max_size=3)
        for n in range(5):
            history.add("u1", f"p{n}")
        assert history.recent("u1") == ["p2", "p3", "p4"]

    def test_least_recently_active_user_evicted(self):
        history = PromptHistory(max_size=5, max_users=2)
        history.add("u1", "a")
        history.add("u2", "b")
        history.add("u1", "c")
        history.add("u3", "d")

        assert len(history) == 2
        assert history.recent("u1") == ["a", "c"]
        assert history.recent("u2") == []
        assert history.recent("u3") == ["d"]

    def test_unknown_user(self):
        assert PromptHistory().recent("nobody") == []

    def test_clear(self):
        history = PromptHistory()
        history.add("u1", "a")
        history.add("u2", "b")

        history.clear("u1")
        assert history.recent("u1") == []
        assert history.recent("u2") == ["b"]

        history.clear()
        assert history.recent("u2") == []


class TestBuildFallbackMessages:
    """Tests for build_fallback_messages."""

    def test_without_context(self):
        system, user = build_fallback_messages("Where to eat?", [], "en")
        assert "Travel Buddy" in system.content
        assert "Reply ONLY in English" in system.content
        assert user.content == "User: Where to eat?\nTravel Buddy:"

    def test_with_context(self):
        _, user = build_fallback_messages("and at night?", ["beaches", "food"], "en")
        assert user.content.startswith("User recent conversation prompts:\n- beaches\n- food\n\n")

    def test_french_rule(self):
        system, _ = build_fallback_messages("Où manger ?", [], "fr-CA")
        assert "Do not include any English translation" in system.content


class TestChatReply:
    """Tests for ChatReply serialization."""

    def test_to_dict(self):
        assert ChatReply("trigger", "Go", intent="book_taxi").to_dict() == {
            "type": "trigger", "text": "Go", "intent": "book_taxi"
        }
        assert ChatReply("llm", "Hello").to_dict() == {"type": "llm", "text": "Hello"}


# Run tests if executed directly
if __name__ == "__main__":
    pytest.main([__file__, "-v"])
