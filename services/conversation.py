"""
Conversation Handler - Intent-first chat replies with LLM fallback
=================================================================

Every chat message goes through the intent rules first. Booking intents
come back as triggers for the client's booking flow, other intents as
their canned reply. Only unmatched messages reach the language model,
together with the user's recent prompts.
"""

import threading
from collections import OrderedDict, deque
from dataclasses import dataclass
from typing import Optional, List, Dict, Deque

from core.config import Config
from core.exceptions import ChatError, LLMError
from core.logging import get_logger, set_log_context, clear_log_context
from llm.base import BaseLLMProvider, Message
from rules.engine import RuleSet, match_intent
from rules.normalize import normalize_lang

logger = get_logger("services.conversation")


REPLY_TRIGGER = "trigger"
REPLY_INTENT = "intent"
REPLY_LLM = "llm"
REPLY_FALLBACK = "fallback"

MESSAGE_REQUIRED = {
    "en": "Message is required",
    "fr": "Le message est requis",
}

AI_UNAVAILABLE = {
    "en": (
        "Sorry ☹️. I can’t process that request right now (AI service unavailable). "
        "Please try again later, or use one of these commands:\n"
        "• book hotel\n"
        "• book taxi"
    ),
    "fr": (
        "Désolé ☹️. Je ne peux pas traiter cette demande pour le moment (service IA indisponible).\n"
        "Essayez plus tard, ou utilisez :\n"
        "• réserver un hôtel\n"
        "• réserver un taxi"
    ),
}

AI_ERROR = {
    "en": (
        "Sorry 😥. I’m having trouble answering that right now (AI service unavailable). "
        "Please try again later, or use one of these commands:\n"
        "• book hotel\n"
        "• book taxi"
    ),
    "fr": (
        "Désolé 😥. J’ai du mal à répondre pour le moment (service IA indisponible).\n"
        "Essayez plus tard, ou utilisez :\n"
        "• réserver un hôtel\n"
        "• réserver un taxi"
    ),
}

PERSONA = (
    "You are Travel Buddy, a friendly tour booking assistant for Mauritius.\n"
    "Be concise, helpful, and ask a single follow-up question when needed.\n"
    "If the user asks about places (e.g., Grand Baie), give practical suggestions."
)

LANGUAGE_RULES = {
    "en": "IMPORTANT LANGUAGE RULE:\n- Reply ONLY in English.",
    "fr": (
        "IMPORTANT LANGUAGE RULE:\n"
        "- Reply ONLY in French (Français).\n"
        "- Do not include any English translation.\n"
        "- Keep it natural for tourists visiting Mauritius."
    ),
}


@dataclass
class ChatReply:
    """
    Reply to one chat message.

    Attributes:
        type (str): 'trigger', 'intent', 'llm' or 'fallback'. Model replies
            are 'llm' whatever the provider; older clients that expect
            'gemini' must treat 'llm' the same way.
        text (str): Text to show the user
        intent (str): Matched intent id, for 'trigger' and 'intent'
        lang (str): Resolved language
    """
    type: str
    text: str
    intent: Optional[str] = None
    lang: str = "en"

    def to_dict(self) -> Dict[str, str]:
        data = {"type": self.type, "text": self.text}
        if self.intent:
            data["intent"] = self.intent
        return data


class PromptHistory:
    """
    Recent prompts per user, capped at ``max_size`` (oldest dropped).

    At most ``max_users`` users are tracked; adding a prompt for a new
    user beyond that forgets the least recently active one. In-memory
    only; safe to share between request threads.
    """

    def __init__(self, max_size: int = 10, max_users: int = 1000):
        self.max_size = max_size
        self.max_users = max_users
        self._prompts: "OrderedDict[str, Deque[str]]" = OrderedDict()
        self._lock = threading.Lock()

    def add(self, user_id: str, prompt: str) -> None:
        with self._lock:
            prompts = self._prompts.get(user_id)
            if prompts is None:
                prompts = deque(maxlen=self.max_size)
                self._prompts[user_id] = prompts
            else:
                self._prompts.move_to_end(user_id)
            prompts.append(prompt)

            while len(self._prompts) > self.max_users:
                self._prompts.popitem(last=False)

    def recent(self, user_id: str) -> List[str]:
        """Prompts for a user, oldest first."""
        with self._lock:
            return list(self._prompts.get(user_id, ()))

    def clear(self, user_id: Optional[str] = None) -> None:
        with self._lock:
            if user_id is None:
                self._prompts.clear()
            else:
                self._prompts.pop(user_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._prompts)


def build_fallback_messages(prompt: str, context: List[str], lang: str) -> List[Message]:
    """
    Build the LLM conversation for an unmatched message.

    The system message carries the persona and the reply-language rule;
    the user's recent prompts are listed ahead of the current one.
    """
    lang = normalize_lang(lang)
    system = f"{PERSONA}\n\n{LANGUAGE_RULES[lang]}"

    user = ""
    if context:
        user += "User recent conversation prompts:\n- " + "\n- ".join(context) + "\n\n"
    user += f"User: {prompt}\nTravel Buddy:"

    return [
        Message(role="system", content=system),
        Message(role="user", content=user),
    ]


class ConversationHandler:
    """
    Answers chat messages from the intent rules or the LLM fallback.

    Example:
        handler = ConversationHandler(rule_set, config, llm=provider)
        reply = handler.respond("u-42", "je veux réserver un hôtel", "fr")
        # ChatReply(type="trigger", intent="book_hotel", ...)
    """

    def __init__(
        self,
        rule_set: RuleSet,
        config: Optional[Config] = None,
        llm: Optional[BaseLLMProvider] = None,
        history: Optional[PromptHistory] = None,
    ):
        """
        Initialize the handler.

        Args:
            rule_set: Loaded intent rules (shared, read-only)
            config: Application configuration
            llm: Fallback provider, or None to always use the canned apology
            history: Prompt store; a fresh in-memory one by default
        """
        self.config = config or Config()
        self.rule_set = rule_set
        self.llm = llm
        self.history = history if history is not None else PromptHistory(
            self.config.chat.history_size, self.config.chat.max_users
        )
        self.trigger_intents = frozenset(self.config.chat.trigger_intents)

    def respond(self, user_id: Optional[str], message: Optional[str], lang: Optional[str] = None) -> ChatReply:
        """
        Produce the reply for one chat message.

        Args:
            user_id: Identifier used to group prompt history. Without one
                the message is neither recorded nor given any context.
            message: Raw user message
            lang: Language hint ("en", "fr", "fr-FR", ...)

        Returns:
            ChatReply

        Raises:
            ChatError: If the message is empty
        """
        resolved = normalize_lang(lang or self.config.chat.default_lang)

        if not message or not str(message).strip():
            raise ChatError(MESSAGE_REQUIRED[resolved], lang=resolved)

        set_log_context(user_id=user_id, lang=resolved)
        try:
            if user_id:
                self.history.add(user_id, message)

            match = match_intent(self.rule_set, message, resolved)
            if match is not None:
                reply_type = REPLY_TRIGGER if match.intent in self.trigger_intents else REPLY_INTENT
                logger.info(f"Intent matched: {match.intent} ({reply_type})")
                return ChatReply(type=reply_type, text=match.response, intent=match.intent, lang=resolved)

            return self._fallback(user_id, message, resolved)
        finally:
            clear_log_context()

    def _fallback(self, user_id: Optional[str], message: str, lang: str) -> ChatReply:
        if self.llm is None:
            logger.info("No intent matched and no LLM configured")
            return ChatReply(type=REPLY_FALLBACK, text=AI_UNAVAILABLE[lang], lang=lang)

        context = self.history.recent(user_id) if user_id else []
        messages = build_fallback_messages(message, context, lang)

        try:
            response = self.llm.chat(messages)
        except LLMError as e:
            logger.error(f"LLM fallback failed: {e}")
            return ChatReply(type=REPLY_FALLBACK, text=AI_ERROR[lang], lang=lang)

        text = (response.content or "").strip()
        if not text:
            logger.warning("LLM fallback returned an empty reply")
            return ChatReply(type=REPLY_FALLBACK, text=AI_UNAVAILABLE[lang], lang=lang)

        logger.info(f"Answered by LLM fallback ({response.model})")
        return ChatReply(type=REPLY_LLM, text=text, lang=lang)
