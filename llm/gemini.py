"""
Gemini Provider - LLM provider for the Google Gemini API
========================================================

Calls the ``generateContent`` REST endpoint. Model names differ between
projects and API versions, so the provider walks the configured model
candidates until one answers.

Reference: https://ai.google.dev/api/generate-content
"""

import time
import json
import http.client
import urllib.request
import urllib.error
import urllib.parse
from typing import Optional, List, Dict, Any, Tuple

from .base import BaseLLMProvider, LLMResponse, Message
from core.config import LLMConfig
from core.exceptions import LLMError
from core.logging import get_logger

logger = get_logger("llm.gemini")


# Error text fragments meaning "this model does not exist here, try another"
MODEL_NOT_FOUND_HINTS = ("not found", "is not supported", "models/")


class GeminiProvider(BaseLLMProvider):
    """
    LLM provider implementation for Google Gemini.

    Example:
        provider = GeminiProvider(config.llm)
        reply = provider.chat([
            Message(role="system", content="You are Travel Buddy."),
            Message(role="user", content="Things to do in Grand Baie?"),
        ])
    """

    PROVIDER_NAME = "gemini"

    def __init__(self, config: LLMConfig):
        """
        Initialize Gemini provider.

        Raises:
            LLMError: If API key is not provided
        """
        super().__init__(config)

        if not config.api_key:
            raise LLMError(
                "Gemini API key is required",
                details={"hint": "Set GEMINI_API_KEY or TRAVEL_BUDDY_LLM_API_KEY"}
            )

        self.api_base = config.api_base.rstrip("/")
        self.api_key = config.api_key
        self.models = config.models_to_try()

        if not self.models:
            raise LLMError("No Gemini model configured")

        logger.info(
            "Initialized Gemini provider",
            extra={"models": self.models, "api_base": self.api_base}
        )

    def _build_url(self, model: str) -> str:
        query = urllib.parse.urlencode({"key": self.api_key})
        return f"{self.api_base}/models/{model}:generateContent?{query}"

    def _post_json(self, url: str, payload: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        """
        POST a JSON payload.

        Returns:
            (status code, decoded body). HTTP errors are returned, not raised.

        Raises:
            LLMError: On network failures or undecodable responses
        """
        body = json.dumps(payload).encode("utf-8")
        req = urllib.request.Request(
            url,
            data=body,
            headers={"Content-Type": "application/json"},
            method="POST"
        )

        try:
            with urllib.request.urlopen(req, timeout=self.config.timeout) as response:
                status, data = response.status, json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            try:
                error_body = e.read().decode("utf-8", errors="replace") if e.fp else ""
            except (OSError, http.client.HTTPException):
                error_body = ""
            try:
                status, data = e.code, json.loads(error_body)
            except json.JSONDecodeError:
                status, data = e.code, {"error": {"message": error_body or str(e)}}
        except urllib.error.URLError as e:
            raise LLMError(f"Network error calling Gemini: {e.reason}")
        except (OSError, http.client.HTTPException, ValueError) as e:
            # Resets, dropped connections, timeouts, truncated or undecodable bodies
            raise LLMError(f"Failed to call Gemini: {e}")

        if not isinstance(data, dict):
            raise LLMError(
                "Unexpected Gemini response body",
                details={"status": status, "type": type(data).__name__}
            )
        return status, data

    @staticmethod
    def _build_payload(messages: List[Message], params: Dict[str, Any]) -> Dict[str, Any]:
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        contents = [
            {
                "role": "model" if m.role == "assistant" else "user",
                "parts": [{"text": m.content}],
            }
            for m in messages
            if m.role != "system"
        ]

        payload: Dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": params["temperature"],
                "maxOutputTokens": params["max_tokens"],
            },
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        return payload

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> Tuple[str, str]:
        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return "", "empty"

        candidate = candidates[0]
        content = candidate.get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            parts = []
        text = "".join(
            part["text"] for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ).strip()
        finish_reason = str(candidate.get("finishReason", "STOP")).lower()
        return text, finish_reason

    @staticmethod
    def _error_message(status: int, data: Dict[str, Any]) -> str:
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        return f"HTTP {status}"

    @staticmethod
    def _is_model_not_found(status: int, message: str) -> bool:
        lowered = message.lower()
        return status == 404 or any(hint in lowered for hint in MODEL_NOT_FOUND_HINTS)

    def chat(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Generate a reply, trying each configured model in turn.

        Unknown models and empty replies move on to the next candidate.
        Any other API error (auth, quota, billing) stops immediately.

        Raises:
            LLMError: If no model produced a reply
        """
        start_time = time.time()
        params = self._get_generation_params(temperature, max_tokens, **kwargs)
        payload = self._build_payload(messages, params)
        last_error = "no model tried"

        for model in self.models:
            status, data = self._post_json(self._build_url(model), payload)

            if status >= 400:
                message = self._error_message(status, data)
                if self._is_model_not_found(status, message):
                    logger.warning(f"Gemini model not supported: {model}")
                    last_error = message
                    continue
                raise LLMError(
                    f"Gemini API error: {message}",
                    details={"status": status, "model": model}
                )

            text, finish_reason = self._extract_text(data)
            if not text:
                last_error = f"Empty response from model: {model}"
                logger.warning(last_error)
                continue

            usage = data.get("usageMetadata")
            if not isinstance(usage, dict):
                usage = {}
            return LLMResponse(
                content=text,
                model=model,
                provider=self.PROVIDER_NAME,
                tokens_used=usage.get("totalTokenCount", 0),
                latency_ms=self._measure_latency(start_time),
                finish_reason=finish_reason,
            )

        raise LLMError(
            "Gemini model fallback failed",
            details={"last_error": last_error, "models": self.models}
        )

    def is_available(self) -> bool:
        try:
            self.generate("Say 'ok'.", max_tokens=5)
            return True
        except LLMError:
            return False
