"""
Google (Gemini) Provider
Text-completion style API: roles are folded into a single prompt
"""

import re
import time
from typing import List

from .base import (
    APIError,
    BaseLLMProvider,
    LLMMessage,
    LLMRequest,
    LLMResponse,
    RateLimitError,
    estimate_tokens,
)

QUOTA_PATTERN = re.compile(r"quota|rate.?limit|resource_exhausted", re.IGNORECASE)

ROLE_PREFIXES = {
    "system": "Instructions",
    "user": "User",
    "assistant": "Assistant",
}


class GeminiProvider(BaseLLMProvider):
    """Client for the Gemini generateContent API"""

    name = "gemini"
    API_BASE = "https://generativelanguage.googleapis.com/v1beta"

    @staticmethod
    def fold_messages(messages: List[LLMMessage]) -> str:
        """Render role-tagged messages as one prompt; system text becomes 'Instructions: ...'"""
        parts = []
        for msg in messages:
            prefix = ROLE_PREFIXES.get(msg.role)
            if prefix:
                parts.append(f"{prefix}: {msg.content}")
        return "\n\n".join(parts)

    async def _do_chat(self, request: LLMRequest, model: str) -> LLMResponse:
        start = time.perf_counter()
        prompt = self.fold_messages(request.messages)
        sampling = self._sampling(request)

        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": sampling["temperature"],
                "topP": sampling["top_p"],
                "maxOutputTokens": sampling["max_tokens"],
            },
        }

        async with self._client(request) as client:
            response = await client.post(
                f"{self.API_BASE}/models/{model}:generateContent",
                params={"key": self.api_key},
                json=payload,
                headers={"Content-Type": "application/json"},
            )

        if response.status_code != 200 and QUOTA_PATTERN.search(response.text):
            raise RateLimitError(f"Quota exceeded: {response.status_code}", self.name,
                                 {"status_code": response.status_code})
        self._raise_for_status(response)
        if response.status_code != 200:
            return self._error_response(
                model, f"API error {response.status_code}: {response.text}", start,
                http_status=response.status_code,
            )

        data = response.json()
        if "error" in data:
            message = data["error"].get("message", "Unknown error")
            if QUOTA_PATTERN.search(message):
                raise RateLimitError(message, self.name, {"error": data["error"]})
            if re.search(r"50[0-3]", message):
                raise APIError(message, self.name, {"error": data["error"]})
            return self._error_response(model, message, start, http_status=500)

        text = ""
        candidates = data.get("candidates") or []
        if candidates:
            for part in (candidates[0].get("content") or {}).get("parts", []):
                text += part.get("text", "")

        usage = data.get("usageMetadata") or {}

        return LLMResponse(
            provider=self.name,
            model=model,
            text=text,
            tokens_in=usage.get("promptTokenCount", estimate_tokens(prompt)),
            tokens_out=usage.get("candidatesTokenCount", estimate_tokens(text)),
            http_status=response.status_code,
            latency_ms=self._latency(start),
            raw_response=data,
        )
