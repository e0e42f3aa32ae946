"""
OpenAI (ChatGPT) Provider
"""

import time
from typing import Any, Dict

from .base import BaseLLMProvider, LLMRequest, LLMResponse, estimate_tokens


class OpenAIProvider(BaseLLMProvider):
    """Client for the OpenAI Chat Completions API"""

    name = "openai"
    API_BASE = "https://api.openai.com/v1"

    def _payload(self, request: LLMRequest, model: str) -> Dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in request.messages],
            **self._sampling(request),
        }

    async def _do_chat(self, request: LLMRequest, model: str) -> LLMResponse:
        start = time.perf_counter()
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        async with self._client(request) as client:
            response = await client.post(
                f"{self.API_BASE}/chat/completions",
                json=self._payload(request, model),
                headers=headers,
            )

        self._raise_for_status(response)
        if response.status_code != 200:
            return self._error_response(
                model, f"API error {response.status_code}: {response.text}", start,
                http_status=response.status_code,
            )

        data = response.json()
        choices = data.get("choices") or [{}]
        text = (choices[0].get("message") or {}).get("content") or ""
        usage = data.get("usage") or {}
        prompt_text = " ".join(m.content for m in request.messages)

        return LLMResponse(
            provider=self.name,
            model=model,
            text=text,
            tokens_in=usage.get("prompt_tokens", estimate_tokens(prompt_text)),
            tokens_out=usage.get("completion_tokens", estimate_tokens(text)),
            http_status=response.status_code,
            latency_ms=self._latency(start),
            raw_response=data,
        )
