"""
Anthropic (Claude) Provider
"""

import time
from typing import Dict, List, Optional, Tuple

from .base import BaseLLMProvider, LLMMessage, LLMRequest, LLMResponse, estimate_tokens


class AnthropicProvider(BaseLLMProvider):
    """Client for the Anthropic Messages API"""

    name = "anthropic"
    API_BASE = "https://api.anthropic.com/v1"
    API_VERSION = "2023-06-01"

    @staticmethod
    def split_system(messages: List[LLMMessage]) -> Tuple[Optional[str], List[Dict[str, str]]]:
        """Pull the first system message out of band; keep user/assistant turns"""
        system = None
        converted = []
        for msg in messages:
            if msg.role == "system":
                if system is None:
                    system = msg.content
            elif msg.role in ("user", "assistant"):
                converted.append({"role": msg.role, "content": msg.content})
        return system, converted

    async def _do_chat(self, request: LLMRequest, model: str) -> LLMResponse:
        start = time.perf_counter()
        system, messages = self.split_system(request.messages)

        payload = {"model": model, "messages": messages, **self._sampling(request)}
        if system:
            payload["system"] = system

        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.API_VERSION,
            "Content-Type": "application/json",
        }

        async with self._client(request) as client:
            response = await client.post(
                f"{self.API_BASE}/messages",
                json=payload,
                headers=headers,
            )

        self._raise_for_status(response)
        if response.status_code != 200:
            return self._error_response(
                model, f"API error {response.status_code}: {response.text}", start,
                http_status=response.status_code,
            )

        data = response.json()
        text = ""
        for block in data.get("content", []):
            if block.get("type") == "text":
                text += block.get("text", "")

        usage = data.get("usage") or {}
        prompt_text = " ".join(m["content"] for m in messages)
        if system:
            prompt_text = f"{system} {prompt_text}"

        return LLMResponse(
            provider=self.name,
            model=model,
            text=text,
            tokens_in=usage.get("input_tokens", estimate_tokens(prompt_text)),
            tokens_out=usage.get("output_tokens", estimate_tokens(text)),
            http_status=response.status_code,
            latency_ms=self._latency(start),
            raw_response=data,
        )
