"""
Perplexity Provider
OpenAI-compatible chat endpoint with web-grounded answers
"""

from typing import Any, Dict

from .base import LLMRequest
from .openai_adapter import OpenAIProvider


class PerplexityProvider(OpenAIProvider):
    """Client for the Perplexity chat completions API"""

    name = "perplexity"
    API_BASE = "https://api.perplexity.ai"

    def _payload(self, request: LLMRequest, model: str) -> Dict[str, Any]:
        payload = super()._payload(request, model)
        payload["return_related_questions"] = False
        return payload
