"""
xAI (Grok) Provider
"""

from .openai_adapter import OpenAIProvider


class GrokProvider(OpenAIProvider):
    """Client for the xAI chat completions API (OpenAI wire format)"""

    name = "grok"
    API_BASE = "https://api.x.ai/v1"
