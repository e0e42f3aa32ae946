"""
Base LLM Provider Interface
All vendor clients implement this interface
"""

import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import httpx

from aeo.config import get_settings
from .rate_limit import (
    APIError,
    LLMProviderError,
    ProviderRateLimiter,
    RateLimitError,
    rate_limiter,
    with_rate_limit,
    with_retry,
)


class ProviderUnavailableError(LLMProviderError):
    """No API key configured for an explicitly requested provider"""
    pass


@dataclass(frozen=True)
class LLMMessage:
    """A message in the conversation"""
    role: str  # "system", "user", "assistant"
    content: str


@dataclass(frozen=True)
class LLMRequest:
    """Immutable chat request passed into a provider call"""
    messages: List[LLMMessage]
    model: Optional[str] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    timeout: Optional[float] = None  # seconds

    @classmethod
    def from_prompt(cls, prompt: str, **kwargs: Any) -> "LLMRequest":
        return cls(messages=[LLMMessage(role="user", content=prompt)], **kwargs)


@dataclass
class LLMResponse:
    """Standardized response across all providers.

    Exactly one of ``text`` and ``error`` is meaningful.
    """
    provider: str
    model: str
    text: str = ""
    tokens_in: int = 0
    tokens_out: int = 0
    http_status: int = 200
    latency_ms: float = 0.0
    error: Optional[str] = None
    raw_response: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_error(self) -> bool:
        return bool(self.error)


def estimate_tokens(text: str) -> int:
    """Fallback token estimate (words * 1.3) for vendors that omit usage.

    An approximation only; vendor-reported usage always wins.
    """
    return int(math.floor(len(text.split()) * 1.3 + 0.5))


class BaseLLMProvider(ABC):
    """
    Abstract base class for vendor clients.

    ``chat`` never raises for ordinary failures: HTTP errors, timeouts and
    empty completions come back as an error-populated LLMResponse. Only
    RateLimitError and APIError escape ``_do_chat``, and those are retried
    by ``chat`` (retry wraps rate limiting wraps the raw call, so every
    attempt re-acquires a concurrency slot).
    """

    name: str = ""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        limiter: Optional[ProviderRateLimiter] = None,
        max_attempts: Optional[int] = None,
        retry_min_wait: Optional[float] = None,
        retry_max_wait: Optional[float] = None,
    ):
        settings = get_settings()
        self.api_key = api_key
        self._model = model
        self._transport = transport
        self._limiter = limiter or rate_limiter
        self.max_attempts = max_attempts if max_attempts is not None else settings.LLM_MAX_RETRIES
        self.retry_min_wait = retry_min_wait if retry_min_wait is not None else settings.LLM_RETRY_MIN_WAIT
        self.retry_max_wait = retry_max_wait if retry_max_wait is not None else settings.LLM_RETRY_MAX_WAIT

    @property
    def default_model(self) -> str:
        return self._model or get_settings().provider_default_models[self.name]

    async def chat(self, request: LLMRequest) -> LLMResponse:
        """Execute a chat request with retry and per-provider rate limiting"""
        return await with_retry(
            lambda: with_rate_limit(self.name, lambda: self._safe_chat(request), self._limiter),
            max_attempts=self.max_attempts,
            min_wait=self.retry_min_wait,
            max_wait=self.retry_max_wait,
        )

    async def _safe_chat(self, request: LLMRequest) -> LLMResponse:
        model = request.model or self.default_model
        start = time.perf_counter()
        try:
            response = await self._do_chat(request, model)
        except (RateLimitError, APIError):
            raise
        except Exception as e:
            return self._error_response(model, str(e) or type(e).__name__, start, http_status=500)

        if not response.error and not response.text:
            response.error = "Empty completion"
        return response

    @abstractmethod
    async def _do_chat(self, request: LLMRequest, model: str) -> LLMResponse:
        """Call the vendor API and translate its response"""
        pass

    def _client(self, request: LLMRequest) -> httpx.AsyncClient:
        timeout = request.timeout if request.timeout is not None else get_settings().LLM_REQUEST_TIMEOUT
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    def _sampling(self, request: LLMRequest) -> Dict[str, Any]:
        settings = get_settings()
        return {
            "temperature": request.temperature if request.temperature is not None else settings.LLM_DEFAULT_TEMPERATURE,
            "top_p": request.top_p if request.top_p is not None else settings.LLM_DEFAULT_TOP_P,
            "max_tokens": request.max_tokens if request.max_tokens is not None else settings.LLM_DEFAULT_MAX_TOKENS,
        }

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Raise the retryable errors; other statuses are handled by the caller"""
        if response.status_code == 429:
            raise RateLimitError(
                f"Rate limit: {response.status_code}",
                self.name,
                {"status_code": response.status_code},
            )
        if response.status_code >= 500:
            raise APIError(
                f"Server error: {response.status_code}",
                self.name,
                {"status_code": response.status_code, "response": response.text},
            )

    def _error_response(
        self,
        model: str,
        message: str,
        start: float,
        http_status: int = 500,
    ) -> LLMResponse:
        return LLMResponse(
            provider=self.name,
            model=model,
            http_status=http_status,
            latency_ms=self._latency(start),
            error=message,
        )

    def _latency(self, start: float) -> float:
        """Milliseconds since ``start``"""
        return (time.perf_counter() - start) * 1000


ProviderFactory = Callable[[str], BaseLLMProvider]
