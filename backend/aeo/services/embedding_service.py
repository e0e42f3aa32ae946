"""
Brand Similarity Service
Text embeddings, cosine similarity and the cached brand vector
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

import httpx
import numpy as np

from aeo.config import DEFAULT_BRAND_DESCRIPTION, get_settings
from aeo.schemas.brand import BrandBible

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """Embedding endpoint failed or returned a malformed body"""
    pass


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity in [-1, 1].

    Returns exactly 0 when either vector has zero magnitude; that value marks
    a degenerate input, not a neutral score.
    """
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")

    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.clip(np.dot(va, vb) / (norm_a * norm_b), -1.0, 1.0))


def resolve_brand_description(brand: Optional[BrandBible] = None) -> str:
    """BRAND_DESCRIPTION setting, else a short description from the brand, else the default"""
    configured = get_settings().BRAND_DESCRIPTION
    if configured:
        return configured
    if brand is not None:
        return brand.short_description()
    return DEFAULT_BRAND_DESCRIPTION


# ============================================================================
# EMBEDDING CLIENT
# ============================================================================

class EmbeddingClient:
    """OpenAI-compatible /embeddings client"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.model = model or settings.EMBEDDING_MODEL
        self.api_base = (api_base or settings.EMBEDDING_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.LLM_REQUEST_TIMEOUT
        self._transport = transport

    async def embed(self, text: str) -> List[float]:
        if not self.api_key:
            raise EmbeddingError("No API key configured for embeddings")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    f"{self.api_base}/embeddings",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={"model": self.model, "input": text},
                )
            except httpx.HTTPError as e:
                raise EmbeddingError(f"Embedding request failed: {e}") from e

        if response.status_code != 200:
            raise EmbeddingError(f"Embedding API error {response.status_code}: {response.text[:200]}")

        try:
            vector = response.json()["data"][0]["embedding"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise EmbeddingError("Malformed embedding response") from e

        return [float(x) for x in vector]


# ============================================================================
# BRAND VECTOR CACHE
# ============================================================================

class BrandVectorCache:
    """
    Process-lifetime cache for the brand embedding.

    Concurrent misses on one event loop share a single in-flight computation.
    ``invalidate`` bumps a generation counter so a computation that started
    before the invalidation is returned to its callers but never stored.
    """

    def __init__(self):
        self._vector: Optional[List[float]] = None
        self._generation = 0
        self._inflight: Optional[asyncio.Task] = None

    def get(self) -> Optional[List[float]]:
        return self._vector

    def set(self, vector: List[float]) -> None:
        self._vector = vector

    def invalidate(self) -> None:
        self._vector = None
        self._generation += 1
        self._inflight = None
        logger.info("Brand vector cache invalidated")

    async def get_or_compute(self, compute: Callable[[], Awaitable[List[float]]]) -> List[float]:
        if self._vector is not None:
            return self._vector

        loop = asyncio.get_running_loop()
        task = self._inflight
        # Celery runs every pipeline on its own loop; a task from a dead loop is unusable
        if task is None or task.get_loop() is not loop:
            task = loop.create_task(compute())
            self._inflight = task
            generation = self._generation

            def _store(done: asyncio.Task) -> None:
                if self._inflight is done:
                    self._inflight = None
                if not done.cancelled() and done.exception() is None and generation == self._generation:
                    self._vector = done.result()

            task.add_done_callback(_store)

        return await asyncio.shield(task)


brand_vector_cache = BrandVectorCache()


# ============================================================================
# SIMILARITY ENGINE
# ============================================================================

class BrandSimilarityEngine:
    """Embeds text and scores it against the cached brand vector"""

    def __init__(
        self,
        embedder: Optional[EmbeddingClient] = None,
        cache: Optional[BrandVectorCache] = None,
        description: Optional[str] = None,
    ):
        self.embedder = embedder or EmbeddingClient()
        self.cache = cache if cache is not None else brand_vector_cache
        self.description = description or resolve_brand_description()

    async def brand_vector(self) -> List[float]:
        return await self.cache.get_or_compute(lambda: self.embedder.embed(self.description))

    async def compute_brand_similarity(self, text: str) -> float:
        text_vector = await self.embedder.embed(text)
        return cosine_similarity(text_vector, await self.brand_vector())
