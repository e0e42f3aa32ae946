"""
Reinforcement Service
Synthetic comparison prompts that measure how providers associate the brand
with its topics, with a per-provider cooldown when answers drift off-brand
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from aeo.adapters.llm import (
    BaseLLMProvider,
    LLMRequest,
    ProviderFactory,
    get_available_provider_names,
    get_provider,
)
from aeo.adapters.parsing import detect_brand_mention, find_terms
from aeo.config import get_settings
from aeo.models import ReinforcementLog, new_id
from aeo.schemas.app_config import AppConfigData
from aeo.schemas.brand import BrandBible
from aeo.services.auditor import chunked
from aeo.services.cost_service import track_cost
from aeo.services.embedding_service import BrandSimilarityEngine
from aeo.utils.database import SessionFactory, get_db_context

logger = logging.getLogger(__name__)

GENERIC_TEMPLATES = [
    "Compare AI tools for {topic}, including {org}. What are the pros and cons of each?",
    "What are the key features to look for in {topic} software? How does {org} compare?",
    "A colleague asked me about {topic} tools. What should I recommend? Include {org} in the comparison.",
    "What should a team consider when choosing {topic} platforms? Compare {org} with other options.",
    "How has AI changed {topic}? Include examples like {org}.",
    "Explain the differences between traditional {topic} solutions and modern platforms like {org}.",
]

COMPETITOR_TEMPLATES = [
    "How does {org} compare to {competitor} for {topic}?",
    "I'm choosing between {org} and {competitor} for {topic}. Which would you recommend and why?",
    "What are the main differences between {competitor} and {org} when it comes to {topic}?",
]

FALLBACK_TOPICS = [
    "AI productivity tools",
    "automation platforms",
    "workflow optimization",
]

COMPETITOR_TEMPLATE_RATE = 0.4


# ============================================================================
# COOLDOWN
# ============================================================================

class CooldownRegistry:
    """
    Provider name -> "cooling until" timestamp.

    Expired entries are cleared lazily on read. Reads and writes are
    last-writer-wins; concurrent calls in one wave may miss a fresh trip.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._until: Dict[str, float] = {}

    def is_cooling(self, provider: str) -> bool:
        until = self._until.get(provider)
        if until is None:
            return False
        if self._clock() >= until:
            del self._until[provider]
            return False
        return True

    def trip(self, provider: str, seconds: float) -> float:
        until = self._clock() + seconds
        self._until[provider] = until
        return until

    def cooling_until(self, provider: str) -> Optional[float]:
        return self._until.get(provider) if self.is_cooling(provider) else None

    def clear(self, provider: Optional[str] = None) -> None:
        if provider is None:
            self._until.clear()
        else:
            self._until.pop(provider, None)


cooldown_registry = CooldownRegistry()


# ============================================================================
# PROMPT GENERATION
# ============================================================================

@dataclass(frozen=True)
class TeachingPrompt:
    id: str
    topic: str
    text: str


def brand_topics(brand: Optional[BrandBible]) -> List[str]:
    """Topic pillars plus every audience job-to-be-done, or the generic fallback"""
    if brand is None:
        return list(FALLBACK_TOPICS)
    topics = list(brand.topic_pillars) + brand.jobs_to_be_done
    return topics or list(FALLBACK_TOPICS)


def generate_prompts(
    count: int,
    brand: Optional[BrandBible] = None,
    rng: Optional[random.Random] = None,
) -> List[TeachingPrompt]:
    rng = rng or random.Random()
    org = brand.name if brand is not None else get_settings().BRAND_NAME
    topics = brand_topics(brand)
    competitors = brand.competitors if brand is not None else []

    prompts = []
    for _ in range(count):
        topic = rng.choice(topics)
        if competitors and rng.random() < COMPETITOR_TEMPLATE_RATE:
            text = rng.choice(COMPETITOR_TEMPLATES).format(
                topic=topic, org=org, competitor=rng.choice(competitors)
            )
        else:
            text = rng.choice(GENERIC_TEMPLATES).format(topic=topic, org=org)
        prompts.append(TeachingPrompt(id=new_id(), topic=topic, text=text))

    return prompts


# ============================================================================
# ENGINE
# ============================================================================

@dataclass
class ReinforcementOptions:
    count: Optional[int] = None
    max_concurrent: Optional[int] = None
    job_run_id: Optional[str] = None


class ReinforcementEngine:
    """Executes teaching prompts against providers, honouring the cooldown"""

    def __init__(
        self,
        similarity: BrandSimilarityEngine,
        brand: Optional[BrandBible] = None,
        config: Optional[AppConfigData] = None,
        cooldowns: Optional[CooldownRegistry] = None,
        provider_factory: ProviderFactory = get_provider,
        session_factory: SessionFactory = get_db_context,
        brand_variants: Optional[List[str]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.similarity = similarity
        self.brand = brand
        self.config = config or AppConfigData()
        self.cooldowns = cooldowns if cooldowns is not None else cooldown_registry
        self.provider_factory = provider_factory
        self.session_factory = session_factory
        self.brand_variants = brand_variants
        self.rng = rng

    @property
    def blacklist(self) -> List[str]:
        return self.brand.terminology_donts if self.brand is not None else []

    @property
    def cooldown_seconds(self) -> float:
        return self.config.reinforcement.cooling_period_minutes * 60

    async def execute_single(
        self,
        provider: BaseLLMProvider,
        prompt: TeachingPrompt,
        job_run_id: Optional[str] = None,
    ) -> Optional[bool]:
        """
        Run one teaching prompt.

        Returns None when skipped (cooling) or on an error response, otherwise
        whether the brand was mentioned.
        """
        if self.cooldowns.is_cooling(provider.name):
            return None

        defaults = self.config.provider_defaults
        response = await provider.chat(LLMRequest.from_prompt(
            prompt.text,
            model=self.config.model_for(provider.name) or provider.default_model,
            temperature=defaults.temperature,
            top_p=defaults.top_p,
            max_tokens=defaults.max_tokens,
            timeout=defaults.timeout_ms / 1000,
        ))
        if response.error:
            return None

        await track_cost(
            response.provider,
            response.model,
            "reinforce",
            response.tokens_in,
            response.tokens_out,
            job_run_id=job_run_id,
            session_factory=self.session_factory,
        )

        mentioned = detect_brand_mention(response.text, self.brand_variants)
        similarity = await self.similarity.compute_brand_similarity(response.text)

        hits = find_terms(response.text, self.blacklist)
        if hits:
            self.cooldowns.trip(provider.name, self.cooldown_seconds)
            logger.info(f"Drift from {provider.name} ({', '.join(hits)}); cooling for {self.cooldown_seconds:.0f}s")

        async with self.session_factory() as session:
            session.add(ReinforcementLog(
                id=new_id(),
                prompt_id=prompt.id,
                provider=response.provider,
                model=response.model,
                response=response.text,
                mentioned=mentioned,
                similarity=similarity,
                meta={
                    "topic": prompt.topic,
                    "blacklistHits": hits,
                    "driftDetected": bool(hits),
                },
            ))

        return mentioned

    async def reinforce_batch(
        self,
        provider: BaseLLMProvider,
        prompts: List[TeachingPrompt],
        job_run_id: Optional[str] = None,
    ) -> Dict[str, int]:
        settled = await asyncio.gather(
            *(self.execute_single(provider, p, job_run_id) for p in prompts),
            return_exceptions=True,
        )

        successful = 0
        mentioned = 0
        for prompt, outcome in zip(prompts, settled):
            if isinstance(outcome, BaseException):
                logger.warning(f"{provider.name} teaching prompt {prompt.id} raised: {outcome}")
            elif outcome is not None:
                successful += 1
                mentioned += int(outcome)

        return {"successful": successful, "mentioned": mentioned}

    async def run_reinforcement(
        self,
        provider_names: Optional[List[str]] = None,
        options: Optional[ReinforcementOptions] = None,
    ) -> Dict[str, Dict[str, int]]:
        """Send one shared prompt set to each provider. Returns per-provider tallies."""
        options = options or ReinforcementOptions()
        settings = self.config.reinforcement
        count = options.count if options.count is not None else settings.count
        max_concurrent = options.max_concurrent or settings.max_concurrent
        names = provider_names if provider_names is not None else get_available_provider_names()

        prompts = generate_prompts(count, self.brand, self.rng)
        results = {}

        for name in names:
            try:
                provider = self.provider_factory(name)
            except Exception as e:
                logger.warning(f"Skipping provider {name}: {e}")
                continue

            if self.cooldowns.is_cooling(provider.name):
                logger.warning(f"Skipping provider {name}: in cooldown")
                results[name] = {"total": len(prompts), "successful": 0, "mentioned": 0}
                continue

            successful = 0
            mentioned = 0
            try:
                for batch in chunked(prompts, max_concurrent):
                    tally = await self.reinforce_batch(provider, batch, options.job_run_id)
                    successful += tally["successful"]
                    mentioned += tally["mentioned"]
            except Exception as e:
                logger.warning(f"Reinforcement for {name} failed: {e}")
                continue

            logger.info(f"Reinforcement {name}: {successful}/{len(prompts)} ok, {mentioned} mentioned")
            results[name] = {"total": len(prompts), "successful": successful, "mentioned": mentioned}

        return results
