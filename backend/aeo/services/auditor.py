"""
Audit Service
Fans intent prompts out to LLM providers in bounded batches and records
whether, where and how closely each answer mentions the brand
"""

import asyncio
import logging
import math
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, update

from aeo.adapters.llm import (
    BaseLLMProvider,
    LLMRequest,
    LLMResponse,
    ProviderFactory,
    get_available_provider_names,
    get_provider,
)
from aeo.adapters.parsing import detect_brand_mention, extract_mention_rank
from aeo.models import AuditResult, AuditRun, IntentTaxonomy, new_id
from aeo.schemas.app_config import AppConfigData
from aeo.services.cost_service import track_cost
from aeo.services.embedding_service import BrandSimilarityEngine
from aeo.utils.database import SessionFactory, get_db_context

logger = logging.getLogger(__name__)


@dataclass
class AuditOptions:
    intent_filter: Optional[str] = None
    sample: Optional[float] = None  # fraction in (0, 1); anything else keeps every intent
    limit: Optional[int] = None
    model_override: Optional[str] = None
    max_concurrent: int = 5
    job_run_id: Optional[str] = None


@dataclass(frozen=True)
class AuditPrompt:
    id: str
    text: str
    intent_class: str


def select_intents(
    intents: Iterable[AuditPrompt],
    options: AuditOptions,
    rng: Optional[random.Random] = None,
) -> List[AuditPrompt]:
    """Filter, sample and cap the intent list. Sampling is seeded only through ``rng``."""
    prompts = list(intents)

    if options.intent_filter:
        needle = options.intent_filter.lower()
        prompts = [
            p for p in prompts
            if needle in p.intent_class.lower() or needle in p.text.lower()
        ]

    if options.sample is not None and 0 < options.sample < 1:
        k = math.floor(len(prompts) * options.sample)
        (rng or random.Random()).shuffle(prompts)
        prompts = prompts[:k]

    if options.limit is not None:
        prompts = prompts[:options.limit]

    return prompts


async def load_intents(
    options: Optional[AuditOptions] = None,
    session_factory: SessionFactory = get_db_context,
    rng: Optional[random.Random] = None,
) -> List[AuditPrompt]:
    async with session_factory() as session:
        result = await session.execute(select(IntentTaxonomy))
        rows = result.scalars().all()

    intents = [AuditPrompt(id=row.id, text=row.text, intent_class=row.intent_class) for row in rows]
    return select_intents(intents, options or AuditOptions(), rng)


def chunked(items: List, size: int) -> List[List]:
    size = max(1, size)
    return [items[i:i + size] for i in range(0, len(items), size)]


class Auditor:
    """
    Runs the intent taxonomy against providers.

    Per-prompt failures (error responses or exceptions) are tallied and never
    abort sibling prompts. When auditing several providers, a provider whose
    whole run raises is skipped and the rest continue.
    """

    def __init__(
        self,
        similarity: BrandSimilarityEngine,
        config: Optional[AppConfigData] = None,
        provider_factory: ProviderFactory = get_provider,
        session_factory: SessionFactory = get_db_context,
        brand_variants: Optional[List[str]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.similarity = similarity
        self.config = config or AppConfigData()
        self.provider_factory = provider_factory
        self.session_factory = session_factory
        self.brand_variants = brand_variants
        self.rng = rng

    def _build_request(self, prompt: AuditPrompt, model: str) -> LLMRequest:
        defaults = self.config.provider_defaults
        return LLMRequest.from_prompt(
            prompt.text,
            model=model,
            temperature=defaults.temperature,
            top_p=defaults.top_p,
            max_tokens=defaults.max_tokens,
            timeout=defaults.timeout_ms / 1000,
        )

    async def audit_single_prompt(
        self,
        provider: BaseLLMProvider,
        prompt: AuditPrompt,
        run_id: str,
        model: str,
        job_run_id: Optional[str] = None,
    ) -> bool:
        """Execute one prompt. Returns False, persisting nothing, on an error response."""
        response: LLMResponse = await provider.chat(self._build_request(prompt, model))

        if response.error:
            logger.debug(f"{provider.name} failed prompt {prompt.id}: {response.error}")
            return False

        await track_cost(
            response.provider,
            response.model,
            "audit",
            response.tokens_in,
            response.tokens_out,
            job_run_id=job_run_id,
            session_factory=self.session_factory,
        )

        mentioned = detect_brand_mention(response.text, self.brand_variants)
        mention_rank = extract_mention_rank(response.text, self.brand_variants) if mentioned else None
        similarity = await self.similarity.compute_brand_similarity(response.text)

        async with self.session_factory() as session:
            session.add(AuditResult(
                id=new_id(),
                run_id=run_id,
                prompt_id=prompt.id,
                provider=response.provider,
                response_text=response.text,
                mentioned=mentioned,
                mention_rank=mention_rank,
                similarity=similarity,
                meta={
                    "tokensIn": response.tokens_in,
                    "tokensOut": response.tokens_out,
                    "latencyMs": response.latency_ms,
                    "intent": prompt.intent_class,
                    "promptText": prompt.text,
                },
            ))

        return True

    async def audit_prompt_batch(
        self,
        provider: BaseLLMProvider,
        prompts: List[AuditPrompt],
        run_id: str,
        model: str,
        job_run_id: Optional[str] = None,
    ) -> Dict[str, int]:
        settled = await asyncio.gather(
            *(self.audit_single_prompt(provider, p, run_id, model, job_run_id) for p in prompts),
            return_exceptions=True,
        )

        successful = 0
        for prompt, outcome in zip(prompts, settled):
            if isinstance(outcome, BaseException):
                logger.warning(f"{provider.name} prompt {prompt.id} raised: {outcome}")
            elif outcome:
                successful += 1

        return {"successful": successful, "failed": len(prompts) - successful}

    async def run_audit_for_provider(
        self,
        provider_name: str,
        options: Optional[AuditOptions] = None,
    ) -> Dict[str, object]:
        """Audit every selected intent against one provider. Returns run id and tallies."""
        options = options or AuditOptions()
        provider = self.provider_factory(provider_name)
        model = options.model_override or self.config.model_for(provider.name) or provider.default_model
        prompts = await load_intents(options, self.session_factory, self.rng)

        run_id = new_id()
        async with self.session_factory() as session:
            session.add(AuditRun(
                id=run_id,
                provider=provider_name,
                model=model,
                total_prompts=len(prompts),
                started_at=datetime.utcnow(),
            ))

        successful = 0
        failed = 0
        for batch in chunked(prompts, options.max_concurrent):
            tally = await self.audit_prompt_batch(provider, batch, run_id, model, options.job_run_id)
            successful += tally["successful"]
            failed += tally["failed"]

        async with self.session_factory() as session:
            await session.execute(
                update(AuditRun)
                .where(AuditRun.id == run_id)
                .values(completed_at=datetime.utcnow(), successful=successful, failed=failed)
            )

        logger.info(f"Audit {provider_name}: {successful} ok, {failed} failed of {len(prompts)}")
        return {"run_id": run_id, "successful": successful, "failed": failed}

    async def run_audit(
        self,
        provider_names: Optional[List[str]] = None,
        options: Optional[AuditOptions] = None,
    ) -> Dict[str, Dict[str, object]]:
        """Audit several providers in turn, skipping any whose run fails outright"""
        names = provider_names if provider_names is not None else get_available_provider_names()
        results = {}

        for name in names:
            try:
                results[name] = await self.run_audit_for_provider(name, options)
            except Exception as e:
                logger.warning(f"Skipping provider {name}: {e}")

        return results
