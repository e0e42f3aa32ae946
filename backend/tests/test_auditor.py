"""
Tests for the audit fan-out.
"""

import random
from unittest.mock import AsyncMock

import pytest

from aeo.adapters.llm import LLMResponse
from aeo.models import ApiCost, AuditResult, AuditRun, IntentTaxonomy
from aeo.services.auditor import AuditOptions, AuditPrompt, Auditor, chunked, select_intents
from aeo.services.config_service import merge_config

from conftest import reply_with

RANKED = "Top tools:\n1. Clio\n2. Matey AI\n3. LegalZoom"


def intents(n):
    return [AuditPrompt(id=f"i{i}", text=f"Question {i}?", intent_class="comparison") for i in range(n)]


def seed_intents(fake_db, n=3):
    fake_db.seed(*[
        IntentTaxonomy(id=f"i{i}", text=f"Which discovery tool is best, option {i}?", intent_class="comparison")
        for i in range(n)
    ])


def auditor_for(fake_db, similarity, providers, **kwargs):
    return Auditor(
        similarity,
        provider_factory=lambda name: providers[name],
        session_factory=fake_db.session_factory,
        rng=random.Random(7),
        **kwargs,
    )


class TestSelectIntents:

    def test_filter_matches_class_or_text(self):
        items = [
            AuditPrompt("a", "Best tools for Discovery?", "comparison"),
            AuditPrompt("b", "Pricing?", "transactional"),
            AuditPrompt("c", "How to start?", "Informational"),
        ]
        assert [p.id for p in select_intents(items, AuditOptions(intent_filter="discovery"))] == ["a"]
        assert [p.id for p in select_intents(items, AuditOptions(intent_filter="INFORMATIONAL"))] == ["c"]

    def test_sample_floors_and_is_seeded(self):
        first = select_intents(intents(10), AuditOptions(sample=0.35), random.Random(42))
        second = select_intents(intents(10), AuditOptions(sample=0.35), random.Random(42))

        assert len(first) == 3
        assert first == second

    def test_sample_outside_open_interval_keeps_all(self):
        assert len(select_intents(intents(4), AuditOptions(sample=1.0))) == 4
        assert len(select_intents(intents(4), AuditOptions(sample=0))) == 4

    def test_limit_applied_last(self):
        assert [p.id for p in select_intents(intents(5), AuditOptions(limit=2))] == ["i0", "i1"]
        assert select_intents(intents(5), AuditOptions(limit=0)) == []

    def test_chunked(self):
        assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
        assert chunked([], 3) == []


class TestRunAuditForProvider:

    @pytest.mark.asyncio
    async def test_records_run_results_and_costs(self, fake_db, make_provider, similarity):
        seed_intents(fake_db, 3)
        provider = make_provider("openai", reply_with(RANKED))
        auditor = auditor_for(fake_db, similarity, {"openai": provider})

        summary = await auditor.run_audit_for_provider("openai", AuditOptions(job_run_id="job-1"))

        assert summary["successful"] == 3
        assert summary["failed"] == 0

        run = fake_db.of_type(AuditRun)[0]
        assert run.id == summary["run_id"]
        assert run.model == "gpt-4o"
        assert run.total_prompts == 3

        results = fake_db.of_type(AuditResult)
        assert len(results) == 3
        for result in results:
            assert result.run_id == run.id
            assert result.mentioned is True
            assert result.mention_rank == 2
            assert result.similarity == 0.75
            assert set(result.meta) == {"tokensIn", "tokensOut", "latencyMs", "intent", "promptText"}
            assert result.meta["intent"] == "comparison"

        costs = fake_db.of_type(ApiCost)
        assert len(costs) == 3
        assert {c.operation for c in costs} == {"audit"}
        assert {c.job_run_id for c in costs} == {"job-1"}

        update = fake_db.updates(AuditRun)[0]
        assert (update["successful"], update["failed"]) == (3, 0)
        assert update["completed_at"] is not None

    @pytest.mark.asyncio
    async def test_rank_only_when_mentioned(self, fake_db, make_provider, similarity):
        seed_intents(fake_db, 1)
        provider = make_provider("openai", reply_with("1. Clio\n2. LegalZoom"))
        auditor = auditor_for(fake_db, similarity, {"openai": provider})

        await auditor.run_audit_for_provider("openai")

        result = fake_db.of_type(AuditResult)[0]
        assert result.mentioned is False
        assert result.mention_rank is None

    @pytest.mark.asyncio
    async def test_model_override_and_request_defaults(self, fake_db, make_provider, similarity):
        seed_intents(fake_db, 1)
        provider = make_provider("openai", reply_with("Matey AI"))
        auditor = auditor_for(fake_db, similarity, {"openai": provider})

        await auditor.run_audit_for_provider("openai", AuditOptions(model_override="gpt-4o-mini"))

        request = provider.requests[0]
        assert request.model == "gpt-4o-mini"
        assert request.temperature == 0.2
        assert request.max_tokens == 800
        assert request.timeout == 45.0
        assert fake_db.of_type(AuditRun)[0].model == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_default_model_follows_settings(self, fake_db, make_provider, similarity, set_env):
        set_env(OPENAI_DEFAULT_MODEL="gpt-4o-mini")
        seed_intents(fake_db, 1)
        provider = make_provider("openai", reply_with("Matey AI"))
        auditor = auditor_for(fake_db, similarity, {"openai": provider})

        await auditor.run_audit_for_provider("openai")

        assert provider.requests[0].model == "gpt-4o-mini"
        assert fake_db.of_type(AuditRun)[0].model == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_stored_model_override_wins(self, fake_db, make_provider, similarity, set_env):
        set_env(OPENAI_DEFAULT_MODEL="gpt-4o-mini")
        seed_intents(fake_db, 1)
        provider = make_provider("openai", reply_with("Matey AI"))
        config = merge_config({"auditor": {"models": {"openai": "gpt-4.1"}}})
        auditor = auditor_for(fake_db, similarity, {"openai": provider}, config=config)

        await auditor.run_audit_for_provider("openai")

        assert provider.requests[0].model == "gpt-4.1"

    @pytest.mark.asyncio
    async def test_error_responses_count_as_failed(self, fake_db, make_provider, similarity):
        seed_intents(fake_db, 2)

        def fail(request, model):
            return LLMResponse(provider="", model=model, error="HTTP 400", http_status=400)

        provider = make_provider("openai", fail)
        auditor = auditor_for(fake_db, similarity, {"openai": provider})

        summary = await auditor.run_audit_for_provider("openai")

        assert (summary["successful"], summary["failed"]) == (0, 2)
        assert fake_db.of_type(AuditResult) == []
        assert fake_db.of_type(ApiCost) == []

    @pytest.mark.asyncio
    async def test_exception_isolated_to_its_prompt(self, fake_db, make_provider, similarity):
        seed_intents(fake_db, 3)

        def answer(request, model):
            return LLMResponse(provider="", model=model, text=request.messages[0].content, tokens_in=1, tokens_out=1)

        async def score(text):
            if "option 1" in text:
                raise RuntimeError("embedding service down")
            return 0.5

        similarity.compute_brand_similarity = AsyncMock(side_effect=score)
        provider = make_provider("openai", answer)
        auditor = auditor_for(fake_db, similarity, {"openai": provider})

        summary = await auditor.run_audit_for_provider("openai", AuditOptions(max_concurrent=3))

        assert (summary["successful"], summary["failed"]) == (2, 1)
        assert len(fake_db.of_type(AuditResult)) == 2

    @pytest.mark.asyncio
    async def test_batches_respect_max_concurrent(self, fake_db, make_provider, similarity):
        seed_intents(fake_db, 5)
        provider = make_provider("openai", reply_with("Matey AI"))
        auditor = auditor_for(fake_db, similarity, {"openai": provider})

        summary = await auditor.run_audit_for_provider("openai", AuditOptions(max_concurrent=2))

        assert summary["successful"] == 5
        assert len(provider.requests) == 5


class TestRunAudit:

    @pytest.mark.asyncio
    async def test_failing_provider_is_skipped(self, fake_db, make_provider, similarity):
        seed_intents(fake_db, 2)
        providers = {"openai": make_provider("openai", reply_with("Matey AI"))}

        def factory(name):
            if name == "anthropic":
                raise RuntimeError("misconfigured")
            return providers[name]

        auditor = Auditor(similarity, provider_factory=factory, session_factory=fake_db.session_factory)

        results = await auditor.run_audit(["anthropic", "openai"])

        assert list(results) == ["openai"]
        assert results["openai"]["successful"] == 2

    @pytest.mark.asyncio
    async def test_defaults_to_configured_providers(self, fake_db, make_provider, similarity, set_env):
        set_env(GEMINI_API_KEY="g")
        seed_intents(fake_db, 1)
        providers = {"gemini": make_provider("gemini", reply_with("Matey AI"))}
        auditor = auditor_for(fake_db, similarity, providers)

        results = await auditor.run_audit()

        assert list(results) == ["gemini"]
        assert fake_db.of_type(AuditRun)[0].model == "gemini-1.5-pro"
