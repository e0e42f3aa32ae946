"""
Job Pipelines
The three scheduled jobs (daily audit, reinforcement, weekly content build),
each recorded in the job-run ledger and reported to Slack
"""

import json
import logging
import random
import time
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy import select, update

from aeo.adapters.llm import ProviderFactory, get_available_provider_names, get_provider
from aeo.config import get_settings
from aeo.models import (
    ContentArtifact,
    ContentItem,
    ContentKind,
    IntentTaxonomy,
    JobRun,
    JobStatus,
    JobType,
    new_id,
)
from aeo.schemas.content import ContentPayload, GateResult
from aeo.services.analyzer import AnalyzerFilter, get_kpis
from aeo.services.auditor import AuditOptions, Auditor
from aeo.services.brand_service import load_brand_bible
from aeo.services.config_service import load_app_config
from aeo.services.content import (
    Post,
    build_blog_posting_schemas,
    build_faq_content,
    build_organization_schema,
    build_software_schema,
    run_content_gates,
)
from aeo.services.embedding_service import BrandSimilarityEngine, resolve_brand_description
from aeo.services.notifications import SlackNotifier
from aeo.services.reinforcement import CooldownRegistry, ReinforcementEngine, ReinforcementOptions
from aeo.utils.database import SessionFactory, get_db_context

logger = logging.getLogger(__name__)

AUDIT_BATCH_SIZE = 5
REINFORCEMENT_COUNT = 20
REINFORCEMENT_BATCH_SIZE = 2
FAQ_QUESTION_LIMIT = 20
POST_LIMIT = 100

JOB_NAMES = {
    JobType.AUDIT: "Daily Audit",
    JobType.REINFORCEMENT: "Reinforcement",
    JobType.CONTENT_BUILD: "Weekly Content Build",
}


class JobError(Exception):
    """Fatal precondition failure inside a job pipeline"""
    pass


# ============================================================================
# JOB-RUN LEDGER
# ============================================================================

async def create_job_run(
    job_type: JobType,
    triggered_by: str,
    status: JobStatus = JobStatus.QUEUED,
    session_factory: SessionFactory = get_db_context,
) -> str:
    job_run_id = new_id()
    async with session_factory() as session:
        session.add(JobRun(
            id=job_run_id,
            job_type=job_type.value,
            status=status.value,
            triggered_by=triggered_by,
            started_at=datetime.utcnow(),
        ))
    return job_run_id


async def _update_job_run(job_run_id: str, session_factory: SessionFactory, **values: Any) -> None:
    async with session_factory() as session:
        await session.execute(update(JobRun).where(JobRun.id == job_run_id).values(**values))


async def run_job(
    job_type: JobType,
    pipeline: Callable[[str], Awaitable[Dict[str, Any]]],
    job_run_id: Optional[str] = None,
    triggered_by: str = "scheduled",
    session_factory: SessionFactory = get_db_context,
    notifier: Optional[SlackNotifier] = None,
) -> Dict[str, Any]:
    """
    Run one pipeline inside the ledger.

    Reuses ``job_run_id`` when the run was queued by the API, otherwise
    creates one. Fatal errors mark the run failed, still notify, then re-raise.
    """
    notifier = notifier or SlackNotifier()
    job_name = JOB_NAMES[job_type]

    if job_run_id is None:
        job_run_id = await create_job_run(job_type, triggered_by, JobStatus.RUNNING, session_factory)
    else:
        await _update_job_run(
            job_run_id, session_factory, status=JobStatus.RUNNING.value, started_at=datetime.utcnow()
        )

    logger.info(f"{job_name} started (job run {job_run_id})")
    await notifier.notify_job_started(job_name)
    started = time.monotonic()

    try:
        summary = await pipeline(job_run_id)
    except Exception as e:
        duration = time.monotonic() - started
        logger.exception(f"{job_name} failed: {e}")
        await _update_job_run(
            job_run_id,
            session_factory,
            status=JobStatus.FAILED.value,
            completed_at=datetime.utcnow(),
            duration_seconds=duration,
            error_message=str(e) or type(e).__name__,
        )
        await notifier.notify_job_completed(job_name, False, duration, {"error": str(e)})
        raise

    duration = time.monotonic() - started
    await _update_job_run(
        job_run_id,
        session_factory,
        status=JobStatus.SUCCESS.value,
        completed_at=datetime.utcnow(),
        duration_seconds=duration,
    )
    await notifier.notify_job_completed(job_name, True, duration, summary)
    logger.info(f"{job_name} finished in {duration:.1f}s: {summary}")

    return {"job_run_id": job_run_id, "success": True, **summary}


def _require_providers() -> List[str]:
    names = get_available_provider_names()
    if not names:
        raise JobError("No LLM providers configured. Set at least one provider API key.")
    return names


# ============================================================================
# DAILY AUDIT
# ============================================================================

async def alert_low_mention_rates(
    provider_names: List[str],
    since: datetime,
    session_factory: SessionFactory,
    notifier: SlackNotifier,
) -> List[str]:
    """
    Alert for each provider whose mention rate since ``since`` is below
    MENTION_ALERT_THRESHOLD. The previous day's rate is included when known.
    """
    threshold = get_settings().MENTION_ALERT_THRESHOLD
    if threshold is None:
        return []

    alerted = []
    for name in provider_names:
        current = await get_kpis(AnalyzerFilter(provider=name, start_date=since), session_factory)
        if not current["total_prompts"] or current["mention_rate"] >= threshold:
            continue

        previous = await get_kpis(
            AnalyzerFilter(provider=name, start_date=since - timedelta(days=1), end_date=since),
            session_factory,
        )
        previous_rate = previous["mention_rate"] if previous["total_prompts"] else None

        logger.warning(f"Mention rate for {name} is {current['mention_rate']:.1%}, below {threshold:.1%}")
        await notifier.notify_mention_alert(name, current["mention_rate"], threshold, previous_rate)
        alerted.append(name)

    return alerted


async def run_daily_audit(
    job_run_id: Optional[str] = None,
    triggered_by: str = "scheduled",
    session_factory: SessionFactory = get_db_context,
    provider_factory: ProviderFactory = get_provider,
    similarity: Optional[BrandSimilarityEngine] = None,
    notifier: Optional[SlackNotifier] = None,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    notifier = notifier or SlackNotifier()

    async def pipeline(run_id: str) -> Dict[str, Any]:
        names = _require_providers()
        audit_started = datetime.utcnow()
        config = await load_app_config(session_factory)
        brand = await load_brand_bible(session_factory)

        auditor = Auditor(
            similarity=similarity or BrandSimilarityEngine(description=resolve_brand_description(brand)),
            config=config,
            provider_factory=provider_factory,
            session_factory=session_factory,
            rng=rng,
        )
        results = await auditor.run_audit(names, AuditOptions(
            sample=config.auditor.default_sample,
            max_concurrent=AUDIT_BATCH_SIZE,
            job_run_id=run_id,
        ))

        alerted = await alert_low_mention_rates(list(results), audit_started, session_factory, notifier)

        return {
            "providers": len(results),
            "successful": sum(r["successful"] for r in results.values()),
            "failed": sum(r["failed"] for r in results.values()),
            "mention_alerts": len(alerted),
        }

    return await run_job(JobType.AUDIT, pipeline, job_run_id, triggered_by, session_factory, notifier)


# ============================================================================
# REINFORCEMENT
# ============================================================================

async def run_reinforcement_job(
    job_run_id: Optional[str] = None,
    triggered_by: str = "scheduled",
    session_factory: SessionFactory = get_db_context,
    provider_factory: ProviderFactory = get_provider,
    similarity: Optional[BrandSimilarityEngine] = None,
    cooldowns: Optional[CooldownRegistry] = None,
    notifier: Optional[SlackNotifier] = None,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    async def pipeline(run_id: str) -> Dict[str, Any]:
        names = _require_providers()
        config = await load_app_config(session_factory)
        brand = await load_brand_bible(session_factory)

        engine = ReinforcementEngine(
            similarity=similarity or BrandSimilarityEngine(description=resolve_brand_description(brand)),
            brand=brand,
            config=config,
            cooldowns=cooldowns,
            provider_factory=provider_factory,
            session_factory=session_factory,
            rng=rng,
        )
        results = await engine.run_reinforcement(names, ReinforcementOptions(
            count=REINFORCEMENT_COUNT,
            max_concurrent=REINFORCEMENT_BATCH_SIZE,
            job_run_id=run_id,
        ))

        return {
            "providers": len(results),
            "total": sum(r["total"] for r in results.values()),
            "successful": sum(r["successful"] for r in results.values()),
            "mentioned": sum(r["mentioned"] for r in results.values()),
        }

    return await run_job(JobType.REINFORCEMENT, pipeline, job_run_id, triggered_by, session_factory, notifier)


# ============================================================================
# WEEKLY CONTENT BUILD
# ============================================================================

async def _store_artifact(
    kind: ContentKind,
    path: str,
    content: str,
    gate: Optional[GateResult],
    session_factory: SessionFactory,
) -> None:
    async with session_factory() as session:
        session.add(ContentArtifact(
            id=new_id(),
            kind=kind.value,
            path=path,
            content=content,
            gate_passed=gate.ok if gate is not None else None,
            gate_report=gate.report.model_dump() if gate is not None else {},
        ))


async def run_weekly_content_build(
    job_run_id: Optional[str] = None,
    triggered_by: str = "scheduled",
    session_factory: SessionFactory = get_db_context,
    similarity: Optional[BrandSimilarityEngine] = None,
    notifier: Optional[SlackNotifier] = None,
) -> Dict[str, Any]:
    async def pipeline(run_id: str) -> Dict[str, Any]:
        brand = await load_brand_bible(session_factory)
        if brand is None:
            raise JobError("BrandProfile not found")

        config = await load_app_config(session_factory)
        gate_config = config.content_gates.model_copy(
            update={"forbidden_phrases": config.content_gates.forbidden_phrases + brand.terminology_donts}
        )

        async with session_factory() as session:
            intents = (await session.execute(select(IntentTaxonomy).limit(FAQ_QUESTION_LIMIT))).scalars().all()
            posts = (await session.execute(
                select(ContentItem).order_by(ContentItem.created_at.desc()).limit(POST_LIMIT)
            )).scalars().all()

        async def gate(kind: ContentKind, artifact: Dict[str, Any], text: str) -> GateResult:
            return await run_content_gates(
                ContentPayload(artifact=artifact, text=text, kind=kind.value),
                gate_config,
                similarity=similarity,
            )

        org_schema = build_organization_schema(brand, [p.title for p in posts])
        org_text = json.dumps(org_schema, indent=2)
        org_gate = await gate(ContentKind.ORGANIZATION_LD, org_schema, org_text)
        await _store_artifact(ContentKind.ORGANIZATION_LD, "/schema/organization.json", org_text, org_gate, session_factory)

        software_schema = build_software_schema(brand)
        software_text = json.dumps(software_schema, indent=2)
        software_gate = await gate(ContentKind.SOFTWARE_LD, software_schema, software_text)
        await _store_artifact(ContentKind.SOFTWARE_LD, "/schema/software.json", software_text, software_gate, session_factory)

        faq_schema, faq_markdown = build_faq_content(
            brand,
            [i.text for i in intents],
            [Post(title=p.title, content=p.content) for p in posts],
        )
        faq_gate = await gate(ContentKind.FAQ_PAGE, faq_schema, faq_markdown)
        await _store_artifact(ContentKind.FAQ_PAGE, "/schema/faq.json", json.dumps(faq_schema, indent=2), faq_gate, session_factory)
        await _store_artifact(ContentKind.FAQ_MARKDOWN, "/content/faq.md", faq_markdown, None, session_factory)

        blog_passed = 0
        for post, schema in zip(posts, build_blog_posting_schemas(posts, brand)):
            text = json.dumps(schema, indent=2)
            blog_gate = await gate(ContentKind.BLOG_POSTING, schema, text)
            blog_passed += int(blog_gate.ok)
            await _store_artifact(ContentKind.BLOG_POSTING, f"/schema/blog/{post.id}.json", text, blog_gate, session_factory)

        return {
            "organization": "pass" if org_gate.ok else "fail",
            "software": "pass" if software_gate.ok else "fail",
            "faq": "pass" if faq_gate.ok else "fail",
            "blog_postings": f"{blog_passed}/{len(posts)} pass",
        }

    return await run_job(JobType.CONTENT_BUILD, pipeline, job_run_id, triggered_by, session_factory, notifier)


JOB_PIPELINES = {
    JobType.AUDIT: run_daily_audit,
    JobType.REINFORCEMENT: run_reinforcement_job,
    JobType.CONTENT_BUILD: run_weekly_content_build,
}
