"""
Audit Analyzer
KPI summaries, per-provider daily trends and intent breakdowns over audit results
"""

from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select

from aeo.models import AuditResult
from aeo.utils.database import SessionFactory, get_db_context

SNIPPET_LENGTH = 150


@dataclass
class AnalyzerFilter:
    provider: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


# ============================================================================
# PURE AGGREGATION
# ============================================================================

def compute_kpis(rows: Sequence[Any]) -> Dict[str, Any]:
    total = len(rows)
    mentions = sum(1 for r in rows if r.mentioned)
    ranks = [r.mention_rank for r in rows if r.mention_rank is not None]

    return {
        "total_prompts": total,
        "mention_rate": mentions / total if total else 0.0,
        "avg_similarity": sum(r.similarity for r in rows) / total if total else 0.0,
        "avg_mention_rank": sum(ranks) / len(ranks) if ranks else None,
    }


def compute_trends(rows: Sequence[Any], last_n: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    One point per (provider, day), sorted by provider then date.

    ``last_n`` keeps only each provider's most recent N days.
    """
    grouped: "OrderedDict[tuple, List[Any]]" = OrderedDict()
    for r in rows:
        key = (r.provider, r.created_at.date().isoformat())
        grouped.setdefault(key, []).append(r)

    trends = []
    for (provider, day), group in grouped.items():
        mentions = sum(1 for r in group if r.mentioned)
        trends.append({
            "provider": provider,
            "date": day,
            "total_prompts": len(group),
            "mentions": mentions,
            "mention_rate": mentions / len(group),
            "avg_similarity": round(sum(r.similarity for r in group) / len(group), 3),
        })
    trends.sort(key=lambda t: (t["provider"], t["date"]))

    if not last_n:
        return trends

    by_provider: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
    for t in trends:
        by_provider.setdefault(t["provider"], []).append(t)
    return [t for points in by_provider.values() for t in points[-last_n:]]


def compute_intent_breakdown(rows: Sequence[Any]) -> List[Dict[str, Any]]:
    return [
        {
            "provider": r.provider,
            "prompt_id": r.prompt_id,
            "mentioned": r.mentioned,
            "mention_rank": r.mention_rank,
            "similarity": r.similarity,
            "response_snippet": r.response_text[:SNIPPET_LENGTH],
            "meta": r.meta,
        }
        for r in rows
    ]


# ============================================================================
# QUERIES
# ============================================================================

def _filtered(stmt, filters: Optional[AnalyzerFilter]):
    if filters is None:
        return stmt
    if filters.provider:
        stmt = stmt.where(AuditResult.provider == filters.provider)
    if filters.start_date:
        stmt = stmt.where(AuditResult.created_at >= filters.start_date)
    if filters.end_date:
        stmt = stmt.where(AuditResult.created_at <= filters.end_date)
    return stmt


async def _fetch(stmt, session_factory: SessionFactory) -> List[AuditResult]:
    async with session_factory() as session:
        result = await session.execute(stmt)
        return list(result.scalars().all())


async def get_kpis(
    filters: Optional[AnalyzerFilter] = None,
    session_factory: SessionFactory = get_db_context,
) -> Dict[str, Any]:
    rows = await _fetch(_filtered(select(AuditResult), filters), session_factory)
    return compute_kpis(rows)


async def get_trends(
    filters: Optional[AnalyzerFilter] = None,
    last_n: Optional[int] = None,
    session_factory: SessionFactory = get_db_context,
) -> List[Dict[str, Any]]:
    stmt = _filtered(select(AuditResult), filters).order_by(AuditResult.created_at.asc()).limit(1000)
    return compute_trends(await _fetch(stmt, session_factory), last_n)


async def get_intent_breakdown(
    filters: Optional[AnalyzerFilter] = None,
    limit: int = 50,
    session_factory: SessionFactory = get_db_context,
) -> List[Dict[str, Any]]:
    stmt = _filtered(select(AuditResult), filters).order_by(AuditResult.created_at.desc()).limit(limit)
    return compute_intent_breakdown(await _fetch(stmt, session_factory))
