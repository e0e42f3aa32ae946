"""
Audit Analytics API Routes
KPI summary, per-provider daily trends and the intent breakdown
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aeo.services.analyzer import AnalyzerFilter, get_intent_breakdown, get_kpis, get_trends
from aeo.utils import get_db

router = APIRouter()


def analyzer_filter(
    provider: Optional[str] = Query(None, description="Restrict to one provider"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
) -> AnalyzerFilter:
    return AnalyzerFilter(provider=provider, start_date=start_date, end_date=end_date)


def _request_session(db: AsyncSession):
    """Session factory that hands the analyzer this request's session"""
    @asynccontextmanager
    async def factory():
        yield db
    return factory


@router.get("/kpis")
async def kpis(
    filters: AnalyzerFilter = Depends(analyzer_filter),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    return await get_kpis(filters, session_factory=_request_session(db))


@router.get("/trends")
async def trends(
    last_n: Optional[int] = Query(None, ge=1, description="Most recent N days per provider"),
    filters: AnalyzerFilter = Depends(analyzer_filter),
    db: AsyncSession = Depends(get_db),
) -> List[Dict[str, Any]]:
    return await get_trends(filters, last_n=last_n, session_factory=_request_session(db))


@router.get("/breakdown")
async def intent_breakdown(
    limit: int = Query(50, ge=1, le=500),
    filters: AnalyzerFilter = Depends(analyzer_filter),
    db: AsyncSession = Depends(get_db),
) -> List[Dict[str, Any]]:
    return await get_intent_breakdown(filters, limit=limit, session_factory=_request_session(db))
