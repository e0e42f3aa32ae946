"""
Brand Bible Service
"""

import logging
from typing import Optional

from sqlalchemy import select

from aeo.models import BrandProfile
from aeo.schemas.brand import BrandBible, from_db_row
from aeo.services.embedding_service import BrandVectorCache, brand_vector_cache
from aeo.utils.database import SessionFactory, get_db_context

logger = logging.getLogger(__name__)

# Single-brand deployment: the profile always lives at this id
BRAND_PROFILE_ID = 1


async def load_brand_bible(session_factory: SessionFactory = get_db_context) -> Optional[BrandBible]:
    async with session_factory() as session:
        result = await session.execute(select(BrandProfile).order_by(BrandProfile.id).limit(1))
        row = result.scalars().first()
    return from_db_row(row) if row is not None else None


async def save_brand_bible(
    brand: BrandBible,
    raw_document: Optional[str] = None,
    session_factory: SessionFactory = get_db_context,
    cache: BrandVectorCache = brand_vector_cache,
) -> None:
    """Upsert the brand profile and drop the cached brand vector"""
    data = brand.model_dump(exclude={"id", "target_audiences"})
    for key, value in data.items():
        if isinstance(value, list):
            data[key] = [v for v in value if v]
    data["mission"] = brand.mission or None
    data["value_proposition"] = brand.value_proposition or None
    data["reading_level"] = brand.reading_level or None
    data["target_audiences"] = [
        {
            "name": a.name,
            "description": a.description,
            "painPoints": [v for v in a.pain_points if v],
            "goals": [v for v in a.goals if v],
            "jobsToBeDone": [v for v in a.jobs_to_be_done if v],
            "geos": [v for v in a.geos if v],
            "segments": [v for v in a.segments if v],
        }
        for a in brand.target_audiences
    ]
    if raw_document is not None:
        data["raw_document"] = raw_document

    async with session_factory() as session:
        await session.merge(BrandProfile(id=BRAND_PROFILE_ID, **data))

    cache.invalidate()
    logger.info(f"Saved brand profile for {brand.name}")
