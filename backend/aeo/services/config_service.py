"""
Runtime Config Service
Overrides from the app_config table deep-merged over built-in defaults
"""

import logging
from typing import Any, Dict

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from aeo.models import AppConfigEntry
from aeo.schemas.app_config import AppConfigData
from aeo.utils.database import SessionFactory, get_db_context

logger = logging.getLogger(__name__)


def deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """Nested dicts merge recursively; every other override value replaces the default"""
    result = dict(target)
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def merge_config(overrides: Dict[str, Any]) -> AppConfigData:
    defaults = AppConfigData().model_dump(by_alias=True)
    return AppConfigData.model_validate(deep_merge(defaults, overrides))


async def load_app_config(session_factory: SessionFactory = get_db_context) -> AppConfigData:
    try:
        async with session_factory() as session:
            result = await session.execute(select(AppConfigEntry))
            overrides = {row.key: row.value for row in result.scalars().all()}
        return merge_config(overrides)
    except (SQLAlchemyError, OSError, ValidationError) as e:
        logger.warning(f"Falling back to default app config: {e}")
        return AppConfigData()
