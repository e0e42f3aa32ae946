"""
Content Ingestion Webhook
Accepts posts pushed by external publishers
"""

import json
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from aeo.config import get_settings
from aeo.models import ContentItem, new_id
from aeo.schemas import ContentItemAccepted
from aeo.utils import get_db
from aeo.utils.security import verify_signature

router = APIRouter()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("", status_code=status.HTTP_202_ACCEPTED, response_model=ContentItemAccepted)
async def ingest_content(
    request: Request,
    x_webhook_signature: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
):
    """
    Ingest one post.

    A signature is optional; when present it must match the configured
    secret. Requires string ``title`` and ``text``; ``author`` and
    ``source_type`` (default "webhook") are optional.
    """
    raw_body = await request.body()

    if x_webhook_signature is not None:
        secret = get_settings().WEBHOOK_SECRET
        if not secret or not verify_signature(raw_body, x_webhook_signature, secret):
            return _error(status.HTTP_401_UNAUTHORIZED, "Invalid signature")

    try:
        body = json.loads(raw_body)
    except ValueError:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid JSON")
    if not isinstance(body, dict):
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid JSON")

    text = body.get("text")
    title = body.get("title")
    if not text or not isinstance(text, str):
        return _error(status.HTTP_400_BAD_REQUEST, "Missing required field: text")
    if not title or not isinstance(title, str):
        return _error(status.HTTP_400_BAD_REQUEST, "Missing required field: title")

    author = body.get("author")
    source_type = body.get("source_type")

    item = ContentItem(
        id=new_id(),
        title=title,
        content=text,
        author=author if isinstance(author, str) else None,
        source_type=source_type if isinstance(source_type, str) else "webhook",
        status="new",
    )
    db.add(item)
    await db.flush()

    return ContentItemAccepted(id=item.id)
