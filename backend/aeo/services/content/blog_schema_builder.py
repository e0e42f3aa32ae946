"""
BlogPosting JSON-LD for ingested posts
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from aeo.schemas.brand import BrandBible
from aeo.services.content.faq_builder import leading_sentences
from aeo.services.content.schema_builder import SCHEMA_CONTEXT, brand_logo


def build_blog_posting_schema(
    title: str,
    content: str,
    created_at: datetime,
    brand: BrandBible,
    author: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "BlogPosting",
        "headline": title,
        "author": {
            "@type": "Person" if author else "Organization",
            "name": author or brand.name,
            "url": brand.url,
        },
        "publisher": {
            "@type": "Organization",
            "name": brand.name,
            "url": brand.url,
            "logo": {"@type": "ImageObject", "url": brand_logo(brand)},
        },
        "datePublished": created_at.date().isoformat(),
        "description": leading_sentences(content, 160),
        "mainEntityOfPage": {"@type": "WebPage", "@id": brand.url},
    }


def build_blog_posting_schemas(posts: Sequence[Any], brand: BrandBible) -> List[Dict[str, Any]]:
    """One schema per ContentItem-like row (title, content, author, created_at)"""
    return [
        build_blog_posting_schema(p.title, p.content, p.created_at, brand, p.author)
        for p in posts
    ]
