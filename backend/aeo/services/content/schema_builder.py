"""
JSON-LD Builders
Organization and SoftwareApplication schema from the Brand Bible
"""

import re
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence

from aeo.schemas.brand import BrandBible

SCHEMA_CONTEXT = "https://schema.org"


def brand_description(brand: BrandBible) -> str:
    return brand.value_proposition or brand.mission or f"{brand.name} - {brand.industry}"


def brand_logo(brand: BrandBible) -> str:
    return brand.logo_url or f"{brand.url}/logo.png"


def extract_topics_from_titles(titles: Sequence[str], max_topics: int = 15) -> List[str]:
    """Title words longer than three letters that recur in at least two titles"""
    counts: Counter = Counter()
    for title in titles:
        words = re.sub(r"[^\w\s-]", "", title).split()
        counts.update(w.capitalize() for w in words if len(w) > 3)

    return [topic for topic, n in counts.most_common() if n >= 2][:max_topics]


def build_organization_schema(
    brand: BrandBible,
    blog_titles: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    host = re.sub(r"^https?://", "", brand.url)
    primary_geo = brand.geo_focus[0] if brand.geo_focus else "US"

    pillars = list(brand.topic_pillars)
    seen = {p.lower() for p in pillars}
    knows_about = pillars + [
        t for t in extract_topics_from_titles(blog_titles or []) if t.lower() not in seen
    ]

    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "Organization",
        "name": brand.name,
        "url": brand.url,
        "description": brand_description(brand),
        "logo": brand_logo(brand),
        "contactPoint": {
            "@type": "ContactPoint",
            "contactType": "Customer Support",
            "email": f"support@{host}",
        },
        "address": {
            "@type": "PostalAddress",
            "addressCountry": primary_geo,
        },
        "knowsAbout": knows_about,
        "serviceArea": {
            "@type": "GeoCircle",
            "geoMidpoint": {
                "@type": "GeoCoordinates",
                "addressCountry": primary_geo,
            },
        },
    }


def build_software_schema(brand: BrandBible) -> Dict[str, Any]:
    audience_type = brand.target_audiences[0].name if brand.target_audiences else "Professionals"
    keywords = ", ".join(
        k for k in [*brand.topic_pillars[:5], *brand.product_features[:3], brand.industry] if k
    )

    schema = {
        "@context": SCHEMA_CONTEXT,
        "@type": "SoftwareApplication",
        "name": f"{brand.name} Platform",
        "applicationCategory": brand.industry or "Software",
        "operatingSystem": "Web",
        "offers": {
            "@type": "Offer",
            "price": "0",
            "priceCurrency": "USD",
            "availability": "https://schema.org/InStock",
        },
        "url": brand.url,
        "description": brand_description(brand),
        "featureList": brand.product_features or brand.benefits,
        "softwareVersion": "2.0",
        "author": {
            "@type": "Organization",
            "name": brand.name,
            "url": brand.url,
        },
        "audience": {
            "@type": "ProfessionalAudience",
            "audienceType": audience_type,
        },
    }

    if brand.differentiators:
        schema["usageInfo"] = ". ".join(brand.differentiators)
    if keywords:
        schema["keywords"] = keywords

    return schema
