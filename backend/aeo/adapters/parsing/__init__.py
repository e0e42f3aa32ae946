"""
Response Parsing Adapters
"""

from .mention_detector import (
    detect_brand_mention,
    extract_mention_rank,
    normalize_text,
    find_terms,
)

__all__ = [
    "detect_brand_mention",
    "extract_mention_rank",
    "normalize_text",
    "find_terms",
]
