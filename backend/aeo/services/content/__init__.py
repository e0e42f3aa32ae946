"""
Content generation and quality gates
"""

from .validators import (
    readability_score,
    scan_forbidden,
    validate_json_ld_structure,
    run_content_gates,
)
from .schema_builder import (
    build_organization_schema,
    build_software_schema,
    extract_topics_from_titles,
)
from .faq_builder import Post, build_faq_content, find_relevant_post
from .blog_schema_builder import build_blog_posting_schema, build_blog_posting_schemas

__all__ = [
    "readability_score",
    "scan_forbidden",
    "validate_json_ld_structure",
    "run_content_gates",
    "build_organization_schema",
    "build_software_schema",
    "extract_topics_from_titles",
    "Post",
    "build_faq_content",
    "find_relevant_post",
    "build_blog_posting_schema",
    "build_blog_posting_schemas",
]
