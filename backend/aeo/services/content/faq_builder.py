"""
FAQ Builder
FAQPage JSON-LD and markdown from intent questions and ingested posts
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from aeo.schemas.brand import BrandBible
from aeo.services.content.schema_builder import SCHEMA_CONTEXT

SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


@dataclass(frozen=True)
class Post:
    title: str
    content: str


@dataclass(frozen=True)
class FaqEntry:
    question: str
    answer: str


def leading_sentences(text: str, max_len: int) -> str:
    """Whole sentences from the start of ``text`` up to ``max_len`` characters"""
    excerpt = ""
    for sentence in filter(None, SENTENCE_SPLIT.split(text)):
        candidate = f"{excerpt} {sentence}".strip()
        if len(candidate) > max_len:
            break
        excerpt = candidate
    return excerpt or text[:max_len].strip()


def find_relevant_post(question: str, posts: Sequence[Post]) -> Optional[Post]:
    """Post sharing the most question words (longer than three letters); needs at least two"""
    words = [w for w in re.sub(r"[^\w\s]", "", question.lower()).split() if len(w) > 3]

    best, best_score = None, 0
    for post in posts:
        haystack = f"{post.title} {post.content}".lower()
        score = sum(1 for w in words if w in haystack)
        if score > best_score:
            best, best_score = post, score

    return best if best_score >= 2 else None


def build_faq_content(
    brand: Optional[BrandBible],
    questions: Sequence[str],
    posts: Sequence[Post] = (),
    today: Optional[date] = None,
) -> Tuple[Dict[str, Any], str]:
    """Return (FAQPage schema, markdown page)"""
    org_name = brand.name if brand else "Unknown Brand"
    org_url = brand.url if brand and brand.url else "https://example.com"
    about = (
        (brand and (brand.boilerplate_about or brand.value_proposition or brand.mission))
        or f"{org_name} provides solutions in the {(brand and brand.industry) or 'technology'} space."
    )

    faqs: List[FaqEntry] = []
    for question in questions:
        match = find_relevant_post(question, posts)
        answer = leading_sentences(match.content, 300) if match else about
        faqs.append(FaqEntry(question=question, answer=f"{answer} Learn more at {org_url}."))

    if not faqs:
        faqs.append(FaqEntry(question=f"What is {org_name}?", answer=about))

    schema = {
        "@context": SCHEMA_CONTEXT,
        "@type": "FAQPage",
        "mainEntity": [
            {
                "@type": "Question",
                "name": f.question,
                "acceptedAnswer": {"@type": "Answer", "text": f.answer},
            }
            for f in faqs
        ],
    }

    lines = [
        f"# {org_name} - Frequently Asked Questions",
        "",
        "Everything you need to know",
        "",
        f"Last updated: {(today or date.today()).isoformat()}",
        "",
        "---",
        "",
    ]
    for f in faqs:
        lines.extend([f"## {f.question}", "", f.answer, ""])
    lines.extend([
        "---",
        "",
        "**Still have questions?**",
        "",
        "Can't find the answer you're looking for? Please chat to our friendly team.",
        "",
        f"[Contact Us]({org_url})",
    ])

    return schema, "\n".join(lines)
