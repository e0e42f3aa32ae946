"""
Brand Mention Detection
Substring brand detection and list-rank extraction for LLM responses
"""

import re
from typing import Iterable, List, Optional

from aeo.config import get_settings

NUMBERED_ITEM = re.compile(r"^(\d+)[.)]\s+")
BULLET_ITEM = re.compile(r"^[-*•]\s+")
SUB_HEADING = re.compile(r"^#{2,}\s+")


def _variants(variants: Optional[Iterable[str]]) -> List[str]:
    if variants is None:
        return get_settings().brand_name_variants
    return [v.lower() for v in variants if v]


def detect_brand_mention(text: str, variants: Optional[Iterable[str]] = None) -> bool:
    """Case-insensitive substring match against any brand-name variant"""
    if not text:
        return False
    lower = text.lower()
    return any(v in lower for v in _variants(variants))


def extract_mention_rank(text: str, variants: Optional[Iterable[str]] = None) -> Optional[int]:
    """
    Return the 1-based list position at which the brand first appears.

    Lines are scanned top to bottom with a running counter: "3. " or "3) "
    sets it to 3, a bullet (-, *, •) or a "##"+ heading bumps it by one,
    anything else leaves it alone. The first line with a positive counter
    that mentions the brand gives the rank. A mention on plain prose, or
    before any list marker, yields None.
    """
    names = _variants(variants)
    if not detect_brand_mention(text, names):
        return None

    rank = 0
    for raw in text.split("\n"):
        line = raw.strip()

        numbered = NUMBERED_ITEM.match(line)
        if numbered:
            rank = int(numbered.group(1))
        elif BULLET_ITEM.match(line) or SUB_HEADING.match(line):
            rank += 1

        if rank > 0 and detect_brand_mention(line, names):
            return rank

    return None


def normalize_text(text: str) -> str:
    """Strip markdown code, links, emphasis and headings; collapse whitespace"""
    t = re.sub(r"```[\s\S]*?```", " ", text)
    t = re.sub(r"`[^`]+`", " ", t)
    t = re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", t)
    t = re.sub(r"[*_]{1,2}([^*_]+)[*_]{1,2}", r"\1", t)
    t = re.sub(r"^#+\s+", "", t, flags=re.MULTILINE)
    t = re.sub(r"\s+", " ", t)
    return t.strip()


def find_terms(text: str, terms: Iterable[str]) -> List[str]:
    """Return the terms that occur in ``text`` (case-insensitive substring)"""
    lower = text.lower()
    return [t for t in terms if t and t.lower() in lower]
