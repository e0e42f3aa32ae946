"""
Content Quality Gates
Structural, lexical, readability and semantic-drift checks for generated artifacts
"""

import re
from typing import Any, Dict, Iterable, List, Optional

from aeo.adapters.parsing import find_terms
from aeo.schemas.app_config import GateConfig
from aeo.schemas.content import ContentPayload, GateReport, GateResult
from aeo.services.embedding_service import BrandSimilarityEngine

CITATION = re.compile(r"\[[^\]]+\]")
MARKUP = re.compile(r"[#*`]")
SENTENCE_END = re.compile(r"[.!?]+")
WORD_PUNCTUATION = re.compile(r"[.,!?;:]")
VOWEL_GROUP = re.compile(r"[aeiouy]+")

# kind -> (expected @type, required fields)
JSON_LD_RULES = {
    "organization_ld": ("Organization", ["name", "url"]),
    "software_ld": ("SoftwareApplication", ["name", "applicationCategory"]),
    "faq_page": ("FAQPage", []),
    "blog_posting": ("BlogPosting", ["headline", "author", "publisher"]),
}


def _syllables(word: str) -> int:
    word = WORD_PUNCTUATION.sub("", word.lower())
    count = len(VOWEL_GROUP.findall(word))
    if word.endswith("e"):
        count -= 1
    return max(count, 1)


def readability_score(text: str) -> float:
    """
    Flesch reading ease, clamped to [0, 100].

    Bracketed citations and markdown markup are stripped first. Text with no
    sentence terminator scores 0.
    """
    cleaned = MARKUP.sub("", CITATION.sub("", text))

    sentences = len(SENTENCE_END.findall(cleaned))
    if sentences == 0:
        return 0.0

    words = cleaned.split()
    if not words:
        return 0.0

    syllables = sum(_syllables(w) for w in words)
    score = 206.835 - 1.015 * (len(words) / sentences) - 84.6 * (syllables / len(words))
    return max(0.0, min(100.0, score))


def scan_forbidden(text: str, forbidden: Iterable[str]) -> List[str]:
    return find_terms(text, forbidden)


def validate_json_ld_structure(artifact: Dict[str, Any], kind: str) -> List[str]:
    """Kind-specific checks; unknown kinds only need @context and @type"""
    errors = []

    if "@context" not in artifact:
        errors.append("Missing @context field")
    if "@type" not in artifact:
        errors.append("Missing @type field")

    rule = JSON_LD_RULES.get(kind)
    if rule is None:
        return errors

    expected, required = rule
    actual = artifact.get("@type")
    if actual != expected:
        errors.append(f"Expected @type '{expected}', got '{actual}'")

    for f in required:
        if f not in artifact:
            errors.append(f"Missing required field: {f}")

    if kind == "faq_page":
        if "mainEntity" not in artifact:
            errors.append("Missing mainEntity field")
        elif not isinstance(artifact["mainEntity"], list):
            errors.append("mainEntity must be a list")

    return errors


async def run_content_gates(
    content: ContentPayload,
    config: Optional[GateConfig] = None,
    golden_text: Optional[str] = None,
    similarity: Optional[BrandSimilarityEngine] = None,
) -> GateResult:
    """
    Evaluate one artifact against every gate; ok only when none fails.

    The drift gate runs only with a golden text. It compares how close each
    text is to the brand vector, not the two texts to each other.
    """
    config = config or GateConfig()
    report = GateReport()

    report.structure_errors = validate_json_ld_structure(content.artifact, content.kind)
    if report.structure_errors:
        report.gate_failures.append("structure")

    if config.zero_forbidden:
        report.forbidden_hits = scan_forbidden(content.text, config.forbidden_phrases)
        if report.forbidden_hits:
            report.gate_failures.append("forbidden_phrases")

    report.readability = readability_score(content.text)
    if report.readability < config.min_readability:
        report.gate_failures.append("readability")

    if golden_text:
        engine = similarity or BrandSimilarityEngine()
        candidate_sim = await engine.compute_brand_similarity(content.text)
        golden_sim = await engine.compute_brand_similarity(golden_text)
        passed = abs(candidate_sim - golden_sim) < (1 - config.min_similarity_to_golden)
        report.semantic_drift = "pass" if passed else "fail"
        if not passed:
            report.gate_failures.append("semantic_drift")

    return GateResult(ok=not report.gate_failures, report=report)
