"""
Business Logic Services
"""

from .cost_service import (
    CostCalculation,
    calculate_cost,
    estimate_audit_cost,
    estimate_reinforcement_cost,
    estimate_content_build_cost,
    get_monthly_projection,
    track_cost,
)
from .embedding_service import (
    EmbeddingError,
    EmbeddingClient,
    BrandVectorCache,
    BrandSimilarityEngine,
    brand_vector_cache,
    cosine_similarity,
)
from .auditor import Auditor, AuditOptions, AuditPrompt, load_intents, select_intents
from .reinforcement import (
    CooldownRegistry,
    ReinforcementEngine,
    ReinforcementOptions,
    TeachingPrompt,
    cooldown_registry,
    generate_prompts,
)
from .analyzer import AnalyzerFilter, get_intent_breakdown, get_kpis, get_trends
from .notifications import SlackNotifier

__all__ = [
    # Cost
    "CostCalculation",
    "calculate_cost",
    "estimate_audit_cost",
    "estimate_reinforcement_cost",
    "estimate_content_build_cost",
    "get_monthly_projection",
    "track_cost",
    # Similarity
    "EmbeddingError",
    "EmbeddingClient",
    "BrandVectorCache",
    "BrandSimilarityEngine",
    "brand_vector_cache",
    "cosine_similarity",
    # Audit
    "Auditor",
    "AuditOptions",
    "AuditPrompt",
    "load_intents",
    "select_intents",
    # Reinforcement
    "CooldownRegistry",
    "ReinforcementEngine",
    "ReinforcementOptions",
    "TeachingPrompt",
    "cooldown_registry",
    "generate_prompts",
    # Analytics
    "AnalyzerFilter",
    "get_intent_breakdown",
    "get_kpis",
    "get_trends",
    # Notifications
    "SlackNotifier",
]
