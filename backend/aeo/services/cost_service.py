"""
Cost Tracking Service
Token-based cost calculation and the append-only cost ledger

Pricing is USD per 1M tokens. Lookups fall back in two documented steps:
- model missing from a known provider's table -> that provider's first model
- provider unknown -> flat FALLBACK_RATES
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

from aeo.models import ApiCost, new_id
from aeo.utils.database import SessionFactory, get_db_context

logger = logging.getLogger(__name__)

PRICING: Dict[str, Dict[str, Dict[str, float]]] = {
    "openai": {
        "gpt-4o": {"input": 2.5, "output": 10.0},
        "gpt-4o-mini": {"input": 0.15, "output": 0.6},
    },
    "anthropic": {
        "claude-3-haiku-20240307": {"input": 0.25, "output": 1.25},
        "claude-3-5-sonnet-latest": {"input": 3.0, "output": 15.0},
        "claude-3-5-sonnet-20241022": {"input": 3.0, "output": 15.0},
        "claude-sonnet-4-6": {"input": 3.0, "output": 15.0},
    },
    "google": {
        "gemini-2.0-flash": {"input": 0.075, "output": 0.3},
        "gemini-1.5-pro": {"input": 1.25, "output": 5.0},
    },
    "perplexity": {
        "sonar": {"input": 1.0, "output": 1.0},
        "sonar-pro": {"input": 3.0, "output": 15.0},
    },
    "xai": {
        "grok-2-latest": {"input": 2.0, "output": 10.0},
        "grok-beta": {"input": 2.0, "output": 10.0},
    },
}

# Product names -> pricing platform
PROVIDER_ALIASES = {
    "openai": "openai",
    "anthropic": "anthropic",
    "gemini": "google",
    "perplexity": "perplexity",
    "grok": "xai",
}

# Unknown provider: $1 / $3 per 1M tokens in / out
FALLBACK_RATES = {"input": 1.0, "output": 3.0}

PER_MILLION = 1_000_000


@dataclass(frozen=True)
class CostCalculation:
    provider: str
    model: str
    tokens_in: int
    tokens_out: int
    cost_usd: float


def normalize_provider(provider: str) -> str:
    lower = provider.lower()
    return PROVIDER_ALIASES.get(lower, lower)


def model_pricing(provider: str, model: str) -> Dict[str, float]:
    """Per-1M-token rates for a (provider, model) pair, with fallbacks"""
    models = PRICING.get(normalize_provider(provider))
    if models is None:
        return FALLBACK_RATES
    return models.get(model) or next(iter(models.values()))


def calculate_cost(provider: str, model: str, tokens_in: int, tokens_out: int) -> CostCalculation:
    """
    Pure cost function: (provider, model, tokens) -> USD rounded to 4 places.

    Raises:
        ValueError: If either token count is negative
    """
    if tokens_in < 0 or tokens_out < 0:
        raise ValueError(f"Token counts must be non-negative, got {tokens_in}/{tokens_out}")

    pricing = model_pricing(provider, model)
    cost = (tokens_in / PER_MILLION) * pricing["input"] + (tokens_out / PER_MILLION) * pricing["output"]

    return CostCalculation(
        provider=provider,
        model=model,
        tokens_in=tokens_in,
        tokens_out=tokens_out,
        cost_usd=round(cost, 4),
    )


def _estimate_across_providers(num_prompts: int, avg_in: int, avg_out: int) -> float:
    total = 0.0
    for models in PRICING.values():
        pricing = next(iter(models.values()))
        total += (avg_in * num_prompts) / PER_MILLION * pricing["input"]
        total += (avg_out * num_prompts) / PER_MILLION * pricing["output"]
    return round(total, 2)


def estimate_audit_cost(num_prompts: int = 40) -> float:
    """Projected spend for one audit pass over every provider"""
    return _estimate_across_providers(num_prompts, avg_in=150, avg_out=200)


def estimate_reinforcement_cost(num_prompts: int = 25) -> float:
    """Projected spend for one reinforcement pass over every provider"""
    return _estimate_across_providers(num_prompts, avg_in=200, avg_out=300)


def estimate_content_build_cost(num_pieces: int = 3) -> float:
    pricing = PRICING["openai"]["gpt-4o"]
    cost = (500 * num_pieces) / PER_MILLION * pricing["input"] + (1000 * num_pieces) / PER_MILLION * pricing["output"]
    return round(cost, 2)


def get_monthly_projection(days_history: float, total_spent: float) -> float:
    """30-day projection from the daily average so far"""
    if days_history == 0:
        return 0.0
    return round(total_spent / days_history * 30, 2)


async def track_cost(
    provider: str,
    model: str,
    operation: str,
    tokens_in: int,
    tokens_out: int,
    job_run_id: Optional[str] = None,
    session_factory: SessionFactory = get_db_context,
) -> Optional[CostCalculation]:
    """
    Append a cost ledger row. Calls without token usage on both sides are
    not recorded.
    """
    if tokens_in <= 0 or tokens_out <= 0:
        return None

    calc = calculate_cost(provider, model, tokens_in, tokens_out)
    async with session_factory() as session:
        session.add(ApiCost(
            id=new_id(),
            provider=provider,
            model=model,
            operation=operation,
            job_run_id=job_run_id,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            cost_usd=Decimal(str(calc.cost_usd)),
        ))

    logger.debug(f"Tracked {operation} cost for {provider}/{model}: ${calc.cost_usd}")
    return calc
