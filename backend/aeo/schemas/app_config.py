"""
Runtime Application Config Schemas
Stored as JSON rows (camelCase keys) and merged over these defaults
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Section(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuditorConfig(_Section):
    max_concurrent: int = Field(default=5, ge=1)
    default_sample: float = Field(default=1.0, gt=0.0, le=1.0)
    # Per-provider overrides; unset providers use their configured default model
    models: Dict[str, str] = Field(default_factory=dict)


class ReinforcementConfig(_Section):
    count: int = Field(default=20, ge=0)
    max_concurrent: int = Field(default=2, ge=1)
    cooling_period_minutes: int = Field(default=1440, ge=0)
    min_intent_similarity: float = 0.8


class ProviderDefaults(_Section):
    temperature: float = 0.2
    top_p: float = 1.0
    max_tokens: int = 800
    timeout_ms: int = 45_000


class GateConfig(_Section):
    """Content gate thresholds"""
    zero_forbidden: bool = True
    min_readability: float = 55
    min_similarity_to_golden: float = 0.92
    require_citations: bool = True
    forbidden_phrases: List[str] = Field(default_factory=list)


class AppConfigData(_Section):
    auditor: AuditorConfig = Field(default_factory=AuditorConfig)
    reinforcement: ReinforcementConfig = Field(default_factory=ReinforcementConfig)
    provider_defaults: ProviderDefaults = Field(default_factory=ProviderDefaults)
    content_gates: GateConfig = Field(default_factory=GateConfig)

    def model_for(self, provider: str) -> Optional[str]:
        return self.auditor.models.get(provider)
