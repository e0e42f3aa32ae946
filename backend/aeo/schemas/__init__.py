"""
Pydantic Schemas
"""

from .brand import BrandBible, TargetAudience, from_db_row
from .app_config import (
    AppConfigData,
    AuditorConfig,
    ReinforcementConfig,
    ProviderDefaults,
    GateConfig,
)
from .content import (
    ContentPayload,
    GateReport,
    GateResult,
    ContentItemAccepted,
    JobTriggerResponse,
)

__all__ = [
    # Brand
    "BrandBible",
    "TargetAudience",
    "from_db_row",
    # Config
    "AppConfigData",
    "AuditorConfig",
    "ReinforcementConfig",
    "ProviderDefaults",
    "GateConfig",
    # Content
    "ContentPayload",
    "GateReport",
    "GateResult",
    "ContentItemAccepted",
    "JobTriggerResponse",
]
